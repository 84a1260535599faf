import threading
import uuid
import weakref
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Iterable, NamedTuple

import polyline as polyline_codec

from roadbook.utils.geo import bounding_region, path_distance_km

# Minutes of driving per km. Matches the estimate the mobile clients show.
MINUTES_PER_KM = 60

MAX_RATING = 5


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DifficultyLevel(str, Enum):
    EASY = "Easy"
    MODERATE = "Moderate"
    CHALLENGING = "Challenging"
    EXPERT = "Expert"

    @property
    def short_name(self) -> str:
        return _DIFFICULTY_SHORT_NAMES[self]


_DIFFICULTY_SHORT_NAMES = {
    DifficultyLevel.EASY: "Easy",
    DifficultyLevel.MODERATE: "Medium",
    DifficultyLevel.CHALLENGING: "Hard",
    DifficultyLevel.EXPERT: "Expert",
}


class BestSeason(str, Enum):
    SPRING = "Spring"
    SUMMER = "Summer"
    AUTUMN = "Autumn"
    WINTER = "Winter"
    ANY = "Any Season"


class RouteCategory(str, Enum):
    SCENIC = "Scenic"
    PERFORMANCE = "Performance"
    HISTORICAL = "Historical"
    COASTAL = "Coastal"
    MOUNTAIN = "Mountain"
    URBAN = "Urban"
    OFFROAD = "Off-Road"
    TRACK = "Track Day"
    CRUISE = "Cruise"
    ADVENTURE = "Adventure"

    @property
    def short_name(self) -> str:
        return _CATEGORY_SHORT_NAMES.get(self, self.value)


_CATEGORY_SHORT_NAMES = {
    RouteCategory.PERFORMANCE: "Fast",
    RouteCategory.HISTORICAL: "Historic",
    RouteCategory.COASTAL: "Coast",
    RouteCategory.URBAN: "City",
    RouteCategory.TRACK: "Track",
}


class WaypointType(str, Enum):
    START = "Start"
    END = "End"
    STOP = "Stop"
    GAS = "Gas Station"
    FOOD = "Food"
    SCENIC = "Scenic Point"
    PHOTO = "Photo Spot"
    CUSTOM = "Custom"


class LandmarkType(str, Enum):
    POINT_OF_INTEREST = "Point of Interest"
    RESTAURANT = "Restaurant"
    GAS_STATION = "Gas Station"
    VIEWPOINT = "Viewpoint"
    HISTORICAL = "Historical Site"
    NATURAL = "Natural Feature"
    ACCOMMODATION = "Accommodation"
    ATTRACTION = "Attraction"


class GeoPoint(NamedTuple):
    lat: float
    lon: float


@dataclass(frozen=True)
class Waypoint:
    coordinate: GeoPoint
    name: str = ""
    description: str = ""
    waypoint_type: WaypointType = WaypointType.CUSTOM
    id: uuid.UUID = field(default_factory=uuid.uuid4)

    @property
    def display_name(self) -> str:
        return self.name or self.waypoint_type.value


@dataclass(frozen=True)
class CoordinateRegion:
    center: GeoPoint
    lat_span: float
    lon_span: float


@dataclass(frozen=True)
class RouteGeometry:
    """Path, waypoints and the stats derived from them, swapped in as one unit."""

    points: tuple[GeoPoint, ...] = ()
    waypoints: tuple[Waypoint, ...] = ()
    distance_km: float = 0.0
    estimated_duration: float = 0.0

    @classmethod
    def build(cls, points: Iterable[tuple[float, float]], waypoints: Iterable[Waypoint]) -> "RouteGeometry":
        pts = tuple(GeoPoint(float(lat), float(lon)) for lat, lon in points)
        distance = path_distance_km(pts) if len(pts) > 1 else 0.0
        return cls(
            points=pts,
            waypoints=tuple(waypoints),
            distance_km=distance,
            estimated_duration=distance * MINUTES_PER_KM,
        )


class SyncState:
    """Remote record id plus the dirty flag the sync pass works from."""

    def __init__(self) -> None:
        self.remote_id: str | None = None
        self.dirty = True
        # Bumped on every local mutation; lets a finished upload tell whether
        # the entity changed while the request was in flight.
        self.version = 0

    def touch(self) -> None:
        self.dirty = True
        self.version += 1

    def __repr__(self) -> str:
        return f"SyncState(remote_id={self.remote_id!r}, dirty={self.dirty}, version={self.version})"


class _RouteChild:
    """Shared plumbing for entities owned by a Route."""

    def __init__(self) -> None:
        self.id = uuid.uuid4()
        self.created_at = utcnow()
        self.sync = SyncState()
        self.lock = threading.RLock()
        self._route_ref: weakref.ReferenceType | None = None

    @property
    def route(self) -> "Route | None":
        if self._route_ref is None:
            return None
        return self._route_ref()

    def _attach(self, route: "Route") -> None:
        self._route_ref = weakref.ref(route)


class Photo(_RouteChild):
    def __init__(
        self,
        file_name: str,
        caption: str = "",
        location: GeoPoint | None = None,
        is_key_photo: bool = False,
    ) -> None:
        super().__init__()
        self.file_name = file_name
        self.caption = caption
        self.location = location
        self.captured_at = self.created_at
        self.is_key_photo = is_key_photo
        self.order_index = 0

    def update(
        self,
        caption: str | None = None,
        is_key_photo: bool | None = None,
        order_index: int | None = None,
    ) -> None:
        with self.lock:
            if caption is not None:
                self.caption = caption
            if is_key_photo is not None:
                self.is_key_photo = is_key_photo
            if order_index is not None:
                self.order_index = order_index
            self.sync.touch()

    def __repr__(self) -> str:
        return f"Photo(id={self.id}, file_name={self.file_name!r})"


class Landmark(_RouteChild):
    def __init__(
        self,
        name: str,
        location: GeoPoint,
        description: str = "",
        landmark_type: LandmarkType = LandmarkType.POINT_OF_INTEREST,
    ) -> None:
        super().__init__()
        self.name = name
        self.description = description
        self.location = location
        self.landmark_type = landmark_type

    def update(
        self,
        name: str | None = None,
        description: str | None = None,
        landmark_type: LandmarkType | None = None,
    ) -> None:
        with self.lock:
            if name is not None:
                self.name = name
            if description is not None:
                self.description = description
            if landmark_type is not None:
                self.landmark_type = landmark_type
            self.sync.touch()

    def __repr__(self) -> str:
        return f"Landmark(id={self.id}, name={self.name!r})"


class Route:
    """
    A driving route and everything attached to it.

    All mutations go through the methods below. Each one updates geometry or
    details, derived stats, last_modified and the dirty flag under the route
    lock, so readers holding the lock never see a half-applied change.
    """

    def __init__(
        self,
        name: str,
        description: str = "",
        difficulty: DifficultyLevel = DifficultyLevel.MODERATE,
        best_season: BestSeason = BestSeason.ANY,
        category: RouteCategory = RouteCategory.SCENIC,
        points: Iterable[tuple[float, float]] = (),
        waypoints: Iterable[Waypoint] = (),
    ) -> None:
        now = utcnow()
        self.id = uuid.uuid4()
        self.name = name
        self.description = description
        self.created_at = now
        self.last_modified = now
        self.difficulty = difficulty
        self.best_season = best_season
        self.category = category
        # Stats stay zero until the first update_route call.
        built = RouteGeometry.build(points, waypoints)
        self.geometry = replace(built, distance_km=0.0, estimated_duration=0.0)
        self.elevation_gain: float | None = None
        self.personal_rating = 0
        self.personal_notes = ""
        self.times_completed = 0
        self.last_completed: datetime | None = None
        self.is_shared = False
        self.share_id: str | None = None
        self.share_url: str | None = None
        self.photos: list[Photo] = []
        self.landmarks: list[Landmark] = []
        self.sync = SyncState()
        self.lock = threading.RLock()

    def __repr__(self) -> str:
        return f"Route(id={self.id}, name={self.name!r}, distance_km={self.distance_km:.2f})"

    # Geometry accessors read a single snapshot attribute.

    @property
    def points(self) -> list[GeoPoint]:
        return list(self.geometry.points)

    @property
    def waypoints(self) -> list[Waypoint]:
        return list(self.geometry.waypoints)

    @property
    def distance_km(self) -> float:
        return self.geometry.distance_km

    @property
    def estimated_duration(self) -> float:
        return self.geometry.estimated_duration

    @property
    def start_location(self) -> GeoPoint | None:
        points = self.geometry.points
        return points[0] if points else None

    @property
    def end_location(self) -> GeoPoint | None:
        points = self.geometry.points
        return points[-1] if points else None

    @property
    def region(self) -> CoordinateRegion | None:
        result = bounding_region(list(self.geometry.points))
        if result is None:
            return None
        (lat, lon), lat_span, lon_span = result
        return CoordinateRegion(center=GeoPoint(lat, lon), lat_span=lat_span, lon_span=lon_span)

    @property
    def polyline(self) -> str | None:
        """Encoded polyline of the path, None for fewer than 2 points."""
        points = self.geometry.points
        if len(points) < 2:
            return None
        return polyline_codec.encode([(p.lat, p.lon) for p in points])

    # Mutations

    def _touch(self) -> None:
        self.last_modified = utcnow()
        self.sync.touch()

    def update_route(self, points: Iterable[tuple[float, float]], waypoints: Iterable[Waypoint]) -> None:
        geometry = RouteGeometry.build(points, waypoints)
        with self.lock:
            self.geometry = geometry
            self._touch()

    def add_photo(self, photo: Photo) -> None:
        with self.lock:
            photo._attach(self)
            self.photos.append(photo)
            self._touch()

    def add_landmark(self, landmark: Landmark) -> None:
        with self.lock:
            landmark._attach(self)
            self.landmarks.append(landmark)
            self._touch()

    def mark_completed(self) -> None:
        with self.lock:
            self.times_completed += 1
            self._touch()
            self.last_completed = self.last_modified

    def update_details(
        self,
        name: str | None = None,
        description: str | None = None,
        difficulty: DifficultyLevel | None = None,
        best_season: BestSeason | None = None,
        category: RouteCategory | None = None,
        elevation_gain: float | None = None,
        personal_rating: int | None = None,
        personal_notes: str | None = None,
    ) -> None:
        if personal_rating is not None and not 0 <= personal_rating <= MAX_RATING:
            raise ValueError(f"personal_rating must be between 0 and {MAX_RATING}, got {personal_rating}")

        with self.lock:
            if name is not None:
                self.name = name
            if description is not None:
                self.description = description
            if difficulty is not None:
                self.difficulty = difficulty
            if best_season is not None:
                self.best_season = best_season
            if category is not None:
                self.category = category
            if elevation_gain is not None:
                self.elevation_gain = elevation_gain
            if personal_rating is not None:
                self.personal_rating = personal_rating
            if personal_notes is not None:
                self.personal_notes = personal_notes
            self._touch()

    def mark_shared(self, share_id: str, share_url: str) -> None:
        with self.lock:
            self.is_shared = True
            self.share_id = share_id
            self.share_url = share_url
            self._touch()
