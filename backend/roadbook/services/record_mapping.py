from roadbook.models.drive import Landmark, Photo, Route, RouteGeometry
from roadbook.schemas.record import Coordinate, LandmarkRecordData, PhotoRecordData, RouteRecordData
from roadbook.services.coordinate_codec import decode_points, decode_waypoints, encode_points, encode_waypoints


def record_id_for(entity: Route | Photo | Landmark) -> str:
    """Remote id if the entity has one, else its own id as the new record name."""
    return entity.sync.remote_id or str(entity.id)


def route_to_record(route: Route) -> RouteRecordData:
    with route.lock:
        geometry = route.geometry
        return RouteRecordData(
            record_id=record_id_for(route),
            name=route.name,
            description=route.description,
            created_at=route.created_at,
            last_modified=route.last_modified,
            difficulty=route.difficulty,
            best_season=route.best_season,
            category=route.category,
            distance_km=geometry.distance_km,
            estimated_duration=geometry.estimated_duration,
            elevation_gain=route.elevation_gain,
            personal_rating=route.personal_rating,
            personal_notes=route.personal_notes,
            times_completed=route.times_completed,
            last_completed=route.last_completed,
            route_points=encode_points(geometry.points).decode("utf-8"),
            waypoints=encode_waypoints(geometry.waypoints).decode("utf-8"),
            is_shared=route.is_shared,
            share_id=route.share_id,
            share_url=route.share_url,
        )


def photo_to_record(photo: Photo, route_record_id: str) -> PhotoRecordData:
    with photo.lock:
        location = None
        if photo.location is not None:
            location = Coordinate(lat=photo.location.lat, lon=photo.location.lon)
        return PhotoRecordData(
            record_id=record_id_for(photo),
            route_record_id=route_record_id,
            file_name=photo.file_name,
            caption=photo.caption,
            location=location,
            captured_at=photo.captured_at,
            created_at=photo.created_at,
            is_key_photo=photo.is_key_photo,
            order_index=photo.order_index,
        )


def landmark_to_record(landmark: Landmark, route_record_id: str) -> LandmarkRecordData:
    with landmark.lock:
        return LandmarkRecordData(
            record_id=record_id_for(landmark),
            route_record_id=route_record_id,
            name=landmark.name,
            description=landmark.description,
            location=Coordinate(lat=landmark.location.lat, lon=landmark.location.lon),
            landmark_type=landmark.landmark_type,
            created_at=landmark.created_at,
        )


def apply_route_record(route: Route, record: RouteRecordData) -> None:
    """
    Copy a remote route record onto a local route.

    Distance and duration are recomputed from the decoded geometry rather than
    taken from the record. Caller holds the route lock and owns the sync state.
    """
    route.name = record.name
    route.description = record.description
    route.created_at = record.created_at
    route.last_modified = record.last_modified
    route.difficulty = record.difficulty
    route.best_season = record.best_season
    route.category = record.category
    route.geometry = RouteGeometry.build(
        decode_points(record.route_points), decode_waypoints(record.waypoints)
    )
    route.elevation_gain = record.elevation_gain
    route.personal_rating = record.personal_rating
    route.personal_notes = record.personal_notes
    route.times_completed = record.times_completed
    route.last_completed = record.last_completed
    route.is_shared = record.is_shared
    route.share_id = record.share_id
    route.share_url = record.share_url
    if route.sync.remote_id is None:
        route.sync.remote_id = record.record_id


def route_from_record(record: RouteRecordData) -> Route:
    """Build a clean local route from a downloaded record."""
    route = Route(name=record.name)
    with route.lock:
        apply_route_record(route, record)
        route.sync.dirty = False
    return route

