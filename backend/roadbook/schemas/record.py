from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field, field_validator

from roadbook.models.drive import BestSeason, DifficultyLevel, LandmarkType, RouteCategory


class RecordType(str, Enum):
    ROUTE = "DriveRoute"
    PHOTO = "DrivePhoto"
    LANDMARK = "DriveLandmark"


def _as_utc(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes; everything we store is UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class Coordinate(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lon: float = Field(..., ge=-180, le=180)


class RouteRecordData(BaseModel):
    record_id: str = Field(..., min_length=1, max_length=64)
    name: str = Field(..., max_length=255)
    description: str = ""
    created_at: datetime
    last_modified: datetime
    difficulty: DifficultyLevel = DifficultyLevel.MODERATE
    best_season: BestSeason = BestSeason.ANY
    category: RouteCategory = RouteCategory.SCENIC
    distance_km: float = Field(0.0, ge=0)
    estimated_duration: float = Field(0.0, ge=0)
    elevation_gain: float | None = None
    personal_rating: int = Field(0, ge=0, le=5)
    personal_notes: str = ""
    times_completed: int = Field(0, ge=0)
    last_completed: datetime | None = None
    route_points: str = Field("[]", description="Coordinate codec JSON of the path")
    waypoints: str = Field("[]", description="Coordinate codec JSON of the waypoints")
    is_shared: bool = False
    share_id: str | None = None
    share_url: str | None = None

    normalize_timestamps = field_validator("created_at", "last_modified", "last_completed")(_as_utc)


class PhotoRecordData(BaseModel):
    record_id: str = Field(..., min_length=1, max_length=64)
    route_record_id: str
    file_name: str = Field(..., max_length=255)
    caption: str = ""
    location: Coordinate | None = None
    captured_at: datetime
    created_at: datetime
    is_key_photo: bool = False
    order_index: int = 0

    normalize_timestamps = field_validator("captured_at", "created_at")(_as_utc)


class LandmarkRecordData(BaseModel):
    record_id: str = Field(..., min_length=1, max_length=64)
    route_record_id: str
    name: str = Field(..., max_length=255)
    description: str = ""
    location: Coordinate
    landmark_type: LandmarkType = LandmarkType.POINT_OF_INTEREST
    created_at: datetime

    normalize_timestamps = field_validator("created_at")(_as_utc)


Record = RouteRecordData | PhotoRecordData | LandmarkRecordData


class SaveResponse(BaseModel):
    record_id: str
