import logging
from enum import Enum
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from roadbook.models.record import LandmarkRecord, PhotoRecord, RouteRecord
from roadbook.schemas.record import (
    Coordinate,
    LandmarkRecordData,
    PhotoRecordData,
    Record,
    RecordType,
    RouteRecordData,
)

logger = logging.getLogger(__name__)


class RecordStoreError(Exception):
    pass


class MissingParentError(RecordStoreError):
    pass


class RecordStore(Protocol):
    """What the sync pass needs from wherever records are kept."""

    async def save(self, record: Record) -> str: ...

    async def fetch(self, record_type: RecordType, record_id: str) -> Record | None: ...

    async def query_routes(
        self, shared: bool | None = None, share_id: str | None = None
    ) -> list[RouteRecordData]: ...

    async def delete(self, record_type: RecordType, record_id: str) -> bool: ...


_MODELS = {
    RecordType.ROUTE: RouteRecord,
    RecordType.PHOTO: PhotoRecord,
    RecordType.LANDMARK: LandmarkRecord,
}


def _plain(value):
    return value.value if isinstance(value, Enum) else value


class SqlRecordStore:
    """RecordStore over the SQLAlchemy tables in roadbook.models.record."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def save(self, record: Record) -> str:
        if isinstance(record, RouteRecordData):
            model = await self._upsert(RouteRecord, record.record_id)
            for key, value in record.model_dump(exclude={"record_id"}).items():
                setattr(model, key, _plain(value))
        elif isinstance(record, PhotoRecordData):
            route = await self._require_route(record.route_record_id)
            model = await self._upsert(PhotoRecord, record.record_id)
            model.route = route
            model.file_name = record.file_name
            model.caption = record.caption
            model.latitude = record.location.lat if record.location else None
            model.longitude = record.location.lon if record.location else None
            model.captured_at = record.captured_at
            model.created_at = record.created_at
            model.is_key_photo = record.is_key_photo
            model.order_index = record.order_index
        elif isinstance(record, LandmarkRecordData):
            route = await self._require_route(record.route_record_id)
            model = await self._upsert(LandmarkRecord, record.record_id)
            model.route = route
            model.name = record.name
            model.description = record.description
            model.latitude = record.location.lat
            model.longitude = record.location.lon
            model.landmark_type = record.landmark_type.value
            model.created_at = record.created_at
        else:
            raise TypeError(f"Unsupported record: {type(record).__name__}")

        record_id = model.id
        await self._commit(f"save {type(record).__name__} {record_id}")
        logger.debug("Saved %s %s", type(record).__name__, record_id)
        return record_id

    async def fetch(self, record_type: RecordType, record_id: str) -> Record | None:
        model = await self.session.get(_MODELS[record_type], record_id)
        if model is None:
            return None
        return _to_data(model)

    async def query_routes(
        self, shared: bool | None = None, share_id: str | None = None
    ) -> list[RouteRecordData]:
        stmt = select(RouteRecord).order_by(RouteRecord.last_modified.desc())
        if shared is not None:
            stmt = stmt.where(RouteRecord.is_shared == shared)
        if share_id is not None:
            stmt = stmt.where(RouteRecord.share_id == share_id)
        result = await self.session.execute(stmt)
        return [_route_data(model) for model in result.scalars().all()]

    async def delete(self, record_type: RecordType, record_id: str) -> bool:
        model = await self.session.get(_MODELS[record_type], record_id)
        if model is None:
            return False
        await self.session.delete(model)
        await self._commit(f"delete {record_type.value} {record_id}")
        return True

    async def _commit(self, action: str) -> None:
        # A failed commit leaves the session unusable until rolled back
        try:
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.warning("Record store could not %s: %s", action, e)
            raise RecordStoreError(f"Could not {action}: {e}") from e

    async def _upsert(self, model_cls, record_id: str):
        model = await self.session.get(model_cls, record_id)
        if model is None:
            model = model_cls(id=record_id)
            self.session.add(model)
        return model

    async def _require_route(self, route_record_id: str) -> RouteRecord:
        route = await self.session.get(RouteRecord, route_record_id)
        if route is None:
            raise MissingParentError(f"Route record {route_record_id} not found")
        return route


def _route_data(model: RouteRecord) -> RouteRecordData:
    return RouteRecordData(
        record_id=model.id,
        name=model.name,
        description=model.description,
        created_at=model.created_at,
        last_modified=model.last_modified,
        difficulty=model.difficulty,
        best_season=model.best_season,
        category=model.category,
        distance_km=model.distance_km,
        estimated_duration=model.estimated_duration,
        elevation_gain=model.elevation_gain,
        personal_rating=model.personal_rating,
        personal_notes=model.personal_notes,
        times_completed=model.times_completed,
        last_completed=model.last_completed,
        route_points=model.route_points,
        waypoints=model.waypoints,
        is_shared=model.is_shared,
        share_id=model.share_id,
        share_url=model.share_url,
    )


def _to_data(model) -> Record:
    if isinstance(model, RouteRecord):
        return _route_data(model)
    if isinstance(model, PhotoRecord):
        location = None
        if model.latitude is not None and model.longitude is not None:
            location = Coordinate(lat=model.latitude, lon=model.longitude)
        return PhotoRecordData(
            record_id=model.id,
            route_record_id=model.route_id,
            file_name=model.file_name,
            caption=model.caption,
            location=location,
            captured_at=model.captured_at,
            created_at=model.created_at,
            is_key_photo=model.is_key_photo,
            order_index=model.order_index,
        )
    return LandmarkRecordData(
        record_id=model.id,
        route_record_id=model.route_id,
        name=model.name,
        description=model.description,
        location=Coordinate(lat=model.latitude, lon=model.longitude),
        landmark_type=model.landmark_type,
        created_at=model.created_at,
    )
