import logging

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.ext.asyncio import AsyncSession

from roadbook.database import get_db
from roadbook.schemas.record import (
    LandmarkRecordData,
    PhotoRecordData,
    RecordType,
    RouteRecordData,
    SaveResponse,
)
from roadbook.services.record_mapping import route_from_record
from roadbook.services.record_store import MissingParentError, SqlRecordStore
from roadbook.services.route_export import to_geojson_feature, to_gpx_document

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1")


def get_store(db: AsyncSession = Depends(get_db)) -> SqlRecordStore:
    return SqlRecordStore(db)


async def _save(store: SqlRecordStore, record_id: str, record) -> SaveResponse:
    if record.record_id != record_id:
        raise HTTPException(status_code=400, detail="record_id in body does not match URL")
    try:
        saved_id = await store.save(record)
    except MissingParentError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.exception("Saving %s %s failed", type(record).__name__, record_id)
        raise HTTPException(status_code=500, detail=str(e))
    return SaveResponse(record_id=saved_id)


async def _fetch(store: SqlRecordStore, record_type: RecordType, record_id: str):
    record = await store.fetch(record_type, record_id)
    if record is None:
        raise HTTPException(status_code=404, detail="Record not found")
    return record


@router.put("/records/routes/{record_id}", response_model=SaveResponse)
async def save_route(record_id: str, record: RouteRecordData, store: SqlRecordStore = Depends(get_store)):
    return await _save(store, record_id, record)


@router.get("/records/routes", response_model=list[RouteRecordData])
async def list_routes(
    shared: bool | None = None,
    share_id: str | None = None,
    store: SqlRecordStore = Depends(get_store),
):
    return await store.query_routes(shared=shared, share_id=share_id)


@router.get("/records/routes/{record_id}", response_model=RouteRecordData)
async def get_route(record_id: str, store: SqlRecordStore = Depends(get_store)):
    return await _fetch(store, RecordType.ROUTE, record_id)


@router.delete("/records/routes/{record_id}")
async def delete_route(record_id: str, store: SqlRecordStore = Depends(get_store)):
    if not await store.delete(RecordType.ROUTE, record_id):
        raise HTTPException(status_code=404, detail="Record not found")
    return {"ok": True}


@router.get("/records/routes/{record_id}/gpx")
async def export_route_gpx(record_id: str, store: SqlRecordStore = Depends(get_store)):
    record = await _fetch(store, RecordType.ROUTE, record_id)
    document = to_gpx_document(route_from_record(record))
    return Response(
        content=document,
        media_type="application/gpx+xml",
        headers={"Content-Disposition": f'attachment; filename="{record_id}.gpx"'},
    )


@router.get("/records/routes/{record_id}/geojson")
async def export_route_geojson(record_id: str, store: SqlRecordStore = Depends(get_store)):
    record = await _fetch(store, RecordType.ROUTE, record_id)
    return to_geojson_feature(route_from_record(record))


@router.put("/records/photos/{record_id}", response_model=SaveResponse)
async def save_photo(record_id: str, record: PhotoRecordData, store: SqlRecordStore = Depends(get_store)):
    return await _save(store, record_id, record)


@router.get("/records/photos/{record_id}", response_model=PhotoRecordData)
async def get_photo(record_id: str, store: SqlRecordStore = Depends(get_store)):
    return await _fetch(store, RecordType.PHOTO, record_id)


@router.delete("/records/photos/{record_id}")
async def delete_photo(record_id: str, store: SqlRecordStore = Depends(get_store)):
    if not await store.delete(RecordType.PHOTO, record_id):
        raise HTTPException(status_code=404, detail="Record not found")
    return {"ok": True}


@router.put("/records/landmarks/{record_id}", response_model=SaveResponse)
async def save_landmark(record_id: str, record: LandmarkRecordData, store: SqlRecordStore = Depends(get_store)):
    return await _save(store, record_id, record)


@router.get("/records/landmarks/{record_id}", response_model=LandmarkRecordData)
async def get_landmark(record_id: str, store: SqlRecordStore = Depends(get_store)):
    return await _fetch(store, RecordType.LANDMARK, record_id)


@router.delete("/records/landmarks/{record_id}")
async def delete_landmark(record_id: str, store: SqlRecordStore = Depends(get_store)):
    if not await store.delete(RecordType.LANDMARK, record_id):
        raise HTTPException(status_code=404, detail="Record not found")
    return {"ok": True}


@router.get("/shared/{share_id}", response_model=RouteRecordData)
async def get_shared_route(share_id: str, store: SqlRecordStore = Depends(get_store)):
    matches = await store.query_routes(shared=True, share_id=share_id)
    if not matches:
        raise HTTPException(status_code=404, detail="Shared route not found")
    return matches[0]
