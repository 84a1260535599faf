import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from pydantic import ValidationError

from roadbook.models.drive import Landmark, Photo, Route, utcnow
from roadbook.schemas.record import RecordType, RouteRecordData
from roadbook.services.record_mapping import (
    apply_route_record,
    landmark_to_record,
    photo_to_record,
    route_from_record,
    route_to_record,
)
from roadbook.services.record_store import RecordStore, RecordStoreError
from roadbook.services.route_library import RouteLibrary
from roadbook.services.sync_tracker import SyncTracker

logger = logging.getLogger(__name__)


class SyncStatus(str, Enum):
    IDLE = "idle"
    SYNCING = "syncing"
    SUCCESS = "success"
    FAILED = "failed"


@dataclass
class SyncResult:
    status: SyncStatus = SyncStatus.SUCCESS
    uploaded: list[str] = field(default_factory=list)
    adopted: list[str] = field(default_factory=list)  # local routes replaced by a newer remote copy
    still_dirty: list[str] = field(default_factory=list)  # edited while their upload was in flight
    failed: dict[str, str] = field(default_factory=dict)
    downloaded: list[str] = field(default_factory=list)
    error: str | None = None

    def fail(self, key: str, error: Exception) -> None:
        self.failed[key] = str(error)
        self.status = SyncStatus.FAILED
        self.error = str(error)


class SyncService:
    """
    Pushes dirty routes, photos and landmarks to a record store and pulls
    shared routes back.

    Every entity is committed on its own: the dirty flag is cleared only after
    its save returned, so an abandoned pass leaves unsent entities dirty.
    """

    def __init__(self, store: RecordStore, library: RouteLibrary, tracker: SyncTracker | None = None):
        self.store = store
        self.library = library
        self.tracker = tracker or SyncTracker()
        self.status = SyncStatus.IDLE
        self.last_sync_at: datetime | None = None
        self.last_error: str | None = None

    async def sync(self) -> SyncResult:
        self.status = SyncStatus.SYNCING
        result = SyncResult()

        try:
            for route in self.library.routes():
                await self._sync_route(route, result)

            try:
                await self._download_shared_routes(result)
            except RecordStoreError as e:
                logger.warning("Downloading shared routes failed: %s", e)
                result.fail("shared-routes", e)
        except asyncio.CancelledError:
            logger.info("Sync cancelled, unsent entities stay dirty")
            raise
        finally:
            # never left at SYNCING, whatever escaped the pass
            self.status = SyncStatus.IDLE

        self.status = result.status
        self.last_error = result.error
        if result.status == SyncStatus.SUCCESS:
            self.last_sync_at = utcnow()
        else:
            logger.warning("Sync finished with %d failures", len(result.failed))
        return result

    async def _sync_route(self, route: Route, result: SyncResult) -> None:
        pending = self.tracker.pending_upload([route])
        if not pending:
            return

        try:
            if route.sync.dirty:
                await self._upload_route(route, result)
        except (RecordStoreError, ValidationError) as e:
            logger.warning("Uploading route %s failed: %s", route.id, e)
            result.fail(str(route.id), e)
            return

        parent_id = route.sync.remote_id
        if parent_id is None:
            return

        for child in pending:
            if child is route:
                continue
            try:
                await self._upload_child(child, parent_id, result)
            except (RecordStoreError, ValidationError) as e:
                logger.warning("Uploading %r failed: %s", child, e)
                result.fail(str(child.id), e)

    async def _upload_route(self, route: Route, result: SyncResult) -> None:
        with route.lock:
            ticket = self.tracker.begin_upload(route)
            record = route_to_record(route)

        if route.sync.remote_id is not None:
            remote = await self.store.fetch(RecordType.ROUTE, route.sync.remote_id)
            if remote is not None and self.tracker.resolve_conflict(record, remote) is remote:
                if self.tracker.accept_remote(ticket, lambda: apply_route_record(route, remote)):
                    logger.info("Remote copy of route %s is newer, adopted it", route.id)
                    result.adopted.append(str(route.id))
                else:
                    result.still_dirty.append(str(route.id))
                return

        remote_id = await self.store.save(record)
        self.tracker.apply_remote_record_id(route, remote_id)
        if self.tracker.mark_synced(ticket):
            result.uploaded.append(str(route.id))
        else:
            result.still_dirty.append(str(route.id))

    async def _upload_child(self, child: Photo | Landmark, parent_id: str, result: SyncResult) -> None:
        with child.lock:
            ticket = self.tracker.begin_upload(child)
            if isinstance(child, Photo):
                record = photo_to_record(child, parent_id)
            else:
                record = landmark_to_record(child, parent_id)

        remote_id = await self.store.save(record)
        self.tracker.apply_remote_record_id(child, remote_id)
        if self.tracker.mark_synced(ticket):
            result.uploaded.append(str(child.id))
        else:
            result.still_dirty.append(str(child.id))

    async def _download_shared_routes(self, result: SyncResult) -> None:
        for record in await self.store.query_routes(shared=True):
            route = self.merge_remote(record)
            if route is not None:
                result.downloaded.append(record.record_id)

    def merge_remote(self, record: RouteRecordData) -> Route | None:
        """
        Fold a downloaded route record into the library.

        Unknown records become new clean routes. Known ones are overwritten only
        when the remote copy wins the last-writer-wins comparison. Returns the
        route that changed, or None.
        """
        local = self.library.find_by_remote_id(record.record_id)
        if local is None:
            return self.library.add(route_from_record(record))

        ticket = self.tracker.snapshot(local)
        if self.tracker.resolve_conflict(local, record) is not record:
            return None
        if local.last_modified == record.last_modified and not local.sync.dirty:
            return None
        if self.tracker.accept_remote(ticket, lambda: apply_route_record(local, record)):
            return local
        return None

    async def delete_remote(self, route: Route) -> bool:
        """Drop the remote copy of a route that was deleted locally."""
        if route.sync.remote_id is None:
            return False
        return await self.store.delete(RecordType.ROUTE, route.sync.remote_id)
