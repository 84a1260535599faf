import logging
from contextlib import AbstractContextManager
from dataclasses import dataclass
from typing import Callable, Iterable, Protocol

from roadbook.models.drive import Landmark, Photo, Route, SyncState

logger = logging.getLogger(__name__)


class Syncable(Protocol):
    sync: SyncState
    lock: AbstractContextManager


@dataclass(frozen=True)
class UploadTicket:
    """Version of an entity at the moment its upload payload was built."""

    entity: Route | Photo | Landmark
    version: int


class SyncTracker:
    """
    Bookkeeping for the dirty flag / remote id pair on routes, photos and landmarks.

    The tracker never touches geometry. It only reads dirty flags and writes
    them back, always under the entity's own lock.
    """

    def pending_upload(self, entities: Iterable[Route | Photo | Landmark]) -> list[Route | Photo | Landmark]:
        """
        Dirty entities in upload order.

        Routes are expanded depth-first: the route (if dirty), then its dirty
        photos, then its dirty landmarks. Children are included even when the
        route itself is clean.
        """
        pending = []
        for entity in entities:
            if entity.sync.dirty:
                pending.append(entity)
            if isinstance(entity, Route):
                with entity.lock:
                    children = [*entity.photos, *entity.landmarks]
                pending.extend(child for child in children if child.sync.dirty)
        return pending

    def snapshot(self, entity: Syncable) -> UploadTicket:
        """Record the entity's current version for a later conditional write."""
        with entity.lock:
            return UploadTicket(entity=entity, version=entity.sync.version)

    def begin_upload(self, entity: Syncable) -> UploadTicket:
        return self.snapshot(entity)

    def apply_remote_record_id(self, entity: Syncable, remote_id: str) -> str:
        """Assign the remote id once. Returns the id the entity ends up with."""
        with entity.lock:
            if entity.sync.remote_id is None:
                entity.sync.remote_id = remote_id
            elif entity.sync.remote_id != remote_id:
                logger.warning(
                    "Ignoring remote id %s for %r, already bound to %s",
                    remote_id, entity, entity.sync.remote_id,
                )
            return entity.sync.remote_id

    def mark_synced(self, ticket: UploadTicket) -> bool:
        """
        Clear the dirty flag after a confirmed remote write.

        Only clears when nothing changed since the ticket was taken; otherwise
        the entity stays dirty for the next pass and False is returned.
        """
        entity = ticket.entity
        with entity.lock:
            if entity.sync.version != ticket.version:
                logger.info("%r changed during upload, leaving it dirty", entity)
                return False
            entity.sync.dirty = False
            return True

    def accept_remote(self, ticket: UploadTicket, apply: Callable[[], None]) -> bool:
        """Overwrite local state with a winning remote copy, unless edited meanwhile."""
        entity = ticket.entity
        with entity.lock:
            if entity.sync.version != ticket.version:
                return False
            apply()
            entity.sync.dirty = False
            return True

    @staticmethod
    def resolve_conflict(local, remote):
        """Last writer wins. Ties and missing timestamps go to the remote copy."""
        local_modified = getattr(local, "last_modified", None)
        remote_modified = getattr(remote, "last_modified", None)
        if local_modified is None or remote_modified is None:
            return remote
        return local if local_modified > remote_modified else remote
