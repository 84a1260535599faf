import logging
import uuid
from urllib.parse import urlparse

from roadbook.config import settings
from roadbook.models.drive import Route
from roadbook.schemas.record import RecordType, RouteRecordData
from roadbook.services.record_store import RecordStore

logger = logging.getLogger(__name__)


class NotSyncedError(Exception):
    """The route has no remote record yet; sync it before sharing."""


def format_duration(minutes: float) -> str:
    hours = int(minutes) // 60
    mins = int(minutes) % 60
    if hours > 0:
        return f"{hours}h {mins}m"
    return f"{mins}m"


class ShareService:
    def __init__(self, base_url: str | None = None, route_share_path: str | None = None):
        self.base_url = (base_url or settings.share_base_url).rstrip("/")
        self.route_share_path = "/" + (route_share_path or settings.route_share_path).strip("/")

    def share_id_for(self, route: Route) -> str:
        # Same route, same id: derived from the route id, not random
        return str(uuid.uuid5(uuid.NAMESPACE_URL, f"{self.base_url}{self.route_share_path}/{route.id}"))

    def share_url_for(self, share_id: str) -> str:
        return f"{self.base_url}{self.route_share_path}/{share_id}"

    def generate_share_link(self, route: Route) -> str:
        """
        Share URL for a route.

        The share id is assigned on the first call and reused afterwards; repeat
        calls return the existing link without touching the route.
        """
        with route.lock:
            if route.share_id is not None and route.share_url is not None:
                return route.share_url
            share_id = route.share_id or self.share_id_for(route)
            share_url = self.share_url_for(share_id)
            route.mark_shared(share_id, share_url)
        logger.info("Generated share link for route %s", route.id)
        return share_url

    def parse_share_url(self, url: str) -> str | None:
        """Share id from a link like https://host/routes/{share_id}, else None."""
        parts = [p for p in urlparse(url).path.split("/") if p]
        if len(parts) < 2 or parts[0] != self.route_share_path.strip("/"):
            return None
        return parts[1]

    def share_text(self, route: Route) -> str:
        with route.lock:
            lines = [f"Check out this driving route: {route.name}"]
            if route.description:
                lines.append(route.description)
            lines += [
                "",
                f"Distance: {route.distance_km:.1f} km",
                f"Duration: {format_duration(route.estimated_duration)}",
                f"Category: {route.category.value}",
                f"Difficulty: {route.difficulty.value}",
            ]
            if route.personal_rating > 0:
                lines.append(f"Rating: {route.personal_rating}/5")
        lines += ["", "Shared via Roadbook"]
        return "\n".join(lines)

    async def create_collaborative_share(self, route: Route, store: RecordStore) -> RouteRecordData:
        """
        Publish the route's remote record as shared.

        Needs a remote record to attach the share to, so the route must have
        been synced at least once.
        """
        remote_id = route.sync.remote_id
        if remote_id is None:
            raise NotSyncedError(f"Route {route.id} has not been synced yet")

        record = await store.fetch(RecordType.ROUTE, remote_id)
        if record is None:
            raise NotSyncedError(f"Remote record {remote_id} for route {route.id} not found")

        share_url = self.generate_share_link(route)
        shared = record.model_copy(
            update={"is_shared": True, "share_id": route.share_id, "share_url": share_url}
        )
        await store.save(shared)
        return shared
