import logging
import threading
import uuid

from roadbook.models.drive import GeoPoint, Photo, Route
from roadbook.services.photo_storage import PhotoStorage, StorageError

logger = logging.getLogger(__name__)


class RouteLibrary:
    """The user's routes. Single owner of every Route object graph."""

    def __init__(self, storage: PhotoStorage | None = None):
        self.storage = storage
        self._routes: dict[uuid.UUID, Route] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._routes)

    def __contains__(self, route: Route) -> bool:
        with self._lock:
            return route.id in self._routes

    def create(self, name: str, **kwargs) -> Route:
        route = Route(name=name, **kwargs)
        self.add(route)
        return route

    def add(self, route: Route) -> Route:
        with self._lock:
            self._routes[route.id] = route
        return route

    def get(self, route_id: uuid.UUID) -> Route | None:
        with self._lock:
            return self._routes.get(route_id)

    def routes(self) -> list[Route]:
        """Routes, most recently modified first."""
        with self._lock:
            routes = list(self._routes.values())
        return sorted(routes, key=lambda r: r.last_modified, reverse=True)

    def find_by_remote_id(self, remote_id: str) -> Route | None:
        for route in self.routes():
            if route.sync.remote_id == remote_id:
                return route
        return None

    def attach_photo(
        self,
        route: Route,
        data: bytes,
        caption: str = "",
        location: GeoPoint | None = None,
        is_key_photo: bool = False,
    ) -> Photo:
        """
        Store photo bytes and add the photo to the route.

        The file is written first. If that fails StorageError propagates and
        the route is left untouched.
        """
        if self.storage is None:
            raise StorageError("No photo storage configured")

        file_name = f"{uuid.uuid4()}.jpg"
        self.storage.save(file_name, data)

        photo = Photo(file_name=file_name, caption=caption, location=location, is_key_photo=is_key_photo)
        with route.lock:
            photo.order_index = len(route.photos)
            route.add_photo(photo)
        return photo

    def delete(self, route_id: uuid.UUID) -> Route | None:
        """Remove a route with its photos and landmarks, and its stored photo files."""
        with self._lock:
            route = self._routes.pop(route_id, None)
        if route is None:
            return None

        with route.lock:
            photos = list(route.photos)
            route.photos.clear()
            route.landmarks.clear()

        if self.storage is not None:
            for photo in photos:
                try:
                    self.storage.remove(photo.file_name)
                except StorageError as e:
                    logger.warning("Could not remove photo file for deleted route %s: %s", route_id, e)

        logger.info("Deleted route %s (%d photos)", route_id, len(photos))
        return route
