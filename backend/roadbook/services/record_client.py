import logging

import httpx

from roadbook.config import settings
from roadbook.schemas.record import (
    LandmarkRecordData,
    PhotoRecordData,
    Record,
    RecordType,
    RouteRecordData,
)
from roadbook.services.record_store import MissingParentError, RecordStoreError

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"

_PATHS = {
    RecordType.ROUTE: "routes",
    RecordType.PHOTO: "photos",
    RecordType.LANDMARK: "landmarks",
}

_SCHEMAS = {
    RecordType.ROUTE: RouteRecordData,
    RecordType.PHOTO: PhotoRecordData,
    RecordType.LANDMARK: LandmarkRecordData,
}


def _record_type(record: Record) -> RecordType:
    if isinstance(record, RouteRecordData):
        return RecordType.ROUTE
    if isinstance(record, PhotoRecordData):
        return RecordType.PHOTO
    if isinstance(record, LandmarkRecordData):
        return RecordType.LANDMARK
    raise TypeError(f"Unsupported record: {type(record).__name__}")


class RemoteRecordStore:
    """RecordStore backed by the roadbook HTTP API."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = (base_url or settings.record_store_url).rstrip("/")
        self.timeout = timeout
        self.transport = transport

    def _url(self, record_type: RecordType, record_id: str | None = None) -> str:
        url = f"{self.base_url}{API_PREFIX}/records/{_PATHS[record_type]}"
        if record_id is not None:
            url += f"/{record_id}"
        return url

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                return await client.request(method, url, **kwargs)
        except httpx.TimeoutException:
            raise RecordStoreError(f"Record store timeout: {method} {url}")
        except httpx.HTTPError as e:
            raise RecordStoreError(f"Record store unreachable: {e}") from e

    async def save(self, record: Record) -> str:
        record_type = _record_type(record)
        url = self._url(record_type, record.record_id)
        resp = await self._request("PUT", url, json=record.model_dump(mode="json"))

        if resp.status_code == 404 and record_type != RecordType.ROUTE:
            raise MissingParentError(resp.json().get("detail", resp.text))
        if resp.status_code != 200:
            raise RecordStoreError(f"Record store error {resp.status_code}: {resp.text[:200]}")

        return resp.json()["record_id"]

    async def fetch(self, record_type: RecordType, record_id: str) -> Record | None:
        resp = await self._request("GET", self._url(record_type, record_id))
        if resp.status_code == 404:
            return None
        if resp.status_code != 200:
            raise RecordStoreError(f"Record store error {resp.status_code}: {resp.text[:200]}")
        return _SCHEMAS[record_type].model_validate(resp.json())

    async def query_routes(
        self, shared: bool | None = None, share_id: str | None = None
    ) -> list[RouteRecordData]:
        params = {}
        if shared is not None:
            params["shared"] = "true" if shared else "false"
        if share_id is not None:
            params["share_id"] = share_id

        resp = await self._request("GET", self._url(RecordType.ROUTE), params=params)
        if resp.status_code != 200:
            raise RecordStoreError(f"Record store error {resp.status_code}: {resp.text[:200]}")
        return [RouteRecordData.model_validate(item) for item in resp.json()]

    async def delete(self, record_type: RecordType, record_id: str) -> bool:
        resp = await self._request("DELETE", self._url(record_type, record_id))
        if resp.status_code == 404:
            return False
        if resp.status_code != 200:
            raise RecordStoreError(f"Record store error {resp.status_code}: {resp.text[:200]}")
        return True

    async def check_status(self) -> bool:
        try:
            resp = await self._request("GET", f"{self.base_url}/health")
        except RecordStoreError as e:
            logger.warning("Record store health check failed: %s", e)
            return False
        return resp.status_code == 200
