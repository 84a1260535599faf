"""
Storage encoding for route geometry.

Points and waypoints are stored as JSON byte strings on route records. Decoding
is forgiving: anything that does not parse comes back as an empty list so
records written by older clients never break loading a route.
"""

import json
import logging
import math
import uuid
from typing import Iterable

from roadbook.models.drive import GeoPoint, Waypoint, WaypointType

logger = logging.getLogger(__name__)


class DecodeError(ValueError):
    pass


def encode_points(points: Iterable[tuple[float, float]]) -> bytes:
    payload = [{"lat": float(lat), "lon": float(lon)} for lat, lon in points]
    return json.dumps(payload).encode("utf-8")


def decode_points(data: bytes | str | None) -> list[GeoPoint]:
    try:
        return _parse_points(_load_array(data))
    except DecodeError as e:
        logger.debug("Discarding undecodable route points: %s", e)
        return []


def encode_waypoints(waypoints: Iterable[Waypoint]) -> bytes:
    payload = [
        {
            "id": str(wp.id),
            "coordinate": {"latitude": wp.coordinate.lat, "longitude": wp.coordinate.lon},
            "name": wp.name,
            "waypointDescription": wp.description,
            "waypointType": wp.waypoint_type.value,
        }
        for wp in waypoints
    ]
    return json.dumps(payload).encode("utf-8")


def decode_waypoints(data: bytes | str | None) -> list[Waypoint]:
    try:
        return [_parse_waypoint(item) for item in _load_array(data)]
    except DecodeError as e:
        logger.debug("Discarding undecodable waypoints: %s", e)
        return []


def _load_array(data: bytes | str | None) -> list:
    if data is None:
        raise DecodeError("no data")
    try:
        parsed = json.loads(data)
    except (ValueError, TypeError, RecursionError) as e:
        raise DecodeError(str(e)) from e
    if not isinstance(parsed, list):
        raise DecodeError(f"expected a JSON array, got {type(parsed).__name__}")
    return parsed


def _number(value) -> float:
    # bool is an int subclass; JSON true/false are not coordinates
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise DecodeError(f"not a number: {value!r}")
    try:
        value = float(value)
    except OverflowError as e:
        raise DecodeError(str(e)) from e
    if not math.isfinite(value):
        raise DecodeError(f"not a finite number: {value!r}")
    return value


def _parse_points(items: list) -> list[GeoPoint]:
    points = []
    for item in items:
        if not isinstance(item, dict):
            raise DecodeError(f"expected an object, got {item!r}")
        values = {key: _number(value) for key, value in item.items()}
        if "lat" not in values or "lon" not in values:
            continue
        points.append(GeoPoint(values["lat"], values["lon"]))
    return points


def _parse_waypoint(item) -> Waypoint:
    if not isinstance(item, dict):
        raise DecodeError(f"expected an object, got {item!r}")

    coordinate = item.get("coordinate")
    if not isinstance(coordinate, dict):
        raise DecodeError("waypoint without coordinate")
    lat = _number(coordinate.get("latitude"))
    lon = _number(coordinate.get("longitude"))

    try:
        waypoint_type = WaypointType(item.get("waypointType"))
    except ValueError:
        waypoint_type = WaypointType.CUSTOM

    try:
        waypoint_id = uuid.UUID(str(item.get("id")))
    except ValueError:
        waypoint_id = uuid.uuid4()

    name = item.get("name")
    description = item.get("waypointDescription")
    return Waypoint(
        coordinate=GeoPoint(lat, lon),
        name=name if isinstance(name, str) else "",
        description=description if isinstance(description, str) else "",
        waypoint_type=waypoint_type,
        id=waypoint_id,
    )
