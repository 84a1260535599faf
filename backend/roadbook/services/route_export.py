from datetime import timezone
from xml.sax.saxutils import escape

from shapely.geometry import LineString, mapping

from roadbook.models.drive import Route

GPX_CREATOR = "Roadbook"

_XML_ENTITIES = {'"': "&quot;", "'": "&apos;"}


def xml_escape(text: str) -> str:
    """Escape & < > " ' for use in element text or attribute values."""
    return escape(text, _XML_ENTITIES)


def to_gpx_document(route: Route) -> str:
    """
    GPX 1.1 document for a route.

    One track with one segment holding the path points (no elevation or time
    per point), followed by one <wpt> per waypoint.
    """
    with route.lock:
        name = route.name
        description = route.description
        created_at = route.created_at
        geometry = route.geometry

    lines = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        f'<gpx version="1.1" creator="{GPX_CREATOR}" xmlns="http://www.topografix.com/GPX/1/1">',
        "<metadata>",
        f"<name>{xml_escape(name)}</name>",
        f"<desc>{xml_escape(description)}</desc>",
        f"<time>{created_at.astimezone(timezone.utc).strftime('%Y-%m-%dT%H:%M:%SZ')}</time>",
        "</metadata>",
        "<trk>",
        f"<name>{xml_escape(name)}</name>",
        f"<desc>{xml_escape(description)}</desc>",
        "<trkseg>",
    ]
    for point in geometry.points:
        lines.append(f'<trkpt lat="{point.lat}" lon="{point.lon}"></trkpt>')
    lines += ["</trkseg>", "</trk>"]

    for wp in geometry.waypoints:
        lines += [
            f'<wpt lat="{wp.coordinate.lat}" lon="{wp.coordinate.lon}">',
            f"<name>{xml_escape(wp.name)}</name>",
            f"<desc>{xml_escape(wp.description)}</desc>",
            f"<type>{xml_escape(wp.waypoint_type.value)}</type>",
            "</wpt>",
        ]

    lines.append("</gpx>")
    return "\n".join(lines) + "\n"


def to_geojson_feature(route: Route) -> dict:
    """GeoJSON Feature for the route path. Geometry is None below 2 points."""
    with route.lock:
        geometry = route.geometry
        properties = {
            "id": str(route.id),
            "name": route.name,
            "category": route.category.value,
            "difficulty": route.difficulty.value,
            "distance_km": round(geometry.distance_km, 2),
            "estimated_duration": round(geometry.estimated_duration, 1),
        }

    geojson_geometry = None
    if len(geometry.points) > 1:
        # GeoJSON order is [lng, lat]
        line = LineString([(p.lon, p.lat) for p in geometry.points])
        geojson_geometry = mapping(line)

    return {"type": "Feature", "geometry": geojson_geometry, "properties": properties}
