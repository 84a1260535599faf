import re
from datetime import datetime, timezone
from xml.etree import ElementTree

from roadbook.models.drive import GeoPoint, Route, Waypoint, WaypointType
from roadbook.services.route_export import to_geojson_feature, to_gpx_document, xml_escape

GPX_NS = {"gpx": "http://www.topografix.com/GPX/1/1"}


def _text_content(document: str) -> list[str]:
    return re.findall(r">([^<]*)<", document)


def test_xml_escape():
    assert xml_escape("A & B <test>") == "A &amp; B &lt;test&gt;"
    assert xml_escape("\"quoted\" 'single'") == "&quot;quoted&quot; &apos;single&apos;"


def test_gpx_escapes_route_name():
    route = Route(name="A & B <test>", description="Tom's \"best\" road")
    route.update_route([(37.0, -122.0), (37.1, -122.1)], [])

    document = to_gpx_document(route)

    assert "A &amp; B &lt;test&gt;" in document
    assert "Tom&apos;s &quot;best&quot; road" in document
    for text in _text_content(document):
        assert ">" not in text
        assert re.search(r"&(?!amp;|lt;|gt;|quot;|apos;)", text) is None


def test_gpx_structure():
    route = Route(name="Skyline")
    route.created_at = datetime(2024, 3, 9, 8, 30, tzinfo=timezone.utc)
    route.update_route(
        [(37.0, -122.0), (37.1, -122.1), (37.2, -122.15)],
        [Waypoint(GeoPoint(37.05, -122.05), name="Fuel & Food", waypoint_type=WaypointType.GAS)],
    )

    root = ElementTree.fromstring(to_gpx_document(route))

    assert root.get("version") == "1.1"
    assert root.find("gpx:metadata/gpx:time", GPX_NS).text == "2024-03-09T08:30:00Z"
    trkpts = root.findall("gpx:trk/gpx:trkseg/gpx:trkpt", GPX_NS)
    assert [(float(p.get("lat")), float(p.get("lon"))) for p in trkpts] == [
        (37.0, -122.0),
        (37.1, -122.1),
        (37.2, -122.15),
    ]
    (wpt,) = root.findall("gpx:wpt", GPX_NS)
    assert wpt.find("gpx:name", GPX_NS).text == "Fuel & Food"
    assert wpt.find("gpx:type", GPX_NS).text == "Gas Station"


def test_gpx_for_route_without_points():
    route = Route(name="Empty")
    root = ElementTree.fromstring(to_gpx_document(route))
    segment = root.find("gpx:trk/gpx:trkseg", GPX_NS)
    assert segment is not None
    assert list(segment) == []


def test_geojson_feature(sample_route):
    feature = to_geojson_feature(sample_route)
    assert feature["type"] == "Feature"
    assert feature["geometry"]["type"] == "LineString"
    assert [list(c) for c in feature["geometry"]["coordinates"]] == [[-122.0, 37.0], [-122.1, 37.1]]
    assert feature["properties"]["name"] == "Skyline Loop"
    assert feature["properties"]["distance_km"] == round(sample_route.distance_km, 2)


def test_geojson_without_path_has_no_geometry():
    feature = to_geojson_feature(Route(name="Stub"))
    assert feature["geometry"] is None
    assert feature["properties"]["distance_km"] == 0.0
