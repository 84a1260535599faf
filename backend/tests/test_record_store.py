from datetime import timedelta

import pytest

from roadbook.models.drive import GeoPoint, Landmark, LandmarkType, Photo, Route
from roadbook.schemas.record import RecordType
from roadbook.services.coordinate_codec import decode_points
from roadbook.services.record_mapping import landmark_to_record, photo_to_record, route_to_record
from roadbook.services.record_store import MissingParentError, RecordStoreError


@pytest.mark.asyncio
async def test_save_and_fetch_route(store, sample_route):
    record = route_to_record(sample_route)
    assert await store.save(record) == str(sample_route.id)

    fetched = await store.fetch(RecordType.ROUTE, record.record_id)
    assert fetched.name == "Skyline Loop"
    assert fetched.last_modified == sample_route.last_modified
    assert decode_points(fetched.route_points) == sample_route.points
    assert fetched.distance_km == pytest.approx(sample_route.distance_km)


@pytest.mark.asyncio
async def test_save_overwrites_existing(store, sample_route):
    await store.save(route_to_record(sample_route))
    sample_route.update_details(name="Renamed", personal_rating=3)
    await store.save(route_to_record(sample_route))

    fetched = await store.fetch(RecordType.ROUTE, str(sample_route.id))
    assert fetched.name == "Renamed"
    assert fetched.personal_rating == 3
    assert len(await store.query_routes()) == 1


@pytest.mark.asyncio
async def test_fetch_missing(store):
    assert await store.fetch(RecordType.ROUTE, "nope") is None
    assert await store.fetch(RecordType.PHOTO, "nope") is None


@pytest.mark.asyncio
async def test_child_without_parent_is_rejected(store):
    photo = Photo(file_name="orphan.jpg")
    with pytest.raises(MissingParentError):
        await store.save(photo_to_record(photo, "no-such-route"))


@pytest.mark.asyncio
async def test_children_round_trip(store, sample_route):
    photo = Photo(file_name="p.jpg", caption="Fog", location=GeoPoint(37.05, -122.05), is_key_photo=True)
    landmark = Landmark(
        name="Lookout", location=GeoPoint(37.06, -122.06), landmark_type=LandmarkType.VIEWPOINT
    )
    sample_route.add_photo(photo)
    sample_route.add_landmark(landmark)
    route_id = await store.save(route_to_record(sample_route))

    photo_id = await store.save(photo_to_record(photo, route_id))
    landmark_id = await store.save(landmark_to_record(landmark, route_id))

    stored_photo = await store.fetch(RecordType.PHOTO, photo_id)
    assert stored_photo.route_record_id == route_id
    assert stored_photo.location.lat == 37.05
    assert stored_photo.is_key_photo
    stored_landmark = await store.fetch(RecordType.LANDMARK, landmark_id)
    assert stored_landmark.landmark_type == LandmarkType.VIEWPOINT


@pytest.mark.asyncio
async def test_delete_route_cascades_to_children(store, sample_route):
    photo = Photo(file_name="p.jpg")
    landmark = Landmark(name="Gate", location=GeoPoint(1.0, 1.0))
    route_id = await store.save(route_to_record(sample_route))
    photo_id = await store.save(photo_to_record(photo, route_id))
    landmark_id = await store.save(landmark_to_record(landmark, route_id))

    assert await store.delete(RecordType.ROUTE, route_id)

    assert await store.fetch(RecordType.ROUTE, route_id) is None
    assert await store.fetch(RecordType.PHOTO, photo_id) is None
    assert await store.fetch(RecordType.LANDMARK, landmark_id) is None
    assert not await store.delete(RecordType.ROUTE, route_id)


@pytest.mark.asyncio
async def test_query_routes_filters_and_orders(store, sample_route):
    older = Route(name="Older")
    older.last_modified = sample_route.last_modified - timedelta(hours=1)
    older.is_shared = True
    older.share_id = "share-older"
    await store.save(route_to_record(older))
    await store.save(route_to_record(sample_route))

    assert [r.name for r in await store.query_routes()] == ["Skyline Loop", "Older"]
    assert [r.name for r in await store.query_routes(shared=True)] == ["Older"]
    assert [r.name for r in await store.query_routes(shared=False)] == ["Skyline Loop"]
    assert [r.name for r in await store.query_routes(share_id="share-older")] == ["Older"]


@pytest.mark.asyncio
async def test_failed_commit_is_wrapped_and_rolled_back(store, sample_route):
    first = Route(name="First")
    first.mark_shared("dup", "https://motormates.app/routes/dup")
    second = Route(name="Second")
    second.mark_shared("dup", "https://motormates.app/routes/dup")
    await store.save(route_to_record(first))

    with pytest.raises(RecordStoreError):
        await store.save(route_to_record(second))

    assert await store.save(route_to_record(sample_route)) == str(sample_route.id)
    assert await store.fetch(RecordType.ROUTE, str(second.id)) is None
    assert (await store.fetch(RecordType.ROUTE, str(first.id))).share_id == "dup"
