import threading

import pytest

from roadbook.models.drive import GeoPoint, Landmark, RouteCategory
from roadbook.services.photo_storage import PhotoStorage, StorageError
from roadbook.services.route_library import RouteLibrary


def test_photo_storage_save_and_remove(photo_storage):
    path = photo_storage.save("a.jpg", b"jpeg")
    assert path.read_bytes() == b"jpeg"
    assert photo_storage.exists("a.jpg")
    assert photo_storage.remove("a.jpg")
    assert not photo_storage.remove("a.jpg")


@pytest.mark.parametrize("name", ["", "../escape.jpg", "nested/a.jpg"])
def test_photo_storage_rejects_paths(photo_storage, name):
    with pytest.raises(StorageError):
        photo_storage.save(name, b"x")


def test_photo_storage_write_failure(tmp_path):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("file in the way")
    with pytest.raises(StorageError):
        PhotoStorage(blocker).save("a.jpg", b"x")


def test_create_and_lookup(library):
    route = library.create("Pass", category=RouteCategory.MOUNTAIN)
    assert route in library
    assert library.get(route.id) is route
    assert route.category == RouteCategory.MOUNTAIN
    assert len(library) == 1


def test_routes_newest_first(library):
    older = library.create("Older")
    newer = library.create("Newer")
    older.mark_completed()
    assert library.routes() == [older, newer]


def test_find_by_remote_id(library):
    route = library.create("Synced")
    route.sync.remote_id = "rec-9"
    assert library.find_by_remote_id("rec-9") is route
    assert library.find_by_remote_id("rec-0") is None


def test_attach_photo(library, photo_storage):
    route = library.create("Photogenic")
    first = library.attach_photo(route, b"one", caption="Sunrise", location=GeoPoint(1.0, 2.0))
    second = library.attach_photo(route, b"two", is_key_photo=True)

    assert route.photos == [first, second]
    assert (first.order_index, second.order_index) == (0, 1)
    assert first.route is route
    assert photo_storage.exists(first.file_name)
    assert route.sync.dirty


def test_attach_photo_failure_leaves_route_unchanged(tmp_path):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("file in the way")
    library = RouteLibrary(storage=PhotoStorage(blocker))
    route = library.create("Unlucky")
    version = route.sync.version

    with pytest.raises(StorageError):
        library.attach_photo(route, b"data")

    assert route.photos == []
    assert route.sync.version == version


def test_attach_photo_without_storage():
    library = RouteLibrary()
    route = library.create("No disk")
    with pytest.raises(StorageError):
        library.attach_photo(route, b"data")
    assert route.photos == []


def test_delete_cascades(library, photo_storage):
    route = library.create("Doomed")
    photo = library.attach_photo(route, b"bytes")
    route.add_landmark(Landmark(name="Gate", location=GeoPoint(1.0, 1.0)))

    assert library.delete(route.id) is route

    assert library.get(route.id) is None
    assert route.photos == []
    assert route.landmarks == []
    assert not photo_storage.exists(photo.file_name)


def test_delete_unknown_route(library):
    route = library.create("Kept")
    library.delete(route.id)
    assert library.delete(route.id) is None


def test_delete_tolerates_missing_files(library, photo_storage):
    route = library.create("Half gone")
    photo = library.attach_photo(route, b"bytes")
    photo_storage.remove(photo.file_name)
    assert library.delete(route.id) is route


def test_concurrent_adds_are_all_visible(library):
    def add_many():
        for i in range(50):
            library.create(f"route {i}")

    threads = [threading.Thread(target=add_many) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(library) == 200
    assert all(library.get(route.id) is route for route in library.routes())
