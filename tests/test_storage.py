"""Tests for gympulse/storage.py"""

from gympulse.storage import (
    CHECK_INS_KEY,
    USER_ID_KEY,
    JsonFileStorage,
    MemoryStorage,
    get_or_create_user_id,
    load_check_ins,
    save_check_ins,
)

from conftest import NOW, make_check_in


class TestLoadCheckIns:
    def test_drops_entries_older_than_24_hours(self):
        storage = MemoryStorage({CHECK_INS_KEY: [
            make_check_in("gym-a", 23 * 60).to_dict(),
            make_check_in("gym-a", 25 * 60).to_dict(),
            make_check_in("gym-b", 1).to_dict(),
        ]})
        check_ins = load_check_ins(storage, now=NOW)
        assert [c.location_id for c in check_ins] == ["gym-a", "gym-b"]

    def test_missing_key_is_empty(self):
        assert load_check_ins(MemoryStorage(), now=NOW) == []

    def test_skips_malformed_entries(self):
        storage = MemoryStorage({CHECK_INS_KEY: [
            {"locationId": "gym-a"},
            make_check_in("gym-b", 1, distance=12).to_dict(),
        ]})
        check_ins = load_check_ins(storage, now=NOW)
        assert len(check_ins) == 1
        assert check_ins[0].distance_meters == 12


class TestUserId:
    def test_generated_once(self):
        storage = MemoryStorage()
        first = get_or_create_user_id(storage)
        assert first.startswith("user_")
        assert get_or_create_user_id(storage) == first
        assert storage.load(USER_ID_KEY) == first


class TestJsonFileStorage:
    def test_round_trip_on_disk(self, tmp_path):
        path = tmp_path / "storage.json"
        storage = JsonFileStorage(str(path))
        check_ins = [make_check_in("gym-a", 3, distance=40), make_check_in("gym-b", 1)]

        save_check_ins(storage, check_ins)
        storage.save(USER_ID_KEY, "user_abc")

        reopened = JsonFileStorage(str(path))
        assert reopened.load(USER_ID_KEY) == "user_abc"
        assert load_check_ins(reopened, now=NOW) == check_ins

    def test_missing_file(self, tmp_path):
        assert JsonFileStorage(str(tmp_path / "nope.json")).load(CHECK_INS_KEY) is None

    def test_corrupt_file_is_ignored(self, tmp_path):
        path = tmp_path / "storage.json"
        path.write_text("{not json")
        storage = JsonFileStorage(str(path))
        assert storage.load(USER_ID_KEY) is None
        storage.save(USER_ID_KEY, "user_new")
        assert storage.load(USER_ID_KEY) == "user_new"
