"""
Storage adapter tests

The JSON store runs against a temp file; the Mongo store runs against mocked
pymongo collections and checks the queries it issues.
"""
import json
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from pymongo import DESCENDING
from pymongo.errors import BulkWriteError

from carecompass.database import JsonFileStore, TTLCache, create_store
from carecompass.database.mongo import MongoStore


@pytest.fixture
def json_store(tmp_path):
    return JsonFileStore(str(tmp_path / "data" / "db.json"))


def user(role="caregiver", email="a@example.com", name="A"):
    return {"id": "1", "name": name, "email": email, "password": "x", "role": role, "createdAt": 1}


# JSON file store

def test_missing_file_reads_as_empty(json_store):
    assert json_store.list_patients() == []
    assert json_store.list_share_links() == {}
    assert json_store.counts() == {
        "doctors": 0, "caregivers": 0, "patients": 0, "logs": 0,
        "clinicianNotes": 0, "shareLinks": 0, "sessions": 0,
    }


def test_corrupt_file_reads_as_empty(tmp_path):
    path = tmp_path / "db.json"
    path.write_text("{not json")
    store = JsonFileStore(str(path))
    assert store.list_logs() == []
    store.insert_patient({"id": "alex"})
    assert json.loads(path.read_text())["patients"] == [{"id": "alex"}]


def test_users_are_separated_by_role(json_store):
    json_store.insert_user(user(role="doctor"))
    assert json_store.find_user("doctor", "a@example.com")["role"] == "doctor"
    assert json_store.find_user("caregiver", "a@example.com") is None


def test_upsert_user_replaces_by_email(json_store):
    json_store.upsert_user(user(name="Old"))
    json_store.upsert_user(user(name="New"))
    users = json_store.list_users("caregiver")
    assert len(users) == 1
    assert users[0]["name"] == "New"


def test_upsert_patient(json_store):
    json_store.upsert_patient({"id": "alex", "name": "Alex"})
    json_store.upsert_patient({"id": "alex", "name": "Alex Doe"})
    json_store.upsert_patient({"id": "sarah"})
    assert json_store.list_patients() == [{"id": "alex", "name": "Alex Doe"}, {"id": "sarah"}]


def test_logs_newest_first_and_filtered(json_store):
    json_store.insert_logs([
        {"patientId": "alex", "createdAt": 1},
        {"patientId": "sarah", "createdAt": 5},
        {"patientId": "alex", "createdAt": 3},
    ])
    assert [l["createdAt"] for l in json_store.list_logs("alex")] == [3, 1]
    assert [l["createdAt"] for l in json_store.list_logs()] == [5, 3, 1]
    assert json_store.log_patient_ids() == ["alex", "sarah"]


def test_delete_patient_cascades(json_store):
    json_store.insert_patient({"id": "alex"})
    json_store.append_log({"patientId": "alex", "createdAt": 1})
    json_store.append_note({"patientId": "alex", "note": "n", "createdAt": 1})
    json_store.put_share_link("alex", {"code": "ABCDEF", "url": "u", "expiresAt": 10})
    json_store.append_log({"patientId": "sarah", "createdAt": 2})

    json_store.delete_patient("alex")

    assert json_store.get_patient("alex") is None
    assert json_store.list_logs("alex") == []
    assert json_store.list_notes("alex") == []
    assert json_store.get_share_link("alex") is None
    assert len(json_store.list_logs("sarah")) == 1


def test_sessions(json_store):
    json_store.put_session("live", {"user": {}, "expiresAt": 2_000})
    json_store.put_session("dead", {"user": {}, "expiresAt": 500})
    assert json_store.purge_expired_sessions(1_000) == 1
    assert set(json_store.list_sessions()) == {"live"}
    json_store.delete_session("live")
    assert json_store.get_session("live") is None


def test_create_store_rejects_unknown_backend():
    with pytest.raises(ValueError):
        create_store("sqlite")


def test_ttl_cache_expiry(monkeypatch):
    cache = TTLCache(ttl_seconds=10)
    clock = [100.0]
    monkeypatch.setattr("carecompass.database.cache.time.time", lambda: clock[0])
    cache.set("k", "v")
    assert cache.get("k") == "v"
    clock[0] = 111.0
    assert cache.get("k") is None
    cache.set("k", "v")
    cache.invalidate("k")
    assert cache.get("k") is None


def test_ttl_cache_entry_never_outlives_expiry(monkeypatch):
    cache = TTLCache(ttl_seconds=30)
    clock = [100.0]
    monkeypatch.setattr("carecompass.database.cache.time.time", lambda: clock[0])
    cache.set("session", "v", expires_at=105.0)
    clock[0] = 104.0
    assert cache.get("session") == "v"
    clock[0] = 105.0
    assert cache.get("session") is None


def test_ttl_cache_evicts_when_full(monkeypatch):
    cache = TTLCache(ttl_seconds=30, max_entries=2)
    clock = [100.0]
    monkeypatch.setattr("carecompass.database.cache.time.time", lambda: clock[0])
    cache.set("a", 1, expires_at=110.0)
    cache.set("b", 2)
    cache.set("c", 3)
    assert len(cache) == 2
    assert cache.get("a") is None
    assert cache.get("b") == 2 and cache.get("c") == 3


# Mongo store

class FakeDatabase(dict):
    """Hands out one MagicMock collection per name"""
    def __missing__(self, name):
        collection = MagicMock(name=name)
        collection.name = name
        self[name] = collection
        return collection


@pytest.fixture
def mongo():
    client = MagicMock()
    db = FakeDatabase()
    client.__getitem__.return_value = db
    return MongoStore(db_name="carecompass-test", client=client), db


def test_mongo_ttl_indexes(mongo):
    store, db = mongo
    store.ensure_indexes()
    db["sessions"].create_index.assert_any_call([("expireAt", 1)], expireAfterSeconds=0)
    db["share_links"].create_index.assert_any_call([("expireAt", 1)], expireAfterSeconds=0)
    db["patients"].create_index.assert_any_call([("id", 1)], unique=True)


def test_mongo_insert_does_not_mutate_input(mongo):
    store, db = mongo
    record = user()
    store.insert_user(record)
    inserted = db["caregivers"].insert_one.call_args[0][0]
    assert inserted == record
    assert inserted is not record


def test_mongo_session_round_trip(mongo):
    store, db = mongo
    store.put_session("tok", {"user": {"id": "1"}, "expiresAt": 1_700_000_000_000})
    filter_, doc = db["sessions"].replace_one.call_args[0]
    assert filter_ == {"token": "tok"}
    assert doc["expireAt"] == datetime.fromtimestamp(1_700_000_000, tz=timezone.utc)
    assert db["sessions"].replace_one.call_args[1] == {"upsert": True}

    db["sessions"].find_one.return_value = {"token": "tok", "user": {"id": "1"}, "expiresAt": 5}
    assert store.get_session("tok") == {"user": {"id": "1"}, "expiresAt": 5}
    assert db["sessions"].find_one.call_args[0][1] == {"_id": 0, "expireAt": 0}


def test_mongo_share_link_lookup(mongo):
    store, db = mongo
    db["share_links"].find_one.return_value = None
    assert store.get_share_link("alex") is None
    db["share_links"].find_one.return_value = {"patientId": "alex", "code": "ABCDEF", "url": "u", "expiresAt": 9}
    assert store.get_share_link("alex") == {"code": "ABCDEF", "url": "u", "expiresAt": 9}


def test_mongo_list_logs_sorted_newest_first(mongo):
    store, db = mongo
    cursor = MagicMock()
    cursor.sort.return_value = [{"patientId": "alex", "createdAt": 2}]
    db["logs"].find.return_value = cursor
    assert store.list_logs("alex") == [{"patientId": "alex", "createdAt": 2}]
    db["logs"].find.assert_called_once_with({"patientId": "alex"}, {"_id": 0, "expireAt": 0})
    cursor.sort.assert_called_once_with("createdAt", DESCENDING)


def test_mongo_delete_patient_cascades(mongo):
    store, db = mongo
    store.delete_patient("alex")
    db["patients"].delete_one.assert_called_once_with({"id": "alex"})
    db["logs"].delete_many.assert_called_once_with({"patientId": "alex"})
    db["clinician_notes"].delete_many.assert_called_once_with({"patientId": "alex"})
    db["share_links"].delete_one.assert_called_once_with({"patientId": "alex"})


def test_mongo_bulk_insert_reports_partial_success(mongo):
    store, db = mongo
    db["logs"].insert_many.side_effect = BulkWriteError({"writeErrors": [{"index": 1}], "nInserted": 2})
    assert store.insert_logs([{"createdAt": 1}, {"createdAt": 2}, {"createdAt": 3}]) == 2
    assert store.insert_logs([]) == 0
