"""
Client data layer tests - local-only mode, background pushes and server sync
"""
import json
from unittest.mock import MagicMock

import pytest
import requests

from carecompass.client import ApiClient, ApiError, CareData, LocalStore
from carecompass.core.errors import Conflict
from carecompass.services import utils


@pytest.fixture
def local(tmp_path):
    return LocalStore(str(tmp_path / "carecompass-data-v1.json"))


@pytest.fixture
def api():
    fake = MagicMock(spec=ApiClient)
    fake.ping.return_value = False
    return fake


@pytest.fixture
def care(local, api):
    return CareData(local=local, api=api)


# LocalStore

def test_local_store_seeds_demo_patients(local):
    data = local.load()
    assert [p["id"] for p in data["patients"]] == ["alex", "sarah", "mike", "emily"]
    assert data["selectedPatient"] == "alex"
    assert data["logs"] == [] and data["clinicianNotes"] == [] and data["shareLinks"] == {}


def test_local_store_restores_empty_patient_list(local):
    local.save({"patients": [], "logs": [{"patientId": "alex", "createdAt": 1}]})
    data = local.load()
    assert len(data["patients"]) == 4
    assert data["logs"] == [{"patientId": "alex", "createdAt": 1}]
    assert data["shareLinks"] == {}


def test_local_store_ignores_corrupt_file(local):
    local.path.parent.mkdir(parents=True, exist_ok=True)
    local.path.write_text("][")
    assert local.load()["selectedPatient"] == "alex"


def test_local_store_token(local):
    assert local.get_token() is None
    local.set_token("abc")
    assert local.get_token() == "abc"
    local.clear_token()
    assert local.get_token() is None


# Local-only mode

def test_add_patient_offline(care, api):
    care.add_patient({"id": "zoe", "name": "Zoe"})
    assert care.get_patient("zoe")["name"] == "Zoe"
    api.create_patient.assert_not_called()


def test_add_duplicate_patient(care):
    with pytest.raises(Conflict):
        care.add_patient({"id": "alex"})


def test_remove_selected_patient_reselects_first(care):
    care.select_patient("alex")
    care.add_log("alex", {"mood": "calm"})
    care.add_clinician_note("alex", "note")
    care.remove_patient("alex")
    assert care.get_selected_patient() == "sarah"
    assert care.get_logs("alex") == []
    assert care.get_clinician_notes("alex") == []


def test_logs_newest_first(care, local):
    store = local.load()
    store["logs"] = [
        {"patientId": "alex", "createdAt": 1, "note": "old"},
        {"patientId": "alex", "createdAt": 3, "note": "new"},
        {"patientId": "sarah", "createdAt": 2, "note": "other"},
    ]
    local.save(store)
    assert [l["note"] for l in care.get_logs("alex")] == ["new", "old"]


def test_local_share_link_fallback(care):
    link = care.upsert_share_link("alex")
    assert link["url"] == f"carecompass.app/share/{link['code']}"
    assert len(link["code"]) == 6
    assert care.get_share_link("alex") == link


def test_expired_local_share_link_is_dropped(care, local):
    store = local.load()
    store["shareLinks"]["alex"] = {"code": "ABCDEF", "url": "u", "expiresAt": utils.now_ms() - 1}
    local.save(store)
    assert care.get_share_link("alex") is None
    assert "alex" not in local.load()["shareLinks"]


def test_weekly_aggregates_over_local_logs(care):
    care.add_log("alex", {"sleepStart": "22:00", "sleepEnd": "06:00", "hydration": "drank"})
    assert care.aggregate_weekly("alex")["sleeps"][-1] == 8.0
    assert care.aggregate_hydration_weekly("alex")["water"][-1] == 1
    assert care.aggregate_food_weekly("alex")["food"] == [0] * 7
    assert care.aggregate_meds_weekly("alex")["meds"] == [0] * 7
    assert care.compute_status("alex") == "stable"


# Server-synced mode

def test_writes_are_pushed_when_online(care, api):
    api.ping.return_value = True
    care.add_patient({"id": "zoe"})
    log = care.add_log("zoe", {"mood": "calm"})
    care.add_clinician_note("zoe", "seen today")

    api.create_patient.assert_called_once_with({"id": "zoe"})
    api.add_log.assert_called_once_with("zoe", {"createdAt": log["createdAt"], "mood": "calm"})
    api.add_note.assert_called_once_with("zoe", "seen today")


def test_log_patient_comes_from_argument(care, api):
    api.ping.return_value = True
    log = care.add_log("alex", {"patientId": "sarah", "createdAt": 42, "mood": "calm"})
    assert log == {"patientId": "alex", "createdAt": 42, "mood": "calm"}
    assert care.get_logs("sarah") == []
    api.add_log.assert_called_once_with("alex", {"createdAt": 42, "mood": "calm"})


def test_push_failures_do_not_raise(care, api):
    api.ping.return_value = True
    api.add_log.side_effect = requests.ConnectionError("down")
    log = care.add_log("alex", {"mood": "calm"})
    assert care.get_logs("alex") == [log]


def test_server_share_link_preferred(care, api):
    api.ping.return_value = True
    api.create_share_link.return_value = {"code": "SRV234", "url": "http://server/share/SRV234", "expiresAt": utils.now_ms() + 1000}
    assert care.upsert_share_link("alex")["code"] == "SRV234"


def test_sync_requires_token(care, api):
    api.ping.return_value = True
    assert care.sync_from_server() is False
    api.list_patients.assert_not_called()


def test_sync_offline(care):
    assert care.sync_from_server() is False


def test_sync_replaces_local_data(care, api, local):
    local.set_token("tok")
    care.add_log("alex", {"note": "local only"})
    api.ping.return_value = True
    api.list_patients.return_value = [
        {"_id": "abc", "id": "alex", "name": "Alex (server)"},
        {"id": "zed"},
    ]
    api.list_logs.side_effect = lambda pid: [{"_id": "l1", "patientId": pid, "createdAt": 5}] if pid == "alex" else []
    api.list_notes.return_value = []
    api.get_share_link.side_effect = ApiError("not found", status_code=404)

    assert care.sync_from_server() is True

    patients = {p["id"]: p for p in care.get_patients()}
    assert set(patients) == {"alex", "zed"}
    assert patients["alex"]["name"] == "Alex (server)"
    assert patients["alex"]["diagnosis"] == "ASD Level 2"
    assert "_id" not in patients["alex"]
    assert patients["zed"]["name"] == "Patient zed"
    assert patients["zed"]["diagnosis"] == "Not specified"
    assert patients["zed"]["status"] == "stable"
    assert care.get_logs("alex") == [{"patientId": "alex", "createdAt": 5}]


def test_sync_keeps_local_data_when_server_empty(care, api, local):
    local.set_token("tok")
    api.ping.return_value = True
    api.list_patients.return_value = []
    assert care.sync_from_server() is True
    assert len(care.get_patients()) == 4


# ApiClient

def fake_response(status, body):
    response = MagicMock()
    response.status_code = status
    response.ok = 200 <= status < 300
    response.reason = "reason"
    response.json.return_value = body
    return response


def test_api_client_sends_bearer_token():
    session = MagicMock()
    session.request.return_value = fake_response(200, [{"id": "alex"}])
    client = ApiClient("http://server/", token_getter=lambda: "tok", session=session)

    assert client.list_patients() == [{"id": "alex"}]
    method, url = session.request.call_args[0]
    assert (method, url) == ("GET", "http://server/api/patients")
    assert session.request.call_args[1]["headers"]["Authorization"] == "Bearer tok"


def test_api_client_unauthorized_clears_token():
    session = MagicMock()
    session.request.return_value = fake_response(401, {"error": "Invalid or expired session"})
    cleared = []
    client = ApiClient(session=session, on_unauthorized=lambda: cleared.append(True))

    with pytest.raises(ApiError) as excinfo:
        client.add_log("alex", {"mood": "calm"})
    assert excinfo.value.status_code == 401
    assert "Invalid or expired session" in str(excinfo.value)
    assert cleared == [True]


def test_api_client_quotes_patient_ids():
    session = MagicMock()
    session.request.return_value = fake_response(200, [])
    ApiClient("http://server", session=session).list_logs("a/b c")
    assert session.request.call_args[0][1] == "http://server/api/logs/a%2Fb%20c"


def test_api_client_ping_never_raises():
    session = MagicMock()
    session.get.side_effect = requests.ConnectionError("refused")
    assert ApiClient(session=session).ping() is False


def test_care_data_login_stores_token(local):
    api = MagicMock(spec=ApiClient)
    api.login.return_value = {"token": "tok", "user": {"id": "1"}}
    CareData(local=local, api=api).login("a@example.com", "secret1", "caregiver")
    assert json.loads(local.path.read_text())["authToken"] == "tok"
