"""
Local-first care data with best-effort server sync

Every write lands in the LocalStore first, so the client keeps working
offline. When the API answers a ping the same write is pushed to the
server; push failures are logged and otherwise ignored.
"""
import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

import requests

from carecompass.client.api_client import ApiClient, ApiError
from carecompass.client.local_store import LocalStore, default_data
from carecompass.core.errors import Conflict
from carecompass.core.security import generate_share_code
from carecompass.services import aggregation, utils

logger = logging.getLogger(__name__)

LOCAL_SHARE_TTL_MS = 24 * 60 * 60 * 1000
LOCAL_SHARE_HOST = "carecompass.app"


def _strip_id(record: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in record.items() if k != "_id"}


def _newest_first(records: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return sorted(records, key=lambda r: r.get("createdAt") or 0, reverse=True)


class CareData:
    def __init__(self, local: Optional[LocalStore] = None, api: Optional[ApiClient] = None):
        self.local = local or LocalStore()
        self.api = api or ApiClient(token_getter=self.local.get_token, on_unauthorized=self.local.clear_token)
        self.api_available = False

    # Server reachability and sync

    def check_api(self) -> bool:
        self.api_available = self.api.ping()
        return self.api_available

    def _push(self, action: str, call: Callable[[], Any]):
        if not self.check_api():
            return
        try:
            call()
        except (requests.RequestException, ApiError) as e:
            logger.error(f"Error syncing {action}: {e}")

    def login(self, email: str, password: str, role: str) -> Dict[str, Any]:
        """
        Log in against the server and keep the token for later syncs
        """
        result = self.api.login(email, password, role)
        self.local.set_token(result["token"])
        return result["user"]

    def logout(self):
        if self.local.get_token() and self.check_api():
            try:
                self.api.logout()
            except (requests.RequestException, ApiError) as e:
                logger.warning(f"Server logout failed: {e}")
        self.local.clear_token()

    def sync_from_server(self) -> bool:
        """
        Replace local patients, logs and notes with the server's copy

        Needs a reachable server and a stored token. When the server has no
        patients the local data is left alone. Returns True on success.
        """
        if not self.check_api():
            return False
        if not self.local.get_token():
            return False

        try:
            patients = self.api.list_patients()
        except (requests.RequestException, ApiError) as e:
            logger.error(f"Sync error: {e}")
            return False

        store = self.local.load()
        if patients:
            defaults = {p["id"]: p for p in default_data()["patients"]}
            merged = []
            for server_patient in map(_strip_id, patients):
                base = defaults.get(server_patient.get("id"))
                if base:
                    merged.append({**base, **server_patient})
                else:
                    merged.append({
                        "id": server_patient.get("id"),
                        "name": server_patient.get("name") or f"Patient {server_patient.get('id')}",
                        "diagnosis": server_patient.get("diagnosis") or "Not specified",
                        "status": server_patient.get("status") or "stable",
                        "sleepHours": server_patient.get("sleepHours") or [],
                        **server_patient,
                    })
            store["patients"] = merged
            store["logs"] = []
            store["clinicianNotes"] = []
            store["shareLinks"] = store.get("shareLinks") or {}

            for patient in merged:
                patient_id = patient["id"]
                try:
                    store["logs"].extend(_strip_id(l) for l in self.api.list_logs(patient_id))
                except (requests.RequestException, ApiError) as e:
                    logger.error(f"Error fetching logs for {patient_id}: {e}")
                try:
                    store["clinicianNotes"].extend(_strip_id(n) for n in self.api.list_notes(patient_id))
                except (requests.RequestException, ApiError) as e:
                    logger.error(f"Error fetching notes for {patient_id}: {e}")
                try:
                    store["shareLinks"][patient_id] = self.api.get_share_link(patient_id)
                except ApiError as e:
                    if e.status_code != 404:
                        logger.error(f"Error fetching share link for {patient_id}: {e}")
                except requests.RequestException as e:
                    logger.error(f"Error fetching share link for {patient_id}: {e}")

        self.local.save(store)
        return True

    # Patient selection

    def select_patient(self, patient_id: str):
        store = self.local.load()
        store["selectedPatient"] = patient_id
        self.local.save(store)

    def get_selected_patient(self) -> str:
        return self.local.load().get("selectedPatient") or default_data()["selectedPatient"]

    # Patients

    def get_patients(self) -> List[Dict[str, Any]]:
        return self.local.load()["patients"]

    def get_patient(self, patient_id: str) -> Optional[Dict[str, Any]]:
        return next((p for p in self.get_patients() if p.get("id") == patient_id), None)

    def add_patient(self, patient: Dict[str, Any]):
        store = self.local.load()
        if any(p.get("id") == patient.get("id") for p in store["patients"]):
            raise Conflict("Patient ID already exists")
        store["patients"].append(patient)
        self.local.save(store)
        self._push("patient", lambda: self.api.create_patient(patient))

    def remove_patient(self, patient_id: str):
        store = self.local.load()
        store["patients"] = [p for p in store["patients"] if p.get("id") != patient_id]
        store["logs"] = [l for l in store["logs"] if l.get("patientId") != patient_id]
        store["clinicianNotes"] = [n for n in store["clinicianNotes"] if n.get("patientId") != patient_id]
        store["shareLinks"].pop(patient_id, None)
        if store.get("selectedPatient") == patient_id:
            remaining = store["patients"]
            store["selectedPatient"] = remaining[0]["id"] if remaining else default_data()["selectedPatient"]
        self.local.save(store)
        self._push("patient deletion", lambda: self.api.delete_patient(patient_id))

    # Logs

    def add_log(self, patient_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        payload = {k: v for k, v in payload.items() if k != "patientId"}
        store = self.local.load()
        log = {"createdAt": utils.now_ms(), **payload, "patientId": patient_id}
        store["logs"].append(log)
        self.local.save(store)
        # Send the local timestamp so both copies land on the same day
        self._push("log", lambda: self.api.add_log(patient_id, {"createdAt": log["createdAt"], **payload}))
        return log

    def get_logs(self, patient_id: str) -> List[Dict[str, Any]]:
        logs = self.local.load()["logs"]
        return _newest_first([l for l in logs if l.get("patientId") == patient_id])

    # Clinician notes

    def add_clinician_note(self, patient_id: str, note: str) -> Dict[str, Any]:
        store = self.local.load()
        record = {"patientId": patient_id, "note": note, "createdAt": utils.now_ms()}
        store["clinicianNotes"].append(record)
        self.local.save(store)
        self._push("note", lambda: self.api.add_note(patient_id, note))
        return record

    def get_clinician_notes(self, patient_id: str) -> List[Dict[str, Any]]:
        notes = self.local.load()["clinicianNotes"]
        return _newest_first([n for n in notes if n.get("patientId") == patient_id])

    # Share links

    def upsert_share_link(self, patient_id: str) -> Dict[str, Any]:
        """
        New share link, server-issued when possible, else generated locally
        """
        link = None
        if self.check_api():
            try:
                link = self.api.create_share_link(patient_id)
            except (requests.RequestException, ApiError) as e:
                logger.warning(f"Falling back to a local share link: {e}")
        if link is None:
            code = generate_share_code(6)
            link = {
                "code": code,
                "url": f"{LOCAL_SHARE_HOST}/share/{code}",
                "expiresAt": utils.now_ms() + LOCAL_SHARE_TTL_MS,
            }
        store = self.local.load()
        store.setdefault("shareLinks", {})[patient_id] = link
        self.local.save(store)
        return link

    def get_share_link(self, patient_id: str) -> Optional[Dict[str, Any]]:
        store = self.local.load()
        link = store["shareLinks"].get(patient_id)
        if not link:
            return None
        if link.get("expiresAt", 0) < utils.now_ms():
            del store["shareLinks"][patient_id]
            self.local.save(store)
            return None
        return link

    # Chart data over the local logs

    def _now(self, now: Optional[datetime]) -> datetime:
        return now if now is not None else datetime.now().astimezone()

    def compute_status(self, patient_id: str) -> str:
        return aggregation.compute_status_from_logs(self.get_logs(patient_id))

    def aggregate_weekly(self, patient_id: str, now: Optional[datetime] = None) -> Dict[str, List]:
        return aggregation.aggregate_weekly(self.get_logs(patient_id), self._now(now))

    def aggregate_hydration_weekly(self, patient_id: str, now: Optional[datetime] = None) -> Dict[str, List]:
        return aggregation.aggregate_hydration_weekly(self.get_logs(patient_id), self._now(now))

    def aggregate_food_weekly(self, patient_id: str, now: Optional[datetime] = None) -> Dict[str, List]:
        return aggregation.aggregate_food_weekly(self.get_logs(patient_id), self._now(now))

    def aggregate_meds_weekly(self, patient_id: str, now: Optional[datetime] = None) -> Dict[str, List]:
        return aggregation.aggregate_meds_weekly(self.get_logs(patient_id), self._now(now))
