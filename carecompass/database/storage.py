"""
Simple JSON file storage

- One JSON document (db.json) holding every collection, so the demo runs
  without a database server
- Missing or corrupt file reads as the empty defaults
- Every mutation is a locked read-modify-write of the whole document
"""
import copy
import json
import logging
from pathlib import Path
from threading import RLock
from typing import Any, Dict, List, Optional

from carecompass.database.base import Store, user_collection

logger = logging.getLogger(__name__)

DEFAULT_DOCUMENT: Dict[str, Any] = {
    "doctors": [],
    "caregivers": [],
    "patients": [],
    "logs": [],
    "clinicianNotes": [],
    "shareLinks": {},
    "sessions": {},
}


def read_json(filepath: str) -> Dict[str, Any]:
    """
    Read the JSON document, filling in any missing collections
    """
    path = Path(filepath)
    path.parent.mkdir(parents=True, exist_ok=True)
    data = copy.deepcopy(DEFAULT_DOCUMENT)
    try:
        with open(path, 'r') as f:
            stored = json.load(f)
    except FileNotFoundError:
        return data
    except json.JSONDecodeError as e:
        logger.warning(f"Could not parse {path}: {e}. Starting from empty collections.")
        return data
    if isinstance(stored, dict):
        data.update(stored)
    return data


def write_json(filepath: str, data: Dict[str, Any]):
    """
    Write the JSON document
    """
    path = Path(filepath)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w') as f:
        json.dump(data, f, indent=2)


def _newest_first(records: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return sorted(records, key=lambda r: r.get("createdAt") or 0, reverse=True)


class JsonFileStore(Store):
    """
    Store backed by a single JSON file
    """

    def __init__(self, filepath: str):
        self.filepath = str(filepath)
        self._lock = RLock()

    def _load(self) -> Dict[str, Any]:
        return read_json(self.filepath)

    def _save(self, data: Dict[str, Any]):
        write_json(self.filepath, data)

    # Users

    def find_user(self, role: str, email: str) -> Optional[Dict[str, Any]]:
        for user in self._load()[user_collection(role)]:
            if user.get("email") == email:
                return user
        return None

    def insert_user(self, user: Dict[str, Any]):
        with self._lock:
            data = self._load()
            data[user_collection(user["role"])].append(user)
            self._save(data)

    def upsert_user(self, user: Dict[str, Any]):
        with self._lock:
            data = self._load()
            collection = user_collection(user["role"])
            users = [u for u in data[collection] if u.get("email") != user["email"]]
            users.append(user)
            data[collection] = users
            self._save(data)

    def list_users(self, role: str) -> List[Dict[str, Any]]:
        return self._load()[user_collection(role)]

    # Sessions

    def put_session(self, token: str, session: Dict[str, Any]):
        with self._lock:
            data = self._load()
            data["sessions"][token] = session
            self._save(data)

    def get_session(self, token: str) -> Optional[Dict[str, Any]]:
        return self._load()["sessions"].get(token)

    def delete_session(self, token: str):
        with self._lock:
            data = self._load()
            if data["sessions"].pop(token, None) is not None:
                self._save(data)

    def list_sessions(self) -> Dict[str, Dict[str, Any]]:
        return self._load()["sessions"]

    def purge_expired_sessions(self, now_ms: int) -> int:
        with self._lock:
            data = self._load()
            sessions = data["sessions"]
            expired = [t for t, s in sessions.items() if s.get("expiresAt", 0) < now_ms]
            for token in expired:
                del sessions[token]
            if expired:
                self._save(data)
            return len(expired)

    # Patients

    def list_patients(self) -> List[Dict[str, Any]]:
        return self._load()["patients"]

    def get_patient(self, patient_id: str) -> Optional[Dict[str, Any]]:
        for patient in self._load()["patients"]:
            if patient.get("id") == patient_id:
                return patient
        return None

    def insert_patient(self, patient: Dict[str, Any]):
        with self._lock:
            data = self._load()
            data["patients"].append(patient)
            self._save(data)

    def upsert_patient(self, patient: Dict[str, Any]):
        with self._lock:
            data = self._load()
            patients = data["patients"]
            for i, existing in enumerate(patients):
                if existing.get("id") == patient["id"]:
                    patients[i] = patient
                    break
            else:
                patients.append(patient)
            self._save(data)

    def delete_patient(self, patient_id: str):
        with self._lock:
            data = self._load()
            data["patients"] = [p for p in data["patients"] if p.get("id") != patient_id]
            data["logs"] = [l for l in data["logs"] if l.get("patientId") != patient_id]
            data["clinicianNotes"] = [n for n in data["clinicianNotes"] if n.get("patientId") != patient_id]
            data["shareLinks"].pop(patient_id, None)
            self._save(data)

    # Logs

    def append_log(self, log: Dict[str, Any]):
        self.insert_logs([log])

    def insert_logs(self, logs: List[Dict[str, Any]]) -> int:
        with self._lock:
            data = self._load()
            data["logs"].extend(logs)
            self._save(data)
        return len(logs)

    def list_logs(self, patient_id: Optional[str] = None) -> List[Dict[str, Any]]:
        logs = self._load()["logs"]
        if patient_id is not None:
            logs = [l for l in logs if l.get("patientId") == patient_id]
        return _newest_first(logs)

    def log_patient_ids(self) -> List[str]:
        seen = []
        for log in self._load()["logs"]:
            patient_id = log.get("patientId")
            if patient_id and patient_id not in seen:
                seen.append(patient_id)
        return seen

    # Clinician notes

    def append_note(self, note: Dict[str, Any]):
        self.insert_notes([note])

    def insert_notes(self, notes: List[Dict[str, Any]]) -> int:
        with self._lock:
            data = self._load()
            data["clinicianNotes"].extend(notes)
            self._save(data)
        return len(notes)

    def list_notes(self, patient_id: Optional[str] = None) -> List[Dict[str, Any]]:
        notes = self._load()["clinicianNotes"]
        if patient_id is not None:
            notes = [n for n in notes if n.get("patientId") == patient_id]
        return _newest_first(notes)

    # Share links

    def put_share_link(self, patient_id: str, link: Dict[str, Any]):
        with self._lock:
            data = self._load()
            data["shareLinks"][patient_id] = link
            self._save(data)

    def get_share_link(self, patient_id: str) -> Optional[Dict[str, Any]]:
        return self._load()["shareLinks"].get(patient_id)

    def delete_share_link(self, patient_id: str):
        with self._lock:
            data = self._load()
            if data["shareLinks"].pop(patient_id, None) is not None:
                self._save(data)

    def list_share_links(self) -> Dict[str, Dict[str, Any]]:
        return self._load()["shareLinks"]

    def counts(self) -> Dict[str, int]:
        data = self._load()
        return {name: len(data[name]) for name in DEFAULT_DOCUMENT}
