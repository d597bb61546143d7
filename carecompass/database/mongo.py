"""
MongoDB storage

Same record shapes as the JSON file store. Sessions and share links carry a
BSON date mirror of expiresAt (expireAt) so Mongo's TTL monitor can drop
them; readers still check expiresAt because the monitor only runs about
once a minute.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.errors import BulkWriteError, PyMongoError

from carecompass.database.base import Store, user_collection

logger = logging.getLogger(__name__)

HIDDEN = {"_id": 0, "expireAt": 0}


def _expire_at(expires_at_ms: int) -> datetime:
    return datetime.fromtimestamp(expires_at_ms / 1000, tz=timezone.utc)


class MongoStore(Store):
    """
    Store backed by a MongoDB database
    """

    def __init__(self, url: str = "mongodb://localhost:27017", db_name: str = "carecompass", client: Optional[MongoClient] = None):
        self.client = client if client is not None else MongoClient(url, serverSelectionTimeoutMS=5000)
        self.db = self.client[db_name]
        self.doctors = self.db["doctors"]
        self.caregivers = self.db["caregivers"]
        self.patients = self.db["patients"]
        self.logs = self.db["logs"]
        self.notes = self.db["clinician_notes"]
        self.sessions = self.db["sessions"]
        self.share_links = self.db["share_links"]

    def ensure_indexes(self):
        for users in (self.doctors, self.caregivers):
            users.create_index([("email", ASCENDING)], unique=True)
            users.create_index([("email", ASCENDING), ("role", ASCENDING)])
        self.patients.create_index([("id", ASCENDING)], unique=True)
        for records in (self.logs, self.notes):
            records.create_index([("patientId", ASCENDING)])
            records.create_index([("createdAt", DESCENDING)])
            records.create_index([("patientId", ASCENDING), ("createdAt", DESCENDING)])
        self.sessions.create_index([("token", ASCENDING)], unique=True)
        self.sessions.create_index([("expireAt", ASCENDING)], expireAfterSeconds=0)
        self.share_links.create_index([("patientId", ASCENDING)], unique=True)
        self.share_links.create_index([("expireAt", ASCENDING)], expireAfterSeconds=0)

    def _users(self, role: str):
        return self.doctors if user_collection(role) == "doctors" else self.caregivers

    # Users

    def find_user(self, role: str, email: str) -> Optional[Dict[str, Any]]:
        return self._users(role).find_one({"email": email}, HIDDEN)

    def insert_user(self, user: Dict[str, Any]):
        # insert_one adds _id to the dict it is given
        self._users(user["role"]).insert_one(dict(user))

    def upsert_user(self, user: Dict[str, Any]):
        self._users(user["role"]).replace_one({"email": user["email"]}, dict(user), upsert=True)

    def list_users(self, role: str) -> List[Dict[str, Any]]:
        return list(self._users(role).find({}, HIDDEN))

    # Sessions

    def put_session(self, token: str, session: Dict[str, Any]):
        doc = {"token": token, **session, "expireAt": _expire_at(session["expiresAt"])}
        self.sessions.replace_one({"token": token}, doc, upsert=True)

    def get_session(self, token: str) -> Optional[Dict[str, Any]]:
        doc = self.sessions.find_one({"token": token}, HIDDEN)
        if doc is None:
            return None
        doc.pop("token", None)
        return doc

    def delete_session(self, token: str):
        self.sessions.delete_one({"token": token})

    def list_sessions(self) -> Dict[str, Dict[str, Any]]:
        result = {}
        for doc in self.sessions.find({}, HIDDEN):
            token = doc.pop("token")
            result[token] = doc
        return result

    def purge_expired_sessions(self, now_ms: int) -> int:
        return self.sessions.delete_many({"expiresAt": {"$lt": now_ms}}).deleted_count

    # Patients

    def list_patients(self) -> List[Dict[str, Any]]:
        return list(self.patients.find({}, HIDDEN))

    def get_patient(self, patient_id: str) -> Optional[Dict[str, Any]]:
        return self.patients.find_one({"id": patient_id}, HIDDEN)

    def insert_patient(self, patient: Dict[str, Any]):
        self.patients.insert_one(dict(patient))

    def upsert_patient(self, patient: Dict[str, Any]):
        self.patients.replace_one({"id": patient["id"]}, dict(patient), upsert=True)

    def delete_patient(self, patient_id: str):
        self.patients.delete_one({"id": patient_id})
        self.logs.delete_many({"patientId": patient_id})
        self.notes.delete_many({"patientId": patient_id})
        self.share_links.delete_one({"patientId": patient_id})

    # Logs

    def append_log(self, log: Dict[str, Any]):
        self.logs.insert_one(dict(log))

    def insert_logs(self, logs: List[Dict[str, Any]]) -> int:
        return self._insert_many(self.logs, logs)

    def list_logs(self, patient_id: Optional[str] = None) -> List[Dict[str, Any]]:
        query = {} if patient_id is None else {"patientId": patient_id}
        return list(self.logs.find(query, HIDDEN).sort("createdAt", DESCENDING))

    def log_patient_ids(self) -> List[str]:
        return [pid for pid in self.logs.distinct("patientId") if pid]

    # Clinician notes

    def append_note(self, note: Dict[str, Any]):
        self.notes.insert_one(dict(note))

    def insert_notes(self, notes: List[Dict[str, Any]]) -> int:
        return self._insert_many(self.notes, notes)

    def list_notes(self, patient_id: Optional[str] = None) -> List[Dict[str, Any]]:
        query = {} if patient_id is None else {"patientId": patient_id}
        return list(self.notes.find(query, HIDDEN).sort("createdAt", DESCENDING))

    def _insert_many(self, collection, records: List[Dict[str, Any]]) -> int:
        if not records:
            return 0
        try:
            result = collection.insert_many([dict(r) for r in records], ordered=False)
            return len(result.inserted_ids)
        except BulkWriteError as e:
            # Unordered insert keeps going past bad documents
            logger.warning(f"Some documents failed to insert into {collection.name}: {e.details.get('writeErrors', [])[:3]}")
            return e.details.get("nInserted", 0)

    # Share links

    def put_share_link(self, patient_id: str, link: Dict[str, Any]):
        doc = {"patientId": patient_id, **link, "expireAt": _expire_at(link["expiresAt"])}
        self.share_links.replace_one({"patientId": patient_id}, doc, upsert=True)

    def get_share_link(self, patient_id: str) -> Optional[Dict[str, Any]]:
        doc = self.share_links.find_one({"patientId": patient_id}, HIDDEN)
        if doc is None:
            return None
        doc.pop("patientId", None)
        return doc

    def delete_share_link(self, patient_id: str):
        self.share_links.delete_one({"patientId": patient_id})

    def list_share_links(self) -> Dict[str, Dict[str, Any]]:
        result = {}
        for doc in self.share_links.find({}, HIDDEN):
            patient_id = doc.pop("patientId")
            result[patient_id] = doc
        return result

    def counts(self) -> Dict[str, int]:
        return {
            "doctors": self.doctors.count_documents({}),
            "caregivers": self.caregivers.count_documents({}),
            "patients": self.patients.count_documents({}),
            "logs": self.logs.count_documents({}),
            "clinicianNotes": self.notes.count_documents({}),
            "shareLinks": self.share_links.count_documents({}),
            "sessions": self.sessions.count_documents({}),
        }

    def ping(self) -> bool:
        try:
            self.client.admin.command("ping")
            return True
        except PyMongoError as e:
            logger.warning(f"MongoDB ping failed: {e}")
            return False

    def close(self):
        self.client.close()
