"""
Storage interface shared by the JSON-file and MongoDB adapters

Records are plain dicts in their wire shape (camelCase keys, epoch-ms
timestamps). Adapters never return backend-specific keys such as Mongo's _id.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

# Collection names used in counts() and the maintenance report
COLLECTIONS = ("doctors", "caregivers", "patients", "logs", "clinicianNotes", "sessions", "shareLinks")


def user_collection(role: str) -> str:
    return "doctors" if role == "doctor" else "caregivers"


class Store(ABC):

    # Users

    @abstractmethod
    def find_user(self, role: str, email: str) -> Optional[Dict[str, Any]]:
        ...

    @abstractmethod
    def insert_user(self, user: Dict[str, Any]) -> None:
        ...

    @abstractmethod
    def upsert_user(self, user: Dict[str, Any]) -> None:
        """Insert or replace the user with the same role and e-mail"""

    @abstractmethod
    def list_users(self, role: str) -> List[Dict[str, Any]]:
        ...

    # Sessions

    @abstractmethod
    def put_session(self, token: str, session: Dict[str, Any]) -> None:
        ...

    @abstractmethod
    def get_session(self, token: str) -> Optional[Dict[str, Any]]:
        """Raw lookup; expiry is checked by the auth service"""

    @abstractmethod
    def delete_session(self, token: str) -> None:
        ...

    @abstractmethod
    def list_sessions(self) -> Dict[str, Dict[str, Any]]:
        ...

    @abstractmethod
    def purge_expired_sessions(self, now_ms: int) -> int:
        ...

    # Patients

    @abstractmethod
    def list_patients(self) -> List[Dict[str, Any]]:
        ...

    @abstractmethod
    def get_patient(self, patient_id: str) -> Optional[Dict[str, Any]]:
        ...

    @abstractmethod
    def insert_patient(self, patient: Dict[str, Any]) -> None:
        ...

    @abstractmethod
    def upsert_patient(self, patient: Dict[str, Any]) -> None:
        ...

    @abstractmethod
    def delete_patient(self, patient_id: str) -> None:
        """Remove the patient together with its logs, notes and share link"""

    # Logs

    @abstractmethod
    def append_log(self, log: Dict[str, Any]) -> None:
        ...

    @abstractmethod
    def insert_logs(self, logs: List[Dict[str, Any]]) -> int:
        ...

    @abstractmethod
    def list_logs(self, patient_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """Logs newest first, optionally for one patient"""

    @abstractmethod
    def log_patient_ids(self) -> List[str]:
        ...

    # Clinician notes

    @abstractmethod
    def append_note(self, note: Dict[str, Any]) -> None:
        ...

    @abstractmethod
    def insert_notes(self, notes: List[Dict[str, Any]]) -> int:
        ...

    @abstractmethod
    def list_notes(self, patient_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """Notes newest first, optionally for one patient"""

    # Share links

    @abstractmethod
    def put_share_link(self, patient_id: str, link: Dict[str, Any]) -> None:
        ...

    @abstractmethod
    def get_share_link(self, patient_id: str) -> Optional[Dict[str, Any]]:
        ...

    @abstractmethod
    def delete_share_link(self, patient_id: str) -> None:
        ...

    @abstractmethod
    def list_share_links(self) -> Dict[str, Dict[str, Any]]:
        ...

    # Housekeeping

    @abstractmethod
    def counts(self) -> Dict[str, int]:
        ...

    def ping(self) -> bool:
        return True

    def close(self) -> None:
        pass
