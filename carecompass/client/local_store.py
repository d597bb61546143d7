"""
Local-only persistence for the client

A single JSON document on disk, seeded with demo patients, so the client
works with no server at all.
"""
import copy
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

STORE_FILENAME = "carecompass-data-v1.json"

DEFAULT_DATA: Dict[str, Any] = {
    "selectedPatient": "alex",
    "patients": [
        {"id": "alex", "name": "Alex Doe", "diagnosis": "ASD Level 2", "status": "risk", "sleepHours": [7, 6.5, 5, 6, 8, 8.5, 7.5]},
        {"id": "sarah", "name": "Sarah Smith", "diagnosis": "Down Syndrome", "status": "stable", "sleepHours": [8, 8, 8, 7.5, 8, 8, 7]},
        {"id": "mike", "name": "Mike Jones", "diagnosis": "ADHD / SPD", "status": "stable", "sleepHours": [7, 6, 6.5, 7, 6.5, 7, 7.5]},
        {"id": "emily", "name": "Emily Clark", "diagnosis": "Global Delay", "status": "risk", "sleepHours": [6, 5, 5.5, 6, 6.5, 6, 6]},
    ],
    "logs": [],
    "shareLinks": {},
    "clinicianNotes": [],
}


def default_data() -> Dict[str, Any]:
    return copy.deepcopy(DEFAULT_DATA)


class LocalStore:
    """
    JSON document holding patients, logs, notes, share links, the selected
    patient and the auth token
    """

    def __init__(self, path: Optional[str] = None):
        self.path = Path(path) if path else Path.home() / ".carecompass" / STORE_FILENAME

    def load(self) -> Dict[str, Any]:
        """
        Saved data merged over the defaults

        An empty patient list is replaced by the demo patients; unreadable
        data reads as the defaults.
        """
        try:
            with open(self.path, "r") as f:
                parsed = json.load(f)
        except FileNotFoundError:
            return default_data()
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"Ignoring unreadable local store {self.path}: {e}")
            return default_data()
        if not isinstance(parsed, dict):
            return default_data()
        if not parsed.get("patients"):
            parsed["patients"] = default_data()["patients"]
        return {**default_data(), **parsed}

    def save(self, data: Dict[str, Any]):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w") as f:
            json.dump(data, f, indent=2)

    # Auth token kept alongside the data

    def get_token(self) -> Optional[str]:
        return self.load().get("authToken")

    def set_token(self, token: str):
        data = self.load()
        data["authToken"] = token
        self.save(data)

    def clear_token(self):
        data = self.load()
        if data.pop("authToken", None) is not None:
            self.save(data)
