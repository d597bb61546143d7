"""
Care records service

Patients, caregiver logs, clinician notes and share links. Logs and notes
are append-only and always come back newest first.
"""
import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from carecompass.core import config
from carecompass.core.errors import Conflict, NotFound, ValidationFailed
from carecompass.core.security import generate_share_code
from carecompass.database import Store
from carecompass.database.schemas import ClinicianNote, LogEntry, Patient, ShareLink
from carecompass.services import utils

logger = logging.getLogger(__name__)


def _validation_message(exc: ValidationError) -> str:
    first = exc.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    return f"{location}: {first.get('msg')}" if location else first.get("msg", "invalid payload")


# Patients

def list_patients(store: Store) -> List[Dict[str, Any]]:
    return store.list_patients()


def create_patient(store: Store, payload: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Add a patient under the id chosen by the client
    """
    if not payload or not payload.get("id"):
        raise ValidationFailed("id required")
    try:
        patient = Patient.model_validate(payload)
    except ValidationError as exc:
        raise ValidationFailed(_validation_message(exc))

    if store.get_patient(patient.id):
        raise Conflict("patient exists")

    record = patient.model_dump(exclude_none=True)
    store.insert_patient(record)
    logger.info(f"Created patient {patient.id}")
    return record


def delete_patient(store: Store, patient_id: str):
    """
    Remove a patient with its logs, notes and share link (no-op when unknown)
    """
    store.delete_patient(patient_id)
    logger.info(f"Deleted patient {patient_id} and associated records")


# Logs

def add_log(store: Store, patient_id: str, payload: Optional[Dict[str, Any]], now_ms: Optional[int] = None) -> Dict[str, Any]:
    """
    Append a log entry for a patient

    createdAt defaults to now; a client-supplied createdAt is kept so entries
    recorded offline land on the right day.
    """
    payload = dict(payload or {})
    payload.pop("patientId", None)
    record = {
        "patientId": patient_id,
        "createdAt": now_ms if now_ms is not None else utils.now_ms(),
        **payload,
    }
    try:
        entry = LogEntry.model_validate(record)
    except ValidationError as exc:
        raise ValidationFailed(_validation_message(exc))

    stored = entry.model_dump(exclude_none=True)
    store.append_log(stored)
    return stored


def list_logs(store: Store, patient_id: str) -> List[Dict[str, Any]]:
    return store.list_logs(patient_id)


# Clinician notes

def add_note(store: Store, patient_id: str, note: Optional[str], now_ms: Optional[int] = None) -> Dict[str, Any]:
    record = ClinicianNote(
        patientId=patient_id,
        note=note or "",
        createdAt=now_ms if now_ms is not None else utils.now_ms(),
    ).model_dump()
    store.append_note(record)
    return record


def list_notes(store: Store, patient_id: str) -> List[Dict[str, Any]]:
    return store.list_notes(patient_id)


# Share links

def create_share_link(store: Store, patient_id: str, now_ms: Optional[int] = None) -> Dict[str, Any]:
    """
    Issue a fresh share link for a patient, replacing any previous one
    """
    now = now_ms if now_ms is not None else utils.now_ms()
    code = generate_share_code()
    link = ShareLink(
        code=code,
        url=f"{config.SHARE_BASE_URL}/share/{code}",
        expiresAt=now + config.SHARE_LINK_TTL_SECONDS * 1000,
    ).model_dump()
    store.put_share_link(patient_id, link)
    logger.info(f"Share link {code} issued for patient {patient_id}")
    return link


def get_share_link(store: Store, patient_id: str, now_ms: Optional[int] = None) -> Dict[str, Any]:
    """
    Current share link for a patient

    Raises NotFound when there is none or it has expired (expired links are
    deleted).
    """
    link = store.get_share_link(patient_id)
    if not link:
        raise NotFound("No share link")
    now = now_ms if now_ms is not None else utils.now_ms()
    if link.get("expiresAt", 0) < now:
        store.delete_share_link(patient_id)
        raise NotFound("Share link expired")
    return link
