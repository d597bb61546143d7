"""
Patient management endpoints
"""
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Request

from carecompass.database import get_store
from carecompass.services import records
from carecompass.api.utils import check_access

router = APIRouter()


@router.get("/patients")
async def list_patients(request: Request):
    """
    All patients (stored order)
    """
    check_access(request)
    return records.list_patients(get_store())


@router.post("/patients", status_code=201)
async def create_patient(request: Request, payload: Optional[Dict[str, Any]] = Body(None)):
    """
    Add a patient

    The client picks the id. Returns 400 without one and 409 if it is taken.
    Any extra fields (name, diagnosis, status, sleepHours, ...) are stored as sent.
    """
    check_access(request)
    return records.create_patient(get_store(), payload)


@router.delete("/patients/{patient_id}")
async def delete_patient(patient_id: str, request: Request):
    """
    Delete a patient together with its logs, clinician notes and share link
    """
    check_access(request)
    records.delete_patient(get_store(), patient_id)
    return {"ok": True}
