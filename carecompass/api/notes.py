"""
Clinician note endpoints
"""
from typing import Optional

from fastapi import APIRouter, Request

from carecompass.database import get_store
from carecompass.database.schemas import NoteInput
from carecompass.services import records
from carecompass.api.utils import check_access

router = APIRouter()


@router.get("/notes/{patient_id}")
async def list_notes(patient_id: str, request: Request):
    check_access(request)
    return records.list_notes(get_store(), patient_id)


@router.post("/notes/{patient_id}", status_code=201)
async def add_note(patient_id: str, request: Request, payload: Optional[NoteInput] = None):
    """
    Append a clinician note; an empty body stores an empty note
    """
    check_access(request)
    return records.add_note(get_store(), patient_id, payload.note if payload else None)
