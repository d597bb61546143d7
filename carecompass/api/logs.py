"""
Caregiver log endpoints and the weekly summary built from them
"""
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Request

from carecompass.database import get_store
from carecompass.database.schemas import WeeklySummary
from carecompass.services import aggregation, records
from carecompass.api.utils import check_access

router = APIRouter()


@router.get("/logs/{patient_id}")
async def list_logs(patient_id: str, request: Request):
    """
    Logs for a patient, newest first
    """
    check_access(request)
    return records.list_logs(get_store(), patient_id)


@router.post("/logs/{patient_id}", status_code=201)
async def add_log(patient_id: str, request: Request, payload: Optional[Dict[str, Any]] = Body(None)):
    """
    Append a log entry (mood, ABC behaviour fields, sleep, hydration, food, meds, note)
    """
    check_access(request)
    return records.add_log(get_store(), patient_id, payload)


@router.get("/summary/{patient_id}", response_model=WeeklySummary)
async def weekly_summary(patient_id: str, request: Request):
    """
    Last seven days of chart data for a patient, computed on the server

    Days are calendar days in the server's local timezone.
    """
    check_access(request)
    logs = records.list_logs(get_store(), patient_id)
    summary = aggregation.weekly_summary(logs, datetime.now().astimezone())
    return WeeklySummary(patientId=patient_id, **summary)
