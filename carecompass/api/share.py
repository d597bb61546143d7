"""
Share link endpoints

Each patient has at most one link; it expires after 24 hours by default.
"""
import html

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse, JSONResponse

from carecompass.core.errors import NotFound
from carecompass.database import get_store
from carecompass.services import records
from carecompass.api.utils import check_access

router = APIRouter()

# Served outside /api, where the share URLs point
page_router = APIRouter()


@router.post("/share/{patient_id}")
async def create_share_link(patient_id: str, request: Request):
    """
    Issue a new link for a patient, replacing the previous one
    """
    check_access(request)
    return records.create_share_link(get_store(), patient_id)


@router.get("/share/{patient_id}")
async def get_share_link(patient_id: str, request: Request):
    """
    Current link for a patient; 404 with an empty body when none or expired
    """
    check_access(request)
    try:
        return records.get_share_link(get_store(), patient_id)
    except NotFound:
        return JSONResponse(status_code=404, content={})


@page_router.get("/share/{code}", response_class=HTMLResponse)
async def share_page(code: str):
    return (
        "<h2>Shared CareCompass Link</h2>"
        f"<p>Code: {html.escape(code)}</p>"
        "<p>This demo link would show shared patient data.</p>"
    )
