# API routes
from fastapi import APIRouter
from carecompass.api.auth import router as auth_router
from carecompass.api.patients import router as patients_router
from carecompass.api.logs import router as logs_router
from carecompass.api.notes import router as notes_router
from carecompass.api.share import router as share_router, page_router as share_page_router

# Combine all /api routers
router = APIRouter()
router.include_router(auth_router)
router.include_router(patients_router)
router.include_router(logs_router)
router.include_router(notes_router)
router.include_router(share_router)

__all__ = ["router", "share_page_router"]
