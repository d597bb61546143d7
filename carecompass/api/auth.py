"""
Authentication endpoints
"""
from typing import Optional

from fastapi import APIRouter, Request

from carecompass.database import get_store
from carecompass.database.schemas import (
    LoginRequest,
    LoginResponse,
    LogoutRequest,
    RegisterRequest,
    RegisterResponse,
)
from carecompass.services import auth
from carecompass.api.utils import get_bearer_token, require_user

router = APIRouter()


@router.get("/ping")
async def ping():
    """
    Liveness probe used by the client to decide whether to sync
    """
    return {"ok": True}


@router.post("/register", response_model=RegisterResponse, status_code=201)
async def register(payload: RegisterRequest):
    """
    Create a doctor or caregiver account
    """
    user = auth.register(
        get_store(),
        name=payload.name,
        email=payload.email,
        password=payload.password,
        confirm_password=payload.confirmPassword,
        role=payload.role,
    )
    return RegisterResponse(message="Account created successfully", user=user)


@router.post("/login", response_model=LoginResponse)
async def login(payload: LoginRequest):
    """
    Exchange credentials for a session token (valid 24h by default)
    """
    result = auth.login(get_store(), payload.email, payload.password, payload.role)
    return LoginResponse(**result)


@router.post("/logout")
async def logout(request: Request, payload: Optional[LogoutRequest] = None):
    """
    End the session named by the bearer header or the body's token
    """
    token = get_bearer_token(request) or (payload.token if payload else None)
    auth.logout(get_store(), token)
    return {"message": "Logged out successfully"}


@router.get("/me")
async def me(request: Request):
    user = require_user(request)
    return {"user": user.model_dump()}
