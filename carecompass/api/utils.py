"""
Utility functions for API endpoints
"""
from typing import Optional

from fastapi import Request

from carecompass.core import config
from carecompass.database import get_store
from carecompass.database.schemas import UserPublic
from carecompass.services import auth


def get_bearer_token(request: Request) -> Optional[str]:
    """
    Session token from 'Authorization: Bearer <token>', else the ?token= query parameter
    """
    header = request.headers.get("Authorization", "")
    if header.startswith("Bearer "):
        token = header[len("Bearer "):].strip()
        if token:
            return token
    return request.query_params.get("token") or None


def require_user(request: Request) -> UserPublic:
    """
    Resolve the caller's session

    Raises AuthenticationFailed (401) when the token is missing, unknown or expired.
    """
    return auth.authenticate(get_store(), get_bearer_token(request))


def check_access(request: Request) -> Optional[UserPublic]:
    """
    Enforce a session on data routes only when REQUIRE_AUTH is on
    """
    if config.REQUIRE_AUTH:
        return require_user(request)
    return None
