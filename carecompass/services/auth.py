"""
Authentication service

Registration, login and bearer-token sessions. Sessions live in the store,
keyed by token, and stop working once expiresAt has passed.
"""
import logging
import re
from typing import Any, Dict, Optional

from carecompass.core import config
from carecompass.core.errors import AuthenticationFailed, Conflict, ValidationFailed
from carecompass.core.security import generate_token, hash_password, verify_password
from carecompass.database import Store, get_session_cache
from carecompass.database.schemas import ROLES, Session, UserPublic, UserRecord
from carecompass.services import utils

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MIN_PASSWORD_LENGTH = 6


def _public(user: Dict[str, Any]) -> UserPublic:
    return UserRecord.model_validate(user).public()


def register(
    store: Store,
    name: Optional[str],
    email: Optional[str],
    password: Optional[str],
    confirm_password: Optional[str],
    role: Optional[str],
    now_ms: Optional[int] = None,
) -> UserPublic:
    """
    Create a doctor or caregiver account

    Checks run in a fixed order so clients always see the first problem:
    required fields, role, password length, confirmation, e-mail format,
    then duplicates within the role.
    """
    if not name or not email or not password or not confirm_password or not role:
        raise ValidationFailed("All fields are required")
    if role not in ROLES:
        raise ValidationFailed("Invalid role. Must be doctor or caregiver")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationFailed(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if password != confirm_password:
        raise ValidationFailed("Passwords do not match")
    email = email.strip().lower()
    if not EMAIL_RE.match(email):
        raise ValidationFailed("Invalid email format")

    if store.find_user(role, email):
        raise Conflict("Email already registered")

    created_at = now_ms if now_ms is not None else utils.now_ms()
    user = UserRecord(
        id=str(created_at),
        name=name,
        email=email,
        password=hash_password(password),
        role=role,
        createdAt=created_at,
    )
    store.insert_user(user.model_dump())
    logger.info(f"Registered {role} {email}")
    return user.public()


def login(
    store: Store,
    email: Optional[str],
    password: Optional[str],
    role: Optional[str],
    now_ms: Optional[int] = None,
) -> Dict[str, Any]:
    """
    Check credentials and open a session

    Returns {"token": ..., "user": UserPublic}
    """
    if not email or not password or not role:
        raise ValidationFailed("Email, password, and role are required")
    if role not in ROLES:
        raise ValidationFailed("Invalid role")

    user = store.find_user(role, email.strip().lower())
    # Same message for unknown e-mail and wrong password
    if not user or not verify_password(password, user.get("password", "")):
        raise AuthenticationFailed("Invalid credentials")

    public = _public(user)
    now = now_ms if now_ms is not None else utils.now_ms()
    purged = store.purge_expired_sessions(now)
    if purged:
        logger.info(f"Purged {purged} expired sessions")

    token = generate_token()
    session = Session(user=public, expiresAt=now + config.SESSION_TTL_SECONDS * 1000)
    store.put_session(token, session.model_dump())
    logger.info(f"Session opened for {role} {public.email}")
    return {"token": token, "user": public}


def logout(store: Store, token: Optional[str]):
    """
    End a session; unknown or missing tokens are ignored
    """
    if not token:
        return
    get_session_cache().invalidate(token)
    store.delete_session(token)


def authenticate(store: Store, token: Optional[str], now_ms: Optional[int] = None) -> UserPublic:
    """
    Resolve a bearer token to its user

    Expired sessions are removed on sight.
    """
    if not token:
        raise AuthenticationFailed("Authentication required")

    cache = get_session_cache()
    session = cache.get(token)
    if session is None:
        session = store.get_session(token)

    now = now_ms if now_ms is not None else utils.now_ms()
    if not session or session.get("expiresAt", 0) < now:
        if session:
            store.delete_session(token)
        cache.invalidate(token)
        raise AuthenticationFailed("Invalid or expired session")

    cache.set(token, session, expires_at=session["expiresAt"] / 1000)
    return UserPublic.model_validate(session["user"])
