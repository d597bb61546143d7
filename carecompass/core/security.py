"""
Password digests, session tokens and share codes
"""
import hashlib
import hmac
import secrets

SHARE_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"


def hash_password(password: str) -> str:
    return hashlib.sha256(password.encode("utf-8")).hexdigest()


def verify_password(password: str, hashed_password: str) -> bool:
    return hmac.compare_digest(hash_password(password), hashed_password or "")


def generate_token() -> str:
    """64 hex chars, used as the session key"""
    return secrets.token_hex(32)


def generate_share_code(length: int = 6) -> str:
    return "".join(secrets.choice(SHARE_CODE_ALPHABET) for _ in range(length))
