"""
Basic configuration

- Everything comes from environment variables (optionally via .env)
- CORS origins for development plus any extra production domains
- Storage backend switch: flat JSON file or MongoDB
"""
import os


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


PORT = int(os.getenv("PORT", "3000"))

# Storage
STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "json").strip().lower()
DB_FILE = os.getenv("DB_FILE", os.path.join(os.getenv("DATA_DIR", "."), "db.json"))
MONGO_URL = os.getenv("MONGO_URL", "mongodb://localhost:27017")
MONGO_DB = os.getenv("MONGO_DB", "carecompass")

# Sessions and share links both live for 24 hours unless overridden
SESSION_TTL_SECONDS = int(os.getenv("SESSION_TTL_SECONDS", str(24 * 60 * 60)))
SHARE_LINK_TTL_SECONDS = int(os.getenv("SHARE_LINK_TTL_SECONDS", str(24 * 60 * 60)))
SHARE_BASE_URL = os.getenv("SHARE_BASE_URL", f"http://localhost:{PORT}").rstrip("/")

# Data routes are open by default, like the original demo server
REQUIRE_AUTH = _env_bool("REQUIRE_AUTH")

STATIC_DIR = os.getenv("STATIC_DIR", "public")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Default localhost origins for development
DEFAULT_CORS_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:8000",
    "http://127.0.0.1:3000",
]

# Get additional CORS origins from environment variable
ADDITIONAL_CORS_ORIGINS = os.getenv("CORS_ORIGINS", "").split(",") if os.getenv("CORS_ORIGINS") else []

# Filter out empty strings from split
ADDITIONAL_CORS_ORIGINS = [origin.strip() for origin in ADDITIONAL_CORS_ORIGINS if origin.strip()]

# Combine default and additional origins
CORS_ORIGINS = DEFAULT_CORS_ORIGINS + ADDITIONAL_CORS_ORIGINS
