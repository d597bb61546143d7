"""
Client-side data layer

LocalStore works with no server; CareData layers best-effort sync with the
API on top of it.
"""
from carecompass.client.local_store import LocalStore, DEFAULT_DATA, default_data
from carecompass.client.api_client import ApiClient, ApiError
from carecompass.client.care_data import CareData

__all__ = [
    "LocalStore",
    "DEFAULT_DATA",
    "default_data",
    "ApiClient",
    "ApiError",
    "CareData",
]
