"""
HTTP client for the CareCompass API
"""
import logging
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import quote

import requests

from carecompass.core.errors import CareCompassError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 5


class ApiError(CareCompassError):
    """
    Non-2xx response from the server
    """


class ApiClient:
    """
    Thin wrapper over the JSON API

    token_getter supplies the bearer token per request; on_unauthorized runs
    whenever the server answers 401 (the stored token is stale).
    """

    def __init__(
        self,
        base_url: str = "http://localhost:3000",
        token_getter: Optional[Callable[[], Optional[str]]] = None,
        on_unauthorized: Optional[Callable[[], None]] = None,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.token_getter = token_getter or (lambda: None)
        self.on_unauthorized = on_unauthorized or (lambda: None)
        self.timeout = timeout
        self.session = session or requests.Session()

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        token = self.token_getter()
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def _request(self, method: str, path: str, json_body: Any = None) -> Any:
        response = self.session.request(
            method,
            f"{self.base_url}{path}",
            headers=self._headers(),
            json=json_body,
            timeout=self.timeout,
        )
        if response.status_code == 401:
            self.on_unauthorized()
        if not response.ok:
            try:
                message = response.json().get("error") or response.reason
            except ValueError:
                message = response.reason
            raise ApiError(f"{method} {path} failed: {message}", status_code=response.status_code)
        return response.json()

    def ping(self) -> bool:
        """
        True when the server answers; never raises
        """
        try:
            response = self.session.get(f"{self.base_url}/api/ping", timeout=self.timeout)
            return response.ok
        except requests.RequestException:
            return False

    # Auth

    def register(self, name: str, email: str, password: str, confirm_password: str, role: str) -> Dict[str, Any]:
        return self._request("POST", "/api/register", {
            "name": name,
            "email": email,
            "password": password,
            "confirmPassword": confirm_password,
            "role": role,
        })

    def login(self, email: str, password: str, role: str) -> Dict[str, Any]:
        return self._request("POST", "/api/login", {"email": email, "password": password, "role": role})

    def logout(self) -> Dict[str, Any]:
        return self._request("POST", "/api/logout")

    def me(self) -> Dict[str, Any]:
        return self._request("GET", "/api/me")["user"]

    # Records

    def list_patients(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/api/patients")

    def create_patient(self, patient: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("POST", "/api/patients", patient)

    def delete_patient(self, patient_id: str) -> Dict[str, Any]:
        return self._request("DELETE", f"/api/patients/{quote(patient_id, safe='')}")

    def list_logs(self, patient_id: str) -> List[Dict[str, Any]]:
        return self._request("GET", f"/api/logs/{quote(patient_id, safe='')}")

    def add_log(self, patient_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("POST", f"/api/logs/{quote(patient_id, safe='')}", payload)

    def list_notes(self, patient_id: str) -> List[Dict[str, Any]]:
        return self._request("GET", f"/api/notes/{quote(patient_id, safe='')}")

    def add_note(self, patient_id: str, note: str) -> Dict[str, Any]:
        return self._request("POST", f"/api/notes/{quote(patient_id, safe='')}", {"note": note})

    def create_share_link(self, patient_id: str) -> Dict[str, Any]:
        return self._request("POST", f"/api/share/{quote(patient_id, safe='')}")

    def get_share_link(self, patient_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/api/share/{quote(patient_id, safe='')}")

    def weekly_summary(self, patient_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/api/summary/{quote(patient_id, safe='')}")
