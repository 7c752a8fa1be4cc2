from __future__ import annotations

import logging
import threading
from typing import Any, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from pos_app.core.config import settings


logger = logging.getLogger(__name__)


class APIError(Exception):

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        payload: Any = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload


# -----------------------------
# Session with Retry
# -----------------------------
_session = requests.Session()

# POST is never replayed: a sale is created at most once per attempt.
retry_strategy = Retry(
    total=3,
    backoff_factor=0.5,
    status_forcelist=[502, 503, 504],
    allowed_methods=["GET", "PUT", "DELETE"],
)

adapter = HTTPAdapter(max_retries=retry_strategy)
_session.mount("http://", adapter)
_session.mount("https://", adapter)


# -----------------------------
# Backend session tokens
# -----------------------------
class TokenStore:
    """
    Bearer + refresh token pair for the backend session.
    Shared by every request thread of the process.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._token: str = settings.API_TOKEN
        self._refresh_token: str = ""

    @property
    def token(self) -> str:
        with self._lock:
            return self._token

    @property
    def refresh_token(self) -> str:
        with self._lock:
            return self._refresh_token

    def set(self, token: str, refresh_token: Optional[str] = None) -> None:
        with self._lock:
            self._token = token or ""
            if refresh_token is not None:
                self._refresh_token = refresh_token

    def clear(self) -> None:
        with self._lock:
            self._token = ""
            self._refresh_token = ""


tokens = TokenStore()


def _error_message(response: requests.Response) -> tuple[str, Any]:
    try:
        payload = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}", None

    if isinstance(payload, dict):
        message = payload.get("error") or payload.get("message")
        if message:
            return str(message), payload

    return response.text or f"HTTP {response.status_code}", payload


def _headers() -> dict[str, str]:
    headers = {
        "Accept": "application/json",
        "Content-Type": "application/json",
    }
    token = tokens.token
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


def _refresh_session() -> bool:
    refresh_token = tokens.refresh_token
    if not refresh_token:
        return False

    try:
        response = _session.post(
            f"{settings.API_BASE_URL}/auth/refresh",
            json={"refreshToken": refresh_token},
            timeout=settings.API_TIMEOUT,
        )
        response.raise_for_status()
        data = response.json()
    except (requests.RequestException, ValueError):
        logger.warning("Backend session refresh failed, clearing tokens")
        tokens.clear()
        return False

    tokens.set(data.get("token") or "", data.get("refreshToken") or refresh_token)
    return bool(tokens.token)


def api_request(
    method: str,
    path: str,
    params: Optional[dict[str, Any]] = None,
    json: Optional[dict[str, Any]] = None,
    _retry_auth: bool = True,
) -> dict[str, Any]:

    if not settings.API_BASE_URL:
        raise APIError("API_BASE_URL not configured.")

    url = f"{settings.API_BASE_URL}{path}"

    try:
        response = _session.request(
            method=method.upper(),
            url=url,
            headers=_headers(),
            params=params,
            json=json,
            timeout=settings.API_TIMEOUT,
        )
    except requests.RequestException:
        logger.exception("Backend connection failed | %s %s", method, path)
        raise APIError("No se pudo conectar con el servidor")

    # Expired token: refresh once and replay
    if response.status_code == 401 and _retry_auth and _refresh_session():
        return api_request(method, path, params=params, json=json, _retry_auth=False)

    if response.status_code >= 400:
        logger.error(
            "Backend error | %s %s | %s | %s",
            method,
            path,
            response.status_code,
            response.text,
        )
        message, payload = _error_message(response)
        raise APIError(message, status_code=response.status_code, payload=payload)

    if not response.content:
        return {}

    try:
        return response.json()
    except ValueError:
        logger.error("Invalid backend JSON response | %s %s", method, path)
        raise APIError("Invalid backend response", status_code=response.status_code)
