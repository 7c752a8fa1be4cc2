import logging
from typing import Any, Dict

from pos_app.integrations.api_client import APIError, api_request, tokens


logger = logging.getLogger(__name__)


class AuthError(ValueError):
    pass


def login(username: str, password: str) -> Dict[str, Any]:
    """
    Opens the backend session used by every proxied call of this process.
    """

    res = api_request(
        "POST",
        "/auth/login",
        json={"username": username, "password": password},
        _retry_auth=False,
    )

    token = res.get("token")
    if not token:
        raise AuthError("Respuesta de autenticación sin token")

    tokens.set(token, res.get("refreshToken") or "")

    return {
        "status": "success",
        "user": res.get("user") or {},
    }


def logout() -> Dict[str, Any]:
    try:
        api_request("POST", "/auth/logout", _retry_auth=False)
    except APIError as e:
        logger.warning("Backend logout failed | %s", e.message)
    finally:
        tokens.clear()

    return {"status": "success"}


def me() -> Dict[str, Any]:
    res = api_request("GET", "/auth/me")
    return {
        "status": "success",
        "user": res.get("user") or {},
    }
