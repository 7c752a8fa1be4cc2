import json

import pytest
import requests

from pos_app.integrations import api_client
from pos_app.integrations.api_client import APIError, api_request, tokens


class FakeResponse:
    def __init__(self, status_code=200, body=None, text=None):
        self.status_code = status_code
        self._body = body
        if text is None:
            text = json.dumps(body) if body is not None else ""
        self.text = text
        self.content = text.encode()

    def json(self):
        if self._body is None:
            raise ValueError("no json")
        return self._body

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"HTTP {self.status_code}")


class FakeSession:
    def __init__(self, *responses, refresh=None):
        self.responses = list(responses)
        self.refresh = refresh
        self.calls = []
        self.refresh_calls = []

    def request(self, **kwargs):
        self.calls.append(kwargs)
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def post(self, url, json=None, timeout=None):
        self.refresh_calls.append((url, json))
        return self.refresh


@pytest.fixture
def session(monkeypatch):
    def install(*responses, refresh=None):
        fake = FakeSession(*responses, refresh=refresh)
        monkeypatch.setattr(api_client, "_session", fake)
        return fake

    return install


def test_success_returns_json_and_sends_bearer(session):
    fake = session(FakeResponse(200, {"products": []}))
    tokens.set("abc")

    assert api_request("get", "/products", params={"search": "ron"}) == {"products": []}

    call = fake.calls[0]
    assert call["method"] == "GET"
    assert call["url"].endswith("/products")
    assert call["headers"]["Authorization"] == "Bearer abc"


def test_empty_body_is_empty_dict(session):
    session(FakeResponse(204, None, text=""))

    assert api_request("DELETE", "/sales/1") == {}


def test_error_uses_backend_message(session):
    session(FakeResponse(400, {"error": "Stock insuficiente para Ron"}))

    with pytest.raises(APIError) as ex:
        api_request("POST", "/sales", json={})

    assert ex.value.message == "Stock insuficiente para Ron"
    assert ex.value.status_code == 400
    assert ex.value.payload == {"error": "Stock insuficiente para Ron"}


def test_error_without_json_uses_text(session):
    session(FakeResponse(500, None, text="Internal Server Error"))

    with pytest.raises(APIError) as ex:
        api_request("GET", "/products")

    assert ex.value.message == "Internal Server Error"


def test_connection_failure(session):
    session(requests.ConnectionError("refused"))

    with pytest.raises(APIError) as ex:
        api_request("GET", "/products")

    assert ex.value.message == "No se pudo conectar con el servidor"
    assert ex.value.status_code is None


def test_expired_token_is_refreshed_once(session):
    fake = session(
        FakeResponse(401, {"error": "Token expirado"}),
        FakeResponse(200, {"ok": True}),
        refresh=FakeResponse(200, {"token": "new", "refreshToken": "r2"}),
    )
    tokens.set("old", "r1")

    assert api_request("GET", "/auth/me") == {"ok": True}

    assert fake.refresh_calls[0][1] == {"refreshToken": "r1"}
    assert fake.calls[1]["headers"]["Authorization"] == "Bearer new"
    assert tokens.refresh_token == "r2"


def test_failed_refresh_clears_tokens(session):
    session(
        FakeResponse(401, {"error": "Token expirado"}),
        refresh=FakeResponse(401, {"error": "Refresh inválido"}),
    )
    tokens.set("old", "r1")

    with pytest.raises(APIError) as ex:
        api_request("GET", "/auth/me")

    assert ex.value.status_code == 401
    assert tokens.token == ""
    assert tokens.refresh_token == ""


def test_post_is_not_retried_by_transport():
    assert "POST" not in api_client.retry_strategy.allowed_methods
    assert "GET" in api_client.retry_strategy.allowed_methods
