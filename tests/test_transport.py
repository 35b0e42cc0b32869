import json

import httpx
import pytest
import requests
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response

from ayuskey_api import APIClient, APIError, HTTPXTransport, RequestsTransport, is_api_error


def _mock_client(handler, **kwargs):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler), **kwargs)


@pytest.mark.asyncio
async def test_httpx_transport_wire_shape():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"ok": True})

    transport = HTTPXTransport(_mock_client(handler, cookies={"session": "abc"}))
    client = APIClient("https://x.test", i="K", fetch=transport)

    assert await client.request("users/show", {"userId": "42"}) == {"ok": True}

    request = seen[0]
    assert request.method == "POST"
    assert str(request.url) == "https://x.test/api/users/show"
    assert json.loads(request.content) == {"userId": "42", "i": "K"}
    assert request.headers["content-type"] == "application/json"
    assert request.headers["cache-control"] == "no-cache"
    assert "cookie" not in request.headers


@pytest.mark.asyncio
async def test_httpx_transport_status_handling():
    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path == "/api/notes/delete":
            return httpx.Response(204)
        if path == "/api/broken":
            return httpx.Response(200, content=b"<html>")
        return httpx.Response(
            403,
            json={"error": {"id": "e1", "code": "PERMISSION_DENIED", "message": "no", "kind": "client"}},
        )

    client = APIClient("https://x.test", fetch=HTTPXTransport(_mock_client(handler)))

    assert await client.request("notes/delete", {"noteId": "n"}) is None
    with pytest.raises(ValueError) as parse_error:
        await client.request("broken")
    assert not is_api_error(parse_error.value)
    with pytest.raises(APIError) as api_error:
        await client.request("admin/show-users")
    assert api_error.value.code == "PERMISSION_DENIED"
    assert api_error.value.status == 403
    assert client.pending_api_requests_count == 0


@pytest.mark.asyncio
async def test_httpx_connection_error_propagates():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = APIClient("https://x.test", fetch=HTTPXTransport(_mock_client(handler)))

    with pytest.raises(httpx.ConnectError) as excinfo:
        await client.request("meta")

    assert not is_api_error(excinfo.value)
    assert client.pending_api_requests_count == 0


@pytest.mark.asyncio
async def test_httpx_transport_close_ownership():
    owned = HTTPXTransport(timeout=2.0)
    await owned.aclose()
    assert owned.client.is_closed

    shared = _mock_client(lambda request: httpx.Response(204))
    async with HTTPXTransport(shared):
        pass
    assert not shared.is_closed
    await shared.aclose()


def _asgi_app() -> FastAPI:
    app = FastAPI()

    @app.post("/api/users/show")
    async def users_show(request: Request):
        payload = await request.json()
        return {
            "id": payload["userId"],
            "i": payload["i"],
            "cookie": request.headers.get("cookie"),
        }

    @app.post("/api/notes/delete")
    async def notes_delete():
        return Response(status_code=204)

    @app.post("/api/i")
    async def whoami(request: Request):
        payload = await request.json()
        if payload.get("i") is None:
            return JSONResponse(
                status_code=401,
                content={
                    "error": {
                        "id": "b0a7f5f8",
                        "code": "CREDENTIAL_REQUIRED",
                        "message": "Credential required.",
                        "kind": "client",
                        "info": {},
                    }
                },
            )
        return {"token": payload["i"]}

    return app


@pytest.mark.asyncio
async def test_in_process_server_round_trip():
    http = httpx.AsyncClient(transport=httpx.ASGITransport(app=_asgi_app()))
    async with APIClient("http://testserver", i="K", fetch=HTTPXTransport(http)) as client:
        user = await client.request("users/show", {"userId": "42"})
        assert user == {"id": "42", "i": "K", "cookie": None}

        assert await client.request("notes/delete", {"noteId": "n"}) is None
        assert await client.request("i") == {"token": "K"}

        with pytest.raises(APIError) as excinfo:
            await client.request("i", i=None)
        assert excinfo.value.code == "CREDENTIAL_REQUIRED"
        assert is_api_error(excinfo.value)
    await http.aclose()


class FakeAdapter(requests.adapters.BaseAdapter):
    def __init__(self, status=200, payload=None):
        super().__init__()
        self.status = status
        self.payload = payload
        self.requests = []

    def send(self, request, **kwargs):
        self.requests.append((request, kwargs))
        response = requests.Response()
        response.status_code = self.status
        response._content = b"" if self.payload is None else json.dumps(self.payload).encode("utf-8")
        response.headers["Content-Type"] = "application/json"
        response.encoding = "utf-8"
        response.url = request.url
        response.request = request
        return response

    def close(self):
        pass


def _session_with(adapter):
    session = requests.Session()
    session.trust_env = False
    session.mount("https://", adapter)
    session.cookies.set("session", "abc")
    return session


@pytest.mark.asyncio
async def test_requests_transport_wire_shape():
    adapter = FakeAdapter(200, {"id": "42"})
    transport = RequestsTransport(_session_with(adapter), timeout=4.0)
    client = APIClient("https://x.test", i="K", fetch=transport)

    assert await client.request("users/show", {"userId": "42"}) == {"id": "42"}

    request, kwargs = adapter.requests[0]
    assert request.method == "POST"
    assert request.url == "https://x.test/api/users/show"
    assert json.loads(request.body) == {"userId": "42", "i": "K"}
    assert request.headers["Content-Type"] == "application/json"
    assert request.headers["Cache-Control"] == "no-cache"
    assert "Cookie" not in request.headers
    assert kwargs["timeout"] == 4.0


@pytest.mark.asyncio
async def test_requests_transport_sends_cookies_unless_omitted():
    adapter = FakeAdapter(204)
    transport = RequestsTransport(_session_with(adapter))

    response = await transport("https://x.test/api/meta", method="POST", body="{}")

    assert response.status == 204
    assert adapter.requests[0][0].headers["Cookie"] == "session=abc"


@pytest.mark.asyncio
async def test_requests_transport_error_status():
    adapter = FakeAdapter(500, {"error": {"code": "INTERNAL_ERROR", "kind": "server", "id": "z"}})
    client = APIClient("https://x.test", fetch=RequestsTransport(_session_with(adapter)))

    with pytest.raises(APIError) as excinfo:
        await client.request("meta")

    assert excinfo.value.is_server_error
    assert excinfo.value.id == "z"


def test_default_requests_session_ignores_environment():
    transport = RequestsTransport()
    assert transport.session.trust_env is False
