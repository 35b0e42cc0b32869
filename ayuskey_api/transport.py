"""Transports used by :class:`ayuskey_api.client.APIClient`.

A transport is any awaitable callable with the signature::

    await fetch(url, method="POST", body="{...}", credentials="omit", cache="no-cache")

returning an object with an integer ``status`` attribute and an async
``json()`` method.  The keyword names mirror the browser ``fetch`` init
options so that test doubles stay small.  Transports own all network I/O,
timeouts and redirects; the client never retries or translates their errors.

Two implementations are provided:

* :class:`HTTPXTransport` (default) on top of ``httpx.AsyncClient``.
* :class:`RequestsTransport` on top of a ``requests.Session``; the blocking
  call runs in a worker thread.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Dict, Optional, Protocol

import httpx
import requests
from requests.structures import CaseInsensitiveDict

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


class TransportResponse(Protocol):
    """Minimal response envelope consumed by the client."""

    @property
    def status(self) -> int: ...

    async def json(self) -> Any: ...


class Transport(Protocol):
    def __call__(
        self,
        url: str,
        *,
        method: str = "GET",
        body: Optional[str] = None,
        credentials: Optional[str] = None,
        cache: Optional[str] = None,
    ) -> Awaitable[TransportResponse]: ...


def build_headers(*, body: Optional[str], cache: Optional[str]) -> Dict[str, str]:
    """Return request headers for a JSON call.

    ``Content-Type`` is only set when a body is present and ``cache="no-cache"``
    maps to ``Cache-Control: no-cache``.
    """

    headers: Dict[str, str] = {"Accept": "application/json"}
    if body is not None:
        headers["Content-Type"] = "application/json"
    if cache == "no-cache":
        headers["Cache-Control"] = "no-cache"
    return headers


# ----------------------------------------------------------------------
# httpx
class HTTPXResponse:
    def __init__(self, response: httpx.Response) -> None:
        self._response = response

    @property
    def status(self) -> int:
        return self._response.status_code

    @property
    def raw(self) -> httpx.Response:
        return self._response

    async def json(self) -> Any:
        await self._response.aread()
        return self._response.json()


class HTTPXTransport:
    """Default transport backed by :class:`httpx.AsyncClient`."""

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        *,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout, follow_redirects=False)

    @property
    def client(self) -> httpx.AsyncClient:
        return self._client

    async def __call__(
        self,
        url: str,
        *,
        method: str = "GET",
        body: Optional[str] = None,
        credentials: Optional[str] = None,
        cache: Optional[str] = None,
    ) -> HTTPXResponse:
        request = self._client.build_request(
            method,
            url,
            content=body.encode("utf-8") if body is not None else None,
            headers=build_headers(body=body, cache=cache),
        )
        if credentials == "omit" and "cookie" in request.headers:
            # build_request attaches the client's cookie jar
            del request.headers["cookie"]
        response = await self._client.send(request)
        return HTTPXResponse(response)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "HTTPXTransport":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()


# ----------------------------------------------------------------------
# requests
def build_session() -> requests.Session:
    session = requests.Session()
    # Environment proxies are ignored so behaviour does not depend on the shell.
    session.trust_env = False
    return session


class RequestsResponse:
    def __init__(self, response: requests.Response) -> None:
        self._response = response

    @property
    def status(self) -> int:
        return self._response.status_code

    @property
    def raw(self) -> requests.Response:
        return self._response

    async def json(self) -> Any:
        return self._response.json()


class RequestsTransport:
    """Transport for hosts that already share a :class:`requests.Session`."""

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        *,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self._owns_session = session is None
        self._session = session or build_session()
        self._timeout = timeout

    @property
    def session(self) -> requests.Session:
        return self._session

    async def __call__(
        self,
        url: str,
        *,
        method: str = "GET",
        body: Optional[str] = None,
        credentials: Optional[str] = None,
        cache: Optional[str] = None,
    ) -> RequestsResponse:
        return await asyncio.to_thread(self._send, url, method, body, credentials, cache)

    def _send(
        self,
        url: str,
        method: str,
        body: Optional[str],
        credentials: Optional[str],
        cache: Optional[str],
    ) -> RequestsResponse:
        headers = build_headers(body=body, cache=cache)
        data = body.encode("utf-8") if body is not None else None
        if credentials == "omit":
            # Prepared outside the session so its cookie jar is not merged in.
            merged: CaseInsensitiveDict = CaseInsensitiveDict(self._session.headers)
            merged.update(headers)
            prepared = requests.Request(method, url, data=data, headers=dict(merged)).prepare()
        else:
            prepared = self._session.prepare_request(
                requests.Request(method, url, data=data, headers=headers)
            )
        response = self._session.send(prepared, timeout=self._timeout, allow_redirects=False)
        return RequestsResponse(response)

    async def aclose(self) -> None:
        if self._owns_session:
            self._session.close()
