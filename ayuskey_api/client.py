"""Request dispatcher for the Ayuskey HTTP API.

Every endpoint is reached the same way: ``POST {origin}/api/{endpoint}`` with
a JSON body holding the parameters plus the reserved ``i`` credential field.

    client = APIClient("https://example.social", i="TOKEN")
    user = await client.request("users/show", {"userId": "42"})

:meth:`APIClient.request` returns an :class:`asyncio.Task` right away; the
in-flight counter is bumped before it returns and dropped once the task
settles, so ``client.pending_api_requests_count == 0`` means every call made so
far has finished.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional, Union

from .errors import APIError
from .transport import DEFAULT_TIMEOUT, HTTPXTransport, Transport

if TYPE_CHECKING:  # pragma: no cover
    from .config import ClientSettings

logger = logging.getLogger(__name__)


class _Inherit:
    """Marker for "use the client's default credential"."""

    def __repr__(self) -> str:
        return "INHERIT"


INHERIT = _Inherit()

Credential = Union[str, None, _Inherit]


class APIClient:
    """Client bound to one server origin and an optional default credential."""

    def __init__(
        self,
        origin: str,
        i: Optional[str] = None,
        fetch: Optional[Transport] = None,
        *,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.pending_api_requests_count = 0
        self.origin = origin.rstrip("/")
        self.i = i
        self._owns_fetch = not fetch
        self.fetch: Transport = fetch or HTTPXTransport(timeout=timeout)
        self._idle_waiters: List[asyncio.Future] = []

    @classmethod
    def from_settings(
        cls,
        settings: Optional["ClientSettings"] = None,
        fetch: Optional[Transport] = None,
    ) -> "APIClient":
        """Create a client from ``settings.toml``/environment values."""

        if settings is None:
            from .config import load_client_settings

            settings = load_client_settings()
        return cls(settings.origin, i=settings.token, fetch=fetch, timeout=settings.timeout)

    # ------------------------------------------------------------------
    def request(
        self,
        endpoint: str,
        params: Optional[Mapping[str, Any]] = None,
        *,
        i: Credential = INHERIT,
    ) -> "asyncio.Task[Any]":
        """Call ``endpoint`` and return a task resolving to the decoded body.

        ``i`` overrides the client credential: leave it out to inherit
        :attr:`i`, pass ``None`` to send ``"i": null`` (an anonymous call) or a
        string to send that token.

        The task resolves to the JSON value for ``200`` and to ``None`` for
        ``204``.  Any other status raises :class:`APIError`.  Errors from the
        transport, including invalid JSON, are raised unchanged.
        """

        loop = asyncio.get_running_loop()
        payload: Dict[str, Any] = dict(params or {})
        payload["i"] = self.i if isinstance(i, _Inherit) else i
        url = f"{self.origin}/api/{endpoint}"

        self.pending_api_requests_count += 1
        task = loop.create_task(self._dispatch(endpoint, url, payload))
        task.add_done_callback(self._on_settled)
        return task

    async def _dispatch(self, endpoint: str, url: str, payload: Dict[str, Any]) -> Any:
        body = json.dumps(payload)
        logger.debug("POST %s", url)
        res = await self.fetch(
            url,
            method="POST",
            body=body,
            credentials="omit",
            cache="no-cache",
        )
        if res.status == 204:
            return None
        data = await res.json()
        if res.status == 200:
            return data
        error = APIError.from_response(data, res.status)
        logger.debug("%s failed with HTTP %s (%s)", endpoint, res.status, error.code)
        raise error

    def _on_settled(self, _task: "asyncio.Task[Any]") -> None:
        self.pending_api_requests_count -= 1
        if self.pending_api_requests_count == 0:
            waiters, self._idle_waiters = self._idle_waiters, []
            for waiter in waiters:
                if not waiter.done():
                    waiter.set_result(None)

    # ------------------------------------------------------------------
    @property
    def idle(self) -> bool:
        return self.pending_api_requests_count == 0

    async def wait_idle(self) -> None:
        """Wait until no request started through this client is in flight."""

        if self.idle:
            return
        waiter = asyncio.get_running_loop().create_future()
        self._idle_waiters.append(waiter)
        await waiter

    # ------------------------------------------------------------------
    async def aclose(self) -> None:
        """Close the default transport; a caller-supplied one is left open."""

        if self._owns_fetch:
            await self.fetch.aclose()  # type: ignore[attr-defined]

    async def __aenter__(self) -> "APIClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    def __repr__(self) -> str:
        return f"APIClient(origin={self.origin!r}, pending={self.pending_api_requests_count})"


def ayuskey_client(
    origin: str,
    i: Optional[str] = None,
    fetch: Optional[Transport] = None,
) -> APIClient:
    """Shorthand for ``APIClient(origin, i=i, fetch=fetch)``."""

    return APIClient(origin, i=i, fetch=fetch)
