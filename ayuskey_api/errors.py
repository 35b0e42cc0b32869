"""Error values raised by :class:`ayuskey_api.client.APIClient`.

Two kinds of failure reach callers of ``APIClient.request``:

* :class:`APIError` for any HTTP status other than ``200``/``204``.  The
  server-provided ``error`` object is copied onto the exception.
* Anything raised by the transport (connection errors, invalid JSON, ...).
  Those propagate unchanged and are never wrapped.

Use :func:`is_api_error` to tell them apart.  It checks a process-unique
marker which only :meth:`APIError.from_response` sets, so the server cannot
forge a recognisable error through the fields of its JSON payload.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, ConfigDict, ValidationError

logger = logging.getLogger(__name__)

# Not a string: cannot collide with a JSON key and never survives json.dumps.
_MK_API_ERROR = object()


class ErrorPayload(BaseModel):
    """Shape of the ``error`` member of a non-success response body."""

    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    id: Optional[str] = None
    code: Optional[str] = None
    message: Optional[str] = None
    kind: Optional[str] = None
    info: Any = None

    @classmethod
    def from_body(cls, body: Any) -> "ErrorPayload":
        """Extract ``body["error"]``, tolerating missing or malformed data."""

        error = body.get("error") if isinstance(body, Mapping) else None
        if not isinstance(error, Mapping):
            return cls()
        try:
            return cls.model_validate(dict(error))
        except ValidationError:
            logger.debug("Malformed error payload; keeping raw values", exc_info=True)
            return cls.model_construct(**{str(k): v for k, v in error.items()})


class APIError(Exception):
    """Raised when the server answers with a non-success HTTP status."""

    def __init__(
        self,
        id: Optional[str] = None,
        code: Optional[str] = None,
        message: Optional[str] = None,
        kind: Optional[str] = None,
        info: Any = None,
        *,
        status: Optional[int] = None,
        payload: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.id = id
        self.code = code
        self.message = message
        self.kind = kind
        self.info = info
        self.status = status
        self.payload: Dict[str, Any] = payload or {}
        self._mark: object = None
        super().__init__(str(self))

    @classmethod
    def from_response(cls, body: Any, status: int) -> "APIError":
        """Build a recognisable error from a decoded response body."""

        parsed = ErrorPayload.from_body(body)
        payload = dict(parsed.model_extra or {})
        payload.update(
            id=parsed.id,
            code=parsed.code,
            message=parsed.message,
            kind=parsed.kind,
            info=parsed.info,
        )
        error = cls(
            id=parsed.id,
            code=parsed.code,
            message=parsed.message,
            kind=parsed.kind,
            info=parsed.info,
            status=status,
            payload=payload,
        )
        error._mark = _MK_API_ERROR
        return error

    @property
    def is_client_error(self) -> bool:
        return self.kind == "client"

    @property
    def is_server_error(self) -> bool:
        return self.kind == "server"

    def __str__(self) -> str:
        if self.code or self.message:
            return f"{self.code or 'ERROR'}: {self.message or ''}".rstrip()
        return f"API error (HTTP {self.status})"

    def __repr__(self) -> str:
        return (
            f"APIError(id={self.id!r}, code={self.code!r}, kind={self.kind!r}, "
            f"status={self.status!r})"
        )


def is_api_error(reason: Any) -> bool:
    """Return ``True`` if ``reason`` was raised for a non-success response."""

    return isinstance(reason, APIError) and reason._mark is _MK_API_ERROR
