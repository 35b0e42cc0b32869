"""Typed client for the Ayuskey JSON-over-HTTP API."""

from .client import INHERIT, APIClient, ayuskey_client
from .errors import APIError, is_api_error
from .schema import Endpoint, Schema, Switch
from .transport import HTTPXTransport, RequestsTransport, Transport, TransportResponse

__all__ = [
    "APIClient",
    "APIError",
    "Endpoint",
    "HTTPXTransport",
    "INHERIT",
    "RequestsTransport",
    "Schema",
    "Switch",
    "Transport",
    "TransportResponse",
    "ayuskey_client",
    "is_api_error",
]
