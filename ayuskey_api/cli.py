"""Issue a single API call from the command line.

    ayuskey-api users/show -p userId=42
    ayuskey-api meta --anonymous --origin https://example.social
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import Any, Dict, List, Optional

import httpx

from .client import INHERIT, APIClient, Credential
from .config import configure_logging, load_client_settings
from .errors import APIError


def _parse_value(raw: str) -> Any:
    try:
        return json.loads(raw)
    except ValueError:
        return raw


def build_params(raw_json: Optional[str], pairs: List[str]) -> Dict[str, Any]:
    params: Dict[str, Any] = {}
    if raw_json:
        loaded = json.loads(raw_json)
        if not isinstance(loaded, dict):
            raise ValueError("--params must be a JSON object")
        params.update(loaded)
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise ValueError(f"expected KEY=VALUE, got {pair!r}")
        params[key] = _parse_value(value)
    return params


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="ayuskey-api", description="Call an Ayuskey API endpoint.")
    parser.add_argument("endpoint", help="Endpoint name, e.g. users/show.")
    parser.add_argument(
        "-p",
        "--param",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Request parameter; VALUE is parsed as JSON when possible.",
    )
    parser.add_argument("--params", help="JSON object merged before any --param.")
    parser.add_argument("--origin", help="Server origin (defaults to settings/AYUSKEY_ORIGIN).")
    auth = parser.add_mutually_exclusive_group()
    auth.add_argument("--token", help="Credential sent as 'i'.")
    auth.add_argument("--anonymous", action="store_true", help="Send 'i': null.")
    parser.add_argument("--log-level", help="Logging level (defaults to AYUSKEY_LOG_LEVEL or INFO).")
    return parser


async def _call(client: APIClient, endpoint: str, params: Dict[str, Any], i: Credential) -> Any:
    async with client:
        return await client.request(endpoint, params, i=i)


def main(argv: Optional[List[str]] = None, client: Optional[APIClient] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    try:
        params = build_params(args.params, args.param)
    except ValueError as exc:
        parser.error(str(exc))

    if client is None:
        settings = load_client_settings()
        if args.origin:
            settings.origin = args.origin
        client = APIClient.from_settings(settings)

    i: Credential = INHERIT
    if args.anonymous:
        i = None
    elif args.token:
        i = args.token

    try:
        result = asyncio.run(_call(client, args.endpoint, params, i))
    except APIError as exc:
        print(f"{args.endpoint}: {exc} [{exc.kind or 'unknown'}, id={exc.id}]", file=sys.stderr)
        return 1
    except (httpx.HTTPError, ValueError) as exc:
        print(f"{args.endpoint}: {exc.__class__.__name__}: {exc}", file=sys.stderr)
        return 2

    print(json.dumps(result, indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
