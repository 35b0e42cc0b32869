"""Endpoint descriptors and caller-side response narrowing.

The client itself returns raw JSON.  Some endpoints answer with a different
shape depending on the request (``notes/show`` with ``{"detail": True}`` vs.
``{"detail": False}``), which a schema expresses with :class:`Switch`::

    schema = Schema([
        Endpoint("users/show", req=UsersShowReq, res=Switch(
            cases=[({"detail": True}, DetailedUser), ({"detail": False}, LiteUser)],
            default=DetailedUser,
        )),
    ])
    user = schema.parse_response("users/show", params, await client.request("users/show", params))

The first matching case wins.  A case matches when every key of its pattern is
present in the parameters with an equal literal.  ``Literal[...]`` values
match any of their arguments.  Nested mappings are matched recursively.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import (
    Any,
    Dict,
    Iterable,
    Iterator,
    Literal,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    Union,
    get_args,
    get_origin,
)

from pydantic import TypeAdapter

Pattern = Mapping[str, Any]


def _literal_matches(expected: Any, actual: Any) -> bool:
    if get_origin(expected) is Literal:
        return any(_literal_matches(option, actual) for option in get_args(expected))
    if isinstance(expected, Mapping):
        return isinstance(actual, Mapping) and pattern_matches(expected, actual)
    # True == 1 in Python; a literal only matches a value of the same type.
    if type(expected) is not type(actual):
        return False
    return expected == actual


def pattern_matches(pattern: Pattern, params: Optional[Mapping[str, Any]]) -> bool:
    params = params or {}
    for key, expected in pattern.items():
        if key not in params:
            return False
        if not _literal_matches(expected, params[key]):
            return False
    return True


@dataclass(frozen=True)
class Switch:
    """Response type chosen from the request parameters."""

    cases: Sequence[Tuple[Pattern, Any]]
    default: Any = Any

    def resolve(self, params: Optional[Mapping[str, Any]] = None) -> Any:
        for pattern, result in self.cases:
            if pattern_matches(pattern, params):
                return result
        return self.default


@dataclass(frozen=True)
class Endpoint:
    name: str
    req: Any = Dict[str, Any]
    res: Any = Any

    @property
    def is_switched(self) -> bool:
        return isinstance(self.res, Switch)

    def response_type(self, params: Optional[Mapping[str, Any]] = None) -> Any:
        if isinstance(self.res, Switch):
            return self.res.resolve(params)
        return self.res


@lru_cache(maxsize=256)
def _adapter(tp: Any) -> TypeAdapter:
    return TypeAdapter(tp)


class Schema(Mapping[str, Endpoint]):
    """Read-only catalogue of endpoints keyed by name."""

    def __init__(self, endpoints: Union[Iterable[Endpoint], Mapping[str, Endpoint]] = ()) -> None:
        if isinstance(endpoints, Mapping):
            items = list(endpoints.values())
        else:
            items = list(endpoints)
        self._endpoints: Dict[str, Endpoint] = {ep.name: ep for ep in items}

    def __getitem__(self, name: str) -> Endpoint:
        return self._endpoints[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._endpoints)

    def __len__(self) -> int:
        return len(self._endpoints)

    def response_type(self, endpoint: str, params: Optional[Mapping[str, Any]] = None) -> Any:
        """Return the response type ``endpoint`` produces for ``params``."""

        return self[endpoint].response_type(params)

    def parse_response(
        self,
        endpoint: str,
        params: Optional[Mapping[str, Any]],
        payload: Any,
    ) -> Any:
        """Validate ``payload`` against the narrowed response type.

        Raises :class:`pydantic.ValidationError` when the payload does not fit.
        """

        return _adapter(self.response_type(endpoint, params)).validate_python(payload)
