"""Route walker over a Flask application's URL map."""

import re
from dataclasses import dataclass
from typing import Any, Callable, Iterator

from flask import Flask

from typed_swagger.handlers import PayloadTyper, ResponseTyper

# <name>, <int:name>, <any(a, b):name>
WERKZEUG_PARAM_PATTERN = re.compile(r"<(?:[^<>]*:)?([^<>:]+)>")


@dataclass(frozen=True)
class RouteTypes:
    """Types a handler declares through its optional capabilities."""

    payload_type: Any = None
    response_type: Any = None

    @property
    def has_payload(self) -> bool:
        return self.payload_type is not None

    @property
    def has_response(self) -> bool:
        return self.response_type is not None

    @classmethod
    def of(cls, handler: Any) -> "RouteTypes":
        payload_type = handler.payload_type() if isinstance(handler, PayloadTyper) else None
        response_type = handler.response_type() if isinstance(handler, ResponseTyper) else None
        return cls(payload_type=payload_type, response_type=response_type)


@dataclass(frozen=True)
class RouteEntry:
    method: str
    path: str  # /users/{id}
    endpoint: str
    handler: Callable | None
    types: RouteTypes


def walk(app: Flask, exclude_endpoints: tuple[str, ...] | list[str] = ("static",)) -> Iterator[RouteEntry]:
    """Yield one entry per (rule, method) registered on ``app``.

    Rules come in registration order, methods sorted. HEAD added implicitly
    next to GET and OPTIONS provided automatically by Flask are skipped.
    """
    for rule in app.url_map.iter_rules():
        if rule.endpoint in exclude_endpoints:
            continue

        handler = app.view_functions.get(rule.endpoint)
        types = RouteTypes.of(handler)
        path = to_swagger_path(rule.rule)

        for method in sorted(rule.methods or ()):
            if method == "HEAD" and "GET" in rule.methods:
                continue
            if method == "OPTIONS" and getattr(rule, "provide_automatic_options", False):
                continue
            yield RouteEntry(method=method, path=path, endpoint=rule.endpoint, handler=handler, types=types)


def to_swagger_path(rule: str) -> str:
    """Rewrite a Werkzeug rule such as ``/users/<int:id>`` to ``/users/{id}``."""
    return WERKZEUG_PARAM_PATTERN.sub(lambda m: "{" + m.group(1).strip() + "}", rule)
