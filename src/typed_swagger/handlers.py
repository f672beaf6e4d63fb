"""Typed JSON handlers for Flask routes.

``JSONHandler`` wraps a callback returning ``(value, status_code)`` and
encodes the value as JSON. ``JSONPayloadHandler`` additionally decodes the
request body into a typed payload before calling the callback. Both expose
their types through ``ResponseTyper`` / ``PayloadTyper`` so the document
assembler can describe the route.

Usage:

    def get_widget(request, id: str) -> tuple[Widget, int]:
        return Widget(id=id, count=1), 200

    app.add_url_rule("/widgets/<id>", view_func=JSONHandler(get_widget))
"""

import functools
import inspect
import logging
from typing import Any, Callable, Generic, Protocol, TypeVar, get_args, get_origin, get_type_hints, runtime_checkable

from flask import Response, request
from pydantic import TypeAdapter, ValidationError

logger = logging.getLogger(__name__)

PayloadT = TypeVar("PayloadT")
ResponseT = TypeVar("ResponseT")

InvalidJSONPayloadHandler = Callable[[Exception], tuple[Any, int]]

JSON_MIMETYPE = "application/json"


def _invalid_json_payload(err: Exception) -> tuple[Any, int]:
    return "Invalid payload", 502


_default_invalid_json_payload_handler: InvalidJSONPayloadHandler = _invalid_json_payload

_any_encoder = TypeAdapter(Any)


def set_default_invalid_json_payload_handler(fn: InvalidJSONPayloadHandler) -> None:
    """Replace the process-wide fallback used when a request body fails to decode.

    Meant to be called once at start-up, before requests are served.
    """
    global _default_invalid_json_payload_handler
    _default_invalid_json_payload_handler = fn


def get_default_invalid_json_payload_handler() -> InvalidJSONPayloadHandler:
    return _default_invalid_json_payload_handler


@runtime_checkable
class ResponseTyper(Protocol):
    """A handler that declares the type of its response body."""

    def response_type(self) -> Any: ...


@runtime_checkable
class PayloadTyper(Protocol):
    """A handler that declares the type of its request body."""

    def payload_type(self) -> Any: ...


class JSONHandler(Generic[ResponseT]):
    """Flask view encoding the callback's result as JSON.

    The callback is called as ``fn(request, **path_params)`` and must return
    ``(value, status_code)``.
    """

    def __init__(self, fn: Callable[..., tuple[ResponseT, int]], response_type: Any = None):
        self.fn = fn
        self._response_type = response_type if response_type is not None else _infer_response_type(fn)
        self._encoder = TypeAdapter(self._response_type)
        functools.update_wrapper(self, fn)

    def __call__(self, **path_params) -> Response:
        value, status_code = self.fn(request, **path_params)
        return _json_response(self._encoder, value, status_code)

    def response_type(self) -> Any:
        return self._response_type


class JSONPayloadHandler(Generic[PayloadT, ResponseT]):
    """Flask view decoding a typed JSON body, then encoding the callback's result.

    The callback is called as ``fn(request, payload, **path_params)``. When the
    body cannot be decoded the callback is skipped and the invalid payload
    handler produces the response instead: the one passed here, or else the
    process-wide default at the time of the request.
    """

    def __init__(
        self,
        fn: Callable[..., tuple[ResponseT, int]],
        payload_type: Any = None,
        response_type: Any = None,
        invalid_payload_handler: InvalidJSONPayloadHandler | None = None,
    ):
        self.fn = fn
        self.invalid_payload_handler = invalid_payload_handler
        self._payload_type = payload_type if payload_type is not None else _infer_payload_type(fn)
        self._response_type = response_type if response_type is not None else _infer_response_type(fn)
        self._decoder = TypeAdapter(self._payload_type)
        self._encoder = TypeAdapter(self._response_type)
        functools.update_wrapper(self, fn)

    def __call__(self, **path_params) -> Response:
        try:
            payload = self._decoder.validate_json(request.get_data())
        except ValidationError as e:
            logger.debug("Invalid JSON payload for %r: %s", self.fn, e)
            fallback = self.invalid_payload_handler or _default_invalid_json_payload_handler
            value, status_code = fallback(e)
            return _json_response(_any_encoder, value, status_code)

        value, status_code = self.fn(request, payload, **path_params)
        return _json_response(self._encoder, value, status_code)

    def payload_type(self) -> Any:
        return self._payload_type

    def response_type(self) -> Any:
        return self._response_type


def _json_response(encoder: TypeAdapter, value: Any, status_code: int) -> Response:
    try:
        body = encoder.dump_json(value, by_alias=True)
    except (ValueError, TypeError):
        logger.exception("Error encoding response body")
        return Response(status=500, mimetype=JSON_MIMETYPE)
    return Response(body, status=status_code, mimetype=JSON_MIMETYPE)


def _infer_response_type(fn: Callable) -> Any:
    ret = _hints(fn).get("return")
    args = get_args(ret)
    if get_origin(ret) is tuple and len(args) == 2:
        return args[0]
    raise TypeError(
        f"Cannot infer response type of {fn!r}: annotate it as tuple[T, int] or pass response_type"
    )


def _infer_payload_type(fn: Callable) -> Any:
    params = list(inspect.signature(fn).parameters)
    name = "payload" if "payload" in params else (params[1] if len(params) > 1 else None)
    hints = _hints(fn)
    if name is None or name not in hints:
        raise TypeError(
            f"Cannot infer payload type of {fn!r}: annotate its payload parameter or pass payload_type"
        )
    return hints[name]


def _hints(fn: Callable) -> dict[str, Any]:
    try:
        return get_type_hints(fn, include_extras=True)
    except (NameError, TypeError):
        return {}
