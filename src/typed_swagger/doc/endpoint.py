"""HTTP endpoints serving the swagger document and a Swagger UI page."""

import logging
import threading
from typing import Callable, Generic, TypeVar

from flask import Blueprint, Flask, Response

from typed_swagger.config import DocumentConfig
from typed_swagger.doc.assembler import build_document

logger = logging.getLogger(__name__)

T = TypeVar("T")

SWAGGER_UI_VERSION = "5.17.14"

SWAGGER_UI_HTML = """<!doctype html>
<html>
  <head>
    <meta charset="utf-8">
    <title>{title} - API Docs</title>
    <link rel="stylesheet"
      href="https://unpkg.com/swagger-ui-dist@{version}/swagger-ui.css">
  </head>
  <body>
    <div id="swagger-ui"></div>
    <script src="https://unpkg.com/swagger-ui-dist@{version}/swagger-ui-bundle.js"></script>
    <script>
      window.onload = () => {{
        window.ui = SwaggerUIBundle({{
          url: '{spec_url}',
          dom_id: '#swagger-ui',
          deepLinking: true,
          presets: [SwaggerUIBundle.presets.apis],
          layout: "BaseLayout"
        }});
      }};
    </script>
  </body>
</html>"""


class OnceValue(Generic[T]):
    """Computes ``fn()`` on first call and returns that same object afterwards.

    Concurrent first callers block until the single computation finishes.
    ``fn`` runs at most once: if it raises, every call re-raises that error.
    """

    def __init__(self, fn: Callable[[], T]):
        self._fn = fn
        self._lock = threading.Lock()
        self._done = False
        self._value: T | None = None
        self._error: Exception | None = None

    def __call__(self) -> T:
        if not self._done:
            with self._lock:
                if not self._done:
                    try:
                        self._value = self._fn()
                    except Exception as e:
                        self._error = e
                    self._done = True
        if self._error is not None:
            raise self._error
        return self._value


def swagger_view(app: Flask, config: DocumentConfig | None = None) -> Callable[[], Response]:
    """Return a Flask view serving the document of ``app``.

    The document is built on the first request, once every route has been
    registered, and reused for the lifetime of the process.
    """
    document = OnceValue(lambda: build_document(app, config))

    def swagger_json() -> Response:
        doc = document()
        try:
            body = doc.to_json()
        except ValueError:
            logger.exception("Error encoding swagger document")
            return Response(status=500, mimetype="application/json")
        return Response(body, status=200, mimetype="application/json")

    swagger_json.document = document
    return swagger_json


def swagger_ui_html(config: DocumentConfig) -> str:
    return SWAGGER_UI_HTML.format(
        title=config.title,
        version=SWAGGER_UI_VERSION,
        spec_url=config.swagger_path,
    )


def swagger_blueprint(app: Flask, config: DocumentConfig | None = None) -> Blueprint:
    """Blueprint exposing the document at ``config.swagger_path`` and Swagger UI at ``config.docs_path``.

    Usage:

        app.register_blueprint(swagger_blueprint(app))
    """
    config = config or DocumentConfig()
    bp = Blueprint("swagger", __name__)
    bp.add_url_rule(config.swagger_path, "swagger_json", swagger_view(app, config), methods=["GET"])

    @bp.route(config.docs_path, methods=["GET"])
    def swagger_ui() -> Response:
        return Response(swagger_ui_html(config), mimetype="text/html")

    return bp
