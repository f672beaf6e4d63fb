import json
import uuid
from dataclasses import dataclass
from typing import Any

import pytest
from flask import Flask

from typed_swagger.handlers import (
    JSONHandler,
    JSONPayloadHandler,
    PayloadTyper,
    ResponseTyper,
    get_default_invalid_json_payload_handler,
    set_default_invalid_json_payload_handler,
)


@dataclass
class Widget:
    id: str
    count: int


@dataclass
class NewWidget:
    name: str
    tags: list[str]


@pytest.fixture
def restore_default_handler():
    original = get_default_invalid_json_payload_handler()
    yield
    set_default_invalid_json_payload_handler(original)


def _client(rule: str, view, methods=("GET",)):
    app = Flask(__name__)
    app.add_url_rule(rule, view_func=view, methods=list(methods))
    return app.test_client()


class TestTypeInference:
    def test_response_type_from_annotation(self):
        def get_widget(request) -> tuple[Widget, int]:
            return Widget(id="a", count=1), 200

        assert JSONHandler(get_widget).response_type() is Widget

    def test_explicit_types_win(self):
        handler = JSONPayloadHandler(lambda request, payload: (payload, 200), payload_type=NewWidget, response_type=NewWidget)
        assert handler.payload_type() is NewWidget
        assert handler.response_type() is NewWidget

    def test_payload_type_from_second_parameter(self):
        def create(request, body: NewWidget) -> tuple[Widget, int]:
            return Widget(id=body.name, count=0), 201

        assert JSONPayloadHandler(create).payload_type() is NewWidget

    def test_missing_annotation_raises(self):
        with pytest.raises(TypeError, match="response type"):
            JSONHandler(lambda request: ("x", 200))
        with pytest.raises(TypeError, match="payload type"):
            JSONPayloadHandler(lambda request, payload: ("x", 200), response_type=str)

    def test_capabilities(self):
        def create(request, payload: NewWidget) -> tuple[Widget, int]:
            return Widget(id=payload.name, count=0), 201

        assert isinstance(JSONHandler(create, response_type=Widget), ResponseTyper)
        assert not isinstance(JSONHandler(create, response_type=Widget), PayloadTyper)
        assert isinstance(JSONPayloadHandler(create), PayloadTyper)
        assert isinstance(JSONPayloadHandler(create), ResponseTyper)

    def test_wraps_callback_name_and_doc(self):
        def get_widget(request) -> tuple[Widget, int]:
            """Fetch a widget."""
            return Widget(id="a", count=1), 200

        handler = JSONHandler(get_widget)
        assert handler.__name__ == "get_widget"
        assert handler.__doc__ == "Fetch a widget."


class TestJSONHandler:
    def test_encodes_value_with_status(self):
        def get_widget(request, id: str) -> tuple[Widget, int]:
            return Widget(id=id, count=3), 203

        resp = _client("/widgets/<id>", JSONHandler(get_widget)).get("/widgets/w1")

        assert resp.status_code == 203
        assert resp.mimetype == "application/json"
        assert resp.get_json() == {"id": "w1", "count": 3}

    def test_callback_sees_request(self):
        def search(request) -> tuple[list[str], int]:
            return [request.args["q"]], 200

        resp = _client("/search", JSONHandler(search)).get("/search?q=bolt")
        assert resp.get_json() == ["bolt"]

    def test_encode_failure_is_logged(self, caplog):
        resp = _client("/broken", JSONHandler(lambda request: (object(), 200), response_type=Any)).get("/broken")

        assert resp.status_code == 500
        assert resp.data == b""
        assert "Error encoding response body" in caplog.text


class TestJSONPayloadHandler:
    def test_decodes_payload(self):
        def create(request, payload: NewWidget) -> tuple[Widget, int]:
            return Widget(id=payload.name, count=len(payload.tags)), 201

        resp = _client("/widgets", JSONPayloadHandler(create), methods=["POST"]).post(
            "/widgets", data=json.dumps({"name": "bolt", "tags": ["a", "b"]})
        )

        assert resp.status_code == 201
        assert resp.get_json() == {"id": "bolt", "count": 2}

    def test_path_params_passed_through(self):
        def rename(request, payload: NewWidget, id: uuid.UUID) -> tuple[dict, int]:
            return {"id": str(id), "name": payload.name}, 200

        widget_id = uuid.uuid4()
        resp = _client("/widgets/<uuid:id>", JSONPayloadHandler(rename), methods=["PUT"]).put(
            f"/widgets/{widget_id}", json={"name": "nut", "tags": []}
        )

        assert resp.get_json() == {"id": str(widget_id), "name": "nut"}

    def test_invalid_payload_uses_default_fallback(self):
        calls = []

        def create(request, payload: NewWidget) -> tuple[Widget, int]:
            calls.append(payload)
            return Widget(id="x", count=0), 201

        client = _client("/widgets", JSONPayloadHandler(create), methods=["POST"])
        resp = client.post("/widgets", data="{not json")

        assert calls == []
        assert resp.status_code == 502
        assert resp.get_json() == "Invalid payload"

    def test_wrong_shape_uses_fallback(self):
        calls = []

        def create(request, payload: NewWidget) -> tuple[Widget, int]:
            calls.append(payload)
            return Widget(id="x", count=0), 201

        resp = _client("/widgets", JSONPayloadHandler(create), methods=["POST"]).post("/widgets", json={"tags": 5})

        assert calls == []
        assert resp.status_code == 502

    def test_replaced_default_applies_at_request_time(self, restore_default_handler):
        def create(request, payload: NewWidget) -> tuple[Widget, int]:
            return Widget(id="x", count=0), 201

        client = _client("/widgets", JSONPayloadHandler(create), methods=["POST"])
        set_default_invalid_json_payload_handler(lambda err: ({"error": "bad body"}, 400))

        resp = client.post("/widgets", data="")

        assert resp.status_code == 400
        assert resp.get_json() == {"error": "bad body"}

    def test_handler_fallback_overrides_default(self, restore_default_handler):
        set_default_invalid_json_payload_handler(lambda err: ("default", 400))

        def create(request, payload: NewWidget) -> tuple[Widget, int]:
            return Widget(id="x", count=0), 201

        handler = JSONPayloadHandler(create, invalid_payload_handler=lambda err: ({"detail": "nope"}, 422))
        resp = _client("/widgets", handler, methods=["POST"]).post("/widgets", data="42")

        assert resp.status_code == 422
        assert resp.get_json() == {"detail": "nope"}
