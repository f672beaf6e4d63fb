"""Document assembler: Flask routes to a Swagger 2.0 document."""

import logging
import re

from flask import Flask

from typed_swagger.config import DocumentConfig
from typed_swagger.doc.walker import RouteEntry, walk
from typed_swagger.schema.base import Info, Operation, Parameter, PathItem, Response, Schema, SwaggerDoc
from typed_swagger.schema.builder import SchemaBuilder

logger = logging.getLogger(__name__)

PATH_PARAM_PATTERN = re.compile(r"{([^}]+)}")

# HTTP method -> PathItem slot. Anything else is dropped.
METHOD_SLOTS = {
    "GET": "get",
    "PUT": "put",
    "POST": "post",
    "DELETE": "delete",
    "OPTIONS": "options",
    "HEAD": "head",
    "PATCH": "patch",
}


def build_document(app: Flask, config: DocumentConfig | None = None) -> SwaggerDoc:
    """Walk every route of ``app`` and describe it in a new document."""
    config = config or DocumentConfig()
    doc = SwaggerDoc(
        info=Info(title=config.title, version=config.version),
        base_path=config.base_path,
    )
    builder = SchemaBuilder(doc.definitions)

    for entry in walk(app, exclude_endpoints=config.exclude_endpoints):
        path_item = doc.paths.setdefault(entry.path, PathItem())
        operation = build_operation(entry, builder)

        slot = METHOD_SLOTS.get(entry.method)
        if slot is not None:
            setattr(path_item, slot, operation)

    logger.debug("Built swagger document with %d paths, %d definitions", len(doc.paths), len(doc.definitions))
    return doc


def build_operation(entry: RouteEntry, builder: SchemaBuilder) -> Operation:
    """Build the operation for one route; body and response types go to the builder's table."""
    operation = Operation(operation_id=entry.endpoint, summary=_summary(entry.handler))

    if entry.types.has_payload:
        name = builder.add_definition(entry.types.payload_type)
        if name is not None:
            operation.parameters.append(
                Parameter(name=name, location="body", required=True, schema_=Schema.reference(name))
            )

    operation.parameters.extend(path_parameters(entry.path))

    if entry.types.has_response:
        name = builder.add_definition(entry.types.response_type)
        if name is not None:
            operation.responses = {"200": Response(description="OK", schema_=Schema.reference(name))}

    return operation


def path_parameters(path: str) -> list[Parameter]:
    """One required string path parameter per ``{name}`` in ``path``, left to right."""
    return [
        Parameter(name=name, location="path", required=True, type="string")
        for name in PATH_PARAM_PATTERN.findall(path)
    ]


def _summary(handler) -> str | None:
    doc = getattr(handler, "__doc__", None)
    if not doc:
        return None
    for line in doc.strip().splitlines():
        if line.strip():
            return line.strip()
    return None
