"""Schema builder: descriptor trees to Swagger schema nodes.

Named types are registered into a definitions table shared by the whole
document. Every node handed out is freshly built, so marking one use of a
type as nullable never leaks into another use or into the table.
"""

import logging
from typing import Any

from typed_swagger.schema.base import Schema
from typed_swagger.schema.typeinfo import (
    Array,
    Nullable,
    Primitive,
    Reference,
    Struct,
    TypeDescriptor,
    Unsupported,
    describe,
)

logger = logging.getLogger(__name__)

INTEGER_FORMATS = {8: "int8", 16: "int16", 32: "int32", 64: "int64"}
NUMBER_FORMATS = {32: "float", 64: "double"}


class SchemaBuilder:
    """Builds schemas and owns the definitions table they reference."""

    def __init__(self, definitions: dict[str, Schema] | None = None):
        self.definitions = definitions if definitions is not None else {}
        self._building: set[str] = set()

    def add_definition(self, annotation: Any) -> str | None:
        """Register ``annotation`` in the definitions table.

        Returns the definition name, or None when the type has no schema.
        A name already present is not rebuilt.
        """
        return self.register(describe(annotation))

    def register(self, descriptor: TypeDescriptor) -> str | None:
        name = descriptor.name
        if name in self.definitions or name in self._building:
            return name

        self._building.add(name)
        try:
            schema = self.build(descriptor)
        finally:
            self._building.discard(name)

        if schema is None:
            return None
        self.definitions[name] = schema
        return name

    def build(self, descriptor: TypeDescriptor) -> Schema | None:
        """Return a new schema for ``descriptor``, or None if unsupported."""
        if isinstance(descriptor, Primitive):
            return _primitive(descriptor)
        if isinstance(descriptor, Nullable):
            schema = self.build(descriptor.elem)
            if schema is None:
                return None
            return schema.model_copy(update={"nullable": True})
        if isinstance(descriptor, Array):
            items = self.build(descriptor.elem)
            if items is None:
                return None
            return Schema(type="array", items=items)
        if isinstance(descriptor, Struct):
            return self._struct(descriptor)
        if isinstance(descriptor, Reference):
            if descriptor.name not in self.definitions and descriptor.name not in self._building:
                self.register(describe(descriptor.target))
            return Schema.reference(descriptor.name)

        logger.warning("Unknown kind for swagger property: %s (%s)", descriptor.name, descriptor.reason)
        return None

    def _struct(self, descriptor: Struct) -> Schema:
        properties = {}
        for field in descriptor.fields:
            schema = self.build(field.type)
            if schema is not None:
                properties[field.key] = schema
        return Schema(type="object", properties=properties)


def _primitive(descriptor: Primitive) -> Schema:
    if descriptor.schema_type == "integer":
        return Schema(type="integer", format=INTEGER_FORMATS.get(descriptor.width))
    if descriptor.schema_type == "number":
        return Schema(type="number", format=NUMBER_FORMATS.get(descriptor.width))
    return Schema(type=descriptor.schema_type, format=descriptor.format)
