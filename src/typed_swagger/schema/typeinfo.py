"""Type classifier: Python annotations to an explicit descriptor tree.

``describe`` inspects an annotation once and returns an immutable tree with
one node per shape (primitive, nullable, array, struct). The schema builder
walks that tree; it never looks at the annotation itself.
"""

import collections.abc
import dataclasses
import datetime
import logging
import types
import typing
import uuid
from dataclasses import dataclass
from typing import Annotated, Any, Union, get_args, get_origin, get_type_hints, is_typeddict

from pydantic import BaseModel

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Width:
    """Marks an ``int`` or ``float`` annotation with a bit width."""

    bits: int
    unsigned: bool = False


Int8 = Annotated[int, Width(8)]
Int16 = Annotated[int, Width(16)]
Int32 = Annotated[int, Width(32)]
Int64 = Annotated[int, Width(64)]
UInt8 = Annotated[int, Width(8, unsigned=True)]
UInt16 = Annotated[int, Width(16, unsigned=True)]
UInt32 = Annotated[int, Width(32, unsigned=True)]
UInt64 = Annotated[int, Width(64, unsigned=True)]
Float32 = Annotated[float, Width(32)]
Float64 = Annotated[float, Width(64)]


@dataclass(frozen=True)
class Primitive:
    name: str
    schema_type: str  # boolean / integer / number / string
    width: int | None = None
    format: str | None = None


@dataclass(frozen=True)
class Nullable:
    name: str
    elem: "TypeDescriptor"


@dataclass(frozen=True)
class Array:
    name: str
    elem: "TypeDescriptor"


@dataclass(frozen=True)
class Field:
    name: str
    key: str  # serialized property name
    type: "TypeDescriptor"


@dataclass(frozen=True)
class Struct:
    name: str
    fields: tuple[Field, ...] = ()


@dataclass(frozen=True)
class Reference:
    """A struct already being described further up the tree."""

    name: str
    target: type


@dataclass(frozen=True)
class Unsupported:
    name: str
    reason: str


TypeDescriptor = Primitive | Nullable | Array | Struct | Reference | Unsupported

# Matched by exact class, subclasses (e.g. datetime.datetime) do not qualify.
SPECIAL_TYPES = {
    uuid.UUID: Primitive("UUID", "string", format="uuid"),
    datetime.date: Primitive("date", "string", format="date"),
}

PRIMITIVES = {
    bool: Primitive("bool", "boolean"),
    int: Primitive("int", "integer", width=64),
    float: Primitive("float", "number", width=64),
    str: Primitive("str", "string"),
}

SEQUENCE_ORIGINS = (
    list,
    set,
    frozenset,
    collections.abc.Sequence,
    collections.abc.MutableSequence,
    collections.abc.Set,
    collections.abc.MutableSet,
)

_cache: dict[type, TypeDescriptor] = {}


def describe(annotation: Any) -> TypeDescriptor:
    """Classify ``annotation`` into a descriptor tree.

    Top-level descriptors of classes are cached, so a struct is only
    inspected once per process.
    """
    if isinstance(annotation, type):
        cached = _cache.get(annotation)
        if cached is not None:
            return cached
        descriptor = _describe(annotation, ())
        _cache[annotation] = descriptor
        return descriptor
    return _describe(annotation, ())


def type_name(annotation: Any) -> str:
    """Name under which ``annotation`` is stored in the definitions table."""
    return describe(annotation).name


def _describe(tp: Any, stack: tuple[type, ...]) -> TypeDescriptor:
    if isinstance(tp, str) or isinstance(tp, typing.ForwardRef):
        return Unsupported(str(tp), "unresolved forward reference")

    special = SPECIAL_TYPES.get(tp) if _hashable(tp) else None
    if special is not None:
        return special

    if isinstance(tp, typing.NewType):
        return _describe(tp.__supertype__, stack)

    origin = get_origin(tp)
    args = get_args(tp)

    if origin is Annotated:
        return _describe_annotated(args[0], args[1:], stack)

    if origin is Union or origin is types.UnionType:
        members = [a for a in args if a is not type(None)]
        if len(members) == 1 and len(members) < len(args):
            elem = _describe(members[0], stack)
            return Nullable("*" + elem.name, elem)
        return Unsupported(_display(tp), "union of several types")

    if origin in SEQUENCE_ORIGINS:
        if not args:
            return Unsupported(_display(tp), "sequence without element type")
        elem = _describe(args[0], stack)
        return Array("[]" + elem.name, elem)

    if origin is tuple:
        return _describe_tuple(tp, args, stack)

    if tp in SEQUENCE_ORIGINS or tp is tuple:
        return Unsupported(_display(tp), "sequence without element type")

    if _hashable(tp) and tp in PRIMITIVES:
        return PRIMITIVES[tp]

    if isinstance(tp, type) and origin is None:
        kind = _primitive_kind(tp)
        if kind is not None:
            return dataclasses.replace(PRIMITIVES[kind], name=_class_name(tp))
        if tp in stack:
            return Reference(_class_name(tp), tp)
        if dataclasses.is_dataclass(tp):
            return _describe_dataclass(tp, stack + (tp,))
        if issubclass(tp, BaseModel):
            return _describe_model(tp, stack + (tp,))
        if is_typeddict(tp):
            return _describe_typeddict(tp, stack + (tp,))

    return Unsupported(_display(tp), "unsupported kind")


def _describe_annotated(tp: Any, metadata: tuple, stack: tuple[type, ...]) -> TypeDescriptor:
    width = next((m for m in metadata if isinstance(m, Width)), None)
    if width is None:
        return _describe(tp, stack)

    if tp is int:
        signed = "u" if width.unsigned else ""
        return Primitive(f"{signed}int{width.bits}", "integer", width=width.bits)
    if tp is float:
        return Primitive(f"float{width.bits}", "number", width=width.bits)
    return Unsupported(_display(tp), f"width marker on {_display(tp)}")


def _describe_tuple(tp: Any, args: tuple, stack: tuple[type, ...]) -> TypeDescriptor:
    if not args or args == ((),):
        return Unsupported(_display(tp), "sequence without element type")
    if len(args) == 2 and args[1] is Ellipsis:
        elem = _describe(args[0], stack)
        return Array("[]" + elem.name, elem)
    if all(a == args[0] for a in args):
        elem = _describe(args[0], stack)
        return Array("[]" + elem.name, elem)
    return Unsupported(_display(tp), "heterogeneous tuple")


def _describe_dataclass(cls: type, stack: tuple[type, ...]) -> Struct:
    hints = _type_hints(cls)
    fields = tuple(
        Field(f.name, f.name, _describe(hints.get(f.name, f.type), stack))
        for f in dataclasses.fields(cls)
    )
    return Struct(_class_name(cls), fields)


def _describe_model(cls: type[BaseModel], stack: tuple[type, ...]) -> Struct:
    fields = []
    for name, info in cls.model_fields.items():
        annotation = info.annotation
        if info.metadata:
            annotation = Annotated[(annotation, *info.metadata)]
        key = info.serialization_alias or info.alias or name
        fields.append(Field(name, key, _describe(annotation, stack)))
    return Struct(_class_name(cls), tuple(fields))


def _describe_typeddict(cls: type, stack: tuple[type, ...]) -> Struct:
    fields = tuple(
        Field(name, name, _describe(annotation, stack))
        for name, annotation in _type_hints(cls).items()
    )
    return Struct(_class_name(cls), fields)


def _type_hints(cls: type) -> dict[str, Any]:
    try:
        return get_type_hints(cls, include_extras=True)
    except (NameError, TypeError) as e:
        logger.warning("Cannot resolve type hints of %s: %s", cls.__qualname__, e)
        return dict(getattr(cls, "__annotations__", {}))


def _primitive_kind(cls: type) -> type | None:
    """Builtin primitive a class derives from, e.g. ``int`` for an ``IntEnum``."""
    for kind in (bool, int, float, str):
        if issubclass(cls, kind):
            return kind
    return None


def _class_name(cls: type) -> str:
    return cls.__name__.replace("/", ".")


def _display(tp: Any) -> str:
    if isinstance(tp, type):
        return tp.__name__
    return repr(tp)


def _hashable(tp: Any) -> bool:
    try:
        hash(tp)
    except TypeError:
        return False
    return True
