"""Swagger 2.0 document models.

The assembler builds these models and the HTTP endpoint serialises them with
``by_alias=True, exclude_none=True`` so that only populated keys are emitted.
"""

from pydantic import BaseModel, ConfigDict, Field

REF_PREFIX = "#/definitions/"


class Schema(BaseModel):
    """A Swagger schema object (the subset this library emits)."""

    model_config = ConfigDict(populate_by_name=True)

    ref: str | None = Field(default=None, alias="$ref")
    type: str | None = None  # boolean / integer / number / string / array / object
    format: str | None = None  # int8..int64, float, double, uuid, date
    items: "Schema | None" = None
    properties: dict[str, "Schema"] | None = None
    nullable: bool | None = None

    @classmethod
    def reference(cls, name: str) -> "Schema":
        return cls(ref=REF_PREFIX + name)


class Parameter(BaseModel):
    """A path or body parameter of an operation."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    location: str = Field(alias="in")  # path / body
    required: bool = True
    type: str | None = None
    schema_: Schema | None = Field(default=None, alias="schema")


class Response(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    description: str = ""
    schema_: Schema | None = Field(default=None, alias="schema")


class Operation(BaseModel):
    """A single method of a path item."""

    model_config = ConfigDict(populate_by_name=True)

    operation_id: str | None = Field(default=None, alias="operationId")
    summary: str | None = None
    parameters: list[Parameter] = []
    responses: dict[str, Response] | None = None


class PathItem(BaseModel):
    """All operations registered for one path, one slot per HTTP method."""

    get: Operation | None = None
    put: Operation | None = None
    post: Operation | None = None
    delete: Operation | None = None
    options: Operation | None = None
    head: Operation | None = None
    patch: Operation | None = None


class Info(BaseModel):
    title: str = "API"
    version: str = "1.0.0"


class SwaggerDoc(BaseModel):
    """Root of a Swagger 2.0 document."""

    model_config = ConfigDict(populate_by_name=True)

    swagger: str = "2.0"
    info: Info = Field(default_factory=Info)
    base_path: str | None = Field(default=None, alias="basePath")
    consumes: list[str] = ["application/json"]
    produces: list[str] = ["application/json"]
    definitions: dict[str, Schema] = {}
    paths: dict[str, PathItem] = {}

    def to_dict(self) -> dict:
        """Return the document as plain JSON-compatible data."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    def to_json(self, indent: int | None = None) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True, indent=indent)
