"""Document configuration."""

import os

from pydantic import BaseModel


class DocumentConfig(BaseModel):
    """Settings for the generated document and the endpoints serving it."""

    title: str = "API"
    version: str = "1.0.0"
    base_path: str | None = None
    exclude_endpoints: list[str] = ["static"]
    swagger_path: str = "/swagger.json"
    docs_path: str = "/docs"

    @classmethod
    def from_env(cls) -> "DocumentConfig":
        """Load config from environment variables, keeping defaults for unset ones."""
        return cls(
            title=os.getenv("TYPED_SWAGGER_TITLE", "API"),
            version=os.getenv("TYPED_SWAGGER_VERSION", "1.0.0"),
            base_path=os.getenv("TYPED_SWAGGER_BASE_PATH") or None,
        )
