# wrapper/models.py
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


def utc_timestamp() -> str:
    """ISO-8601 UTC timestamp with a trailing Z, e.g. 2025-01-01T12:00:00.123Z."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class _CamelModel(BaseModel):
    # Wire format is camelCase; Python attributes stay snake_case.
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ForwardRequest(_CamelModel):
    url: str
    method: str
    headers: dict[str, str] | None = None
    body: Any = None

    @field_validator("url")
    @classmethod
    def _url_required(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("URL is required")
        return v.strip()

    @field_validator("method")
    @classmethod
    def _method_required(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Method is required")
        return v.strip()


class ForwardMeta(_CamelModel):
    timestamp: str = Field(default_factory=utc_timestamp)
    response_time: int = 0
    target_url: str = ""
    method: str = ""


class ErrorPayload(_CamelModel):
    error: str
    message: str
    status: int
    timestamp: str = Field(default_factory=utc_timestamp)
    target_url: str = ""
    original_error: str | None = None


class ForwardResponse(_CamelModel):
    success: bool
    status: int
    status_text: str
    headers: dict[str, str] = Field(default_factory=dict)
    data: Any = None
    meta: ForwardMeta = Field(default_factory=ForwardMeta)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


def rejection(
    error: str,
    message: str,
    *,
    status: int = 400,
    status_text: str = "Bad Request",
    target_url: str = "",
    method: str = "",
) -> ForwardResponse:
    """Envelope for a request refused before any outbound traffic."""
    return ForwardResponse(
        success=False,
        status=status,
        status_text=status_text,
        data={"error": error, "message": message},
        meta=ForwardMeta(target_url=target_url, method=method.upper()),
    )
