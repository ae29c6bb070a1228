"""Configuration models for browser_request."""

from __future__ import annotations

from pydantic import BaseModel, Field, PositiveFloat, PositiveInt, field_validator

from .constants import DEFAULT_LOCALE
from .types import normalize_locale_tag


class TelemetryConfig(BaseModel):
    """Controls which request events reach telemetry sinks."""

    enabled: bool = True
    sample_rate: float = Field(default=1.0, ge=0.0, le=1.0)
    include_headers: bool = Field(
        default=False,
        description="Attach the headers that were sent to every event payload.",
    )


class BrowserRequestConfig(BaseModel):
    """Top-level configuration; request options left unset fall back to these values."""

    default_locale: str = Field(default=DEFAULT_LOCALE)
    timeout_ms: PositiveFloat = Field(
        default=30_000,
        description="Per-request deadline covering connect, redirects and (buffered) body.",
    )
    max_redirects: int = Field(default=10, ge=0)
    max_header_bytes: PositiveInt = Field(
        default=64 * 1024,
        description="Upper bound for a response head read by the HTTP/1.1 parser.",
    )
    read_chunk_size: PositiveInt = Field(default=64 * 1024)
    telemetry: TelemetryConfig = Field(default_factory=TelemetryConfig)

    @field_validator("default_locale")
    @classmethod
    def _normalize_locale(cls, value: str) -> str:
        return normalize_locale_tag(value)[0]


__all__ = ["BrowserRequestConfig", "TelemetryConfig"]
