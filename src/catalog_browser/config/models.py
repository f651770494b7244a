"""Configuration models for the catalog browser."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Annotated

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PositiveFloat,
    PositiveInt,
    field_validator,
    model_validator,
)

from catalog_browser.core.logger import LogConfig, LogFormat

StatusCode = Annotated[int, Field(ge=100, le=599)]


class RetryConfig(BaseModel):
    """Retry policy for HTTP clients."""

    model_config = ConfigDict(extra="forbid")

    total: Annotated[int, Field(ge=0)] = Field(
        default=2,
        description="Total number of retry attempts (excluding the first call).",
    )
    backoff_multiplier: PositiveFloat = Field(
        default=2.0,
        description="Multiplier applied between retry attempts for exponential backoff.",
    )
    backoff_max: PositiveFloat = Field(
        default=30.0,
        description="Maximum delay in seconds between retry attempts.",
    )
    statuses: tuple[StatusCode, ...] = Field(
        default=(408, 429, 502, 503, 504),
        description="HTTP status codes that should trigger a retry.",
    )


class RateLimitConfig(BaseModel):
    """Client-side limit: at most ``max_calls`` requests in any ``period``-second window."""

    model_config = ConfigDict(extra="forbid")

    max_calls: PositiveInt = Field(
        default=10,
        description="Maximum number of calls allowed within the configured period.",
    )
    period: PositiveFloat = Field(
        default=1.0,
        description="Time window in seconds for the rate limit.",
    )


class HTTPClientConfig(BaseModel):
    """Configuration for the catalog HTTP client."""

    model_config = ConfigDict(extra="forbid")

    timeout_sec: PositiveFloat = Field(
        default=30.0, description="Total request timeout in seconds."
    )
    connect_timeout_sec: PositiveFloat = Field(
        default=10.0,
        description="Connection timeout in seconds.",
    )
    read_timeout_sec: PositiveFloat = Field(
        default=30.0,
        description="Socket read timeout in seconds.",
    )
    retries: RetryConfig = Field(default_factory=RetryConfig)
    rate_limit: RateLimitConfig = Field(default_factory=RateLimitConfig)
    rate_limit_jitter: bool = Field(
        default=True,
        description="Whether to add jitter to rate limited calls to avoid thundering herds.",
    )
    headers: Mapping[str, str] = Field(
        default_factory=lambda: {
            "User-Agent": "catalog-browser/1.0",
            "Accept": "application/json",
            "Accept-Encoding": "gzip, deflate",
        },
        description="Default headers that will be sent with each request.",
    )


class CatalogConfig(BaseModel):
    """Location of the remote catalog."""

    model_config = ConfigDict(extra="forbid")

    base_url: str = Field(default="http://localhost:8080/api")
    resource: str = Field(default="planets", description="Collection path below base_url.")

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, value: str) -> str:
        if not value.startswith(("http://", "https://")):
            raise ValueError("base_url must be an http(s) URL")
        return value.rstrip("/")

    @field_validator("resource")
    @classmethod
    def validate_resource(cls, value: str) -> str:
        stripped = value.strip("/")
        if not stripped:
            raise ValueError("resource must not be empty")
        return stripped


class BrowserConfig(BaseModel):
    """Paging defaults for the state engine."""

    model_config = ConfigDict(extra="forbid")

    default_page_size: PositiveInt = 25
    page_sizes: tuple[PositiveInt, ...] = (5, 10, 25, 100)
    max_workers: PositiveInt = Field(
        default=4,
        description="Worker threads used for portion and item requests.",
    )

    @model_validator(mode="after")
    def _default_is_offered(self) -> "BrowserConfig":
        if self.default_page_size not in self.page_sizes:
            raise ValueError(
                f"default_page_size {self.default_page_size} is not one of {self.page_sizes}"
            )
        return self


class LoggingConfig(BaseModel):
    """Logging section."""

    model_config = ConfigDict(extra="forbid")

    level: str = "INFO"
    format: LogFormat = LogFormat.KEY_VALUE

    def to_log_config(self) -> LogConfig:
        return LogConfig(level=self.level, format=self.format)


class AppConfig(BaseModel):
    """Root configuration model."""

    model_config = ConfigDict(extra="forbid")

    catalog: CatalogConfig = Field(default_factory=CatalogConfig)
    http: HTTPClientConfig = Field(default_factory=HTTPClientConfig)
    browser: BrowserConfig = Field(default_factory=BrowserConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
