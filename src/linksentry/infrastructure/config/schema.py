"""Pydantic configuration models with validation."""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import (
    AliasChoices,
    AliasPath,
    BaseModel,
    Field,
    field_validator,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

from linksentry.domain.entities import RetryPolicy, SchedulerLimits

Environment = Literal["dev", "test", "prod"]
LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]
LogFormat = Literal["json", "console"]

BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)


class LinkCheckConfig(BaseModel):
    """Limits and policies for batch link checks (YAML section: link_check.*)."""

    max_urls: int = Field(
        default=200,
        description="Maximum number of URLs accepted in one batch.",
    )
    max_concurrent: int = Field(
        default=10,
        description="Max probes in flight at once within a batch.",
    )
    domain_delay_seconds: float = Field(
        default=0.1,
        description="Minimum spacing between dispatches to the same host.",
    )
    max_execution_seconds: float = Field(
        default=60.0,
        description="Wall-clock budget per batch; no new probes after it.",
    )
    max_retries: int = Field(
        default=2,
        description="Retries per link after an error/timeout result.",
    )
    backoff_seconds: list[float] = Field(
        default=[0.1, 0.2],
        description="Pause before each retry (last value repeats).",
    )
    fail_fast_hosts: list[str] = Field(
        default=["twitter.com", "www.twitter.com", "x.com", "www.x.com"],
        description="Hosts that are never retried (they reject automated probes).",
    )
    canonical_hosts: dict[str, str] = Field(
        default={"sf.gov": "www.sf.gov"},
        description="Apex host -> canonical host rewrite for root URLs.",
    )

    @field_validator("max_urls", "max_concurrent")
    @classmethod
    def _validate_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("must be > 0")
        return v

    @field_validator("domain_delay_seconds", "max_retries")
    @classmethod
    def _validate_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("must be >= 0")
        return v

    @field_validator("max_execution_seconds")
    @classmethod
    def _validate_budget(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("max_execution_seconds must be > 0")
        return v

    @field_validator("fail_fast_hosts")
    @classmethod
    def _lower_hosts(cls, v: list[str]) -> list[str]:
        return [h.lower() for h in v]

    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_retries=self.max_retries,
            backoff_delays=tuple(self.backoff_seconds),
            fail_fast_hosts=frozenset(self.fail_fast_hosts),
        )

    def scheduler_limits(self) -> SchedulerLimits:
        return SchedulerLimits(
            max_concurrent=self.max_concurrent,
            domain_delay=self.domain_delay_seconds,
            max_execution=self.max_execution_seconds,
        )


class AuthConfig(BaseModel):
    """Upstream admin-session verification (YAML section: auth.*)."""

    required: bool = Field(
        default=True,
        description="Reject link-check requests without a valid admin session.",
    )
    admin_api_url: str | None = Field(
        default=None,
        description="Base URL of the CMS admin API used to verify sessions.",
    )
    timeout_seconds: float = Field(
        default=5.0,
        description="Timeout for one session verification call.",
    )


class CorsConfig(BaseModel):
    """Which browser origins may call the API (YAML section: cors.*)."""

    allowed_origin_prefixes: list[str] = Field(
        default=["chrome-extension://", "edge-extension://"],
        description="Origin prefixes accepted for cross-origin calls.",
    )
    allow_localhost: bool = Field(
        default=True,
        description="Also accept localhost / 127.0.0.1 origins (development).",
    )


class AppConfig(BaseModel):
    """
    Canonical application configuration (validated, final).

    Note:
    - YAML is expected to be sectioned (http/link_check/auth/cors/logging).
    - Environment variables are handled by EnvOverrides(BaseSettings) to allow strict
      precedence control (defaults < YAML < ENV < CLI) in load.py.
    """

    # General
    app_name: str = Field(default="linksentry", description="Application name.")
    environment: Environment = Field(
        default="dev",
        description="Runtime environment (affects defaults like log format).",
    )

    # HTTP probing (YAML section: http.*)
    http_timeout_seconds: float = Field(
        default=10.0,
        validation_alias=AliasChoices(
            "http_timeout_seconds",
            AliasPath("http", "timeout_seconds"),
        ),
        description="Per-attempt probe timeout in seconds.",
    )
    http_max_redirects: int = Field(
        default=5,
        validation_alias=AliasChoices(
            "http_max_redirects",
            AliasPath("http", "max_redirects"),
        ),
        description="Redirect hops followed per probe.",
    )
    http_user_agent: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices(
            "http_user_agent",
            AliasPath("http", "user_agent"),
        ),
        description="User-Agent for probes. If unset, a desktop browser UA is used.",
    )

    link_check: LinkCheckConfig = Field(default_factory=LinkCheckConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    cors: CorsConfig = Field(default_factory=CorsConfig)

    # Logging (YAML section: logging.*)
    log_level: LogLevel = Field(
        default="INFO",
        validation_alias=AliasChoices(
            "log_level",
            AliasPath("logging", "level"),
        ),
        description="Log level.",
    )
    log_format: Optional[LogFormat] = Field(
        default=None,
        validation_alias=AliasChoices(
            "log_format",
            AliasPath("logging", "format"),
        ),
        description=(
            "Log renderer format (console/json). If unset, derived from environment."
        ),
    )

    @field_validator("http_timeout_seconds")
    @classmethod
    def _validate_http_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("http_timeout_seconds must be > 0")
        return v

    @field_validator("http_max_redirects")
    @classmethod
    def _validate_max_redirects(cls, v: int) -> int:
        if v < 0:
            raise ValueError("http_max_redirects must be >= 0")
        return v

    @model_validator(mode="after")
    def _derive_defaults(self) -> "AppConfig":
        # Default log format: console in dev/test, json in prod.
        if self.log_format is None:
            self.log_format = "json" if self.environment == "prod" else "console"
        if self.http_user_agent is None:
            self.http_user_agent = BROWSER_USER_AGENT
        return self

    def to_sectioned_dict(self) -> dict[str, Any]:
        """
        Dump configuration in the sectioned shape used by config.yaml/docs.
        """
        return {
            "app_name": self.app_name,
            "environment": self.environment,
            "http": {
                "timeout_seconds": self.http_timeout_seconds,
                "max_redirects": self.http_max_redirects,
                "user_agent": self.http_user_agent,
            },
            "link_check": self.link_check.model_dump(),
            "auth": self.auth.model_dump(),
            "cors": self.cors.model_dump(),
            "logging": {"level": self.log_level, "format": self.log_format},
        }


class EnvOverrides(BaseSettings):
    """
    Environment-variable overrides (all optional).

    Intended usage:
    - load.py creates EnvOverrides() to read LINKSENTRY_* variables,
      converts to dict of set values, merges into YAML/defaults,
      then validates AppConfig.

    Supported env var examples (flat, explicit):
    - LINKSENTRY_HTTP_TIMEOUT_SECONDS
    - LINKSENTRY_ADMIN_API_URL
    - LINKSENTRY_MAX_CONCURRENT
    - LINKSENTRY_LOG_LEVEL
    """

    model_config = SettingsConfigDict(
        env_prefix="LINKSENTRY_",
        extra="ignore",
        case_sensitive=False,
    )

    app_name: Optional[str] = None
    environment: Optional[Environment] = None

    http_timeout_seconds: Optional[float] = None
    http_max_redirects: Optional[int] = None
    http_user_agent: Optional[str] = None

    max_urls: Optional[int] = None
    max_concurrent: Optional[int] = None
    domain_delay_seconds: Optional[float] = None
    max_execution_seconds: Optional[float] = None
    max_retries: Optional[int] = None

    auth_required: Optional[bool] = None
    admin_api_url: Optional[str] = None
    auth_timeout_seconds: Optional[float] = None

    allow_localhost: Optional[bool] = None

    log_level: Optional[LogLevel] = None
    log_format: Optional[LogFormat] = None

    def to_update_dict(self) -> dict[str, Any]:
        """
        Return only values that were actually provided (non-None), for merging.
        """
        return self.model_dump(exclude_none=True)
