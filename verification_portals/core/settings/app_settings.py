"""Application settings using pydantic-settings."""

import os

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


class APIServerSettings(BaseModel):
    """API server configuration."""

    host: str = Field(default="127.0.0.1", description="Server host")
    port: int = Field(default=8000, ge=1, le=65535, description="Server port")
    workers: int = Field(default=1, ge=1, le=32, description="Number of uvicorn workers")
    cors_allow_origins: list[str] = Field(
        default_factory=list, description="CORS allowed origins (empty = no CORS)"
    )
    rate_limit: str = Field(default="5/minute", description="Rate limit for verification endpoint")
    api_key: str | None = Field(
        default=None, description="API key for authentication (None = auth disabled)"
    )
    max_concurrent_sessions: int = Field(
        default=2,
        ge=1,
        le=16,
        description="Maximum browser sessions running at once (one browser process each)",
    )


class BrowserSettings(BaseModel):
    """Browser launch configuration."""

    headless: bool = Field(default=True, description="Run the browser without a window")
    viewport_width: int = Field(default=1280, ge=320, description="Viewport width in pixels")
    viewport_height: int = Field(default=900, ge=240, description="Viewport height in pixels")
    user_agent: str = Field(default=DEFAULT_USER_AGENT, description="User agent string")
    locale: str = Field(default="en-GB", description="Browser locale")
    timezone_id: str = Field(default="Europe/London", description="Browser timezone")
    launch_args: list[str] = Field(
        default_factory=lambda: [
            "--no-sandbox",
            "--disable-setuid-sandbox",
            "--disable-dev-shm-usage",
        ],
        description="Extra Chromium command line flags",
    )
    executable_path: str | None = Field(
        default=None, description="Path to a Chromium binary (None = Playwright's bundled one)"
    )
    default_timeout: float = Field(
        default=15.0, gt=0, description="Default timeout in seconds for browser actions"
    )

    @field_validator("executable_path")
    @classmethod
    def validate_executable_path(cls, v: str | None) -> str | None:
        """Validate browser binary path exists and is executable."""
        if v is None:
            return v
        if not os.path.isfile(v):
            raise ValueError(f"Browser binary not found: {v}")
        if not os.access(v, os.X_OK):
            raise ValueError(f"Browser binary not executable: {v}")
        return v

    @field_validator("locale", "timezone_id")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        """Validate locale and timezone are not empty."""
        if not v or not v.strip():
            raise ValueError("Value cannot be empty")
        return v.strip()


class TimeoutSettings(BaseModel):
    """Wait budgets in seconds, all nested under the request deadline."""

    request_deadline: float = Field(default=60.0, gt=0, description="Overall budget per request")
    navigation: float = Field(default=30.0, gt=0, description="Page navigation timeout")
    step: float = Field(default=15.0, gt=0, description="Budget for a step to advance")
    field: float = Field(default=10.0, gt=0, description="Wait for a form field to appear")
    submit_attempt: float = Field(default=8.0, gt=0, description="Budget per submit attempt")
    settle: float = Field(default=5.0, gt=0, description="Wait for the network to go idle")
    consent: float = Field(default=3.0, gt=0, description="Wait for a cookie consent dialog")
    interstitial: float = Field(
        default=15.0, gt=0, description="Wait for auth redirects or bot challenges to clear"
    )
    evidence: float = Field(default=15.0, gt=0, description="Budget per evidence artefact")
    poll_interval: float = Field(default=0.25, gt=0, description="Polling interval")

    @model_validator(mode="after")
    def validate_nested_under_deadline(self) -> "TimeoutSettings":
        """Validate no single wait exceeds the request deadline."""
        for name in (
            "navigation",
            "step",
            "field",
            "submit_attempt",
            "settle",
            "consent",
            "interstitial",
            "evidence",
        ):
            if getattr(self, name) > self.request_deadline:
                raise ValueError(f"Timeout '{name}' cannot exceed request_deadline")
        return self


class CheckerSettings(BaseModel):
    """Checker identity used on the certificate update service."""

    organisation_name: str = Field(
        default="Recruitment Compliance", description="Organisation carrying out the check"
    )
    first_name: str = Field(default="HR", description="Checker forename")
    last_name: str = Field(default="Department", description="Checker surname")


class EvidenceSettings(BaseModel):
    """Evidence capture configuration."""

    enabled: bool = Field(default=True, description="Capture evidence of the final page")
    snapshot: bool = Field(default=True, description="Capture a full-page PNG screenshot")
    document: bool = Field(default=True, description="Capture a printable PDF")
    pdf_format: str = Field(default="A4", description="PDF paper format")
    pdf_margin: str = Field(default="20px", description="PDF margin on every side")


class LoggingSettings(BaseModel):
    """Logging configuration."""

    loggers: dict[str, str] = Field(default={}, description="Loggers and their levels")
    log_level: str = Field(default="INFO", description="Log level")
    log_format: str = Field(
        default="[%(asctime)s] %(levelname)s [%(name)s] %(message)s",
        description="Log format",
    )
    date_format: str = Field(default="%Y-%m-%d %H:%M:%S", description="Log date format")
    rotate_logs: bool = Field(default=False, description="Rotate logs daily")
    log_file: str | None = Field(default=None, description="Log file to write to")


class AppSettings(BaseSettings):
    """Root application settings."""

    model_config = SettingsConfigDict(
        env_nested_delimiter="__",
        env_prefix="VPORT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    api_server: APIServerSettings = Field(default_factory=APIServerSettings)
    browser: BrowserSettings = Field(default_factory=BrowserSettings)
    timeouts: TimeoutSettings = Field(default_factory=TimeoutSettings)
    checker: CheckerSettings = Field(default_factory=CheckerSettings)
    evidence: EvidenceSettings = Field(default_factory=EvidenceSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
