"""Browser session configuration."""

from pydantic import BaseModel, ConfigDict, Field

from verification_portals.core.settings.app_settings import DEFAULT_USER_AGENT, BrowserSettings


class SessionConfig(BaseModel):
    """Launch parameters for one browser session, passed in explicitly."""

    headless: bool = Field(default=True, description="Run without a window")
    viewport_width: int = Field(default=1280, description="Viewport width in pixels")
    viewport_height: int = Field(default=900, description="Viewport height in pixels")
    user_agent: str = Field(default=DEFAULT_USER_AGENT, description="User agent string")
    locale: str = Field(default="en-GB", description="Browser locale")
    timezone_id: str = Field(default="Europe/London", description="Browser timezone")
    launch_args: tuple[str, ...] = Field(
        default=("--no-sandbox", "--disable-setuid-sandbox", "--disable-dev-shm-usage"),
        description="Chromium command line flags",
    )
    executable_path: str | None = Field(default=None, description="Chromium binary override")
    default_timeout_ms: float = Field(default=15000, description="Default action timeout")
    extra_http_headers: dict[str, str] = Field(
        default_factory=lambda: {"Accept-Language": "en-GB,en;q=0.9"},
        description="Headers sent with every request",
    )

    model_config = ConfigDict(extra="forbid", frozen=True)

    @classmethod
    def from_settings(cls, settings: BrowserSettings) -> "SessionConfig":
        """
        Build a session config from browser settings.

        Args:
            settings (BrowserSettings): Browser settings.

        Returns:
            SessionConfig: The session config.
        """
        return cls(
            headless=settings.headless,
            viewport_width=settings.viewport_width,
            viewport_height=settings.viewport_height,
            user_agent=settings.user_agent,
            locale=settings.locale,
            timezone_id=settings.timezone_id,
            launch_args=tuple(settings.launch_args),
            executable_path=settings.executable_path,
            default_timeout_ms=settings.default_timeout * 1000,
        )
