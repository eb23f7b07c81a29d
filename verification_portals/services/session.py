"""Session controller - owns one browser process per verification."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from playwright.async_api import (
    Browser,
    BrowserContext,
    Frame,
    Page,
    Playwright,
    async_playwright,
)
from playwright.async_api import Error as PlaywrightError

from verification_portals.core.errors import SessionLaunchFailed
from verification_portals.models import SessionConfig

logger = logging.getLogger(__name__)

MISSING_DEPENDENCY_MARKERS = (
    "install-deps",
    "missing dependencies",
    "executable doesn't exist",
    "error while loading shared libraries",
)


def describe_launch_failure(error: Exception) -> str:
    """
    Turn a launch error into a message naming the likely cause.

    Args:
        error (Exception): Error raised while launching.

    Returns:
        str: Human-readable message.
    """
    text = str(error)
    if any(marker in text.lower() for marker in MISSING_DEPENDENCY_MARKERS):
        return (
            "Browser failed to start due to missing system dependencies or browser binaries. "
            "Run 'playwright install --with-deps chromium' on the host."
        )
    first_line = text.strip().splitlines()[0] if text.strip() else type(error).__name__
    return f"Browser failed to start: {first_line}"


class BrowserSession:
    """One isolated browser, context and page."""

    def __init__(self, config: SessionConfig) -> None:
        """
        Initialize an unstarted session.

        Args:
            config (SessionConfig): Launch parameters.
        """
        self._config = config
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._context: BrowserContext | None = None
        self._page: Page | None = None
        self._url_history: list[str] = []
        self._closed = False

    @property
    def page(self) -> Page:
        """
        Get the session's page.

        Returns:
            Page: The page.

        Raises:
            RuntimeError: If the session has not been started.
        """
        if self._page is None:
            raise RuntimeError("Browser session has not been started")
        return self._page

    @property
    def url_history(self) -> list[str]:
        """Main frame URLs navigated so far."""
        return list(self._url_history)

    @property
    def closed(self) -> bool:
        """Whether the session has been closed."""
        return self._closed

    async def start(self) -> "BrowserSession":
        """
        Launch the browser and open a page.

        Returns:
            BrowserSession: This session.

        Raises:
            SessionLaunchFailed: If the browser could not be started.
        """
        config = self._config
        try:
            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(
                headless=config.headless,
                args=list(config.launch_args),
                executable_path=config.executable_path,
            )
            self._context = await self._browser.new_context(
                viewport={"width": config.viewport_width, "height": config.viewport_height},
                user_agent=config.user_agent,
                locale=config.locale,
                timezone_id=config.timezone_id,
                extra_http_headers=config.extra_http_headers,
            )
            self._context.set_default_timeout(config.default_timeout_ms)
            self._page = await self._context.new_page()
        except (PlaywrightError, OSError) as e:
            logger.error(f"Browser launch failed: {e}")
            await self.close()
            raise SessionLaunchFailed(describe_launch_failure(e)) from e

        self._page.on("framenavigated", self._record_navigation)
        logger.debug("Browser session started")
        return self

    def _record_navigation(self, frame: Frame) -> None:
        """Record main frame navigations."""
        if frame.parent_frame is not None:
            return
        if not self._url_history or self._url_history[-1] != frame.url:
            self._url_history.append(frame.url)

    async def close(self) -> None:
        """
        Tear down the context, browser and driver. Safe to call repeatedly.

        """
        if self._closed:
            return
        self._closed = True

        if self._context is not None:
            try:
                await self._context.close()
            except PlaywrightError as e:
                logger.debug(f"Error closing browser context: {e}")
        if self._browser is not None:
            try:
                await self._browser.close()
            except PlaywrightError as e:
                logger.debug(f"Error closing browser: {e}")
        if self._playwright is not None:
            try:
                await self._playwright.stop()
            except PlaywrightError as e:
                logger.debug(f"Error stopping playwright: {e}")

        self._page = None
        self._context = None
        self._browser = None
        self._playwright = None
        logger.debug("Browser session closed")


@asynccontextmanager
async def open_session(config: SessionConfig) -> AsyncIterator[BrowserSession]:
    """
    Open a browser session that is closed on every exit path.

    Args:
        config (SessionConfig): Launch parameters.

    Yields:
        BrowserSession: The started session.

    Raises:
        SessionLaunchFailed: If the browser could not be started.
    """
    session = BrowserSession(config)
    await session.start()
    try:
        yield session
    finally:
        await session.close()
