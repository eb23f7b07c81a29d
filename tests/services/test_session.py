"""Tests for the browser session controller."""

from collections.abc import Generator
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from playwright.async_api import Error as PlaywrightError

from verification_portals.core.errors import SessionLaunchFailed
from verification_portals.core.settings.app_settings import BrowserSettings
from verification_portals.models import SessionConfig
from verification_portals.services.session import (
    BrowserSession,
    describe_launch_failure,
    open_session,
)


@pytest.fixture
def config() -> SessionConfig:
    """
    Create a session config from default browser settings.

        SessionConfig: Session config.
    """
    return SessionConfig.from_settings(BrowserSettings())


@pytest.fixture
def driver() -> Generator[MagicMock, None, None]:
    """
    Mock the Playwright driver, browser, context and page.

    Yields:
        MagicMock: The driver returned by async_playwright().start().
    """
    page = MagicMock()
    context = MagicMock()
    context.new_page = AsyncMock(return_value=page)
    context.close = AsyncMock()
    browser = MagicMock()
    browser.new_context = AsyncMock(return_value=context)
    browser.close = AsyncMock()
    playwright = MagicMock()
    playwright.chromium.launch = AsyncMock(return_value=browser)
    playwright.stop = AsyncMock()

    with patch("verification_portals.services.session.async_playwright") as mock_async_playwright:
        mock_async_playwright.return_value.start = AsyncMock(return_value=playwright)
        yield playwright


class TestDescribeLaunchFailure:
    """Tests for describe_launch_failure."""

    def test_missing_dependencies(self) -> None:
        """
        Test that missing system libraries point at the install command.

        """
        error = PlaywrightError(
            "BrowserType.launch: Host system is missing dependencies to run browsers."
        )
        message = describe_launch_failure(error)
        assert "playwright install --with-deps chromium" in message

    def test_missing_browser_binary(self) -> None:
        """
        Test that a missing browser binary points at the install command.

        """
        error = PlaywrightError("Executable doesn't exist at /ms-playwright/chromium/chrome")
        assert "playwright install" in describe_launch_failure(error)

    def test_other_error(self) -> None:
        """
        Test that other errors keep their first line.

        """
        error = OSError("Too many open files\nmore detail")
        assert describe_launch_failure(error) == "Browser failed to start: Too many open files"


class TestBrowserSession:
    """Tests for BrowserSession."""

    @pytest.mark.asyncio
    async def test_start_uses_config(self, config: SessionConfig, driver: MagicMock) -> None:
        """
        Test that the browser is launched with the configured options.

        """
        session = await BrowserSession(config).start()

        launch_kwargs = driver.chromium.launch.call_args[1]
        assert launch_kwargs["headless"] is True
        assert "--no-sandbox" in launch_kwargs["args"]
        browser = driver.chromium.launch.return_value
        context_kwargs = browser.new_context.call_args[1]
        assert context_kwargs["locale"] == "en-GB"
        assert context_kwargs["timezone_id"] == "Europe/London"
        assert context_kwargs["viewport"] == {"width": 1280, "height": 900}
        browser.new_context.return_value.set_default_timeout.assert_called_once_with(15000)
        assert session.page is browser.new_context.return_value.new_page.return_value

    def test_page_before_start_raises(self, config: SessionConfig) -> None:
        """
        Test that the page is unavailable until started.

        """
        with pytest.raises(RuntimeError, match="has not been started"):
            BrowserSession(config).page

    @pytest.mark.asyncio
    async def test_launch_failure(self, config: SessionConfig, driver: MagicMock) -> None:
        """
        Test that a launch error becomes SessionLaunchFailed and cleans up.

        """
        driver.chromium.launch = AsyncMock(
            side_effect=PlaywrightError("Host system is missing dependencies to run browsers")
        )
        session = BrowserSession(config)

        with pytest.raises(SessionLaunchFailed, match="playwright install"):
            await session.start()

        assert session.closed is True
        driver.stop.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self, config: SessionConfig, driver: MagicMock) -> None:
        """
        Test that closing twice releases everything once.

        """
        session = await BrowserSession(config).start()
        browser = driver.chromium.launch.return_value

        await session.close()
        await session.close()

        browser.new_context.return_value.close.assert_awaited_once()
        browser.close.assert_awaited_once()
        driver.stop.assert_awaited_once()
        assert session.closed is True

    @pytest.mark.asyncio
    async def test_close_continues_after_errors(
        self, config: SessionConfig, driver: MagicMock
    ) -> None:
        """
        Test that a failing close does not skip the remaining teardown.

        """
        session = await BrowserSession(config).start()
        browser = driver.chromium.launch.return_value
        browser.new_context.return_value.close = AsyncMock(
            side_effect=PlaywrightError("Target closed")
        )

        await session.close()

        browser.close.assert_awaited_once()
        driver.stop.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_records_main_frame_navigations(
        self, config: SessionConfig, driver: MagicMock
    ) -> None:
        """
        Test that only main frame navigations are recorded.

        """
        session = await BrowserSession(config).start()
        page = session.page
        handler = page.on.call_args[0][1]
        assert page.on.call_args[0][0] == "framenavigated"

        handler(MagicMock(parent_frame=None, url="https://provider.example/start"))
        handler(MagicMock(parent_frame=MagicMock(), url="https://ads.example/frame"))
        handler(MagicMock(parent_frame=None, url="https://provider.example/start"))
        handler(MagicMock(parent_frame=None, url="https://provider.example/result"))

        assert session.url_history == [
            "https://provider.example/start",
            "https://provider.example/result",
        ]


class TestOpenSession:
    """Tests for open_session."""

    @pytest.mark.asyncio
    async def test_closes_on_error(self, config: SessionConfig, driver: MagicMock) -> None:
        """
        Test that the session is closed when the body raises.

        """
        with pytest.raises(ValueError):
            async with open_session(config) as session:
                raise ValueError("boom")

        assert session.closed is True
        driver.stop.assert_awaited_once()
