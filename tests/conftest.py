"""Pytest configuration and fixtures."""

import os
import pathlib
from collections.abc import Callable, Generator
from importlib.metadata import PackageNotFoundError
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from bs4 import BeautifulSoup
from fastapi.testclient import TestClient

from verification_portals.api.dependencies import clear_dependency_caches
from verification_portals.api.server import app, limiter
from verification_portals.core.settings import AppSettings, reload_settings
from verification_portals.core.settings.app_settings import (
    APIServerSettings,
    EvidenceSettings,
    LoggingSettings,
    TimeoutSettings,
)
from verification_portals.models import RawObservation

FIXTURES_DIR = os.path.join(os.path.dirname(__file__), "fixtures")


@pytest.fixture
def fast_timeouts() -> TimeoutSettings:
    """
    Create timeouts small enough that polling loops finish immediately.

        TimeoutSettings: Timeout settings.
    """
    return TimeoutSettings(
        request_deadline=2.0,
        navigation=0.1,
        step=0.2,
        field=0.01,
        submit_attempt=0.05,
        settle=0.01,
        consent=0.01,
        interstitial=0.05,
        evidence=0.5,
        poll_interval=0.01,
    )


@pytest.fixture
def mock_settings(fast_timeouts: TimeoutSettings) -> AppSettings:
    """
    Create mock application settings for testing.

        AppSettings: Mock settings instance.
    """
    return AppSettings(
        api_server=APIServerSettings(
            host="127.0.0.1",
            port=8000,
            workers=1,
            cors_allow_origins=["http://localhost:3000"],
            rate_limit="100/minute",
        ),
        timeouts=fast_timeouts,
        evidence=EvidenceSettings(),
        logging=LoggingSettings(
            log_level="DEBUG",
            log_format="%(message)s",
        ),
    )


@pytest.fixture(autouse=True)
def reset_settings_cache() -> None:
    """
    Reset settings, dependency caches and rate limits before each test.

    """
    reload_settings()
    clear_dependency_caches()
    limiter.reset()


def load_fixture(name: str) -> str:
    """
    Read an HTML fixture.

    Args:
        name (str): File name under tests/fixtures.

    Returns:
        str: File contents.
    """
    with open(os.path.join(FIXTURES_DIR, name), encoding="utf-8") as f:
        return f.read()


def observation_from_html(html: str, **overrides: Any) -> RawObservation:
    """
    Build an observation the way a browser would render the markup.

    Args:
        html (str): Page markup.
        **overrides: Extra RawObservation fields.

    Returns:
        RawObservation: Observation of the page.
    """
    soup = BeautifulSoup(html, "lxml")
    main = soup.select_one("#main-content") or soup.select_one("main")
    fields: dict[str, Any] = {
        "url": "https://provider.example/result",
        "text": soup.body.get_text("\n") if soup.body else "",
        "main_text": main.get_text("\n") if main else "",
        "html": html,
    }
    fields.update(overrides)
    return RawObservation(**fields)


@pytest.fixture
def fixture_observation() -> Callable[..., RawObservation]:
    """
    Factory building observations from HTML fixture files.

        Callable[..., RawObservation]: Factory taking a fixture name.
    """

    def factory(name: str, **overrides: Any) -> RawObservation:
        return observation_from_html(load_fixture(name), **overrides)

    return factory


@pytest.fixture
def make_handle() -> Callable[..., MagicMock]:
    """
    Factory creating fake element handles.

    The factory takes ``visible`` and the attributes reported to the
    candidate collector (tag, name, id, placeholder, text, ...).

        Callable[..., MagicMock]: Factory returning fake ElementHandles.
    """

    def factory(visible: bool = True, **attributes: str) -> MagicMock:
        handle = MagicMock()
        handle.evaluate = AsyncMock(return_value=dict(attributes))
        handle.is_visible = AsyncMock(return_value=visible)
        handle.fill = AsyncMock()
        handle.click = AsyncMock()
        handle.press = AsyncMock()
        handle.select_option = AsyncMock()
        handle.inner_text = AsyncMock(return_value=attributes.get("text", ""))
        return handle

    return factory


@pytest.fixture
def fake_page() -> MagicMock:
    """
    Create a fake Playwright page with no elements.

        MagicMock: Fake Page.
    """
    page = MagicMock()
    page.url = "https://provider.example/start"
    page.goto = AsyncMock(return_value=MagicMock(status=200))
    page.title = AsyncMock(return_value="Check the register")
    page.inner_text = AsyncMock(return_value="")
    page.content = AsyncMock(return_value="<html><body></body></html>")
    page.query_selector = AsyncMock(return_value=None)
    page.query_selector_all = AsyncMock(return_value=[])
    page.wait_for_load_state = AsyncMock()
    page.screenshot = AsyncMock(return_value=b"png-bytes")
    page.pdf = AsyncMock(return_value=b"pdf-bytes")
    return page


@pytest.fixture
def chromium_build(tmp_path: pathlib.Path, monkeypatch: pytest.MonkeyPatch) -> pathlib.Path:
    """
    Point Playwright's browser directory at a temporary Chromium build.

    Args:
        tmp_path (pathlib.Path): Pytest temporary directory.
        monkeypatch (pytest.MonkeyPatch): Pytest monkeypatch fixture.

        pathlib.Path: The fake Chromium build directory.
    """
    build = tmp_path / "ms-playwright" / "chromium-1140"
    build.mkdir(parents=True)
    monkeypatch.setenv("PLAYWRIGHT_BROWSERS_PATH", str(build.parent))
    return build


@pytest.fixture
def mock_playwright_available(chromium_build: pathlib.Path) -> Generator[MagicMock, None, None]:
    """
    Mock the playwright package and its Chromium build as installed.

    Args:
        chromium_build (pathlib.Path): Fake Chromium build directory.

    Yields:
        MagicMock: The mock object.
    """
    with patch(
        "verification_portals.core.utils.metadata.version", return_value="1.48.0"
    ) as mock_version:
        yield mock_version


@pytest.fixture
def mock_playwright_unavailable() -> Generator[MagicMock, None, None]:
    """
    Mock the playwright package metadata as missing.

    Yields:
        MagicMock: The mock object.
    """
    with patch(
        "verification_portals.core.utils.metadata.version",
        side_effect=PackageNotFoundError("playwright"),
    ) as mock_version:
        yield mock_version


@pytest.fixture
def test_client(mock_playwright_available: MagicMock) -> TestClient:
    """
    Create a test client for the FastAPI application.

    Args:
        mock_playwright_available (MagicMock): Mock for playwright availability.

        TestClient: FastAPI test client.
    """
    return TestClient(app)
