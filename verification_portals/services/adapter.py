"""Provider adapter - drives a provider profile's steps in a browser session."""

import asyncio
import logging

from playwright.async_api import ElementHandle, Page
from playwright.async_api import Error as PlaywrightError

from verification_portals.core.errors import InvalidInputError, ProviderUnavailableError
from verification_portals.core.settings.app_settings import TimeoutSettings
from verification_portals.enums import FieldKind
from verification_portals.models import (
    ProviderProfile,
    RawObservation,
    Step,
    Transition,
    VerificationRequest,
)
from verification_portals.services.forms import (
    dismiss_consent,
    fill,
    locate,
    select_option,
    submit_and_await_navigation,
)
from verification_portals.services.session import BrowserSession

logger = logging.getLogger(__name__)


class ProviderAdapter:
    """Runs one provider's flow up to its terminal page."""

    def __init__(self, profile: ProviderProfile, timeouts: TimeoutSettings) -> None:
        """
        Initialize the adapter.

        Args:
            profile (ProviderProfile): Provider profile.
            timeouts (TimeoutSettings): Wait budgets.
        """
        self._profile = profile
        self._timeouts = timeouts

    @property
    def profile(self) -> ProviderProfile:
        """The provider profile."""
        return self._profile

    async def run(self, session: BrowserSession, request: VerificationRequest) -> RawObservation:
        """
        Drive the provider flow and observe where it stopped.

        Args:
            session (BrowserSession): Started browser session.
            request (VerificationRequest): Validated request.

        Returns:
            RawObservation: The terminal page, or the page of a step that did
                not advance.

        Raises:
            ProviderUnavailableError: If no provider URL could be opened.
            FormUnavailableError: If a field could not be located.
            InvalidInputError: If a select option does not exist.
        """
        page = session.page
        profile = self._profile
        timeouts = self._timeouts

        await self._open_landing_page(page)
        await self._wait_out_interstitial(page)
        await dismiss_consent(page, profile.consent, timeouts.consent, timeouts.poll_interval)

        steps = profile.steps
        for index, step in enumerate(steps):
            next_step = steps[index + 1] if index + 1 < len(steps) else None
            logger.info(f"{profile.name}: step {index + 1}/{len(steps)} '{step.name}'")
            if not await self._run_step(page, step, next_step, request):
                logger.warning(f"{profile.name}: step '{step.name}' did not advance")
                return await self.observe(
                    page, session, stalled_step=index, stalled_step_name=step.name
                )

        return await self.observe(page, session)

    async def _open_landing_page(self, page: Page) -> None:
        """Open the landing page, trying fallbacks in order."""
        profile = self._profile
        last_error = "no response"
        for url in (profile.url, *profile.fallback_urls):
            try:
                response = await page.goto(
                    url, wait_until="domcontentloaded", timeout=self._timeouts.navigation * 1000
                )
            except PlaywrightError as e:
                logger.warning(f"{profile.name}: could not open {url}: {e}")
                last_error = str(e).strip().splitlines()[0] if str(e).strip() else repr(e)
                continue
            if response is not None and response.status >= 500:
                logger.warning(f"{profile.name}: {url} answered HTTP {response.status}")
                last_error = f"HTTP {response.status}"
                continue
            logger.info(f"{profile.name}: opened {url}")
            return
        raise ProviderUnavailableError(
            f"{profile.name} could not be reached ({last_error}). The service may be down "
            "or blocking automated access."
        )

    async def _on_interstitial(self, page: Page) -> bool:
        markers = self._profile.interstitial_markers
        if any(marker in page.url.lower() for marker in markers):
            return True
        try:
            title = (await page.title()).lower()
            body = (await page.inner_text("body"))[:2000].lower()
        except PlaywrightError:
            return True
        return any(marker in title or marker in body for marker in markers)

    async def _wait_out_interstitial(self, page: Page) -> None:
        """Wait for an auth redirect or bot challenge to clear, best-effort."""
        if not self._profile.interstitial_markers:
            return
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self._timeouts.interstitial
        waited = False
        while await self._on_interstitial(page):
            if loop.time() >= deadline:
                logger.warning(f"{self._profile.name}: interstitial did not clear, continuing")
                return
            waited = True
            await asyncio.sleep(self._timeouts.poll_interval)
        if waited:
            logger.info(f"{self._profile.name}: interstitial cleared")

    def _expectation(self, step: Step, next_step: Step | None) -> Transition:
        """Markers that prove a step moved on, including the next step's fields."""
        selectors = list(step.advance.selectors)
        if next_step is not None:
            for spec in next_step.fields:
                selectors.extend(spec.exact_selectors)
        return Transition(
            selectors=tuple(selectors),
            text_contains=step.advance.text_contains,
            text_absent=step.advance.text_absent,
        )

    async def _run_step(
        self,
        page: Page,
        step: Step,
        next_step: Step | None,
        request: VerificationRequest,
    ) -> bool:
        """Fill and submit one step. Returns False if the page did not advance."""
        timeouts = self._timeouts
        if step.navigate:
            await page.goto(
                step.navigate, wait_until="domcontentloaded", timeout=timeouts.navigation * 1000
            )

        anchor: ElementHandle | None = None
        # Selects first, so a bad category fails before anything is typed
        for spec in sorted(step.fields, key=lambda f: f.kind is not FieldKind.SELECT):
            value = request.value_for(spec.source)
            if value is None:
                raise InvalidInputError(f"The {spec.role} is required")
            handle = await locate(page, spec, timeouts.field, timeouts.poll_interval)
            if spec.kind is FieldKind.SELECT:
                await select_option(handle, value, category=spec.role)
            else:
                await fill(handle, value)
                anchor = handle

        attempt = await submit_and_await_navigation(
            page,
            step.submit,
            anchor,
            self._expectation(step, next_step),
            timeouts,
            form_values=step.form_values,
        )
        return attempt is not None

    async def _read_text(self, page: Page, selector: str) -> str:
        try:
            element = await page.query_selector(selector)
            if element is None:
                return ""
            return await element.inner_text()
        except PlaywrightError as e:
            logger.debug(f"Could not read {selector}: {e}")
            return ""

    async def observe(
        self,
        page: Page,
        session: BrowserSession,
        stalled_step: int | None = None,
        stalled_step_name: str | None = None,
    ) -> RawObservation:
        """
        Capture what the page currently shows.

        Args:
            page (Page): Page.
            session (BrowserSession): Session, for its URL history.
            stalled_step (int | None): Index of a step that did not advance.
            stalled_step_name (str | None): Name of that step.

        Returns:
            RawObservation: The observation.
        """
        text = await self._read_text(page, "body")

        main_text = ""
        for selector in self._profile.content_selectors:
            main_text = await self._read_text(page, selector)
            if main_text.strip():
                break

        try:
            html = await page.content()
        except PlaywrightError as e:
            logger.debug(f"Could not read page content: {e}")
            html = ""

        validation_errors: list[str] = []
        for selector in self._profile.error_selectors:
            try:
                elements = await page.query_selector_all(selector)
                for element in elements:
                    message = " ".join((await element.inner_text()).split())
                    if message and message not in validation_errors:
                        validation_errors.append(message)
            except PlaywrightError as e:
                logger.debug(f"Could not read {selector}: {e}")

        return RawObservation(
            url=page.url,
            url_history=session.url_history,
            text=text,
            main_text=main_text,
            html=html,
            validation_errors=validation_errors,
            stalled_step=stalled_step,
            stalled_step_name=stalled_step_name,
        )
