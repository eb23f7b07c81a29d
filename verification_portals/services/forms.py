"""Form interaction layer - locating, filling and submitting provider forms.

Element lookup is data driven: each ElementSpec lists FieldLocator
strategies in priority order and ``select_candidate`` applies them to the
visible elements on the page. The first strategy that yields exactly one
match wins.
"""

import asyncio
import logging
from collections.abc import Sequence

from playwright.async_api import ElementHandle, Page
from playwright.async_api import Error as PlaywrightError

from verification_portals.core.errors import (
    AmbiguousFieldError,
    FieldNotFoundError,
    FormUnavailableError,
    InvalidInputError,
)
from verification_portals.core.settings.app_settings import TimeoutSettings
from verification_portals.enums import FieldKind, LocatorStrategy
from verification_portals.models import ElementCandidate, ElementSpec, FieldLocator, Transition

logger = logging.getLogger(__name__)

CANDIDATE_SELECTORS: dict[FieldKind, str] = {
    FieldKind.TEXT: (
        "input:not([type=hidden]):not([type=submit]):not([type=button])"
        ":not([type=checkbox]):not([type=radio]):not([type=image]), textarea"
    ),
    FieldKind.SELECT: "select",
    FieldKind.BUTTON: (
        "button, input[type=submit], input[type=button], input[type=image], [role=button]"
    ),
}

_DESCRIBE_ELEMENT_JS = """
(el) => ({
    tag: el.tagName.toLowerCase(),
    type: (el.getAttribute('type') || '').toLowerCase(),
    name: el.getAttribute('name') || '',
    id: el.id || '',
    placeholder: el.getAttribute('placeholder') || '',
    classes: el.getAttribute('class') || '',
    aria_label: el.getAttribute('aria-label') || '',
    text: (el.innerText || el.value || '').trim(),
})
"""

_ASSIGN_VALUE_JS = """
(el, value) => {
    el.value = value;
    el.dispatchEvent(new Event('input', { bubbles: true }));
    el.dispatchEvent(new Event('change', { bubbles: true }));
}
"""

_LIST_OPTIONS_JS = """
(el) => Array.from(el.options).map((o) => ({
    value: o.value,
    label: (o.label || o.textContent || '').trim(),
}))
"""

_SUBMIT_FORM_JS = """
(el, values) => {
    const form = el.form || el.closest('form') || document.querySelector('form');
    if (!form) {
        return false;
    }
    for (const [name, value] of Object.entries(values)) {
        let input = form.querySelector(`[name="${name}"]`);
        if (!input) {
            input = document.createElement('input');
            input.type = 'hidden';
            input.name = name;
            form.appendChild(input);
        }
        input.value = value;
    }
    form.submit();
    return true;
}
"""


def normalise(value: str) -> str:
    """Collapse whitespace and lower-case."""
    return " ".join(value.split()).lower()


def _is_excluded(candidate: ElementCandidate, exclude: Sequence[str]) -> bool:
    haystack = candidate.haystack
    return any(pattern.lower() in haystack for pattern in exclude)


def _matches(locator: FieldLocator, candidate: ElementCandidate) -> bool:
    values = [value.lower() for value in locator.values]
    if locator.strategy is LocatorStrategy.EXACT:
        return candidate.name.lower() in values or candidate.id.lower() in values
    if locator.strategy is LocatorStrategy.ATTRIBUTE:
        return any(value in attribute for value in values for attribute in candidate.attributes)
    if locator.strategy is LocatorStrategy.TEXT:
        text = normalise(candidate.text)
        return bool(text) and any(value in text for value in values)
    return True


def select_candidate(
    spec: ElementSpec, candidates: Sequence[ElementCandidate]
) -> ElementCandidate | None:
    """
    Pick the element a spec refers to.

    Invisible and excluded candidates are dropped, then each locator is
    applied in order. A locator with no matches falls through to the next.

    Args:
        spec (ElementSpec): Element spec.
        candidates (Sequence[ElementCandidate]): Elements on the page.

    Returns:
        ElementCandidate | None: The chosen element, or None if no locator matched.

    Raises:
        AmbiguousFieldError: If a locator matched several elements and the
            spec does not accept the first match.
    """
    pool = [c for c in candidates if c.visible and not _is_excluded(c, spec.exclude)]
    for locator in spec.locators:
        matches = [c for c in pool if _matches(locator, c)]
        if not matches:
            continue
        if (
            len(matches) == 1
            or spec.first_match
            or locator.strategy is LocatorStrategy.FIRST_VISIBLE
        ):
            logger.debug(f"Located {spec.role} via {locator.strategy} ({len(matches)} match)")
            return matches[0]
        raise AmbiguousFieldError(
            f"Found {len(matches)} candidates for the {spec.role} field using "
            f"{locator.strategy} lookup. The provider page structure may have changed."
        )
    return None


async def collect_candidates(
    page: Page, kind: FieldKind
) -> tuple[list[ElementHandle], list[ElementCandidate]]:
    """
    Describe every element of a kind on the page.

    Args:
        page (Page): Page to search.
        kind (FieldKind): Kind of element.

    Returns:
        tuple[list[ElementHandle], list[ElementCandidate]]: Handles and their
            descriptions, index aligned.
    """
    handles = await page.query_selector_all(CANDIDATE_SELECTORS[kind])
    candidates: list[ElementCandidate] = []
    for index, handle in enumerate(handles):
        try:
            attributes = await handle.evaluate(_DESCRIBE_ELEMENT_JS)
            visible = await handle.is_visible()
        except PlaywrightError as e:
            logger.debug(f"Skipping detached element: {e}")
            attributes, visible = {}, False
        candidates.append(ElementCandidate(index=index, visible=visible, **attributes))
    return handles, candidates


async def locate(
    page: Page, spec: ElementSpec, timeout: float, poll_interval: float = 0.25
) -> ElementHandle:
    """
    Wait for the element a spec refers to.

    Args:
        page (Page): Page to search.
        spec (ElementSpec): Element spec.
        timeout (float): Seconds to keep polling.
        poll_interval (float): Seconds between polls.

    Returns:
        ElementHandle: The element.

    Raises:
        FieldNotFoundError: If nothing matched before the timeout.
        AmbiguousFieldError: If a locator matched several elements.
    """
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while True:
        handles, candidates = await collect_candidates(page, spec.kind)
        chosen = select_candidate(spec, candidates)
        if chosen is not None:
            return handles[chosen.index]
        if loop.time() >= deadline:
            raise FieldNotFoundError(
                f"Could not find the {spec.role} field within {timeout:g}s. "
                "The provider page structure may have changed."
            )
        await asyncio.sleep(poll_interval)


async def fill(handle: ElementHandle, value: str) -> None:
    """
    Fill a text field, assigning the value by script if typing fails.

    Args:
        handle (ElementHandle): Field.
        value (str): Value to enter.
    """
    try:
        await handle.fill(value)
    except PlaywrightError as e:
        logger.debug(f"fill() failed, assigning value directly: {e}")
        await handle.evaluate(_ASSIGN_VALUE_JS, value)


async def select_option(handle: ElementHandle, value: str, category: str) -> str:
    """
    Choose a dropdown option by label or value, ignoring case.

    Args:
        handle (ElementHandle): Select element.
        value (str): Wanted option.
        category (str): What the options are, used in messages.

    Returns:
        str: Label of the chosen option.

    Raises:
        InvalidInputError: If no option matches.
    """
    wanted = normalise(value)
    options = await handle.evaluate(_LIST_OPTIONS_JS)
    for option in options:
        if wanted in (normalise(option["label"]), normalise(option["value"])):
            await handle.select_option(value=option["value"])
            logger.debug(f"Selected {category} '{option['label']}'")
            return option["label"]
    raise InvalidInputError(f"No {category} option matches '{value}' on the provider form")


async def dismiss_consent(
    page: Page, spec: ElementSpec | None, timeout: float, poll_interval: float = 0.25
) -> bool:
    """
    Click a cookie consent button if one is shown.

    Args:
        page (Page): Page.
        spec (ElementSpec | None): Consent button spec.
        timeout (float): Seconds to wait for the dialog.
        poll_interval (float): Seconds between polls.

    Returns:
        bool: True if a dialog was dismissed.
    """
    if spec is None:
        return False
    try:
        handle = await locate(page, spec, timeout, poll_interval)
    except FormUnavailableError:
        logger.debug("No consent dialog shown")
        return False
    try:
        await handle.click(timeout=timeout * 1000)
    except PlaywrightError as e:
        logger.debug(f"Could not click consent button: {e}")
        return False
    logger.info("Dismissed consent dialog")
    return True


async def has_advanced(page: Page, previous_url: str, expectation: Transition) -> bool:
    """
    Check whether the page moved on from a submitted step.

    Args:
        page (Page): Page.
        previous_url (str): URL when the step was submitted.
        expectation (Transition): Markers of the next page.

    Returns:
        bool: True if the URL changed or a marker is present. A validation
            message of the same form vetoes the text markers.
    """
    if page.url != previous_url:
        return True
    try:
        for selector in expectation.selectors:
            if await page.query_selector(selector) is not None:
                return True
        if expectation.text_contains:
            text = (await page.inner_text("body")).lower()
            if any(marker in text for marker in expectation.text_absent):
                return False
            return any(marker in text for marker in expectation.text_contains)
    except PlaywrightError:
        # Navigation in progress tears down the execution context
        return False
    return False


async def wait_for_advance(
    page: Page,
    previous_url: str,
    expectation: Transition,
    timeout: float,
    poll_interval: float = 0.25,
) -> bool:
    """
    Poll until the page advances or the timeout passes.

    Args:
        page (Page): Page.
        previous_url (str): URL when the step was submitted.
        expectation (Transition): Markers of the next page.
        timeout (float): Seconds to wait.
        poll_interval (float): Seconds between polls.

    Returns:
        bool: True if the page advanced.
    """
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while True:
        if await has_advanced(page, previous_url, expectation):
            return True
        if loop.time() >= deadline:
            return False
        await asyncio.sleep(poll_interval)


async def settle(page: Page, timeout: float) -> None:
    """Wait for the network to go idle, best-effort."""
    try:
        await page.wait_for_load_state("networkidle", timeout=timeout * 1000)
    except PlaywrightError as e:
        logger.debug(f"Page did not settle: {e}")


async def submit_and_await_navigation(
    page: Page,
    submit_spec: ElementSpec,
    anchor: ElementHandle | None,
    expectation: Transition,
    timeouts: TimeoutSettings,
    form_values: dict[str, str] | None = None,
) -> str | None:
    """
    Submit the current form and wait for the page to advance.

    Tries a control click, then a direct form submission, then pressing
    Enter in the last filled field. Each attempt gets its own timeout and
    all of them share the step budget.

    Args:
        page (Page): Page.
        submit_spec (ElementSpec): Submit control spec.
        anchor (ElementHandle | None): Last filled field.
        expectation (Transition): Markers of the next page.
        timeouts (TimeoutSettings): Wait budgets.
        form_values (dict[str, str] | None): Values set before a direct submission.

    Returns:
        str | None: Name of the attempt that advanced the page, or None.
    """
    loop = asyncio.get_running_loop()
    step_deadline = loop.time() + timeouts.step
    previous_url = page.url

    async def click() -> None:
        handle = await locate(page, submit_spec, timeouts.field, timeouts.poll_interval)
        await handle.click(timeout=timeouts.submit_attempt * 1000)

    async def form_submit() -> None:
        target = anchor
        if target is None:
            target = await page.query_selector("form")
        if target is None:
            raise FormUnavailableError("No form to submit")
        submitted = await target.evaluate(_SUBMIT_FORM_JS, form_values or {})
        if not submitted:
            raise FormUnavailableError("No form to submit")

    async def press_enter() -> None:
        if anchor is None:
            raise FormUnavailableError("No field to press Enter in")
        await anchor.press("Enter")

    for name, attempt in (("click", click), ("form_submit", form_submit), ("enter", press_enter)):
        remaining = step_deadline - loop.time()
        if remaining <= 0:
            break
        budget = min(timeouts.submit_attempt, remaining)
        try:
            await asyncio.wait_for(attempt(), timeout=budget)
        except (PlaywrightError, FormUnavailableError, TimeoutError) as e:
            logger.debug(f"Submit attempt '{name}' failed: {e}")
            if await has_advanced(page, previous_url, expectation):
                await settle(page, timeouts.settle)
                return name
            continue
        if await wait_for_advance(
            page, previous_url, expectation, budget, timeouts.poll_interval
        ):
            logger.info(f"Step submitted via {name}")
            await settle(page, timeouts.settle)
            return name
        logger.debug(f"Submit attempt '{name}' did not advance the page")
    return None
