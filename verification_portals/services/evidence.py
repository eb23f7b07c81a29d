"""Evidence capture - screenshot and printable document of the final page."""

import asyncio
import logging

from playwright.async_api import Page

from verification_portals.core.settings.app_settings import EvidenceSettings
from verification_portals.models import Evidence

logger = logging.getLogger(__name__)


async def _capture_snapshot(page: Page) -> bytes:
    return await page.screenshot(full_page=True, type="png")


async def _capture_document(page: Page, settings: EvidenceSettings) -> bytes:
    margin = settings.pdf_margin
    return await page.pdf(
        format=settings.pdf_format,
        print_background=True,
        margin={"top": margin, "right": margin, "bottom": margin, "left": margin},
    )


async def capture_evidence(
    page: Page,
    settings: EvidenceSettings,
    timeout: float,
    budget: float | None = None,
) -> Evidence:
    """
    Capture evidence of the current page.

    Each artefact is captured independently. A failure is logged and
    recorded in ``Evidence.missing`` and never raised.

    Args:
        page (Page): Page to capture.
        settings (EvidenceSettings): Evidence settings.
        timeout (float): Seconds allowed per artefact.
        budget (float | None): Seconds allowed for all artefacts together.

    Returns:
        Evidence: Captured artefacts.
    """
    if not settings.enabled:
        return Evidence()

    evidence = Evidence()
    loop = asyncio.get_running_loop()
    finish = loop.time() + budget if budget is not None else None

    def allowed() -> float:
        if finish is None:
            return timeout
        return min(timeout, finish - loop.time())

    if settings.snapshot:
        try:
            evidence.snapshot = await asyncio.wait_for(_capture_snapshot(page), timeout=allowed())
        except Exception as e:
            logger.warning(f"Failed to capture snapshot: {e!r}")
            evidence.missing.append("snapshot")

    if settings.document:
        try:
            evidence.document = await asyncio.wait_for(
                _capture_document(page, settings), timeout=allowed()
            )
        except Exception as e:
            logger.warning(f"Failed to capture document: {e!r}")
            evidence.missing.append("document")

    logger.debug(
        f"Captured evidence (snapshot={evidence.snapshot is not None}, "
        f"document={evidence.document is not None})"
    )
    return evidence
