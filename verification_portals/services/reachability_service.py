"""Reachability service - checks whether a provider's landing page answers."""

import logging
import time

import httpx

from verification_portals.core.settings import AppSettings
from verification_portals.models import ProviderProfile, ReachabilityResponse

logger = logging.getLogger(__name__)


class ReachabilityService:
    """Lightweight HTTP probe of provider landing pages."""

    def __init__(self, settings: AppSettings) -> None:
        """
        Initialize the service.

        Args:
            settings (AppSettings): Application settings.
        """
        self._user_agent = settings.browser.user_agent
        self._timeout = min(settings.timeouts.navigation, 10.0)

    async def probe(self, profile: ProviderProfile) -> ReachabilityResponse:
        """
        Request the provider's landing page.

        Args:
            profile (ProviderProfile): Provider to probe.

        Returns:
            ReachabilityResponse: Probe result. Server errors and network
                failures are reported as unreachable.
        """
        started = time.perf_counter()
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout,
                follow_redirects=True,
                headers={"User-Agent": self._user_agent},
            ) as client:
                response = await client.get(profile.url)
        except httpx.RequestError as e:
            logger.error(f"Request error probing {profile.name}: {e}")
            return ReachabilityResponse(
                provider=profile.kind,
                url=profile.url,
                reachable=False,
                error=str(e) or type(e).__name__,
            )

        elapsed_ms = int((time.perf_counter() - started) * 1000)
        reachable = response.status_code < 500
        if not reachable:
            logger.warning(f"{profile.name} answered HTTP {response.status_code}")
        return ReachabilityResponse(
            provider=profile.kind,
            url=profile.url,
            reachable=reachable,
            status_code=response.status_code,
            elapsed_ms=elapsed_ms,
        )
