"""Verification service - validates a request, runs a provider and classifies the result."""

import asyncio
import logging
import time
from collections.abc import Mapping
from contextlib import AsyncExitStack
from typing import Any

from pydantic import ValidationError

from verification_portals.core.errors import InvalidInputError, VerificationError
from verification_portals.core.settings import AppSettings
from verification_portals.enums import Outcome, ProviderKind
from verification_portals.models import (
    Evidence,
    ProviderProfile,
    SessionConfig,
    VerificationRequest,
    VerificationResult,
)
from verification_portals.services.adapter import ProviderAdapter
from verification_portals.services.classifier import classify
from verification_portals.services.evidence import capture_evidence
from verification_portals.services.providers import get_profile
from verification_portals.services.session import BrowserSession, open_session

logger = logging.getLogger(__name__)

IDENTIFIER_KEYS = ("identifier", "certificateNumber", "shareCode", "registrationNumber")


def _describe_validation_error(error: ValidationError) -> str:
    """Summarize a pydantic validation error in one line."""
    parts = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"]) or "request"
        parts.append(f"{location}: {item['msg']}")
    return "Invalid request. " + "; ".join(parts)


def _identifier_hint(request: VerificationRequest | Mapping[str, Any]) -> str:
    """Best-effort identifier for results of requests that failed validation."""
    if isinstance(request, VerificationRequest):
        return request.identifier or ""
    for key in IDENTIFIER_KEYS:
        value = request.get(key)
        if isinstance(value, str):
            return value.strip()
    return ""


class VerificationService:
    """Runs verifications against external providers.

    ``verify`` never raises. Every failure is reported as a
    VerificationResult with a message naming the likely cause.
    """

    def __init__(self, settings: AppSettings) -> None:
        """
        Initialize verification service with settings.

        Args:
            settings (AppSettings): Application settings.
        """
        self._settings = settings
        self._session_config = SessionConfig.from_settings(settings.browser)

    @property
    def settings(self) -> AppSettings:
        """Application settings."""
        return self._settings

    @property
    def session_config(self) -> SessionConfig:
        """Browser session configuration."""
        return self._session_config

    def validate_request(
        self,
        profile: ProviderProfile,
        request: VerificationRequest | Mapping[str, Any],
    ) -> VerificationRequest:
        """
        Validate a request for a provider.

        Checker details missing from the request are filled from settings.

        Args:
            profile (ProviderProfile): Provider profile.
            request (VerificationRequest | Mapping[str, Any]): Request or raw body.

        Returns:
            VerificationRequest: The validated request.

        Raises:
            InvalidInputError: If the request is malformed, a required field is
                missing or the category is not in the provider's vocabulary.
        """
        if not isinstance(request, VerificationRequest):
            try:
                request = VerificationRequest.model_validate(request)
            except ValidationError as e:
                raise InvalidInputError(_describe_validation_error(e)) from e

        checker = self._settings.checker
        defaults = {
            "organisation_name": checker.organisation_name,
            "checker_first_name": checker.first_name,
            "checker_last_name": checker.last_name,
        }
        updates = {key: value for key, value in defaults.items() if getattr(request, key) is None}
        if updates:
            request = request.model_copy(update=updates)

        missing = request.missing_fields(profile.required_fields)
        if missing:
            names = ", ".join(field.value for field in missing)
            raise InvalidInputError(f"Missing required field(s) for {profile.name}: {names}")

        if profile.categories:
            category = profile.match_category(request.profession)
            if category is None:
                raise InvalidInputError(
                    f"Unknown {profile.category_label} '{request.profession}'. "
                    f"Expected one of: {', '.join(profile.categories)}"
                )
            request = request.model_copy(update={"profession": category})

        return request

    async def verify(
        self,
        provider: str | ProviderKind,
        request: VerificationRequest | Mapping[str, Any],
    ) -> VerificationResult:
        """
        Verify a credential against a provider.

        Args:
            provider (str | ProviderKind): Provider to check against.
            request (VerificationRequest | Mapping[str, Any]): Request or raw body.

        Returns:
            VerificationResult: The result. Never raises.
        """
        try:
            profile = get_profile(provider)
            validated = self.validate_request(profile, request)
        except InvalidInputError as e:
            logger.info(f"Rejected verification request for '{provider}': {e.message}")
            return VerificationResult.from_outcome(
                provider=str(provider),
                identifier=_identifier_hint(request),
                outcome=e.outcome,
                message=e.message,
            )

        deadline = self._settings.timeouts.request_deadline
        started = time.perf_counter()
        deadline_at = asyncio.get_running_loop().time() + deadline
        logger.info(f"Starting {profile.name} verification")
        try:
            result = await self._run(profile, validated, deadline_at)
        except TimeoutError:
            logger.warning(f"{profile.name} verification timed out after {deadline:g}s")
            result = self._failure(
                profile,
                validated,
                Outcome.ERROR,
                f"Verification timed out after {deadline:g}s. The provider may be slow or "
                "unavailable; try again later.",
            )
        except VerificationError as e:
            logger.warning(f"{profile.name} verification failed: {e.message}")
            result = self._failure(profile, validated, e.outcome, e.message)
        except Exception as e:
            logger.exception(f"Unexpected error verifying against {profile.name}")
            result = self._failure(
                profile, validated, Outcome.ERROR, f"Unexpected error: {e}"
            )

        elapsed = time.perf_counter() - started
        logger.info(f"{profile.name} verification finished: {result.outcome} in {elapsed:.1f}s")
        return result

    def _failure(
        self,
        profile: ProviderProfile,
        request: VerificationRequest,
        outcome: Outcome,
        message: str,
        evidence: Evidence | None = None,
    ) -> VerificationResult:
        return VerificationResult.from_outcome(
            provider=profile.kind.value,
            identifier=request.identifier,
            outcome=outcome,
            message=message,
            evidence=evidence,
        )

    async def _capture(self, session: BrowserSession, deadline_at: float) -> Evidence:
        remaining = deadline_at - asyncio.get_running_loop().time()
        return await capture_evidence(
            session.page,
            self._settings.evidence,
            self._settings.timeouts.evidence,
            budget=max(remaining, 0.0),
        )

    async def _run(
        self, profile: ProviderProfile, request: VerificationRequest, deadline_at: float
    ) -> VerificationResult:
        """
        Run one verification inside its own browser session.

        Launch and the provider flow are bounded by the request deadline. The
        page is classified as soon as the flow ends. Evidence gets the time
        left before the deadline and never changes the classification.
        """
        adapter = ProviderAdapter(profile, self._settings.timeouts)
        async with AsyncExitStack() as stack:
            async with asyncio.timeout_at(deadline_at):
                session = await stack.enter_async_context(open_session(self._session_config))
            try:
                async with asyncio.timeout_at(deadline_at):
                    observation = await adapter.run(session, request)
            except VerificationError as e:
                logger.warning(f"{profile.name}: {e.message}")
                return self._failure(
                    profile,
                    request,
                    e.outcome,
                    e.message,
                    evidence=await self._capture(session, deadline_at),
                )
            except TimeoutError:
                raise
            except Exception as e:
                logger.exception(f"{profile.name}: unexpected error during the provider flow")
                return self._failure(
                    profile,
                    request,
                    Outcome.ERROR,
                    f"Unexpected error: {e}",
                    evidence=await self._capture(session, deadline_at),
                )

            classification = classify(profile, observation, request.identifier or "")
            evidence = await self._capture(session, deadline_at)
            if evidence.missing:
                logger.warning(
                    f"{profile.name}: evidence incomplete ({', '.join(evidence.missing)}), "
                    f"keeping outcome {classification.outcome}"
                )
            return VerificationResult.from_outcome(
                provider=profile.kind.value,
                identifier=request.identifier,
                outcome=classification.outcome,
                message=classification.message,
                result_code=classification.result_code,
                details=classification.details,
                evidence=evidence,
            )
