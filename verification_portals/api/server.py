"""FastAPI application server."""

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Annotated, Any

from fastapi import Body, Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.middleware.base import BaseHTTPMiddleware

from verification_portals import __version__
from verification_portals.api.dependencies import (
    get_reachability_service,
    get_session_limiter,
    get_verification_service,
    verify_api_key,
)
from verification_portals.core.errors import InvalidInputError
from verification_portals.core.settings import get_settings
from verification_portals.core.utils import find_chromium, get_playwright_version, setup_logging
from verification_portals.models import (
    HealthResponse,
    ProviderInfo,
    ProviderProfile,
    ReachabilityResponse,
    VerificationResponse,
)
from verification_portals.services import (
    PROFILES,
    ReachabilityService,
    VerificationService,
    get_profile,
)

logger = logging.getLogger(__name__)

# Rate limiter instance
limiter = Limiter(key_func=get_remote_address)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Middleware to add security headers to all responses."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        """Add security headers to response."""
        response = await call_next(request)
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Cache-Control"] = "no-store"
        # Only add HSTS if behind HTTPS proxy (check X-Forwarded-Proto)
        if request.headers.get("X-Forwarded-Proto") == "https":
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> Response:
    """Handle rate limit exceeded errors."""
    return JSONResponse(
        status_code=429,
        content={"detail": "Rate limit exceeded. Please try again later."},
    )


def resolve_profile(provider: str) -> ProviderProfile:
    """
    Resolve a provider path parameter.

    Args:
        provider (str): Provider name from the URL.

    Returns:
        ProviderProfile: The provider's profile.

    Raises:
        HTTPException: 404 if the provider is not supported.
    """
    try:
        return get_profile(provider)
    except InvalidInputError as e:
        raise HTTPException(status_code=404, detail=e.message) from e


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Application lifespan manager.

    Args:
        app (FastAPI): The FastAPI application instance.

    Yields:
        None
    """
    settings = get_settings()

    setup_logging(settings=settings.logging)

    logger.info(f"Starting Verification Portals Service v{__version__}")

    # Browser automation is a hard requirement
    playwright_version = get_playwright_version()
    if playwright_version is None:
        raise RuntimeError(
            "Playwright is not installed or not accessible. Please install it:\n"
            "  pip install playwright\n"
            "  playwright install --with-deps chromium"
        )

    logger.info(f"Playwright available: {playwright_version}")
    chromium = find_chromium(settings.browser)
    if chromium is None:
        logger.warning(
            "No Chromium build found, sessions will fail to launch. Install it with:\n"
            "  playwright install --with-deps chromium"
        )
    else:
        logger.info(f"Chromium: {chromium}")
    logger.info(
        f"Serving {len(PROFILES)} providers, at most "
        f"{settings.api_server.max_concurrent_sessions} concurrent sessions"
    )

    yield

    logger.info("Shutting down Verification Portals Service")


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

        FastAPI: The configured FastAPI application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title="Verification Portals Service",
        description="Verify credentials against external regulatory and government portals",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)  # type: ignore[arg-type]

    app.add_middleware(SecurityHeadersMiddleware)

    # CORS middleware - only add if origins are specified
    if settings.api_server.cors_allow_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.api_server.cors_allow_origins,
            allow_credentials=True,
            allow_methods=["GET", "POST"],
            allow_headers=["*"],
        )

    return app


app = create_app()


@app.get("/", include_in_schema=False)
async def index() -> dict[str, str]:
    """
    Service banner.

        dict[str, str]: Service name and docs link.
    """
    return {"message": "Verification Portals Service", "docs": "/docs"}


@app.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """
    Health check endpoint (no auth required).

        HealthResponse: Health status including the Playwright and Chromium installs.
    """
    return HealthResponse(
        status="healthy",
        version=__version__,
        playwright_version=get_playwright_version(),
        chromium=find_chromium(get_settings().browser),
    )


@app.get("/providers", response_model=list[ProviderInfo])
async def list_providers() -> list[ProviderInfo]:
    """
    List supported providers.

    Returns:
        list[ProviderInfo]: Provider catalogue with required fields and categories.
    """
    return [
        ProviderInfo(
            kind=profile.kind,
            name=profile.name,
            url=profile.url,
            required_fields=list(profile.required_fields),
            categories=list(profile.categories),
        )
        for profile in PROFILES.values()
    ]


@app.get("/providers/{provider}/reachability", response_model=ReachabilityResponse)
async def provider_reachability(
    provider: str,
    service: Annotated[ReachabilityService, Depends(get_reachability_service)],
    _api_key: Annotated[str | None, Depends(verify_api_key)],
) -> ReachabilityResponse:
    """
    Check whether a provider's landing page answers.

    Requires API key authentication if configured.

    Args:
        provider (str): Provider name.
        service (ReachabilityService): Injected reachability service.

    Returns:
        ReachabilityResponse: Probe result.
    """
    profile = resolve_profile(provider)
    return await service.probe(profile)


@app.post("/verify/{provider}", response_model=VerificationResponse)
@limiter.limit(lambda: get_settings().api_server.rate_limit)
async def verify_credential(
    request: Request,
    provider: str,
    payload: Annotated[dict[str, Any], Body(description="Verification request")],
    service: Annotated[VerificationService, Depends(get_verification_service)],
    sessions: Annotated[asyncio.Semaphore, Depends(get_session_limiter)],
    _api_key: Annotated[str | None, Depends(verify_api_key)],
) -> VerificationResponse:
    """
    Verify a credential against a provider.

    The body carries the identifier (``certificateNumber``, ``shareCode`` or
    ``registrationNumber``) and whichever person details the provider needs.
    Failures are reported in the response body, not as HTTP errors.

    Requires API key authentication if configured.

    Args:
        request (Request): The request object (required for rate limiting).
        provider (str): Provider name.
        payload (dict[str, Any]): Verification request body.
        service (VerificationService): Injected verification service.
        sessions (asyncio.Semaphore): Concurrent session limiter.

    Returns:
        VerificationResponse: Verification result with evidence.
    """
    profile = resolve_profile(provider)
    async with sessions:
        result = await service.verify(profile.kind, payload)
    return VerificationResponse.from_result(result)
