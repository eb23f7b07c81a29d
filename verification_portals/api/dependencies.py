"""Dependency injection providers."""

import asyncio
from functools import lru_cache

from fastapi import HTTPException, Security
from fastapi.security import APIKeyHeader

from verification_portals.core.settings import get_settings
from verification_portals.services import ReachabilityService, VerificationService

# API key header scheme
api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


@lru_cache
def get_verification_service() -> VerificationService:
    """
    Get cached verification service singleton.

        VerificationService: The verification service instance.
    """
    settings = get_settings()
    return VerificationService(settings)


@lru_cache
def get_reachability_service() -> ReachabilityService:
    """
    Get cached reachability service singleton.

        ReachabilityService: The reachability service instance.
    """
    settings = get_settings()
    return ReachabilityService(settings)


@lru_cache
def get_session_limiter() -> asyncio.Semaphore:
    """
    Get the semaphore bounding concurrent browser sessions.

    Each verification runs its own browser process, so the host caps how
    many run at once.

        asyncio.Semaphore: Shared semaphore.
    """
    settings = get_settings()
    return asyncio.Semaphore(settings.api_server.max_concurrent_sessions)


def verify_api_key(api_key: str | None = Security(api_key_header)) -> str | None:
    """
    Verify API key from request header.

    Args:
        api_key: API key from X-API-Key header.

    Returns:
        str | None: The validated API key, or None if auth is disabled.

    Raises:
        HTTPException: 401 if API key is required but missing/invalid.
    """
    settings = get_settings()
    configured_key = settings.api_server.api_key

    # If no API key is configured, auth is disabled
    if configured_key is None:
        return None

    if api_key is None:
        raise HTTPException(
            status_code=401,
            detail="API key required",
            headers={"WWW-Authenticate": "ApiKey"},
        )

    if api_key != configured_key:
        raise HTTPException(
            status_code=401,
            detail="Invalid API key",
            headers={"WWW-Authenticate": "ApiKey"},
        )

    return api_key


def clear_dependency_caches() -> None:
    """
    Clear all dependency caches.

    """
    get_verification_service.cache_clear()
    get_reachability_service.cache_clear()
    get_session_limiter.cache_clear()
