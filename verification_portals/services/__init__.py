"""Business logic services."""

from verification_portals.services.providers import PROFILES, get_profile, parse_provider_kind
from verification_portals.services.reachability_service import ReachabilityService
from verification_portals.services.verification_service import VerificationService

__all__ = [
    "PROFILES",
    "ReachabilityService",
    "VerificationService",
    "get_profile",
    "parse_provider_kind",
]
