"""Data models."""

from verification_portals.models.candidate import ElementCandidate
from verification_portals.models.evidence import Evidence
from verification_portals.models.observation import RawObservation
from verification_portals.models.profile import (
    ClassificationRule,
    DetailSpec,
    ElementSpec,
    FieldLocator,
    FieldSpec,
    ProviderProfile,
    Step,
    Transition,
)
from verification_portals.models.request import DateOfBirth, VerificationRequest
from verification_portals.models.responses import (
    HealthResponse,
    ProviderInfo,
    ReachabilityResponse,
    VerificationResponse,
)
from verification_portals.models.result import Classification, VerificationResult
from verification_portals.models.session_config import SessionConfig

__all__ = [
    "Classification",
    "ClassificationRule",
    "DateOfBirth",
    "DetailSpec",
    "ElementCandidate",
    "ElementSpec",
    "Evidence",
    "FieldLocator",
    "FieldSpec",
    "HealthResponse",
    "ProviderInfo",
    "ProviderProfile",
    "RawObservation",
    "ReachabilityResponse",
    "SessionConfig",
    "Step",
    "Transition",
    "VerificationRequest",
    "VerificationResponse",
    "VerificationResult",
]
