"""API response models."""

import base64
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from verification_portals.enums import Outcome, ProviderKind, RequestField
from verification_portals.models.result import VerificationResult


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(description="Health status")
    version: str = Field(description="Application version")
    playwright_version: str | None = Field(
        default=None, description="Playwright version if available"
    )
    chromium: str | None = Field(
        default=None, description="Chromium build sessions launch, if one is installed"
    )

    model_config = ConfigDict(
        extra="forbid",
        json_schema_extra={
            "example": {
                "status": "healthy",
                "version": "0.1.0",
                "playwright_version": "1.48.0",
                "chromium": "/root/.cache/ms-playwright/chromium-1140",
            }
        },
    )


class ProviderInfo(BaseModel):
    """Provider catalogue entry."""

    kind: ProviderKind = Field(description="Provider kind")
    name: str = Field(description="Display name")
    url: str = Field(description="Landing page")
    required_fields: list[RequestField] = Field(description="Fields that must be supplied")
    categories: list[str] = Field(default_factory=list, description="Fixed category vocabulary")

    model_config = ConfigDict(
        extra="forbid",
        json_schema_extra={
            "example": {
                "kind": "hcpc",
                "name": "HCPC register",
                "url": "https://www.hcpc-uk.org/check-the-register/",
                "required_fields": ["identifier", "profession"],
                "categories": ["Dietitian", "Paramedic"],
            }
        },
    )


class ReachabilityResponse(BaseModel):
    """Provider reachability probe result."""

    provider: ProviderKind = Field(description="Provider kind")
    url: str = Field(description="URL that was probed")
    reachable: bool = Field(description="Whether the provider answered without a server error")
    status_code: int | None = Field(default=None, description="HTTP status code")
    elapsed_ms: int | None = Field(default=None, description="Round trip time in milliseconds")
    error: str | None = Field(default=None, description="Error message if the probe failed")

    model_config = ConfigDict(extra="forbid")


class VerificationResponse(BaseModel):
    """Verification result response."""

    success: bool = Field(description="Whether the provider confirmed the credential exists")
    verified: bool = Field(description="Whether the credential is genuine and current")
    status: Outcome = Field(description="Classified outcome")
    result: str = Field(description="Provider-specific result code, or the outcome")
    message: str = Field(description="Human-readable explanation")
    details: dict[str, str] | None = Field(default=None, description="Extracted labelled fields")
    screenshot: str | None = Field(default=None, description="Base64 PNG of the final page")
    pdf: str | None = Field(default=None, description="Base64 PDF of the final page")
    verification_date: datetime = Field(
        serialization_alias="verificationDate", description="When the result was produced"
    )
    provider: str = Field(description="Provider kind")
    identifier: str = Field(description="Identifier that was submitted")

    model_config = ConfigDict(
        extra="forbid",
        json_schema_extra={
            "example": {
                "success": True,
                "verified": True,
                "status": "verified_active",
                "result": "registered",
                "message": "Registration is active.",
                "details": {"fullName": "Jane Smith", "registrationNumber": "OT12345"},
                "screenshot": None,
                "pdf": None,
                "verificationDate": "2026-01-15T10:30:00Z",
                "provider": "hcpc",
                "identifier": "OT12345",
            }
        },
    )

    @classmethod
    def from_result(cls, result: VerificationResult) -> "VerificationResponse":
        """
        Build the transport shape of a result.

        Args:
            result (VerificationResult): Engine result.

        Returns:
            VerificationResponse: Response with evidence base64-encoded.
        """
        evidence = result.evidence
        return cls(
            success=result.success,
            verified=result.verified,
            status=result.outcome,
            result=result.result_code or result.outcome.value,
            message=result.message,
            details=result.details,
            screenshot=_encode(evidence.snapshot),
            pdf=_encode(evidence.document),
            verification_date=result.observed_at,
            provider=result.provider,
            identifier=result.identifier,
        )


def _encode(data: bytes | None) -> str | None:
    """Base64-encode optional bytes."""
    if data is None:
        return None
    return base64.b64encode(data).decode("ascii")
