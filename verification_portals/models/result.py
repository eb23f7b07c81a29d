"""Verification result models."""

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator

from verification_portals.enums import Outcome
from verification_portals.models.evidence import Evidence


class Classification(BaseModel):
    """Outcome derived from a terminal page."""

    outcome: Outcome = Field(description="Classified outcome")
    message: str = Field(description="Human-readable explanation")
    result_code: str | None = Field(default=None, description="Provider-specific result code")
    details: dict[str, str] | None = Field(default=None, description="Extracted labelled fields")

    model_config = ConfigDict(extra="forbid", frozen=True)


class VerificationResult(BaseModel):
    """Final result of one verification."""

    provider: str = Field(description="Provider the credential was checked against")
    identifier: str = Field(default="", description="Identifier that was submitted")
    success: bool = Field(description="Whether the provider confirmed the credential exists")
    verified: bool = Field(description="Whether the credential is genuine and current")
    outcome: Outcome = Field(description="Classified outcome")
    result_code: str | None = Field(default=None, description="Provider-specific result code")
    message: str = Field(description="Human-readable explanation")
    details: dict[str, str] | None = Field(default=None, description="Extracted labelled fields")
    evidence: Evidence = Field(default_factory=Evidence, description="Captured evidence")
    observed_at: datetime = Field(description="When the result was produced (UTC)")

    model_config = ConfigDict(extra="forbid")

    @model_validator(mode="after")
    def validate_flags_match_outcome(self) -> "VerificationResult":
        """Validate success and verified agree with the outcome."""
        if self.success != self.outcome.is_success or self.verified != self.outcome.is_verified:
            raise ValueError(f"success/verified flags do not match outcome '{self.outcome}'")
        return self

    @classmethod
    def from_outcome(
        cls,
        provider: str,
        identifier: str | None,
        outcome: Outcome,
        message: str,
        result_code: str | None = None,
        details: dict[str, str] | None = None,
        evidence: Evidence | None = None,
    ) -> "VerificationResult":
        """
        Build a result, deriving success and verified from the outcome.

        Args:
            provider (str): Provider kind.
            identifier (str | None): Submitted identifier.
            outcome (Outcome): Classified outcome.
            message (str): Human-readable explanation.
            result_code (str | None): Provider-specific result code.
            details (dict[str, str] | None): Extracted labelled fields.
            evidence (Evidence | None): Captured evidence.

        Returns:
            VerificationResult: The result.
        """
        return cls(
            provider=provider,
            identifier=identifier or "",
            success=outcome.is_success,
            verified=outcome.is_verified,
            outcome=outcome,
            result_code=result_code,
            message=message,
            details=details or None,
            evidence=evidence or Evidence(),
            observed_at=datetime.now(UTC),
        )
