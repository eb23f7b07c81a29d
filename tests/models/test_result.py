"""Tests for result models."""

import pytest
from pydantic import ValidationError

from verification_portals.enums import Outcome
from verification_portals.models import Evidence, VerificationResult


class TestOutcome:
    """Tests for Outcome flags."""

    @pytest.mark.parametrize(
        ("outcome", "success", "verified"),
        [
            (Outcome.VERIFIED_ACTIVE, True, True),
            (Outcome.VERIFIED_INACTIVE_OR_RESTRICTED, True, False),
            (Outcome.NOT_FOUND, False, False),
            (Outcome.INVALID_INPUT, False, False),
            (Outcome.EXPIRED, False, False),
            (Outcome.FORM_UNAVAILABLE, False, False),
            (Outcome.ERROR, False, False),
        ],
    )
    def test_flags(self, outcome: Outcome, success: bool, verified: bool) -> None:
        """
        Test success and verified flags of each outcome.

        """
        assert outcome.is_success is success
        assert outcome.is_verified is verified


class TestVerificationResult:
    """Tests for VerificationResult model."""

    def test_from_outcome_derives_flags(self) -> None:
        """
        Test that flags are derived from the outcome.

        """
        result = VerificationResult.from_outcome(
            provider="nmc",
            identifier="12A3456E",
            outcome=Outcome.VERIFIED_INACTIVE_OR_RESTRICTED,
            message="Registration is lapsed.",
        )
        assert result.success is True
        assert result.verified is False
        assert result.observed_at.tzinfo is not None

    def test_from_outcome_defaults(self) -> None:
        """
        Test defaults for identifier, details and evidence.

        """
        result = VerificationResult.from_outcome(
            provider="dbs",
            identifier=None,
            outcome=Outcome.ERROR,
            message="Failed",
            details={},
        )
        assert result.identifier == ""
        assert result.details is None
        assert result.evidence == Evidence()

    def test_inconsistent_flags_raise(self) -> None:
        """
        Test that flags contradicting the outcome are rejected.

        """
        with pytest.raises(ValidationError, match="do not match outcome"):
            VerificationResult(
                provider="gmc",
                success=True,
                verified=True,
                outcome=Outcome.NOT_FOUND,
                message="Not found",
                observed_at="2026-01-01T00:00:00Z",
            )
