"""Outcome enum."""

from enum import StrEnum


class Outcome(StrEnum):
    """Closed set of verification outcomes."""

    VERIFIED_ACTIVE = "verified_active"
    VERIFIED_INACTIVE_OR_RESTRICTED = "verified_inactive_or_restricted"
    NOT_FOUND = "not_found"
    INVALID_INPUT = "invalid_input"
    EXPIRED = "expired"
    FORM_UNAVAILABLE = "form_unavailable"
    ERROR = "error"

    @property
    def is_success(self) -> bool:
        """Whether the provider confirmed the credential exists."""
        return self in (Outcome.VERIFIED_ACTIVE, Outcome.VERIFIED_INACTIVE_OR_RESTRICTED)

    @property
    def is_verified(self) -> bool:
        """Whether the credential is confirmed genuine and current."""
        return self is Outcome.VERIFIED_ACTIVE
