"""Verification error hierarchy.

Each error carries the Outcome it maps to once it reaches the
verification service boundary.
"""

from verification_portals.enums.outcome import Outcome


class VerificationError(Exception):
    """Base class for failures raised while verifying a credential."""

    outcome: Outcome = Outcome.ERROR

    def __init__(self, message: str) -> None:
        """
        Initialize the error.

        Args:
            message (str): Human-readable description naming the likely cause.
        """
        super().__init__(message)
        self.message = message


class InvalidInputError(VerificationError):
    """Caller-supplied data is missing or malformed."""

    outcome = Outcome.INVALID_INPUT


class FormUnavailableError(VerificationError):
    """The provider page did not have the structure we expected."""

    outcome = Outcome.FORM_UNAVAILABLE


class FieldNotFoundError(FormUnavailableError):
    """No element matched any locator strategy."""


class AmbiguousFieldError(FormUnavailableError):
    """A locator strategy matched more than one element."""


class ProviderUnavailableError(VerificationError):
    """The provider could not be reached."""


class SessionLaunchFailed(VerificationError):
    """The browser session could not be started."""
