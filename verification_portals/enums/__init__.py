"""Enumerations."""

from verification_portals.enums.form import FieldKind, LocatorStrategy, RequestField
from verification_portals.enums.outcome import Outcome
from verification_portals.enums.provider_kind import ProviderKind

__all__ = [
    "FieldKind",
    "LocatorStrategy",
    "Outcome",
    "ProviderKind",
    "RequestField",
]
