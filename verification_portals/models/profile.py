"""Provider profile models.

A profile describes one provider entirely as data: where to go, which
fields to fill on each step, how to tell a step advanced, and how to read
the terminal page.
"""

from pydantic import BaseModel, ConfigDict, Field

from verification_portals.enums import (
    FieldKind,
    LocatorStrategy,
    Outcome,
    ProviderKind,
    RequestField,
)

_FROZEN = ConfigDict(extra="forbid", frozen=True)


class FieldLocator(BaseModel):
    """One lookup strategy and the hints it matches against."""

    strategy: LocatorStrategy = Field(description="Lookup strategy")
    values: tuple[str, ...] = Field(default=(), description="Hints for the strategy")

    model_config = _FROZEN


class ElementSpec(BaseModel):
    """How to find one element on a provider page."""

    role: str = Field(description="What the element is for, used in messages")
    kind: FieldKind = Field(default=FieldKind.TEXT, description="Kind of element")
    locators: tuple[FieldLocator, ...] = Field(description="Strategies in priority order")
    exclude: tuple[str, ...] = Field(
        default=(), description="Substrings that disqualify a candidate"
    )
    first_match: bool = Field(
        default=False, description="Take the first of several matches instead of failing"
    )

    model_config = _FROZEN

    @property
    def exact_selectors(self) -> tuple[str, ...]:
        """CSS selectors for the exact name/id hints."""
        selectors: list[str] = []
        for locator in self.locators:
            if locator.strategy is not LocatorStrategy.EXACT:
                continue
            for value in locator.values:
                selectors.append(f'[name="{value}"]')
                selectors.append(f'[id="{value}"]')
        return tuple(selectors)


class FieldSpec(ElementSpec):
    """A form field filled from the request."""

    source: RequestField = Field(description="Request value the field is filled from")


class Transition(BaseModel):
    """Signals that a submitted step moved on."""

    selectors: tuple[str, ...] = Field(default=(), description="Selectors of the next page")
    text_contains: tuple[str, ...] = Field(
        default=(), description="Lower-case markers in the next page's text"
    )
    text_absent: tuple[str, ...] = Field(
        default=(), description="Lower-case markers of the same form re-rendered with errors"
    )

    model_config = _FROZEN


class Step(BaseModel):
    """One page of a provider flow."""

    name: str = Field(description="Step name, used in messages")
    navigate: str | None = Field(default=None, description="URL to open before the step")
    fields: tuple[FieldSpec, ...] = Field(description="Fields filled on this step")
    submit: ElementSpec = Field(description="Submit control")
    form_values: dict[str, str] = Field(
        default_factory=dict, description="Values set before a direct form submission"
    )
    advance: Transition = Field(default_factory=Transition, description="Advance markers")

    model_config = _FROZEN


class ClassificationRule(BaseModel):
    """Maps page text to an outcome.

    The rule matches when every group in ``match`` has at least one phrase
    present and no ``exclude`` phrase is present.
    """

    outcome: Outcome = Field(description="Outcome when the rule matches")
    match: tuple[tuple[str, ...], ...] = Field(description="Phrase groups, all required")
    exclude: tuple[str, ...] = Field(default=(), description="Phrases that veto the rule")
    message: str = Field(description="Message reported when the rule matches")
    result_code: str | None = Field(default=None, description="Provider-specific result code")

    model_config = _FROZEN

    def matches(self, text: str) -> bool:
        """
        Check the rule against lower-cased page text.

        Args:
            text (str): Lower-cased page text.

        Returns:
            bool: True if the rule matches.
        """
        if any(phrase in text for phrase in self.exclude):
            return False
        return all(any(phrase in text for phrase in group) for group in self.match)


class DetailSpec(BaseModel):
    """A labelled field to extract from the terminal page."""

    key: str = Field(description="Key in the result details")
    labels: tuple[str, ...] = Field(description="Lower-case labels the value appears under")
    pattern: str | None = Field(
        default=None, description="Regex the value must contain; the match is kept"
    )

    model_config = _FROZEN


class ProviderProfile(BaseModel):
    """Everything needed to verify against one provider."""

    kind: ProviderKind = Field(description="Provider kind")
    name: str = Field(description="Display name")
    url: str = Field(description="Landing page")
    fallback_urls: tuple[str, ...] = Field(default=(), description="Tried if the landing fails")
    required_fields: tuple[RequestField, ...] = Field(description="Fields that must be supplied")
    categories: tuple[str, ...] = Field(default=(), description="Fixed category vocabulary")
    category_label: str = Field(default="profession", description="What a category is called")
    consent: ElementSpec | None = Field(default=None, description="Cookie consent button")
    interstitial_markers: tuple[str, ...] = Field(
        default=(), description="Lower-case URL or text markers of a redirect or bot check"
    )
    steps: tuple[Step, ...] = Field(description="Steps in order")
    rules: tuple[ClassificationRule, ...] = Field(description="Classification rules in order")
    details: tuple[DetailSpec, ...] = Field(default=(), description="Fields to extract")
    name_from_heading: bool = Field(
        default=False, description="Fall back to the page heading for the full name"
    )
    content_selectors: tuple[str, ...] = Field(
        default=("#main-content", "main", "[role=main]"),
        description="Selectors of the main content region, tried in order",
    )
    error_selectors: tuple[str, ...] = Field(
        default=(".govuk-error-message", ".govuk-error-summary"),
        description="Selectors of validation messages",
    )
    checks_identifier: bool = Field(
        default=False, description="Require the page to show the submitted identifier"
    )

    model_config = _FROZEN

    def match_category(self, value: str | None) -> str | None:
        """
        Find a category case-insensitively.

        Args:
            value (str | None): Submitted category.

        Returns:
            str | None: The canonical category, or None if it is not offered.
        """
        if not value:
            return None
        wanted = " ".join(value.split()).lower()
        for category in self.categories:
            if category.lower() == wanted:
                return category
        return None
