"""Tests for provider profile models."""

from verification_portals.enums import FieldKind, LocatorStrategy, Outcome, ProviderKind
from verification_portals.models import (
    ClassificationRule,
    ElementSpec,
    FieldLocator,
    ProviderProfile,
    Step,
)


def _rule(**overrides) -> ClassificationRule:
    values = {
        "outcome": Outcome.EXPIRED,
        "match": (("no longer current",), ("certificate",)),
        "message": "Certificate is no longer current.",
    }
    values.update(overrides)
    return ClassificationRule(**values)


class TestClassificationRule:
    """Tests for ClassificationRule.matches."""

    def test_every_group_must_match(self) -> None:
        """
        Test that all phrase groups are required.

        """
        rule = _rule()
        assert rule.matches("this certificate is no longer current") is True
        assert rule.matches("this record is no longer current") is False

    def test_any_phrase_in_group_matches(self) -> None:
        """
        Test that one phrase per group is enough.

        """
        rule = _rule(match=(("registered", "active"),))
        assert rule.matches("status: active") is True

    def test_exclude_vetoes_match(self) -> None:
        """
        Test that an exclude phrase prevents a match.

        """
        rule = _rule(match=(("registered",),), exclude=("not registered",))
        assert rule.matches("this person is not registered") is False
        assert rule.matches("this person is registered") is True


class TestElementSpec:
    """Tests for ElementSpec."""

    def test_exact_selectors(self) -> None:
        """
        Test that exact hints become name and id selectors.

        """
        spec = ElementSpec(
            role="surname",
            locators=(
                FieldLocator(strategy=LocatorStrategy.EXACT, values=("surname",)),
                FieldLocator(strategy=LocatorStrategy.ATTRIBUTE, values=("last",)),
            ),
        )
        assert spec.exact_selectors == ('[name="surname"]', '[id="surname"]')

    def test_no_exact_locators(self) -> None:
        """
        Test that specs without exact hints have no selectors.

        """
        spec = ElementSpec(
            role="submit",
            kind=FieldKind.BUTTON,
            locators=(FieldLocator(strategy=LocatorStrategy.TEXT, values=("continue",)),),
        )
        assert spec.exact_selectors == ()


class TestProviderProfile:
    """Tests for ProviderProfile."""

    def _profile(self) -> ProviderProfile:
        return ProviderProfile(
            kind=ProviderKind.HCPC,
            name="HCPC register",
            url="https://register.example/",
            required_fields=(),
            categories=("Occupational therapist", "Paramedic"),
            steps=(
                Step(
                    name="search",
                    fields=(),
                    submit=ElementSpec(
                        role="search",
                        kind=FieldKind.BUTTON,
                        locators=(FieldLocator(strategy=LocatorStrategy.FIRST_VISIBLE),),
                    ),
                ),
            ),
            rules=(_rule(),),
        )

    def test_match_category_is_case_insensitive(self) -> None:
        """
        Test category lookup ignores case and extra spaces.

        """
        profile = self._profile()
        assert profile.match_category("occupational   THERAPIST") == "Occupational therapist"

    def test_match_category_unknown(self) -> None:
        """
        Test unknown and empty categories.

        """
        profile = self._profile()
        assert profile.match_category("Surgeon") is None
        assert profile.match_category(None) is None

    def test_default_selectors(self) -> None:
        """
        Test default content and error selectors.

        """
        profile = self._profile()
        assert profile.content_selectors[0] == "#main-content"
        assert ".govuk-error-summary" in profile.error_selectors
        assert profile.checks_identifier is False
