"""Result classifier - turns a terminal page into an outcome.

Classification is a pure function of the observation: the profile's rule
table is evaluated top to bottom over the lower-cased page text and the
first match wins. Registers additionally require the page to show the
identifier that was submitted before any positive outcome is reported.
"""

import logging
import re

from bs4 import BeautifulSoup, NavigableString, Tag

from verification_portals.enums import Outcome
from verification_portals.models import (
    Classification,
    DetailSpec,
    ProviderProfile,
    RawObservation,
)

logger = logging.getLogger(__name__)

MAX_DETAIL_LENGTH = 200

# Copy from cookie banners and storage notices that generic scraping picks up
BOILERPLATE_VOCABULARY = (
    "cookie",
    "consent",
    "privacy",
    "storage",
    "analytics",
    "we use",
    "your browser",
    "javascript",
)

HEADING_EXCLUDES = (
    "our registers",
    "general medical council",
    "search",
    "results",
    "register",
    "check",
)

LABEL_TAGS = ("label", "strong", "b", "span", "p", "div", "h3", "h4", "th", "td")


def normalise_identifier(value: str) -> str:
    """Upper-case and strip all whitespace."""
    return re.sub(r"\s+", "", value).upper()


def _clean(value: str) -> str:
    return " ".join(value.split())


def _normalise_label(value: str) -> str:
    return _clean(value).rstrip(":").strip().lower()


def _accept(value: str | None, spec: DetailSpec) -> str | None:
    """Validate a candidate value for a detail."""
    if value is None:
        return None
    value = _clean(value).lstrip(":").strip()
    if not value or len(value) > MAX_DETAIL_LENGTH:
        return None
    lowered = value.lower()
    if any(word in lowered for word in BOILERPLATE_VOCABULARY):
        return None
    if spec.pattern:
        match = re.search(spec.pattern, value, re.IGNORECASE)
        if match is None:
            return None
        return match.group(0)
    return value


def _following_text(tag: Tag) -> str | None:
    """Text right after a label element, either a bare string or the next element."""
    for sibling in tag.next_siblings:
        if isinstance(sibling, NavigableString):
            if sibling.strip():
                return str(sibling)
            continue
        if isinstance(sibling, Tag):
            return sibling.get_text(" ")
    return None


def _lookup_markup(scope: Tag, spec: DetailSpec) -> str | None:
    """Find a labelled value in definition lists, tables or label/value pairs."""
    labels = spec.labels

    for dt in scope.find_all("dt"):
        if _normalise_label(dt.get_text(" ")) in labels:
            dd = dt.find_next_sibling("dd")
            if dd is not None:
                value = _accept(dd.get_text(" "), spec)
                if value:
                    return value

    for row in scope.find_all("tr"):
        cells = row.find_all(["th", "td"], recursive=False)
        if len(cells) >= 2 and _normalise_label(cells[0].get_text(" ")) in labels:
            value = _accept(cells[1].get_text(" "), spec)
            if value:
                return value

    for tag in scope.find_all(LABEL_TAGS):
        if _normalise_label(tag.get_text(" ")) not in labels:
            continue
        value = _accept(_following_text(tag), spec)
        if value:
            return value

    return None


def _lookup_text(text: str, spec: DetailSpec) -> str | None:
    """Find a ``Label: value`` line in rendered text."""
    for label in spec.labels:
        pattern = rf"(?:^|\n)[ \t]*{re.escape(label)}\b[ \t]*:?[ \t]*\n?[ \t]*([^\n]+)"
        for match in re.finditer(pattern, text, re.IGNORECASE):
            value = _accept(match.group(1), spec)
            if value:
                return value
    return None


def _heading_name(scope: Tag) -> str | None:
    """Take a person's name from the page heading."""
    for heading in scope.find_all(["h1", "h2"]):
        text = _clean(heading.get_text(" "))
        lowered = text.lower()
        if not text or len(text) > 80 or len(text.split()) < 2:
            continue
        if any(word in lowered for word in (*BOILERPLATE_VOCABULARY, *HEADING_EXCLUDES)):
            continue
        return text
    return None


def _content_scope(profile: ProviderProfile, html: str) -> Tag | None:
    if not html:
        return None
    soup = BeautifulSoup(html, "lxml")
    for selector in profile.content_selectors:
        node = soup.select_one(selector)
        if node is not None:
            return node
    return soup


def extract_details(profile: ProviderProfile, observation: RawObservation) -> dict[str, str]:
    """
    Extract the profile's labelled fields from the terminal page.

    Args:
        profile (ProviderProfile): Provider profile.
        observation (RawObservation): Terminal page.

    Returns:
        dict[str, str]: Extracted values keyed by detail key.
    """
    scope = _content_scope(profile, observation.html)
    text = observation.content_text
    details: dict[str, str] = {}
    for spec in profile.details:
        value = _lookup_markup(scope, spec) if scope is not None else None
        if value is None:
            value = _lookup_text(text, spec)
        if value is not None:
            details[spec.key] = value

    if "fullName" not in details and profile.name_from_heading and scope is not None:
        name = _heading_name(scope)
        if name:
            details["fullName"] = name
    return details


def check_identifier(
    profile: ProviderProfile,
    details: dict[str, str],
    text: str,
    submitted_identifier: str,
) -> str | None:
    """
    Check that the page is about the submitted identifier.

    Args:
        profile (ProviderProfile): Provider profile.
        details (dict[str, str]): Extracted details.
        text (str): Lower-cased page text.
        submitted_identifier (str): Identifier that was searched for.

    Returns:
        str | None: A mismatch message, or None if the identifier matches.
    """
    wanted = normalise_identifier(submitted_identifier)
    found = details.get("registrationNumber")
    if found:
        if normalise_identifier(found) != wanted:
            return (
                f"Registration number mismatch. Found {found} but searched for "
                f"{submitted_identifier}."
            )
        return None

    pattern = rf"(?<![a-z0-9]){re.escape(wanted.lower())}(?![a-z0-9])"
    if re.search(pattern, text.replace(" ", "")) or re.search(pattern, text):
        return None
    return (
        f"The {profile.name} result does not show registration number "
        f"{submitted_identifier}, so the record could not be confirmed."
    )


def _stalled_message(profile: ProviderProfile, observation: RawObservation) -> str:
    message = (
        f"The {profile.name} form did not advance past the "
        f"'{observation.stalled_step_name}' step. The submitted details may have been "
        "rejected or the site structure may have changed."
    )
    if observation.validation_errors:
        message += " Provider said: " + "; ".join(observation.validation_errors)
    return message


def _identifier_mismatch(
    profile: ProviderProfile, message: str, details: dict[str, str] | None
) -> Classification:
    logger.info(f"{profile.name}: {message}")
    return Classification(
        outcome=Outcome.NOT_FOUND,
        message=message,
        result_code="identifier_mismatch",
        details=details,
    )


def classify(
    profile: ProviderProfile,
    observation: RawObservation,
    submitted_identifier: str,
) -> Classification:
    """
    Classify a terminal page.

    Args:
        profile (ProviderProfile): Provider profile.
        observation (RawObservation): Terminal page.
        submitted_identifier (str): Identifier that was submitted.

    Returns:
        Classification: Outcome, message, result code and details.
    """
    if observation.stalled_step is not None:
        return Classification(
            outcome=Outcome.FORM_UNAVAILABLE,
            message=_stalled_message(profile, observation),
            result_code="did_not_advance",
        )

    text = _clean(observation.content_text).lower()
    details = extract_details(profile, observation) or None

    for rule in profile.rules:
        if not rule.matches(text):
            continue
        if profile.checks_identifier and rule.outcome is not Outcome.NOT_FOUND:
            mismatch = check_identifier(profile, details or {}, text, submitted_identifier)
            if mismatch:
                return _identifier_mismatch(profile, mismatch, details)
        logger.debug(f"{profile.name}: matched rule '{rule.result_code}'")
        return Classification(
            outcome=rule.outcome,
            message=rule.message,
            result_code=rule.result_code,
            details=details,
        )

    # A different registration number is a mismatch even when no rule matched
    if profile.checks_identifier and details and details.get("registrationNumber"):
        mismatch = check_identifier(profile, details, text, submitted_identifier)
        if mismatch:
            return _identifier_mismatch(profile, mismatch, details)

    return Classification(
        outcome=Outcome.ERROR,
        message=(
            f"The {profile.name} result page could not be interpreted (result "
            "undeterminable). The page wording may have changed."
        ),
        result_code="undeterminable",
        details=details,
    )
