"""Provider profiles.

Every provider is described as data: the pages to visit, the fields to
fill and how to find them, the markers of a step moving on, the rules
that classify the terminal page and the labelled fields worth keeping.
"""

from types import MappingProxyType

from verification_portals.core.errors import InvalidInputError
from verification_portals.enums import (
    FieldKind,
    LocatorStrategy,
    Outcome,
    ProviderKind,
    RequestField,
)
from verification_portals.models import (
    ClassificationRule,
    DetailSpec,
    ElementSpec,
    FieldLocator,
    FieldSpec,
    ProviderProfile,
    Step,
    Transition,
)


def _exact(*values: str) -> FieldLocator:
    return FieldLocator(strategy=LocatorStrategy.EXACT, values=values)


def _attribute(*values: str) -> FieldLocator:
    return FieldLocator(strategy=LocatorStrategy.ATTRIBUTE, values=values)


def _text(*values: str) -> FieldLocator:
    return FieldLocator(strategy=LocatorStrategy.TEXT, values=values)


FIRST_VISIBLE = FieldLocator(strategy=LocatorStrategy.FIRST_VISIBLE)

SITE_SEARCH_EXCLUDES = ("site-search", "sitesearch", "search this site", "query")

HCPC_PROFESSIONS = (
    "Arts therapist",
    "Biomedical scientist",
    "Chiropodist / podiatrist",
    "Clinical scientist",
    "Dietitian",
    "Hearing aid dispenser",
    "Occupational therapist",
    "Operating department practitioner",
    "Orthoptist",
    "Paramedic",
    "Physiotherapist",
    "Practitioner psychologist",
    "Prosthetist / orthotist",
    "Radiographer",
    "Speech and language therapist",
)

# Registration numbers are an optional letter prefix followed by digits
REGISTRATION_NUMBER_PATTERN = r"\b[A-Z]{0,4}\s?\d[A-Z0-9]*\b"

COOKIE_CONSENT = ElementSpec(
    role="cookie consent",
    kind=FieldKind.BUTTON,
    locators=(
        _text(
            "accept all",
            "accept additional cookies",
            "accept analytics cookies",
            "accept cookies",
            "i agree",
            "accept",
        ),
        _attribute("accept"),
    ),
    exclude=("reject", "manage", "settings", "necessary only"),
    first_match=True,
)

GOVUK_CONTINUE = ElementSpec(
    role="continue button",
    kind=FieldKind.BUTTON,
    locators=(
        _text("continue", "submit", "check", "search"),
        _attribute("govuk-button", "submit"),
    ),
    exclude=("cookie", "reject", "accept", "sign out", "feedback"),
)

REGISTER_SEARCH = ElementSpec(
    role="search button",
    kind=FieldKind.BUTTON,
    locators=(
        _exact("searchButton", "search-button", "btnSearch"),
        _text("search", "check", "find", "submit"),
        _attribute("submit", "search"),
    ),
    exclude=(*SITE_SEARCH_EXCLUDES, "cookie", "accept", "reject"),
)


def _dob_fields(prefixes: tuple[str, ...]) -> tuple[FieldSpec, ...]:
    """Day, month and year fields named ``dayOfBirth`` or ``<prefix>-day`` and so on."""
    fields = []
    for part, source in (
        ("day", RequestField.DOB_DAY),
        ("month", RequestField.DOB_MONTH),
        ("year", RequestField.DOB_YEAR),
    ):
        names = [f"{part}OfBirth"]
        for prefix in prefixes:
            names.extend((f"{prefix}-{part}", f"{prefix}_{part}", f"{prefix}[{part}]"))
        fields.append(
            FieldSpec(
                role=f"date of birth ({part})",
                source=source,
                locators=(_exact(*names), _attribute(f"-{part}", f"{part}of")),
            )
        )
    return tuple(fields)


# Certificate update service

DBS_RULES = (
    ClassificationRule(
        outcome=Outcome.NOT_FOUND,
        match=(
            (
                "no match",
                "not found",
                "does not match",
                "details do not match",
                "unable to find",
                "cannot find",
                "could not find",
                "no record",
            ),
        ),
        message=(
            "The details did not match a certificate on the update service. "
            "Check the certificate number, surname and date of birth."
        ),
        result_code="no_match",
    ),
    ClassificationRule(
        outcome=Outcome.NOT_FOUND,
        match=(("not registered", "not subscribed", "certificate holder has not"),),
        message="The certificate is not registered with the update service.",
        result_code="not_registered",
    ),
    ClassificationRule(
        outcome=Outcome.EXPIRED,
        match=(("no longer current",),),
        message="The certificate is no longer current. A new check is required.",
        result_code="not_current",
    ),
    ClassificationRule(
        outcome=Outcome.EXPIRED,
        match=(("apply for a new",), ("dbs check",)),
        message="The certificate is no longer current. A new check is required.",
        result_code="not_current",
    ),
    ClassificationRule(
        outcome=Outcome.VERIFIED_ACTIVE,
        match=(("did not reveal any information",), ("remains current",)),
        message="The certificate remains current and did not reveal any information.",
        result_code="valid_no_info",
    ),
    ClassificationRule(
        outcome=Outcome.VERIFIED_ACTIVE,
        match=(("remains current",),),
        message=(
            "The certificate remains current. It contains information that needs review."
        ),
        result_code="valid_with_info",
    ),
)

DBS = ProviderProfile(
    kind=ProviderKind.DBS,
    name="DBS update service",
    url="https://secure.crbonline.gov.uk/crsc/check",
    required_fields=(
        RequestField.IDENTIFIER,
        RequestField.LAST_NAME,
        RequestField.DATE_OF_BIRTH,
        RequestField.ORGANISATION_NAME,
        RequestField.CHECKER_FIRST_NAME,
        RequestField.CHECKER_LAST_NAME,
    ),
    consent=COOKIE_CONSENT,
    steps=(
        Step(
            name="organisation",
            fields=(
                FieldSpec(
                    role="organisation name",
                    source=RequestField.ORGANISATION_NAME,
                    locators=(_exact("organisationName"), _attribute("organisation")),
                ),
                FieldSpec(
                    role="checker forename",
                    source=RequestField.CHECKER_FIRST_NAME,
                    locators=(_exact("forename"), _attribute("forename", "firstname")),
                ),
                FieldSpec(
                    role="checker surname",
                    source=RequestField.CHECKER_LAST_NAME,
                    locators=(_exact("surname"), _attribute("surname", "lastname")),
                ),
            ),
            submit=ElementSpec(
                role="continue button",
                kind=FieldKind.BUTTON,
                locators=(_exact("_eventId_submit"), _text("continue", "submit", "next")),
                exclude=("cookie", "accept"),
            ),
            form_values={"_eventId_submit": "submit"},
        ),
        Step(
            name="certificate",
            fields=(
                FieldSpec(
                    role="certificate number",
                    source=RequestField.IDENTIFIER,
                    locators=(_exact("certificateNumber"), _attribute("certificate")),
                ),
                FieldSpec(
                    role="applicant surname",
                    source=RequestField.LAST_NAME,
                    locators=(_exact("surname"), _attribute("surname")),
                ),
                *_dob_fields(("birth", "dob")),
            ),
            submit=ElementSpec(
                role="check button",
                kind=FieldKind.BUTTON,
                locators=(
                    _exact("jsSubmit", "_eventId_submit"),
                    _text("submit", "check", "continue"),
                ),
                exclude=("cookie", "accept"),
            ),
            form_values={"_eventId_submit": "submit"},
            advance=Transition(
                text_contains=(
                    "remains current",
                    "no longer current",
                    "did not reveal",
                    "not registered",
                    "not subscribed",
                    "details do not match",
                    "no match",
                )
            ),
        ),
    ),
    rules=DBS_RULES,
    details=(
        DetailSpec(key="certificateNumber", labels=("certificate number",)),
        DetailSpec(key="fullName", labels=("name", "applicant name", "surname")),
        DetailSpec(key="dateOfIssue", labels=("date of issue", "issue date")),
        DetailSpec(key="dateOfBirth", labels=("date of birth",)),
    ),
    content_selectors=("#content", "main", ".content"),
    error_selectors=(".error", ".errors", ".govuk-error-message", ".govuk-error-summary"),
)


# Right to work and employer checking services

RTW_DETAILS = (
    DetailSpec(key="fullName", labels=("name", "full name")),
    DetailSpec(key="nationality", labels=("nationality",)),
    DetailSpec(key="workStatus", labels=("work status", "employment status", "right to work")),
    DetailSpec(key="restrictions", labels=("restrictions", "restriction", "conditions")),
    DetailSpec(key="validUntil", labels=("valid until", "expires", "expiry date", "end date")),
    DetailSpec(key="immigrationStatus", labels=("immigration status",)),
    DetailSpec(key="documentType", labels=("document type",)),
)

SHARE_CODE_NOT_FOUND_PHRASES = (
    "not found",
    "no record",
    "cannot find",
    "could not find",
    "details do not match",
    "invalid share code",
    "share code is not valid",
    "no match",
)

SHARE_CODE_INTERSTITIALS = (
    "user-auth.apply-to-visit-or-stay-in-the-uk",
    "just a moment",
    "checking your browser",
)

# Labels shown only once a share code resolves to a person
SHARE_CODE_DETAIL_LABELS = ("name", "nationality", "immigration status")

SHARE_CODE_RESULT_MARKERS = (
    "nationality",
    "immigration status",
    "details do not match",
    "no record of",
    "share code has expired",
)

# Field validation on the date of birth form, which re-renders at the same URL
DATE_OF_BIRTH_ERRORS = (
    "enter a valid date of birth",
    "enter your date of birth",
    "date of birth must",
    "must be a real date",
    "must be in the past",
)


def _share_code_steps(result_markers: tuple[str, ...]) -> tuple[Step, ...]:
    return (
        Step(
            name="share code",
            fields=(
                FieldSpec(
                    role="share code",
                    source=RequestField.IDENTIFIER,
                    locators=(
                        _exact("shareCode", "share-code", "share_code", "code"),
                        _attribute("share", "code"),
                    ),
                    exclude=SITE_SEARCH_EXCLUDES,
                ),
            ),
            submit=GOVUK_CONTINUE,
        ),
        Step(
            name="date of birth",
            fields=_dob_fields(("dob", "dateOfBirth", "birth")),
            submit=GOVUK_CONTINUE,
            advance=Transition(
                text_contains=(*SHARE_CODE_RESULT_MARKERS, *result_markers),
                text_absent=DATE_OF_BIRTH_ERRORS,
            ),
        ),
    )


RTW = ProviderProfile(
    kind=ProviderKind.RTW,
    name="Right to work service",
    url="https://right-to-work.service.gov.uk/rtw-view",
    required_fields=(RequestField.IDENTIFIER, RequestField.DATE_OF_BIRTH),
    consent=COOKIE_CONSENT,
    interstitial_markers=SHARE_CODE_INTERSTITIALS,
    steps=_share_code_steps(
        ("has the right to work", "does not have the right", "no right to work")
    ),
    rules=(
        ClassificationRule(
            outcome=Outcome.NOT_FOUND,
            match=(SHARE_CODE_NOT_FOUND_PHRASES,),
            message=(
                "No right to work record matched this share code and date of birth. "
                "The share code may be wrong or belong to someone else."
            ),
            result_code="not_found",
        ),
        ClassificationRule(
            outcome=Outcome.EXPIRED,
            match=(("expired", "no longer valid"),),
            message="The share code or the person's permission has expired.",
            result_code="expired",
        ),
        ClassificationRule(
            outcome=Outcome.VERIFIED_INACTIVE_OR_RESTRICTED,
            match=(
                (
                    "no right to work",
                    "does not have the right",
                    "cannot work",
                    "not permitted to work",
                    "work is not permitted",
                    "not allowed to work",
                ),
            ),
            message="The service says this person does not have the right to work in the UK.",
            result_code="no_right_to_work",
        ),
        ClassificationRule(
            outcome=Outcome.VERIFIED_ACTIVE,
            match=(
                (
                    "has the right to work",
                    "right to work in the uk",
                    "can work in the uk",
                    "they can work",
                ),
                SHARE_CODE_DETAIL_LABELS,
            ),
            exclude=("does not have", "no right", "cannot work"),
            message="The service confirms this person has the right to work in the UK.",
            result_code="right_to_work",
        ),
    ),
    details=RTW_DETAILS,
    content_selectors=("#main-content", ".govuk-main-wrapper", "main"),
)

ECS = ProviderProfile(
    kind=ProviderKind.ECS,
    name="Employer checking service",
    url="https://right-to-work.service.gov.uk/ecs-view",
    fallback_urls=("https://www.gov.uk/employer-checking-service",),
    required_fields=(RequestField.IDENTIFIER, RequestField.DATE_OF_BIRTH),
    consent=COOKIE_CONSENT,
    interstitial_markers=SHARE_CODE_INTERSTITIALS,
    steps=_share_code_steps(
        (
            "positive verification notice",
            "negative verification notice",
            "is allowed to work",
            "is not allowed to work",
        )
    ),
    rules=(
        ClassificationRule(
            outcome=Outcome.NOT_FOUND,
            match=((*SHARE_CODE_NOT_FOUND_PHRASES, "no record of this person"),),
            message=(
                "No employer checking record matched this share code and date of birth. "
                "The share code may be wrong or belong to someone else."
            ),
            result_code="not_found",
        ),
        ClassificationRule(
            outcome=Outcome.EXPIRED,
            match=(("expired", "no longer valid"),),
            message="The share code or the person's permission has expired.",
            result_code="expired",
        ),
        ClassificationRule(
            outcome=Outcome.VERIFIED_INACTIVE_OR_RESTRICTED,
            match=(
                (
                    "not allowed to work",
                    "not permitted to work",
                    "cannot work",
                    "work is not allowed",
                    "negative verification notice",
                ),
            ),
            message="The service says this person is not allowed to work.",
            result_code="not_allowed_to_work",
        ),
        ClassificationRule(
            outcome=Outcome.VERIFIED_ACTIVE,
            match=(
                (
                    "allowed to work",
                    "can work",
                    "work is allowed",
                    "permitted to work",
                    "positive verification notice",
                ),
                SHARE_CODE_DETAIL_LABELS,
            ),
            exclude=("not allowed", "cannot work"),
            message="The service confirms this person is allowed to work.",
            result_code="allowed_to_work",
        ),
    ),
    details=RTW_DETAILS,
    content_selectors=("#main-content", ".govuk-main-wrapper", "main"),
)


# Professional registers

REGISTER_NOT_FOUND = ClassificationRule(
    outcome=Outcome.NOT_FOUND,
    match=(
        (
            "no results",
            "not found",
            "no matching",
            "could not find",
            "couldn't find",
            "no registrations found",
            "no records found",
            "0 results",
            "no match",
        ),
    ),
    message="The register returned no record for this registration number.",
    result_code="not_found",
)

REGISTER_EXPIRED = ClassificationRule(
    outcome=Outcome.EXPIRED,
    match=(("expired", "no longer valid"),),
    message="The register shows this registration has expired.",
    result_code="expired",
)

REGISTER_RESTRICTED = ClassificationRule(
    outcome=Outcome.VERIFIED_INACTIVE_OR_RESTRICTED,
    match=(
        (
            "suspended",
            "struck off",
            "struck-off",
            "removed from the register",
            "erased",
            "inactive",
            "lapsed",
            "without a licence",
            "conditions of practice",
            "interim order",
        ),
    ),
    message="The register shows this registration as suspended, lapsed or restricted.",
    result_code="restricted",
)

REGISTER_ACTIVE = ClassificationRule(
    outcome=Outcome.VERIFIED_ACTIVE,
    match=(("registered", "active", "current"),),
    message="The register shows an active registration.",
    result_code="registered",
)

REGISTER_RULES = (REGISTER_NOT_FOUND, REGISTER_EXPIRED, REGISTER_RESTRICTED, REGISTER_ACTIVE)

REGISTER_CONTENT = ("#main-content", "main", "[role=main]", "#content", ".main-content")

REGISTER_RESULT_MARKERS = (
    "registration status",
    "registered as",
    "no results",
    "not found",
    "no matching",
)


def _register_number_detail(*labels: str) -> DetailSpec:
    return DetailSpec(
        key="registrationNumber",
        labels=(*labels, "registration number", "registration no"),
        pattern=REGISTRATION_NUMBER_PATTERN,
    )


def _register_search_step(identifier: FieldSpec, *extra: FieldSpec) -> Step:
    return Step(
        name="search",
        fields=(*extra, identifier),
        submit=REGISTER_SEARCH,
        advance=Transition(text_contains=REGISTER_RESULT_MARKERS),
    )


GMC = ProviderProfile(
    kind=ProviderKind.GMC,
    name="GMC medical register",
    url="https://www.gmc-uk.org/registration-and-licensing/our-registers",
    required_fields=(RequestField.IDENTIFIER,),
    consent=COOKIE_CONSENT,
    interstitial_markers=("just a moment", "one more step", "checking your browser"),
    steps=(
        _register_search_step(
            FieldSpec(
                role="GMC reference number",
                source=RequestField.IDENTIFIER,
                locators=(
                    _exact("gmcReferenceNumber", "searchText", "SearchText"),
                    _attribute("gmc reference", "reference number", "registration"),
                    FIRST_VISIBLE,
                ),
                exclude=SITE_SEARCH_EXCLUDES,
            )
        ),
    ),
    rules=(
        REGISTER_NOT_FOUND,
        REGISTER_EXPIRED,
        REGISTER_RESTRICTED,
        ClassificationRule(
            outcome=Outcome.VERIFIED_ACTIVE,
            match=(("registered with a licence",),),
            message="The doctor is registered with a licence to practise.",
            result_code="licensed",
        ),
        REGISTER_ACTIVE,
    ),
    details=(
        DetailSpec(key="fullName", labels=("name", "full name")),
        _register_number_detail("gmc reference number", "gmc reference no", "reference number"),
        DetailSpec(key="registrationStatus", labels=("registration status", "status")),
        DetailSpec(key="gpRegister", labels=("gp register",)),
        DetailSpec(key="specialistRegister", labels=("specialist register",)),
        DetailSpec(
            key="qualification",
            labels=("registered qualification", "primary medical qualification"),
        ),
        DetailSpec(
            key="registeredSince",
            labels=("full registration date", "provisional registration date"),
        ),
        DetailSpec(key="gender", labels=("gender",)),
        DetailSpec(key="designatedBody", labels=("designated body",)),
        DetailSpec(key="responsibleOfficer", labels=("responsible officer",)),
    ),
    name_from_heading=True,
    content_selectors=REGISTER_CONTENT,
    checks_identifier=True,
)

NMC = ProviderProfile(
    kind=ProviderKind.NMC,
    name="NMC register",
    url="https://www.nmc.org.uk/registration/check-the-register/",
    required_fields=(RequestField.IDENTIFIER,),
    consent=COOKIE_CONSENT,
    steps=(
        _register_search_step(
            FieldSpec(
                role="NMC PIN",
                source=RequestField.IDENTIFIER,
                locators=(
                    _exact("PinNumber", "pinNumber", "pin", "registrationNumber"),
                    _attribute("pin", "registration", "number"),
                    FIRST_VISIBLE,
                ),
                exclude=SITE_SEARCH_EXCLUDES,
            )
        ),
    ),
    rules=REGISTER_RULES,
    details=(
        DetailSpec(key="fullName", labels=("name", "full name")),
        _register_number_detail("pin", "nmc pin"),
        DetailSpec(key="registrationStatus", labels=("registration status", "status")),
        DetailSpec(key="registeredAs", labels=("registered as", "part of register")),
        DetailSpec(key="location", labels=("geographical location", "location")),
        DetailSpec(key="period", labels=("expiry date", "renewal date", "period")),
    ),
    content_selectors=REGISTER_CONTENT,
    checks_identifier=True,
)

GDC = ProviderProfile(
    kind=ProviderKind.GDC,
    name="GDC register",
    url="https://olr.gdc-uk.org/searchregister",
    required_fields=(RequestField.IDENTIFIER,),
    consent=COOKIE_CONSENT,
    steps=(
        _register_search_step(
            FieldSpec(
                role="GDC registration number",
                source=RequestField.IDENTIFIER,
                locators=(
                    _exact("RegistrationNumber", "registrationNumber", "GdcNumber"),
                    _attribute("registration", "gdc", "number"),
                ),
                exclude=SITE_SEARCH_EXCLUDES,
            )
        ),
    ),
    rules=REGISTER_RULES,
    details=(
        DetailSpec(key="fullName", labels=("name", "full name")),
        _register_number_detail("gdc number"),
        DetailSpec(key="registrationStatus", labels=("registrant status", "status")),
        DetailSpec(key="registeredAs", labels=("registrant type", "profession", "title")),
        DetailSpec(key="firstRegistered", labels=("first registered", "registration date")),
    ),
    content_selectors=REGISTER_CONTENT,
    checks_identifier=True,
)

HCPC = ProviderProfile(
    kind=ProviderKind.HCPC,
    name="HCPC register",
    url="https://www.hcpc-uk.org/check-the-register/",
    required_fields=(RequestField.IDENTIFIER, RequestField.PROFESSION),
    categories=HCPC_PROFESSIONS,
    consent=COOKIE_CONSENT,
    steps=(
        _register_search_step(
            FieldSpec(
                role="HCPC registration number",
                source=RequestField.IDENTIFIER,
                locators=(
                    _exact("registrationNumber", "RegistrationNumber", "registration-number"),
                    _attribute("registration", "number"),
                ),
                exclude=SITE_SEARCH_EXCLUDES,
            ),
            FieldSpec(
                role="profession",
                kind=FieldKind.SELECT,
                source=RequestField.PROFESSION,
                locators=(
                    _exact("profession", "Profession"),
                    _attribute("profession"),
                    FIRST_VISIBLE,
                ),
            ),
        ),
    ),
    rules=REGISTER_RULES,
    details=(
        DetailSpec(key="fullName", labels=("name", "full name")),
        _register_number_detail(),
        DetailSpec(key="registrationStatus", labels=("status", "registration status")),
        DetailSpec(key="registeredAs", labels=("profession",)),
        DetailSpec(key="location", labels=("location", "town")),
        DetailSpec(key="period", labels=("period", "registered until", "registration period")),
    ),
    content_selectors=REGISTER_CONTENT,
    checks_identifier=True,
)

PROFILES: MappingProxyType[ProviderKind, ProviderProfile] = MappingProxyType(
    {profile.kind: profile for profile in (DBS, RTW, ECS, GMC, NMC, GDC, HCPC)}
)


def parse_provider_kind(value: str | ProviderKind) -> ProviderKind:
    """
    Parse a provider kind, ignoring case and surrounding whitespace.

    Args:
        value (str | ProviderKind): Provider name.

    Returns:
        ProviderKind: The provider kind.

    Raises:
        InvalidInputError: If the provider is not supported.
    """
    if isinstance(value, ProviderKind):
        return value
    try:
        return ProviderKind(str(value).strip().lower())
    except ValueError as e:
        supported = ", ".join(kind.value for kind in ProviderKind)
        raise InvalidInputError(
            f"Unsupported provider '{value}'. Supported providers: {supported}"
        ) from e


def get_profile(value: str | ProviderKind) -> ProviderProfile:
    """
    Get the profile for a provider.

    Args:
        value (str | ProviderKind): Provider name.

    Returns:
        ProviderProfile: The provider's profile.

    Raises:
        InvalidInputError: If the provider is not supported.
    """
    return PROFILES[parse_provider_kind(value)]
