"""Form interaction enums."""

from enum import StrEnum


class FieldKind(StrEnum):
    """Kind of element a locator searches for."""

    TEXT = "text"
    SELECT = "select"
    BUTTON = "button"


class LocatorStrategy(StrEnum):
    """Element lookup strategies, listed in priority order."""

    EXACT = "exact"
    ATTRIBUTE = "attribute"
    TEXT = "text"
    FIRST_VISIBLE = "first_visible"


class RequestField(StrEnum):
    """Request values a form field can be filled from."""

    IDENTIFIER = "identifier"
    FIRST_NAME = "first_name"
    LAST_NAME = "last_name"
    DATE_OF_BIRTH = "date_of_birth"
    DOB_DAY = "dob_day"
    DOB_MONTH = "dob_month"
    DOB_YEAR = "dob_year"
    PROFESSION = "profession"
    ORGANISATION_NAME = "organisation_name"
    CHECKER_FIRST_NAME = "checker_first_name"
    CHECKER_LAST_NAME = "checker_last_name"
