"""Verification request models."""

import re
from collections.abc import Iterable
from datetime import date
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

from verification_portals.enums import RequestField

ISO_DATE_PATTERN = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})$")


class DateOfBirth(BaseModel):
    """Date of birth split into the components provider forms ask for."""

    day: int = Field(ge=1, le=31, description="Day of month")
    month: int = Field(ge=1, le=12, description="Month number")
    year: int = Field(ge=1900, le=2100, description="Four digit year")

    model_config = ConfigDict(extra="forbid", frozen=True)

    @model_validator(mode="after")
    def validate_calendar_date(self) -> "DateOfBirth":
        """Validate the components form a real calendar date."""
        try:
            date(self.year, self.month, self.day)
        except ValueError as e:
            raise ValueError(f"Invalid date of birth: {e}") from e
        return self

    @classmethod
    def from_iso(cls, value: str) -> "DateOfBirth":
        """
        Parse an ISO YYYY-MM-DD string.

        Args:
            value (str): Date string.

        Returns:
            DateOfBirth: Parsed date of birth.

        Raises:
            ValueError: If the string is not in YYYY-MM-DD format.
        """
        match = ISO_DATE_PATTERN.match(value.strip())
        if match is None:
            raise ValueError(f"Date of birth must be in YYYY-MM-DD format, got '{value}'")
        year, month, day = (int(part) for part in match.groups())
        return cls(day=day, month=month, year=year)

    def isoformat(self) -> str:
        """Format as YYYY-MM-DD."""
        return f"{self.year:04d}-{self.month:02d}-{self.day:02d}"


class VerificationRequest(BaseModel):
    """Details submitted to a provider for one verification."""

    identifier: str | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "identifier", "certificateNumber", "shareCode", "registrationNumber"
        ),
        description="Certificate number, share code or registration number",
    )
    first_name: str | None = Field(
        default=None,
        validation_alias=AliasChoices("first_name", "firstName", "forename"),
        description="Person's first name",
    )
    last_name: str | None = Field(
        default=None,
        validation_alias=AliasChoices("last_name", "lastName", "surname", "applicantSurname"),
        description="Person's surname",
    )
    date_of_birth: DateOfBirth | None = Field(
        default=None,
        validation_alias=AliasChoices("date_of_birth", "dateOfBirth", "dob"),
        description="Date of birth as {day, month, year} or an ISO YYYY-MM-DD string",
    )
    profession: str | None = Field(
        default=None,
        validation_alias=AliasChoices("profession", "category"),
        description="Profession on registers that search within one",
    )
    organisation_name: str | None = Field(
        default=None,
        validation_alias=AliasChoices("organisation_name", "organisationName"),
        description="Organisation carrying out the check",
    )
    checker_first_name: str | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "checker_first_name", "checkerFirstName", "requesterForename"
        ),
        description="Forename of the person carrying out the check",
    )
    checker_last_name: str | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "checker_last_name", "checkerLastName", "requesterSurname"
        ),
        description="Surname of the person carrying out the check",
    )

    model_config = ConfigDict(
        extra="ignore",
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "certificateNumber": "001234567890",
                "surname": "Smith",
                "dateOfBirth": "1985-04-12",
            }
        },
    )

    @field_validator(
        "identifier",
        "first_name",
        "last_name",
        "profession",
        "organisation_name",
        "checker_first_name",
        "checker_last_name",
        mode="before",
    )
    @classmethod
    def strip_text(cls, v: Any) -> Any:
        """Strip whitespace, treating blank strings as missing."""
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v

    @field_validator("date_of_birth", mode="before")
    @classmethod
    def parse_date_of_birth(cls, v: Any) -> Any:
        """Accept an ISO date string in place of the component form."""
        if isinstance(v, str):
            if not v.strip():
                return None
            return DateOfBirth.from_iso(v)
        return v

    def value_for(self, field: RequestField) -> str | None:
        """
        Get the form value for a request field.

        Date of birth components are zero-padded the way provider forms expect.

        Args:
            field (RequestField): Field to read.

        Returns:
            str | None: The value, or None if not supplied.
        """
        dob = self.date_of_birth
        if field is RequestField.DATE_OF_BIRTH:
            return dob.isoformat() if dob else None
        if field is RequestField.DOB_DAY:
            return f"{dob.day:02d}" if dob else None
        if field is RequestField.DOB_MONTH:
            return f"{dob.month:02d}" if dob else None
        if field is RequestField.DOB_YEAR:
            return str(dob.year) if dob else None
        return getattr(self, field.value)

    def missing_fields(self, required: Iterable[RequestField]) -> list[RequestField]:
        """
        List required fields that were not supplied.

        Args:
            required (Iterable[RequestField]): Fields a provider needs.

        Returns:
            list[RequestField]: Missing fields, in the order given.
        """
        return [field for field in required if not self.value_for(field)]
