"""Tests for the verification service."""

import asyncio
from collections.abc import AsyncIterator, Callable, Generator
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from verification_portals.core.errors import (
    FieldNotFoundError,
    InvalidInputError,
    SessionLaunchFailed,
)
from verification_portals.core.settings import AppSettings
from verification_portals.core.settings.app_settings import TimeoutSettings
from verification_portals.enums import Outcome, ProviderKind
from verification_portals.models import Evidence, RawObservation, VerificationRequest
from verification_portals.services.providers import DBS, HCPC
from verification_portals.services.verification_service import VerificationService

MODULE = "verification_portals.services.verification_service"


@pytest.fixture
def browser_session(fake_page: MagicMock) -> Generator[MagicMock, None, None]:
    """
    Replace browser sessions with a fake one.

    Yields:
        MagicMock: The fake session. ``opened`` and ``closed`` record its lifecycle.
    """
    session = MagicMock()
    session.page = fake_page
    session.opened = 0
    session.closed = False

    @asynccontextmanager
    async def fake_open_session(config) -> AsyncIterator[MagicMock]:
        session.opened += 1
        try:
            yield session
        finally:
            session.closed = True

    with patch(f"{MODULE}.open_session", side_effect=fake_open_session):
        yield session


@pytest.fixture
def adapter_run() -> Generator[AsyncMock, None, None]:
    """
    Replace the provider adapter's run method.

    Yields:
        AsyncMock: The run mock.
    """
    with patch(f"{MODULE}.ProviderAdapter") as mock_adapter:
        run = AsyncMock()
        mock_adapter.return_value.run = run
        yield run


@pytest.fixture
def evidence() -> Generator[AsyncMock, None, None]:
    """
    Replace evidence capture.

    Yields:
        AsyncMock: The capture mock.
    """
    with patch(
        f"{MODULE}.capture_evidence",
        new_callable=AsyncMock,
        return_value=Evidence(snapshot=b"png", document=b"pdf"),
    ) as mock_capture:
        yield mock_capture


HCPC_REQUEST = {"registrationNumber": "OT12345", "profession": "occupational therapist"}


class TestValidateRequest:
    """Tests for VerificationService.validate_request."""

    def test_checker_defaults_are_filled(self, mock_settings: AppSettings) -> None:
        """
        Test that checker details come from settings when not supplied.

        """
        service = VerificationService(mock_settings)
        request = service.validate_request(
            DBS,
            {"certificateNumber": "001234567890", "surname": "Smith", "dob": "1990-03-07"},
        )
        assert request.organisation_name == "Recruitment Compliance"
        assert request.checker_first_name == "HR"
        assert request.checker_last_name == "Department"

    def test_supplied_checker_details_win(self, mock_settings: AppSettings) -> None:
        """
        Test that checker details in the request are kept.

        """
        service = VerificationService(mock_settings)
        request = service.validate_request(
            DBS,
            {
                "certificateNumber": "001234567890",
                "surname": "Smith",
                "dob": "1990-03-07",
                "organisationName": "Acme Care",
            },
        )
        assert request.organisation_name == "Acme Care"

    def test_requester_names_are_not_replaced(self, mock_settings: AppSettings) -> None:
        """
        Test that requester names in the body are kept over settings.

        """
        service = VerificationService(mock_settings)
        request = service.validate_request(
            DBS,
            {
                "certificateNumber": "001234567890",
                "surname": "Smith",
                "dob": "1990-03-07",
                "requesterForename": "Upstic",
                "requesterSurname": "Admin",
            },
        )
        assert request.checker_first_name == "Upstic"
        assert request.checker_last_name == "Admin"

    def test_missing_fields(self, mock_settings: AppSettings) -> None:
        """
        Test that every missing field is named.

        """
        service = VerificationService(mock_settings)
        with pytest.raises(InvalidInputError) as exc_info:
            service.validate_request(DBS, {})
        assert exc_info.value.message == (
            "Missing required field(s) for DBS update service: "
            "identifier, last_name, date_of_birth"
        )

    def test_malformed_request(self, mock_settings: AppSettings) -> None:
        """
        Test that a malformed body is invalid input.

        """
        service = VerificationService(mock_settings)
        with pytest.raises(InvalidInputError, match="Invalid request"):
            service.validate_request(DBS, {"certificateNumber": "1", "dob": "07/03/1990"})

    def test_profession_is_canonicalised(self, mock_settings: AppSettings) -> None:
        """
        Test that the profession is matched to the register's spelling.

        """
        service = VerificationService(mock_settings)
        request = service.validate_request(HCPC, HCPC_REQUEST)
        assert request.profession == "Occupational therapist"

    def test_unknown_profession(self, mock_settings: AppSettings) -> None:
        """
        Test that a profession outside the vocabulary is rejected.

        """
        service = VerificationService(mock_settings)
        with pytest.raises(InvalidInputError, match="Unknown profession 'Surgeon'"):
            service.validate_request(
                HCPC, VerificationRequest(identifier="OT12345", profession="Surgeon")
            )


class TestVerify:
    """Tests for VerificationService.verify."""

    @pytest.mark.asyncio
    async def test_unknown_provider(
        self, mock_settings: AppSettings, browser_session: MagicMock
    ) -> None:
        """
        Test that an unsupported provider is invalid input and opens no browser.

        """
        result = await VerificationService(mock_settings).verify("fca", {"identifier": "123"})

        assert result.outcome == Outcome.INVALID_INPUT
        assert result.provider == "fca"
        assert result.identifier == "123"
        assert "Supported providers" in result.message
        assert browser_session.opened == 0

    @pytest.mark.asyncio
    async def test_invalid_input_opens_no_session(
        self, mock_settings: AppSettings, browser_session: MagicMock
    ) -> None:
        """
        Test that a rejected request never starts a browser.

        """
        result = await VerificationService(mock_settings).verify(
            ProviderKind.HCPC, {"registrationNumber": "OT12345", "profession": "Surgeon"}
        )

        assert result.outcome == Outcome.INVALID_INPUT
        assert result.success is False
        assert result.identifier == "OT12345"
        assert "Expected one of: Arts therapist" in result.message
        assert browser_session.opened == 0

    @pytest.mark.asyncio
    async def test_verified_result(
        self,
        mock_settings: AppSettings,
        browser_session: MagicMock,
        adapter_run: AsyncMock,
        evidence: AsyncMock,
        fixture_observation: Callable[..., RawObservation],
    ) -> None:
        """
        Test a complete verification with evidence.

        """
        adapter_run.return_value = fixture_observation("hcpc_registered.html")

        result = await VerificationService(mock_settings).verify("HCPC", HCPC_REQUEST)

        assert result.outcome == Outcome.VERIFIED_ACTIVE
        assert result.success is True
        assert result.verified is True
        assert result.provider == "hcpc"
        assert result.identifier == "OT12345"
        assert result.result_code == "registered"
        assert result.details["fullName"] == "Jane Smith"
        assert result.evidence.snapshot == b"png"
        assert browser_session.closed is True
        submitted = adapter_run.call_args[0][1]
        assert submitted.profession == "Occupational therapist"

    @pytest.mark.asyncio
    async def test_evidence_failure_keeps_outcome(
        self,
        mock_settings: AppSettings,
        browser_session: MagicMock,
        adapter_run: AsyncMock,
        evidence: AsyncMock,
        fixture_observation: Callable[..., RawObservation],
    ) -> None:
        """
        Test that missing evidence does not change the outcome.

        """
        adapter_run.return_value = fixture_observation("nmc_lapsed.html")
        evidence.return_value = Evidence(missing=["snapshot", "document"])

        result = await VerificationService(mock_settings).verify("nmc", {"identifier": "12A3456E"})

        assert result.outcome == Outcome.VERIFIED_INACTIVE_OR_RESTRICTED
        assert result.evidence.missing == ["snapshot", "document"]

    @pytest.mark.asyncio
    async def test_form_unavailable(
        self,
        mock_settings: AppSettings,
        browser_session: MagicMock,
        adapter_run: AsyncMock,
        evidence: AsyncMock,
    ) -> None:
        """
        Test that a missing form field is form_unavailable with evidence.

        """
        adapter_run.side_effect = FieldNotFoundError("Could not find the NMC PIN field")

        result = await VerificationService(mock_settings).verify("nmc", {"identifier": "12A3456E"})

        assert result.outcome == Outcome.FORM_UNAVAILABLE
        assert result.message == "Could not find the NMC PIN field"
        assert result.evidence.document == b"pdf"
        assert browser_session.closed is True

    @pytest.mark.asyncio
    async def test_unexpected_error(
        self,
        mock_settings: AppSettings,
        browser_session: MagicMock,
        adapter_run: AsyncMock,
        evidence: AsyncMock,
    ) -> None:
        """
        Test that an unexpected exception becomes an error result.

        """
        adapter_run.side_effect = KeyError("boom")

        result = await VerificationService(mock_settings).verify("gdc", {"identifier": "123456"})

        assert result.outcome == Outcome.ERROR
        assert result.message.startswith("Unexpected error:")
        assert browser_session.closed is True

    @pytest.mark.asyncio
    async def test_session_launch_failure(self, mock_settings: AppSettings) -> None:
        """
        Test that a browser that cannot start is an error result.

        """
        with patch(
            f"{MODULE}.open_session",
            side_effect=SessionLaunchFailed("Browser failed to start: no display"),
        ):
            result = await VerificationService(mock_settings).verify(
                "gmc", {"identifier": "7012345"}
            )

        assert result.outcome == Outcome.ERROR
        assert result.message == "Browser failed to start: no display"

    @pytest.mark.asyncio
    async def test_deadline(
        self,
        mock_settings: AppSettings,
        browser_session: MagicMock,
        adapter_run: AsyncMock,
    ) -> None:
        """
        Test that a hung provider is cut off at the request deadline.

        """
        settings = mock_settings.model_copy(
            update={
                "timeouts": TimeoutSettings(
                    request_deadline=0.1,
                    navigation=0.05,
                    step=0.05,
                    field=0.01,
                    submit_attempt=0.05,
                    settle=0.01,
                    consent=0.01,
                    interstitial=0.05,
                    evidence=0.05,
                    poll_interval=0.01,
                )
            }
        )

        async def hang(*args: object) -> None:
            await asyncio.sleep(5)

        adapter_run.side_effect = hang

        result = await VerificationService(settings).verify("gmc", {"identifier": "7012345"})

        assert result.outcome == Outcome.ERROR
        assert "timed out after 0.1s" in result.message
        assert browser_session.closed is True

    @pytest.mark.asyncio
    async def test_slow_evidence_keeps_classification(
        self,
        mock_settings: AppSettings,
        browser_session: MagicMock,
        adapter_run: AsyncMock,
        fixture_observation: Callable[..., RawObservation],
    ) -> None:
        """
        Test that evidence capture running into the deadline keeps the outcome.

        """
        settings = mock_settings.model_copy(
            update={
                "timeouts": TimeoutSettings(
                    request_deadline=0.3,
                    navigation=0.1,
                    step=0.1,
                    field=0.01,
                    submit_attempt=0.05,
                    settle=0.01,
                    consent=0.01,
                    interstitial=0.05,
                    evidence=0.25,
                    poll_interval=0.01,
                )
            }
        )

        async def hang(*args: object, **kwargs: object) -> bytes:
            await asyncio.sleep(5)
            return b""

        browser_session.page.screenshot = AsyncMock(side_effect=hang)
        browser_session.page.pdf = AsyncMock(side_effect=hang)
        adapter_run.return_value = fixture_observation("hcpc_registered.html")

        result = await VerificationService(settings).verify("hcpc", HCPC_REQUEST)

        assert result.outcome == Outcome.VERIFIED_ACTIVE
        assert result.verified is True
        assert result.evidence.snapshot is None
        assert result.evidence.missing == ["snapshot", "document"]
        assert browser_session.closed is True

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [{"identifier": ""}, {"identifier": "   "}, {}])
    async def test_missing_identifier_opens_no_session(
        self,
        mock_settings: AppSettings,
        browser_session: MagicMock,
        adapter_run: AsyncMock,
        body: dict[str, str],
    ) -> None:
        """
        Test that an empty or absent identifier is rejected before any navigation.

        """
        result = await VerificationService(mock_settings).verify("gmc", body)

        assert result.outcome == Outcome.INVALID_INPUT
        assert result.success is False
        assert "identifier" in result.message
        assert browser_session.opened == 0
        adapter_run.assert_not_called()
