"""Tests for the MfaApi response mapping."""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING

import pytest

from mfa_core import MfaApi, MfaConfig

if TYPE_CHECKING:
    from conftest import MfaHarness


@pytest.fixture
def api(harness: MfaHarness) -> MfaApi:
    return MfaApi(harness.service)


class TestMfaApiSuccess:
    """Successful operations."""

    @pytest.mark.asyncio
    async def test_full_flow_wire_shape(self, api: MfaApi, harness: MfaHarness) -> None:
        initiated = await api.initiate("alice", "correct")
        assert initiated.success
        assert initiated.session_id

        prepared = await api.prepare(initiated.session_id, "email_code")
        assert prepared.to_wire() == {
            "success": True,
            "sessionState": "in_progress",
            "requiredFactors": ["email_code"],
            "completedFactors": [],
            "remainingFactors": ["email_code"],
            "preparedFactors": ["email_code"],
            "maskedDeliveryAddress": "a***e@example.com",
        }

        verified = await api.verify(initiated.session_id, "email_code", harness.last_code())
        assert verified.success
        assert verified.session_state == "completed"
        assert verified.remaining_factors == []

    @pytest.mark.asyncio
    async def test_session_and_clear(self, api: MfaApi) -> None:
        initiated = await api.initiate("alice", "correct")

        current = await api.session(initiated.session_id)
        assert current.session_state == "initiated"

        assert (await api.clear(initiated.session_id)).success

        missing = await api.session(initiated.session_id)
        assert not missing.success
        assert missing.error is not None
        assert missing.error.code == "no_active_session"
        assert missing.session_state == "failed"

    @pytest.mark.asyncio
    async def test_session_reports_prepared_factors(self, api: MfaApi) -> None:
        initiated = await api.initiate("alice", "correct")
        assert (await api.session(initiated.session_id)).to_wire()["preparedFactors"] == []

        await api.prepare(initiated.session_id, "email_code")

        current = await api.session(initiated.session_id)
        assert current.to_wire()["preparedFactors"] == ["email_code"]
        assert current.remaining_factors == ["email_code"]

    def test_available_factors(self, api: MfaApi) -> None:
        assert api.available_factors() == ["email_code"]

    def test_available_factors_when_disabled(
        self, make_harness: Callable[..., MfaHarness]
    ) -> None:
        api = MfaApi(make_harness(MfaConfig(enabled=False)).service)
        assert api.available_factors() == []


class TestMfaApiErrors:
    """Errors are reported, never raised."""

    @pytest.mark.asyncio
    async def test_authentication_failed(self, api: MfaApi) -> None:
        response = await api.initiate("alice", "wrong")

        assert response.to_wire() == {
            "success": False,
            "sessionState": "failed",
            "requiredFactors": [],
            "completedFactors": [],
            "remainingFactors": [],
            "preparedFactors": [],
            "error": {"code": "authentication_failed", "arguments": []},
        }

    @pytest.mark.asyncio
    async def test_factor_error_keeps_session_state(
        self, api: MfaApi, harness: MfaHarness
    ) -> None:
        initiated = await api.initiate("alice", "correct")
        await api.prepare(initiated.session_id, "email_code")

        response = await api.verify(
            initiated.session_id, "email_code", harness.wrong_code(harness.last_code())
        )

        assert not response.success
        assert response.session_state == "in_progress"
        assert response.remaining_factors == ["email_code"]
        assert response.error is not None
        assert response.error.code == "verify.verification_failed"
        assert response.error.argument("factorType") == "email_code"

    @pytest.mark.asyncio
    async def test_rate_limit_arguments(self, api: MfaApi) -> None:
        initiated = await api.initiate("alice", "correct")
        await api.prepare(initiated.session_id, "email_code")

        response = await api.prepare(initiated.session_id, "email_code")

        assert response.error is not None
        assert response.error.code == "prepare.rate_limit_exceeded"
        assert response.to_wire()["error"]["arguments"] == [
            {"name": "factorType", "value": "email_code"},
            {"name": "user", "value": "alice"},
            {"name": "nextRetryInSeconds", "value": "3"},
        ]

    @pytest.mark.asyncio
    async def test_suspension_reports_duration(self, api: MfaApi, harness: MfaHarness) -> None:
        initiated = await api.initiate("alice", "correct")
        await api.prepare(initiated.session_id, "email_code")
        wrong = harness.wrong_code(harness.last_code())
        for _ in range(3):
            await api.verify(initiated.session_id, "email_code", wrong)

        response = await api.verify(initiated.session_id, "email_code", wrong)

        assert response.session_state == "failed"
        assert response.suspension_duration_in_seconds == 600
        assert response.error is not None
        assert response.error.code == "suspended_user"
        assert response.error.argument("suspensionDurationInSeconds") == "600"

    @pytest.mark.asyncio
    async def test_suspension_rounding(self, harness: MfaHarness) -> None:
        api = MfaApi(harness.service, suspension_rounding_seconds=3600)
        initiated = await api.initiate("alice", "correct")
        await api.prepare(initiated.session_id, "email_code")
        wrong = harness.wrong_code(harness.last_code())
        for _ in range(3):
            await api.verify(initiated.session_id, "email_code", wrong)

        response = await api.verify(initiated.session_id, "email_code", wrong)

        assert response.suspension_duration_in_seconds == 3600
        assert response.error is not None
        assert response.error.argument("suspensionDurationInSeconds") == "3600"

    @pytest.mark.parametrize(
        ("rounding", "raw", "shown"),
        [(60, 1, 60), (60, 120, 120), (3600, 3601, 7200)],
    )
    def test_round_suspension(
        self, harness: MfaHarness, rounding: int, raw: int, shown: int
    ) -> None:
        api = MfaApi(harness.service, suspension_rounding_seconds=rounding)
        assert api.round_suspension(raw) == shown

    def test_invalid_rounding(self, harness: MfaHarness) -> None:
        with pytest.raises(ValueError):
            MfaApi(harness.service, suspension_rounding_seconds=0)

    @pytest.mark.asyncio
    async def test_collaborator_failure_is_unexpected_error(
        self, api: MfaApi, harness: MfaHarness, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        async def broken(username: str, password: str) -> bool:
            raise ConnectionError("ldap down")

        monkeypatch.setattr(harness.verifier, "verify", broken)

        response = await api.initiate("alice", "correct")

        assert not response.success
        assert response.session_state == "failed"
        assert response.error is not None
        assert response.error.code == "unexpected_error"
