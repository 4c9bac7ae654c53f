"""Tests for the shared Pydantic models and the exception hierarchy."""

from __future__ import annotations

import pytest

from falconkit.exceptions import (
    ApiLevelError,
    AuthError,
    ConfigError,
    FalconError,
    NotFoundError,
    ServerError,
    TransportError,
    UnauthorizedError,
)
from falconkit.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CONFIG_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_NOT_FOUND,
    EXIT_SERVER_ERROR,
)
from falconkit.models import ApiError, PageEnvelope, RequestResult, Token


class TestToken:
    def test_fresh_before_buffer(self) -> None:
        token = Token(value="t", expires_at=100.0)
        assert token.is_fresh(now=39.9, buffer=60)
        assert not token.is_fresh(now=40.0, buffer=60)

    def test_empty_value_never_fresh(self) -> None:
        assert not Token(value="", expires_at=1e9).is_fresh(now=0, buffer=0)

    def test_frozen(self) -> None:
        token = Token(value="t", expires_at=1.0)
        with pytest.raises(Exception):
            token.value = "other"  # type: ignore[misc]


class TestPageEnvelope:
    def test_cursor_and_total(self) -> None:
        envelope = PageEnvelope[str].model_validate(
            {"resources": ["a"], "meta": {"pagination": {"next_token": "n", "total": 7}}}
        )
        assert envelope.items == ["a"]
        assert envelope.cursor == "n"
        assert envelope.total == 7

    def test_missing_meta(self) -> None:
        envelope = PageEnvelope[str].model_validate({"resources": ["a"]})
        assert envelope.pagination is None
        assert envelope.cursor is None
        assert envelope.total is None

    def test_zero_total_kept_distinct_from_missing(self) -> None:
        envelope = PageEnvelope[str].model_validate({"meta": {"pagination": {"total": 0}}})
        assert envelope.total == 0
        assert envelope.items == []


class TestRequestResult:
    def test_default_is_not_success(self) -> None:
        result: RequestResult[str] = RequestResult()
        assert not result.success
        with pytest.raises(FalconError, match="status 0"):
            result.unwrap()

    def test_success_unwraps(self) -> None:
        result = RequestResult[list[str]](status_code=200, data=["a"])
        assert result.success
        assert result.unwrap() == ["a"]

    def test_captured_exception_reraised(self) -> None:
        exc = ServerError("HTTP 500", status_code=500)
        result: RequestResult[str] = RequestResult(status_code=500, exception=exc)
        with pytest.raises(ServerError) as exc_info:
            result.unwrap()
        assert exc_info.value is exc

    def test_api_errors_do_not_fail_success(self) -> None:
        result = RequestResult[str](
            status_code=200, data="x", api_errors=[ApiError(code=400, message="bad")]
        )
        assert result.success
        with pytest.raises(ApiLevelError, match=r"\[400\] bad"):
            result.raise_for_api_errors()

    def test_no_api_errors_no_raise(self) -> None:
        RequestResult[str](status_code=200, data="x").raise_for_api_errors()


class TestExceptions:
    @pytest.mark.parametrize(
        "exc, code",
        [
            (FalconError("x"), EXIT_GENERIC_FAILURE),
            (ConfigError("x"), EXIT_CONFIG_ERROR),
            (AuthError("x"), EXIT_AUTH_FAILURE),
            (UnauthorizedError("x", status_code=401), EXIT_AUTH_FAILURE),
            (NotFoundError("x", status_code=404), EXIT_NOT_FOUND),
            (ServerError("x", status_code=500), EXIT_SERVER_ERROR),
        ],
    )
    def test_exit_codes(self, exc: FalconError, code: int) -> None:
        assert exc.exit_code == code

    def test_transport_errors_carry_status_and_body(self) -> None:
        exc = NotFoundError("HTTP 404", status_code=404, body="gone")
        assert isinstance(exc, TransportError)
        assert exc.status_code == 404
        assert exc.body == "gone"

    def test_exit_code_override(self) -> None:
        assert FalconError("x", exit_code=42).exit_code == 42
