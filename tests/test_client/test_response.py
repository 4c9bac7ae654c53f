"""Tests for response body extraction, API-level errors and envelope parsing."""

from __future__ import annotations

import httpx
import pytest

from falconkit.client.response import check_api_errors, extract_response_data, parse_envelope
from falconkit.exceptions import ResponseParseError
from falconkit.models import DeviceDetail, RequestResult


# ---------------------------------------------------------------------------
# extract_response_data
# ---------------------------------------------------------------------------


class TestExtractResponseData:
    def test_json(self) -> None:
        assert extract_response_data(httpx.Response(200, json={"a": 1})) == {"a": 1}

    def test_text(self) -> None:
        assert extract_response_data(httpx.Response(200, text="hello")) == "hello"

    def test_empty(self) -> None:
        assert extract_response_data(httpx.Response(204)) is None


# ---------------------------------------------------------------------------
# check_api_errors
# ---------------------------------------------------------------------------


class TestCheckApiErrors:
    @pytest.mark.parametrize(
        "body",
        [None, "", "   ", "not json", "[1, 2]", '{"resources": []}', '{"errors": []}', '{"errors": null}'],
    )
    def test_no_errors(self, body) -> None:
        assert check_api_errors(body, "Test API") == []

    def test_errors_returned_and_logged(self, capsys) -> None:
        body = '{"resources": [], "errors": [{"code": 500, "message": "partial failure"}]}'
        errors = check_api_errors(body, "Alerts API")
        assert len(errors) == 1
        assert errors[0].code == 500
        assert errors[0].message == "partial failure"
        err = capsys.readouterr().err
        assert "Alerts API" in err
        assert "[500] partial failure" in err

    def test_string_entries(self) -> None:
        errors = check_api_errors('{"errors": ["something broke"]}', "Test API")
        assert [e.message for e in errors] == ["something broke"]


# ---------------------------------------------------------------------------
# parse_envelope
# ---------------------------------------------------------------------------


class TestParseEnvelope:
    def test_parses_typed_items(self) -> None:
        response = httpx.Response(
            200,
            json={
                "resources": [{"device_id": "d1", "hostname": "web-01", "agent_version": "7.1"}],
                "meta": {"pagination": {"total": 1}},
            },
        )
        envelope = parse_envelope(response, DeviceDetail, "Devices API")
        assert envelope.total == 1
        device = envelope.items[0]
        assert device.hostname == "web-01"
        assert device.model_extra["agent_version"] == "7.1"

    def test_null_resources_become_empty(self) -> None:
        envelope = parse_envelope(httpx.Response(200, json={"resources": None}), str, "Test API")
        assert envelope.items == []
        assert envelope.cursor is None
        assert envelope.total is None

    def test_records_body_and_errors_on_result(self) -> None:
        body = {"resources": ["a"], "errors": [{"code": 400, "message": "bad id"}]}
        result: RequestResult[list[str]] = RequestResult()
        envelope = parse_envelope(httpx.Response(200, json=body), str, "Test API", result)

        assert envelope.items == ["a"]
        assert result.raw_response is not None and "bad id" in result.raw_response
        assert [str(e) for e in result.api_errors] == ["[400] bad id"]
        assert result.error_message == "API-level error found in response."

    def test_clean_body_leaves_result_error_free(self) -> None:
        result: RequestResult[list[str]] = RequestResult()
        parse_envelope(httpx.Response(200, json={"resources": ["a"]}), str, "Test API", result)
        assert result.api_errors == []
        assert result.error_message is None

    def test_invalid_body_raises(self) -> None:
        with pytest.raises(ResponseParseError, match="Test API"):
            parse_envelope(httpx.Response(200, text="<html/>"), str, "Test API")

    def test_wrong_item_type_raises(self) -> None:
        response = httpx.Response(200, json={"resources": [{"not": "a string"}]})
        with pytest.raises(ResponseParseError):
            parse_envelope(response, str, "Test API")

    def test_failed_parse_records_no_errors(self, capsys) -> None:
        body = {"resources": [{"not": "a string"}], "errors": [{"code": 500, "message": "partial"}]}
        response = httpx.Response(200, json=body)
        result: RequestResult[list[str]] = RequestResult()
        for _ in range(3):
            with pytest.raises(ResponseParseError):
                parse_envelope(response, str, "Test API", result)

        assert result.api_errors == []
        assert result.error_message is None
        assert result.raw_response == response.text
        assert "partial" not in capsys.readouterr().err
