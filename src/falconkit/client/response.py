"""Response helpers -- body extraction, API-level error detection, envelope parsing.

Falcon list and entity endpoints wrap their payload in the same envelope::

    {"resources": [...], "meta": {"pagination": {...}}, "errors": [...]}

A 2xx response may still carry a non-empty ``errors`` array. Those are
*API-level* errors: :func:`check_api_errors` logs them as warnings and
returns them so the caller can record them on a
:class:`~falconkit.models.RequestResult`, but they never fail the call.
"""

from __future__ import annotations

import json
from typing import Any, Optional, TypeVar

import httpx
from pydantic import TypeAdapter, ValidationError

from falconkit.exceptions import ResponseParseError
from falconkit.models import ApiError, PageEnvelope, RequestResult
from falconkit.output import get_output

T = TypeVar("T")

_API_ERRORS = TypeAdapter(list[ApiError])


def extract_response_data(response: httpx.Response) -> Any:
    """Return the decoded JSON body, the raw text if it is not JSON, or ``None`` if empty."""
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


def check_api_errors(body: Optional[str], api_name: str) -> list[ApiError]:
    """Log and return the ``errors`` array of a response body.

    Bodies that are empty, not JSON, or have no (or an empty) ``errors``
    array yield ``[]``.

    Args:
        body: Raw response text.
        api_name: Label used in the warning, e.g. ``"Alerts API"``.
    """
    if not body or not body.strip():
        return []
    try:
        doc = json.loads(body)
    except ValueError:
        return []
    if not isinstance(doc, dict):
        return []
    errors = doc.get("errors")
    if not isinstance(errors, list) or not errors:
        return []

    try:
        parsed = _API_ERRORS.validate_python(
            [e if isinstance(e, dict) else {"message": str(e)} for e in errors]
        )
    except ValidationError:
        parsed = [ApiError(message=json.dumps(errors))]

    get_output().warning(
        f"API error(s) from {api_name}: " + "; ".join(str(e) for e in parsed)
    )
    return parsed


def parse_envelope(
    response: httpx.Response,
    item_type: type[T],
    api_name: str,
    result: Optional[RequestResult[Any]] = None,
) -> PageEnvelope[T]:
    """Parse a response body into a :class:`~falconkit.models.PageEnvelope`.

    When *result* is given, its ``raw_response`` is updated. API-level
    errors are logged and appended to ``result.api_errors`` only once the
    body has parsed, so re-parsing a bad body records nothing.

    Args:
        response: A successful HTTP response.
        item_type: Type of each item in ``resources`` (``str`` for id lists).
        api_name: Label used when logging API-level errors.
        result: Optional result object to record the body and errors on.

    Raises:
        ResponseParseError: If the body is not a JSON envelope of *item_type*.
    """
    body = response.text
    if result is not None:
        result.raw_response = body

    try:
        envelope = PageEnvelope[item_type].model_validate_json(body)  # type: ignore[valid-type]
    except ValidationError as exc:
        raise ResponseParseError(
            f"Unexpected response body from {api_name}: {exc.error_count()} validation error(s)"
        ) from exc

    api_errors = check_api_errors(body, api_name)
    if result is not None and api_errors:
        result.api_errors.extend(api_errors)
        result.error_message = "API-level error found in response."
    return envelope
