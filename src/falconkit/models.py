"""Canonical Pydantic models shared across all falconkit modules.

The models fall into three groups:

**Configuration** -- :class:`FalconSettings`, built by
:func:`~falconkit.config.load_settings`.

**Wire envelopes** -- :class:`TokenResponse`, :class:`ApiError`,
:class:`Pagination`, :class:`Meta` and the generic :class:`PageEnvelope`.
Every optional JSON field is ``Optional`` so that an absent field stays
distinguishable from a zero value (``total=None`` keeps offset paging going,
``total=0`` stops it).

**Results and resources** -- :class:`Token`, :class:`RequestResult` and the
resource DTOs :class:`DeviceDetail`, :class:`AlertDetail`,
:class:`VulnerabilityDetail` and :class:`VulnerabilityRemediation`. The DTOs
declare only the fields the services use; ``extra="allow"`` keeps the rest.
"""

from __future__ import annotations

from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator

from falconkit.exceptions import ApiLevelError, FalconError

T = TypeVar("T")

DEFAULT_BASE_URL = "https://api.crowdstrike.com"


# --- Configuration ---


class FalconSettings(BaseModel):
    """Connection and token-lifecycle settings for one Falcon API tenant.

    Loaded and validated by :func:`~falconkit.config.load_settings`. The
    timing fields are all in seconds.
    """

    base_url: str = Field(default=DEFAULT_BASE_URL, description="API base URL (https only)")
    client_id: str = Field(default="", description="OAuth2 client ID")
    client_secret: str = Field(default="", description="OAuth2 client secret")
    refresh_buffer_seconds: float = Field(
        default=60, description="Safety margin subtracted from a token's nominal expiry"
    )
    early_refresh_seconds: float = Field(
        default=10, description="How early the background loop wakes before expiry"
    )
    default_token_ttl_seconds: float = Field(
        default=300, description="Minimum lifetime assumed for a freshly issued token"
    )
    refresh_cooldown_seconds: float = Field(
        default=60, description="Background loop pause after a failed refresh"
    )
    max_attempts: int = Field(default=3, description="Attempts per retry-wrapped call")
    retry_delay_seconds: float = Field(default=0.5, description="Fixed delay between attempts")
    request_timeout: float = Field(default=30, description="httpx request timeout")
    verify_ssl: bool = Field(default=True, description="Verify TLS certificates")

    @field_validator("base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.strip().rstrip("/")


# --- Token ---


class Token(BaseModel):
    """A cached bearer token.

    ``expires_at`` is a :func:`time.monotonic` timestamp. Instances are
    frozen: a refresh replaces the whole object.
    """

    model_config = ConfigDict(frozen=True)

    value: str
    expires_at: float

    def is_fresh(self, now: float, buffer: float) -> bool:
        """Return ``True`` if the token may still be handed to a caller at *now*."""
        return bool(self.value) and now < self.expires_at - buffer


class ApiError(BaseModel):
    """One entry of an ``errors`` array in a Falcon response body."""

    model_config = ConfigDict(extra="allow")

    code: Optional[int | str] = None
    message: Optional[str] = None

    def __str__(self) -> str:
        if self.code is not None:
            return f"[{self.code}] {self.message or ''}".rstrip()
        return self.message or ""


class TokenResponse(BaseModel):
    """Body returned by ``POST /oauth2/token``."""

    model_config = ConfigDict(extra="allow")

    access_token: Optional[str] = None
    expires_in: Optional[int] = None
    token_type: Optional[str] = None
    errors: Optional[list[ApiError]] = None


# --- Page envelope ---


class Pagination(BaseModel):
    """``meta.pagination`` block of a list response."""

    model_config = ConfigDict(extra="allow")

    next_token: Optional[str] = None
    offset: Optional[int | str] = None
    limit: Optional[int] = None
    total: Optional[int] = None


class Meta(BaseModel):
    """``meta`` block of a list response."""

    model_config = ConfigDict(extra="allow")

    query_time: Optional[float] = None
    trace_id: Optional[str] = None
    pagination: Optional[Pagination] = None


class PageEnvelope(BaseModel, Generic[T]):
    """One page of results: ``{resources, meta: {pagination}, errors}``.

    Example::

        page = PageEnvelope[str].model_validate(
            {"resources": ["a", "b"], "meta": {"pagination": {"next_token": "x"}}}
        )
        assert page.items == ["a", "b"] and page.cursor == "x"
    """

    model_config = ConfigDict(extra="allow")

    resources: list[T] = Field(default_factory=list)
    meta: Optional[Meta] = None
    errors: Optional[list[ApiError]] = None

    @field_validator("resources", mode="before")
    @classmethod
    def _null_resources(cls, value: Any) -> Any:
        return [] if value is None else value

    @property
    def items(self) -> list[T]:
        return self.resources

    @property
    def pagination(self) -> Optional[Pagination]:
        return self.meta.pagination if self.meta else None

    @property
    def cursor(self) -> Optional[str]:
        """The continuation token, or ``None`` on the last page."""
        pagination = self.pagination
        return pagination.next_token if pagination else None

    @property
    def total(self) -> Optional[int]:
        """The server-reported total, or ``None`` when it was not reported."""
        pagination = self.pagination
        return pagination.total if pagination else None


# --- Request result ---


class RequestResult(BaseModel, Generic[T]):
    """Outcome of one resource-service call.

    Services never let a :class:`~falconkit.exceptions.FalconError` escape;
    they record it here together with the HTTP status and raw body so the
    caller decides whether the failure is fatal.

    Attributes:
        status_code: HTTP status of the call (``0`` before anything ran).
        data: Parsed payload on success.
        raw_response: Raw body of the last response seen.
        error_message: Summary of API-level errors or of the failure.
        exception: The exception that ended the call, if any.
        api_errors: ``errors`` entries collected from successful responses.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    status_code: int = 0
    data: Optional[T] = None
    raw_response: Optional[str] = None
    error_message: Optional[str] = None
    exception: Optional[BaseException] = None
    api_errors: list[ApiError] = Field(default_factory=list)

    @property
    def success(self) -> bool:
        """``True`` for a 2xx status with no captured exception."""
        return self.exception is None and 200 <= self.status_code < 300

    def unwrap(self) -> T:
        """Return :attr:`data`, re-raising the captured exception on failure."""
        if self.exception is not None:
            raise self.exception
        if not self.success:
            raise FalconError(f"Request failed with status {self.status_code}")
        return self.data  # type: ignore[return-value]

    def raise_for_api_errors(self) -> None:
        """Raise :class:`ApiLevelError` if any API-level errors were recorded."""
        if self.api_errors:
            joined = "; ".join(str(e) for e in self.api_errors)
            raise ApiLevelError(f"API-level error(s): {joined}")


# --- Resource DTOs ---


class DeviceDetail(BaseModel):
    """A host record from ``/devices/entities/devices/v2``."""

    model_config = ConfigDict(extra="allow")

    device_id: str = ""
    cid: Optional[str] = None
    hostname: Optional[str] = None
    os_product_name: Optional[str] = None
    os_version: Optional[str] = None
    platform_name: Optional[str] = None
    product_type: Optional[str] = None
    product_type_desc: Optional[str] = None
    last_seen: Optional[str] = None


class AlertDetail(BaseModel):
    """An alert record from ``/alerts/entities/alerts/v2``."""

    model_config = ConfigDict(extra="allow")

    id: str = ""
    name: Optional[str] = None
    severity: Optional[int | str] = None
    status: Optional[str] = None
    aid: Optional[str] = None
    hostname: Optional[str] = None
    description: Optional[str] = None
    created_timestamp: Optional[str] = None


class VulnerabilityRemediation(BaseModel):
    """The ``remediation`` facet of a vulnerability record.

    Only present when the details call requests facets. ``ids`` lists the
    remediation entities that apply; the descriptive fields are filled when
    the API expands a single remediation inline.
    """

    model_config = ConfigDict(extra="allow")

    id: str = ""
    ids: Optional[list[str]] = None
    name: Optional[str] = None
    description: Optional[str] = None
    vulnerability_ids: Optional[list[str]] = None
    remediation: Optional[str] = None
    severity: Optional[str] = None


class VulnerabilityDetail(BaseModel):
    """A vulnerability record from ``/spotlight/combined/vulnerabilities/v1``."""

    model_config = ConfigDict(extra="allow")

    id: str = ""
    aid: Optional[str] = None
    cve: Optional[dict[str, Any]] = None
    status: Optional[str] = None
    created_timestamp: Optional[str] = None
    remediation: Optional[VulnerabilityRemediation] = None
