"""Common data types used across the browser_request package."""

from __future__ import annotations

import re
from enum import Enum
from typing import Any, Mapping, MutableMapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

HeaderName = str
HeaderValue = str
HeaderTuple = tuple[HeaderName, HeaderValue]
HeaderMap = MutableMapping[HeaderName, HeaderValue]
FrozenHeaderMap = Mapping[HeaderName, HeaderValue]

LOCALE_TAG_PATTERN = re.compile(r"^(?P<language>[A-Za-z]{2,3})-(?P<country>[A-Za-z]{2})$")


class DeviceClass(str, Enum):
    """Device families a header profile can impersonate."""

    DESKTOP = "desktop"
    MOBILE = "mobile"


class ProxyScheme(str, Enum):
    """Proxy transport types."""

    HTTP = "http"
    HTTPS = "https"
    SOCKS5 = "socks5"


class ProxyAuth(BaseModel):
    """Authentication information for a proxy entry."""

    username: str
    password: str


class ProxyConfig(BaseModel):
    """A single upstream proxy endpoint."""

    scheme: ProxyScheme = ProxyScheme.HTTP
    host: str
    port: int = Field(..., ge=1, le=65535)
    auth: Optional[ProxyAuth] = None

    @property
    def netloc(self) -> str:
        """Return host:port formatted pair."""

        return f"{self.host}:{self.port}"

    @property
    def url(self) -> str:
        """Return a ready-to-use proxy URL."""

        if self.auth:
            return f"{self.scheme.value}://{self.auth.username}:{self.auth.password}@{self.netloc}"
        return f"{self.scheme.value}://{self.netloc}"


class LocaleProfile(BaseModel):
    """Locale metadata used to build Accept-Language."""

    tag: str = Field(..., description="language-COUNTRY tag, e.g. 'en-US'.")
    language: str = Field(..., description="ISO 639 language code.")
    country: str = Field(..., description="ISO 3166-1 alpha-2 country code.")
    accept_language: str = Field(..., description="Accept-Language header value.")


class UserAgentMetadata(BaseModel):
    """Information describing a user-agent string."""

    family: str = Field(..., description="Browser family, e.g. 'Chrome'.")
    version: Optional[str] = Field(default=None, description="Full browser version.")
    device: DeviceClass = Field(default=DeviceClass.DESKTOP)
    os: Optional[str] = Field(default=None, description="Operating system name/version.")
    platform: Optional[str] = Field(
        default=None,
        description="Value reported through Sec-CH-UA-Platform, e.g. 'Windows'.",
    )
    mobile: bool = Field(default=False)
    original: str = Field(..., description="The raw user-agent string.")


class HeaderProfile(BaseModel):
    """Immutable set of browser headers generated for one request."""

    model_config = ConfigDict(frozen=True)

    id: str
    device_class: DeviceClass
    locale: str
    user_agent: UserAgentMetadata
    accept: str
    accept_language: str
    accept_encoding: str = "gzip, deflate, br"
    connection: Optional[str] = "keep-alive"
    upgrade_insecure_requests: Optional[str] = "1"
    sec_ch_ua: Optional[str] = None
    sec_ch_ua_mobile: Optional[str] = None
    sec_ch_ua_platform: Optional[str] = None
    sec_fetch_site: Optional[str] = None
    sec_fetch_mode: Optional[str] = None
    sec_fetch_user: Optional[str] = None
    sec_fetch_dest: Optional[str] = None

    def headers(self) -> dict[str, str]:
        """Materialize the headers in the order a Chromium browser sends them."""

        ordered = [
            ("Connection", self.connection),
            ("sec-ch-ua", self.sec_ch_ua),
            ("sec-ch-ua-mobile", self.sec_ch_ua_mobile),
            ("sec-ch-ua-platform", self.sec_ch_ua_platform),
            ("Upgrade-Insecure-Requests", self.upgrade_insecure_requests),
            ("User-Agent", self.user_agent.original),
            ("Accept", self.accept),
            ("Sec-Fetch-Site", self.sec_fetch_site),
            ("Sec-Fetch-Mode", self.sec_fetch_mode),
            ("Sec-Fetch-User", self.sec_fetch_user),
            ("Sec-Fetch-Dest", self.sec_fetch_dest),
            ("Accept-Encoding", self.accept_encoding),
            ("Accept-Language", self.accept_language),
        ]
        return {name: value for name, value in ordered if value is not None}


class RequestOptions(BaseModel):
    """Caller-supplied options for a single browser-like request.

    Fields accept both snake_case names and camelCase aliases
    (``useMobileVersion``, ``useHttp2``, ...).
    ``None`` for ``locale``, ``timeout_ms`` and ``max_redirects`` means the
    client configuration decides.
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    url: str
    method: str = "GET"
    headers: dict[str, str] = Field(default_factory=dict)
    payload: Optional[Union[bytes, str]] = None
    json_body: Optional[Any] = None
    cookies: dict[str, str] = Field(default_factory=dict)
    use_mobile_version: bool = False
    locale: Optional[str] = None
    use_http2: bool = False
    use_insecure_http_parser: bool = True
    stream: bool = False
    proxy_url: Optional[str] = None
    timeout_ms: Optional[float] = Field(default=None, gt=0)
    follow_redirect: bool = True
    max_redirects: Optional[int] = Field(default=None, ge=0)
    ignore_ssl_errors: bool = False

    @field_validator("url")
    @classmethod
    def _require_absolute_url(cls, value: str) -> str:
        value = value.strip()
        scheme, _, rest = value.partition("://")
        if scheme.lower() not in {"http", "https"} or not rest or rest.startswith("/"):
            raise ValueError(f"url must be an absolute http(s) URL: {value!r}")
        return value

    @field_validator("method")
    @classmethod
    def _normalize_method(cls, value: str) -> str:
        value = value.strip().upper()
        if not value:
            raise ValueError("method must be non-empty")
        return value

    @model_validator(mode="after")
    def _check_body(self) -> "RequestOptions":
        if self.payload is not None and self.json_body is not None:
            raise ValueError("payload and json_body are mutually exclusive")
        return self

    @property
    def device_class(self) -> DeviceClass:
        return DeviceClass.MOBILE if self.use_mobile_version else DeviceClass.DESKTOP


class EffectiveRequest(BaseModel):
    """The options a request was actually executed with, kept for introspection."""

    url: str
    method: str
    headers: dict[str, str]
    profile: HeaderProfile
    http2: bool = Field(default=False, description="Whether HTTP/2 was actually negotiated.")
    http_version: Optional[str] = None
    insecure_http_parser: bool = Field(
        default=True, description="Whether responses were parsed leniently; the HTTP/2 transport is always strict."
    )
    stream: bool = False
    proxy_url: Optional[str] = None
    timeout_ms: float
    follow_redirect: bool = True
    max_redirects: int
    redirect_urls: list[str] = Field(default_factory=list)


class TelemetryEvent(BaseModel):
    """Structured record describing the outcome of a request."""

    event: str
    request_url: str
    method: str
    profile_id: Optional[str] = None
    device_class: Optional[DeviceClass] = None
    status_code: Optional[int] = None
    http_version: Optional[str] = None
    elapsed_ms: Optional[int] = None
    error_kind: Optional[str] = None
    payload: dict[str, object] = Field(default_factory=dict)


def normalize_locale_tag(tag: str) -> tuple[str, str, str]:
    """Split and normalize a ``language-COUNTRY`` tag.

    Returns the normalized tag, the lower-case language and the upper-case
    country. Raises ``ValueError`` for anything else.
    """

    match = LOCALE_TAG_PATTERN.match(tag.strip().replace("_", "-"))
    if match is None:
        raise ValueError(f"Locale must look like 'en-US', got {tag!r}")
    language = match.group("language").lower()
    country = match.group("country").upper()
    return f"{language}-{country}", language, country


__all__ = [
    "DeviceClass",
    "EffectiveRequest",
    "FrozenHeaderMap",
    "HeaderMap",
    "HeaderProfile",
    "HeaderTuple",
    "LocaleProfile",
    "ProxyAuth",
    "ProxyConfig",
    "ProxyScheme",
    "RequestOptions",
    "TelemetryEvent",
    "UserAgentMetadata",
    "normalize_locale_tag",
]
