"""Response validation, decoding and the public response object."""

from __future__ import annotations

import codecs
import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Awaitable, Callable, Optional, Sequence

from .decoders import decode_content
from .errors import DecodeError
from .types import EffectiveRequest, HeaderTuple

LOGGER = logging.getLogger(__name__)

_TOKEN = r"[!#$%&'*+\-.^_`|~0-9A-Za-z]+"
_MEDIA_TYPE = re.compile(rf"^\s*(?P<type>{_TOKEN})/(?P<subtype>{_TOKEN})\s*(?P<params>;.*)?$")
_PARAMETER = re.compile(rf"\s*(?P<name>{_TOKEN})\s*=\s*(?P<value>\"[^\"]*\"|[^;]*)")

DEFAULT_CHARSET = "utf-8"


@dataclass
class RawResponse:
    """A response exactly as received, before validation and decoding."""

    status_code: int
    url: str
    http_version: str = "HTTP/1.1"
    reason_phrase: str = ""
    raw_headers: list[HeaderTuple] = field(default_factory=list)
    body: Optional[bytes] = None

    def header(self, name: str) -> Optional[str]:
        """Return the last value received for ``name``."""

        name = name.lower()
        value = None
        for key, candidate in self.raw_headers:
            if key.lower() == name:
                value = candidate
        return value

    @property
    def content_type(self) -> Optional[str]:
        return self.header("content-type")

    @property
    def content_encoding(self) -> Optional[str]:
        return self.header("content-encoding")


def normalize_headers(raw_headers: Sequence[HeaderTuple]) -> dict[str, str]:
    """Lower-case header names literally; the last duplicate wins."""

    normalized: dict[str, str] = {}
    for name, value in raw_headers:
        normalized[name.lower()] = value
    return normalized


def parse_content_type(value: Optional[str]) -> Optional[tuple[str, dict[str, str]]]:
    """Parse a Content-Type value into the media type and its parameters.

    Returns ``None`` for anything that is not a ``type/subtype`` media type.
    """

    if not value:
        return None
    match = _MEDIA_TYPE.match(value)
    if match is None:
        return None
    params: dict[str, str] = {}
    for chunk in (match.group("params") or "").split(";"):
        param = _PARAMETER.match(chunk)
        if param is not None:
            params[param.group("name").lower()] = param.group("value").strip().strip('"')
    media_type = f"{match.group('type')}/{match.group('subtype')}".lower()
    return media_type, params


def resolve_charset(content_type: Optional[str]) -> str:
    """Pick the codec for a body; unknown or missing charsets fall back to UTF-8."""

    parsed = parse_content_type(content_type)
    if parsed is None:
        if content_type:
            LOGGER.debug("Unrecognized content-type %r, decoding body as %s", content_type, DEFAULT_CHARSET)
        return DEFAULT_CHARSET
    charset = parsed[1].get("charset")
    if not charset:
        return DEFAULT_CHARSET
    try:
        return codecs.lookup(charset).name
    except LookupError:
        LOGGER.debug("Unknown charset %r, decoding body as %s", charset, DEFAULT_CHARSET)
        return DEFAULT_CHARSET


class Response:
    """Result of a browser-like request.

    In buffered mode ``content`` holds the decoded bytes and ``body`` the text.
    In stream mode (``is_stream``) the body is consumed once with
    ``async for chunk in response``; closing the response releases the
    connection.
    """

    def __init__(
        self,
        *,
        status_code: int,
        raw_headers: Sequence[HeaderTuple],
        request: EffectiveRequest,
        reason_phrase: str = "",
        http_version: str = "HTTP/1.1",
        content: Optional[bytes] = None,
        charset: str = DEFAULT_CHARSET,
        stream: Optional[AsyncIterator[bytes]] = None,
        on_close: Optional[Callable[[], Awaitable[None]]] = None,
    ) -> None:
        self.status_code = status_code
        self.reason_phrase = reason_phrase
        self.http_version = http_version
        self.raw_headers = list(raw_headers)
        self.headers = normalize_headers(self.raw_headers)
        self.request = request
        self.charset = charset
        self._content = content
        self._stream = stream
        self._on_close = on_close
        self._consumed = False
        self.is_closed = stream is None

    def __repr__(self) -> str:
        mode = "stream" if self.is_stream else "buffered"
        return f"<Response [{self.status_code}] {mode} {self.url}>"

    @property
    def url(self) -> str:
        return self.request.url

    @property
    def is_stream(self) -> bool:
        return self._stream is not None

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 400

    @property
    def content(self) -> bytes:
        if self._content is None:
            raise RuntimeError("Streaming response body has to be consumed by iterating the response")
        return self._content

    @property
    def body(self) -> str:
        return self.content.decode(self.charset, errors="replace")

    text = body

    def json(self, **kwargs: Any) -> Any:
        return json.loads(self.body, **kwargs)

    async def aiter_bytes(self) -> AsyncIterator[bytes]:
        """Yield the body chunks; a buffered body is yielded as one chunk."""

        if self._stream is None:
            if self.content:
                yield self.content
            return
        if self._consumed:
            raise RuntimeError("Streaming response body can only be consumed once")
        self._consumed = True
        try:
            async for chunk in self._stream:
                if chunk:
                    yield chunk
        finally:
            await self.aclose()

    def __aiter__(self) -> AsyncIterator[bytes]:
        return self.aiter_bytes()

    async def aread(self) -> bytes:
        """Drain a streaming body and switch the response to buffered mode."""

        if self._content is None:
            self._content = b"".join([chunk async for chunk in self.aiter_bytes()])
        return self._content

    async def aclose(self) -> None:
        if self.is_closed:
            return
        self.is_closed = True
        if self._on_close is not None:
            await self._on_close()

    async def __aenter__(self) -> "Response":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()


def decode_response(raw: RawResponse, request: EffectiveRequest) -> Response:
    """Validate and decode a fully buffered :class:`RawResponse`.

    Encoding integrity is enforced (``DecodeError``); unrecognized content
    types are tolerated and kept verbatim in the headers.
    """

    body = raw.body or b""
    try:
        content = decode_content(body, raw.content_encoding)
    except DecodeError as exc:
        exc.url = raw.url
        exc.raw_response = raw
        raise
    return Response(
        status_code=raw.status_code,
        reason_phrase=raw.reason_phrase,
        http_version=raw.http_version,
        raw_headers=raw.raw_headers,
        request=request,
        content=content,
        charset=resolve_charset(raw.content_type),
    )


__all__ = [
    "RawResponse",
    "Response",
    "decode_response",
    "normalize_headers",
    "parse_content_type",
    "resolve_charset",
]
