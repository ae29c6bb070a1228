"""HTTP/1.1 transport with a response parser of configurable strictness.

httpx's own HTTP/1.1 stack rejects malformed response heads outright. Real
browsers tolerate many of them (a space inside a header name, control
characters in a value, bare LF line endings), so this transport speaks
HTTP/1.1 over anyio sockets itself. With ``strict=True`` the same parser
rejects such input with :class:`httpx.RemoteProtocolError` naming the
offending header.
"""

from __future__ import annotations

import base64
import logging
import re
import ssl
from dataclasses import dataclass, field
from typing import AsyncIterator, Optional, Sequence

import anyio
import httpx
from anyio.abc import ByteStream
from anyio.streams.tls import TLSStream

from .types import ProxyConfig, ProxyScheme

LOGGER = logging.getLogger(__name__)

_TOKEN = re.compile(rb"^[!#$%&'*+\-.^_`|~0-9A-Za-z]+$")
_INVALID_VALUE_CHAR = re.compile(rb"[\x00-\x08\x0a-\x1f\x7f]")
_STRICT_STATUS_LINE = re.compile(rb"^HTTP/(?P<version>1\.[01]) (?P<status>\d{3})(?: (?P<reason>.*))?$")
_LENIENT_STATUS_LINE = re.compile(
    rb"^\s*HTTP/(?P<version>\d(?:\.\d)?)\s+(?P<status>\d{3})(?:\s+(?P<reason>.*))?$"
)
_CHUNK_SIZE = re.compile(rb"^[0-9A-Fa-f]+$")
_UNSAFE_REQUEST_VALUE = re.compile(rb"[\r\n\x00]")

DEFAULT_PORTS = {"http": 80, "https": 443}
FRAMING_EMPTY = "empty"
FRAMING_CHUNKED = "chunked"
FRAMING_LENGTH = "length"
FRAMING_CLOSE = "close"


def create_ssl_context(*, verify: bool = True, http2: bool = False) -> ssl.SSLContext:
    """Build the TLS context used for origin and proxy connections."""

    context = ssl.create_default_context()
    if not verify:
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
    context.set_alpn_protocols(["h2", "http/1.1"] if http2 else ["http/1.1"])
    return context


# ----------------------------------------------------------------------
# Parsing
# ----------------------------------------------------------------------
@dataclass
class ResponseHead:
    """Status line and header fields of a response, names kept as received."""

    http_version: str
    status_code: int
    reason_phrase: str = ""
    headers: list[tuple[bytes, bytes]] = field(default_factory=list)

    def values(self, name: bytes) -> list[bytes]:
        name = name.lower()
        return [value for key, value in self.headers if key.lower() == name]


def _strip_terminator(line: bytes, strict: bool) -> bytes:
    if line.endswith(b"\r\n"):
        return line[:-2]
    if strict:
        raise httpx.RemoteProtocolError("Missing expected CR after header line")
    return line.rstrip(b"\r\n")


def parse_status_line(line: bytes, *, strict: bool = False) -> tuple[str, int, str]:
    pattern = _STRICT_STATUS_LINE if strict else _LENIENT_STATUS_LINE
    match = pattern.match(line)
    if match is None:
        raise httpx.RemoteProtocolError(f"Invalid status line {line[:100]!r}")
    version = match.group("version").decode("ascii")
    if "." not in version:
        version = f"{version}.0"
    reason = (match.group("reason") or b"").strip()
    return f"HTTP/{version}", int(match.group("status")), reason.decode("latin-1")


def parse_header_lines(lines: Sequence[bytes], *, strict: bool = False) -> list[tuple[bytes, bytes]]:
    """Split header lines into (name, value) pairs.

    Lenient mode keeps any name that precedes a colon, trims it and accepts
    arbitrary value bytes; lines without a colon are dropped and obsolete
    line folding is joined onto the previous value.
    """

    headers: list[tuple[bytes, bytes]] = []
    for line in lines:
        if line[:1] in (b" ", b"\t"):
            if strict:
                raise httpx.RemoteProtocolError(f"Unexpected whitespace before header line {line[:100]!r}")
            if headers:
                name, value = headers[-1]
                headers[-1] = (name, value + b" " + line.strip(b" \t"))
            continue
        name, sep, value = line.partition(b":")
        if strict:
            if not sep or not _TOKEN.match(name):
                raise httpx.RemoteProtocolError(
                    f"Invalid header token {name.decode('latin-1')!r}"
                )
        else:
            name = name.strip(b" \t")
            if not sep or not name:
                LOGGER.debug("Dropping malformed header line %r", line[:100])
                continue
            if not _TOKEN.match(name):
                LOGGER.debug("Tolerating invalid header name %r", name)
        value = value.strip(b" \t")
        if strict and _INVALID_VALUE_CHAR.search(value):
            raise httpx.RemoteProtocolError(
                f"Invalid header value char in {name.decode('latin-1')!r}"
            )
        headers.append((name, value))
    return headers


def parse_head(lines: Sequence[bytes], *, strict: bool = False) -> ResponseHead:
    """Parse raw head lines (terminators included, blank line excluded)."""

    if not lines:
        raise httpx.RemoteProtocolError("Empty response head")
    stripped = [_strip_terminator(line, strict) for line in lines]
    version, status_code, reason = parse_status_line(stripped[0], strict=strict)
    return ResponseHead(
        http_version=version,
        status_code=status_code,
        reason_phrase=reason,
        headers=parse_header_lines(stripped[1:], strict=strict),
    )


def body_framing(method: str, head: ResponseHead, *, strict: bool = False) -> tuple[str, Optional[int]]:
    """Decide how the body of ``head`` is delimited and its length if known."""

    status = head.status_code
    if method == "HEAD" or 100 <= status < 200 or status in (204, 304):
        return FRAMING_EMPTY, 0
    transfer_encoding = b",".join(head.values(b"transfer-encoding")).lower()
    if transfer_encoding:
        codings = [coding.strip() for coding in transfer_encoding.split(b",") if coding.strip()]
        if codings and codings[-1] == b"chunked":
            return FRAMING_CHUNKED, None
        if strict:
            raise httpx.RemoteProtocolError(f"Unsupported transfer-encoding {transfer_encoding!r}")
    lengths = {
        candidate.strip()
        for value in head.values(b"content-length")
        for candidate in value.split(b",")
    }
    if lengths:
        valid = [int(candidate) for candidate in lengths if candidate.isdigit()]
        if strict and (len(lengths) != 1 or len(valid) != 1):
            raise httpx.RemoteProtocolError("Invalid Content-Length")
        if valid:
            return FRAMING_LENGTH, min(valid)
        LOGGER.debug("Ignoring unusable Content-Length %r", lengths)
    return FRAMING_CLOSE, None


def validate_request_head(request: httpx.Request) -> None:
    """Reject a method, header name or header value that would break the request framing."""

    if not _TOKEN.fullmatch(request.method.encode("utf-8")):
        raise httpx.LocalProtocolError(f"Invalid request method {request.method!r}")
    for name, value in request.headers.raw:
        if not _TOKEN.fullmatch(name):
            raise httpx.LocalProtocolError(f"Invalid header name {name.decode('latin-1')!r}")
        if _UNSAFE_REQUEST_VALUE.search(value):
            raise httpx.LocalProtocolError(f"Invalid header value for {name.decode('latin-1')!r}")


# ----------------------------------------------------------------------
# Connection I/O
# ----------------------------------------------------------------------
class _WireReader:
    """Buffered reads over an anyio byte stream with per-read timeouts."""

    def __init__(self, stream: ByteStream, *, chunk_size: int, read_timeout: Optional[float]) -> None:
        self._stream = stream
        self._chunk_size = chunk_size
        self._read_timeout = read_timeout
        self._buffer = bytearray()
        self._eof = False

    async def _receive(self) -> bool:
        if self._eof:
            return False
        try:
            with anyio.fail_after(self._read_timeout):
                data = await self._stream.receive(self._chunk_size)
        except TimeoutError as exc:
            raise httpx.ReadTimeout("Timed out while reading from the connection") from exc
        except anyio.EndOfStream:
            self._eof = True
            return False
        except (anyio.BrokenResourceError, anyio.ClosedResourceError, OSError) as exc:
            raise httpx.ReadError(str(exc) or "Connection reset by peer") from exc
        self._buffer += data
        return True

    async def read_line(self, limit: int) -> bytes:
        """Return the next line with its terminator, or what is left at EOF."""

        while True:
            index = self._buffer.find(b"\n")
            if index >= 0:
                line = bytes(self._buffer[: index + 1])
                del self._buffer[: index + 1]
                return line
            if len(self._buffer) > limit:
                raise httpx.RemoteProtocolError("Header overflow")
            if not await self._receive():
                line = bytes(self._buffer)
                self._buffer.clear()
                return line

    async def read_head(self, limit: int) -> list[bytes]:
        lines: list[bytes] = []
        size = 0
        while True:
            line = await self.read_line(limit)
            if not line:
                if lines:
                    raise httpx.RemoteProtocolError("Server disconnected while sending the response head")
                raise httpx.ReadError("Server disconnected without sending a response")
            size += len(line)
            if size > limit:
                raise httpx.RemoteProtocolError("Header overflow")
            if line in (b"\r\n", b"\n"):
                if lines:
                    return lines
                continue
            lines.append(line)
            if not line.endswith(b"\n"):
                return lines

    async def read_some(self, max_bytes: int) -> bytes:
        if not self._buffer and not await self._receive():
            return b""
        data = bytes(self._buffer[:max_bytes])
        del self._buffer[:max_bytes]
        return data

    async def aclose(self) -> None:
        await anyio.aclose_forcefully(self._stream)


class WireResponseStream(httpx.AsyncByteStream):
    """Response body pulled lazily from the connection, which it owns."""

    def __init__(self, reader: _WireReader, chunks: AsyncIterator[bytes]) -> None:
        self._reader = reader
        self._chunks = chunks

    async def __aiter__(self) -> AsyncIterator[bytes]:
        async for chunk in self._chunks:
            yield chunk

    async def aclose(self) -> None:
        aclose = getattr(self._chunks, "aclose", None)
        if aclose is not None:
            await aclose()
        await self._reader.aclose()


class WireHTTPTransport(httpx.AsyncBaseTransport):
    """One connection per request; HTTP and HTTPS origins, optional HTTP(S) proxy."""

    def __init__(
        self,
        *,
        strict: bool = False,
        verify: bool = True,
        proxy: Optional[ProxyConfig] = None,
        ssl_context: Optional[ssl.SSLContext] = None,
        max_header_bytes: int = 64 * 1024,
        read_chunk_size: int = 64 * 1024,
    ) -> None:
        if proxy is not None and proxy.scheme is ProxyScheme.SOCKS5:
            raise ValueError("SOCKS proxies are not supported over HTTP/1.1, use an http(s) proxy URL")
        self.strict = strict
        self._proxy = proxy
        self._ssl_context = ssl_context or create_ssl_context(verify=verify)
        self._max_header_bytes = max_header_bytes
        self._chunk_size = read_chunk_size

    def configure_parser_strictness(self, strict: bool) -> None:
        self.strict = strict

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        validate_request_head(request)
        timeouts = request.extensions.get("timeout", {})
        stream = await self._connect(request.url, timeouts.get("connect"))
        reader = _WireReader(stream, chunk_size=self._chunk_size, read_timeout=timeouts.get("read"))
        try:
            await self._send_request(stream, request, timeouts.get("write"))
            head = await self._read_response_head(reader)
            framing, length = body_framing(request.method, head, strict=self.strict)
        except BaseException:
            await reader.aclose()
            raise
        LOGGER.debug(
            "%s %s -> %s %s (%s body)",
            request.method,
            request.url,
            head.http_version,
            head.status_code,
            framing,
        )
        return httpx.Response(
            head.status_code,
            headers=head.headers,
            stream=WireResponseStream(reader, self._iter_body(reader, framing, length)),
            extensions={
                "http_version": head.http_version.encode("ascii"),
                "reason_phrase": head.reason_phrase.encode("latin-1"),
            },
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    async def _connect(self, url: httpx.URL, timeout: Optional[float]) -> ByteStream:
        host = url.host
        port = url.port or DEFAULT_PORTS.get(url.scheme)
        if port is None:
            raise httpx.UnsupportedProtocol(f"Unsupported URL scheme {url.scheme!r}")
        tls = url.scheme == "https"
        try:
            with anyio.fail_after(timeout):
                if self._proxy is None:
                    return await self._open_tcp(host, port, tls=tls)
                proxy = self._proxy
                stream = await self._open_tcp(
                    proxy.host, proxy.port, tls=proxy.scheme is ProxyScheme.HTTPS
                )
                if not tls:
                    return stream
                try:
                    await self._open_tunnel(stream, host, port)
                    return await TLSStream.wrap(
                        stream,
                        hostname=host,
                        ssl_context=self._ssl_context,
                        standard_compatible=False,
                    )
                except BaseException:
                    await anyio.aclose_forcefully(stream)
                    raise
        except TimeoutError as exc:
            raise httpx.ConnectTimeout(f"Timed out connecting to {host}:{port}") from exc
        except (OSError, anyio.BrokenResourceError) as exc:
            raise httpx.ConnectError(str(exc) or f"Could not connect to {host}:{port}") from exc

    async def _open_tcp(self, host: str, port: int, *, tls: bool) -> ByteStream:
        if not tls:
            return await anyio.connect_tcp(host, port)
        return await anyio.connect_tcp(
            host,
            port,
            tls=True,
            ssl_context=self._ssl_context,
            tls_hostname=host,
            tls_standard_compatible=False,
        )

    def _proxy_authorization(self) -> Optional[bytes]:
        if self._proxy is None or self._proxy.auth is None:
            return None
        credentials = f"{self._proxy.auth.username}:{self._proxy.auth.password}".encode("utf-8")
        return b"Basic " + base64.b64encode(credentials)

    async def _open_tunnel(self, stream: ByteStream, host: str, port: int) -> None:
        target = f"{host}:{port}".encode("idna")
        lines = [b"CONNECT " + target + b" HTTP/1.1", b"Host: " + target]
        authorization = self._proxy_authorization()
        if authorization:
            lines.append(b"Proxy-Authorization: " + authorization)
        await stream.send(b"\r\n".join(lines) + b"\r\n\r\n")
        reader = _WireReader(stream, chunk_size=self._chunk_size, read_timeout=None)
        head = parse_head(await reader.read_head(self._max_header_bytes))
        if not 200 <= head.status_code < 300:
            raise httpx.ProxyError(
                f"Proxy refused tunnel to {target.decode()}: {head.status_code} {head.reason_phrase}"
            )

    def _request_target(self, url: httpx.URL) -> bytes:
        if self._proxy is not None and url.scheme == "http":
            return str(url.copy_with(fragment=None)).encode("ascii")
        return url.raw_path

    async def _send_request(
        self,
        stream: ByteStream,
        request: httpx.Request,
        timeout: Optional[float],
    ) -> None:
        lines = [request.method.encode("ascii") + b" " + self._request_target(request.url) + b" HTTP/1.1"]
        lines.extend(name + b": " + value for name, value in request.headers.raw)
        authorization = self._proxy_authorization()
        if authorization and request.url.scheme == "http":
            lines.append(b"Proxy-Authorization: " + authorization)
        await self._send(stream, b"\r\n".join(lines) + b"\r\n\r\n", timeout)

        chunked = "chunked" in request.headers.get("transfer-encoding", "").lower()
        async for chunk in request.stream:  # type: ignore[union-attr]
            if not chunk:
                continue
            if chunked:
                chunk = b"%x\r\n%s\r\n" % (len(chunk), chunk)
            await self._send(stream, chunk, timeout)
        if chunked:
            await self._send(stream, b"0\r\n\r\n", timeout)

    async def _send(self, stream: ByteStream, data: bytes, timeout: Optional[float]) -> None:
        try:
            with anyio.fail_after(timeout):
                await stream.send(data)
        except TimeoutError as exc:
            raise httpx.WriteTimeout("Timed out while sending the request") from exc
        except (anyio.BrokenResourceError, anyio.ClosedResourceError, OSError) as exc:
            raise httpx.WriteError(str(exc) or "Connection closed while sending the request") from exc

    async def _read_response_head(self, reader: _WireReader) -> ResponseHead:
        while True:
            head = parse_head(await reader.read_head(self._max_header_bytes), strict=self.strict)
            # interim responses (100 Continue, 103 Early Hints) precede the real one
            if 100 <= head.status_code < 200 and head.status_code != 101:
                continue
            return head

    async def _iter_body(
        self,
        reader: _WireReader,
        framing: str,
        length: Optional[int],
    ) -> AsyncIterator[bytes]:
        if framing == FRAMING_EMPTY:
            return
        if framing == FRAMING_CHUNKED:
            async for chunk in self._iter_chunked(reader):
                yield chunk
            return
        if framing == FRAMING_LENGTH:
            remaining = length or 0
            while remaining > 0:
                data = await reader.read_some(min(remaining, self._chunk_size))
                if not data:
                    raise httpx.RemoteProtocolError(
                        f"Server disconnected with {remaining} bytes of the body outstanding"
                    )
                remaining -= len(data)
                yield data
            return
        while True:
            data = await reader.read_some(self._chunk_size)
            if not data:
                return
            yield data

    async def _iter_chunked(self, reader: _WireReader) -> AsyncIterator[bytes]:
        limit = self._max_header_bytes
        while True:
            line = await reader.read_line(limit)
            if not line:
                raise httpx.RemoteProtocolError("Server disconnected before the chunked body was complete")
            size_field = line.split(b";", 1)[0].strip()
            if self.strict and not _CHUNK_SIZE.match(size_field):
                raise httpx.RemoteProtocolError(f"Invalid chunk size {size_field[:20]!r}")
            try:
                size = int(size_field, 16)
            except ValueError as exc:
                raise httpx.RemoteProtocolError(f"Invalid chunk size {size_field[:20]!r}") from exc
            if size == 0:
                # trailer section ends with an empty line (or EOF)
                while (await reader.read_line(limit)).strip():
                    pass
                return
            remaining = size
            while remaining > 0:
                data = await reader.read_some(min(remaining, self._chunk_size))
                if not data:
                    raise httpx.RemoteProtocolError("Server disconnected before the chunked body was complete")
                remaining -= len(data)
                yield data
            terminator = await reader.read_line(limit)
            if self.strict and terminator != b"\r\n":
                raise httpx.RemoteProtocolError("Expected CRLF after chunk data")


__all__ = [
    "ResponseHead",
    "WireHTTPTransport",
    "WireResponseStream",
    "body_framing",
    "create_ssl_context",
    "parse_head",
    "parse_header_lines",
    "parse_status_line",
    "validate_request_head",
]
