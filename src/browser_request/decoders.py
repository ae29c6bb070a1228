"""Incremental content-encoding decoders.

Decoding is strict: corrupt or truncated data raises :class:`DecodeError`
rather than yielding a damaged body.
"""

from __future__ import annotations

import logging
import zlib
from typing import Optional, Protocol, Sequence

import brotli

from .errors import DecodeError

LOGGER = logging.getLogger(__name__)

IDENTITY_TOKENS = {"", "identity", "none"}


class ContentDecoder(Protocol):
    def decode(self, data: bytes) -> bytes:  # pragma: no cover - protocol definition
        ...

    def flush(self) -> bytes:  # pragma: no cover - protocol definition
        ...


class IdentityDecoder:
    def decode(self, data: bytes) -> bytes:
        return data

    def flush(self) -> bytes:
        return b""


class GzipDecoder:
    """Decodes gzip bodies, including several members concatenated back to back."""

    def __init__(self) -> None:
        self._decompressor = zlib.decompressobj(zlib.MAX_WBITS | 16)
        self._seen_data = False

    def decode(self, data: bytes) -> bytes:
        if not data:
            return b""
        self._seen_data = True
        out = b""
        try:
            while data:
                if self._decompressor.eof:
                    self._decompressor = zlib.decompressobj(zlib.MAX_WBITS | 16)
                out += self._decompressor.decompress(data)
                data = self._decompressor.unused_data if self._decompressor.eof else b""
        except zlib.error as exc:
            raise DecodeError(f"Invalid gzip data: {exc}") from exc
        return out

    def flush(self) -> bytes:
        if not self._seen_data:
            return b""
        try:
            tail = self._decompressor.flush()
        except zlib.error as exc:
            raise DecodeError(f"Invalid gzip data: {exc}") from exc
        if not self._decompressor.eof:
            raise DecodeError("Invalid gzip data: stream is truncated")
        return tail


class DeflateDecoder:
    """Accepts both zlib-wrapped and raw deflate, chosen from the first two bytes."""

    def __init__(self) -> None:
        self._decompressor: Optional["zlib._Decompress"] = None
        self._pending = b""

    @staticmethod
    def _looks_like_zlib(head: bytes) -> bool:
        cmf, flg = head[0], head[1]
        return cmf & 0x0F == 8 and (cmf << 8 | flg) % 31 == 0

    def decode(self, data: bytes) -> bytes:
        if self._decompressor is None:
            self._pending += data
            if len(self._pending) < 2:
                return b""
            wbits = zlib.MAX_WBITS if self._looks_like_zlib(self._pending) else -zlib.MAX_WBITS
            self._decompressor = zlib.decompressobj(wbits)
            data, self._pending = self._pending, b""
        if data and self._decompressor.eof:
            raise DecodeError("Invalid deflate data: trailing bytes after end of stream")
        try:
            out = self._decompressor.decompress(data)
        except zlib.error as exc:
            raise DecodeError(f"Invalid deflate data: {exc}") from exc
        if self._decompressor.unused_data:
            raise DecodeError("Invalid deflate data: trailing bytes after end of stream")
        return out

    def flush(self) -> bytes:
        if self._decompressor is None:
            if self._pending:
                raise DecodeError("Invalid deflate data: stream is truncated")
            return b""
        try:
            tail = self._decompressor.flush()
        except zlib.error as exc:
            raise DecodeError(f"Invalid deflate data: {exc}") from exc
        if not self._decompressor.eof:
            raise DecodeError("Invalid deflate data: stream is truncated")
        return tail


class BrotliDecoder:
    def __init__(self) -> None:
        self._decompressor = brotli.Decompressor()
        self._seen_data = False

    def decode(self, data: bytes) -> bytes:
        if not data:
            return b""
        self._seen_data = True
        try:
            return self._decompressor.process(data)
        except brotli.error as exc:
            raise DecodeError(f"Invalid brotli data: {exc}") from exc

    def flush(self) -> bytes:
        if self._seen_data and not self._decompressor.is_finished():
            raise DecodeError("Invalid brotli data: stream is truncated")
        return b""


class MultiDecoder:
    """Undo stacked encodings, last applied first."""

    def __init__(self, children: Sequence[ContentDecoder]) -> None:
        self._children = list(reversed(children))

    def decode(self, data: bytes) -> bytes:
        for child in self._children:
            data = child.decode(data)
        return data

    def flush(self) -> bytes:
        data = b""
        for child in self._children:
            data = child.decode(data) + child.flush()
        return data


SUPPORTED_DECODERS: dict[str, type] = {
    "gzip": GzipDecoder,
    "x-gzip": GzipDecoder,
    "deflate": DeflateDecoder,
    "br": BrotliDecoder,
}


def get_decoder(content_encoding: Optional[str]) -> ContentDecoder:
    """Return a decoder for a Content-Encoding header value.

    Unknown tokens cannot be verified; they are passed through unchanged and
    logged.
    """

    decoders: list[ContentDecoder] = []
    for token in (content_encoding or "").split(","):
        token = token.strip().lower()
        if token in IDENTITY_TOKENS:
            continue
        decoder_cls = SUPPORTED_DECODERS.get(token)
        if decoder_cls is None:
            LOGGER.warning("Unsupported content-encoding %r, passing body through undecoded", token)
            continue
        decoders.append(decoder_cls())
    if not decoders:
        return IdentityDecoder()
    if len(decoders) == 1:
        return decoders[0]
    return MultiDecoder(decoders)


def decode_content(data: bytes, content_encoding: Optional[str]) -> bytes:
    """Decode a complete body in one go."""

    if not data:
        return b""
    decoder = get_decoder(content_encoding)
    return decoder.decode(data) + decoder.flush()


__all__ = [
    "BrotliDecoder",
    "ContentDecoder",
    "DeflateDecoder",
    "GzipDecoder",
    "IdentityDecoder",
    "MultiDecoder",
    "decode_content",
    "get_decoder",
]
