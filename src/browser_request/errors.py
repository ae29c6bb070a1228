"""Classified request errors.

Every failure of a request reaches the caller as one of five
:class:`RequestError` subclasses. The message always starts with a category
prefix and contains the underlying diagnostic, e.g.
``"Parse Error: Invalid header token 'Bad Name'"``.
"""

from __future__ import annotations

import zlib
from enum import Enum
from typing import TYPE_CHECKING, Optional

import anyio
import httpx

if TYPE_CHECKING:
    from .response import RawResponse


class ErrorKind(str, Enum):
    """Fixed taxonomy of request failures."""

    PARSE = "ParseError"
    DECODE = "DecodeError"
    REDIRECT_LOOP = "RedirectLoop"
    TIMEOUT = "Timeout"
    NETWORK = "NetworkError"


class RequestError(Exception):
    """Base class of classified errors."""

    kind: ErrorKind
    prefix: str = "Request Error"

    def __init__(
        self,
        message: str,
        *,
        url: Optional[str] = None,
        raw_response: Optional["RawResponse"] = None,
    ) -> None:
        if not message.startswith(self.prefix):
            message = f"{self.prefix}: {message}"
        super().__init__(message)
        self.message = message
        self.url = url
        self.raw_response = raw_response


class ParseError(RequestError):
    """Malformed wire data rejected by the strict HTTP parser."""

    kind = ErrorKind.PARSE
    prefix = "Parse Error"


class DecodeError(RequestError):
    """Body bytes do not match the declared content-encoding."""

    kind = ErrorKind.DECODE
    prefix = "Decode Error"


class RedirectLoopError(RequestError):
    """Too many redirects, or a redirect back to an already visited URL."""

    kind = ErrorKind.REDIRECT_LOOP
    prefix = "Redirect Loop"


class RequestTimeoutError(RequestError):
    """The per-request deadline was exceeded."""

    kind = ErrorKind.TIMEOUT
    prefix = "Timeout"


class NetworkError(RequestError):
    """Connection-level failure: DNS, refused, reset, TLS, proxy."""

    kind = ErrorKind.NETWORK
    prefix = "Network Error"


# Exceptions the executor hands to :func:`classify`; anything else propagates.
CLASSIFIABLE_ERRORS = (
    RequestError,
    httpx.HTTPError,
    httpx.StreamError,
    TimeoutError,
    OSError,
    zlib.error,
    anyio.BrokenResourceError,
    anyio.EndOfStream,
)


def classify(
    exc: BaseException,
    *,
    url: Optional[str] = None,
    raw_response: Optional["RawResponse"] = None,
) -> RequestError:
    """Map a low-level failure onto the :class:`RequestError` taxonomy."""

    if isinstance(exc, RequestError):
        if exc.url is None:
            exc.url = url
        if exc.raw_response is None:
            exc.raw_response = raw_response
        return exc

    message = str(exc) or exc.__class__.__name__
    if isinstance(exc, (httpx.TimeoutException, TimeoutError)):
        error_cls: type[RequestError] = RequestTimeoutError
    elif isinstance(exc, httpx.TooManyRedirects):
        error_cls = RedirectLoopError
    elif isinstance(exc, (httpx.DecodingError, zlib.error)):
        error_cls = DecodeError
    elif isinstance(exc, (httpx.ProtocolError, httpx.InvalidURL)):
        error_cls = ParseError
    else:
        error_cls = NetworkError
    return error_cls(message, url=url, raw_response=raw_response)


__all__ = [
    "CLASSIFIABLE_ERRORS",
    "DecodeError",
    "ErrorKind",
    "NetworkError",
    "ParseError",
    "RedirectLoopError",
    "RequestError",
    "RequestTimeoutError",
    "classify",
]
