"""Choice between the HTTP/2-capable httpx transport and the HTTP/1.1 wire transport."""

from __future__ import annotations

import importlib.util
import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from .config import BrowserRequestConfig
from .types import ProxyConfig
from .wire import WireHTTPTransport, create_ssl_context

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransportSelection:
    """The transport picked for a request and whether it may negotiate HTTP/2."""

    transport: httpx.AsyncBaseTransport
    http2: bool
    strict_parser: bool
    fallback_reason: Optional[str] = None


def http2_available() -> bool:
    """Return whether the ``h2`` package backing httpx's HTTP/2 support is installed."""

    return importlib.util.find_spec("h2") is not None


def select_transport(
    use_http2: bool,
    url: httpx.URL | str,
    *,
    insecure_http_parser: bool = True,
    proxy: Optional[ProxyConfig] = None,
    verify: bool = True,
    config: Optional[BrowserRequestConfig] = None,
) -> TransportSelection:
    """Pick the transport for one request.

    HTTP/2 is only negotiated over TLS via ALPN, so it is offered for https
    URLs when requested and available. That path parses responses with
    h11/h2, which are always strict, so ``insecure_http_parser`` has no
    effect there and the selection reports ``strict_parser=True``. Every
    other case, including a failed HTTP/2 request, quietly falls back to
    HTTP/1.1 over :class:`WireHTTPTransport`.
    """

    config = config or BrowserRequestConfig()
    url = httpx.URL(url)
    fallback_reason = None
    if use_http2:
        if not http2_available():
            fallback_reason = "the h2 package is not installed"
        elif url.scheme != "https":
            fallback_reason = "HTTP/2 requires an https URL"
        else:
            transport = httpx.AsyncHTTPTransport(
                http1=True,
                http2=True,
                verify=create_ssl_context(verify=verify, http2=True),
                proxy=proxy.url if proxy else None,
            )
            return TransportSelection(transport=transport, http2=True, strict_parser=True)
        LOGGER.info("HTTP/2 requested for %s but %s; using HTTP/1.1", url, fallback_reason)

    transport = WireHTTPTransport(
        strict=not insecure_http_parser,
        verify=verify,
        proxy=proxy,
        max_header_bytes=config.max_header_bytes,
        read_chunk_size=config.read_chunk_size,
    )
    return TransportSelection(
        transport=transport,
        http2=False,
        strict_parser=not insecure_http_parser,
        fallback_reason=fallback_reason,
    )


__all__ = ["TransportSelection", "http2_available", "select_transport"]
