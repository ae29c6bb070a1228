"""Proxy URL parsing."""

from __future__ import annotations

from urllib.parse import unquote, urlparse

from ..types import ProxyAuth, ProxyConfig, ProxyScheme


def parse_proxy_url(url: str) -> ProxyConfig:
    """Parse a proxy URL into a configuration object."""

    parsed = urlparse(url.strip())
    if not parsed.hostname:
        raise ValueError(f"Proxy URL missing hostname: {url}")
    try:
        scheme = ProxyScheme(parsed.scheme or "http")
    except ValueError as exc:
        raise ValueError(f"Unsupported proxy scheme in {url!r}") from exc
    auth = None
    if parsed.username:
        auth = ProxyAuth(username=unquote(parsed.username), password=unquote(parsed.password or ""))
    port = parsed.port
    if port is None:
        port = 443 if scheme is ProxyScheme.HTTPS else 1080 if scheme is ProxyScheme.SOCKS5 else 80
    return ProxyConfig(scheme=scheme, host=parsed.hostname, port=port, auth=auth)


__all__ = ["parse_proxy_url"]
