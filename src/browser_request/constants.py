"""Static data derived from current browser fingerprints."""

from __future__ import annotations

from collections.abc import Mapping

DESKTOP_ACCEPT_HEADER = (
    "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,"
    "image/apng,*/*;q=0.8,application/signed-exchange;v=b3;q=0.7"
)
MOBILE_ACCEPT_HEADER = DESKTOP_ACCEPT_HEADER
FIREFOX_ACCEPT_HEADER = (
    "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,"
    "image/png,image/svg+xml,*/*;q=0.8"
)
SAFARI_ACCEPT_HEADER = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"

# Only encodings the response decoders understand may be advertised.
DEFAULT_ACCEPT_ENCODINGS = ["gzip", "deflate", "br"]

DEFAULT_LOCALE = "en-US"

# Accept-Language values keyed by locale tag, as sent by Chromium.
ACCEPT_LANGUAGE_BY_LOCALE: Mapping[str, str] = {
    "en-US": "en-US,en;q=0.9",
    "en-GB": "en-GB,en-US;q=0.9,en;q=0.8",
    "en-CA": "en-CA,en-US;q=0.9,en;q=0.8",
    "en-AU": "en-AU,en-GB;q=0.9,en-US;q=0.8,en;q=0.7",
    "es-ES": "es-ES,es;q=0.9,en;q=0.8",
    "es-MX": "es-MX,es;q=0.9,en;q=0.8",
    "fr-FR": "fr-FR,fr;q=0.9,en-US;q=0.8,en;q=0.7",
    "de-DE": "de-DE,de;q=0.9,en-US;q=0.8,en;q=0.7",
    "it-IT": "it-IT,it;q=0.9,en-US;q=0.8,en;q=0.7",
    "pt-BR": "pt-BR,pt;q=0.9,en-US;q=0.8,en;q=0.7",
    "nl-NL": "nl-NL,nl;q=0.9,en-US;q=0.8,en;q=0.7",
    "pl-PL": "pl-PL,pl;q=0.9,en-US;q=0.8,en;q=0.7",
    "cs-CZ": "cs-CZ,cs;q=0.9,en;q=0.8",
    "ja-JP": "ja-JP,ja;q=0.9,en-US;q=0.8,en;q=0.7",
    "ko-KR": "ko-KR,ko;q=0.9,en-US;q=0.8,en;q=0.7",
    "ru-RU": "ru-RU,ru;q=0.9,en-US;q=0.8,en;q=0.7",
    "zh-CN": "zh-CN,zh;q=0.9,en;q=0.8",
}

# Sec-Fetch headers of a top-level navigation typed into the address bar.
SEC_FETCH_HEADERS_DOCUMENT = {
    "Sec-Fetch-Dest": "document",
    "Sec-Fetch-Mode": "navigate",
    "Sec-Fetch-Site": "none",
    "Sec-Fetch-User": "?1",
}

# Chromium client-hint brand lists keyed by major version.
SEC_CH_UA_BRANDS = {
    "chrome_130": '"Chromium";v="130", "Google Chrome";v="130", "Not?A_Brand";v="99"',
    "chrome_129": '"Google Chrome";v="129", "Not=A?Brand";v="8", "Chromium";v="129"',
    "edge_130": '"Chromium";v="130", "Microsoft Edge";v="130", "Not?A_Brand";v="99"',
}


__all__ = [
    "ACCEPT_LANGUAGE_BY_LOCALE",
    "DEFAULT_ACCEPT_ENCODINGS",
    "DEFAULT_LOCALE",
    "DESKTOP_ACCEPT_HEADER",
    "FIREFOX_ACCEPT_HEADER",
    "MOBILE_ACCEPT_HEADER",
    "SAFARI_ACCEPT_HEADER",
    "SEC_CH_UA_BRANDS",
    "SEC_FETCH_HEADERS_DOCUMENT",
]
