"""Locale provider for Accept-Language generation."""

from __future__ import annotations

from typing import Iterable, Mapping, Optional

from ..constants import ACCEPT_LANGUAGE_BY_LOCALE, DEFAULT_LOCALE
from ..types import LocaleProfile, normalize_locale_tag


def _synthesize_accept_language(language: str, country: str) -> str:
    tag = f"{language}-{country}"
    if language == "en":
        return f"{tag},en;q=0.9"
    return f"{tag},{language};q=0.9,en;q=0.8"


class LocaleProvider:
    """Resolves locale tags to the Accept-Language header a browser would send."""

    def __init__(
        self,
        table: Optional[Mapping[str, str]] = None,
        *,
        default: str = DEFAULT_LOCALE,
    ) -> None:
        self._table: dict[str, str] = {}
        self.extend((table if table is not None else ACCEPT_LANGUAGE_BY_LOCALE).items())
        self._default = normalize_locale_tag(default)[0]

    @property
    def default(self) -> str:
        return self._default

    def all(self) -> list[LocaleProfile]:
        return [self.get(tag) for tag in self._table]

    def get(self, tag: Optional[str] = None) -> LocaleProfile:
        """Return the profile for ``tag``, or for the default locale when omitted.

        Well-formed tags missing from the table get a synthesized
        Accept-Language value; malformed tags raise ``ValueError``.
        """

        normalized, language, country = normalize_locale_tag(tag or self._default)
        accept_language = self._table.get(normalized) or _synthesize_accept_language(language, country)
        return LocaleProfile(
            tag=normalized,
            language=language,
            country=country,
            accept_language=accept_language,
        )

    def extend(self, entries: Iterable[tuple[str, str]]) -> None:
        for tag, accept_language in entries:
            self._table[normalize_locale_tag(tag)[0]] = accept_language


__all__ = ["LocaleProvider"]
