"""Utilities for loading profile data from JSON or YAML files."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Tuple

import yaml

from .providers.locales import LocaleProvider
from .providers.user_agents import UserAgentProvider, UserAgentRecord


def load_profiles(path: str | Path, *, default_locale: str | None = None) -> Tuple[UserAgentProvider, LocaleProvider]:
    """Load user-agent templates and the locale table from a JSON or YAML file.

    ``locales`` may be a mapping of tag to Accept-Language value or a list of
    ``{"tag": ..., "accept_language": ...}`` entries. A file without locales
    keeps the built-in table. A ``default_locale`` key in the file takes
    precedence over the ``default_locale`` argument.
    """

    data = _read_file(path)
    ua_records = [UserAgentRecord(**item) for item in data.get("user_agents", [])]
    if not ua_records:
        raise RuntimeError("profile file contains no user-agent records")
    user_agents = UserAgentProvider(ua_records)
    if not user_agents.all():
        raise RuntimeError("profile file contains no usable user-agent records")

    locale_kwargs: dict[str, Any] = {}
    if data.get("default_locale") or default_locale:
        locale_kwargs["default"] = data.get("default_locale") or default_locale
    locales = LocaleProvider(**locale_kwargs)
    locales.extend(_locale_entries(data.get("locales")))
    return user_agents, locales


def _locale_entries(raw: Any) -> list[tuple[str, str]]:
    if not raw:
        return []
    if isinstance(raw, dict):
        return [(str(tag), str(value)) for tag, value in raw.items()]
    return [(item["tag"], item["accept_language"]) for item in raw]


def _read_file(path: str | Path) -> dict:
    payload = Path(path).read_text(encoding="utf-8")
    suffix = Path(path).suffix.lower()
    if suffix in {".yaml", ".yml"}:
        return yaml.safe_load(payload) or {}
    return json.loads(payload)


__all__ = ["load_profiles"]
