"""Utilities for generating browser header profiles and merging caller headers."""

from __future__ import annotations

from typing import Mapping, Optional

from .providers import LocaleProvider, UserAgentProvider
from .types import DeviceClass, HeaderProfile


def merge_headers(base: Mapping[str, str], overrides: Optional[Mapping[str, str]]) -> dict[str, str]:
    """Merge ``overrides`` over ``base`` comparing names case-insensitively.

    An overridden header keeps its position from ``base`` but takes the
    caller's spelling and value; new headers are appended in caller order.
    """

    merged: dict[str, tuple[str, str]] = {name.lower(): (name, value) for name, value in base.items()}
    for name, value in (overrides or {}).items():
        merged[name.lower()] = (name, value)
    return dict(merged.values())


class HeaderBuilder:
    """Generate consistent header profiles for a device class and locale."""

    def __init__(
        self,
        *,
        user_agents: Optional[UserAgentProvider] = None,
        locales: Optional[LocaleProvider] = None,
    ) -> None:
        self._user_agents = user_agents or UserAgentProvider()
        self._locales = locales or LocaleProvider()

    @property
    def user_agents(self) -> UserAgentProvider:
        return self._user_agents

    @property
    def locales(self) -> LocaleProvider:
        return self._locales

    def generate_profile(
        self,
        device_class: DeviceClass | str = DeviceClass.DESKTOP,
        locale: Optional[str] = None,
        *,
        profile_id: Optional[str] = None,
    ) -> HeaderProfile:
        """Return a fresh :class:`HeaderProfile`.

        The user agent is drawn from the weighted pool of ``device_class``;
        ``profile_id`` pins a specific template instead, which must belong to
        the same device class.
        """

        device = DeviceClass(device_class)
        if profile_id:
            record = self._user_agents.get(profile_id)
            if record.device is not device:
                raise ValueError(
                    f"Profile {profile_id!r} is a {record.device.value} template, not {device.value}"
                )
        else:
            record = self._user_agents.random(device)
        return record.to_profile(self._locales.get(locale))


__all__ = ["HeaderBuilder", "merge_headers"]
