"""User-Agent provider utilities.

The built-in pool is a table of device class to weighted browser templates.
Every template carries the client hints its browser really sends, so a
mobile user agent is never paired with desktop hints and vice versa.
"""

from __future__ import annotations

import json
import logging
import random
from pathlib import Path
from typing import Iterable, Optional, Sequence

from pydantic import Field, ValidationError

from ..constants import (
    DEFAULT_ACCEPT_ENCODINGS,
    DESKTOP_ACCEPT_HEADER,
    FIREFOX_ACCEPT_HEADER,
    MOBILE_ACCEPT_HEADER,
    SAFARI_ACCEPT_HEADER,
    SEC_CH_UA_BRANDS,
    SEC_FETCH_HEADERS_DOCUMENT,
)
from ..types import DeviceClass, HeaderProfile, LocaleProfile, UserAgentMetadata

LOGGER = logging.getLogger(__name__)


class UserAgentRecord(UserAgentMetadata):
    """Extends metadata with weighting and the headers its browser sends."""

    id: str = Field(..., description="Stable identifier for the template.")
    weight: float = Field(default=1.0, ge=0.0)
    accept_header: str = Field(default=DESKTOP_ACCEPT_HEADER)
    sec_ch_ua: Optional[str] = Field(
        default=None,
        description="Sec-CH-UA brand list; only Chromium-based browsers send client hints.",
    )

    def to_profile(self, locale: LocaleProfile) -> HeaderProfile:
        """Convert the record into a concrete header profile."""

        hints: dict[str, Optional[str]] = {
            "sec_ch_ua": None,
            "sec_ch_ua_mobile": None,
            "sec_ch_ua_platform": None,
        }
        if self.sec_ch_ua:
            hints = {
                "sec_ch_ua": self.sec_ch_ua,
                "sec_ch_ua_mobile": "?1" if self.mobile else "?0",
                "sec_ch_ua_platform": f'"{self.platform}"' if self.platform else None,
            }
        return HeaderProfile(
            id=self.id,
            device_class=self.device,
            locale=locale.tag,
            user_agent=UserAgentMetadata(
                family=self.family,
                version=self.version,
                device=self.device,
                os=self.os,
                platform=self.platform,
                mobile=self.mobile,
                original=self.original,
            ),
            accept=self.accept_header,
            accept_language=locale.accept_language,
            accept_encoding=", ".join(DEFAULT_ACCEPT_ENCODINGS),
            sec_fetch_site=SEC_FETCH_HEADERS_DOCUMENT["Sec-Fetch-Site"],
            sec_fetch_mode=SEC_FETCH_HEADERS_DOCUMENT["Sec-Fetch-Mode"],
            sec_fetch_user=SEC_FETCH_HEADERS_DOCUMENT["Sec-Fetch-User"],
            sec_fetch_dest=SEC_FETCH_HEADERS_DOCUMENT["Sec-Fetch-Dest"],
            **hints,
        )


def _builtin_user_agents() -> list[UserAgentRecord]:
    """Hard-coded templates covering the dominant desktop and mobile browsers."""

    return [
        UserAgentRecord(
            id="desktop_chrome_windows",
            family="Chrome",
            version="130.0.0.0",
            device=DeviceClass.DESKTOP,
            os="Windows 10",
            platform="Windows",
            original=(
                "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) "
                "Chrome/130.0.0.0 Safari/537.36"
            ),
            weight=0.40,
            accept_header=DESKTOP_ACCEPT_HEADER,
            sec_ch_ua=SEC_CH_UA_BRANDS["chrome_130"],
        ),
        UserAgentRecord(
            id="desktop_chrome_macos",
            family="Chrome",
            version="129.0.0.0",
            device=DeviceClass.DESKTOP,
            os="macOS 14",
            platform="macOS",
            original=(
                "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
                "(KHTML, like Gecko) Chrome/129.0.0.0 Safari/537.36"
            ),
            weight=0.18,
            accept_header=DESKTOP_ACCEPT_HEADER,
            sec_ch_ua=SEC_CH_UA_BRANDS["chrome_129"],
        ),
        UserAgentRecord(
            id="desktop_edge_windows",
            family="Edge",
            version="130.0.0.0",
            device=DeviceClass.DESKTOP,
            os="Windows 10",
            platform="Windows",
            original=(
                "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) "
                "Chrome/130.0.0.0 Safari/537.36 Edg/130.0.0.0"
            ),
            weight=0.12,
            accept_header=DESKTOP_ACCEPT_HEADER,
            sec_ch_ua=SEC_CH_UA_BRANDS["edge_130"],
        ),
        UserAgentRecord(
            id="desktop_firefox_windows",
            family="Firefox",
            version="131.0",
            device=DeviceClass.DESKTOP,
            os="Windows 10",
            platform="Windows",
            original=(
                "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:131.0) Gecko/20100101 Firefox/131.0"
            ),
            weight=0.10,
            accept_header=FIREFOX_ACCEPT_HEADER,
        ),
        UserAgentRecord(
            id="desktop_safari_macos",
            family="Safari",
            version="17.6",
            device=DeviceClass.DESKTOP,
            os="macOS 14",
            platform="macOS",
            original=(
                "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 "
                "(KHTML, like Gecko) Version/17.6 Safari/605.1.15"
            ),
            weight=0.10,
            accept_header=SAFARI_ACCEPT_HEADER,
        ),
        UserAgentRecord(
            id="mobile_chrome_android",
            family="Chrome",
            version="130.0.0.0",
            device=DeviceClass.MOBILE,
            os="Android 10",
            platform="Android",
            mobile=True,
            original=(
                "Mozilla/5.0 (Linux; Android 10; K) AppleWebKit/537.36 "
                "(KHTML, like Gecko) Chrome/130.0.0.0 Mobile Safari/537.36"
            ),
            weight=0.55,
            accept_header=MOBILE_ACCEPT_HEADER,
            sec_ch_ua=SEC_CH_UA_BRANDS["chrome_130"],
        ),
        UserAgentRecord(
            id="mobile_safari_ios",
            family="Safari",
            version="17.6",
            device=DeviceClass.MOBILE,
            os="iOS 17.6",
            platform="iOS",
            mobile=True,
            original=(
                "Mozilla/5.0 (iPhone; CPU iPhone OS 17_6 like Mac OS X) AppleWebKit/605.1.15 "
                "(KHTML, like Gecko) Version/17.6 Mobile/15E148 Safari/604.1"
            ),
            weight=0.35,
            accept_header=SAFARI_ACCEPT_HEADER,
        ),
        UserAgentRecord(
            id="mobile_firefox_android",
            family="Firefox",
            version="131.0",
            device=DeviceClass.MOBILE,
            os="Android 14",
            platform="Android",
            mobile=True,
            original="Mozilla/5.0 (Android 14; Mobile; rv:131.0) Gecko/131.0 Firefox/131.0",
            weight=0.10,
            accept_header=FIREFOX_ACCEPT_HEADER,
        ),
    ]


class UserAgentProvider:
    """Weighted user-agent templates grouped by device class."""

    def __init__(self, records: Sequence[UserAgentRecord] | None = None) -> None:
        self._index: dict[str, UserAgentRecord] = {}
        self._by_device: dict[DeviceClass, list[UserAgentRecord]] = {}
        self.extend(records or _builtin_user_agents())

    def all(self) -> list[UserAgentRecord]:
        return list(self._index.values())

    def for_device(self, device: DeviceClass) -> list[UserAgentRecord]:
        return list(self._by_device.get(DeviceClass(device), []))

    def random(self, device: DeviceClass = DeviceClass.DESKTOP) -> UserAgentRecord:
        records = self._by_device.get(DeviceClass(device))
        if not records:
            raise RuntimeError(f"UserAgentProvider has no {DeviceClass(device).value} records loaded")
        weights = [record.weight for record in records]
        if sum(weights) <= 0:
            return random.choice(records)
        return random.choices(records, weights=weights, k=1)[0]

    def get(self, profile_id: str) -> UserAgentRecord:
        try:
            return self._index[profile_id]
        except KeyError as exc:
            raise KeyError(f"Unknown user agent profile id: {profile_id}") from exc

    def extend(self, records: Iterable[UserAgentRecord]) -> None:
        for record in records:
            if record.mobile != (record.device is DeviceClass.MOBILE):
                LOGGER.warning(
                    "User agent record %s skipped: mobile flag does not match device %s",
                    record.id,
                    record.device.value,
                )
                continue
            self._index[record.id] = record
        # deterministic ordering per device: heaviest templates first
        grouped: dict[DeviceClass, list[UserAgentRecord]] = {}
        for record in sorted(self._index.values(), key=lambda item: item.weight, reverse=True):
            grouped.setdefault(record.device, []).append(record)
        self._by_device = grouped

    @classmethod
    def from_json_file(cls, path: str | Path) -> "UserAgentProvider":
        with Path(path).open("r", encoding="utf-8") as handle:
            payload = json.load(handle)
        if isinstance(payload, dict) and "user_agents" in payload:
            payload = payload["user_agents"]
        records = []
        for item in payload:
            try:
                records.append(UserAgentRecord(**item))
            except ValidationError as exc:
                LOGGER.warning("Invalid user agent record skipped: %s", exc)
        return cls(records)


__all__ = ["UserAgentProvider", "UserAgentRecord"]
