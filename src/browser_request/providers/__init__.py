"""Provider utilities for user agents, locales, and proxies."""

from .locales import LocaleProvider
from .proxies import parse_proxy_url
from .user_agents import UserAgentProvider, UserAgentRecord

__all__ = [
    "LocaleProvider",
    "UserAgentProvider",
    "UserAgentRecord",
    "parse_proxy_url",
]
