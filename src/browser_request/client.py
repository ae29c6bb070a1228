"""High level facade for issuing browser-like requests."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Iterable, Mapping, Optional, Union

from .builder import HeaderBuilder
from .config import BrowserRequestConfig
from .executor import RequestExecutor
from .middleware import Middleware
from .profile_loader import load_profiles
from .providers import LocaleProvider, UserAgentProvider
from .response import Response
from .telemetry import TelemetryPublisher, TelemetrySink
from .types import HeaderProfile, RequestOptions

OptionsLike = Union[RequestOptions, Mapping[str, Any]]


def coerce_options(options: Optional[OptionsLike] = None, **overrides: Any) -> RequestOptions:
    """Build :class:`RequestOptions` from a model, a mapping and/or keyword arguments.

    Keys may use either snake_case or the camelCase aliases.
    """

    if options is None:
        return RequestOptions.model_validate(overrides)
    if isinstance(options, RequestOptions):
        if not overrides:
            return options
        return RequestOptions.model_validate({**options.model_dump(), **overrides})
    return RequestOptions.model_validate({**options, **overrides})


class BrowserClient:
    """Bundle the header builder and request executor behind a simple facade.

    A client only holds read-only tables and configuration; it is safe to
    share between concurrent tasks.
    """

    def __init__(
        self,
        *,
        config: Optional[BrowserRequestConfig] = None,
        user_agents: Optional[UserAgentProvider] = None,
        locales: Optional[LocaleProvider] = None,
        middlewares: Optional[Iterable[Middleware]] = None,
        telemetry_sinks: Optional[Iterable[TelemetrySink]] = None,
        client_options: Optional[dict[str, Any]] = None,
    ) -> None:
        self.config = config or BrowserRequestConfig()
        self.builder = HeaderBuilder(
            user_agents=user_agents,
            locales=locales or LocaleProvider(default=self.config.default_locale),
        )
        self.executor = RequestExecutor(
            config=self.config,
            client_options=client_options,
            middlewares=middlewares,
            telemetry_sinks=telemetry_sinks,
        )

    @classmethod
    def from_profile_file(
        cls,
        path: str | Path,
        *,
        config: Optional[BrowserRequestConfig] = None,
        **kwargs: Any,
    ) -> "BrowserClient":
        config = config or BrowserRequestConfig()
        ua_provider, locale_provider = load_profiles(path, default_locale=config.default_locale)
        return cls(config=config, user_agents=ua_provider, locales=locale_provider, **kwargs)

    @property
    def telemetry(self) -> TelemetryPublisher:
        return self.executor.telemetry

    def generate_profile(self, options: OptionsLike) -> HeaderProfile:
        """Return the header profile a request with ``options`` would be sent with."""

        options = coerce_options(options)
        return self.builder.generate_profile(options.device_class, options.locale)

    async def request(self, options: Optional[OptionsLike] = None, **kwargs: Any) -> Response:
        """Perform one browser-like request.

        Streaming responses must be consumed or closed by the caller.
        """

        options = coerce_options(options, **kwargs)
        profile = self.builder.generate_profile(options.device_class, options.locale)
        return await self.executor.execute(options, profile)


async def request_as_browser(options: Optional[OptionsLike] = None, /, **kwargs: Any) -> Response:
    """Send a single request with a default :class:`BrowserClient`."""

    return await BrowserClient().request(options, **kwargs)


__all__ = ["BrowserClient", "coerce_options", "request_as_browser"]
