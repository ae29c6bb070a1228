"""Request execution: header merge, transport, redirects, buffering or streaming."""

from __future__ import annotations

import logging
import random
import time
from typing import Any, AsyncIterator, Callable, Iterable, Optional

import anyio
import httpx

from .builder import merge_headers
from .config import BrowserRequestConfig
from .decoders import get_decoder
from .errors import (
    CLASSIFIABLE_ERRORS,
    RedirectLoopError,
    RequestError,
    RequestTimeoutError,
    classify,
)
from .middleware import Middleware, MiddlewareManager
from .providers import parse_proxy_url
from .response import RawResponse, Response, decode_response, resolve_charset
from .telemetry import TelemetryPublisher, TelemetrySink
from .transport import TransportSelection, select_transport
from .types import EffectiveRequest, HeaderProfile, RequestOptions, TelemetryEvent

LOGGER = logging.getLogger(__name__)

VisitKey = tuple[str, str, str]


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000.0


def _raw_headers(response: httpx.Response) -> list[tuple[str, str]]:
    return [(name.decode("latin-1"), value.decode("latin-1")) for name, value in response.headers.raw]


async def _iter_raw(response: httpx.Response) -> AsyncIterator[bytes]:
    """Yield the undecoded body, also for responses a transport built from preloaded content."""

    if response.is_stream_consumed:
        # the raw bytes are still held by the underlying byte stream
        async for chunk in response.stream:  # type: ignore[union-attr]
            yield chunk
        return
    async for chunk in response.aiter_raw():
        yield chunk


def _visit_key(request: httpx.Request) -> VisitKey:
    # a redirect back to the same URL with new cookies is progress, not a loop
    return request.method, str(request.url), request.headers.get("cookie", "")


class RequestExecutor:
    """Executes :class:`RequestOptions` with an already generated :class:`HeaderProfile`.

    Every request gets its own ``httpx.AsyncClient`` (cookie jar and
    connection), so concurrent requests share nothing but read-only
    configuration.
    """

    def __init__(
        self,
        *,
        config: Optional[BrowserRequestConfig] = None,
        client_options: Optional[dict[str, Any]] = None,
        middlewares: Optional[Iterable[Middleware]] = None,
        telemetry_sinks: Optional[Iterable[TelemetrySink]] = None,
        telemetry_random: Optional[Callable[[], float]] = None,
    ) -> None:
        self.config = config or BrowserRequestConfig()
        self._client_options = dict(client_options or {})
        self._middleware = MiddlewareManager(list(middlewares or []))
        self._telemetry = TelemetryPublisher(
            self.config.telemetry,
            random_fn=telemetry_random or random.random,
        )
        for sink in telemetry_sinks or []:
            self._telemetry.subscribe(sink)

    @property
    def telemetry(self) -> TelemetryPublisher:
        return self._telemetry

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    async def execute(self, options: RequestOptions, profile: HeaderProfile) -> Response:
        """Send the request and return a buffered or streaming :class:`Response`.

        Raises a :class:`RequestError` subclass on failure.
        """

        timeout_ms = options.timeout_ms or self.config.timeout_ms
        max_redirects = (
            options.max_redirects if options.max_redirects is not None else self.config.max_redirects
        )
        selection = self._select_transport(options)
        effective = EffectiveRequest(
            url=options.url,
            method=options.method,
            headers=merge_headers(profile.headers(), options.headers),
            profile=profile,
            insecure_http_parser=self._records_insecure_parser(options, selection),
            stream=options.stream,
            proxy_url=options.proxy_url,
            timeout_ms=timeout_ms,
            follow_redirect=options.follow_redirect,
            max_redirects=max_redirects,
        )
        self._middleware.before_send(effective, profile)

        client_kwargs: dict[str, Any] = {
            "transport": selection.transport,
            "timeout": timeout_ms / 1000.0,
            **self._client_options,
        }
        client_kwargs.update(cookies=options.cookies, follow_redirects=False)
        client = httpx.AsyncClient(**client_kwargs)

        start = time.perf_counter()
        try:
            with anyio.fail_after(timeout_ms / 1000.0):
                response = await self._send(client, effective, options)
                effective.url = str(response.url)
                effective.http_version = response.http_version
                effective.http2 = response.http_version == "HTTP/2"
                if options.stream:
                    result = self._stream_response(client, response, effective)
                else:
                    result = decode_response(await self._drain(response), effective)
        except CLASSIFIABLE_ERRORS as exc:
            await self._close_client(client)
            error = self._classify(exc, effective)
            self._emit("request.error", effective, start, error=error)
            raise error from exc
        except BaseException:
            await self._close_client(client)
            raise

        if not options.stream:
            await self._close_client(client)
        self._emit("request.success", effective, start, response=result)
        self._middleware.after_response(effective, result)
        return result

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _select_transport(self, options: RequestOptions) -> TransportSelection:
        proxy = parse_proxy_url(options.proxy_url) if options.proxy_url else None
        return select_transport(
            options.use_http2,
            options.url,
            insecure_http_parser=options.use_insecure_http_parser,
            proxy=proxy,
            verify=not options.ignore_ssl_errors,
            config=self.config,
        )

    def _records_insecure_parser(self, options: RequestOptions, selection: TransportSelection) -> bool:
        # a caller supplied transport parses however it parses; keep what was asked for
        if "transport" in self._client_options:
            return options.use_insecure_http_parser
        return not selection.strict_parser

    async def _send(
        self,
        client: httpx.AsyncClient,
        effective: EffectiveRequest,
        options: RequestOptions,
    ) -> httpx.Response:
        request = httpx.Request(
            effective.method,
            effective.url,
            headers=effective.headers,
            content=options.payload,
            json=options.json_body,
            cookies=client.cookies,
            extensions={"timeout": client.timeout.as_dict()},
        )
        visited = [_visit_key(request)]
        effective.redirect_urls = [str(request.url)]
        while True:
            response = await client.send(request, stream=True)
            next_request = response.next_request
            if next_request is None or not effective.follow_redirect:
                return response
            await response.aclose()
            target = str(next_request.url)
            if len(effective.redirect_urls) > effective.max_redirects:
                raise RedirectLoopError(
                    f"Maximum redirects ({effective.max_redirects}) exceeded when redirected to {target}",
                    url=target,
                )
            key = _visit_key(next_request)
            if key in visited:
                raise RedirectLoopError(f"Redirect cycle detected: {target} was already visited", url=target)
            visited.append(key)
            effective.redirect_urls.append(target)
            LOGGER.debug("Following %s redirect to %s", response.status_code, target)
            self._emit_redirect(effective, response.status_code, target)
            request = next_request

    async def _drain(self, response: httpx.Response) -> RawResponse:
        try:
            body = b"".join([chunk async for chunk in _iter_raw(response)])
        finally:
            await response.aclose()
        return RawResponse(
            status_code=response.status_code,
            url=str(response.url),
            http_version=response.http_version,
            reason_phrase=response.reason_phrase,
            raw_headers=_raw_headers(response),
            body=body,
        )

    def _stream_response(
        self,
        client: httpx.AsyncClient,
        response: httpx.Response,
        effective: EffectiveRequest,
    ) -> Response:
        decoder = get_decoder(response.headers.get("content-encoding"))
        url = effective.url

        async def chunks() -> AsyncIterator[bytes]:
            try:
                async for chunk in _iter_raw(response):
                    decoded = decoder.decode(chunk)
                    if decoded:
                        yield decoded
                tail = decoder.flush()
                if tail:
                    yield tail
            except CLASSIFIABLE_ERRORS as exc:
                raise classify(exc, url=url) from exc

        async def close() -> None:
            try:
                await response.aclose()
            finally:
                await self._close_client(client)

        return Response(
            status_code=response.status_code,
            reason_phrase=response.reason_phrase,
            http_version=response.http_version,
            raw_headers=_raw_headers(response),
            request=effective,
            charset=resolve_charset(response.headers.get("content-type")),
            stream=chunks(),
            on_close=close,
        )

    @staticmethod
    async def _close_client(client: httpx.AsyncClient) -> None:
        with anyio.CancelScope(shield=True):
            await client.aclose()

    @staticmethod
    def _classify(exc: BaseException, effective: EffectiveRequest) -> RequestError:
        if isinstance(exc, TimeoutError) and not str(exc):
            return RequestTimeoutError(
                f"Request to {effective.url} exceeded the {effective.timeout_ms:g} ms deadline",
                url=effective.url,
            )
        return classify(exc, url=effective.url)

    def _emit(
        self,
        event_name: str,
        effective: EffectiveRequest,
        start: float,
        *,
        response: Optional[Response] = None,
        error: Optional[RequestError] = None,
    ) -> None:
        payload: dict[str, object] = {
            "redirects": max(len(effective.redirect_urls) - 1, 0),
            "stream": effective.stream,
        }
        if error is not None:
            payload["error"] = error.message
        if self.config.telemetry.include_headers:
            payload["headers"] = dict(effective.headers)
        elapsed = _elapsed_ms(start)
        self._telemetry.emit(
            TelemetryEvent(
                event=event_name,
                request_url=effective.url,
                method=effective.method,
                profile_id=effective.profile.id,
                device_class=effective.profile.device_class,
                status_code=response.status_code if response is not None else None,
                http_version=effective.http_version,
                elapsed_ms=int(elapsed),
                error_kind=error.kind.value if error is not None else None,
                payload=payload,
            )
        )
        if error is not None:
            LOGGER.debug("%s %s failed after %.1f ms: %s", effective.method, effective.url, elapsed, error)

    def _emit_redirect(self, effective: EffectiveRequest, status_code: int, target: str) -> None:
        self._telemetry.emit(
            TelemetryEvent(
                event="request.redirect",
                request_url=effective.redirect_urls[-2],
                method=effective.method,
                profile_id=effective.profile.id,
                device_class=effective.profile.device_class,
                status_code=status_code,
                payload={"location": target},
            )
        )


__all__ = ["RequestExecutor"]
