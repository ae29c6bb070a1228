import logging

import httpx
import pytest

from browser_request.client import BrowserClient
from browser_request.config import BrowserRequestConfig, TelemetryConfig
from browser_request.errors import ErrorKind, NetworkError
from browser_request.telemetry import InMemoryTelemetrySink, LoggingTelemetrySink, TelemetryPublisher
from browser_request.types import TelemetryEvent


class Collector:
    def __init__(self) -> None:
        self.events = []

    def handle(self, event):
        self.events.append(event)


def _event(name: str = "request.success") -> TelemetryEvent:
    return TelemetryEvent(event=name, request_url="https://example.com/", method="GET")


def test_publisher_respects_sample_rate():
    collector = Collector()
    publisher = TelemetryPublisher(TelemetryConfig(sample_rate=0.5), random_fn=lambda: 0.9)
    publisher.subscribe(collector)
    publisher.emit(_event())
    assert collector.events == []


def test_publisher_disabled():
    collector = Collector()
    publisher = TelemetryPublisher(TelemetryConfig(enabled=False), random_fn=lambda: 0.0)
    publisher.subscribe(collector)
    publisher.emit(_event())
    assert collector.events == []


def test_subscribed_context_manager():
    publisher = TelemetryPublisher(TelemetryConfig(), random_fn=lambda: 0.0)
    sink = InMemoryTelemetrySink()
    with publisher.subscribed(sink):
        publisher.emit(_event("request.redirect"))
    publisher.emit(_event("request.error"))
    assert sink.names() == ["request.redirect"]


def test_logging_sink_writes_record(caplog):
    sink = LoggingTelemetrySink(level=logging.WARNING)
    with caplog.at_level(logging.WARNING, logger="browser_request.telemetry"):
        sink.handle(_event())
    assert "request.success GET https://example.com/" in caplog.text


@pytest.mark.anyio
async def test_client_emits_success_and_redirect_events():
    sink = InMemoryTelemetrySink()

    async def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/start":
            return httpx.Response(301, headers={"Location": "/final"})
        return httpx.Response(200, text="ok")

    client = BrowserClient(
        telemetry_sinks=[sink],
        client_options={"transport": httpx.MockTransport(handler)},
    )
    response = await client.request(url="https://example.com/start")

    assert response.status_code == 200
    assert sink.names() == ["request.redirect", "request.success"]
    redirect, success = sink.events
    assert redirect.request_url == "https://example.com/start"
    assert redirect.payload["location"] == "https://example.com/final"
    assert success.request_url == "https://example.com/final"
    assert success.payload["redirects"] == 1
    assert success.elapsed_ms is not None


@pytest.mark.anyio
async def test_client_emits_error_event():
    sink = InMemoryTelemetrySink()

    async def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = BrowserClient(
        config=BrowserRequestConfig(telemetry=TelemetryConfig(include_headers=True)),
        telemetry_sinks=[sink],
        client_options={"transport": httpx.MockTransport(handler)},
    )
    with pytest.raises(NetworkError):
        await client.request(url="https://example.com/")

    (event,) = sink.events
    assert event.event == "request.error"
    assert event.error_kind == ErrorKind.NETWORK.value
    assert "User-Agent" in event.payload["headers"]
