"""Public package interface for browser_request."""

from .builder import HeaderBuilder, merge_headers
from .client import BrowserClient, request_as_browser
from .config import BrowserRequestConfig, TelemetryConfig
from .errors import (
    DecodeError,
    ErrorKind,
    NetworkError,
    ParseError,
    RedirectLoopError,
    RequestError,
    RequestTimeoutError,
)
from .executor import RequestExecutor
from .middleware import Middleware, MiddlewareManager
from .profile_loader import load_profiles
from .providers import LocaleProvider, UserAgentProvider, UserAgentRecord
from .response import Response
from .telemetry import InMemoryTelemetrySink, LoggingTelemetrySink, TelemetryPublisher
from .transport import select_transport
from .types import (
    DeviceClass,
    EffectiveRequest,
    HeaderProfile,
    RequestOptions,
)

__all__ = [
    "BrowserClient",
    "BrowserRequestConfig",
    "DecodeError",
    "DeviceClass",
    "EffectiveRequest",
    "ErrorKind",
    "HeaderBuilder",
    "HeaderProfile",
    "InMemoryTelemetrySink",
    "LocaleProvider",
    "LoggingTelemetrySink",
    "Middleware",
    "MiddlewareManager",
    "NetworkError",
    "ParseError",
    "RedirectLoopError",
    "RequestError",
    "RequestExecutor",
    "RequestOptions",
    "RequestTimeoutError",
    "Response",
    "TelemetryConfig",
    "TelemetryPublisher",
    "UserAgentProvider",
    "UserAgentRecord",
    "load_profiles",
    "merge_headers",
    "request_as_browser",
    "select_transport",
]
