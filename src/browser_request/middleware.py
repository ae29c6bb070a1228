"""Middleware interface for request mutation."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from .types import EffectiveRequest, HeaderProfile

if TYPE_CHECKING:
    from .response import Response


class Middleware(Protocol):
    """Mutate the effective request before sending and inspect responses."""

    def before_send(self, request: EffectiveRequest, profile: HeaderProfile) -> None:
        ...

    def after_response(self, request: EffectiveRequest, response: "Response") -> None:
        ...


class MiddlewareManager:
    """Runs middleware in order for the request/response lifecycle."""

    def __init__(self, middlewares: list[Middleware] | None = None) -> None:
        self._middlewares = list(middlewares or [])

    def add(self, middleware: Middleware) -> None:
        self._middlewares.append(middleware)

    def before_send(self, request: EffectiveRequest, profile: HeaderProfile) -> None:
        for middleware in self._middlewares:
            middleware.before_send(request, profile)

    def after_response(self, request: EffectiveRequest, response: "Response") -> None:
        for middleware in reversed(self._middlewares):
            middleware.after_response(request, response)


__all__ = ["Middleware", "MiddlewareManager"]
