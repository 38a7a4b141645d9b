from __future__ import annotations

import uuid
from time import perf_counter
from typing import Any, Callable

import structlog
from starlette.datastructures import MutableHeaders

from guestbook.observability.metrics import HttpMetrics


UNMATCHED_ROUTE = "<unmatched>"


def _route_label(scope: dict[str, Any]) -> str:
    # The router stores the matched route in the shared scope.
    route = scope.get("route")
    path = getattr(route, "path", None)
    if isinstance(path, str):
        return path
    # One shared label keeps unknown paths from growing the registry.
    return UNMATCHED_ROUTE


class RequestContextMiddleware:
    """Adds request_id context, access logs, and HTTP request metrics.

    Every HTTP response, ``/metrics`` included, is counted exactly once after
    it finishes.
    """

    def __init__(self, app: Callable[..., Any], metrics: HttpMetrics) -> None:
        self.app = app
        self.metrics = metrics

    async def __call__(self, scope: dict[str, Any], receive: Callable[..., Any], send: Callable[..., Any]) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        request_id = str(uuid.uuid4())
        method = scope.get("method", "")

        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            path=scope.get("path"),
            method=method,
        )

        start = perf_counter()
        status_code: int = 500

        async def send_wrapper(message: dict[str, Any]) -> None:
            nonlocal status_code

            if message.get("type") == "http.response.start":
                status_code = int(message.get("status", 500))
                headers = MutableHeaders(scope=message)
                headers["X-Request-ID"] = request_id

            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            elapsed = perf_counter() - start
            route = _route_label(scope)

            # Update metrics first so they update even if logging misbehaves.
            self.metrics.observe_request(method=method, route=route, status=status_code, elapsed_seconds=elapsed)

            structlog.get_logger("access").info(
                "http_request",
                route=route,
                status_code=status_code,
                elapsed_ms=round(elapsed * 1000.0, 2),
            )

            structlog.contextvars.clear_contextvars()
