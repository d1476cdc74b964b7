"""OpenTelemetry tracing and metrics middleware.

Creates HTTP server spans and metrics with semantic conventions for each
routed request.

Install with: pip install "galaxite[otel]"
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from galaxite.chain import Middleware, Proceed
    from galaxite.request import Request
    from galaxite.response import Response

try:
    from opentelemetry import metrics, trace
    from opentelemetry.propagate import extract
    from opentelemetry.trace import (
        SpanKind,
        StatusCode,
        TracerProvider,
    )
except ImportError as e:
    msg = (
        "OpenTelemetry middleware requires the 'otel' extra. "
        "Install with: pip install 'galaxite[otel]'"
    )
    raise ImportError(msg) from e


_DURATION_BUCKETS = (
    0.001,
    0.005,
    0.01,
    0.025,
    0.05,
    0.075,
    0.1,
    0.25,
    0.5,
    0.75,
    1.0,
    2.5,
    5.0,
    7.5,
    10.0,
)


def otel(
    *,
    tracer_provider: TracerProvider | None = None,
    meter_provider: metrics.MeterProvider | None = None,
) -> Middleware:
    """Create OpenTelemetry tracing and metrics middleware.

    The middleware chain only runs for requests that matched a route, so
    every span carries ``http.route``. Trace context is extracted from the
    incoming headers (e.g. ``traceparent``). Only depends on
    ``opentelemetry-api``; bring your own SDK and exporters.

    Metrics emitted:
        - ``http.server.request.duration`` (histogram, seconds)
        - ``http.server.active_requests`` (up-down counter)

    Example:
        server.use(otel())
    """
    tracer = trace.get_tracer(
        "galaxite",
        tracer_provider=tracer_provider,
    )
    meter = metrics.get_meter(
        "galaxite",
        meter_provider=meter_provider,
    )
    duration_histogram = meter.create_histogram(
        "http.server.request.duration",
        unit="s",
        description="Duration of HTTP server requests.",
        explicit_bucket_boundaries_advisory=_DURATION_BUCKETS,
    )
    active_requests_counter = meter.create_up_down_counter(
        "http.server.active_requests",
        unit="{request}",
        description="Number of active HTTP server requests.",
    )

    async def middleware(
        request: Request, response: Response, proceed: Proceed
    ) -> None:
        ctx = extract(request.headers)
        route = request.route.pattern
        method = request.method
        span_name = f"{method} {route}" if route else method

        attributes: dict[str, str | int] = {
            "http.request.method": method,
            "url.path": request.route.path,
            "url.scheme": request.scheme,
            "client.address": request.client,
        }
        if request.scope is not None:
            attributes["network.protocol.version"] = request.scope.http_version
            attributes["server.address"] = request.scope.server
        if route:
            attributes["http.route"] = route
        _, _, query_string = request.raw_path.partition("?")
        if query_string:
            attributes["url.query"] = query_string
        user_agent = request.headers.get("user-agent")
        if user_agent is not None:
            attributes["user_agent.original"] = user_agent
        # not a semantic convention, but path params are useful when debugging
        for key, value in request.route.params.items():
            if value is not None:
                attributes[f"http.route.param.{key}"] = value

        active_attrs: dict[str, str | int] = {
            "http.request.method": method,
            "url.scheme": request.scheme,
        }
        if route:
            active_attrs["http.route"] = route

        active_requests_counter.add(1, active_attrs)
        start = time.perf_counter()

        with tracer.start_as_current_span(
            span_name,
            context=ctx,
            kind=SpanKind.SERVER,
            attributes=attributes,
            record_exception=True,
            set_status_on_exception=True,
        ) as span:
            try:
                await proceed()
            finally:
                duration = time.perf_counter() - start
                active_requests_counter.add(-1, active_attrs)
                duration_attrs = dict(active_attrs)
                if response.sent:
                    status = response.status_code
                    span.set_attribute("http.response.status_code", status)
                    duration_attrs["http.response.status_code"] = status
                    if status >= 500:
                        span.set_status(StatusCode.ERROR)
                duration_histogram.record(duration, duration_attrs)

    return middleware
