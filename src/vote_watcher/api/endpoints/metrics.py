"""Metrics endpoint handler."""

from aiohttp import web

from vote_watcher.metrics import WatcherMetrics

CONTENT_TYPE = "text/plain; version=0.0.4"
"""Prometheus text exposition format."""

CHARSET = "utf-8"
"""Character encoding for Prometheus metrics."""


def render(metrics: WatcherMetrics) -> web.Response:
    """
    Build the metrics response.

    The latest vote gauge is evaluated at this point, so every scrape sees the
    height recorded most recently.

    Response: Prometheus text format (text/plain; version=0.0.4)

    Status Codes:
        200 OK: Metrics returned.
    """
    return web.Response(
        body=metrics.generate(),
        content_type=CONTENT_TYPE,
        charset=CHARSET,
    )
