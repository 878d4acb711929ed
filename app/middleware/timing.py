"""
Request timing middleware.

Every response gets X-Request-ID (echoed from the caller when supplied) and
X-Request-Duration-Ms. One log line per request: DEBUG normally, WARNING
when slower than SLOW_THRESHOLD_MS, ERROR for 5xx. request_id and
project_id are attached by the logging filter, not here.
"""

import logging
import time
import uuid

from flask import Flask, g, request

logger = logging.getLogger(__name__)

# Probes hit these constantly; headers are still set, the log line is skipped
_QUIET_PATHS = frozenset({"/api/v1/health/ready", "/api/v1/health/live"})

SLOW_THRESHOLD_MS = 1000


def init_request_timing(app: Flask):
    """Register before/after hooks for request timing."""

    @app.before_request
    def _start_timer():
        g.request_start = time.perf_counter()
        g.request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:12]

    @app.after_request
    def _log_request(response):
        start = getattr(g, "request_start", None)
        if start is None:
            return response

        duration_ms = (time.perf_counter() - start) * 1000
        response.headers["X-Request-ID"] = g.request_id
        response.headers["X-Request-Duration-Ms"] = f"{duration_ms:.1f}"

        if request.path in _QUIET_PATHS:
            return response

        extra = {
            "method": request.method,
            "path": request.path,
            "status": response.status_code,
            "duration_ms": duration_ms,
            "remote_addr": request.remote_addr,
        }
        args = (request.method, request.path, response.status_code)
        if response.status_code >= 500:
            logger.error("%s %s -> %d", *args, extra=extra)
        elif duration_ms > SLOW_THRESHOLD_MS:
            logger.warning("Slow request: %s %s -> %d", *args, extra=extra)
        else:
            logger.debug("%s %s -> %d", *args, extra=extra)

        return response
