"""Per-request access log lines for the challenge API."""

from __future__ import annotations

import json
import logging
import time
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

logger = logging.getLogger("app.middleware.structured")

REQUEST_ID_HEADER = "X-Request-ID"

# Health checks and metric scrapes would drown out participant traffic at INFO.
_QUIET_PATHS = frozenset({"/health", "/metrics"})

_STATUS_COLORS = (
    (500, "\u001b[31m"),
    (400, "\u001b[33m"),
    (200, "\u001b[32m"),
)
_COLOR_DEFAULT = "\u001b[36m"
_COLOR_RESET = "\u001b[0m"


class StructuredLoggingMiddleware(BaseHTTPMiddleware):
    """Log method, route, status and latency for each request.

    Every response carries an ``X-Request-ID`` header; an incoming value is
    reused so a client can correlate its polling calls with server logs.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        start_time = time.perf_counter()
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid4().hex
        entry: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "client_ip": request.client.host if request.client else None,
        }

        try:
            response = await call_next(request)
        except Exception as exc:
            entry.update(status_code=500, error=repr(exc))
            entry["duration_ms"] = _elapsed_ms(start_time)
            logger.exception(_console_line(entry))
            raise

        route = request.scope.get("route")
        entry["route"] = getattr(route, "path", None)
        entry["status_code"] = response.status_code
        entry["duration_ms"] = _elapsed_ms(start_time)
        response.headers[REQUEST_ID_HEADER] = request_id

        level = logging.DEBUG if entry["path"] in _QUIET_PATHS else logging.INFO
        logger.log(level, _console_line(entry))
        logger.debug(json.dumps(entry, default=str, separators=(",", ":")))
        return response


def _elapsed_ms(start_time: float) -> float:
    return round((time.perf_counter() - start_time) * 1000, 2)


def _console_line(entry: dict[str, Any]) -> str:
    status = entry.get("status_code") or 0
    color = next(
        (code for floor, code in _STATUS_COLORS if status >= floor),
        _COLOR_DEFAULT,
    )
    message = " ".join(
        f"{name}={entry.get(name) if entry.get(name) is not None else '-'}"
        for name in ("request_id", "method", "path", "status_code", "duration_ms")
    )
    return f"{color}{message}{_COLOR_RESET}"
