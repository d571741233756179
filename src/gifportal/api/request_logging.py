# src/gifportal/api/request_logging.py
from __future__ import annotations

import logging
import os
import time
import uuid
from typing import Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from gifportal.structured_logging import log_event


class RequestLogMiddleware(BaseHTTPMiddleware):
    """Structured request logging middleware.

    GIFPORTAL_LOG_REQUESTS=0 disables it (default on).
    """

    def __init__(self, app) -> None:
        super().__init__(app)
        raw = (os.environ.get("GIFPORTAL_LOG_REQUESTS") or "1").strip().lower()
        self._enabled = raw not in {"0", "false", "no", "n", "off"}
        self._logger = logging.getLogger("gifportal.http")

    async def dispatch(self, request: Request, call_next):
        if not self._enabled:
            return await call_next(request)

        started = time.monotonic()
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
        request.state.request_id = request_id

        status = 500
        err: Optional[str] = None
        response: Optional[Response] = None

        try:
            response = await call_next(request)
            status = int(response.status_code)
            return response
        except Exception as e:
            err = str(e)
            raise
        finally:
            log_event(
                self._logger,
                "http_request",
                request_id=request_id,
                method=request.method,
                path=str(request.url.path or ""),
                status=status,
                duration_ms=int((time.monotonic() - started) * 1000),
                error=err,
            )
            if response is not None:
                response.headers.setdefault("x-request-id", request_id)
