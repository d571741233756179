# src/gifportal/api/app.py
from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from gifportal.api.errors import ApiError, api_error_handler
from gifportal.api.request_logging import RequestLogMiddleware
from gifportal.api.routes import router
from gifportal.api.security import RequestSizeLimitMiddleware
from gifportal.client.list_sync import ListSyncController
from gifportal.client.portal import build_controller as _build_controller
from gifportal.config import load_portal_config


def build_controller() -> ListSyncController:
    """Build the portal controller from operator config.

    This wrapper exists so tests can monkeypatch `gifportal.api.app.build_controller`.
    """
    # Explicit connects over HTTP are the user's approval.
    return _build_controller(load_portal_config(), approve=lambda _pk: True)


def create_app(*, portal: Optional[ListSyncController] = None, boot_runtime: bool = True) -> FastAPI:
    """Create the FastAPI application.

    portal:
      - given: used as-is (tests, embedding)
      - None and boot_runtime=True: built from config via build_controller()
      - None and boot_runtime=False: no controller; portal routes answer 500 not_ready

    Startup runs the silent trusted reconnect, like a page load.
    """

    @asynccontextmanager
    async def _lifespan(app: FastAPI):
        ctl = getattr(app.state, "portal", None)
        if ctl is not None:
            async with app.state.portal_lock:
                await ctl.start()
        yield

    app = FastAPI(title="GIF Portal API", lifespan=_lifespan)

    if portal is None and boot_runtime:
        portal = build_controller()
    app.state.portal = portal
    app.state.portal_lock = asyncio.Lock()

    app.add_exception_handler(ApiError, api_error_handler)

    app.add_middleware(RequestSizeLimitMiddleware)
    app.add_middleware(RequestLogMiddleware)

    app.include_router(router, prefix="/v1")
    return app
