# src/gifportal/api/routes.py
from __future__ import annotations

import asyncio

from fastapi import APIRouter, Request

from gifportal import __version__
from gifportal.api.errors import ApiError
from gifportal.api.schemas import EntryOut, InputRequest, PortalOut, SessionOut, SubmitRequest, ViewOut
from gifportal.client.list_sync import ListSyncController, Populated

router = APIRouter()


def _portal(request: Request) -> ListSyncController:
    portal = getattr(request.app.state, "portal", None)
    if portal is None:
        raise ApiError.internal("not_ready", "portal controller not attached to app.state", {})
    return portal


def _portal_lock(request: Request) -> asyncio.Lock:
    # One portal operation at a time; submit builds on the view it started from.
    return request.app.state.portal_lock


def _view_out(portal: ListSyncController) -> ViewOut:
    view = portal.view
    if view is None:
        return ViewOut(state="not_loaded")
    if isinstance(view, Populated):
        return ViewOut(state=view.state, entries=[EntryOut(link=e.link, submitter=e.submitter) for e in view.entries])
    return ViewOut(state=view.state)


def _session_out(portal: ListSyncController) -> SessionOut:
    conn = portal.connection
    return SessionOut(
        provider_available=conn.provider_available,
        connected=conn.session.present,
        wallet_public_key=conn.session.wallet_public_key,
        notices=list(conn.notices),
    )


def _portal_out(portal: ListSyncController, ok: bool) -> PortalOut:
    return PortalOut(ok=ok, view=_view_out(portal), input=portal.input_value)


@router.get("/health")
def health() -> dict:
    return {"ok": True, "version": __version__}


@router.get("/session", response_model=SessionOut)
def session(request: Request) -> SessionOut:
    return _session_out(_portal(request))


@router.post("/session/connect", response_model=SessionOut)
async def session_connect(request: Request) -> SessionOut:
    """Explicit connect (the "Connect to Wallet" button)."""
    portal = _portal(request)
    if not portal.connection.provider_available:
        raise ApiError.conflict("provider_unavailable", "no wallet provider in this host", {})
    async with _portal_lock(request):
        pk = await portal.connect()
    if pk is None:
        raise ApiError.conflict("connection_declined", "wallet declined the connection", {})
    return _session_out(portal)


@router.get("/gifs", response_model=ViewOut)
def gifs(request: Request) -> ViewOut:
    return _view_out(_portal(request))


@router.post("/gifs/refresh", response_model=ViewOut)
async def gifs_refresh(request: Request) -> ViewOut:
    portal = _portal(request)
    async with _portal_lock(request):
        await portal.refresh()
    return _view_out(portal)


@router.post("/account/initialize", response_model=PortalOut)
async def account_initialize(request: Request) -> PortalOut:
    portal = _portal(request)
    async with _portal_lock(request):
        ok = await portal.initialize_account()
        return _portal_out(portal, ok)


@router.put("/input", response_model=PortalOut)
async def put_input(request: Request, body: InputRequest) -> PortalOut:
    portal = _portal(request)
    async with _portal_lock(request):
        portal.set_input(body.value)
        return _portal_out(portal, True)


@router.post("/gifs/submit", response_model=PortalOut)
async def gifs_submit(request: Request, body: SubmitRequest) -> PortalOut:
    portal = _portal(request)
    async with _portal_lock(request):
        if body.link is not None:
            portal.set_input(body.link)
        ok = await portal.submit()
        return _portal_out(portal, ok)
