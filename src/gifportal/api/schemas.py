from __future__ import annotations

"""Pydantic request/response schemas for the portal API."""

from typing import List, Optional

from pydantic import BaseModel, Field


class InputRequest(BaseModel):
    value: str = Field(..., description="Pending GIF link as typed by the user")


class SubmitRequest(BaseModel):
    # When set, replaces the pending input before submitting.
    link: Optional[str] = Field(default=None, description="GIF link to submit")


class EntryOut(BaseModel):
    link: str
    submitter: Optional[str] = None


class ViewOut(BaseModel):
    state: str = Field(..., description="not_loaded | uninitialized | populated")
    entries: List[EntryOut] = Field(default_factory=list)


class SessionOut(BaseModel):
    provider_available: bool
    connected: bool
    wallet_public_key: Optional[str] = None
    notices: List[str] = Field(default_factory=list)


class PortalOut(BaseModel):
    ok: bool
    view: ViewOut
    input: str
