"""
Auth endpoints
==============

POST   /api/v1/auth/login   -- exchange a shared role password for a token
POST   /api/v1/auth/logout  -- revoke the current token
GET    /api/v1/auth/session -- is the bearer token still valid, and for which role
POST   /api/v1/auth/extend  -- push a coordinator session's expiry forward
"""

from __future__ import annotations

import hmac
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request

from src.api.dependencies import bearer_token, get_session_store
from src.api.middleware import limiter
from src.api.schemas import (
    ExtendResponse,
    LoginRequest,
    LoginResponse,
    SessionResponse,
)
from src.config import settings
from src.domain.enums import UserRole
from src.infrastructure.sessions import SessionStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def _password_for(role: UserRole) -> str:
    if role == UserRole.ADMIN:
        return settings.admin_password
    return settings.coordinator_password


@router.post("/login", response_model=LoginResponse, summary="Log in with a role password")
@limiter.limit("10/minute")
async def login(
    request: Request,
    body: LoginRequest,
    store: SessionStore = Depends(get_session_store),
):
    expected = _password_for(body.role)
    if not hmac.compare_digest(body.password.encode(), expected.encode()):
        logger.warning("Failed %s login from %s", body.role.value, request.client)
        raise HTTPException(status_code=401, detail="Incorrect password")

    session = await store.create(body.role)
    return LoginResponse(token=session.token, role=session.role, expires_in=store.ttl)


@router.post("/logout", status_code=204, summary="Revoke the current session")
async def logout(
    token: Optional[str] = Depends(bearer_token),
    store: SessionStore = Depends(get_session_store),
):
    if token:
        await store.revoke(token)


@router.get("/session", response_model=SessionResponse, summary="Session status")
async def session_status(
    token: Optional[str] = Depends(bearer_token),
    store: SessionStore = Depends(get_session_store),
):
    session = await store.get(token) if token else None
    if session is None:
        return SessionResponse(authenticated=False)
    return SessionResponse(authenticated=True, role=session.role)


@router.post(
    "/extend",
    response_model=ExtendResponse,
    summary="Extend a coordinator session",
    description="Resets the expiry of coordinator sessions; admin sessions only expire.",
)
async def extend_session(
    token: Optional[str] = Depends(bearer_token),
    store: SessionStore = Depends(get_session_store),
):
    if token is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return ExtendResponse(extended=await store.extend(token))
