from datetime import timezone
from typing import Optional
from fastapi import APIRouter, Body, Depends, Request, Response
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool
from prairiemed.core.config import AuthConfig
from prairiemed.core.database import get_db
from prairiemed.dependencies.auth import get_auth_service, get_current_identity
from prairiemed.dependencies.rate_limit import rate_limit
from prairiemed.middleware.auth import ACCESS_COOKIE
from prairiemed.schemas.auth import (
    LoginRequest, LoginResponse, MeResponse, OkResponse,
    RefreshResponse, RefreshTokenRequest, SessionRead,
)
from prairiemed.services.auth_service import AuthService, Identity, IssuedTokens
from prairiemed.utils.helpers import get_client_ip, get_user_agent

router = APIRouter(prefix="/auth", tags=["authentication"])

REFRESH_COOKIE = "refresh_token"
LOCALE_COOKIE = "pm_locale"
LOCALE_COOKIE_MAX_AGE = 60 * 60 * 24 * 365


def _set_token_cookies(response: Response, tokens: IssuedTokens, config: AuthConfig) -> None:
    response.set_cookie(
        REFRESH_COOKIE,
        tokens.refresh_token,
        expires=tokens.refresh_expires_at.replace(tzinfo=timezone.utc),
        httponly=True,
        secure=config.secure_cookies,
        samesite="lax",
        path="/",
    )
    response.set_cookie(
        ACCESS_COOKIE,
        tokens.access_token,
        max_age=config.access_ttl_seconds,
        httponly=True,
        secure=config.secure_cookies,
        samesite="lax",
        path="/",
    )


def set_locale_cookie(response: Response, locale: str, secure: bool) -> None:
    # Readable by the frontend
    response.set_cookie(
        LOCALE_COOKIE,
        locale,
        max_age=LOCALE_COOKIE_MAX_AGE,
        httponly=False,
        secure=secure,
        samesite="lax",
        path="/",
    )


def _presented_refresh_token(request: Request, payload: Optional[RefreshTokenRequest]) -> Optional[str]:
    return request.cookies.get(REFRESH_COOKIE) or (payload.refresh_token if payload else None)


@router.post("/login", response_model=LoginResponse, status_code=200)
async def login(
    payload: LoginRequest,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
    _: None = Depends(rate_limit),
):
    """
    Email/password login
    - Verify credentials
    - Set refresh/access/locale cookies and return the access token
    """
    # Argon2 is deliberately slow; keep it off the event loop
    result = await run_in_threadpool(
        auth.login,
        db,
        payload.email,
        payload.password,
        get_client_ip(request),
        get_user_agent(request),
    )
    _set_token_cookies(response, result.tokens, auth.config)
    set_locale_cookie(response, result.locale, auth.config.secure_cookies)
    return {"access_token": result.tokens.access_token, "user": result.user}


@router.post("/refresh", response_model=RefreshResponse, status_code=200)
async def refresh_tokens(
    request: Request,
    response: Response,
    payload: Optional[RefreshTokenRequest] = Body(None),
    db: Session = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
    _: None = Depends(rate_limit),
):
    """Rotate the refresh token: revoke the presented one, issue a new pair."""
    tokens = await run_in_threadpool(
        auth.refresh,
        db,
        _presented_refresh_token(request, payload),
        get_client_ip(request),
        get_user_agent(request),
    )
    _set_token_cookies(response, tokens, auth.config)
    return {"access_token": tokens.access_token}


@router.post("/logout", response_model=OkResponse, status_code=200)
async def logout(
    request: Request,
    response: Response,
    payload: Optional[RefreshTokenRequest] = Body(None),
    db: Session = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
):
    """Best-effort revoke of the refresh session; always clears cookies."""
    await run_in_threadpool(auth.logout, db, _presented_refresh_token(request, payload))
    response.delete_cookie(REFRESH_COOKIE, path="/")
    response.delete_cookie(ACCESS_COOKIE, path="/")
    return {"ok": True}


@router.get("/me", response_model=MeResponse)
async def me(
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
):
    """Current caller's public profile and roles."""
    return {"user": await run_in_threadpool(auth.me, db, identity)}


@router.get("/sessions", response_model=list[SessionRead])
async def my_sessions(
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
):
    """Active (unexpired, non-revoked) refresh sessions of the caller."""
    return await run_in_threadpool(auth.active_sessions, db, identity)
