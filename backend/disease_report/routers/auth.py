from typing import Optional

from fastapi import APIRouter, Body, Depends, Request, Response

from disease_report.auth.dependencies import get_session_manager
from disease_report.auth.gate import (
    ACCESS_COOKIE,
    REFRESH_COOKIE,
    extract_access_token,
    get_current_principal,
    get_optional_principal,
)
from disease_report.auth.principal import Principal
from disease_report.auth.sessions import SessionManager, TokenPair
from disease_report.auth.tokens import TokenCodec
from disease_report.config import Settings, get_settings
from disease_report.exceptions import authentication_required
from disease_report.schemas.auth import (
    ChangePasswordRequest,
    LoginRequest,
    RefreshRequest,
    SessionData,
    UserInfo,
)
from disease_report.schemas.common import envelope

router = APIRouter()


def _set_session_cookies(response: Response, tokens: TokenPair, codec: TokenCodec, settings: Settings) -> None:
    for name, value, max_age in (
        (ACCESS_COOKIE, tokens.access_token, codec.access_ttl_seconds),
        (REFRESH_COOKIE, tokens.refresh_token, codec.refresh_ttl_seconds),
    ):
        response.set_cookie(
            name,
            value,
            max_age=max_age,
            httponly=True,
            secure=settings.is_production,
            samesite="strict",
            path="/",
        )


def _clear_session_cookies(response: Response, settings: Settings) -> None:
    for name in (ACCESS_COOKIE, REFRESH_COOKIE):
        response.delete_cookie(
            name, path="/", httponly=True, secure=settings.is_production, samesite="strict"
        )


def _session_data(tokens: TokenPair, settings: Settings, user_info: Optional[UserInfo] = None) -> SessionData:
    data = SessionData(user=user_info, expires_in=tokens.expires_in)
    if settings.expose_tokens_in_body:
        data.access_token = tokens.access_token
        data.refresh_token = tokens.refresh_token
    return data


async def _current_user_info(manager: SessionManager, principal: Principal) -> UserInfo:
    user = await manager.directory.get_active_by_id(principal.user_id)
    if user is None:
        raise authentication_required("User not found or account deactivated")
    hospital = await manager.directory.get_hospital(user.hospital_code) if user.hospital_code else None
    return UserInfo.build(user, hospital)


@router.post("/login")
async def login(
    body: LoginRequest,
    response: Response,
    manager: SessionManager = Depends(get_session_manager),
    settings: Settings = Depends(get_settings),
):
    """Check username and password, then start a session in cookies."""
    result = await manager.login(body.username, body.password)
    user = result.user
    hospital = await manager.directory.get_hospital(user.hospital_code) if user.hospital_code else None

    _set_session_cookies(response, result.tokens, manager.codec, settings)
    return envelope(
        "Login successful",
        _session_data(result.tokens, settings, UserInfo.build(user, hospital)),
    )


@router.post("/refresh")
async def refresh(
    request: Request,
    response: Response,
    body: Optional[RefreshRequest] = Body(default=None),
    manager: SessionManager = Depends(get_session_manager),
    settings: Settings = Depends(get_settings),
):
    """Exchange a refresh token (cookie first, then body) for a new token pair."""
    token = request.cookies.get(REFRESH_COOKIE) or (body.refresh_token if body else None)
    if not token:
        raise authentication_required("Refresh token not found, please log in")

    tokens = await manager.refresh(token)
    _set_session_cookies(response, tokens, manager.codec, settings)
    return envelope("Token refreshed", _session_data(tokens, settings))


@router.post("/logout")
async def logout(
    response: Response,
    principal: Optional[Principal] = Depends(get_optional_principal),
    manager: SessionManager = Depends(get_session_manager),
    settings: Settings = Depends(get_settings),
):
    manager.logout(principal)
    _clear_session_cookies(response, settings)
    return envelope("Logout successful", {"loggedOut": True})


@router.post("/change-password")
async def change_password(
    body: ChangePasswordRequest,
    principal: Principal = Depends(get_current_principal),
    manager: SessionManager = Depends(get_session_manager),
):
    changed_at = await manager.change_password(
        principal.user_id, body.current_password, body.new_password
    )
    return envelope("Password changed", {"passwordChangedAt": changed_at.isoformat()})


@router.get("/profile")
async def profile(
    principal: Principal = Depends(get_current_principal),
    manager: SessionManager = Depends(get_session_manager),
):
    return envelope("Profile loaded", await _current_user_info(manager, principal))


@router.get("/verify")
async def verify(
    principal: Principal = Depends(get_current_principal),
    manager: SessionManager = Depends(get_session_manager),
):
    user_info = await _current_user_info(manager, principal)
    return envelope(
        "Token is valid",
        {"user": user_info.model_dump(mode="json", by_alias=True), "authenticated": True},
    )


@router.get("/session")
async def session_state(
    request: Request,
    manager: SessionManager = Depends(get_session_manager),
):
    """Report where the caller's cookies/header sit in the session lifecycle."""
    state = manager.describe(extract_access_token(request), request.cookies.get(REFRESH_COOKIE))
    return envelope("Session state", {"state": state.value})


@router.get("/health")
async def auth_health():
    return {"status": "healthy", "service": "auth"}
