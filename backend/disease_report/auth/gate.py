"""
Authentication gate: the FastAPI dependency every protected route starts with.

Token is read from ``Authorization: Bearer ...`` first and the ``accessToken``
cookie second. The token's claims only locate the user; role and hospital come
from the current user row, and an inactive or deleted user is rejected even
while the token itself is still valid.
"""

import asyncio
import logging
from typing import Optional

from fastapi import Depends, Request

from disease_report.auth.dependencies import get_token_codec, get_user_directory
from disease_report.auth.directory import UserDirectory
from disease_report.auth.principal import Principal
from disease_report.auth.tokens import TokenCodec
from disease_report.config import Settings, get_settings
from disease_report.exceptions import AppError, ErrorKind, authentication_required

logger = logging.getLogger(__name__)

ACCESS_COOKIE = "accessToken"
REFRESH_COOKIE = "refreshToken"


def extract_access_token(request: Request) -> Optional[str]:
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        token = auth_header[7:].strip()
        if token:
            return token
    return request.cookies.get(ACCESS_COOKIE) or None


async def authenticate(
    token: Optional[str],
    codec: TokenCodec,
    directory: UserDirectory,
    timeout_seconds: float,
) -> Principal:
    if not token:
        raise authentication_required()

    claims = codec.verify_access(token)

    try:
        user = await asyncio.wait_for(directory.get_active_by_id(claims.user_id), timeout=timeout_seconds)
    except asyncio.TimeoutError as e:
        logger.error("User directory lookup timed out after %.1fs", timeout_seconds)
        raise AppError(ErrorKind.SERVICE_UNAVAILABLE, "Authentication service is temporarily unavailable") from e

    if user is None:
        logger.warning("Valid token for missing or inactive user %s", claims.user_id)
        raise authentication_required("User not found or account deactivated")

    return Principal.from_user(user)


async def get_current_principal(
    request: Request,
    codec: TokenCodec = Depends(get_token_codec),
    directory: UserDirectory = Depends(get_user_directory),
    settings: Settings = Depends(get_settings),
) -> Principal:
    principal = await authenticate(
        extract_access_token(request), codec, directory, settings.directory_timeout_seconds
    )
    request.state.principal = principal
    return principal


async def get_optional_principal(
    request: Request,
    codec: TokenCodec = Depends(get_token_codec),
    directory: UserDirectory = Depends(get_user_directory),
    settings: Settings = Depends(get_settings),
) -> Optional[Principal]:
    """Like get_current_principal, but an unusable token yields None instead of 401."""
    token = extract_access_token(request)
    if not token:
        return None
    try:
        principal = await authenticate(token, codec, directory, settings.directory_timeout_seconds)
    except AppError as e:
        if e.kind == ErrorKind.SERVICE_UNAVAILABLE:
            raise
        return None
    request.state.principal = principal
    return principal
