"""
Session lifecycle: login, refresh, password change and logout.

Sessions are stateless. Nothing about a session is stored server side: a
session *is* its access/refresh token pair, and logout only tells the client to
drop its cookies. ``describe`` maps a token pair onto the lifecycle states.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from starlette.concurrency import run_in_threadpool

from disease_report.auth.directory import UserDirectory
from disease_report.auth.hasher import PasswordHasher, check_password_strength
from disease_report.auth.principal import Principal
from disease_report.auth.tokens import TokenCodec
from disease_report.config import Settings
from disease_report.exceptions import AppError, ErrorKind
from disease_report.models.user import User, utcnow

logger = logging.getLogger(__name__)

# Shared by the unknown-username and wrong-password paths
LOGIN_FAILED_MESSAGE = "Invalid username or password"


class SessionState(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"
    ACCESS_EXPIRED = "access_expired"
    TERMINATED = "terminated"


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str
    expires_in: str


@dataclass(frozen=True)
class LoginResult:
    user: User
    tokens: TokenPair


class SessionManager:
    def __init__(
        self,
        directory: UserDirectory,
        hasher: PasswordHasher,
        codec: TokenCodec,
        settings: Settings,
    ):
        self.directory = directory
        self.hasher = hasher
        self.codec = codec
        self.settings = settings

    async def login(self, username: str, password: str) -> LoginResult:
        user = await self.directory.get_active_by_username(username)
        if user is None:
            await run_in_threadpool(self.hasher.dummy_verify)
            logger.warning("Login failed: unknown or inactive username %r", username)
            raise AppError(ErrorKind.INVALID_CREDENTIALS, LOGIN_FAILED_MESSAGE)

        if not await run_in_threadpool(self.hasher.verify, password, user.password_hash):
            logger.warning("Login failed: wrong password for user %s", user.id)
            raise AppError(ErrorKind.INVALID_CREDENTIALS, LOGIN_FAILED_MESSAGE)

        await self.directory.record_login(user.id, utcnow())
        logger.info("User %s logged in", user.id)
        return LoginResult(user=user, tokens=self._mint(user))

    async def refresh(self, refresh_token: str) -> TokenPair:
        claims = self.codec.verify_refresh(refresh_token)

        user = await self.directory.get_active_by_id(claims.user_id)
        if user is None:
            logger.warning("Refresh rejected: user %s missing or inactive", claims.user_id)
            raise AppError(ErrorKind.INVALID_CREDENTIALS, "User not found or account deactivated")

        # Always a fresh pair; the presented refresh token is never handed back
        return self._mint(user)

    async def change_password(self, user_id: str, current_password: str, new_password: str) -> datetime:
        user = await self.directory.get_active_by_id(user_id)
        if user is None:
            raise AppError(ErrorKind.INVALID_CREDENTIALS, "User not found")

        if not await run_in_threadpool(self.hasher.verify, current_password, user.password_hash):
            raise AppError(ErrorKind.INVALID_CREDENTIALS, "Current password is incorrect")

        if await run_in_threadpool(self.hasher.verify, new_password, user.password_hash):
            raise AppError(ErrorKind.SAME_PASSWORD, "New password must differ from the current password")

        check_password_strength(new_password)

        digest = await run_in_threadpool(self.hasher.hash, new_password)
        changed_at = utcnow()
        await self.directory.set_password_hash(user.id, digest, changed_at)
        logger.info("User %s changed password", user.id)
        return changed_at

    def logout(self, principal: Optional[Principal]) -> None:
        # No revocation list: tokens stay valid until they expire
        if principal is not None:
            logger.info("User %s logged out", principal.user_id)

    def describe(self, access_token: Optional[str], refresh_token: Optional[str]) -> SessionState:
        if not access_token and not refresh_token:
            return SessionState.UNAUTHENTICATED

        if access_token:
            try:
                self.codec.verify_access(access_token)
                return SessionState.AUTHENTICATED
            except AppError:
                pass

        if refresh_token:
            try:
                self.codec.verify_refresh(refresh_token)
                return SessionState.ACCESS_EXPIRED
            except AppError:
                pass

        return SessionState.TERMINATED

    def _mint(self, user: User) -> TokenPair:
        subject = Principal.from_user(user)
        return TokenPair(
            access_token=self.codec.sign_access(subject),
            refresh_token=self.codec.sign_refresh(subject),
            expires_in=self.settings.jwt_expires_in,
        )
