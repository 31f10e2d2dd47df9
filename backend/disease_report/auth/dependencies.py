from functools import lru_cache

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from disease_report.auth.directory import SqlUserDirectory
from disease_report.auth.hasher import PasswordHasher
from disease_report.auth.sessions import SessionManager
from disease_report.auth.tokens import TokenCodec
from disease_report.config import Settings, get_settings
from disease_report.database import get_db


@lru_cache()
def _hasher_for(rounds: int) -> PasswordHasher:
    return PasswordHasher(rounds=rounds)


def get_password_hasher(settings: Settings = Depends(get_settings)) -> PasswordHasher:
    return _hasher_for(settings.bcrypt_rounds)


def get_token_codec(settings: Settings = Depends(get_settings)) -> TokenCodec:
    return TokenCodec(settings)


def get_user_directory(db: AsyncSession = Depends(get_db)) -> SqlUserDirectory:
    return SqlUserDirectory(db)


def get_session_manager(
    directory: SqlUserDirectory = Depends(get_user_directory),
    hasher: PasswordHasher = Depends(get_password_hasher),
    codec: TokenCodec = Depends(get_token_codec),
    settings: Settings = Depends(get_settings),
) -> SessionManager:
    return SessionManager(directory, hasher, codec, settings)
