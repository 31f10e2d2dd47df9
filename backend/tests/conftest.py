"""Shared fixtures: in-memory database, seeded hospitals/users/grants, HTTP client."""

import os

# Settings are read once at import time, so the environment goes first
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["ENVIRONMENT"] = "test"
os.environ["JWT_SECRET"] = "test-access-secret-0123456789abcdef0123"
os.environ["JWT_REFRESH_SECRET"] = "test-refresh-secret-fedcba9876543210fedc"
os.environ["JWT_EXPIRES_IN"] = "15m"
os.environ["JWT_REFRESH_EXPIRES_IN"] = "7d"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["EXPOSE_TOKENS_IN_BODY"] = "false"
os.environ.pop("SEED_SUPERADMIN_USERNAME", None)
os.environ.pop("SEED_SUPERADMIN_PASSWORD", None)

from datetime import date  # noqa: E402
from types import SimpleNamespace  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from disease_report.auth.hasher import PasswordHasher  # noqa: E402
from disease_report.auth.principal import Principal  # noqa: E402
from disease_report.auth.tokens import TokenCodec  # noqa: E402
from disease_report.config import get_settings  # noqa: E402
from disease_report.database import Base, get_db  # noqa: E402
from disease_report.main import app  # noqa: E402
from disease_report.models import Hospital, PatientVisit, User  # noqa: E402
from disease_report.models.user import utcnow  # noqa: E402
from disease_report.seed import seed_default_grants  # noqa: E402

PASSWORD = "Passw0rd!"
HOSPITAL_1 = "000000001"
HOSPITAL_2 = "000000002"

# id, username, role_id, hospital_code
SEED_USERS = (
    ("u-superadmin", "superadmin", 1, None),
    ("u-admin1", "admin1", 2, HOSPITAL_1),
    ("u-admin2", "admin2", 2, HOSPITAL_2),
    ("u-user1", "user1", 3, HOSPITAL_1),
    ("u-user1b", "user1b", 3, HOSPITAL_1),
    ("u-user2", "user2", 3, HOSPITAL_2),
    ("u-admin-nohosp", "admin_nohosp", 2, None),
    ("u-user-nohosp", "user_nohosp", 3, None),
)


@pytest.fixture
def settings():
    return get_settings()


@pytest.fixture(scope="session")
def hasher():
    return PasswordHasher(rounds=4)


@pytest.fixture(scope="session")
def password_hash(hasher):
    return hasher.hash(PASSWORD)


@pytest.fixture
def codec(settings):
    return TokenCodec(settings)


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory, seeded):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def seeded(session_factory, password_hash):
    """Two hospitals, one user per role/hospital combination, default grants, two visits."""
    async with session_factory() as session:
        session.add_all(
            [
                Hospital(id=1, code=HOSPITAL_1, name="General Hospital One"),
                Hospital(id=2, code=HOSPITAL_2, name="General Hospital Two"),
            ]
        )
        await session.flush()

        now = utcnow()
        users = {}
        for user_id, username, role_id, hospital_code in SEED_USERS:
            user = User(
                id=user_id,
                username=username,
                name=username.replace("_", " ").title(),
                password_hash=password_hash,
                role_id=role_id,
                hospital_code=hospital_code,
                is_active=True,
                created_at=now,
                updated_at=now,
            )
            session.add(user)
            users[username] = user

        session.add_all(
            [
                PatientVisit(
                    id="v-1",
                    hospital_code=HOSPITAL_1,
                    disease_name="Dengue",
                    patient_name="Patient One",
                    illness_date=date(2024, 3, 1),
                ),
                PatientVisit(
                    id="v-2",
                    hospital_code=HOSPITAL_2,
                    disease_name="Malaria",
                    patient_name="Patient Two",
                    illness_date=date(2024, 3, 2),
                ),
            ]
        )
        await seed_default_grants(session)
        await session.commit()

    return SimpleNamespace(users=users)


@pytest.fixture
def token_for(codec, seeded):
    """Access token for a seeded username, signed the same way login signs it."""
    def make(username: str) -> str:
        return codec.sign_access(Principal.from_user(seeded.users[username]))

    return make


@pytest.fixture
def auth_headers(token_for):
    def make(username: str) -> dict:
        return {"Authorization": f"Bearer {token_for(username)}"}

    return make


@pytest_asyncio.fixture
async def client(session_factory, seeded):
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as ac:
        yield ac
    app.dependency_overrides.clear()
