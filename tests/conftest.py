"""Shared fixtures.

The required environment is set before the package is imported. Every test
gets its own file-backed SQLite database, so concurrent callers contend on a
real database lock rather than a Python one.
"""

import datetime as dt
import os
import sys
import tempfile
from pathlib import Path

_test_tmp_dir = tempfile.mkdtemp(prefix="sessiongate_test_")
os.environ.setdefault("DATABASE_URL", f"sqlite+aiosqlite:///{_test_tmp_dir}/app.db")
os.environ.setdefault("JWT_SECRET", "test-secret-key-for-testing-only-do-not-use-in-production")
os.environ.setdefault("JWT_ISSUER", "sessiongate-test")
os.environ.setdefault("LOG_JSON", "false")
os.environ.setdefault("SWEEP_INTERVAL_HOURS", "0")

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from sessiongate.config import load_config  # noqa: E402
from sessiongate.db import Base  # noqa: E402
from sessiongate.db.account_store import AccountStore  # noqa: E402
from sessiongate.db.models.account import Account  # noqa: E402
from sessiongate.db.refresh_token_store import RefreshTokenStore  # noqa: E402
from sessiongate.db.session import build_engine, build_sessionmaker  # noqa: E402
from sessiongate.services.rotation_engine import RotationEngine  # noqa: E402
from sessiongate.services.session_service import SessionService  # noqa: E402
from sessiongate.services.token_codec import TokenCodec  # noqa: E402
from sessiongate.services.version_gate import VersionGate  # noqa: E402
from sessiongate.utils.security import hash_password  # noqa: E402

TEST_PASSWORD = "CorrectHorse42!"


class FrozenClock:
    """Deterministic stand-in for the wall clock."""

    def __init__(self, start: dt.datetime | None = None):
        self.now = start or dt.datetime.now(dt.timezone.utc).replace(microsecond=0)

    def __call__(self) -> dt.datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + dt.timedelta(**kwargs)


@pytest.fixture
def app_config():
    return load_config()


@pytest.fixture
def clock():
    return FrozenClock()


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path}/sessiongate.db")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_sessionmaker(engine)


@pytest.fixture
def accounts(session_factory):
    return AccountStore(session_factory)


@pytest.fixture
def store(session_factory, clock):
    return RefreshTokenStore(session_factory, clock=clock)


@pytest.fixture
def rotation(store, clock, app_config):
    return RotationEngine(store, ttl=app_config.refresh_ttl, clock=clock)


@pytest.fixture
def gate(accounts):
    return VersionGate(accounts)


@pytest.fixture
def codec(app_config, clock):
    return TokenCodec.from_config(app_config, clock=clock)


@pytest.fixture
def sessions(app_config, session_factory, clock):
    return SessionService.build(app_config, session_factory, clock=clock)


@pytest.fixture
def make_account(session_factory):
    counter = {"n": 0}

    async def _make_account(
        *,
        username: str | None = None,
        password: str = TEST_PASSWORD,
        roles: list[str] | None = None,
        token_version: int = 0,
        is_active: bool = True,
    ) -> Account:
        counter["n"] += 1
        username = username or f"member{counter['n']}"
        account = Account(
            username=username,
            email=f"{username}@example.com",
            hashed_password=hash_password(password),
            roles=roles or ["ROLE_USER"],
            token_version=token_version,
            is_active=is_active,
        )
        async with session_factory() as db:
            db.add(account)
            await db.commit()
        return account

    return _make_account
