from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Generator

import pytest
from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, select, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool


ROOT = Path(__file__).resolve().parents[2]

# Ensure `backend/app` and `backend/ledger` are importable as top-level packages.
BACKEND_DIR = ROOT / "backend"
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from app.core.base import Base  # noqa: E402
from app.core.db import make_session_factory  # noqa: E402
from app.core.env import load_env_if_present  # noqa: E402
import app.models  # noqa: E402,F401
from app.models.ledger_event import LedgerEvent  # noqa: E402
from ledger.core.engine import TransferEngine  # noqa: E402
from ledger.core.oracle import PriceOracleAdapter, StaticPriceFeed  # noqa: E402
from ledger.core.simulated import SimulatedNativeTransport, SimulatedToken, simulated_directory  # noqa: E402


ADMIN = "0xadmin"
CUSTODY = "0xvault"
MANAGER = "0xmanager"
ALICE = "0xalice"
BOB = "0xbob"
OUTSIDER = "0xoutsider"

UNIT = 10**18  # one native unit in atomic units
PRICE = 2_000 * 10**8  # $2,000.00000000
BANK_CAP = 100_000 * 10**8  # $100,000.00000000
TOKENS = ["USDC", "DAI"]
WALLET = 1_000 * UNIT  # native funds each client starts with outside the vault

_TABLES = "ledger_events, allowed_tokens, role_grants, token_balances, accounts, vault_state"


def _db_url() -> str | None:
    load_env_if_present()
    return os.environ.get("DATABASE_URL")


def _alembic_config(db_url: str) -> Config:
    cfg = Config(str(ROOT / "backend" / "alembic.ini"))
    cfg.set_main_option("script_location", str(ROOT / "backend" / "alembic"))
    cfg.set_main_option("sqlalchemy.url", db_url)
    return cfg


@pytest.fixture(scope="session")
def migrated_url() -> str | None:
    """Upgrade an external database to head once; None means in-memory SQLite."""
    url = _db_url()
    if url:
        command.upgrade(_alembic_config(url), "head")
    return url


@pytest.fixture()
def engine(migrated_url: str | None) -> Generator[Engine, None, None]:
    """Fresh, empty schema per test."""
    if migrated_url:
        eng = create_engine(migrated_url, future=True)
        yield eng
        with eng.begin() as conn:
            conn.execute(text(f"TRUNCATE {_TABLES} RESTART IDENTITY CASCADE"))
        eng.dispose()
        return

    eng = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture()
def session_factory(engine: Engine) -> sessionmaker[Session]:
    return make_session_factory(engine)


def recorded_events(session_factory: sessionmaker[Session]) -> list[LedgerEvent]:
    """Committed audit rows, oldest first."""
    with session_factory() as s:
        return list(s.execute(select(LedgerEvent).order_by(LedgerEvent.seq)).scalars())


@pytest.fixture()
def feed() -> StaticPriceFeed:
    return StaticPriceFeed(PRICE)


@pytest.fixture()
def native() -> SimulatedNativeTransport:
    return SimulatedNativeTransport()


@pytest.fixture()
def token_directory():
    return simulated_directory(CUSTODY, TOKENS)


@pytest.fixture()
def tokens(token_directory) -> dict[str, SimulatedToken]:
    return token_directory[1]


@pytest.fixture()
def bare_vault(session_factory, feed, native, token_directory) -> TransferEngine:
    """Engine over an empty, uninitialized schema."""
    directory, _ = token_directory
    return TransferEngine(
        session_factory,
        oracle=PriceOracleAdapter(feed),
        native=native,
        tokens=directory,
        custody=CUSTODY,
    )


@pytest.fixture()
def vault(bare_vault: TransferEngine, native: SimulatedNativeTransport) -> TransferEngine:
    """Initialized vault: ADMIN is root/administrator, MANAGER manages, ALICE and BOB are
    clients holding WALLET native units each."""
    bare_vault.initialize(ADMIN, BANK_CAP)
    bare_vault.grant_manager_role(ADMIN, MANAGER)
    bare_vault.create_account(ADMIN, ALICE)
    bare_vault.create_account(ADMIN, BOB)
    native.fund(ALICE, WALLET)
    native.fund(BOB, WALLET)
    return bare_vault


def make_jwt(sub: str, secret: str, *, exp: int | None = None) -> str:
    """HS256 JWT generator for API tests (no external dependency)."""
    import base64, hashlib, hmac, json  # noqa: E401

    def b64url(raw: bytes) -> str:
        return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")

    header = {"alg": "HS256", "typ": "JWT"}
    payload: dict[str, object] = {"sub": sub}
    if exp is not None:
        payload["exp"] = exp

    header_b64 = b64url(json.dumps(header, separators=(",", ":")).encode("utf-8"))
    payload_b64 = b64url(json.dumps(payload, separators=(",", ":")).encode("utf-8"))
    signing_input = f"{header_b64}.{payload_b64}".encode("ascii")
    sig = hmac.new(secret.encode("utf-8"), signing_input, hashlib.sha256).digest()
    return f"{header_b64}.{payload_b64}.{b64url(sig)}"
