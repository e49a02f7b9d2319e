"""Alembic environment for the vault ledger schema.

The database URL always comes from DATABASE_URL (environment or `.env`), the same
source the application uses; `sqlalchemy.url` in alembic.ini is ignored.
"""

from __future__ import annotations

import os
import sys
from logging.config import fileConfig
from typing import Any

from alembic import context
from sqlalchemy import create_engine, pool

BASE_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if BASE_DIR not in sys.path:
    sys.path.insert(0, BASE_DIR)

from app.core.base import Base  # noqa: E402
from app.core.db import get_database_url  # noqa: E402
import app.models  # noqa: E402,F401  (populates Base.metadata)


config = context.config
if config.config_file_name is not None:
    # Keep application loggers alive when migrations run in-process (tests, scripts).
    fileConfig(config.config_file_name, disable_existing_loggers=False)

COMPARE: dict[str, Any] = {
    "target_metadata": Base.metadata,
    "compare_type": True,
    "compare_server_default": True,
}


def _url() -> str:
    # Scripts may pass an explicit URL through the Config object.
    return config.get_main_option("sqlalchemy.url") or get_database_url()


if context.is_offline_mode():
    context.configure(url=_url(), literal_binds=True, dialect_opts={"paramstyle": "named"}, **COMPARE)
    with context.begin_transaction():
        context.run_migrations()
else:
    connectable = create_engine(_url(), poolclass=pool.NullPool, future=True)
    with connectable.connect() as connection:
        context.configure(connection=connection, **COMPARE)
        with context.begin_transaction():
            context.run_migrations()
