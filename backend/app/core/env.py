"""`.env` support for local runs, scripts and Alembic.

Only `KEY=value` lines are understood (optionally prefixed with `export`, values
optionally quoted). Variables already present in the process environment win, so a
deployment's real environment is never shadowed by a stray file.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

# backend/app/core/env.py -> parents[3] is the repository root.
REPO_ROOT = Path(__file__).resolve().parents[3]
ENV_FILES: tuple[Path, ...] = (REPO_ROOT / ".env", REPO_ROOT / "backend" / ".env")


def read_env_file(path: Path) -> dict[str, str]:
    values: dict[str, str] = {}
    for raw in path.read_text(encoding="utf-8").splitlines():
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        line = line.removeprefix("export ").lstrip()
        key, sep, value = line.partition("=")
        key, value = key.strip(), value.strip()
        if not sep or not key:
            continue
        if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
            value = value[1:-1]
        values[key] = value
    return values


def load_env_if_present(*, override: bool = False, files: Optional[tuple[Path, ...]] = None) -> list[Path]:
    """Apply env files in order; returns the files that were read."""
    loaded: list[Path] = []
    for path in ENV_FILES if files is None else files:
        if not path.is_file():
            continue
        try:
            values = read_env_file(path)
        except OSError:
            continue
        loaded.append(path)
        for key, value in values.items():
            if override or key not in os.environ:
                os.environ[key] = value
    return loaded
