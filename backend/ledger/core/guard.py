"""Reentrancy guard.

An explicit in-progress flag held for the whole of a guarded operation, including every
call out to an external collaborator (oracle, native transport, token contract). A
collaborator that calls back into any guarded operation while the flag is held is
rejected with ReentrantCall. The flag is cleared on every exit path.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Optional

from ledger.core.errors import ReentrantCall

logger = logging.getLogger(__name__)


class ReentrancyGuard:
    def __init__(self) -> None:
        self._held_by: Optional[str] = None

    @property
    def held_by(self) -> Optional[str]:
        return self._held_by

    @contextmanager
    def hold(self, operation: str) -> Iterator[None]:
        if self._held_by is not None:
            logger.warning("re-entry into %s rejected while %s is in progress", operation, self._held_by)
            raise ReentrantCall(f"{operation} rejected: {self._held_by} is already in progress.")
        self._held_by = operation
        try:
            yield
        finally:
            self._held_by = None
