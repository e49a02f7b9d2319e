"""Simulated asset layer.

In-process stand-ins for the execution host's native transport and token contracts.
Used by the development service and the test-suite. No real funds are affected.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Callable
from typing import Optional

from ledger.core.assets import AssetTransferError, TokenDirectory


class SimulatedNativeTransport:
    """External wallets plus the vault's custody holding.

    `receive` only succeeds when the sender's wallet covers the amount, and `send` only
    when custody does. `fail_transfers` makes both fail.
    """

    def __init__(self) -> None:
        self.wallets: dict[str, int] = defaultdict(int)
        self.custody_balance = 0
        self.received: list[tuple[str, int]] = []
        self.sent: list[tuple[str, int]] = []
        self.fail_transfers = False
        self._direct_transfer_handler: Optional[Callable[[str, int], None]] = None

    def fund(self, holder: str, amount: int) -> None:
        self.wallets[holder] += amount

    def on_direct_transfer(self, handler: Callable[[str, int], None]) -> None:
        self._direct_transfer_handler = handler

    def receive(self, sender: str, amount: int) -> bool:
        if self.fail_transfers or self.wallets[sender] < amount:
            return False
        self.wallets[sender] -= amount
        self.custody_balance += amount
        self.received.append((sender, amount))
        return True

    def send(self, to: str, amount: int) -> bool:
        if self.fail_transfers or self.custody_balance < amount:
            return False
        self.custody_balance -= amount
        self.wallets[to] += amount
        self.sent.append((to, amount))
        return True

    def transfer_direct(self, sender: str, amount: int) -> None:
        """Plain value transfer to the custody address, not attached to a deposit.

        The registered handler runs first; if it raises, no value moves.
        """
        if self._direct_transfer_handler is not None:
            self._direct_transfer_handler(sender, amount)
        if self.wallets[sender] < amount:
            raise AssetTransferError(f"{sender} cannot cover {amount}.")
        self.wallets[sender] -= amount
        self.custody_balance += amount


class SimulatedToken:
    """Minimal ERC-20 ledger; `operator` is the vault calling transfer/transfer_from."""

    def __init__(self, token_id: str, *, operator: str) -> None:
        self.token_id = token_id
        self.operator = operator
        self._balances: dict[str, int] = defaultdict(int)
        self._allowances: dict[tuple[str, str], int] = defaultdict(int)
        self.fail_transfers = False

    def mint(self, holder: str, amount: int) -> None:
        self._balances[holder] += amount

    def approve(self, owner: str, spender: str, amount: int) -> None:
        self._allowances[(owner, spender)] = amount

    def balance_of(self, holder: str) -> int:
        return self._balances[holder]

    def allowance(self, owner: str, spender: str) -> int:
        return self._allowances[(owner, spender)]

    def transfer(self, to: str, amount: int) -> bool:
        if self.fail_transfers or self._balances[self.operator] < amount:
            return False
        self._balances[self.operator] -= amount
        self._balances[to] += amount
        return True

    def transfer_from(self, sender: str, to: str, amount: int) -> bool:
        if self.fail_transfers:
            return False
        if self._allowances[(sender, self.operator)] < amount or self._balances[sender] < amount:
            return False
        self._allowances[(sender, self.operator)] -= amount
        self._balances[sender] -= amount
        self._balances[to] += amount
        return True


def simulated_directory(custody: str, token_ids: list[str]) -> tuple[TokenDirectory, dict[str, SimulatedToken]]:
    """Directory with one SimulatedToken per id, all operated by `custody`."""
    directory = TokenDirectory()
    tokens: dict[str, SimulatedToken] = {}
    for token_id in token_ids:
        token = SimulatedToken(token_id, operator=custody)
        directory.register(token_id, token)
        tokens[token_id] = token
    return directory, tokens
