"""External asset-transfer interfaces.

The vault never moves assets itself; it asks these collaborators to. Both signal
failure by returning False (or raising AssetTransferError). The engine turns either into
ExternalTransferFailed and rolls the operation back.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Protocol

from ledger.core.errors import ExternalTransferFailed


class AssetTransferError(RuntimeError):
    """Raised by a transport that cannot complete a transfer."""


class FungibleAsset(Protocol):
    """ERC-20-like token contract as seen by the vault (the vault is `msg.sender`)."""

    def transfer(self, to: str, amount: int) -> bool: ...

    def transfer_from(self, sender: str, to: str, amount: int) -> bool: ...


class NativeTransport(Protocol):
    """Native-asset movement into and out of the vault's custody.

    `receive` pulls the value a depositor attached to their call; `send` pays out.
    Value reaching custody any other way is reported to the handler registered with
    `on_direct_transfer`, which refuses it by raising.
    """

    def receive(self, sender: str, amount: int) -> bool: ...

    def send(self, to: str, amount: int) -> bool: ...

    def on_direct_transfer(self, handler: Callable[[str, int], None]) -> None: ...


class TokenDirectory:
    """Maps token ids to the interface used to move them."""

    def __init__(self) -> None:
        self._assets: dict[str, FungibleAsset] = {}

    def register(self, token_id: str, asset: FungibleAsset) -> None:
        self._assets[token_id] = asset

    def resolve(self, token_id: str) -> FungibleAsset:
        asset = self._assets.get(token_id)
        if asset is None:
            raise ExternalTransferFailed(f"No transfer interface registered for token {token_id}.")
        return asset

    def __contains__(self, token_id: object) -> bool:
        return token_id in self._assets
