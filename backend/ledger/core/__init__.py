"""Vault ledger core: roles, oracle, pause switch, cap, balances and the transfer engine."""

from ledger.core.assets import AssetTransferError, FungibleAsset, NativeTransport, TokenDirectory
from ledger.core.engine import TransferEngine, VaultStatus
from ledger.core.errors import (
    AccountAlreadyExists,
    AccountingUnderflow,
    CapExceeded,
    ExternalTransferFailed,
    InsufficientFunds,
    InvalidInput,
    NotFound,
    OraclePriceInvalid,
    PausedState,
    ReentrantCall,
    TokenNotAllowed,
    Unauthorized,
    VaultError,
)
from ledger.core.oracle import HttpPriceFeed, PriceOracleAdapter, RoundData, StaticPriceFeed

__all__ = [
    "AccountAlreadyExists",
    "AccountingUnderflow",
    "AssetTransferError",
    "CapExceeded",
    "ExternalTransferFailed",
    "FungibleAsset",
    "HttpPriceFeed",
    "InsufficientFunds",
    "InvalidInput",
    "NativeTransport",
    "NotFound",
    "OraclePriceInvalid",
    "PausedState",
    "PriceOracleAdapter",
    "ReentrantCall",
    "RoundData",
    "StaticPriceFeed",
    "TokenDirectory",
    "TokenNotAllowed",
    "TransferEngine",
    "Unauthorized",
    "VaultError",
    "VaultStatus",
]
