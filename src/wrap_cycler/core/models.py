"""Value objects passed between the engine components."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Optional


@dataclass(frozen=True)
class Balances:
    """Native and wrapped balance of one address at one point in time."""

    native: Decimal
    wrapped: Decimal

    def describe(self, native_symbol: str, wrapped_symbol: str) -> str:
        return f"Native {native_symbol}: {self.native}, {wrapped_symbol}: {self.wrapped}"


@dataclass(frozen=True)
class GasPrices:
    """EIP-1559 fee parameters in wei.

    Fields are ``None`` only in what the node returned; the gas estimator
    always fills them before a quote reaches a submission.
    """

    max_priority_fee_per_gas: Optional[int]
    max_fee_per_gas: Optional[int]


@dataclass(frozen=True)
class PendingTransaction:
    """A signed transaction accepted by the node but not yet confirmed."""

    tx_hash: str
    operation: str
    amount: Decimal
    nonce: int


@dataclass(frozen=True)
class Receipt:
    tx_hash: str
    block_number: int
    gas_used: int
    status: int


@dataclass(frozen=True)
class TransactionOutcome:
    """Terminal result of one submitted transaction."""

    operation: str
    amount: Decimal
    tx_hash: str
    receipt_hash: str
    block_number: int
    attempts: int


class CycleResult(str, Enum):
    WRAPPED_AND_UNWRAPPED = "wrapped_and_unwrapped"
    WRAPPED_ONLY = "wrapped_only"
    STOPPED = "stopped"


@dataclass
class WalletReport:
    """In-memory summary of one wallet's run."""

    index: int
    address: str
    cycles_attempted: int = 0
    wraps: int = 0
    unwraps: int = 0
    skipped_unwraps: int = 0
    stopped_early: bool = False
    error: Optional[str] = None
    initial: Optional[Balances] = None
    final: Optional[Balances] = None
    results: list[CycleResult] = field(default_factory=list)
    transactions: list[TransactionOutcome] = field(default_factory=list)

    @property
    def label(self) -> str:
        """One-based wallet label used in log lines, e.g. ``Wallet #2``."""
        return f"Wallet #{self.index + 1}"

    @property
    def succeeded(self) -> bool:
        return self.error is None


@dataclass
class FleetReport:
    wallets: list[WalletReport] = field(default_factory=list)

    @property
    def succeeded(self) -> list[WalletReport]:
        return [w for w in self.wallets if w.succeeded]

    @property
    def failed(self) -> list[WalletReport]:
        return [w for w in self.wallets if not w.succeeded]

    @property
    def transaction_count(self) -> int:
        return sum(len(w.transactions) for w in self.wallets)
