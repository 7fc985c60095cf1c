"""
Pytest configuration and shared fakes for wrap-cycler tests.
"""
from __future__ import annotations

import random
from decimal import Decimal
from typing import Optional

import pytest

from wrap_cycler.config import RunConfig
from wrap_cycler.core.models import Balances, GasPrices, PendingTransaction, Receipt
from wrap_cycler.wallet.credentials import WalletCredential

TEST_KEYS = [
    "0x" + "11" * 32,
    "0x" + "22" * 32,
    "0x" + "33" * 32,
]


class RecordingSleep:
    """Stand-in for ``asyncio.sleep`` that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


class FakeChainClient:
    """Scripted ChainClient double.

    Deposits move funds from native to wrapped (unless ``credit_wraps`` is
    False), withdrawals move them back. ``confirm_errors`` are raised, in
    order, by successive ``await_confirmation`` calls.
    """

    def __init__(
        self,
        address: str = "0x000000000000000000000000000000000000dEaD",
        native: str = "1.0",
        wrapped: str = "0",
        *,
        fees: Optional[GasPrices] = None,
        fee_error: Optional[Exception] = None,
        confirm_errors: Optional[list[Exception]] = None,
        submit_error: Optional[Exception] = None,
        credit_wraps: bool = True,
    ) -> None:
        self.address = address
        self.native = Decimal(native)
        self.wrapped = Decimal(wrapped)
        self.fees = fees or GasPrices(max_priority_fee_per_gas=1_000_000_000, max_fee_per_gas=3_000_000_000)
        self.fee_error = fee_error
        self.confirm_errors = list(confirm_errors or [])
        self.submit_error = submit_error
        self.credit_wraps = credit_wraps
        self.submissions: list[tuple[str, Decimal, GasPrices]] = []
        self.balance_reads = 0
        self.confirm_calls = 0

    async def balances(self, address: str) -> Balances:
        self.balance_reads += 1
        return Balances(native=self.native, wrapped=self.wrapped)

    async def estimate_fees(self) -> GasPrices:
        if self.fee_error is not None:
            raise self.fee_error
        return self.fees

    def _pending(self, operation: str, amount: Decimal) -> PendingTransaction:
        nonce = len(self.submissions) - 1
        return PendingTransaction(
            tx_hash=f"0x{nonce + 1:064x}",
            operation=operation,
            amount=amount,
            nonce=nonce,
        )

    async def submit_deposit(self, amount: Decimal, gas: GasPrices) -> PendingTransaction:
        if self.submit_error is not None:
            raise self.submit_error
        self.submissions.append(("deposit", amount, gas))
        self.native -= amount
        if self.credit_wraps:
            self.wrapped += amount
        return self._pending("deposit", amount)

    async def submit_withdraw(self, amount: Decimal, gas: GasPrices) -> PendingTransaction:
        if self.submit_error is not None:
            raise self.submit_error
        self.submissions.append(("withdraw", amount, gas))
        self.wrapped -= amount
        self.native += amount
        return self._pending("withdraw", amount)

    async def await_confirmation(self, pending: PendingTransaction) -> Receipt:
        self.confirm_calls += 1
        if self.confirm_errors:
            raise self.confirm_errors.pop(0)
        return Receipt(tx_hash=pending.tx_hash, block_number=100 + pending.nonce, gas_used=45_000, status=1)


@pytest.fixture
def cfg() -> RunConfig:
    """One-cycle config; gas reserve is 0.1 (100k gas at 1000 gwei) + 0.01 margin."""
    return RunConfig(
        cycles=1,
        min_amount=Decimal("0.01"),
        max_amount=Decimal("0.1"),
        gas_limit=100_000,
        max_fee_per_gas_gwei=Decimal("1000"),
        max_priority_fee_per_gas_gwei=Decimal("5"),
        safety_margin=Decimal("0.01"),
        delay_min_ms=10,
        delay_max_ms=20,
        max_retries=3,
        retry_delay_ms=100,
    )


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def credentials() -> list[WalletCredential]:
    from eth_account import Account

    return [
        WalletCredential(address=Account.from_key(key).address, signing_key=key)
        for key in TEST_KEYS
    ]
