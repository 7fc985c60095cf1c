"""Randomized, balance-safe transaction amounts."""

from __future__ import annotations

import random
from dataclasses import dataclass
from decimal import ROUND_DOWN, Decimal
from typing import Optional, Union

from web3 import Web3

from wrap_cycler.config import RunConfig
from wrap_cycler.core.models import Balances

# Six fractional digits keeps amounts clear of wei-conversion dust.
AMOUNT_PRECISION = Decimal("0.000001")


@dataclass(frozen=True)
class Insufficient:
    """Returned instead of an amount when the balance cannot cover ``min_amount``."""

    asset: str
    available: Decimal
    required: Decimal

    def __str__(self) -> str:
        return f"Insufficient {self.asset}: {self.available} available, {self.required} required"


PlannedAmount = Union[Decimal, Insufficient]


class AmountPlanner:
    def __init__(self, cfg: RunConfig, rng: Optional[random.Random] = None) -> None:
        self.cfg = cfg
        self.rng = rng or random.Random()

    def gas_reserve(self) -> Decimal:
        """Worst-case fee for one transaction at the max-fee ceiling, plus the safety margin."""
        fee_wei = self.cfg.gas_limit * self.cfg.max_fee_per_gas_wei
        return Decimal(str(Web3.from_wei(fee_wei, "ether"))) + self.cfg.safety_margin

    def plan_wrap_amount(self, balances: Balances) -> PlannedAmount:
        spendable = balances.native - self.gas_reserve()
        return self._plan(self.cfg.native_symbol, spendable)

    def plan_unwrap_amount(self, balances: Balances) -> PlannedAmount:
        # Gas is paid in the native asset; its coverage was checked on the wrap path.
        return self._plan(self.cfg.wrapped_symbol, balances.wrapped)

    def _plan(self, asset: str, ceiling: Decimal) -> PlannedAmount:
        low = self.cfg.min_amount
        if ceiling < low:
            return Insufficient(asset=asset, available=ceiling, required=low)
        high = min(self.cfg.max_amount, ceiling)
        return self._random_amount(low, high)

    def _random_amount(self, low: Decimal, high: Decimal) -> Decimal:
        drawn = Decimal(repr(self.rng.uniform(float(low), float(high))))
        amount = drawn.quantize(AMOUNT_PRECISION, rounding=ROUND_DOWN)
        return max(min(amount, high), low)
