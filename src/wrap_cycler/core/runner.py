"""Drives one wallet through its wrap/unwrap cycles."""

from __future__ import annotations

import asyncio
import logging
import random
from decimal import Decimal
from typing import TYPE_CHECKING, Awaitable, Callable, Optional

from wrap_cycler.core.gas import GasEstimator
from wrap_cycler.core.models import (
    Balances,
    CycleResult,
    GasPrices,
    TransactionOutcome,
    WalletReport,
)
from wrap_cycler.core.planner import AmountPlanner, Insufficient
from wrap_cycler.core.submitter import RetryingSubmitter

if TYPE_CHECKING:
    from wrap_cycler.config import RunConfig
    from wrap_cycler.wallet.provider import ChainClient

logger = logging.getLogger("wrap_cycler.core.runner")

Sleep = Callable[[float], Awaitable[None]]


class WalletCycleRunner:
    """Per-wallet state machine.

    Each cycle quotes gas, re-reads balances, wraps a planned amount, pauses,
    re-reads balances, then unwraps a planned amount and pauses again. An
    insufficient native balance ends the wallet's run; an insufficient
    wrapped balance only skips that cycle's unwrap.

    Submission errors are logged with the wallet and operation, then
    re-raised for the fleet to isolate. ``self.report`` holds the progress
    made so far either way.
    """

    def __init__(
        self,
        client: ChainClient,
        cfg: RunConfig,
        index: int = 0,
        *,
        rng: Optional[random.Random] = None,
        sleep: Sleep = asyncio.sleep,
        planner: Optional[AmountPlanner] = None,
        gas: Optional[GasEstimator] = None,
        submitter: Optional[RetryingSubmitter] = None,
    ) -> None:
        self.client = client
        self.cfg = cfg
        self.rng = rng or random.Random()
        self._sleep = sleep
        self.planner = planner or AmountPlanner(cfg, self.rng)
        self.gas = gas or GasEstimator(client, cfg)
        self.submitter = submitter or RetryingSubmitter(client, cfg, sleep=sleep)
        self.report = WalletReport(index=index, address=client.address)

    @property
    def label(self) -> str:
        return self.report.label

    def _describe(self, balances: Balances) -> str:
        return balances.describe(self.cfg.native_symbol, self.cfg.wrapped_symbol)

    async def _read_balances(self) -> Balances:
        balances = await self.client.balances(self.report.address)
        self.report.final = balances
        return balances

    async def pace(self) -> int:
        """Sleep for a random whole number of milliseconds within the delay bounds."""
        delay_ms = self.rng.randint(self.cfg.delay_min_ms, self.cfg.delay_max_ms)
        logger.info(f"[{self.label}] Waiting {delay_ms / 1000}s...")
        await self._sleep(delay_ms / 1000)
        return delay_ms

    async def _wrap(self, amount: Decimal, gas: GasPrices) -> TransactionOutcome:
        try:
            outcome = await self.submitter.submit_and_confirm(
                lambda: self.client.submit_deposit(amount, gas),
                label=f"[{self.label}]",
            )
        except Exception as exc:
            logger.error(f"[{self.label}] Wrap failed: {exc}")
            raise
        self.report.wraps += 1
        self.report.transactions.append(outcome)
        return outcome

    async def _unwrap(self, amount: Decimal, gas: GasPrices) -> TransactionOutcome:
        try:
            outcome = await self.submitter.submit_and_confirm(
                lambda: self.client.submit_withdraw(amount, gas),
                label=f"[{self.label}]",
            )
        except Exception as exc:
            logger.error(f"[{self.label}] Unwrap failed: {exc}")
            raise
        self.report.unwraps += 1
        self.report.transactions.append(outcome)
        return outcome

    async def run_cycle(self, cycle: int) -> CycleResult:
        total = self.cfg.cycles
        logger.info(f"[{self.label}] Cycle {cycle}/{total}")
        gas = await self.gas.quote()

        balances = await self._read_balances()
        wrap_amount = self.planner.plan_wrap_amount(balances)
        if isinstance(wrap_amount, Insufficient):
            logger.error(f"[{self.label}] {wrap_amount} for wrapping.")
            return CycleResult.STOPPED

        logger.info(f"[{self.label}] Wrapping {wrap_amount} {self.cfg.native_symbol}")
        await self._wrap(wrap_amount, gas)
        await self.pace()

        balances = await self._read_balances()
        logger.info(f"[{self.label}] After wrap [{self.report.address}]: {self._describe(balances)}")
        unwrap_amount = self.planner.plan_unwrap_amount(balances)
        if isinstance(unwrap_amount, Insufficient):
            logger.error(f"[{self.label}] {unwrap_amount} for unwrapping.")
            self.report.skipped_unwraps += 1
            return CycleResult.WRAPPED_ONLY

        logger.info(f"[{self.label}] Unwrapping {unwrap_amount} {self.cfg.wrapped_symbol}")
        await self._unwrap(unwrap_amount, gas)
        await self.pace()

        balances = await self._read_balances()
        logger.info(f"[{self.label}] After unwrap [{self.report.address}]: {self._describe(balances)}")
        return CycleResult.WRAPPED_AND_UNWRAPPED

    async def run(self) -> WalletReport:
        report = self.report
        logger.info(f"======= Starting for {self.label} =======")

        report.initial = await self._read_balances()
        logger.info(f"Initial Balances [{report.address}]: {self._describe(report.initial)}")

        for cycle in range(1, self.cfg.cycles + 1):
            report.cycles_attempted = cycle
            result = await self.run_cycle(cycle)
            report.results.append(result)
            if result is CycleResult.STOPPED:
                report.stopped_early = True
                break

        logger.info(
            f"======= Completed for {self.label} ({report.address}): "
            f"{report.wraps} wraps, {report.unwraps} unwraps, "
            f"{report.skipped_unwraps} skipped unwraps ======="
        )
        return report
