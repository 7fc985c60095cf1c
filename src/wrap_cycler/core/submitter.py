"""Transaction submission with rate-limit-aware confirmation retries.

Only the confirmation wait is retried. The submit call runs exactly once and
a failure there propagates.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Awaitable, Callable

from wrap_cycler.core.models import PendingTransaction, TransactionOutcome
from wrap_cycler.errors import ProviderRateLimited, RetryExhausted

if TYPE_CHECKING:
    from wrap_cycler.config import RunConfig
    from wrap_cycler.wallet.provider import ChainClient

logger = logging.getLogger("wrap_cycler.core.submitter")

SubmitFn = Callable[[], Awaitable[PendingTransaction]]
Sleep = Callable[[float], Awaitable[None]]


class RetryingSubmitter:
    """Submit once, then await confirmation with exponential backoff.

    Parameters
    ----------
    client:
        The wallet's chain client, used for ``await_confirmation``.
    cfg:
        Supplies ``max_retries`` and ``retry_delay_ms`` (the first delay;
        each later delay doubles).
    sleep:
        Awaitable pause, ``asyncio.sleep`` by default.
    """

    def __init__(self, client: ChainClient, cfg: RunConfig, sleep: Sleep = asyncio.sleep) -> None:
        self.client = client
        self.cfg = cfg
        self._sleep = sleep

    async def submit_and_confirm(self, submit_fn: SubmitFn, label: str = "") -> TransactionOutcome:
        pending = await submit_fn()
        prefix = f"{label} " if label else ""
        logger.info(f"{prefix}{pending.operation} {pending.amount}, Tx Hash: {pending.tx_hash}")

        max_retries = self.cfg.max_retries
        delay_ms = self.cfg.retry_delay_ms
        for attempt in range(1, max_retries + 1):
            logger.debug(f"{prefix}Awaiting confirmation of {pending.tx_hash} (attempt {attempt}/{max_retries})")
            try:
                receipt = await self.client.await_confirmation(pending)
            except ProviderRateLimited as exc:
                if attempt == max_retries:
                    raise RetryExhausted(max_retries, last_error=exc) from exc
                logger.warning(
                    f"{prefix}Rate limit exceeded, retrying ({attempt}/{max_retries}) after {delay_ms}ms..."
                )
                await self._sleep(delay_ms / 1000)
                delay_ms *= 2
                continue

            logger.info(f"{prefix}{pending.operation} confirmed: {receipt.tx_hash} (block {receipt.block_number})")
            return TransactionOutcome(
                operation=pending.operation,
                amount=pending.amount,
                tx_hash=pending.tx_hash,
                receipt_hash=receipt.tx_hash,
                block_number=receipt.block_number,
                attempts=attempt,
            )

        # max_retries >= 1 is enforced by RunConfig, so the loop always returns or raises.
        raise RetryExhausted(max_retries)
