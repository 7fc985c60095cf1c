"""Fee quoting with configured ceilings as the fallback."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from wrap_cycler.core.models import GasPrices

if TYPE_CHECKING:
    from wrap_cycler.config import RunConfig
    from wrap_cycler.wallet.provider import ChainClient

logger = logging.getLogger("wrap_cycler.core.gas")


class GasEstimator:
    """Produces a fully populated :class:`GasPrices` for every cycle.

    ``quote()`` never raises: when the node's fee data is unavailable the
    configured gwei ceilings are used instead, field by field.
    """

    def __init__(self, client: ChainClient, cfg: RunConfig) -> None:
        self.client = client
        self.cfg = cfg

    def fallback(self) -> GasPrices:
        return GasPrices(
            max_priority_fee_per_gas=self.cfg.max_priority_fee_per_gas_wei,
            max_fee_per_gas=self.cfg.max_fee_per_gas_wei,
        )

    async def quote(self) -> GasPrices:
        try:
            live = await self.client.estimate_fees()
        except Exception as exc:
            logger.warning(f"Failed to fetch dynamic gas prices, using defaults: {exc}")
            return self.fallback()

        defaults = self.fallback()
        return GasPrices(
            max_priority_fee_per_gas=(
                live.max_priority_fee_per_gas
                if live.max_priority_fee_per_gas is not None
                else defaults.max_priority_fee_per_gas
            ),
            max_fee_per_gas=(
                live.max_fee_per_gas
                if live.max_fee_per_gas is not None
                else defaults.max_fee_per_gas
            ),
        )
