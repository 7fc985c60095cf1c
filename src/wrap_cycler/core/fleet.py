"""Sequential, failure-isolated iteration over all configured wallets."""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Callable, Iterable, Optional

from web3 import AsyncWeb3

from wrap_cycler.config import RunConfig
from wrap_cycler.core.models import FleetReport, WalletReport
from wrap_cycler.core.runner import Sleep, WalletCycleRunner
from wrap_cycler.wallet.credentials import WalletCredential
from wrap_cycler.wallet.provider import ChainClient, create_web3

logger = logging.getLogger("wrap_cycler.core.fleet")

ClientFactory = Callable[[WalletCredential], ChainClient]

EXIT_OK = 0
EXIT_FAILURE = 1


class FleetOrchestrator:
    """Runs every wallet in order; one wallet's failure never stops the rest.

    Parameters
    ----------
    cfg:
        The run configuration shared by all wallets.
    client_factory:
        Builds a :class:`ChainClient` for a credential. Defaults to clients
        sharing a single ``AsyncWeb3`` connection to ``cfg.rpc_url``.
    rng, sleep:
        Randomness and pause primitives handed to each wallet runner.
    """

    def __init__(
        self,
        cfg: RunConfig,
        client_factory: Optional[ClientFactory] = None,
        *,
        rng: Optional[random.Random] = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.cfg = cfg
        self._client_factory = client_factory
        self._w3: Optional[AsyncWeb3] = None
        self.rng = rng or random.Random()
        self._sleep = sleep

    def _factory(self) -> ClientFactory:
        if self._client_factory is None:
            w3 = self._w3 = create_web3(self.cfg)
            self._client_factory = lambda credential: ChainClient.for_credential(w3, self.cfg, credential)
        return self._client_factory

    async def close(self) -> None:
        """Close the node connection opened by the default client factory."""
        if self._w3 is None:
            return
        w3, self._w3 = self._w3, None
        try:
            await w3.provider.disconnect()
        except Exception as exc:
            logger.warning(f"Failed to close node connection: {exc}")

    async def run_wallet(self, index: int, credential: WalletCredential) -> WalletReport:
        """Run one wallet, converting any failure into ``report.error``."""
        runner: Optional[WalletCycleRunner] = None
        try:
            client = self._factory()(credential)
            runner = WalletCycleRunner(client, self.cfg, index, rng=self.rng, sleep=self._sleep)
            return await runner.run()
        except Exception as exc:
            logger.error(f"Wallet #{index + 1} failed: {exc}")
            report = runner.report if runner is not None else WalletReport(index=index, address=credential.address)
            report.error = str(exc) or exc.__class__.__name__
            return report

    async def run(self, credentials: Iterable[WalletCredential]) -> FleetReport:
        report = FleetReport()
        for index, credential in enumerate(credentials):
            report.wallets.append(await self.run_wallet(index, credential))
        return report


async def run_fleet(
    cfg: RunConfig,
    credentials: Iterable[WalletCredential],
    client_factory: Optional[ClientFactory] = None,
    *,
    rng: Optional[random.Random] = None,
    sleep: Sleep = asyncio.sleep,
) -> tuple[int, Optional[FleetReport]]:
    """Outer boundary of a run: returns ``(exit_code, report)``.

    Wallet failures are absorbed by :class:`FleetOrchestrator` and still
    yield ``EXIT_OK``; only an error escaping that isolation yields
    ``EXIT_FAILURE`` (with no report).
    """
    logger.info(
        f"Starting multi-wallet {cfg.wrapped_symbol} wrap/unwrap run on "
        f"{cfg.chain} (chain id {cfg.chain_id})..."
    )
    orchestrator = FleetOrchestrator(cfg, client_factory, rng=rng, sleep=sleep)
    try:
        report = await orchestrator.run(credentials)
    except Exception as exc:
        logger.error(f"Run failed: {exc}")
        return EXIT_FAILURE, None
    finally:
        await orchestrator.close()

    logger.info(
        f"Run completed for all wallets: {len(report.succeeded)} succeeded, "
        f"{len(report.failed)} failed, {report.transaction_count} transactions."
    )
    return EXIT_OK, report
