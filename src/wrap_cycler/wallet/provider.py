"""Async Web3 client for the wrapped-native-token contract on one EVM chain."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Awaitable, Callable, TypeVar

from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import AsyncWeb3, Web3
from web3.exceptions import TimeExhausted
from web3.middleware import ExtraDataToPOAMiddleware

from wrap_cycler.config import RunConfig
from wrap_cycler.core.models import Balances, GasPrices, PendingTransaction, Receipt
from wrap_cycler.errors import ProviderError, TransactionReverted, translate_provider_error
from wrap_cycler.wallet.credentials import WalletCredential

logger = logging.getLogger("wrap_cycler.wallet.provider")

T = TypeVar("T")

# Minimal WETH9-style ABI: only the functions the engine calls.
WRAPPED_ASSET_ABI = [
    {
        "type": "function",
        "name": "deposit",
        "stateMutability": "payable",
        "inputs": [],
        "outputs": [],
    },
    {
        "type": "function",
        "name": "withdraw",
        "stateMutability": "nonpayable",
        "inputs": [{"name": "wad", "type": "uint256"}],
        "outputs": [],
    },
    {
        "type": "function",
        "name": "balanceOf",
        "stateMutability": "view",
        "inputs": [{"name": "account", "type": "address"}],
        "outputs": [{"name": "", "type": "uint256"}],
    },
]


def create_web3(cfg: RunConfig) -> AsyncWeb3:
    """Open the shared node connection for a run.

    Injects POA middleware for every chain except Ethereum mainnet.
    """
    w3 = AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(cfg.rpc_url))
    if cfg.chain_id != 1:
        w3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)
    return w3


class ChainClient:
    """Balance reads and deposit/withdraw submissions for one wallet.

    Every failure coming out of web3 or the HTTP transport is translated into
    a :class:`~wrap_cycler.errors.ProviderError`; rate-limit rejections become
    :class:`~wrap_cycler.errors.ProviderRateLimited`.
    """

    def __init__(self, w3: AsyncWeb3, cfg: RunConfig, account: LocalAccount | None = None) -> None:
        self.w3 = w3
        self.cfg = cfg
        self._account = account
        self.contract = w3.eth.contract(
            address=Web3.to_checksum_address(cfg.contract_address),
            abi=WRAPPED_ASSET_ABI,
        )

    @classmethod
    def for_credential(cls, w3: AsyncWeb3, cfg: RunConfig, credential: WalletCredential) -> "ChainClient":
        return cls(w3, cfg, Account.from_key(credential.signing_key))

    @property
    def address(self) -> str:
        return self._require_account().address

    def _require_account(self) -> LocalAccount:
        if self._account is None:
            raise RuntimeError("ChainClient has no signing account; it is read-only.")
        return self._account

    async def _call(self, operation: str, fn: Callable[[], Awaitable[T]]) -> T:
        try:
            return await fn()
        except ProviderError:
            raise
        except Exception as exc:
            raise translate_provider_error(exc, operation, self.cfg.rate_limit_codes) from exc

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_balance(self, address: str) -> Decimal:
        """Native balance in whole units (e.g. PLUME)."""
        checksum = Web3.to_checksum_address(address)
        balance_wei = await self._call("get_balance", lambda: self.w3.eth.get_balance(checksum))
        return Decimal(str(Web3.from_wei(balance_wei, "ether")))

    async def wrapped_balance_of(self, address: str) -> Decimal:
        """Wrapped-token balance in whole units (18 decimals, like the native asset)."""
        checksum = Web3.to_checksum_address(address)
        balance_wei = await self._call(
            "wrapped_balance_of",
            lambda: self.contract.functions.balanceOf(checksum).call(),
        )
        return Decimal(str(Web3.from_wei(balance_wei, "ether")))

    async def balances(self, address: str) -> Balances:
        native = await self.get_balance(address)
        wrapped = await self.wrapped_balance_of(address)
        return Balances(native=native, wrapped=wrapped)

    async def estimate_fees(self) -> GasPrices:
        """Live EIP-1559 fee data.

        ``maxFeePerGas`` is twice the latest base fee plus the suggested tip.
        Both fields are ``None`` when the latest block carries no base fee
        (pre-London chains).
        """

        async def _fetch() -> GasPrices:
            latest = await self.w3.eth.get_block("latest")
            base_fee = latest.get("baseFeePerGas")
            if base_fee is None:
                return GasPrices(max_priority_fee_per_gas=None, max_fee_per_gas=None)
            priority = await self.w3.eth.max_priority_fee
            return GasPrices(
                max_priority_fee_per_gas=priority,
                max_fee_per_gas=base_fee * 2 + priority,
            )

        return await self._call("estimate_fees", _fetch)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def submit_deposit(self, amount: Decimal, gas: GasPrices) -> PendingTransaction:
        """Wrap *amount* native units by calling ``deposit()`` with value."""
        value = Web3.to_wei(amount, "ether")
        return await self._submit("deposit", self.contract.functions.deposit(), value, amount, gas)

    async def submit_withdraw(self, amount: Decimal, gas: GasPrices) -> PendingTransaction:
        """Unwrap *amount* wrapped units by calling ``withdraw(wad)``."""
        wad = Web3.to_wei(amount, "ether")
        return await self._submit("withdraw", self.contract.functions.withdraw(wad), 0, amount, gas)

    async def _submit(
        self,
        operation: str,
        function: Any,
        value_wei: int,
        amount: Decimal,
        gas: GasPrices,
    ) -> PendingTransaction:
        if gas.max_fee_per_gas is None or gas.max_priority_fee_per_gas is None:
            raise ValueError("Gas prices must be resolved before submission.")
        account = self._require_account()

        async def _send() -> tuple[int, str]:
            nonce = await self.w3.eth.get_transaction_count(account.address, "pending")
            tx = await function.build_transaction(
                {
                    "from": account.address,
                    "value": value_wei,
                    "gas": self.cfg.gas_limit,
                    "maxFeePerGas": gas.max_fee_per_gas,
                    "maxPriorityFeePerGas": gas.max_priority_fee_per_gas,
                    "nonce": nonce,
                    "chainId": self.cfg.chain_id,
                }
            )
            signed = account.sign_transaction(tx)
            tx_hash = await self.w3.eth.send_raw_transaction(signed.raw_transaction)
            return nonce, Web3.to_hex(tx_hash)

        nonce, tx_hash = await self._call(operation, _send)
        logger.debug(f"{operation} submitted from {account.address}: nonce={nonce} tx={tx_hash}")
        return PendingTransaction(tx_hash=tx_hash, operation=operation, amount=amount, nonce=nonce)

    async def await_confirmation(self, pending: PendingTransaction) -> Receipt:
        """Block (cooperatively) until *pending* is mined.

        There is no overall deadline: each ``receipt_poll_window_s`` window
        that passes without a receipt is logged and the wait continues.
        Raises :class:`~wrap_cycler.errors.TransactionReverted` for a mined
        receipt with status 0.
        """
        window = self.cfg.receipt_poll_window_s

        async def _wait() -> Any:
            while True:
                try:
                    return await self.w3.eth.wait_for_transaction_receipt(pending.tx_hash, timeout=window)
                except TimeExhausted:
                    logger.info(f"{pending.operation} {pending.tx_hash} not mined after {window}s, still waiting...")

        receipt = await self._call("await_confirmation", _wait)
        if receipt["status"] != 1:
            raise TransactionReverted(pending.tx_hash, operation=pending.operation)
        return Receipt(
            tx_hash=Web3.to_hex(receipt["transactionHash"]),
            block_number=receipt["blockNumber"],
            gas_used=receipt["gasUsed"],
            status=receipt["status"],
        )
