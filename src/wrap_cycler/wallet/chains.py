"""Chain presets for supported EVM networks.

A run targets exactly one chain; these presets only save typing the RPC
endpoint, chain id and wrapped-token address into ``config.yaml``.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Chain:
    """An EVM-compatible network with a canonical wrapped native token."""

    name: str
    chain_id: int
    rpc_url: str
    native_symbol: str
    wrapped_symbol: str
    wrapped_token_address: str
    explorer_url: str


CHAINS: dict[str, Chain] = {
    "plume": Chain(
        name="plume",
        chain_id=98866,
        rpc_url="https://rpc.plume.org",
        native_symbol="PLUME",
        wrapped_symbol="WPLUME",
        wrapped_token_address="0xEa237441c92CAe6FC17Caaf9a7acB3f953be4bd1",
        explorer_url="https://explorer.plume.org",
    ),
    "ethereum": Chain(
        name="ethereum",
        chain_id=1,
        rpc_url="https://eth.llamarpc.com",
        native_symbol="ETH",
        wrapped_symbol="WETH",
        wrapped_token_address="0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2",
        explorer_url="https://etherscan.io",
    ),
    "base": Chain(
        name="base",
        chain_id=8453,
        rpc_url="https://mainnet.base.org",
        native_symbol="ETH",
        wrapped_symbol="WETH",
        wrapped_token_address="0x4200000000000000000000000000000000000006",
        explorer_url="https://basescan.org",
    ),
    "soneium": Chain(
        name="soneium",
        chain_id=1868,
        rpc_url="https://rpc.soneium.org",
        native_symbol="ETH",
        wrapped_symbol="WETH",
        wrapped_token_address="0x4200000000000000000000000000000000000006",
        explorer_url="https://soneium.blockscout.com",
    ),
}

DEFAULT_CHAIN = "plume"


def get_chain(name: str) -> Chain:
    """Get a chain by name. Raises ``KeyError`` if not found."""
    key = name.strip().lower()
    if key not in CHAINS:
        raise KeyError(
            f"Unknown chain '{name}'. Available: {list_chain_names()}"
        )
    return CHAINS[key]


def list_chain_names() -> list[str]:
    """Return the names of all chain presets."""
    return list(CHAINS.keys())
