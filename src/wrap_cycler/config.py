"""Configuration system for wrap-cycler.

Loads the run configuration from ``.wrap-cycler/config.yaml``, supports
environment variable expansion, and builds configs from the chain presets
shipped with the package.
"""

from __future__ import annotations

import os
import re
from decimal import Decimal
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from web3 import Web3

from wrap_cycler.wallet.chains import DEFAULT_CHAIN, get_chain


# ---------------------------------------------------------------------------
# Environment-variable expansion helper
# ---------------------------------------------------------------------------

_ENV_VAR_RE = re.compile(r"\$\{([^}]+)\}")


def _expand_env_vars(value: str) -> str:
    """Replace ``${VAR_NAME}`` placeholders with their environment values.

    Unset variables are left as-is so that validation reports them.
    """

    def _replace(match: re.Match) -> str:
        return os.environ.get(match.group(1), match.group(0))

    return _ENV_VAR_RE.sub(_replace, value)


def _expand_env_recursive(obj: object) -> object:
    if isinstance(obj, str):
        return _expand_env_vars(obj)
    if isinstance(obj, dict):
        return {k: _expand_env_recursive(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_expand_env_recursive(item) for item in obj]
    return obj


# ---------------------------------------------------------------------------
# Run configuration
# ---------------------------------------------------------------------------


class RunConfig(BaseModel):
    """Immutable settings for one fleet run.

    Amounts are in whole native units (e.g. PLUME, ETH); fee ceilings are
    in gwei; delays are in milliseconds.
    """

    model_config = ConfigDict(frozen=True)

    chain: str = DEFAULT_CHAIN
    rpc_url: str = "https://rpc.plume.org"
    chain_id: int = 98866
    contract_address: str = "0xEa237441c92CAe6FC17Caaf9a7acB3f953be4bd1"
    native_symbol: str = "PLUME"
    wrapped_symbol: str = "WPLUME"

    cycles: int = Field(default=50, ge=0)
    min_amount: Decimal = Field(default=Decimal("0.01"), gt=0)
    max_amount: Decimal = Field(default=Decimal("0.1"), gt=0)
    safety_margin: Decimal = Field(default=Decimal("0.01"), ge=0)

    gas_limit: int = Field(default=100_000, gt=0)
    max_priority_fee_per_gas_gwei: Decimal = Field(default=Decimal("5"), ge=0)
    max_fee_per_gas_gwei: Decimal = Field(default=Decimal("1000"), gt=0)

    delay_min_ms: int = Field(default=10_000, ge=0)
    delay_max_ms: int = Field(default=30_000, ge=0)

    max_retries: int = Field(default=10, ge=1)
    retry_delay_ms: int = Field(default=2_000, ge=0)
    rate_limit_codes: tuple[int, ...] = (-32017,)
    receipt_poll_window_s: float = Field(default=180.0, gt=0)

    @field_validator("contract_address")
    @classmethod
    def _checksum_contract(cls, value: str) -> str:
        if not Web3.is_address(value):
            raise ValueError(f"'{value}' is not a valid contract address")
        return Web3.to_checksum_address(value)

    @model_validator(mode="after")
    def _check_ranges(self) -> "RunConfig":
        if self.min_amount > self.max_amount:
            raise ValueError(
                f"min_amount ({self.min_amount}) exceeds max_amount ({self.max_amount})"
            )
        if self.delay_min_ms > self.delay_max_ms:
            raise ValueError(
                f"delay_min_ms ({self.delay_min_ms}) exceeds delay_max_ms ({self.delay_max_ms})"
            )
        return self

    @property
    def max_fee_per_gas_wei(self) -> int:
        """The max-fee ceiling converted to wei, as submitted on chain."""
        return Web3.to_wei(self.max_fee_per_gas_gwei, "gwei")

    @property
    def max_priority_fee_per_gas_wei(self) -> int:
        return Web3.to_wei(self.max_priority_fee_per_gas_gwei, "gwei")

    def with_overrides(self, **overrides: object) -> "RunConfig":
        """Return a re-validated copy with *overrides* applied (``None`` values ignored)."""
        data = self.model_dump()
        data.update({k: v for k, v in overrides.items() if v is not None})
        return RunConfig.model_validate(data)


# ---------------------------------------------------------------------------
# Public helpers
# ---------------------------------------------------------------------------


def get_root_dir(base: Path | None = None) -> Path:
    """Return the ``.wrap-cycler/`` directory (no auto-create)."""
    if base is None:
        base = Path.cwd()
    return base / ".wrap-cycler"


def default_config_path(base: Path | None = None) -> Path:
    return get_root_dir(base) / "config.yaml"


def default_keystore_dir(base: Path | None = None) -> Path:
    return get_root_dir(base) / "keystore"


def config_for_chain(name: str, **overrides: object) -> RunConfig:
    """Build a :class:`RunConfig` from a chain preset.

    Raises ``KeyError`` for unknown chain names.
    """
    chain = get_chain(name)
    data: dict[str, object] = {
        "chain": chain.name,
        "rpc_url": chain.rpc_url,
        "chain_id": chain.chain_id,
        "contract_address": chain.wrapped_token_address,
        "native_symbol": chain.native_symbol,
        "wrapped_symbol": chain.wrapped_symbol,
    }
    data.update({k: v for k, v in overrides.items() if v is not None})
    return RunConfig.model_validate(data)


def load_config(path: Path) -> RunConfig:
    """Load and validate a run configuration from a YAML file.

    Environment variable placeholders (``${VAR}``) are expanded before
    validation, so e.g. ``rpc_url: ${PLUME_RPC_URL}`` keeps provider API
    keys out of the file.
    """
    raw_text = path.read_text(encoding="utf-8")
    raw_data = yaml.safe_load(raw_text) or {}
    expanded = _expand_env_recursive(raw_data)
    return RunConfig.model_validate(expanded)


def save_config(config: RunConfig, path: Path) -> None:
    """Serialize a :class:`RunConfig` to a YAML file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    data = config.model_dump(mode="json")
    with open(path, "w", encoding="utf-8") as fh:
        yaml.dump(data, fh, default_flow_style=False, sort_keys=False)
