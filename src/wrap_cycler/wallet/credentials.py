"""Wallet credentials and the ``.env`` credential store.

The ``.env`` layout matches what ``wrap-cycler setup`` writes::

    WALLET_ADDRESSES=0xabc...,0xdef...
    PRIVATE_KEYS=0x111...,0x222...
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Sequence

from dotenv import dotenv_values
from eth_account import Account

from wrap_cycler.errors import CredentialError

ADDRESSES_VAR = "WALLET_ADDRESSES"
KEYS_VAR = "PRIVATE_KEYS"


@dataclass(frozen=True)
class WalletCredential:
    """A wallet's checksummed address and its signing key."""

    address: str
    signing_key: str = field(repr=False)


def _split(value: str | None) -> list[str]:
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


def credentials_from_keys(
    keys: Sequence[str],
    addresses: Optional[Sequence[str]] = None,
) -> list[WalletCredential]:
    """Build credentials from private keys, deriving each address.

    When *addresses* is given it must list the same wallets in the same
    order; a mismatch means the store was edited by hand and is rejected.
    """
    if not keys:
        raise CredentialError("No private keys configured.")
    if addresses and len(addresses) != len(keys):
        raise CredentialError(
            f"{len(addresses)} addresses but {len(keys)} private keys configured."
        )

    credentials: list[WalletCredential] = []
    for i, key in enumerate(keys):
        try:
            account = Account.from_key(key)
        except Exception as exc:
            raise CredentialError(f"Private key #{i + 1} is invalid: {exc}") from exc
        if addresses and addresses[i].lower() != account.address.lower():
            raise CredentialError(
                f"Wallet #{i + 1}: address {addresses[i]} does not match its "
                f"private key (derived {account.address})."
            )
        credentials.append(WalletCredential(address=account.address, signing_key=key))
    return credentials


def load_env_credentials(env_path: Path) -> list[WalletCredential]:
    """Load credentials from a ``.env`` file.

    Values missing from the file fall back to the process environment.
    """
    values = dotenv_values(env_path) if env_path.exists() else {}
    keys = _split(values.get(KEYS_VAR) or os.environ.get(KEYS_VAR))
    addresses = _split(values.get(ADDRESSES_VAR) or os.environ.get(ADDRESSES_VAR))
    return credentials_from_keys(keys, addresses or None)


def write_env_file(env_path: Path, credentials: Sequence[WalletCredential]) -> None:
    """Write *credentials* to *env_path*, replacing any previous file."""
    addresses = ",".join(c.address for c in credentials)
    keys = ",".join(c.signing_key for c in credentials)
    env_path.parent.mkdir(parents=True, exist_ok=True)
    env_path.write_text(
        f"{ADDRESSES_VAR}={addresses}\n{KEYS_VAR}={keys}\n",
        encoding="utf-8",
    )
