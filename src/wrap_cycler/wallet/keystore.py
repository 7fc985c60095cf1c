"""Encrypted keystore management using eth-account.

One V3 keystore file per wallet, named ``<NNN>-<address>.json`` where
``NNN`` is the import position, all encrypted with the same password so a
fleet can be unlocked with a single prompt. Wallets load in import order.
"""

from __future__ import annotations

import json
from pathlib import Path

from eth_account import Account
from web3 import Web3

from wrap_cycler.errors import CredentialError
from wrap_cycler.wallet.credentials import WalletCredential


def _import_position(path: Path) -> int:
    prefix, sep, _ = path.stem.partition("-")
    return int(prefix) if sep and prefix.isdigit() else 0


def _keystore_files(keystore_dir: Path) -> list[Path]:
    if not keystore_dir.is_dir():
        return []
    files = [p for p in keystore_dir.glob("*.json") if p.is_file()]
    return sorted(files, key=lambda p: (_import_position(p), p.name))


def import_key(keystore_dir: Path, private_key: str, password: str) -> str:
    """Encrypt *private_key* into a new keystore file after the existing ones.

    Returns
    -------
    str
        The checksummed address of the imported wallet.

    Raises
    ------
    FileExistsError
        If a keystore for this address already exists.
    CredentialError
        If the private key is malformed.
    """
    try:
        acct = Account.from_key(private_key)
    except Exception as exc:
        raise CredentialError(f"Invalid private key: {exc}") from exc

    existing = _keystore_files(keystore_dir)
    for path in existing:
        if path.stem.endswith(acct.address):
            raise FileExistsError(
                f"Keystore already exists at {path}. "
                "Delete it first if you want to re-import this wallet."
            )

    position = max((_import_position(p) for p in existing), default=0) + 1
    keystore_path = keystore_dir / f"{position:03d}-{acct.address}.json"
    encrypted = Account.encrypt(acct.key, password)
    keystore_dir.mkdir(parents=True, exist_ok=True)
    keystore_path.write_text(json.dumps(encrypted, indent=2), encoding="utf-8")
    return acct.address


def list_addresses(keystore_dir: Path) -> list[str]:
    """Read wallet addresses, in import order, without decrypting."""
    addresses = []
    for path in _keystore_files(keystore_dir):
        data = json.loads(path.read_text(encoding="utf-8"))
        raw_address = data.get("address", "")
        if not raw_address.startswith("0x"):
            raw_address = "0x" + raw_address
        addresses.append(Web3.to_checksum_address(raw_address))
    return addresses


def load_keystore_credentials(keystore_dir: Path, password: str) -> list[WalletCredential]:
    """Decrypt every keystore in *keystore_dir*, in import order.

    Raises
    ------
    CredentialError
        If the directory holds no keystores or the password is wrong for
        any of them.
    """
    files = _keystore_files(keystore_dir)
    if not files:
        raise CredentialError(f"No keystore files found in {keystore_dir}")

    credentials = []
    for path in files:
        data = json.loads(path.read_text(encoding="utf-8"))
        try:
            key = Account.decrypt(data, password)
        except Exception as exc:
            raise CredentialError(f"Failed to decrypt {path.name}: {exc}") from exc
        acct = Account.from_key(key)
        credentials.append(WalletCredential(address=acct.address, signing_key=Web3.to_hex(key)))
    return credentials
