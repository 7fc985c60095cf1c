"""Tests for the .env and keystore credential stores."""
from __future__ import annotations

import pytest
from eth_account import Account

from conftest import TEST_KEYS
from wrap_cycler.errors import CredentialError
from wrap_cycler.wallet.credentials import (
    WalletCredential,
    credentials_from_keys,
    load_env_credentials,
    write_env_file,
)
from wrap_cycler.wallet.keystore import import_key, list_addresses, load_keystore_credentials

ADDRESSES = [Account.from_key(k).address for k in TEST_KEYS]


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    monkeypatch.delenv("PRIVATE_KEYS", raising=False)
    monkeypatch.delenv("WALLET_ADDRESSES", raising=False)


class TestCredentialsFromKeys:
    def test_addresses_are_derived(self):
        creds = credentials_from_keys(TEST_KEYS)
        assert [c.address for c in creds] == ADDRESSES
        assert [c.signing_key for c in creds] == TEST_KEYS

    def test_matching_addresses_accepted_case_insensitively(self):
        creds = credentials_from_keys(TEST_KEYS[:1], [ADDRESSES[0].lower()])
        assert creds[0].address == ADDRESSES[0]

    def test_empty(self):
        with pytest.raises(CredentialError, match="No private keys"):
            credentials_from_keys([])

    def test_count_mismatch(self):
        with pytest.raises(CredentialError, match="2 addresses but 1 private keys"):
            credentials_from_keys(TEST_KEYS[:1], ADDRESSES[:2])

    def test_address_mismatch(self):
        with pytest.raises(CredentialError, match="does not match"):
            credentials_from_keys(TEST_KEYS[:2], [ADDRESSES[1], ADDRESSES[0]])

    def test_invalid_key(self):
        with pytest.raises(CredentialError, match="Private key #1 is invalid"):
            credentials_from_keys(["0xnothex"])

    def test_signing_key_not_in_repr(self):
        cred = WalletCredential(address=ADDRESSES[0], signing_key=TEST_KEYS[0])
        assert TEST_KEYS[0] not in repr(cred)


class TestEnvStore:
    def test_write_then_load(self, tmp_path):
        env = tmp_path / ".env"
        write_env_file(env, credentials_from_keys(TEST_KEYS))

        text = env.read_text(encoding="utf-8")
        assert text.startswith(f"WALLET_ADDRESSES={','.join(ADDRESSES)}\n")
        assert f"PRIVATE_KEYS={','.join(TEST_KEYS)}" in text

        creds = load_env_credentials(env)
        assert [c.address for c in creds] == ADDRESSES

    def test_whitespace_and_blank_entries_ignored(self, tmp_path):
        env = tmp_path / ".env"
        env.write_text(f"PRIVATE_KEYS= {TEST_KEYS[0]} , ,{TEST_KEYS[1]}\n", encoding="utf-8")
        creds = load_env_credentials(env)
        assert [c.address for c in creds] == ADDRESSES[:2]

    def test_falls_back_to_process_environment(self, tmp_path, monkeypatch):
        monkeypatch.setenv("PRIVATE_KEYS", TEST_KEYS[2])
        creds = load_env_credentials(tmp_path / "missing.env")
        assert [c.address for c in creds] == [ADDRESSES[2]]

    def test_nothing_configured(self, tmp_path):
        with pytest.raises(CredentialError):
            load_env_credentials(tmp_path / "missing.env")

    def test_mismatched_file_rejected(self, tmp_path):
        env = tmp_path / ".env"
        env.write_text(
            f"WALLET_ADDRESSES={ADDRESSES[0]}\nPRIVATE_KEYS={TEST_KEYS[0]},{TEST_KEYS[1]}\n",
            encoding="utf-8",
        )
        with pytest.raises(CredentialError):
            load_env_credentials(env)


class TestKeystore:
    def test_import_list_load(self, tmp_path):
        keystore = tmp_path / "keystore"
        assert import_key(keystore, TEST_KEYS[1], "pw") == ADDRESSES[1]
        assert import_key(keystore, TEST_KEYS[0], "pw") == ADDRESSES[0]

        assert list_addresses(keystore) == [ADDRESSES[1], ADDRESSES[0]]

        creds = load_keystore_credentials(keystore, "pw")
        assert [c.address for c in creds] == [ADDRESSES[1], ADDRESSES[0]]
        by_address = {c.address: c.signing_key for c in creds}
        assert by_address[ADDRESSES[0]] == TEST_KEYS[0]
        assert by_address[ADDRESSES[1]] == TEST_KEYS[1]

    @pytest.mark.parametrize("order", [(0, 1, 2), (2, 1, 0), (1, 2, 0)])
    def test_wallets_load_in_import_order(self, tmp_path, order):
        for i in order:
            import_key(tmp_path, TEST_KEYS[i], "pw")

        expected = [ADDRESSES[i] for i in order]
        assert list_addresses(tmp_path) == expected
        assert [c.address for c in load_keystore_credentials(tmp_path, "pw")] == expected

    def test_files_are_numbered_by_import_position(self, tmp_path):
        import_key(tmp_path, TEST_KEYS[2], "pw")
        import_key(tmp_path, TEST_KEYS[0], "pw")
        (tmp_path / f"001-{ADDRESSES[2]}.json").unlink()
        import_key(tmp_path, TEST_KEYS[1], "pw")

        names = sorted(p.name for p in tmp_path.glob("*.json"))
        assert names == [f"002-{ADDRESSES[0]}.json", f"003-{ADDRESSES[1]}.json"]
        assert list_addresses(tmp_path) == [ADDRESSES[0], ADDRESSES[1]]

    def test_duplicate_import_rejected(self, tmp_path):
        import_key(tmp_path, TEST_KEYS[0], "pw")
        with pytest.raises(FileExistsError):
            import_key(tmp_path, TEST_KEYS[0], "pw")

    def test_invalid_key_rejected(self, tmp_path):
        with pytest.raises(CredentialError):
            import_key(tmp_path, "not-a-key", "pw")

    def test_wrong_password(self, tmp_path):
        import_key(tmp_path, TEST_KEYS[0], "right")
        with pytest.raises(CredentialError, match="Failed to decrypt"):
            load_keystore_credentials(tmp_path, "wrong")

    def test_missing_directory(self, tmp_path):
        assert list_addresses(tmp_path / "absent") == []
        with pytest.raises(CredentialError, match="No keystore files"):
            load_keystore_credentials(tmp_path / "absent", "pw")
