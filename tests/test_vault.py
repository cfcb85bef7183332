"""
Tests for the Vault container.

Tests cover:
- Round-trip of documents under the right password
- Wrong password vs corrupt container detection
- Atomic writes and explicit deletion
- Cipher backends and header validation
"""
import os
import struct

import pytest

from cyphernode_setup.exceptions import (
    ContainerNotFound,
    CorruptContainer,
    WriteFailure,
    WrongPassword,
)
from cyphernode_setup.vault import Vault, VaultConfig
from cyphernode_setup.vault import crypto


DOC = b'{"net": "testnet", "features": ["lightning"]}'


def _flip(path, offset):
    blob = bytearray(path.read_bytes())
    blob[offset] ^= 0x01
    path.write_bytes(bytes(blob))


# --- Test Round-trip ---

class TestRoundTrip:

    def test_write_then_read(self, vault):
        vault.write_document("correct-horse", "config.json", DOC)
        container = vault.open("correct-horse")
        assert vault.read_document(container, "config.json") == DOC
        assert container.names() == ["config.json"]

    def test_rewrite_replaces_document(self, vault):
        vault.write_document("pw", "config.json", DOC)
        vault.write_document("pw", "config.json", b"second")
        assert vault.read_document(vault.open("pw"), "config.json") == b"second"

    def test_rewrite_under_new_password(self, vault):
        vault.write_document("old", "config.json", DOC)
        vault.write_document("new", "config.json", DOC)
        with pytest.raises(WrongPassword):
            vault.open("old")
        assert vault.read_document(vault.open("new"), "config.json") == DOC

    def test_unicode_password(self, vault):
        vault.write_document("pässwörd ✓", "keys.txt", b"001:ab")
        assert vault.read_document(vault.open("pässwörd ✓"), "keys.txt") == b"001:ab"

    def test_chacha20_backend(self, tmp_path):
        vault = Vault(tmp_path / "c.vault", VaultConfig(kdf_iterations=1000, cipher_backend="chacha20"))
        vault.write_document("pw", "doc", DOC)
        # reading does not depend on the configured backend
        reader = Vault(tmp_path / "c.vault", VaultConfig(kdf_iterations=1000))
        assert reader.read_document(reader.open("pw"), "doc") == DOC

    def test_ciphertext_differs_each_write(self, vault):
        vault.write_document("pw", "doc", DOC)
        first = vault.path.read_bytes()
        vault.write_document("pw", "doc", DOC)
        assert vault.path.read_bytes() != first

    def test_plaintext_not_on_disk(self, vault):
        vault.write_document("pw", "doc", DOC)
        assert b"testnet" not in vault.path.read_bytes()


# --- Test Failure Kinds ---

class TestFailureKinds:

    def test_missing_container(self, vault):
        assert vault.exists() is False
        with pytest.raises(ContainerNotFound):
            vault.open("pw")

    def test_missing_container_is_file_not_found(self, vault):
        with pytest.raises(FileNotFoundError):
            vault.open("pw")

    def test_wrong_password(self, vault):
        vault.write_document("correct-horse", "doc", DOC)
        with pytest.raises(WrongPassword) as exc:
            vault.open("battery-staple")
        assert exc.value.path == str(vault.path)

    def test_flipped_ciphertext_is_corrupt(self, vault):
        vault.write_document("pw", "doc", DOC)
        _flip(vault.path, os.path.getsize(vault.path) - 1)
        with pytest.raises(CorruptContainer):
            vault.open("pw")

    def test_flipped_salt_is_never_silently_read(self, vault):
        vault.write_document("pw", "doc", DOC)
        _flip(vault.path, 10)
        with pytest.raises((WrongPassword, CorruptContainer)):
            vault.open("pw")

    def test_flipped_verifier_is_wrong_password(self, vault):
        vault.write_document("pw", "doc", DOC)
        _flip(vault.path, 4 + 1 + 4 + crypto.SALT_SIZE)
        with pytest.raises(WrongPassword):
            vault.open("pw")

    def test_truncated_container(self, vault):
        vault.write_document("pw", "doc", DOC)
        blob = vault.path.read_bytes()
        vault.path.write_bytes(blob[:-5])
        with pytest.raises(CorruptContainer):
            vault.open("pw")
        vault.path.write_bytes(blob[:20])
        with pytest.raises(CorruptContainer):
            vault.open("pw")

    def test_bad_magic(self, vault):
        vault.write_document("pw", "doc", DOC)
        blob = vault.path.read_bytes()
        vault.path.write_bytes(b"7z\xbc\xaf" + blob[4:])
        with pytest.raises(CorruptContainer):
            vault.open("pw")

    def test_iteration_count_out_of_range(self, vault):
        vault.write_document("pw", "doc", DOC)
        blob = bytearray(vault.path.read_bytes())
        struct.pack_into("!I", blob, 5, 1)
        vault.path.write_bytes(bytes(blob))
        with pytest.raises(CorruptContainer):
            vault.open("pw")

    def test_missing_document_is_corrupt(self, vault):
        vault.write_document("pw", "keys.txt", DOC)
        container = vault.open("pw")
        with pytest.raises(CorruptContainer):
            vault.read_document(container, "config.json")

    def test_empty_document_round_trips(self, vault):
        vault.write_document("pw", "keys.txt", b"")
        assert vault.read_document(vault.open("pw"), "keys.txt") == b""

    def test_garbage_payload_is_corrupt(self, vault, vault_config):
        blob = crypto.seal(b"not json", "pw", vault_config.kdf_iterations)
        vault.path.write_bytes(blob)
        with pytest.raises(CorruptContainer):
            vault.open("pw")


# --- Test Writing ---

class TestWriting:

    def test_creates_parent_directory(self, tmp_path, vault_config):
        vault = Vault(tmp_path / "nested" / "dir" / "x.vault", vault_config)
        vault.write_document("pw", "doc", DOC)
        assert vault.exists()

    def test_no_temp_files_left(self, vault):
        vault.write_document("pw", "doc", DOC)
        assert [p.name for p in vault.path.parent.iterdir()] == [vault.path.name]

    def test_failed_write_keeps_previous_container(self, vault, monkeypatch):
        vault.write_document("pw", "doc", DOC)

        def broken_replace(src, dst):
            raise OSError("disk full")

        monkeypatch.setattr(os, "replace", broken_replace)
        with pytest.raises(WriteFailure):
            vault.write_document("pw", "doc", b"new content")
        monkeypatch.undo()

        assert vault.read_document(vault.open("pw"), "doc") == DOC
        assert [p.name for p in vault.path.parent.iterdir()] == [vault.path.name]

    def test_delete(self, vault):
        vault.write_document("pw", "doc", DOC)
        assert vault.delete() is True
        assert vault.exists() is False
        assert vault.delete() is False

    def test_repr_has_no_secrets(self, vault):
        assert "Vault" in repr(vault)


# --- Test Config ---

class TestVaultConfig:

    def test_defaults(self):
        config = VaultConfig()
        assert config.cipher_backend == "aesgcm"
        assert config.kdf_iterations >= 100_000

    def test_rejects_unknown_cipher(self):
        with pytest.raises(ValueError):
            VaultConfig(cipher_backend="rot13")

    def test_rejects_weak_iterations(self):
        with pytest.raises(ValueError):
            VaultConfig(kdf_iterations=10)

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("VAULT_KDF_ITERATIONS", "2000")
        monkeypatch.setenv("VAULT_CIPHER_BACKEND", "ChaCha20")
        config = VaultConfig.from_env()
        assert config.kdf_iterations == 2000
        assert config.cipher_backend == "chacha20"
