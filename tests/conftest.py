import pytest

from cyphernode_setup.conf import SetupConfig
from cyphernode_setup.vault import Vault, VaultConfig


class ScriptedPrompter:
    """Prompter replaying canned passwords and answers."""

    def __init__(self, passwords=(), answers=None):
        self.passwords = list(passwords)
        self.answers = dict(answers or {})
        self.messages = []
        self.asked = []

    async def ask_password(self, message: str) -> str:
        self.asked.append(message)
        if not self.passwords:
            raise AssertionError(f"unexpected password prompt: {message}")
        return self.passwords.pop(0)

    async def collect_answers(self, document):
        return dict(self.answers)

    async def notify(self, message: str) -> None:
        self.messages.append(message)


@pytest.fixture
def vault_config():
    """Cheap key stretching keeps the suite fast."""
    return VaultConfig(kdf_iterations=1000)


@pytest.fixture
def vault(tmp_path, vault_config):
    return Vault(tmp_path / "test.vault", vault_config)


@pytest.fixture
def setup_config(tmp_path, vault_config):
    return SetupConfig(destination=tmp_path, vault=vault_config)
