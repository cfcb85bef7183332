"""
Setup Configuration — where containers live and how they are named.

Environment variables:
    CYPHERNODE_SETUP_DIR = <directory holding the containers> (default: cwd)
    CFG_PASSWORD         = <config container password, skips the prompt>
    VAULT_*              = see cyphernode_setup.vault.config
"""
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, SecretStr, field_validator

from .vault import VaultConfig

CONFIG_CONTAINER = "config.vault"
CONFIG_DOCUMENT = "config.json"
CLIENT_KEYS_CONTAINER = "clientKeys.vault"
CLIENT_KEYS_DOCUMENT = "keys.txt"


class SetupConfig(BaseModel):
    """Validated provisioning settings."""

    destination: Path = Field(default_factory=Path.cwd)
    config_container: str = CONFIG_CONTAINER
    config_document: str = CONFIG_DOCUMENT
    client_keys_container: str = CLIENT_KEYS_CONTAINER
    client_keys_document: str = CLIENT_KEYS_DOCUMENT
    vault: VaultConfig = Field(default_factory=VaultConfig)
    config_password: Optional[SecretStr] = None

    @field_validator("config_container", "config_document",
                     "client_keys_container", "client_keys_document")
    @classmethod
    def validate_plain_name(cls, v: str) -> str:
        """Container and document names are bare file names."""
        if not v or "/" in v or "\\" in v or v in (".", ".."):
            raise ValueError(f"Not a plain file name: {v!r}")
        return v

    @property
    def config_path(self) -> Path:
        return self.destination / self.config_container

    @property
    def client_keys_path(self) -> Path:
        return self.destination / self.client_keys_container

    @classmethod
    def from_env(cls, destination: Optional[Path] = None) -> "SetupConfig":
        """Create SetupConfig by loading values from environment.

        Returns:
            Populated SetupConfig instance.
        """
        if destination is None:
            destination = Path(os.environ.get("CYPHERNODE_SETUP_DIR") or Path.cwd())
        password = os.environ.get("CFG_PASSWORD") or None
        return cls(
            destination=destination,
            vault=VaultConfig.from_env(),
            config_password=password,
        )
