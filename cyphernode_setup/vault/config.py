"""
Vault Configuration — validated settings for password-derived containers.

Reads optional overrides from environment variables:
    VAULT_KDF_ITERATIONS = <integer PBKDF2 iteration count>
    VAULT_CIPHER_BACKEND = aesgcm | chacha20

Security Note:
    Passwords are never part of the vault configuration. They are passed
    per call and dropped as soon as the call returns.
"""
import os
import logging

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger("cyphernode.vault")

DEFAULT_KDF_ITERATIONS = 390_000
MIN_KDF_ITERATIONS = 1_000
MAX_KDF_ITERATIONS = 10_000_000

CIPHER_BACKENDS = ("aesgcm", "chacha20")


def get_kdf_iterations() -> int:
    """Read the PBKDF2 iteration count from VAULT_KDF_ITERATIONS.

    Returns:
        Iteration count, or the default when the variable is unset.

    Raises:
        ValueError: If the value is not a valid integer.
    """
    raw = os.environ.get("VAULT_KDF_ITERATIONS")
    if raw is None:
        return DEFAULT_KDF_ITERATIONS
    return int(raw)


class VaultConfig(BaseModel):
    """Validated vault configuration."""

    kdf_iterations: int = Field(
        default=DEFAULT_KDF_ITERATIONS,
        ge=MIN_KDF_ITERATIONS,
        le=MAX_KDF_ITERATIONS,
    )
    cipher_backend: str = Field(default="aesgcm")

    @field_validator("cipher_backend")
    @classmethod
    def validate_cipher(cls, v: str) -> str:
        """Validate cipher backend is supported."""
        v = v.lower()
        if v not in CIPHER_BACKENDS:
            raise ValueError(f"Unsupported cipher backend: {v}")
        return v

    @classmethod
    def from_env(cls) -> "VaultConfig":
        """Create VaultConfig by loading values from environment.

        Returns:
            Populated VaultConfig instance.
        """
        config = cls(
            kdf_iterations=get_kdf_iterations(),
            cipher_backend=os.environ.get("VAULT_CIPHER_BACKEND", "aesgcm"),
        )
        logger.debug(
            "Vault config: cipher=%s kdf_iterations=%d",
            config.cipher_backend, config.kdf_iterations,
        )
        return config
