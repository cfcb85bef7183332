"""Vault — Password-derived encrypted containers.

Security Note (Threat Model):
    Documents are decrypted in process memory while a provisioning session
    runs. The password is stretched with PBKDF2 on every open and write;
    an attacker holding the container file must brute-force that derivation.
    Protecting the process memory itself is out of scope.
"""

from .container import Vault, Container
from .config import VaultConfig

__all__ = [
    "Vault",
    "Container",
    "VaultConfig",
]
