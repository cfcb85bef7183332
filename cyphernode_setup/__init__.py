"""Cyphernode Setup.

Encrypted configuration vault and API key provisioning for cyphernode.
"""
from .version import __version__
from .exceptions import (
    SetupError,
    VaultError,
    ContainerNotFound,
    WrongPassword,
    CorruptContainer,
    WriteFailure,
    EntropyUnavailable,
    ValidationError,
    SetupAborted,
)
from .permissions import PermissionCatalog, DEFAULT_CATALOG
from .keys import KeyIssuer, KeyMaterial, KeyRegistry
from .document import ConfigurationDocument, DEFAULT_OPTIONS
from .vault import Vault, VaultConfig
from .conf import SetupConfig
from .workflow import ProvisioningWorkflow, SessionContext, SessionState

__all__ = [
    "__version__",
    "SetupError",
    "VaultError",
    "ContainerNotFound",
    "WrongPassword",
    "CorruptContainer",
    "WriteFailure",
    "EntropyUnavailable",
    "ValidationError",
    "SetupAborted",
    "PermissionCatalog",
    "DEFAULT_CATALOG",
    "KeyIssuer",
    "KeyMaterial",
    "KeyRegistry",
    "ConfigurationDocument",
    "DEFAULT_OPTIONS",
    "Vault",
    "VaultConfig",
    "SetupConfig",
    "ProvisioningWorkflow",
    "SessionContext",
    "SessionState",
]
