"""
Setup Exceptions — failure taxonomy for vault, key issuance and provisioning.

``WrongPassword`` and ``ValidationError`` are recoverable (the caller
re-prompts). ``CorruptContainer``, ``WriteFailure`` and
``EntropyUnavailable`` are fatal for the session. ``ContainerNotFound`` is
not a failure at all: it selects the first-run path.
"""


class SetupError(Exception):
    """Base class for every error raised by cyphernode_setup."""


class VaultError(SetupError):
    """Base class for container-level errors."""

    def __init__(self, message: str, path: str = None):
        super().__init__(message)
        self.path = path


class ContainerNotFound(VaultError, FileNotFoundError):
    """The container file does not exist yet."""


class WrongPassword(VaultError):
    """The supplied password does not unlock the container."""


class CorruptContainer(VaultError):
    """The container unlocked (or could not be parsed) but its content is unusable."""


class WriteFailure(VaultError):
    """The container could not be written; any previous container is untouched."""


class EntropyUnavailable(SetupError):
    """The secure random source failed; no credential is issued."""


class ValidationError(SetupError, ValueError):
    """A boundary value was rejected. The message is meant for the operator."""

    def __init__(self, message: str, field: str = None):
        super().__init__(message)
        self.field = field


class SetupAborted(SetupError):
    """The operator aborted the session before anything was persisted."""
