"""
Vault — Password-protected container file holding named documents.

Provides the public API for a single container on disk:
- ``open(password)`` — unlock the container and return its documents
- ``read_document(container, name)`` — pick one document out of an open container
- ``write_document(password, name, data)`` — atomically (re)write the container
- ``delete()`` / ``exists()`` — explicit housekeeping used by password rotation

Security Note:
    The password is only held for the duration of a call. It is never stored
    on the instance, logged, or written to disk. Concurrent access to the same
    container from several processes is undefined behaviour.
"""
import os
import logging
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Optional, Union

from ..exceptions import ContainerNotFound, CorruptContainer, WriteFailure, VaultError
from .config import VaultConfig
from .crypto import seal, unseal, serialize_documents, deserialize_documents

logger = logging.getLogger("cyphernode.vault")


@dataclass(frozen=True)
class Container:
    """Unlocked content of a container file."""

    path: Path
    documents: Mapping[str, bytes] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "documents", MappingProxyType(dict(self.documents)))

    def names(self) -> list[str]:
        return list(self.documents.keys())


class Vault:
    """Encrypted container bound to one file path.

    Every write re-seals the whole container under the password given to
    that call; there is no incremental append. The Vault never deletes a
    container on its own: rotating the password is done by the caller with
    an explicit ``delete()`` followed by ``write_document()``.
    """

    def __init__(self, path: Union[str, Path], config: Optional[VaultConfig] = None):
        self._path = Path(path)
        self._config = config or VaultConfig()

    def __repr__(self) -> str:
        return f"<Vault path={str(self._path)!r} cipher={self._config.cipher_backend}>"

    @property
    def path(self) -> Path:
        return self._path

    def exists(self) -> bool:
        return self._path.is_file()

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    def open(self, password: str) -> Container:
        """Unlock the container.

        Args:
            password: Container password.

        Returns:
            The unlocked Container.

        Raises:
            ContainerNotFound: If the file does not exist (first run).
            WrongPassword: If the password does not unlock the container.
            CorruptContainer: If the container cannot be decoded.
        """
        try:
            blob = self._path.read_bytes()
        except FileNotFoundError as err:
            raise ContainerNotFound(
                f"No container at {self._path}", path=str(self._path)
            ) from err
        except OSError as err:
            raise CorruptContainer(
                f"Container {self._path} is unreadable: {err}", path=str(self._path)
            ) from err
        try:
            documents = deserialize_documents(unseal(blob, password))
        except VaultError as err:
            err.path = str(self._path)
            logger.warning("Vault open failed: path=%s reason=%s", self._path, type(err).__name__)
            raise
        logger.debug("Vault opened: path=%s documents=%s", self._path, sorted(documents))
        return Container(path=self._path, documents=documents)

    def read_document(self, container: Container, name: str) -> bytes:
        """Return one document from an unlocked container.

        Raises:
            CorruptContainer: If the document is absent.
        """
        body = container.documents.get(name)
        if body is None:
            raise CorruptContainer(
                f"Document {name!r} is missing from {container.path}",
                path=str(container.path),
            )
        return body

    # ------------------------------------------------------------------
    # Writing
    # ------------------------------------------------------------------

    def write_document(self, password: str, name: str, data: bytes) -> None:
        """Seal ``data`` as the only document of the container and persist it.

        The sealed bytes go to a temporary sibling file which replaces the
        target only once fully flushed, so a failed write leaves any
        previous container readable.

        Raises:
            WriteFailure: If the container could not be written.
        """
        blob = seal(
            serialize_documents({name: data}),
            password,
            self._config.kdf_iterations,
            self._config.cipher_backend,
        )
        tmp_path = None
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                prefix=f".{self._path.name}.", suffix=".tmp", dir=self._path.parent,
            )
            with os.fdopen(fd, "wb") as handle:
                handle.write(blob)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_path, self._path)
        except OSError as err:
            if tmp_path is not None and os.path.exists(tmp_path):
                os.unlink(tmp_path)
            logger.error("Vault write failed: path=%s error=%s", self._path, err)
            raise WriteFailure(
                f"Container {self._path} was not written: {err}", path=str(self._path)
            ) from err
        logger.debug("Vault written: path=%s document=%s", self._path, name)

    def delete(self) -> bool:
        """Remove the container file.

        Returns:
            True if a file was removed, False if there was none.

        Raises:
            WriteFailure: If the file exists but cannot be removed.
        """
        try:
            self._path.unlink()
        except FileNotFoundError:
            return False
        except OSError as err:
            raise WriteFailure(
                f"Container {self._path} could not be deleted: {err}", path=str(self._path)
            ) from err
        logger.info("Vault deleted: path=%s", self._path)
        return True
