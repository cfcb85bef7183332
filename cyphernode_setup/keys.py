"""
API Keys — issuance and rendering of gatekeeper credentials.

Each key is a 32-byte secret drawn from the ``secrets`` module, bound to an
id and a set of permission groups. A key renders to two lines:

- the gatekeeper entry:  kapi_id="003";kapi_groups="watcher,spender,admin";kapi_key="<hex>"
- the client line:       003:<hex>

Security Note:
    Never log secrets or rendered lines. Only log key ids and groups.
"""
import re
import secrets
import logging
from typing import Callable, Iterable, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .exceptions import EntropyUnavailable, ValidationError
from .permissions import WATCHER, SPENDER, ADMIN

logger = logging.getLogger("cyphernode.keys")

SECRET_LENGTH = 32

DEFAULT_HIERARCHY = (
    ("001", (WATCHER,)),
    ("002", (WATCHER, SPENDER)),
    ("003", (WATCHER, SPENDER, ADMIN)),
)

_CLIENT_LINE = re.compile(r"^(?P<id>[A-Za-z0-9_-]+):(?P<secret>[0-9a-f]+)$")


class KeyMaterial(BaseModel):
    """One issued credential. Immutable: rotation issues new instances."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1, pattern=r"^[A-Za-z0-9_-]+$")
    groups: tuple[str, ...] = Field(min_length=1)
    secret: bytes = Field(min_length=SECRET_LENGTH, max_length=SECRET_LENGTH)

    @field_validator("groups")
    @classmethod
    def unique_groups(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        if len(set(v)) != len(v):
            raise ValueError(f"Duplicate groups: {v}")
        return v

    def __repr__(self) -> str:
        return f"<KeyMaterial id={self.id} groups={list(self.groups)}>"

    __str__ = __repr__

    @property
    def config_entry(self) -> str:
        return render_config_entry(self)

    @property
    def client_information(self) -> str:
        return render_client_information(self)


def render_config_entry(key: KeyMaterial) -> str:
    """Render the gatekeeper line binding a key id to its groups and secret."""
    return (
        f'kapi_id="{key.id}";'
        f'kapi_groups="{",".join(key.groups)}";'
        f'kapi_key="{key.secret.hex()}"'
    )


def render_client_information(key: KeyMaterial) -> str:
    """Render the distributable ``id:secret`` line."""
    return f"{key.id}:{key.secret.hex()}"


def parse_client_information(line: str) -> tuple[str, str]:
    """Split a distributable line back into ``(id, hex_secret)``.

    Raises:
        ValidationError: If the line is not in ``id:secret`` form.
    """
    match = _CLIENT_LINE.match(line.strip())
    if not match:
        raise ValidationError("Not a client key line", field="clientInformation")
    return match.group("id"), match.group("secret")


class KeyRegistry(BaseModel):
    """Gatekeeper entries and client lines, position-correlated."""

    model_config = ConfigDict(populate_by_name=True)

    config_entries: list[str] = Field(default_factory=list, alias="configEntries")
    client_information: list[str] = Field(default_factory=list, alias="clientInformation")

    @model_validator(mode="after")
    def validate_pairing(self) -> "KeyRegistry":
        """Both sequences must describe the same keys, one per position."""
        if len(self.config_entries) != len(self.client_information):
            raise ValueError(
                f"configEntries ({len(self.config_entries)}) and clientInformation "
                f"({len(self.client_information)}) must have the same length"
            )
        return self

    def __len__(self) -> int:
        return len(self.config_entries)

    @property
    def empty(self) -> bool:
        return not self.config_entries

    @classmethod
    def from_keys(cls, keys: Iterable[KeyMaterial]) -> "KeyRegistry":
        keys = list(keys)
        return cls(
            config_entries=[render_config_entry(k) for k in keys],
            client_information=[render_client_information(k) for k in keys],
        )

    def to_document(self) -> dict:
        return self.model_dump(by_alias=True)


class KeyIssuer:
    """Issues API keys from a cryptographically secure random source.

    ``token_bytes`` defaults to :func:`secrets.token_bytes`; there is no
    fallback to a non-cryptographic generator.
    """

    def __init__(self, token_bytes: Optional[Callable[[int], bytes]] = None):
        self._token_bytes = token_bytes or secrets.token_bytes

    def _new_secret(self) -> bytes:
        try:
            secret = self._token_bytes(SECRET_LENGTH)
        except (OSError, NotImplementedError) as err:
            raise EntropyUnavailable("Secure random source is unavailable") from err
        if not isinstance(secret, bytes) or len(secret) != SECRET_LENGTH:
            raise EntropyUnavailable("Secure random source returned a short read")
        return secret

    def issue(self, key_id: str, groups: Iterable[str]) -> KeyMaterial:
        """Generate a new key for ``key_id`` bound to ``groups``.

        Raises:
            EntropyUnavailable: If the random source fails.
        """
        key = KeyMaterial(id=key_id, groups=tuple(groups), secret=self._new_secret())
        logger.debug("Issued key id=%s groups=%s", key.id, ",".join(key.groups))
        return key

    def issue_registry(self, layout: Iterable[tuple[str, Iterable[str]]]) -> KeyRegistry:
        """Issue one fresh key per ``(id, groups)`` pair into a new registry."""
        return KeyRegistry.from_keys(self.issue(key_id, groups) for key_id, groups in layout)

    def issue_default_hierarchy(self) -> KeyRegistry:
        """Issue the three bootstrap keys: watcher ⊂ spender ⊂ admin."""
        registry = self.issue_registry(DEFAULT_HIERARCHY)
        logger.info("Issued default key hierarchy (%d keys)", len(registry))
        return registry
