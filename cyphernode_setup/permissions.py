"""
Permission Catalog — which group an API action belongs to.

The catalog is fixed at load time. It is rendered into the gatekeeper's
``api.properties`` format (``action_<name>=<group>``) and stored in the
configuration document as ``auth_apiproperties``.
"""
from types import MappingProxyType
from collections.abc import Iterator, Mapping
from typing import Optional

from .exceptions import ValidationError

WATCHER = "watcher"
SPENDER = "spender"
ADMIN = "admin"
INTERNAL = "internal"

_ACTION_PREFIX = "action_"

DEFAULT_ACTIONS = (
    ("watch", WATCHER),
    ("unwatch", WATCHER),
    ("getactivewatches", WATCHER),
    ("getbestblockhash", WATCHER),
    ("getbestblockinfo", WATCHER),
    ("getblockinfo", WATCHER),
    ("gettransaction", WATCHER),
    ("ln_getinfo", WATCHER),
    ("ln_create_invoice", WATCHER),
    ("getbalance", SPENDER),
    ("getnewaddress", SPENDER),
    ("spend", SPENDER),
    ("addtobatch", SPENDER),
    ("batchspend", SPENDER),
    ("deriveindex", SPENDER),
    ("derivepubpath", SPENDER),
    ("ln_pay", SPENDER),
    ("ln_newaddr", SPENDER),
    ("conf", INTERNAL),
    ("executecallbacks", INTERNAL),
)


class PermissionCatalog(Mapping[str, str]):
    """Read-only ``action -> group`` table."""

    def __init__(self, entries=DEFAULT_ACTIONS):
        self._table = MappingProxyType(dict(entries))

    def __repr__(self) -> str:
        return f"<PermissionCatalog actions={len(self._table)} groups={self.groups()}>"

    def __getitem__(self, action: str) -> str:
        return self._table[action]

    def __iter__(self) -> Iterator[str]:
        return iter(self._table)

    def __len__(self) -> int:
        return len(self._table)

    def group_for(self, action: str) -> Optional[str]:
        """Return the group required for ``action``, or None if it is unknown."""
        return self._table.get(action)

    def actions_for(self, group: str) -> list[str]:
        return [action for action, g in self._table.items() if g == group]

    def groups(self) -> list[str]:
        """Distinct groups, in first-seen order."""
        return list(dict.fromkeys(self._table.values()))

    def to_properties(self) -> str:
        """Render the catalog as ``action_<name>=<group>`` lines."""
        lines = [f"{_ACTION_PREFIX}{action}={group}" for action, group in self._table.items()]
        return "\n" + "\n".join(lines) + "\n"

    @classmethod
    def from_properties(cls, text: str) -> "PermissionCatalog":
        """Parse ``action_<name>=<group>`` lines back into a catalog.

        Raises:
            ValidationError: On a line that is not a well-formed action entry.
        """
        entries = []
        for lineno, raw in enumerate(text.splitlines(), start=1):
            line = raw.strip()
            if not line:
                continue
            name, sep, group = line.partition("=")
            if not sep or not name.startswith(_ACTION_PREFIX) or not group:
                raise ValidationError(
                    f"Malformed action entry on line {lineno}: {line!r}",
                    field="auth_apiproperties",
                )
            entries.append((name[len(_ACTION_PREFIX):], group))
        return cls(entries)


DEFAULT_CATALOG = PermissionCatalog()
