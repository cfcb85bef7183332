import copy
from typing import Optional, Any
from collections.abc import Iterator, Mapping, MutableMapping
import orjson
from pydantic import ValidationError as PydanticValidationError
from .exceptions import CorruptContainer
from .keys import KeyRegistry
from .permissions import DEFAULT_CATALOG


DEFAULT_OPTIONS: dict[str, Any] = {
    'features': [],
    'net': 'testnet',
    'xpub': '',
    'derivation_path': '0/n',
    'installer_mode': 'docker',
    'devmode': False,
    'devregistry': False,
    'username': 'cyphernode',
    'docker_mode': 'compose',
    'bitcoin_rpcuser': 'bitcoin',
    'bitcoin_rpcpassword': 'CHANGEME',
    'bitcoin_uacomment': '',
    'bitcoin_prune': False,
    'bitcoin_datapath': '',
    'bitcoin_node_ip': '',
    'bitcoin_mode': 'internal',
    'bitcoin_expose': False,
    'auth_apiproperties': DEFAULT_CATALOG.to_properties(),
    'auth_ipwhitelist': '',
    'auth_keys': {'configEntries': [], 'clientInformation': []},
    'proxy_datapath': '',
    'lightning_implementation': 'c-lightning',
    'lightning_datapath': '',
    'lightning_nodename': '',
    'lightning_nodecolor': '',
}

AUTH_KEYS = 'auth_keys'
RECREATE_KEYS = 'auth_recreatekeys'
CLIENT_KEYS_PASSWORD = 'auth_clientkeyspassword'


class ConfigurationDocument(MutableMapping[str, Any]):
    """Configuration dict-like object.

    Holds the installer options persisted inside the config container.
    Missing options are never an error: ``assign_defaults()`` fills them in.
    Answers collected from the operator are laid over the document with
    ``merge()``, which never erases a stored value it was not given.
    """

    def __init__(
        self,
        data: Optional[Mapping[str, Any]] = None,
        *,
        defaults: bool = True
    ) -> None:
        self._data: dict[str, Any] = {}
        self._changed = False
        if data is not None:
            self._data.update(copy.deepcopy(dict(data)))
        if defaults:
            self.assign_defaults()

    def __repr__(self) -> str:
        # values may hold passwords and keys
        return (
            f'<ConfigurationDocument [changed:{self._changed}] '
            f'options={sorted(self._data)}>'
        )

    # --- Defaults and merging ---

    def assign_defaults(self) -> None:
        """Inject every option missing from the document with its default."""
        for name, value in DEFAULT_OPTIONS.items():
            if name not in self._data:
                self._data[name] = copy.deepcopy(value)
                self._changed = True

    def merge(self, answers: Mapping[str, Any]) -> None:
        """Overlay ``answers`` onto the document.

        Only keys present in ``answers`` are touched; a value of None counts
        as "not answered" and leaves the stored value alone.
        """
        for name, value in answers.items():
            if value is None:
                continue
            if name == AUTH_KEYS and isinstance(value, KeyRegistry):
                value = value.to_document()
            if self._data.get(name, object()) != value:
                self._data[name] = copy.deepcopy(value)
                self._changed = True

    def is_checked(self, name: str, value: Any) -> bool:
        """True when ``value`` is one of the entries of list option ``name``."""
        option = self._data.get(name)
        return bool(option) and value in option

    # --- Key registry ---

    @property
    def auth_keys(self) -> KeyRegistry:
        raw = self._data.get(AUTH_KEYS) or {}
        try:
            return KeyRegistry.model_validate(raw)
        except PydanticValidationError as err:
            raise CorruptContainer(f'{AUTH_KEYS} is malformed') from err

    @auth_keys.setter
    def auth_keys(self, registry: KeyRegistry) -> None:
        self._data[AUTH_KEYS] = registry.to_document()
        self._changed = True

    @property
    def has_auth_keys(self) -> bool:
        return not self.auth_keys.empty

    # --- Properties ---

    @property
    def is_changed(self) -> bool:
        return self._changed

    @is_changed.setter
    def is_changed(self, value: bool) -> None:
        self._changed = value

    # --- Magic Methods ---

    def __len__(self) -> int:
        return len(self._data)

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self._data[key] = value
        self._changed = True

    def __delitem__(self, key: str) -> None:
        del self._data[key]
        self._changed = True

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ConfigurationDocument):
            return self._data == other._data
        if isinstance(other, Mapping):
            return self._data == dict(other)
        return NotImplemented

    # --- Serialization ---

    def encode(self) -> bytes:
        """encode

            Encode the document as indented JSON.
        Returns:
            bytes: json version of the document
        """
        return orjson.dumps(
            self._data, option=orjson.OPT_INDENT_2 | orjson.OPT_SORT_KEYS
        )

    @classmethod
    def decode(cls, data: bytes, *, defaults: bool = True) -> 'ConfigurationDocument':
        """decode.

            Rebuild a document from its JSON form.
        Args:
            data (bytes): document body read from the container.

        Raises:
            CorruptContainer: body is not a JSON object.

        Returns:
            ConfigurationDocument: recovered document.
        """
        try:
            parsed = orjson.loads(data)
        except orjson.JSONDecodeError as err:
            raise CorruptContainer('config document is not valid JSON') from err
        if not isinstance(parsed, dict):
            raise CorruptContainer('config document is not a JSON object')
        document = cls(parsed, defaults=defaults)
        document.is_changed = False
        return document
