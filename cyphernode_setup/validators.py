"""
Answer Validators — rules applied to operator input before it is merged.

Every validator returns the (possibly normalized) value or raises
``ValidationError`` carrying a message fit to show next to the prompt.
"""
import re
import ipaddress
from typing import Any, Callable, Mapping

import base58

from .exceptions import ValidationError

_USERNAME = re.compile(r"^[A-Za-z0-9._-]+$")
_UA_COMMENT = re.compile(r"^[A-Za-z0-9 .,:_?/@-]+$")
_HEXADECIMAL = re.compile(r"^(0x|0h)?[0-9A-Fa-f]+$")
_FQDN_LABEL = re.compile(r"^(?!-)[A-Za-z0-9-]{1,63}(?<!-)$")
_TLD = re.compile(r"^([A-Za-z]{2,}|xn--[A-Za-z0-9-]+)$")

EXTENDED_KEY_LENGTH = 78

Validator = Callable[[Any], Any]


def validate_not_empty(value: Any) -> Any:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError("Please enter something")
    return value


def _text(value: Any) -> str:
    # answers files may carry numbers or booleans
    return "" if value is None else str(value)


def validate_username(value: Any) -> str:
    value = _text(value)
    if not _USERNAME.match(value):
        raise ValidationError("Choose a valid username")
    return value


def validate_comment(value: Any) -> str:
    value = _text(value)
    if not _UA_COMMENT.match(value):
        raise ValidationError(
            "Unsafe characters in UA comment. "
            "Please use only a-z, A-Z, 0-9, SPACE and .,:_?@/-"
        )
    return value


def validate_color(value: Any) -> str:
    value = _text(value)
    if not _HEXADECIMAL.match(value):
        raise ValidationError("Not a hex color.")
    return value


def validate_xkey(value: str) -> str:
    """Check an extended public/private key (xpub, tpub, ...) by its Base58Check checksum."""
    try:
        payload = base58.b58decode_check(value.strip())
    except (ValueError, AttributeError) as err:
        raise ValidationError("Not an extended key.") from err
    if len(payload) != EXTENDED_KEY_LENGTH:
        raise ValidationError("Not an extended key.")
    return value.strip()


def _is_fqdn(host: str) -> bool:
    host = host.rstrip(".")
    if len(host) > 253:
        return False
    labels = host.split(".")
    if len(labels) < 2 or not _TLD.match(labels[-1]):
        return False
    return all(_FQDN_LABEL.match(label) for label in labels)


def validate_host(value: str) -> str:
    host = str(value).strip()
    try:
        ipaddress.ip_address(host)
        return host
    except ValueError:
        pass
    if not _is_fqdn(host):
        raise ValidationError("No IP address or fully qualified domain name")
    return host


def optional(validator: Validator) -> Validator:
    """Wrap ``validator`` so that empty input is accepted as-is."""
    def _optional(value: Any) -> Any:
        if value is None or value == "":
            return value
        return validator(value)
    _optional.__name__ = f"optional_{validator.__name__}"
    return _optional


ANSWER_VALIDATORS: dict[str, Validator] = {
    "username": validate_username,
    "bitcoin_uacomment": optional(validate_comment),
    "lightning_nodecolor": optional(validate_color),
    "xpub": optional(validate_xkey),
    "bitcoin_node_ip": optional(validate_host),
    "bitcoin_rpcuser": validate_not_empty,
    "bitcoin_rpcpassword": validate_not_empty,
}


def validate_answer(name: str, value: Any) -> Any:
    """Validate one answer; options without a rule pass through."""
    validator = ANSWER_VALIDATORS.get(name)
    if validator is None or value is None:
        return value
    try:
        return validator(value)
    except ValidationError as err:
        err.field = name
        raise


def validate_answers(answers: Mapping[str, Any]) -> dict[str, Any]:
    """Validate every answer of a property bag.

    Raises:
        ValidationError: On the first rejected answer; ``field`` names it.
    """
    return {name: validate_answer(name, value) for name, value in answers.items()}
