"""
Vault Crypto Core — Password key derivation, container sealing and serialization.

A container is a single sealed blob:

    [magic 4B "CNV1"][cipher_id 1B][iterations 4B uint32 BE][salt 16B]
    [verifier 32B][nonce 12B][encrypted_payload + tag 16B]

- Root key:   PBKDF2-HMAC-SHA256(password, salt, iterations)
- Verifier:   HKDF(root, "vault-verify")     → tells a wrong password apart
- Cipher key: HKDF(root, "vault-container")  → AEAD over the payload

Everything before the nonce is bound to the ciphertext as associated data,
so a tampered header never decrypts.

Security Note:
    Never log passwords, plaintext or ciphertext values.
    Salts and nonces are random; a fresh pair is drawn on every seal.
"""
import os
import hmac
import struct
import base64
import logging
from typing import Any

import orjson
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from cryptography.hazmat.primitives.ciphers.aead import AESGCM, ChaCha20Poly1305

from ..exceptions import CorruptContainer, EntropyUnavailable, WrongPassword
from .config import MAX_KDF_ITERATIONS, MIN_KDF_ITERATIONS

logger = logging.getLogger("cyphernode.vault")

MAGIC = b"CNV1"
SALT_SIZE = 16
VERIFIER_SIZE = 32
NONCE_SIZE = 12  # 96-bit nonce
TAG_SIZE = 16
KEY_LENGTH = 32  # AES-256

_HEADER = struct.Struct(f"!4sBI{SALT_SIZE}s{VERIFIER_SIZE}s")
HEADER_SIZE = _HEADER.size

_CIPHERS = {
    1: ("aesgcm", AESGCM),
    2: ("chacha20", ChaCha20Poly1305),
}
_CIPHER_IDS = {name: cipher_id for cipher_id, (name, _) in _CIPHERS.items()}

_DOCUMENTS_KEY = "documents"


def _random_bytes(size: int) -> bytes:
    try:
        return os.urandom(size)
    except (OSError, NotImplementedError) as err:
        raise EntropyUnavailable("Secure random source is unavailable") from err


# ---------------------------------------------------------------------------
# Key derivation
# ---------------------------------------------------------------------------

def derive_root_key(password: str, salt: bytes, iterations: int) -> bytes:
    """Stretch a password into a 32-byte root key using PBKDF2-HMAC-SHA256."""
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_LENGTH,
        salt=salt,
        iterations=iterations,
    )
    return kdf.derive(password.encode("utf-8"))


def derive_key(seed: bytes, context: str) -> bytes:
    """Derive a 32-byte subkey using HKDF-SHA256.

    Args:
        seed: Input key material (the password-derived root key).
        context: Context string for domain separation (e.g. "vault-verify").

    Returns:
        32-byte derived key.
    """
    hkdf = HKDF(
        algorithm=hashes.SHA256(),
        length=KEY_LENGTH,
        salt=None,  # root key is already salted by PBKDF2
        info=context.encode("utf-8"),
    )
    return hkdf.derive(seed)


def _split_keys(password: str, salt: bytes, iterations: int) -> tuple[bytes, bytes]:
    root = derive_root_key(password, salt, iterations)
    return derive_key(root, "vault-verify"), derive_key(root, "vault-container")


# ---------------------------------------------------------------------------
# Container sealing
# ---------------------------------------------------------------------------

def seal(
    plaintext: bytes,
    password: str,
    iterations: int,
    cipher_backend: str = "aesgcm",
) -> bytes:
    """Encrypt plaintext into a self-describing container blob.

    Args:
        plaintext: Payload to encrypt.
        password: Container password.
        iterations: PBKDF2 iteration count, recorded in the header.
        cipher_backend: "aesgcm" or "chacha20", recorded in the header.

    Returns:
        Sealed container bytes.
    """
    cipher_id = _CIPHER_IDS[cipher_backend]
    salt = _random_bytes(SALT_SIZE)
    verifier, key = _split_keys(password, salt, iterations)
    header = _HEADER.pack(MAGIC, cipher_id, iterations, salt, verifier)
    nonce = _random_bytes(NONCE_SIZE)
    cipher = _CIPHERS[cipher_id][1](key)
    return header + nonce + cipher.encrypt(nonce, plaintext, header)


def unseal(blob: bytes, password: str) -> bytes:
    """Decrypt a container blob.

    Args:
        blob: Sealed container bytes.
        password: Candidate password.

    Returns:
        Decrypted payload.

    Raises:
        WrongPassword: If the password verifier does not match.
        CorruptContainer: If the header is malformed or the payload fails
            authentication under the right password.
    """
    _min = HEADER_SIZE + NONCE_SIZE + TAG_SIZE
    if len(blob) < _min:
        raise CorruptContainer(
            f"container too short: {len(blob)} bytes (minimum {_min})"
        )
    magic, cipher_id, iterations, salt, verifier = _HEADER.unpack_from(blob)
    if magic != MAGIC:
        raise CorruptContainer("not a vault container (bad magic)")
    if cipher_id not in _CIPHERS:
        raise CorruptContainer(f"unknown cipher id {cipher_id}")
    if not MIN_KDF_ITERATIONS <= iterations <= MAX_KDF_ITERATIONS:
        raise CorruptContainer(f"iteration count out of range: {iterations}")

    candidate, key = _split_keys(password, salt, iterations)
    if not hmac.compare_digest(candidate, verifier):
        raise WrongPassword("password does not unlock this container")

    header = blob[:HEADER_SIZE]
    nonce = blob[HEADER_SIZE:HEADER_SIZE + NONCE_SIZE]
    ct = blob[HEADER_SIZE + NONCE_SIZE:]
    cipher = _CIPHERS[cipher_id][1](key)
    try:
        return cipher.decrypt(nonce, ct, header)
    except InvalidTag as err:
        raise CorruptContainer("container payload failed authentication") from err


# ---------------------------------------------------------------------------
# Payload serialization
# ---------------------------------------------------------------------------

def serialize_documents(documents: dict[str, bytes]) -> bytes:
    """Serialize named documents to bytes for sealing.

    Document bodies are base64-wrapped for a safe JSON round-trip.

    Returns:
        orjson-encoded bytes.
    """
    wrapped = {
        name: base64.b64encode(body).decode("ascii")
        for name, body in documents.items()
    }
    return orjson.dumps({_DOCUMENTS_KEY: wrapped})


def deserialize_documents(data: bytes) -> dict[str, bytes]:
    """Deserialize an unsealed payload back to named documents.

    Raises:
        CorruptContainer: If the payload is not a well-formed document map.
    """
    try:
        parsed: Any = orjson.loads(data)
        wrapped = parsed[_DOCUMENTS_KEY]
        return {
            str(name): base64.b64decode(body, validate=True)
            for name, body in wrapped.items()
        }
    except (orjson.JSONDecodeError, KeyError, TypeError, AttributeError, ValueError) as err:
        raise CorruptContainer("container payload is not a document map") from err
