"""
Vault Crypto Core — Key derivation, envelope encryption and serialization.

Implements the single-envelope encryption used by the BYOK vault:
    PBKDF2-HMAC-SHA256(passphrase, salt) → AES-256-GCM → base64([salt|nonce|payload])

The whole provider → secret map is sealed into one envelope; every call to
``encrypt_envelope`` draws a fresh salt and nonce, so sealing an unchanged
map still produces a different token.

Security Note:
    Never log plaintext, tokens or passphrases.
    Nonces are random 96-bit; collision probability negligible under normal usage.
"""
import os
import base64
import binascii
import logging
from typing import Any

import orjson
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from ..exceptions import FormatError, DecryptionFailure

logger = logging.getLogger("navigator.byok")

SALT_SIZE = 16  # 128-bit salt
NONCE_SIZE = 12  # 96-bit nonce
TAG_SIZE = 16  # GCM tag
KEY_LENGTH = 32  # AES-256
KDF_ITERATIONS = 100_000


# ---------------------------------------------------------------------------
# Key derivation
# ---------------------------------------------------------------------------

def derive_key(
    passphrase: str,
    salt: bytes,
    iterations: int = KDF_ITERATIONS,
) -> bytes:
    """Derive a 32-byte encryption key using PBKDF2-HMAC-SHA256.

    Args:
        passphrase: Passphrase (explicit or fingerprint) protecting the vault.
        salt: Random 16-byte salt stored in front of the envelope.
        iterations: PBKDF2 rounds, never below ``KDF_ITERATIONS``.

    Returns:
        32-byte derived key.

    Raises:
        FormatError: If salt is not exactly 16 bytes or iterations are too low.
    """
    if not isinstance(salt, (bytes, bytearray)) or len(salt) != SALT_SIZE:
        raise FormatError(
            f"salt must be exactly {SALT_SIZE} bytes"
        )
    if iterations < KDF_ITERATIONS:
        raise FormatError(
            f"iterations must be at least {KDF_ITERATIONS}, got {iterations}"
        )
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_LENGTH,
        salt=bytes(salt),
        iterations=iterations,
    )
    return kdf.derive(passphrase.encode("utf-8"))


# ---------------------------------------------------------------------------
# Envelope encryption
# ---------------------------------------------------------------------------

def encrypt_envelope(
    plaintext: bytes,
    passphrase: str,
    iterations: int = KDF_ITERATIONS,
) -> str:
    """Seal plaintext into a self-describing text token.

    Format: base64([salt 16B][nonce 12B][encrypted_payload + GCM_tag 16B])

    Args:
        plaintext: Data to encrypt.
        passphrase: Passphrase used for key derivation.
        iterations: PBKDF2 rounds.

    Returns:
        ASCII token suitable for any text storage.
    """
    salt = os.urandom(SALT_SIZE)
    nonce = os.urandom(NONCE_SIZE)
    key = derive_key(passphrase, salt, iterations)
    ct = AESGCM(key).encrypt(nonce, plaintext, None)
    return base64.b64encode(salt + nonce + ct).decode("ascii")


def decrypt_envelope(
    token: str,
    passphrase: str,
    iterations: int = KDF_ITERATIONS,
) -> bytes:
    """Open a token produced by ``encrypt_envelope``.

    Every failure mode (bad base64, truncated token, wrong passphrase,
    tampered bytes) is reported as the same ``DecryptionFailure`` so the
    caller cannot distinguish them.

    Args:
        token: Text token ``base64(salt|nonce|payload)``.
        passphrase: Passphrase used for key derivation.
        iterations: PBKDF2 rounds.

    Returns:
        Decrypted plaintext bytes.

    Raises:
        DecryptionFailure: If the token cannot be opened.
    """
    try:
        combined = base64.b64decode(token, validate=True)
    except (binascii.Error, ValueError, TypeError) as err:
        raise DecryptionFailure("envelope is not valid base64") from err
    _min = SALT_SIZE + NONCE_SIZE + TAG_SIZE
    if len(combined) < _min:
        raise DecryptionFailure(
            f"envelope too short: {len(combined)} bytes (minimum {_min})"
        )
    salt = combined[:SALT_SIZE]
    nonce = combined[SALT_SIZE:SALT_SIZE + NONCE_SIZE]
    ct = combined[SALT_SIZE + NONCE_SIZE:]
    try:
        key = derive_key(passphrase, salt, iterations)
        return AESGCM(key).decrypt(nonce, ct, None)
    except InvalidTag as err:
        raise DecryptionFailure("authentication tag mismatch") from err
    except FormatError as err:
        raise DecryptionFailure(err.message) from err


# ---------------------------------------------------------------------------
# Value serialization
# ---------------------------------------------------------------------------

def serialize_secrets(secrets: dict[str, str]) -> bytes:
    """Serialize the provider → secret map for encryption.

    Raises:
        FormatError: If an entry cannot be encoded (e.g. lone surrogates).
    """
    try:
        return orjson.dumps(secrets)
    except orjson.JSONEncodeError as err:
        raise FormatError("secret map is not encodable as UTF-8 JSON") from err


def deserialize_secrets(data: bytes) -> dict[str, str]:
    """Deserialize a decrypted provider → secret map.

    Raises:
        DecryptionFailure: If the payload is not a map of strings.
    """
    try:
        parsed = orjson.loads(data)
    except orjson.JSONDecodeError as err:
        raise DecryptionFailure("decrypted payload is not JSON") from err
    if not isinstance(parsed, dict) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in parsed.items()
    ):
        raise DecryptionFailure("decrypted payload is not a secret map")
    return parsed


def serialize_metadata(metadata: dict[str, Any]) -> str:
    """Serialize the unencrypted metadata record.

    datetime values are written as ISO-8601 strings by orjson.
    """
    return orjson.dumps(metadata).decode("utf-8")


def deserialize_metadata(data: str) -> dict[str, Any]:
    """Parse the metadata record; anything but a JSON object becomes empty."""
    try:
        parsed = orjson.loads(data)
    except orjson.JSONDecodeError:
        logger.warning("Discarding unreadable BYOK metadata record")
        return {}
    if not isinstance(parsed, dict):
        return {}
    return parsed

