"""
Vault Key Rotation — Re-encrypt the BYOK blob under a new passphrase.

Rotation opens the current envelope with the old passphrase and seals the
same provider → key map with the new one, in a single storage write. It is
idempotent: rotating to the passphrase already in use just re-seals the map
with a fresh salt and nonce.

Unlike the regular vault operations, rotation raises on failure: it is an
explicit administrative action and silently starting from an empty map
would destroy the stored keys.

Security Note:
    Plaintext exists in memory only while the map is re-encrypted.
    Never log plaintext, tokens or passphrases.
"""
import asyncio
import logging

from ..exceptions import FormatError
from .config import VaultConfig
from .crypto import (
    decrypt_envelope,
    encrypt_envelope,
    deserialize_secrets,
    serialize_secrets,
)
from .key_vault import KeyVault

logger = logging.getLogger("navigator.byok")


async def rotate_passphrase(vault: KeyVault, new_passphrase: str) -> KeyVault:
    """Re-encrypt the vault blob with ``new_passphrase``.

    Args:
        vault: Vault bound to the current passphrase.
        new_passphrase: Passphrase to seal the blob with.

    Returns:
        A new KeyVault, sharing storage and callback, bound to the new passphrase.

    Raises:
        FormatError: If new_passphrase is empty.
        DecryptionFailure: If the current blob cannot be opened.
        PersistenceError: If storage cannot be read or written.
    """
    if not isinstance(new_passphrase, str) or not new_passphrase:
        raise FormatError("New passphrase cannot be empty")

    old_config = vault.config
    new_config = VaultConfig(
        **{**old_config.model_dump(), "passphrase": new_passphrase}
    )
    iterations = old_config.kdf_iterations

    logger.info("Starting BYOK passphrase rotation for app=%s", old_config.app_name)

    async with vault.lock:
        token = await vault.storage.get(old_config.storage_key)
        if not token:
            logger.info(
                "No BYOK blob for app=%s; nothing to re-encrypt",
                old_config.app_name,
            )
        else:
            plaintext = await asyncio.to_thread(
                decrypt_envelope, token, vault.passphrase, iterations,
            )
            secrets = deserialize_secrets(plaintext)
            new_token = await asyncio.to_thread(
                encrypt_envelope,
                serialize_secrets(secrets),
                new_passphrase,
                iterations,
            )
            await vault.storage.set(old_config.storage_key, new_token)
            logger.info(
                "BYOK passphrase rotation complete for app=%s: %d secret(s)",
                old_config.app_name, len(secrets),
            )

    return KeyVault(new_config, vault.storage, on_change=vault.on_change)
