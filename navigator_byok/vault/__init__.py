"""BYOK Vault — Passphrase-encrypted storage for user-provided API keys.

Security Note (Threat Model):
    All provider keys are sealed in one AES-256-GCM envelope whose key is
    derived with PBKDF2 from a passphrase. When no passphrase is given the
    vault uses a fingerprint of the local environment, which anyone with
    access to the machine can rebuild; it hides keys from casual reading
    but is not a security boundary. Decrypted keys live in process memory
    while an operation runs; this is an accepted limitation.
"""

from .key_vault import KeyVault
from .key_rotation import rotate_passphrase
from .config import VaultConfig, fingerprint_passphrase
from .models import ChangeAction, ChangeEvent, KeyAction, KeyMetadata
from .providers import (
    PROVIDERS,
    ProviderInfo,
    get_provider_info,
    validate_format,
    detect_provider,
    mask_key,
)
from .storage import VaultStorage, MemoryStorage, FileStorage, RedisStorage

__all__ = [
    "KeyVault",
    "rotate_passphrase",
    "VaultConfig",
    "fingerprint_passphrase",
    "ChangeAction",
    "ChangeEvent",
    "KeyAction",
    "KeyMetadata",
    "PROVIDERS",
    "ProviderInfo",
    "get_provider_info",
    "validate_format",
    "detect_provider",
    "mask_key",
    "VaultStorage",
    "MemoryStorage",
    "FileStorage",
    "RedisStorage",
]
