"""Navigator BYOK.

Encrypted "Bring Your Own Key" storage: one API key per provider, sealed in
a passphrase-derived AES-GCM envelope and kept in a pluggable storage
backend.
"""
from .version import __version__
from .exceptions import (
    VaultError,
    FormatError,
    DecryptionFailure,
    PersistenceError,
    VaultConfigurationError,
)
from .vault import (
    KeyVault,
    VaultConfig,
    ChangeAction,
    ChangeEvent,
    KeyAction,
    KeyMetadata,
    MemoryStorage,
    FileStorage,
    RedisStorage,
    VaultStorage,
    rotate_passphrase,
    validate_format,
    detect_provider,
    mask_key,
)
from .session import KeySession

__all__ = [
    "__version__",
    "VaultError",
    "FormatError",
    "DecryptionFailure",
    "PersistenceError",
    "VaultConfigurationError",
    "KeyVault",
    "VaultConfig",
    "ChangeAction",
    "ChangeEvent",
    "KeyAction",
    "KeyMetadata",
    "MemoryStorage",
    "FileStorage",
    "RedisStorage",
    "VaultStorage",
    "rotate_passphrase",
    "validate_format",
    "detect_provider",
    "mask_key",
    "KeySession",
]
