"""
BYOK Exceptions.

All vault failures share ``VaultError`` so that callers (and logs) can
tell them apart by ``kind``. ``KeyVault`` converts FormatError,
DecryptionFailure and PersistenceError into boolean/None results; only
VaultConfigurationError crosses the vault boundary.
"""


class VaultError(Exception):
    """Base class for vault errors."""

    kind: str = "vault_error"

    def __init__(self, message: str = "", *args) -> None:
        self.message = message or self.__class__.__doc__
        super().__init__(self.message, *args)

    def __str__(self) -> str:
        return f"{self.kind}: {self.message}"


class FormatError(VaultError, ValueError):
    """Secret, provider id or envelope segment has an invalid format."""

    kind = "format_error"


class DecryptionFailure(VaultError):
    """Envelope could not be opened (wrong passphrase, corrupted or tampered)."""

    kind = "decryption_failure"


class PersistenceError(VaultError):
    """Underlying storage is unavailable or rejected the write."""

    kind = "persistence_error"


class VaultConfigurationError(VaultError, RuntimeError):
    """Vault was used without a valid configuration or storage adapter."""

    kind = "configuration_error"
