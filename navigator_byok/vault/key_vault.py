"""
KeyVault — Encrypted provider → API key storage.

Provides the public API for the BYOK vault:
- ``store(secret, provider)`` — validate, encrypt and persist a key
- ``retrieve(provider)`` — decrypt and return a key (or None)
- ``remove(provider)`` — delete a key; the blob goes away with the last one
- ``exists(provider)`` / ``list_configured()`` — query configured providers
- ``clear_all()`` — drop the blob and the metadata record
- ``get_metadata(provider)`` — last action and timestamp per provider

Every operation reloads the blob from storage; nothing is cached between
calls, so changes made by another process are seen on the next call.
Failures (bad format, undecryptable blob, storage errors) never raise:
they are logged by kind, kept in ``last_error`` and reported as
False/None.

Security Note:
    Never log plaintext keys, tokens or the passphrase. Only log provider
    ids, actions and error kinds.
"""
import asyncio
import inspect
import logging
from typing import Any, Callable, Optional

from pydantic import ValidationError

from ..exceptions import (
    VaultError,
    FormatError,
    DecryptionFailure,
    PersistenceError,
    VaultConfigurationError,
)
from .config import VaultConfig
from .crypto import (
    encrypt_envelope,
    decrypt_envelope,
    serialize_secrets,
    deserialize_secrets,
    serialize_metadata,
    deserialize_metadata,
)
from .models import ChangeAction, ChangeEvent, KeyAction, KeyMetadata
from .providers import (
    DEFAULT_PROVIDER,
    check_format,
    check_provider_id,
    validate_format,
    detect_provider,
    mask_key,
)
from .storage import VaultStorage

logger = logging.getLogger("navigator.byok")

ChangeCallback = Callable[[ChangeEvent], Any]


class KeyVault:
    """Passphrase-encrypted vault holding one API key per provider.

    The provider → key map is stored as a single AES-GCM envelope under
    ``config.storage_key``; per-provider metadata is stored unencrypted
    under ``config.metadata_key``.

    ``store``, ``remove`` and ``clear_all`` run under a per-instance
    ``asyncio.Lock``, so overlapping calls on the same instance do not lose
    updates. Separate instances sharing a namespace still race (last
    writer wins).
    """

    def __init__(
        self,
        config: VaultConfig,
        storage: VaultStorage,
        on_change: Optional[ChangeCallback] = None,
    ):
        if not isinstance(config, VaultConfig):
            raise VaultConfigurationError(
                "KeyVault requires a VaultConfig instance"
            )
        if storage is None or not all(
            callable(getattr(storage, attr, None)) for attr in ("get", "set", "remove")
        ):
            raise VaultConfigurationError(
                "KeyVault requires a storage adapter with get/set/remove"
            )
        self._config = config
        self._storage = storage
        self._on_change = on_change
        self._passphrase = config.effective_passphrase
        self._lock = asyncio.Lock()
        self.last_error: Optional[VaultError] = None
        if config.uses_fingerprint:
            logger.warning(
                "BYOK vault for app=%s uses the environment fingerprint as "
                "passphrase; it is guessable, set an explicit passphrase",
                config.app_name,
            )

    @classmethod
    def from_env(
        cls,
        storage: VaultStorage,
        on_change: Optional[ChangeCallback] = None,
    ) -> "KeyVault":
        """Build a vault using ``VaultConfig.from_env()``."""
        return cls(VaultConfig.from_env(), storage, on_change=on_change)

    @property
    def config(self) -> VaultConfig:
        return self._config

    @property
    def storage(self) -> VaultStorage:
        return self._storage

    @property
    def on_change(self) -> Optional[ChangeCallback]:
        return self._on_change

    @property
    def passphrase(self) -> str:
        return self._passphrase

    @property
    def lock(self) -> asyncio.Lock:
        return self._lock

    @property
    def providers(self) -> tuple[str, ...]:
        return self._config.providers

    # ------------------------------------------------------------------
    # Envelope helpers
    # ------------------------------------------------------------------

    async def _seal(self, secrets: dict[str, str]) -> str:
        """Encrypt the whole map off the event loop."""
        return await asyncio.to_thread(
            encrypt_envelope,
            serialize_secrets(secrets),
            self._passphrase,
            self._config.kdf_iterations,
        )

    async def _open(self, token: str) -> dict[str, str]:
        plaintext = await asyncio.to_thread(
            decrypt_envelope,
            token,
            self._passphrase,
            self._config.kdf_iterations,
        )
        return deserialize_secrets(plaintext)

    async def _load_secrets(self) -> dict[str, str]:
        """Load the current map.

        A missing or undecryptable blob yields an empty map.

        Raises:
            PersistenceError: If storage cannot be read.
        """
        token = await self._storage.get(self._config.storage_key)
        if not token:
            return {}
        try:
            return await self._open(token)
        except DecryptionFailure as err:
            self.last_error = err
            logger.warning(
                "BYOK blob for app=%s could not be opened (%s); treating as empty",
                self._config.app_name, err.kind,
            )
            return {}

    # ------------------------------------------------------------------
    # Metadata / notification helpers
    # ------------------------------------------------------------------

    async def _load_metadata(self) -> dict[str, Any]:
        raw = await self._storage.get(self._config.metadata_key)
        if not raw:
            return {}
        return deserialize_metadata(raw)

    async def _record(self, provider: str, action: KeyAction) -> None:
        """Overwrite the metadata entry for a provider.

        Metadata is audit-only: a storage failure here is logged and does
        not undo the key operation that preceded it.
        """
        try:
            metadata = await self._load_metadata()
            metadata[provider] = KeyMetadata(last_action=action).model_dump(mode="json")
            await self._storage.set(
                self._config.metadata_key, serialize_metadata(metadata),
            )
        except PersistenceError as err:
            self.last_error = err
            logger.warning(
                "Could not record BYOK metadata provider=%s action=%s: %s",
                provider, action.value, err.kind,
            )

    async def _emit(self, event: ChangeEvent) -> None:
        if self._on_change is None:
            return
        try:
            result = self._on_change(event)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception(
                "BYOK on_change callback failed for action=%s provider=%s",
                event.action.value, event.provider,
            )

    def _failed(self, operation: str, provider: Optional[str], err: VaultError) -> bool:
        """Keep the typed error for diagnostics and report failure."""
        self.last_error = err
        level = logging.ERROR if isinstance(err, PersistenceError) else logging.WARNING
        logger.log(
            level,
            "BYOK %s failed for provider=%s: %s",
            operation, provider, err.kind,
        )
        return False

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def store(self, secret: str, provider: str = DEFAULT_PROVIDER) -> bool:
        """Encrypt and persist a key for a provider.

        Args:
            secret: API key; must pass ``validate_format``.
            provider: Provider id (non-empty).

        Returns:
            True on success. On failure the persisted blob is unchanged.
        """
        try:
            check_format(secret)
            check_provider_id(provider)
            async with self._lock:
                secrets = await self._load_secrets()
                secrets[provider] = secret
                token = await self._seal(secrets)
                await self._storage.set(self._config.storage_key, token)
                await self._record(provider, KeyAction.STORED)
        except (FormatError, DecryptionFailure, PersistenceError) as err:
            return self._failed("store", provider, err)

        logger.debug("BYOK store: app=%s provider=%s", self._config.app_name, provider)
        await self._emit(ChangeEvent(ChangeAction.STORED, provider))
        return True

    async def retrieve(self, provider: str = DEFAULT_PROVIDER) -> Optional[str]:
        """Decrypt and return the key for a provider.

        Returns:
            The key, or None when absent or unreadable.
        """
        try:
            secrets = await self._load_secrets()
        except PersistenceError as err:
            self._failed("retrieve", provider, err)
            return None
        return secrets.get(provider) or None

    async def remove(self, provider: str = DEFAULT_PROVIDER) -> bool:
        """Delete the key for a provider.

        When the last key is removed the blob itself is deleted.

        Returns:
            True if a key was removed, False if absent or on failure.
        """
        try:
            async with self._lock:
                secrets = await self._load_secrets()
                if not secrets.get(provider):
                    return False
                del secrets[provider]
                if secrets:
                    token = await self._seal(secrets)
                    await self._storage.set(self._config.storage_key, token)
                else:
                    await self._storage.remove(self._config.storage_key)
                await self._record(provider, KeyAction.DELETED)
        except (DecryptionFailure, PersistenceError) as err:
            return self._failed("remove", provider, err)

        logger.debug("BYOK remove: app=%s provider=%s", self._config.app_name, provider)
        await self._emit(ChangeEvent(ChangeAction.DELETED, provider))
        return True

    async def exists(self, provider: str = DEFAULT_PROVIDER) -> bool:
        """Check if a non-empty key is stored for a provider."""
        return bool(await self.retrieve(provider))

    async def list_configured(self) -> set[str]:
        """Return the provider ids that currently hold a key."""
        try:
            secrets = await self._load_secrets()
        except PersistenceError as err:
            self._failed("list", None, err)
            return set()
        return set(secrets)

    async def clear_all(self) -> None:
        """Irreversibly delete the blob and the metadata record."""
        async with self._lock:
            for key in (self._config.storage_key, self._config.metadata_key):
                try:
                    await self._storage.remove(key)
                except PersistenceError as err:
                    self._failed("clear_all", None, err)
        logger.info("BYOK vault cleared for app=%s", self._config.app_name)
        await self._emit(ChangeEvent(ChangeAction.CLEARED_ALL))

    async def get_metadata(self, provider: str = DEFAULT_PROVIDER) -> Optional[KeyMetadata]:
        """Return the last recorded action for a provider, if any."""
        try:
            entry = (await self._load_metadata()).get(provider)
        except PersistenceError as err:
            self._failed("get_metadata", provider, err)
            return None
        if entry is None:
            return None
        try:
            return KeyMetadata.model_validate(entry)
        except ValidationError:
            logger.warning("Ignoring malformed BYOK metadata for provider=%s", provider)
            return None

    # ------------------------------------------------------------------
    # Format helpers
    # ------------------------------------------------------------------

    @staticmethod
    def validate_format(secret: str) -> bool:
        return validate_format(secret)

    @staticmethod
    def detect_provider(secret: str) -> str:
        return detect_provider(secret)

    @staticmethod
    def mask_key(secret: str) -> str:
        return mask_key(secret)
