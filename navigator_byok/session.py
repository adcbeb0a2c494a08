import inspect
import logging
from typing import Any, Callable, Optional
from collections.abc import Iterable

from .vault.key_vault import KeyVault
from .vault.models import KeyMetadata
from .vault.providers import FALLBACK_PROVIDER
from .exceptions import VaultConfigurationError

logger = logging.getLogger("navigator.byok")

SetupCallback = Callable[[str], Any]


class KeySession:
    """Per-session view of a KeyVault for presentation code.

    Keeps a ``has_key`` snapshot per provider (refreshed by ``check_keys``)
    and triggers the setup flow at most once per session when a feature
    needs a key that is not configured.
    """

    def __init__(
        self,
        vault: KeyVault,
        providers: Optional[Iterable[str]] = None,
        on_setup_required: Optional[SetupCallback] = None,
    ) -> None:
        if not isinstance(vault, KeyVault):
            raise VaultConfigurationError("KeySession requires a KeyVault")
        self._vault = vault
        self._providers: tuple[str, ...] = tuple(providers or vault.providers)
        if not self._providers:
            raise VaultConfigurationError("KeySession requires at least one provider")
        self._on_setup_required = on_setup_required
        self._has_key: dict[str, bool] = {}
        self._setup_shown: bool = False
        self._show_setup: bool = False
        self.active_provider: str = self._providers[0]

    def __repr__(self) -> str:
        return (
            f'<BYOK-Session [app:{self._vault.config.app_name}, '
            f'active:{self.active_provider}] has_key={self._has_key!r}>'
        )

    # --- Properties ---

    @property
    def vault(self) -> KeyVault:
        return self._vault

    @property
    def providers(self) -> tuple[str, ...]:
        return self._providers

    @property
    def show_setup(self) -> bool:
        return self._show_setup

    @property
    def setup_shown(self) -> bool:
        return self._setup_shown

    def has_key(self, provider: Optional[str] = None) -> bool:
        """Answer from the last ``check_keys`` snapshot."""
        return self._has_key.get(provider or self.active_provider, False)

    # --- Session flow ---

    async def check_keys(self) -> dict[str, bool]:
        """Refresh the ``has_key`` snapshot for every session provider."""
        status = {}
        for provider in self._providers:
            status[provider] = await self._vault.exists(provider)
        self._has_key = status
        return dict(status)

    async def try_enable_feature(self, provider: Optional[str] = None) -> Optional[str]:
        """Return the key for a feature, or start the setup flow once.

        On the first miss of the session ``on_setup_required(provider)`` is
        called and the provider becomes active; later misses return None
        without side effects.
        """
        provider = provider or self.active_provider
        if self._has_key.get(provider):
            return await self._vault.retrieve(provider)
        if not self._setup_shown:
            logger.debug("BYOK setup required for provider=%s", provider)
            self.active_provider = provider
            self._show_setup = True
            self._setup_shown = True
            if self._on_setup_required is not None:
                result = self._on_setup_required(provider)
                if inspect.isawaitable(result):
                    await result
        return None

    async def get_key_silent(self, provider: Optional[str] = None) -> Optional[str]:
        """Return the key without triggering any setup flow."""
        provider = provider or self.active_provider
        if not self._has_key.get(provider):
            return None
        return await self._vault.retrieve(provider)

    async def save_key(self, secret: str, provider: Optional[str] = None) -> bool:
        """Store a key entered during setup and refresh the snapshot.

        Without an explicit provider the key goes to the provider detected
        from its shape, or to the active provider when detection falls back
        to ``custom``.
        """
        if not provider:
            detected = self._vault.detect_provider(secret)
            provider = detected if detected != FALLBACK_PROVIDER else self.active_provider
        saved = await self._vault.store(secret, provider)
        if saved:
            await self.key_saved()
        return saved

    async def key_saved(self) -> None:
        self._show_setup = False
        await self.check_keys()

    def setup_skipped(self) -> None:
        self._show_setup = False

    async def delete_key(self, provider: Optional[str] = None) -> bool:
        provider = provider or self.active_provider
        deleted = await self._vault.remove(provider)
        if deleted:
            await self.check_keys()
        return deleted

    # --- Pass-through queries ---

    async def list_configured(self) -> set[str]:
        return await self._vault.list_configured()

    async def get_metadata(self, provider: Optional[str] = None) -> Optional[KeyMetadata]:
        return await self._vault.get_metadata(provider or self.active_provider)

    def mask_key(self, secret: str) -> str:
        return self._vault.mask_key(secret)

    def detect_provider(self, secret: str) -> str:
        return self._vault.detect_provider(secret)
