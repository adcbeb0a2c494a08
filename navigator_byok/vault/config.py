"""
Vault Configuration — Validated settings and passphrase resolution.

Reads settings from environment variables:
    BYOK_APP_NAME = <namespace for stored keys>
    BYOK_PASSPHRASE = <passphrase protecting the vault> (optional)
    BYOK_PROVIDERS = openai,anthropic,... (optional)
    BYOK_KDF_ITERATIONS = <int >= 100000> (optional)

Security Note:
    Without BYOK_PASSPHRASE the vault falls back to a fingerprint of the
    local environment (platform, host name, LANG, standard-time UTC offset,
    app name). Anyone able to observe those attributes can rebuild it; it keeps
    keys out of plain sight but is not a security boundary.
    Never log the passphrase.
"""
import os
import time
import logging
import platform

from pydantic import BaseModel, Field, field_validator

from .crypto import KDF_ITERATIONS
from .providers import is_utf8

logger = logging.getLogger("navigator.byok")

DEFAULT_PROVIDERS = ("openai", "anthropic", "cohere", "custom")


def fingerprint_passphrase(app_name: str) -> str:
    """Build the low-entropy default passphrase from environment attributes.

    Args:
        app_name: Application namespace, always the last component.

    Returns:
        ``|``-joined fingerprint string.
    """
    components = [
        platform.platform(),
        platform.node(),
        os.environ.get("LANG", ""),
        # standard-time offset, DST ignored
        time.timezone // 60,
        app_name,
    ]
    fingerprint = "|".join(str(c) for c in components)
    # environment values may carry surrogate-escaped bytes
    return fingerprint.encode("utf-8", "backslashreplace").decode("utf-8")


def parse_providers(raw: str) -> tuple[str, ...]:
    """Split a comma separated provider list, dropping blanks."""
    return tuple(p.strip() for p in raw.split(",") if p.strip())


class VaultConfig(BaseModel):
    """Validated vault configuration."""

    app_name: str
    passphrase: str | None = None
    providers: tuple[str, ...] = Field(default=DEFAULT_PROVIDERS)
    kdf_iterations: int = Field(default=KDF_ITERATIONS, ge=KDF_ITERATIONS)

    model_config = {"frozen": True}

    @field_validator("app_name")
    @classmethod
    def validate_app_name(cls, v: str) -> str:
        """App name namespaces storage keys, so it must be non-empty."""
        v = v.strip()
        if not v:
            raise ValueError("app_name cannot be empty")
        if not is_utf8(v):
            raise ValueError("app_name must be valid UTF-8 text")
        return v

    @field_validator("passphrase")
    @classmethod
    def validate_passphrase(cls, v: str | None) -> str | None:
        """An empty passphrase means "use the fingerprint"."""
        if v and not is_utf8(v):
            raise ValueError("passphrase must be valid UTF-8 text")
        return v or None

    @field_validator("providers")
    @classmethod
    def validate_providers(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        """Providers must be a non-empty list of unique, non-empty ids."""
        if not v:
            raise ValueError("At least one provider is required")
        if any(not p for p in v):
            raise ValueError("Provider ids cannot be empty")
        if len(set(v)) != len(v):
            raise ValueError(f"Duplicate provider ids: {v}")
        return v

    @property
    def storage_key(self) -> str:
        """Namespace key of the encrypted blob."""
        return f"{self.app_name}_byok_storage"

    @property
    def metadata_key(self) -> str:
        """Namespace key of the unencrypted metadata record."""
        return f"{self.app_name}_byok_metadata"

    @property
    def uses_fingerprint(self) -> bool:
        return self.passphrase is None

    @property
    def effective_passphrase(self) -> str:
        """Explicit passphrase, or the environment fingerprint."""
        if self.passphrase is not None:
            return self.passphrase
        return fingerprint_passphrase(self.app_name)

    @classmethod
    def from_env(cls) -> "VaultConfig":
        """Create VaultConfig by loading values from environment.

        Returns:
            Populated VaultConfig instance.

        Raises:
            RuntimeError: If BYOK_APP_NAME is not set.
        """
        app_name = os.environ.get("BYOK_APP_NAME")
        if not app_name:
            raise RuntimeError(
                "BYOK_APP_NAME environment variable is not set"
            )
        kwargs: dict = {
            "app_name": app_name,
            "passphrase": os.environ.get("BYOK_PASSPHRASE"),
        }
        providers = os.environ.get("BYOK_PROVIDERS")
        if providers:
            kwargs["providers"] = parse_providers(providers)
        iterations = os.environ.get("BYOK_KDF_ITERATIONS")
        if iterations:
            kwargs["kdf_iterations"] = int(iterations)
        config = cls(**kwargs)
        logger.debug(
            "Loaded BYOK config for app=%s (%d provider(s), fingerprint=%s)",
            config.app_name, len(config.providers), config.uses_fingerprint,
        )
        return config
