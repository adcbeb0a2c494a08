"""
Shared fixtures for the BYOK vault tests.
"""
import pytest

from navigator_byok.vault import KeyVault, VaultConfig, MemoryStorage

PASSPHRASE = "correct horse battery staple"
OPENAI_KEY = "sk-abc12345678901234567890"
ANTHROPIC_KEY = "sk-ant-REDACTED"


@pytest.fixture
def config():
    """Vault configuration with an explicit passphrase."""
    return VaultConfig(app_name="testapp", passphrase=PASSPHRASE)


@pytest.fixture
def storage():
    """Fresh in-memory storage adapter."""
    return MemoryStorage()


@pytest.fixture
def events():
    """Collects change notifications."""
    return []


@pytest.fixture
def vault(config, storage, events):
    """KeyVault recording its change events."""
    return KeyVault(config, storage, on_change=events.append)
