"""
Tests for passphrase rotation.
"""
import pytest

from navigator_byok.exceptions import DecryptionFailure, FormatError
from navigator_byok.vault import KeyVault, rotate_passphrase

from .conftest import ANTHROPIC_KEY, OPENAI_KEY, PASSPHRASE


class TestRotatePassphrase:

    @pytest.mark.asyncio
    async def test_rotation(self, vault, storage, config):
        await vault.store(OPENAI_KEY, "openai")
        await vault.store(ANTHROPIC_KEY, "anthropic")
        before = await storage.get(config.storage_key)

        rotated = await rotate_passphrase(vault, "a brand new passphrase")

        assert rotated.passphrase == "a brand new passphrase"
        assert rotated.config.app_name == config.app_name
        assert await storage.get(config.storage_key) != before
        assert await rotated.retrieve("openai") == OPENAI_KEY
        assert await rotated.retrieve("anthropic") == ANTHROPIC_KEY
        # the old passphrase no longer opens the blob
        assert await vault.retrieve("openai") is None

    @pytest.mark.asyncio
    async def test_shares_storage_and_callback(self, vault, storage, events):
        rotated = await rotate_passphrase(vault, "another passphrase")
        assert rotated.storage is storage
        await rotated.store(OPENAI_KEY, "openai")
        assert events[-1].provider == "openai"

    @pytest.mark.asyncio
    async def test_empty_vault(self, vault, storage):
        rotated = await rotate_passphrase(vault, "another passphrase")
        assert isinstance(rotated, KeyVault)
        assert len(storage) == 0

    @pytest.mark.asyncio
    async def test_same_passphrase_reseals(self, vault, storage, config):
        await vault.store(OPENAI_KEY, "openai")
        before = await storage.get(config.storage_key)
        rotated = await rotate_passphrase(vault, PASSPHRASE)
        assert await storage.get(config.storage_key) != before
        assert await rotated.retrieve("openai") == OPENAI_KEY

    @pytest.mark.asyncio
    async def test_unreadable_blob_raises(self, vault, storage, config):
        await storage.set(config.storage_key, "garbage")
        with pytest.raises(DecryptionFailure):
            await rotate_passphrase(vault, "another passphrase")
        assert await storage.get(config.storage_key) == "garbage"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("passphrase", ["", None])
    async def test_empty_passphrase(self, vault, passphrase):
        with pytest.raises(FormatError):
            await rotate_passphrase(vault, passphrase)
