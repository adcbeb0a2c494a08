"""
Provider helpers — format validation, provider detection and display masking.

None of these functions touch storage; they are pure and safe to call from
presentation code. ``mask_key`` is display-only and never reversible.
"""
import re
from typing import NamedTuple

from ..exceptions import FormatError

MIN_SECRET_LENGTH = 10
DEFAULT_PROVIDER = "default"
FALLBACK_PROVIDER = "custom"

MASK_CHAR = "•"
MASK_PLACEHOLDER = MASK_CHAR * 8
MASK_PREFIX = 7
MASK_SUFFIX = 4
MASK_MAX_MIDDLE = 20

# Ordered: the first pattern that matches wins in validate_format, but
# "custom" accepts anything of minimum length, so the length check is
# the effective gate.
FORMAT_PATTERNS: dict[str, re.Pattern] = {
    "openai": re.compile(r"^sk-[a-zA-Z0-9_-]{20,}$"),
    "anthropic": re.compile(r"^sk-ant-[a-zA-Z0-9_-]{20,}$"),
    "cohere": re.compile(r"^[a-zA-Z0-9]{20,}$"),
    "custom": re.compile(r"^.{10,}$", re.DOTALL),
}

_COHERE_SHAPE = re.compile(r"^[a-zA-Z0-9]{40}$")


class ProviderInfo(NamedTuple):
    """Display information for a known provider."""

    id: str
    label: str
    key_url: str
    placeholder: str


PROVIDERS: dict[str, ProviderInfo] = {
    "openai": ProviderInfo(
        "openai", "OpenAI", "https://platform.openai.com/api-keys", "sk-..."
    ),
    "anthropic": ProviderInfo(
        "anthropic", "Anthropic",
        "https://console.anthropic.com/settings/keys", "sk-ant-..."
    ),
    "cohere": ProviderInfo(
        "cohere", "Cohere", "https://dashboard.cohere.com/api-keys", "..."
    ),
    "custom": ProviderInfo(
        "custom", "Custom", "https://platform.openai.com/api-keys", "..."
    ),
}


def get_provider_info(provider: str) -> ProviderInfo:
    """Return display info for a provider, falling back to ``custom``."""
    return PROVIDERS.get(provider, PROVIDERS[FALLBACK_PROVIDER])


def validate_format(secret: str) -> bool:
    """Check whether a secret looks like an API key.

    Secrets shorter than ``MIN_SECRET_LENGTH`` are rejected. Anything
    longer is accepted because the ``custom`` pattern matches any string
    of minimum length; per-provider patterns only matter for detection.
    """
    if not isinstance(secret, str) or len(secret) < MIN_SECRET_LENGTH:
        return False
    return any(pattern.match(secret) for pattern in FORMAT_PATTERNS.values())


def is_utf8(value: str) -> bool:
    """Lone surrogates are valid str but cannot be stored."""
    try:
        value.encode("utf-8")
    except UnicodeEncodeError:
        return False
    return True


def check_format(secret: str) -> str:
    """Return the secret unchanged, or raise FormatError if it is invalid."""
    if not validate_format(secret):
        raise FormatError(
            f"API key must be a string of at least {MIN_SECRET_LENGTH} characters"
        )
    if not is_utf8(secret):
        raise FormatError("API key must be valid UTF-8 text")
    return secret


def check_provider_id(provider: str) -> str:
    """Provider ids must be non-empty strings."""
    if not isinstance(provider, str) or not provider:
        raise FormatError("Provider id cannot be empty")
    if not is_utf8(provider):
        raise FormatError("Provider id must be valid UTF-8 text")
    return provider


def detect_provider(secret: str) -> str:
    """Guess which provider issued a secret.

    Checks run in order and the first match wins: ``sk-ant-`` before
    ``sk-``, then the 40-character alphanumeric Cohere shape. Everything
    else (including non-string input) is ``custom``.
    """
    if not isinstance(secret, str):
        return FALLBACK_PROVIDER
    if secret.startswith("sk-ant-"):
        return "anthropic"
    if secret.startswith("sk-"):
        return "openai"
    if _COHERE_SHAPE.match(secret):
        return "cohere"
    return FALLBACK_PROVIDER


def mask_key(secret: str) -> str:
    """Render a secret for display.

    Short secrets become a fixed placeholder. Longer ones keep a 7-char
    prefix and 4-char suffix around a run of mask characters capped at
    ``MASK_MAX_MIDDLE``.
    """
    if not isinstance(secret, str) or len(secret) <= MASK_PREFIX + MASK_SUFFIX:
        # at or below 8 chars by contract; up to 11 chars there is no hidden middle
        return MASK_PLACEHOLDER
    hidden = min(len(secret) - (MASK_PREFIX + MASK_SUFFIX), MASK_MAX_MIDDLE)
    return f"{secret[:MASK_PREFIX]}{MASK_CHAR * hidden}{secret[-MASK_SUFFIX:]}"
