"""
Vault models — change events and per-provider audit metadata.
"""
from enum import Enum
from typing import Optional
from datetime import datetime, timezone
from dataclasses import dataclass

from pydantic import BaseModel, Field


class KeyAction(str, Enum):
    """Last action recorded for a provider."""

    STORED = "stored"
    DELETED = "deleted"


class ChangeAction(str, Enum):
    """Actions reported through ``on_change``."""

    STORED = "stored"
    DELETED = "deleted"
    CLEARED_ALL = "cleared_all"


@dataclass(frozen=True)
class ChangeEvent:
    """Notification emitted after a successful vault mutation."""

    action: ChangeAction
    provider: Optional[str] = None


class KeyMetadata(BaseModel):
    """Unencrypted audit record. Never holds the secret itself."""

    last_action: KeyAction
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    model_config = {"frozen": True}
