# soakgen/auth/models.py
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class CredentialSource(str, Enum):
    STATIC = "static"
    OVERRIDE = "override"
    FETCHED = "fetched"


class Credential(BaseModel):
    """Opaque bearer token; executors borrow it and never modify it."""

    model_config = ConfigDict(frozen=True)

    token: str = Field(min_length=1)
    source: CredentialSource
    acquired_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def __repr__(self) -> str:
        return f"Credential(source={self.source.value!r}, acquired_at={self.acquired_at.isoformat()!r})"

    __str__ = __repr__
