from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def isoformat_z(ts: datetime) -> str:
    """ISO-8601 en UTC con sufijo Z y milisegundos (2024-01-01T00:00:00.000Z)."""
    return ts.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class ProviderName(str, Enum):
    claude = "claude"
    gemini = "gemini"


class ErrorResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool = False
    error: str
    details: dict[str, Any] | None = None
    timestamp: datetime = Field(default_factory=utcnow)
