from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

MAX_MESSAGE_CHARS = 500


class ChatRequest(BaseModel):
    message: str

    @field_validator("message", mode="before")
    @classmethod
    def _check_message(cls, v: Any) -> str:
        # Orden: requerido (no vacío tras strip) antes que longitud.
        if not isinstance(v, str) or not v.strip():
            raise ValueError("Message is required")
        if len(v) > MAX_MESSAGE_CHARS:
            raise ValueError("Message too long")
        return v


class ProviderOutcome(BaseModel):
    """Resultado de un proveedor para una request.

    success=True -> message es la onomatopeya generada.
    success=False -> message es un diagnóstico corto.
    """

    model_config = ConfigDict(frozen=True)

    success: bool
    message: str

    @classmethod
    def ok(cls, text: str) -> "ProviderOutcome":
        return cls(success=True, message=text)

    @classmethod
    def failed(cls, reason: str) -> "ProviderOutcome":
        return cls(success=False, message=reason)


class ChatResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    claude: ProviderOutcome
    gemini: ProviderOutcome

    @classmethod
    def server_error(cls) -> "ChatResponse":
        return cls(
            claude=ProviderOutcome.failed("Server error"),
            gemini=ProviderOutcome.failed("Server error"),
        )
