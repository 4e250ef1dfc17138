from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

MAX_USER_MESSAGE_CHARS = 500
MAX_RESPONSE_CHARS = 200

MIN_RATING = 1
MAX_RATING = 7
NEUTRAL_RATING = 4


class FeedbackRequest(BaseModel):
    user_message: str = Field(min_length=1)
    claude_response: str | None = None
    gemini_response: str | None = None
    preference_rating: int

    @field_validator("preference_rating", mode="before")
    @classmethod
    def _check_rating(cls, v: Any) -> int:
        # bool es subclase de int: se rechaza explícitamente. 4.0 cuenta como entero.
        if isinstance(v, float) and v.is_integer():
            v = int(v)
        if isinstance(v, bool) or not isinstance(v, int) or not MIN_RATING <= v <= MAX_RATING:
            raise ValueError(f"preference_rating must be an integer between {MIN_RATING} and {MAX_RATING}")
        return v


class FeedbackRecord(BaseModel):
    """Registro inmutable que se añade al log de feedback."""

    model_config = ConfigDict(frozen=True)

    id: str
    timestamp: str
    user_message: str = Field(max_length=MAX_USER_MESSAGE_CHARS)
    claude_response: str | None = Field(default=None, max_length=MAX_RESPONSE_CHARS)
    gemini_response: str | None = Field(default=None, max_length=MAX_RESPONSE_CHARS)
    preference_rating: int = Field(ge=MIN_RATING, le=MAX_RATING)
    session_id: str


class FeedbackResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool = True
    message: str = "Feedback recorded successfully"
    id: str
