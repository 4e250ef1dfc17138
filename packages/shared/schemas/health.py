from pydantic import BaseModel, ConfigDict


class ProbeResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    claude: bool
    gemini: bool
    timestamp: str


class ProbeErrorResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    claude: bool = False
    gemini: bool = False
    error: str = "Health check failed"
