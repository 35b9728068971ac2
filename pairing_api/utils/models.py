from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class RequestCodeRequest(BaseModel):
    # Optional so a missing number gets the friendly error message.
    phone: Optional[str] = Field(
        default=None,
        description="Phone number in international format, any punctuation allowed",
        examples=["+1 (555) 123-4567"],
    )


class RequestCodeResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    session_id: str = Field(alias="sessionId")
    code: str = Field(description="Pairing code to enter in WhatsApp > Linked devices")


class SessionStatusResponse(BaseModel):
    status: str = Field(description="pending, connected, failed or not_found")
    session: Optional[str] = Field(
        default=None, description="Session string, present once connected"
    )


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
    code: str
    details: dict = Field(default_factory=dict)


class HealthResponse(BaseModel):
    status: str
    version: str
    sessions: int = 0
