from typing import Literal, Optional

from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    username: str = Field(min_length=1, max_length=128)


class TTLRequest(BaseModel):
    seconds: int = Field(gt=0)
    mode: Literal["add", "set"] = "add"


class SessionInfoResponse(BaseModel):
    session_id: str
    user: Optional[str] = None
    created_at: Optional[str] = None
    csrf_token: str = ""


class CSRFTokenResponse(BaseModel):
    csrf_token: str


class UploadResponse(BaseModel):
    filename: str
    path: str
    url: str
