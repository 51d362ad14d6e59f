"""
Project Gallery Backend — Login Schemas
"""

from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)


class LoginResponse(BaseModel):
    message: str
    user_id: int = Field(alias="UserID")
    username: str = Field(alias="Username")

    model_config = {"populate_by_name": True}
