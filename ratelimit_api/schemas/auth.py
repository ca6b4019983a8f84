"""Pydantic schemas for the mock login and registration endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from ratelimit_api.schemas.rate_limit import RateLimitedResponse


class LoginRequest(BaseModel):
    """Login payload. Fields are optional so missing ones get a 400, not a 422."""

    email: str | None = None
    password: str | None = None


class RegisterRequest(BaseModel):
    email: str | None = None
    password: str | None = None
    name: str | None = None


class LoginResponse(RateLimitedResponse):
    message: str = "Login successful"
    token: str = Field(..., description="Opaque demo token, not a real JWT.")


class AccountData(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int
    email: str
    name: str
    created_at: datetime = Field(..., alias="createdAt")


class RegisterResponse(RateLimitedResponse):
    message: str = "Account created successfully"
    data: AccountData
