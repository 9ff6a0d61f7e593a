"""
Authentication Pydantic schemas.

Defines request and response schemas for authentication endpoints.
"""

from pydantic import BaseModel, EmailStr, Field, field_validator
from datetime import datetime
from typing import Optional
from fleetops.app.models.enums import UserRole


class UserRegister(BaseModel):
    """
    Schema for user registration.

    Used by POST /auth/register endpoint.
    Default role is FINANCIAL_ANALYSTS (read-only).
    """
    email: EmailStr = Field(..., description="User email address")
    user_name: str = Field(..., min_length=3, max_length=30, description="Unique username, stored lowercase")
    password: str = Field(..., min_length=8, description="Password (min 8 characters)")
    role: Optional[UserRole] = Field(default=UserRole.FINANCIAL_ANALYSTS, description="User role")

    @field_validator("user_name")
    @classmethod
    def normalize_user_name(cls, value: str) -> str:
        value = value.strip().lower()
        if not value.replace("_", "").replace(".", "").isalnum():
            raise ValueError("Username may only contain letters, digits, '_' and '.'")
        return value


class UserLogin(BaseModel):
    """
    Schema for user login.

    Supports login with either username or email.
    """
    user_name: str = Field(..., description="Username or email")
    password: str = Field(..., description="Password")


class RefreshRequest(BaseModel):
    refresh_token: str


class TokenResponse(BaseModel):
    """
    Schema for JWT token response.

    Returned by successful login/register/refresh operations.
    """
    access_token: str = Field(..., description="JWT access token")
    refresh_token: str = Field(..., description="JWT refresh token")
    token_type: str = Field(default="bearer", description="Token type")
    user_id: int = Field(..., description="User ID")
    user_name: str = Field(..., description="Username")
    email: str = Field(..., description="Email address")
    role: UserRole = Field(..., description="User role")


class UserResponse(BaseModel):
    """
    Schema for user information response.

    Used by GET /auth/me endpoint.
    """
    id: int
    email: str
    user_name: str
    role: UserRole
    is_active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True  # Pydantic v2 (was orm_mode in v1)
