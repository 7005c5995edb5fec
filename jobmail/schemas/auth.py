"""
Pydantic schemas for authentication endpoints.
"""
from typing import Optional
from datetime import datetime
from pydantic import BaseModel, EmailStr, Field, field_validator


class RegisterRequest(BaseModel):
    """Request schema for user registration."""
    full_name: str = Field(..., min_length=1, max_length=200, description="User's full name")
    email: EmailStr = Field(..., description="User's email address")
    password: str = Field(..., min_length=6, description="User's password (min 6 characters)")

    @field_validator("password")
    @classmethod
    def validate_password_length(cls, v: str) -> str:
        """Validate password length in bytes (bcrypt limit is 72 bytes)."""
        if len(v.encode("utf-8")) > 72:
            raise ValueError("Password too long (bcrypt limit 72 bytes)")
        return v

    class Config:
        json_schema_extra = {
            "example": {
                "full_name": "Jane Doe",
                "email": "jane.doe@example.com",
                "password": "SecurePass123"
            }
        }


class ProfileUpdate(BaseModel):
    """Request schema for profile updates."""
    full_name: Optional[str] = Field(None, min_length=1, max_length=200, description="User's full name")


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


class UserResponse(BaseModel):
    """Public view of an account and its credit balance."""
    id: int
    full_name: str
    email: str
    credits: int
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
