from typing import Optional
from pydantic import BaseModel, EmailStr, Field


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    role: str
    user_id: str


class TokenData(BaseModel):
    user_id: Optional[str] = None
    role: Optional[str] = None


class RegisterStudentRequest(BaseModel):
    """Student signup. The account must verify its email before enrolling."""
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(..., min_length=8, description="Password must be at least 8 characters")
    phone: Optional[str] = Field(None, max_length=32)


class VerifyEmailRequest(BaseModel):
    token: str


class ResendVerificationRequest(BaseModel):
    email: EmailStr
