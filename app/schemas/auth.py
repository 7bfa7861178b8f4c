"""
Pydantic schemas for authentication endpoints (signup and login).

Pydantic validates incoming data automatically: if a required field is
missing or the wrong type, FastAPI returns a 422 error before our code runs.
"""

from pydantic import BaseModel, EmailStr, Field


class UserSignupRequest(BaseModel):
    """Request body for POST /auth/signup."""
    name: str = Field(min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(min_length=8)


class UserLoginRequest(BaseModel):
    """Request body for POST /auth/login."""
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    """Response body for successful login: contains the JWT."""
    token: str
    token_type: str = "bearer"


class SignupResponse(BaseModel):
    """Response body for successful signup: user info + JWT."""
    user_id: int
    name: str
    email: str
    role: str
    token: str
    token_type: str = "bearer"
