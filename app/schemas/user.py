"""
Pydantic schemas for User-related responses.

hashed_password is NEVER included in any response schema.
"""

from datetime import datetime

from pydantic import BaseModel, EmailStr


class UserResponse(BaseModel):
    """Public representation of a User (never includes password hash)."""
    id: int
    name: str
    email: EmailStr
    role: str
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}
