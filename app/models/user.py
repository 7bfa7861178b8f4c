"""
User model: the authenticated identity that owns payments.

Each User has a login credential (email + Argon2 hash), a display name used
by the payments table, and a role. Authorization code never inspects the
role column directly: it asks the user through has_role(), which is the
only capability the payment policy depends on.

Roles:
  - ADMIN: may view and delete any payment, manage users, rotate keys
  - MEMBER: may view and edit their own payments (the default for signup)

Deleting a User deletes all of their payments, both through the ORM
relationship cascade and the ON DELETE CASCADE on payments.user_id.
"""

import enum
from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, Enum, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base


class UserRole(str, enum.Enum):
    """
    Role a user holds within the payments system.

    Inherits from str so the value serializes naturally to JSON and
    compares equal to the plain role name.
    """
    ADMIN = "admin"
    MEMBER = "member"


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )

    # Shown in the "User" column of the payments table
    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )

    hashed_password: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole),
        default=UserRole.MEMBER,
        nullable=False,
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    # Audit timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    # --- Relationships ---
    payments: Mapped[list["Payment"]] = relationship(
        back_populates="user",
        cascade="all, delete-orphan",
    )

    def has_role(self, role: str) -> bool:
        """Return True if this user holds the named role."""
        return self.role == role
