"""
SQLAlchemy ORM models package.

All models are imported here so that:
  1. Alembic and Base.metadata.create_all can discover them
  2. Other modules can import from app.models directly
"""

from app.models.user import User, UserRole  # noqa: F401
from app.models.payment import Payment  # noqa: F401
