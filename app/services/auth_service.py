"""
Authentication service: signup and login business logic.

The router calls these functions and translates the results into HTTP
responses, so the logic can be tested without a web server.

Signup flow:
  1. Check if email is already registered
  2. Hash the password with Argon2id
  3. Create the User as a MEMBER
  4. Return a JWT token so the user is immediately logged in

Login flow:
  1. Look up user by email
  2. Verify password against stored hash
  3. Return a JWT token

Login returns the same error for "wrong password", "email not found", and
"deactivated" so valid emails can't be enumerated.
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import DuplicateEmailError, InvalidCredentialsError
from app.models.user import User, UserRole
from app.security import create_access_token, hash_password, verify_password

logger = logging.getLogger(__name__)


async def signup(
    db: AsyncSession,
    name: str,
    email: str,
    password: str,
) -> tuple[User, str]:
    """
    Register a new member.

    Args:
        db: Database session.
        name: Display name (shown in the payments table).
        email: User's email (must be unique).
        password: Plaintext password (hashed before storage).

    Returns:
        Tuple of (User instance, JWT token string).

    Raises:
        DuplicateEmailError: If the email is already registered.
    """
    result = await db.execute(select(User).where(User.email == email))
    if result.scalar_one_or_none():
        raise DuplicateEmailError(email)

    user = User(
        name=name,
        email=email,
        hashed_password=hash_password(password),
        role=UserRole.MEMBER,
    )
    db.add(user)
    # Flush to get user.id assigned for the token subject
    await db.flush()

    logger.info("Registered user id=%s", user.id)
    token = create_access_token(data={"sub": str(user.id)})
    return user, token


async def login(
    db: AsyncSession,
    email: str,
    password: str,
) -> tuple[User, str]:
    """
    Authenticate a user and return a JWT token.

    Raises:
        InvalidCredentialsError: If email doesn't exist, password is wrong,
            or the user is deactivated.
    """
    result = await db.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()

    if not user:
        raise InvalidCredentialsError()

    if not verify_password(password, user.hashed_password):
        raise InvalidCredentialsError()

    if not user.is_active:
        raise InvalidCredentialsError()

    token = create_access_token(data={"sub": str(user.id)})
    return user, token
