"""
Authentication router: signup and login endpoints.

These are the only public (unauthenticated) endpoints in the API.

Endpoints:
  POST /auth/signup : Register a new member and get a token
  POST /auth/login  : Authenticate and get a token

Plaintext passwords exist only in memory during request processing; they
are hashed before any database operation and never logged.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.schemas.auth import (
    SignupResponse,
    TokenResponse,
    UserLoginRequest,
    UserSignupRequest,
)
from app.services import auth_service

router = APIRouter()


@router.post(
    "/signup",
    response_model=SignupResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user",
)
async def signup(
    request: UserSignupRequest,
    db: AsyncSession = Depends(get_db),
):
    """
    Register a new member and return a JWT so they're logged in.

    - **name**: Display name, 1-255 characters
    - **email**: Must be a valid email format and not already registered
    - **password**: Minimum 8 characters
    """
    user, token = await auth_service.signup(
        db=db,
        name=request.name,
        email=request.email,
        password=request.password,
    )

    return SignupResponse(
        user_id=user.id,
        name=user.name,
        email=user.email,
        role=user.role.value,
        token=token,
    )


@router.post(
    "/login",
    response_model=TokenResponse,
    summary="Authenticate and get a token",
)
async def login(
    request: UserLoginRequest,
    db: AsyncSession = Depends(get_db),
):
    """
    Authenticate with email and password.

    Include the returned token in subsequent requests:

        Authorization: Bearer <token>
    """
    user, token = await auth_service.login(
        db=db,
        email=request.email,
        password=request.password,
    )

    return TokenResponse(token=token)
