"""
Admin router: user management and encryption maintenance.

All endpoints require ADMIN role.

Endpoints:
  GET    /admin/users                : List all users
  DELETE /admin/users/{user_id}      : Delete a user and all their payments
  POST   /admin/payments/rotate-keys : Re-encrypt card data under the current key
"""

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies import require_admin
from app.models.user import User
from app.schemas.user import UserResponse
from app.services import payment_service, user_service

router = APIRouter()


# ---------------------------------------------------------------------------
# User admin endpoints
# ---------------------------------------------------------------------------

@router.get(
    "/users",
    response_model=list[UserResponse],
    summary="[Admin] List all users",
)
async def admin_list_users(
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await user_service.list_users(db)


@router.delete(
    "/users/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="[Admin] Delete a user and their payments",
)
async def admin_delete_user(
    user_id: int,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Delete a user. Every payment they own is deleted with them."""
    await user_service.delete_user(db, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ---------------------------------------------------------------------------
# Payment maintenance
# ---------------------------------------------------------------------------

@router.post(
    "/payments/rotate-keys",
    summary="[Admin] Re-encrypt stored card data with the current key",
)
async def admin_rotate_keys(
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """
    Re-encrypt every card number and CVV under PAYMENT_ENCRYPTION_KEY.

    Returns counts of rotated and skipped (undecryptable) payments. Retired
    keys can be dropped from the configuration once "failed" is 0.
    """
    return await payment_service.rotate_encryption_keys(db)
