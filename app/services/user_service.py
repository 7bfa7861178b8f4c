"""
User administration: listing and deleting users.

Deleting a user deletes every payment they own. The ORM relationship
cascade removes loaded and unloaded payments in the same flush, and the
ON DELETE CASCADE on payments.user_id covers deletes issued outside the ORM.
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import UserNotFoundError
from app.models.user import User

logger = logging.getLogger(__name__)


async def list_users(db: AsyncSession) -> list[User]:
    result = await db.execute(select(User).order_by(User.id))
    return list(result.scalars().all())


async def delete_user(db: AsyncSession, user_id: int) -> None:
    """
    Delete a user and, by cascade, all of their payments.

    Raises:
        UserNotFoundError: If no user has this id.
    """
    user = await db.get(User, user_id)
    if user is None:
        raise UserNotFoundError(user_id)

    await db.delete(user)
    await db.flush()
    logger.info("Deleted user id=%s with cascaded payments", user_id)
