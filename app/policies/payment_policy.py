"""
Payment policy: who may view, update, or delete a payment.

The three predicates are pure functions of (acting user, payment): no
database access, no side effects. Routers load the payment first (so a
missing record is a 404), then call authorize() before doing anything else
with it. A False result is always an error, never a silent filter.

  view:   owner, or any admin
  update: owner only (admins included only when they own the record)
  delete: any admin, regardless of ownership
"""

from typing import Callable, Protocol

from app.exceptions import UnauthorizedAccessError
from app.models.payment import Payment


class Actor(Protocol):
    """Anything acting on a payment: an id plus a role query."""

    id: int

    def has_role(self, role: str) -> bool: ...


def can_view(user: Actor, payment: Payment) -> bool:
    return user.id == payment.user_id or user.has_role("admin")


def can_update(user: Actor, payment: Payment) -> bool:
    return user.id == payment.user_id


def can_delete(user: Actor, payment: Payment) -> bool:
    return user.has_role("admin")


ABILITIES: dict[str, Callable[[Actor, Payment], bool]] = {
    "view": can_view,
    "update": can_update,
    "delete": can_delete,
}


def authorize(ability: str, user: Actor, payment: Payment) -> None:
    """
    Enforce a policy check.

    Raises:
        UnauthorizedAccessError: If the predicate for `ability` is False.
        KeyError: If `ability` is not one of view/update/delete.
    """
    if not ABILITIES[ability](user, payment):
        raise UnauthorizedAccessError(f"You are not allowed to {ability} this payment")
