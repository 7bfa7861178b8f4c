"""
Payment service: storage, validation, and encryption of payment records.

Every plaintext card number and CVV crosses the storage boundary here and
nowhere else:

  write:  validate -> encrypt_value() -> Payment.*_ciphertext -> flush
  read:   Payment.*_ciphertext -> decrypt_value() -> mask or reveal

Callers get Payment ORM objects that only hold ciphertext. Plaintext is
produced on demand by masked_card_number() (the table view) or by the
explicit reveal_* accessors, and never leaves this process through the
API: to_external() builds the public projection without either field.

Validation rules (shared by create and update):
  - user_id, card_holder_name, card_number, expiry_date, cvv, amount are
    all required on create; on update, a field that is present may not be
    blank
  - user_id must reference an existing user
  - card_holder_name: at most 255 characters
  - expiry_date: MM/YY with a month from 01 to 12
  - cvv: at most 4 characters
  - amount: non-negative decimal, at most 2 fractional digits, fits
    NUMERIC(10, 2)

Logging carries payment and user ids only.
"""

import logging
import re
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import DecryptionError, PaymentNotFoundError, ValidationError
from app.models.payment import Payment
from app.models.user import User
from app.policies.payment_policy import Actor
from app.resources.components import Filter
from app.schemas.payment import PaymentResponse
from app.security import decrypt_value, encrypt_value, rotate_value

logger = logging.getLogger(__name__)

FILLABLE_FIELDS = (
    "user_id",
    "card_holder_name",
    "card_number",
    "expiry_date",
    "cvv",
    "amount",
)

CARD_HOLDER_NAME_MAX_LENGTH = 255
CVV_MAX_LENGTH = 4
EXPIRY_DATE_PATTERN = re.compile(r"^(0[1-9]|1[0-2])/[0-9]{2}$")

AMOUNT_QUANTUM = Decimal("0.01")
AMOUNT_MAX = Decimal("99999999.99")  # NUMERIC(10, 2)

MASK_PREFIX = "**** **** **** "


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def expiry_date_error(value: str) -> str | None:
    """Return an error message if `value` is not a MM/YY expiry date."""
    if not EXPIRY_DATE_PATTERN.match(value):
        return "The expiry date must be in MM/YY format."
    return None


def parse_amount(value: Any) -> Decimal:
    """
    Parse a submitted amount into a 2-place Decimal.

    Raises:
        ValidationError: If the amount is not a finite, non-negative number
            with at most 2 fractional digits that fits NUMERIC(10, 2).
    """
    if isinstance(value, bool):
        raise ValidationError("amount", "The amount must be a decimal number.")
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValidationError("amount", "The amount must be a decimal number.")

    if not amount.is_finite():
        raise ValidationError("amount", "The amount must be a decimal number.")
    if amount < 0:
        raise ValidationError("amount", "The amount must not be negative.")
    if amount.as_tuple().exponent < -2:
        raise ValidationError("amount", "The amount may have at most 2 decimal places.")
    if amount > AMOUNT_MAX:
        raise ValidationError("amount", f"The amount may not be greater than {AMOUNT_MAX}.")

    # "-0" passes the sign check; store it as plain zero
    if amount.is_zero():
        amount = amount.copy_abs()
    return amount.quantize(AMOUNT_QUANTUM)


def _clean_text(name: str, value: Any, max_length: int | None = None) -> str:
    if not isinstance(value, str):
        raise ValidationError(name, f"The {name.replace('_', ' ')} must be a string.")
    value = value.strip()
    if max_length is not None and len(value) > max_length:
        raise ValidationError(
            name,
            f"The {name.replace('_', ' ')} may not be greater than {max_length} characters.",
        )
    return value


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def validate_fields(fields: Mapping[str, Any], *, partial: bool = False) -> dict[str, Any]:
    """
    Validate and normalize a submitted field set.

    Keys outside FILLABLE_FIELDS are ignored.

    Args:
        fields: Raw field values keyed by column name.
        partial: True for updates, where absent fields are left unchanged.

    Returns:
        Cleaned values for the fields that were present.

    Raises:
        ValidationError: On the first missing or malformed field. Nothing
            has been written when this is raised.
    """
    cleaned: dict[str, Any] = {}

    for name in FILLABLE_FIELDS:
        if name not in fields:
            if not partial:
                raise ValidationError(name, f"The {name.replace('_', ' ')} field is required.")
            continue

        value = fields[name]
        if _is_blank(value):
            raise ValidationError(name, f"The {name.replace('_', ' ')} field is required.")

        if name == "user_id":
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValidationError(name, "The user id must be an integer.")
            cleaned[name] = value
        elif name == "card_holder_name":
            cleaned[name] = _clean_text(name, value, CARD_HOLDER_NAME_MAX_LENGTH)
        elif name == "card_number":
            cleaned[name] = _clean_text(name, value)
        elif name == "expiry_date":
            cleaned[name] = _clean_text(name, value)
            message = expiry_date_error(cleaned[name])
            if message:
                raise ValidationError(name, message)
        elif name == "cvv":
            cleaned[name] = _clean_text(name, value, CVV_MAX_LENGTH)
        elif name == "amount":
            cleaned[name] = parse_amount(value)

    return cleaned


async def _get_owner(db: AsyncSession, user_id: int) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise ValidationError("user_id", f"User {user_id} does not exist.")
    return user


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------

async def create_payment(db: AsyncSession, fields: Mapping[str, Any]) -> Payment:
    """
    Validate, encrypt, and store a new payment.

    Args:
        db: Database session.
        fields: user_id, card_holder_name, card_number, expiry_date, cvv, amount.

    Returns:
        The stored Payment (sensitive attributes hold ciphertext).

    Raises:
        ValidationError: If any field is missing or malformed, or the owner
            does not exist.
    """
    cleaned = validate_fields(fields)
    owner = await _get_owner(db, cleaned["user_id"])

    payment = Payment(
        user=owner,
        card_holder_name=cleaned["card_holder_name"],
        card_number_ciphertext=encrypt_value(cleaned["card_number"]),
        expiry_date=cleaned["expiry_date"],
        cvv_ciphertext=encrypt_value(cleaned["cvv"]),
        amount=cleaned["amount"],
    )
    db.add(payment)
    await db.flush()

    logger.info("Created payment id=%s user_id=%s", payment.id, payment.user_id)
    return payment


async def get_payment(db: AsyncSession, payment_id: int) -> Payment:
    """
    Load a payment by id.

    Raises:
        PaymentNotFoundError: If no payment has this id.
    """
    payment = await db.get(Payment, payment_id)
    if payment is None:
        raise PaymentNotFoundError(payment_id)
    return payment


async def update_payment(
    db: AsyncSession,
    payment_id: int,
    fields: Mapping[str, Any],
) -> Payment:
    """
    Apply a partial update to a payment.

    Sensitive fields present in `fields` are re-encrypted (with a fresh IV);
    absent ones keep their stored ciphertext.

    Raises:
        PaymentNotFoundError: If no payment has this id.
        ValidationError: If a present field is blank or malformed.
    """
    payment = await get_payment(db, payment_id)
    cleaned = validate_fields(fields, partial=True)

    if "user_id" in cleaned:
        payment.user = await _get_owner(db, cleaned["user_id"])
    if "card_holder_name" in cleaned:
        payment.card_holder_name = cleaned["card_holder_name"]
    if "card_number" in cleaned:
        payment.card_number_ciphertext = encrypt_value(cleaned["card_number"])
    if "expiry_date" in cleaned:
        payment.expiry_date = cleaned["expiry_date"]
    if "cvv" in cleaned:
        payment.cvv_ciphertext = encrypt_value(cleaned["cvv"])
    if "amount" in cleaned:
        payment.amount = cleaned["amount"]

    await db.flush()

    logger.info(
        "Updated payment id=%s fields=%s", payment.id, ",".join(sorted(cleaned))
    )
    return payment


async def delete_payment(db: AsyncSession, payment_id: int) -> None:
    """
    Delete a payment.

    Raises:
        PaymentNotFoundError: If no payment has this id.
    """
    payment = await get_payment(db, payment_id)
    await db.delete(payment)
    await db.flush()
    logger.info("Deleted payment id=%s", payment_id)


async def list_payments(
    db: AsyncSession,
    actor: Actor,
    filters: Sequence[Filter] = (),
    now: datetime | None = None,
) -> list[Payment]:
    """
    List the payments `actor` may view, newest first.

    Admins see every payment; everyone else sees only their own, which is
    exactly the set the view policy allows.

    Args:
        db: Database session.
        actor: The acting user.
        filters: Table filters to apply to the query.
        now: Reference time for time-based filters. Defaults to the current
             UTC time.
    """
    stmt = select(Payment).order_by(Payment.created_at.desc(), Payment.id.desc())
    if not actor.has_role("admin"):
        stmt = stmt.where(Payment.user_id == actor.id)

    now = now or datetime.now(timezone.utc)
    for table_filter in filters:
        stmt = table_filter.query(stmt, now)

    result = await db.execute(stmt)
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# Projection, masking, and explicit decryption
# ---------------------------------------------------------------------------

def to_external(payment: Payment) -> PaymentResponse:
    """Build the public view of a payment. Card number and CVV are never part of it."""
    return PaymentResponse(
        id=payment.id,
        user_id=payment.user_id,
        card_holder_name=payment.card_holder_name,
        expiry_date=payment.expiry_date,
        amount=f"{payment.amount:.2f}",
        created_at=payment.created_at,
        updated_at=payment.updated_at,
    )


def reveal_card_number(payment: Payment) -> str | None:
    """
    Decrypt the stored card number.

    Returns None for legacy rows stored without one.

    Raises:
        DecryptionError: If the ciphertext can't be decrypted.
    """
    if payment.card_number_ciphertext is None:
        return None
    return decrypt_value(payment.card_number_ciphertext)


def reveal_cvv(payment: Payment) -> str | None:
    """Decrypt the stored CVV (None for legacy rows)."""
    if payment.cvv_ciphertext is None:
        return None
    return decrypt_value(payment.cvv_ciphertext)


def masked_card_number(payment: Payment) -> str | None:
    """
    Display form of the card number: "**** **** **** " + last four characters.

    Raises:
        DecryptionError: If the ciphertext can't be decrypted.
    """
    card_number = reveal_card_number(payment)
    if card_number is None:
        return None
    return MASK_PREFIX + card_number[-4:]


# ---------------------------------------------------------------------------
# Key rotation
# ---------------------------------------------------------------------------

async def rotate_encryption_keys(db: AsyncSession) -> dict[str, int]:
    """
    Re-encrypt every stored card number and CVV under the current key.

    Run after adding a new key to the front of the key ring; once it
    reports no failures, the retired keys can be removed from
    PAYMENT_ENCRYPTION_PREVIOUS_KEYS.

    A payment whose ciphertext no key can decrypt is left untouched and
    counted in "failed"; the rest of the batch still rotates.

    Returns:
        {"rotated": <payments re-encrypted>, "failed": <payments skipped>}
    """
    rotated = failed = 0
    result = await db.execute(select(Payment).order_by(Payment.id))

    for payment in result.scalars().all():
        try:
            card_number = (
                rotate_value(payment.card_number_ciphertext)
                if payment.card_number_ciphertext is not None
                else None
            )
            cvv = (
                rotate_value(payment.cvv_ciphertext)
                if payment.cvv_ciphertext is not None
                else None
            )
        except DecryptionError:
            logger.warning("Skipping key rotation for payment id=%s: undecryptable", payment.id)
            failed += 1
            continue

        payment.card_number_ciphertext = card_number
        payment.cvv_ciphertext = cvv
        rotated += 1

    await db.flush()
    logger.info("Rotated payment encryption keys rotated=%s failed=%s", rotated, failed)
    return {"rotated": rotated, "failed": failed}
