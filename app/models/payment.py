"""
Payment model: one stored payment with its card and amount data.

Card numbers and CVVs are encrypted at rest with Fernet. The model itself
never encrypts or decrypts: the mapped attributes are named *_ciphertext so
that every read and write of plaintext has to go through the explicit
helpers in app.services.payment_service (encrypt on write, decrypt on read).

Column layout:
  - card_number / cvv: Fernet token text. Nullable at the storage level for
    legacy rows; every write path in this service requires both.
  - expiry_date: "MM/YY" as entered in the admin form
  - amount: NUMERIC(10, 2), read back as Decimal

The API never serializes this object directly. PaymentResponse in
app.schemas.payment is the public projection and is built field by field.
"""

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base


class Payment(Base):
    __tablename__ = "payments"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )

    # Owner. Deleting the user deletes the payment.
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    card_holder_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    # Full card number, Fernet-encrypted
    card_number_ciphertext: Mapped[str | None] = mapped_column(
        "card_number",
        String(255),
        nullable=True,
    )

    expiry_date: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    # CVV, Fernet-encrypted
    cvv_ciphertext: Mapped[str | None] = mapped_column(
        "cvv",
        String(255),
        nullable=True,
    )

    amount: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
    )

    # Audit timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        index=True,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    # --- Relationships ---
    # Joined so the table view can show user.name without a lazy load
    user: Mapped["User"] = relationship(
        back_populates="payments",
        lazy="joined",
    )

    def __repr__(self) -> str:
        # Never include card data, even encrypted
        return f"<Payment id={self.id} user_id={self.user_id}>"
