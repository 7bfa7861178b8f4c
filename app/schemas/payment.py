"""
Pydantic schemas for payment endpoints.

Card numbers and CVVs are NEVER returned in API responses. PaymentResponse
is the only projection of a payment that leaves the service, and it is
built explicitly by payment_service.to_external() rather than dumped from
the ORM object, so a new column can't leak by default.

PaymentFormData is raw form state: every field is optional and loosely
typed because masking, dehydration, and field-level validation happen in
app.resources.payment, which reports errors per field.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel


class PaymentResponse(BaseModel):
    """Public representation of a payment (no card number, no CVV)."""
    id: int
    user_id: int
    card_holder_name: str
    expiry_date: str
    amount: str  # fixed 2-place decimal, e.g. "49.99"
    created_at: datetime
    updated_at: datetime


class PaymentFormData(BaseModel):
    """Submitted create/edit form state, before masking and validation."""
    user_id: int | None = None
    card_holder_name: str | None = None
    card_number: str | None = None
    expiry_date: str | None = None
    cvv: str | None = None
    amount: str | int | float | None = None


class FormSchemaResponse(BaseModel):
    """Form description for GET /payments/create and GET /payments/{id}/edit."""
    operation: str
    fields: list[dict[str, Any]]
    record_id: int | None = None
    # Current values for the edit form; sensitive fields are never included
    values: dict[str, Any] = {}


class TableColumnResponse(BaseModel):
    name: str
    label: str


class TableRowResponse(BaseModel):
    id: int
    cells: dict[str, Any]
    # column name -> message, for cells that could not be rendered
    errors: dict[str, str] = {}


class PaymentTableResponse(BaseModel):
    """List view for GET /payments."""
    columns: list[TableColumnResponse]
    rows: list[TableRowResponse]
    filters: list[str] = []
