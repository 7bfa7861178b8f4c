"""
Payments router: the admin-panel pages and actions for payment records.

Endpoints:
  GET    /payments               : Table of payments the user can view (?filter=recent)
  GET    /payments/create        : Create form description
  POST   /payments               : Submit the create form
  GET    /payments/{payment_id}       : Public view of one payment
  GET    /payments/{payment_id}/edit  : Edit form description + current values
  PUT    /payments/{payment_id}       : Submit the edit form
  DELETE /payments/{payment_id}       : Delete a payment

Every single-record endpoint loads the payment first (404 if missing) and
then runs the matching policy check (403 if denied) before doing anything
else. Card numbers and CVVs never appear in any response; the table shows
only the masked card number.
"""

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies import get_current_user
from app.exceptions import UnauthorizedAccessError
from app.models.user import User
from app.policies.payment_policy import authorize
from app.resources import payment as payment_resource
from app.schemas.payment import (
    FormSchemaResponse,
    PaymentFormData,
    PaymentResponse,
    PaymentTableResponse,
    TableRowResponse,
)
from app.services import payment_service

router = APIRouter()


@router.get(
    "",
    response_model=PaymentTableResponse,
    summary="List payments",
)
async def list_payments(
    filters: list[str] = Query([], alias="filter", description="Named table filters, e.g. recent"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Render the payments table.

    Admins see every payment; members see their own. Rows whose card number
    can't be decrypted still render, with the card cell empty and the reason
    in the row's `errors`.
    """
    resolved = payment_resource.resolve_filters(filters)
    payments = await payment_service.list_payments(db, user, filters=resolved)
    rows = payment_resource.render_table(payments)

    return PaymentTableResponse(
        columns=payment_resource.table_columns(),
        rows=[TableRowResponse(id=row.id, cells=row.cells, errors=row.errors) for row in rows],
        filters=[table_filter.name for table_filter in resolved],
    )


@router.get(
    "/create",
    response_model=FormSchemaResponse,
    summary="Describe the create form",
)
async def create_form(user: User = Depends(get_current_user)):
    return FormSchemaResponse(operation="create", fields=payment_resource.form_schema())


@router.post(
    "",
    response_model=PaymentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a payment",
)
async def create_payment(
    form: PaymentFormData,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Create a payment from submitted form state.

    The payment belongs to the authenticated user unless an admin supplies
    `user_id` to record it for someone else.
    """
    owner_id = form.user_id if form.user_id is not None else user.id
    if owner_id != user.id and not user.has_role("admin"):
        raise UnauthorizedAccessError("You can only create payments for yourself")

    fields = payment_resource.dehydrate_form(form.model_dump(), operation="create")
    fields["user_id"] = owner_id

    payment = await payment_service.create_payment(db, fields)
    return payment_service.to_external(payment)


@router.get(
    "/{payment_id}",
    response_model=PaymentResponse,
    summary="Get a payment",
)
async def get_payment(
    payment_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    payment = await payment_service.get_payment(db, payment_id)
    authorize("view", user, payment)
    return payment_service.to_external(payment)


@router.get(
    "/{payment_id}/edit",
    response_model=FormSchemaResponse,
    summary="Describe the edit form",
)
async def edit_form(
    payment_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Edit form with current values. Card number and CVV are never pre-filled."""
    payment = await payment_service.get_payment(db, payment_id)
    authorize("update", user, payment)
    return FormSchemaResponse(
        operation="edit",
        fields=payment_resource.form_schema(),
        record_id=payment.id,
        values=payment_resource.edit_values(payment),
    )


@router.put(
    "/{payment_id}",
    response_model=PaymentResponse,
    summary="Update a payment",
)
async def update_payment(
    payment_id: int,
    form: PaymentFormData,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Apply the edit form.

    Leave card_number or cvv blank to keep the stored value; anything
    entered there is re-encrypted.
    """
    payment = await payment_service.get_payment(db, payment_id)
    authorize("update", user, payment)

    fields = payment_resource.dehydrate_form(form.model_dump(), operation="edit")
    payment = await payment_service.update_payment(db, payment.id, fields)
    return payment_service.to_external(payment)


@router.delete(
    "/{payment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a payment",
)
async def delete_payment(
    payment_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    payment = await payment_service.get_payment(db, payment_id)
    authorize("delete", user, payment)
    await payment_service.delete_payment(db, payment.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
