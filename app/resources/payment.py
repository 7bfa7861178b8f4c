"""
Payment admin resource: form, table, and filters for payment records.

Form (create and edit):
  card_holder_name  required, max 255
  card_number       required, mask "#### #### #### ####", spaces stripped on submit
  expiry_date       required, mask "00/00", MM/YY
  cvv               required, max 4
  amount            required, numeric, shown with a "USD " prefix

On the edit form card_number and cvv start empty; leaving them blank keeps
the stored values.

Table: owner name, card holder, masked card number, amount as USD,
created at. Filter "recent": created within the last RECENT_FILTER_DAYS.
"""

from datetime import datetime, timedelta
from typing import Any, Iterable, Mapping

from sqlalchemy import Select

from app.config import settings
from app.exceptions import ValidationError
from app.models.payment import Payment
from app.resources.components import (
    Filter,
    FormField,
    TableColumn,
    TableRow,
    format_datetime,
    format_money,
    render_rows,
    strip_spaces,
)
from app.services.payment_service import expiry_date_error, masked_card_number

NAVIGATION_LABEL = "Payments"
NAVIGATION_ICON = "heroicon-o-credit-card"
RECORD_TITLE_ATTRIBUTE = "card_holder_name"

PAGES = {
    "index": "/",
    "create": "/create",
    "edit": "/{record}/edit",
}


FORM_FIELDS = (
    FormField(
        "card_holder_name",
        required=True,
        max_length=255,
    ),
    FormField(
        "card_number",
        label="Card Number",
        required=True,
        mask="#### #### #### ####",
        sensitive=True,
        dehydrate=strip_spaces,
    ),
    FormField(
        "expiry_date",
        label="Expiry (MM/YY)",
        required=True,
        mask="00/00",
        validators=(expiry_date_error,),
    ),
    FormField(
        "cvv",
        label="CVV",
        required=True,
        max_length=4,
        sensitive=True,
    ),
    FormField(
        "amount",
        required=True,
        numeric=True,
        prefix="USD ",
    ),
)


def _recent(stmt: Select, now: datetime) -> Select:
    return stmt.where(
        Payment.created_at >= now - timedelta(days=settings.RECENT_FILTER_DAYS)
    )


FILTERS = {
    "recent": Filter("recent", query=_recent, label="Recent"),
}


TABLE_COLUMNS = (
    TableColumn("user", formatter=lambda payment: payment.user.name, label="User"),
    TableColumn("card_holder_name", formatter=lambda payment: payment.card_holder_name),
    TableColumn("card_number", formatter=masked_card_number, label="Card Number"),
    TableColumn("amount", formatter=lambda payment: format_money(payment.amount, "usd")),
    TableColumn("created_at", formatter=lambda payment: format_datetime(payment.created_at)),
)


def form_schema() -> list[dict[str, Any]]:
    return [form_field.describe() for form_field in FORM_FIELDS]


def dehydrate_form(data: Mapping[str, Any], operation: str = "create") -> dict[str, Any]:
    """
    Turn submitted form state into service-layer fields.

    Every form field is masked, dehydrated, and validated in declaration
    order. On "edit", a blank sensitive field is dropped so the stored
    value is kept.

    Raises:
        ValidationError: For the first field that fails, naming that field.
    """
    fields = {}
    for form_field in FORM_FIELDS:
        allow_blank = operation == "edit" and form_field.sensitive
        value = form_field.process(data.get(form_field.name), allow_blank=allow_blank)
        if value is not None:
            fields[form_field.name] = value
    return fields


def edit_values(payment: Payment) -> dict[str, Any]:
    """Pre-fill values for the edit form, without the sensitive fields."""
    return {
        form_field.name: _edit_value(payment, form_field.name)
        for form_field in FORM_FIELDS
        if not form_field.sensitive
    }


def _edit_value(payment: Payment, name: str) -> Any:
    if name == "amount":
        return f"{payment.amount:.2f}"
    return getattr(payment, name)


def resolve_filters(names: Iterable[str]) -> list[Filter]:
    """
    Look up table filters by name.

    Raises:
        ValidationError: For an unknown filter name.
    """
    filters = []
    for name in names:
        if name not in FILTERS:
            raise ValidationError("filter", f"Unknown filter '{name}'.")
        filters.append(FILTERS[name])
    return filters


def table_columns() -> list[dict[str, str]]:
    return [{"name": column.name, "label": column.display_label} for column in TABLE_COLUMNS]


def render_table(payments: Iterable[Payment]) -> list[TableRow]:
    return render_rows(TABLE_COLUMNS, payments)
