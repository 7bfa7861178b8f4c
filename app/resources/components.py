"""
Building blocks for admin-panel resources.

A resource is plain configuration: which fields a create/edit form has,
which columns the list table shows, and which named filters narrow the
list query. The renderer (any frontend consuming the JSON these produce)
owns presentation; this module owns the behavior that has to be identical
on every client:

  - input masks, applied to raw form state before validation
  - dehydration, the final transform before a value reaches the service layer
  - required / max-length / numeric checks with field-level errors
  - table cell formatting, where one failing cell must not break the table
"""

import logging
import string
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Iterable

from sqlalchemy import Select

from app.exceptions import DecryptionError, ValidationError

logger = logging.getLogger(__name__)

# Mask slots that accept a single digit. Any other pattern character is a
# literal inserted between digit groups.
DIGIT_SLOTS = "#0"

CURRENCY_SYMBOLS = {"usd": "$"}


def apply_mask(value: str, pattern: str) -> str:
    """
    Fit the digits of `value` into a mask pattern.

    Whitespace and the pattern's own literals in the input are ignored, and
    literals are inserted only while digits remain:

        apply_mask("4111111111111234", "#### #### #### ####") -> "4111 1111 1111 1234"
        apply_mask("0927", "00/00") -> "09/27"
        apply_mask("09", "00/00") -> "09"

    Raises:
        ValueError: If `value` holds any other character, or more digits
            than the pattern has slots.
    """
    literals = {c for c in pattern if c not in DIGIT_SLOTS}
    digits = []
    for c in value:
        if c in string.digits:
            digits.append(c)
        elif not (c.isspace() or c in literals):
            raise ValueError(f"unexpected character {c!r}")
    if len(digits) > sum(1 for slot in pattern if slot in DIGIT_SLOTS):
        raise ValueError("too many digits")

    masked = []
    for slot in pattern:
        if not digits:
            break
        if slot in DIGIT_SLOTS:
            masked.append(digits.pop(0))
        else:
            masked.append(slot)
    return "".join(masked)


def strip_spaces(value: str) -> str:
    return value.replace(" ", "")


def format_money(amount: Decimal, currency: str = "usd") -> str:
    """Format an amount for display, e.g. Decimal("1234.5") -> "$1,234.50"."""
    symbol = CURRENCY_SYMBOLS.get(currency.lower(), f"{currency.upper()} ")
    sign = "-" if amount < 0 else ""
    return f"{sign}{symbol}{abs(amount):,.2f}"


def format_datetime(value: datetime) -> str:
    """Format a timestamp for display, e.g. "Oct 7, 2026 14:05:09"."""
    return f"{value:%b} {value.day}, {value:%Y %H:%M:%S}"


@dataclass(frozen=True)
class FormField:
    """
    One input on a create/edit form.

    Processing order for a submitted value: strip surrounding whitespace,
    apply the mask, dehydrate, then validate. Sensitive fields are never
    pre-filled on the edit form; leaving one blank there means "unchanged".
    """

    name: str
    label: str | None = None
    required: bool = False
    max_length: int | None = None
    mask: str | None = None
    numeric: bool = False
    prefix: str | None = None
    sensitive: bool = False
    dehydrate: Callable[[str], str] | None = None
    validators: tuple[Callable[[str], str | None], ...] = ()

    @property
    def display_label(self) -> str:
        return self.label or self.name.replace("_", " ").title()

    def describe(self) -> dict[str, Any]:
        """JSON description consumed by the form renderer."""
        return {
            "name": self.name,
            "label": self.display_label,
            "required": self.required,
            "max_length": self.max_length,
            "mask": self.mask,
            "numeric": self.numeric,
            "prefix": self.prefix,
            "sensitive": self.sensitive,
        }

    def process(self, raw: Any, *, allow_blank: bool = False) -> str | None:
        """
        Turn raw form state into the value handed to the service layer.

        Returns None for a blank, non-required (or allow_blank) field.

        Raises:
            ValidationError: With this field's name and a readable message.
        """
        value = "" if raw is None else str(raw).strip()
        if self.mask and value:
            try:
                value = apply_mask(value, self.mask)
            except ValueError:
                raise ValidationError(
                    self.name,
                    f"The {self.display_label} does not match the format {self.mask}.",
                )
        if self.dehydrate and value:
            value = self.dehydrate(value)

        if not value:
            if self.required and not allow_blank:
                raise ValidationError(self.name, f"The {self.display_label} field is required.")
            return None

        if self.max_length is not None and len(value) > self.max_length:
            raise ValidationError(
                self.name,
                f"The {self.display_label} may not be greater than {self.max_length} characters.",
            )

        if self.numeric:
            try:
                number = Decimal(value)
            except InvalidOperation:
                number = None
            if number is None or not number.is_finite():
                raise ValidationError(self.name, f"The {self.display_label} must be a number.")

        for validator in self.validators:
            message = validator(value)
            if message:
                raise ValidationError(self.name, message)

        return value


@dataclass(frozen=True)
class TableColumn:
    """One column of the list table; `formatter` maps a record to its cell."""

    name: str
    formatter: Callable[[Any], Any]
    label: str | None = None

    @property
    def display_label(self) -> str:
        return self.label or self.name.replace("_", " ").title()


@dataclass(frozen=True)
class Filter:
    """A named restriction of the list query, evaluated at `now`."""

    name: str
    query: Callable[[Select, datetime], Select]
    label: str | None = None


@dataclass
class TableRow:
    id: int
    cells: dict[str, Any] = field(default_factory=dict)
    errors: dict[str, str] = field(default_factory=dict)


def render_rows(columns: Iterable[TableColumn], records: Iterable[Any]) -> list[TableRow]:
    """
    Format every record through every column.

    A cell whose stored data cannot be decrypted is rendered as None with
    an entry in that row's `errors`; the remaining cells and rows render
    normally.
    """
    columns = list(columns)
    rows = []
    for record in records:
        row = TableRow(id=record.id)
        for column in columns:
            try:
                row.cells[column.name] = column.formatter(record)
            except DecryptionError as exc:
                logger.warning(
                    "Could not decrypt column=%s for record id=%s", column.name, record.id
                )
                row.cells[column.name] = None
                row.errors[column.name] = exc.detail
        rows.append(row)
    return rows
