"""
Tests for the payment admin resource (form transforms, table, filters).

These run without a database: form processing is pure, and table rendering
works on transient Payment objects.
"""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from app.exceptions import ValidationError
from app.models.payment import Payment
from app.models.user import User
from app.resources import payment as payment_resource
from app.resources.components import apply_mask, format_datetime, format_money
from app.security import encrypt_value


FORM = {
    "card_holder_name": "Jane Doe",
    "card_number": "4111 1111 1111 1234",
    "expiry_date": "09/27",
    "cvv": "123",
    "amount": "49.99",
}


def make_payment(payment_id: int, card_ciphertext: str | None) -> Payment:
    return Payment(
        id=payment_id,
        user=User(name="Jane Doe", email="jane@example.com", hashed_password="x"),
        card_holder_name="Jane Doe",
        card_number_ciphertext=card_ciphertext,
        expiry_date="09/27",
        cvv_ciphertext=encrypt_value("123"),
        amount=Decimal("1234.50"),
        created_at=datetime(2026, 10, 7, 14, 5, 9, tzinfo=timezone.utc),
    )


class TestApplyMask:

    @pytest.mark.parametrize(
        "value, pattern, expected",
        [
            ("4111111111111234", "#### #### #### ####", "4111 1111 1111 1234"),
            ("4111 1111 1111 1234", "#### #### #### ####", "4111 1111 1111 1234"),
            ("41111111", "#### #### #### ####", "4111 1111"),
            (" 4111  1111 1111 1234 ", "#### #### #### ####", "4111 1111 1111 1234"),
            ("0927", "00/00", "09/27"),
            ("09/27", "00/00", "09/27"),
            ("09", "00/00", "09"),
            ("", "00/00", ""),
        ],
    )
    def test_apply_mask(self, value, pattern, expected):
        assert apply_mask(value, pattern) == expected

    @pytest.mark.parametrize(
        "value, pattern",
        [
            ("4111111111111234567", "#### #### #### ####"),
            ("4111-1111-1111-1234", "#### #### #### ####"),
            ("4111 1111 1111 123x", "#### #### #### ####"),
            ("09/275", "00/00"),
            ("09.27", "00/00"),
        ],
    )
    def test_apply_mask_rejects_input_that_does_not_fit(self, value, pattern):
        with pytest.raises(ValueError):
            apply_mask(value, pattern)


class TestDehydrateForm:

    def test_create_form_produces_service_fields(self):
        fields = payment_resource.dehydrate_form(FORM, operation="create")
        assert fields == {
            "card_holder_name": "Jane Doe",
            "card_number": "4111111111111234",
            "expiry_date": "09/27",
            "cvv": "123",
            "amount": "49.99",
        }

    def test_card_number_spaces_are_stripped(self):
        fields = payment_resource.dehydrate_form({**FORM, "card_number": " 5500 0000 0000 0004 "})
        assert fields["card_number"] == "5500000000000004"

    def test_expiry_mask_inserts_slash(self):
        fields = payment_resource.dehydrate_form({**FORM, "expiry_date": "1230"})
        assert fields["expiry_date"] == "12/30"

    def test_card_number_with_extra_digits_is_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            payment_resource.dehydrate_form({**FORM, "card_number": "4111 1111 1111 1234 567"})
        assert exc_info.value.field == "card_number"
        assert exc_info.value.detail == (
            "The Card Number does not match the format #### #### #### ####."
        )

    @pytest.mark.parametrize("card_number", ["4111-1111-1111-1234", "4111 1111 1111 12a4"])
    def test_card_number_with_foreign_characters_is_rejected(self, card_number):
        with pytest.raises(ValidationError) as exc_info:
            payment_resource.dehydrate_form({**FORM, "card_number": card_number})
        assert exc_info.value.field == "card_number"

    def test_overlong_expiry_is_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            payment_resource.dehydrate_form({**FORM, "expiry_date": "09/275"})
        assert exc_info.value.field == "expiry_date"

    @pytest.mark.parametrize("expiry", ["13/27", "00/27", "09/2", "9"])
    def test_incomplete_or_invalid_expiry(self, expiry):
        with pytest.raises(ValidationError) as exc_info:
            payment_resource.dehydrate_form({**FORM, "expiry_date": expiry})
        assert exc_info.value.field == "expiry_date"

    @pytest.mark.parametrize("field", list(FORM))
    def test_every_field_is_required_on_create(self, field):
        with pytest.raises(ValidationError) as exc_info:
            payment_resource.dehydrate_form({**FORM, field: ""}, operation="create")
        assert exc_info.value.field == field
        assert "required" in exc_info.value.detail

    def test_required_message_uses_label(self):
        with pytest.raises(ValidationError) as exc_info:
            payment_resource.dehydrate_form({**FORM, "cvv": None})
        assert exc_info.value.detail == "The CVV field is required."

    def test_card_holder_name_max_length(self):
        with pytest.raises(ValidationError) as exc_info:
            payment_resource.dehydrate_form({**FORM, "card_holder_name": "x" * 256})
        assert exc_info.value.field == "card_holder_name"

    def test_cvv_max_length(self):
        with pytest.raises(ValidationError) as exc_info:
            payment_resource.dehydrate_form({**FORM, "cvv": "12345"})
        assert exc_info.value.field == "cvv"

    @pytest.mark.parametrize("amount", ["abc", "NaN", "12,50"])
    def test_amount_must_be_numeric(self, amount):
        with pytest.raises(ValidationError) as exc_info:
            payment_resource.dehydrate_form({**FORM, "amount": amount})
        assert exc_info.value.field == "amount"

    def test_numeric_amount_accepts_json_number(self):
        fields = payment_resource.dehydrate_form({**FORM, "amount": 49.99})
        assert fields["amount"] == "49.99"

    def test_edit_allows_blank_sensitive_fields(self):
        fields = payment_resource.dehydrate_form(
            {**FORM, "card_number": "", "cvv": None}, operation="edit"
        )
        assert "card_number" not in fields
        assert "cvv" not in fields
        assert fields["amount"] == "49.99"

    def test_edit_still_requires_other_fields(self):
        with pytest.raises(ValidationError) as exc_info:
            payment_resource.dehydrate_form({**FORM, "card_holder_name": ""}, operation="edit")
        assert exc_info.value.field == "card_holder_name"


class TestFormDescription:

    def test_form_schema(self):
        fields = {field["name"]: field for field in payment_resource.form_schema()}

        assert list(fields) == ["card_holder_name", "card_number", "expiry_date", "cvv", "amount"]
        assert all(field["required"] for field in fields.values())
        assert fields["card_holder_name"]["max_length"] == 255
        assert fields["card_number"]["mask"] == "#### #### #### ####"
        assert fields["card_number"]["label"] == "Card Number"
        assert fields["expiry_date"]["label"] == "Expiry (MM/YY)"
        assert fields["expiry_date"]["mask"] == "00/00"
        assert fields["cvv"]["max_length"] == 4
        assert fields["amount"]["numeric"] is True
        assert fields["amount"]["prefix"] == "USD "

    def test_edit_values_exclude_sensitive_fields(self):
        payment = make_payment(1, encrypt_value("4111111111111234"))
        values = payment_resource.edit_values(payment)

        assert values == {
            "card_holder_name": "Jane Doe",
            "expiry_date": "09/27",
            "amount": "1234.50",
        }


class TestTable:

    def test_formatters(self):
        assert format_money(Decimal("1234.5")) == "$1,234.50"
        assert format_money(Decimal("0")) == "$0.00"
        assert format_money(Decimal("12"), "eur") == "EUR 12.00"
        assert format_datetime(datetime(2026, 10, 7, 14, 5, 9)) == "Oct 7, 2026 14:05:09"

    def test_columns(self):
        assert payment_resource.table_columns() == [
            {"name": "user", "label": "User"},
            {"name": "card_holder_name", "label": "Card Holder Name"},
            {"name": "card_number", "label": "Card Number"},
            {"name": "amount", "label": "Amount"},
            {"name": "created_at", "label": "Created At"},
        ]

    def test_render_row(self):
        [row] = payment_resource.render_table([make_payment(1, encrypt_value("4111111111111234"))])

        assert row.id == 1
        assert row.cells == {
            "user": "Jane Doe",
            "card_holder_name": "Jane Doe",
            "card_number": "**** **** **** 1234",
            "amount": "$1,234.50",
            "created_at": "Oct 7, 2026 14:05:09",
        }
        assert row.errors == {}

    def test_undecryptable_row_does_not_break_table(self):
        good = make_payment(1, encrypt_value("4111111111111234"))
        bad = make_payment(2, "not-a-fernet-token")

        rows = payment_resource.render_table([good, bad])

        assert [row.id for row in rows] == [1, 2]
        assert rows[0].cells["card_number"] == "**** **** **** 1234"
        assert rows[1].cells["card_number"] is None
        assert "card_number" in rows[1].errors
        # The rest of the failing row still renders
        assert rows[1].cells["amount"] == "$1,234.50"

    def test_legacy_row_without_card_number(self):
        [row] = payment_resource.render_table([make_payment(1, None)])
        assert row.cells["card_number"] is None
        assert row.errors == {}


class TestFilters:

    def test_resolve_known_filter(self):
        [recent] = payment_resource.resolve_filters(["recent"])
        assert recent.name == "recent"

    def test_unknown_filter(self):
        with pytest.raises(ValidationError) as exc_info:
            payment_resource.resolve_filters(["ancient"])
        assert exc_info.value.field == "filter"
