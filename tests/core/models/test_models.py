"""Tests for core domain models - custom validators and helpers only."""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest
from pydantic import ValidationError


def _create(**overrides):
    from core.models import InvoiceCreate

    data = {"issue_date": date(2024, 3, 15), "due_date": date(2024, 4, 14)}
    data.update(overrides)
    return InvoiceCreate(**data)


class TestInvoiceCreate:
    """Tests for InvoiceCreate custom validators."""

    def test_minimal_invoice_uses_defaults(self):
        """Only the dates are required."""
        from core.models import InvoiceStatus, TemplateId

        invoice = _create()
        assert invoice.status == InvoiceStatus.DRAFT
        assert invoice.template_id == TemplateId.CLASSIC
        assert invoice.items == []

    def test_due_before_issue_rejected(self):
        with pytest.raises(ValidationError, match="due_date cannot be earlier"):
            _create(due_date=date(2024, 3, 14))

    def test_same_day_due_accepted(self):
        assert _create(due_date=date(2024, 3, 15)).due_date == date(2024, 3, 15)

    def test_duplicate_item_ids_rejected(self):
        from core.models import LineItem

        with pytest.raises(ValidationError, match="Duplicate line item id 'a'"):
            _create(items=[LineItem(id="a"), LineItem(id="a")])

    def test_cannot_start_overdue(self):
        with pytest.raises(ValidationError, match="cannot start as overdue"):
            _create(status="overdue")

    def test_negative_tax_rejected(self):
        with pytest.raises(ValidationError):
            _create(tax_rate=-1)

    def test_unknown_template_rejected(self):
        with pytest.raises(ValidationError):
            _create(template_id="fancy")


class TestLineItem:

    def test_amount(self):
        from core.models import LineItem

        assert LineItem(id="a", quantity=2.5, unit_price=4).amount == 10

    def test_negative_quantity_rejected(self):
        from core.models import LineItem

        with pytest.raises(ValidationError):
            LineItem(id="a", quantity=-1)


class TestInvoiceUpdateChanges:
    """Tests for InvoiceUpdate.changes()."""

    def test_only_set_fields(self):
        from core.models import InvoiceUpdate

        assert InvoiceUpdate(notes="Thanks").changes() == {"notes": "Thanks"}

    def test_empty_patch(self):
        from core.models import InvoiceUpdate

        assert InvoiceUpdate().changes() == {}

    def test_null_clears_customer_but_not_notes(self):
        from core.models import InvoiceUpdate

        patch = InvoiceUpdate(customer_id=None, notes=None, banking_details=None)

        assert patch.changes() == {"customer_id": None, "banking_details": None}

    def test_values_are_json_ready(self):
        from core.models import InvoiceUpdate

        changes = InvoiceUpdate(due_date=date(2024, 5, 1), discount_type="percentage").changes()

        assert changes == {"due_date": "2024-05-01", "discount_type": "percentage"}


class TestInvoice:
    """Tests for the stored Invoice entity."""

    _stamp = datetime(2024, 3, 15, tzinfo=timezone.utc)

    def test_stored_nulls_fall_back_to_defaults(self):
        from core.models import Invoice, InvoiceStatus

        invoice = Invoice(
            id="i1", owner_id="u1", created_at=self._stamp, updated_at=self._stamp,
            status=None, items=None, recipient=None,
        )

        assert invoice.status == InvoiceStatus.DRAFT
        assert invoice.items == []
        assert invoice.recipient.name == "Unknown Client"

    def test_is_past_due(self):
        from core.models import Invoice

        invoice = Invoice(
            id="i1", owner_id="u1", created_at=self._stamp, updated_at=self._stamp,
            due_date=date(2024, 3, 14),
        )

        assert invoice.is_past_due(date(2024, 3, 15))
        assert not invoice.is_past_due(date(2024, 3, 14))

    def test_without_due_date_never_past_due(self):
        from core.models import Invoice

        invoice = Invoice(id="i1", owner_id="u1", created_at=self._stamp, updated_at=self._stamp)

        assert not invoice.is_past_due(date(2100, 1, 1))

    def test_display_totals_round_half_even(self):
        from core.models import Invoice

        invoice = Invoice(
            id="i1", owner_id="u1", created_at=self._stamp, updated_at=self._stamp,
            subtotal=10.125, tax_amount=1.015, discount_amount=0, total=11.14,
        )

        assert invoice.display_totals == {
            "subtotal": Decimal("10.12"),
            "tax_amount": Decimal("1.02"),
            "discount_amount": Decimal("0.00"),
            "total": Decimal("11.14"),
        }


class TestCustomerModels:

    def test_display_name_fallback(self):
        from core.models import Customer

        customer = Customer(id="c1", owner_id="u1", created_at=datetime(2024, 3, 15, tzinfo=timezone.utc))

        assert customer.display_name == "Unnamed Customer"

    def test_update_rejects_empty_name(self):
        from core.models import CustomerUpdate

        with pytest.raises(ValidationError):
            CustomerUpdate(name="")
