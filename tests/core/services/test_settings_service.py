"""Tests for SettingsService and the invoice defaults it drives."""

from datetime import timedelta

import pytest
from pydantic import ValidationError

from core.models import InvoiceStatus, Party, SettingsUpdate, TemplateId, Theme
from core.store import SETTINGS


class TestSettingsDefaults:

    def test_user_without_settings_gets_defaults(self, settings_service, owner_id, store):
        settings = settings_service.get(owner_id)

        assert settings.owner_id == owner_id
        assert settings.default_tax_rate == 15
        assert settings.default_payment_terms == 30
        assert settings.invoice_prefix == "INV-"
        assert settings.currency == "ZAR"
        assert settings.notifications.overdue_alerts is True
        assert store.get(SETTINGS, owner_id) is None

    def test_stored_fields_lie_over_defaults(self, settings_service, owner_id, store):
        store.upsert(SETTINGS, owner_id, {"owner_id": owner_id, "currency": "EUR"})

        settings = settings_service.get(owner_id)

        assert settings.currency == "EUR"
        assert settings.default_payment_terms == 30


class TestSettingsUpdate:

    def test_first_save_creates_document(self, settings_service, owner_id, store, clock):
        settings = settings_service.update(owner_id, SettingsUpdate(default_tax_rate=20, theme=Theme.DARK))

        assert settings.default_tax_rate == 20
        assert settings.theme == Theme.DARK
        assert settings.created_at == clock.now()
        stored = store.get(SETTINGS, owner_id).data
        assert stored["owner_id"] == owner_id
        assert "currency" not in stored

    def test_later_save_keeps_created_at(self, settings_service, owner_id, clock):
        first = settings_service.update(owner_id, SettingsUpdate(currency="USD"))
        clock.advance(days=1)

        second = settings_service.update(owner_id, SettingsUpdate(default_payment_terms=14))

        assert second.created_at == first.created_at
        assert second.updated_at == clock.now()
        assert second.currency == "USD"

    def test_settings_are_per_owner(self, settings_service, owner_id, other_owner_id):
        settings_service.update(owner_id, SettingsUpdate(currency="USD"))

        assert settings_service.get(other_owner_id).currency == "ZAR"

    def test_empty_update_writes_nothing(self, settings_service, owner_id, store):
        settings_service.update(owner_id, SettingsUpdate())

        assert store.get(SETTINGS, owner_id) is None

    def test_rejects_out_of_range_terms(self):
        with pytest.raises(ValidationError):
            SettingsUpdate(default_payment_terms=-1)

    def test_company_details_merge_single_fields(self, settings_service, owner_id):
        settings_service.update(owner_id, SettingsUpdate(company_details=Party(name="Acme", email="a@acme.com")))

        settings = settings_service.update_company_details(owner_id, {"phone": "555-0100"})

        assert settings.company_details.name == "Acme"
        assert settings.company_details.phone == "555-0100"

    def test_notifications_merge_single_fields(self, settings_service, owner_id):
        settings = settings_service.update_notifications(owner_id, {"email_reminders": False})

        assert settings.notifications.email_reminders is False
        assert settings.notifications.payment_confirmations is True

    def test_subscribe_delivers_defaults_then_saved_settings(self, settings_service, owner_id):
        snapshots = []
        subscription = settings_service.subscribe(owner_id, snapshots.append)

        settings_service.update(owner_id, SettingsUpdate(currency="GBP"))
        subscription.unsubscribe()

        assert snapshots[0].currency == "ZAR"
        assert snapshots[-1].currency == "GBP"


class TestSettingsDriveInvoices:

    def test_duplicate_uses_owner_payment_terms(
        self, settings_service, invoice_service, make_invoice, owner_id, clock
    ):
        settings_service.update(owner_id, SettingsUpdate(default_payment_terms=14))
        source = invoice_service.create(make_invoice(), owner_id)

        copy = invoice_service.duplicate(source.id, owner_id)

        assert copy.due_date == clock.today() + timedelta(days=14)
        assert copy.status == InvoiceStatus.DRAFT

    def test_owner_prefix_numbers_new_invoices(
        self, settings_service, invoice_service, make_invoice, owner_id, other_owner_id
    ):
        settings_service.update(owner_id, SettingsUpdate(invoice_prefix="ACME-"))

        assert invoice_service.peek_number(owner_id) == "ACME-001"
        assert invoice_service.create(make_invoice(), owner_id).invoice_number == "ACME-001"
        assert invoice_service.create(make_invoice(), other_owner_id).invoice_number == "INV-001"

    def test_changed_prefix_continues_sequence(
        self, settings_service, invoice_service, make_invoice, owner_id, clock
    ):
        invoice_service.create(make_invoice(), owner_id)
        settings_service.update(owner_id, SettingsUpdate(invoice_prefix="ACME-"))
        clock.advance(minutes=1)

        assert invoice_service.create(make_invoice(), owner_id).invoice_number == "ACME-002"

    def test_default_template_applies_when_unset(self, settings_service, invoice_service, make_invoice, owner_id):
        settings_service.update(owner_id, SettingsUpdate(default_template=TemplateId.PREMIUM))

        assert invoice_service.create(make_invoice(), owner_id).template_id == TemplateId.PREMIUM
        chosen = invoice_service.create(make_invoice(template_id=TemplateId.MODERN), owner_id)
        assert chosen.template_id == TemplateId.MODERN

    def test_new_invoice_defaults(self, settings_service, invoice_service, owner_id, clock):
        settings_service.update(owner_id, SettingsUpdate(
            company_details=Party(name="Acme Studio"),
            default_tax_rate=20,
            default_payment_terms=7,
        ))

        defaults = invoice_service.new_invoice_defaults(owner_id)

        assert defaults.invoice_number == "INV-001"
        assert defaults.sender.name == "Acme Studio"
        assert defaults.tax_rate == 20
        assert defaults.issue_date == clock.today()
        assert defaults.due_date == clock.today() + timedelta(days=7)
        assert invoice_service.peek_number(owner_id) == "INV-001"
