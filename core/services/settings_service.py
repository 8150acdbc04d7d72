"""
Per-user settings service.

Settings live in one document per owner whose id is the owner id. Reads
never fail for a user who has not saved anything yet: stored fields are
laid over the defaults, and the defaults follow InvoicerConfig where the
two overlap (payment terms, number prefix, template).
"""

import logging
from typing import Any, Callable

from core.config import InvoicerConfig
from core.documents import stamp, store_call
from core.models import NotificationSettings, Party, Settings, SettingsUpdate
from core.store import SETTINGS, DocumentStore, Query
from core.sync import Subscription, subscribe_query
from utils.clock import Clock, SystemClock

logger = logging.getLogger(__name__)


class SettingsService:
    """Service for reading and saving a user's settings."""

    def __init__(
        self,
        store: DocumentStore,
        clock: Clock | None = None,
        config: InvoicerConfig | None = None,
    ):
        self.store = store
        self.clock = clock or SystemClock()
        self.config = config or InvoicerConfig()

    def defaults(self, owner_id: str) -> Settings:
        """Settings for a user who has saved nothing."""
        return Settings(
            owner_id=owner_id,
            default_payment_terms=self.config.default_payment_terms_days,
            invoice_prefix=self.config.invoice_number_prefix,
            default_template=self.config.default_template,
        )

    def _to_settings(self, owner_id: str, data: dict[str, Any]) -> Settings:
        stored = {key: value for key, value in data.items() if value is not None or key == "logo_url"}
        return Settings.model_validate({
            **self.defaults(owner_id).model_dump(),
            **stored,
            "owner_id": owner_id,
        })

    def get(self, owner_id: str) -> Settings:
        """The user's settings, defaults filled in."""
        doc = store_call("load settings", self.store.get, SETTINGS, owner_id)
        return self._to_settings(owner_id, doc.data if doc else {})

    def update(self, owner_id: str, data: SettingsUpdate) -> Settings:
        """
        Save the fields set on data, creating the settings document on first save.

        Returns:
            Settings after the write, defaults filled in
        """
        changes = data.changes()
        if not changes:
            return self.get(owner_id)

        now = stamp(self.clock.now())
        existing = store_call("load settings", self.store.get, SETTINGS, owner_id)
        fields = {**changes, "owner_id": owner_id, "updated_at": now}
        if existing is None:
            fields["created_at"] = now

        doc = store_call("update settings", self.store.upsert, SETTINGS, owner_id, fields)
        logger.info(f"Updated settings for owner {owner_id}: {', '.join(sorted(changes))}")
        return self._to_settings(owner_id, doc.data)

    def update_company_details(self, owner_id: str, changes: dict[str, Any]) -> Settings:
        """
        Change single fields of the company details, keeping the rest.

        Raises:
            pydantic.ValidationError: Invalid field values
        """
        current = self.get(owner_id).company_details
        company = Party.model_validate({**current.model_dump(), **changes})
        return self.update(owner_id, SettingsUpdate(company_details=company))

    def update_notifications(self, owner_id: str, changes: dict[str, bool]) -> Settings:
        """Change single notification preferences, keeping the rest."""
        current = self.get(owner_id).notifications
        notifications = NotificationSettings.model_validate({**current.model_dump(), **changes})
        return self.update(owner_id, SettingsUpdate(notifications=notifications))

    def subscribe(
        self,
        owner_id: str,
        on_change: Callable[[Settings], None],
    ) -> Subscription[Settings]:
        """
        Push the user's settings now and after every change.

        A user without a settings document receives the defaults.
        """
        def deliver(snapshot: list[Settings]) -> None:
            on_change(snapshot[0] if snapshot else self.defaults(owner_id))

        return store_call(
            "subscribe to settings",
            subscribe_query,
            self.store,
            Query(SETTINGS, where={"owner_id": owner_id}, limit=1),
            lambda doc: self._to_settings(owner_id, doc.data),
            deliver,
        )
