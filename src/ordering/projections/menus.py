"""Menus — fixed product bundles sold as one unit inside a time window."""

import json
from datetime import UTC, datetime

from protean.fields import Boolean, DateTime, Float, Identifier, String, Text
from protean.utils import ensure_utc_aware

from ordering.domain import ordering


@ordering.projection
class Menu:
    menu_id = Identifier(identifier=True, required=True)
    restaurant_id = Identifier(required=True)
    name = String(required=True, max_length=255)
    price = Float(min_value=0.0)
    product_ids = Text(required=True)  # JSON list, in display order
    is_active = Boolean(default=True)
    starts_at = DateTime()
    ends_at = DateTime()

    def products(self) -> list[str]:
        return json.loads(self.product_ids) if self.product_ids else []

    def is_available_at(self, when: datetime | None = None) -> bool:
        """Active and inside its window. Open-ended bounds are allowed."""
        if not self.is_active:
            return False
        now = when or datetime.now(UTC)
        if self.starts_at and ensure_utc_aware(self.starts_at) > now:
            return False
        if self.ends_at and ensure_utc_aware(self.ends_at) < now:
            return False
        return True
