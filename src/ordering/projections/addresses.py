"""Saved delivery addresses, owned by the identity service."""

from protean.fields import Identifier, String

from ordering.domain import ordering


@ordering.projection
class DeliveryAddress:
    address_id = Identifier(identifier=True, required=True)
    user_id = Identifier(required=True)
    street = String(required=True, max_length=255)
    city = String(required=True, max_length=100)
    country = String(required=True, max_length=100)

    def formatted(self) -> str:
        return f"{self.street}, {self.city}, {self.country}"
