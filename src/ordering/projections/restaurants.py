"""Restaurant directory — owner lookup for authorization and message rendering.

Maintained by the catalogue service. The ordering context only reads it.
"""

from protean.fields import Identifier, String

from ordering.domain import ordering


@ordering.projection
class Restaurant:
    restaurant_id = Identifier(identifier=True, required=True)
    name = String(required=True, max_length=255)
    owner_id = Identifier(required=True)
