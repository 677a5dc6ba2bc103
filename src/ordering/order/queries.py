"""Read-side order lookups for buyers and restaurant operators."""

from protean.utils.globals import current_domain

from ordering.errors import ForbiddenError
from ordering.order.order import Order
from ordering.order.status import parse_status, restaurant_owner_of

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


def _page(queryset, page, page_size):
    page = max(int(page or 1), 1)
    page_size = min(max(int(page_size or DEFAULT_PAGE_SIZE), 1), MAX_PAGE_SIZE)
    results = queryset.order_by("-created_at").offset((page - 1) * page_size).limit(page_size).all()
    total = results.total
    return {
        "items": results.items,
        "meta": {
            "total": total,
            "page": page,
            "page_size": page_size,
            "total_pages": (total + page_size - 1) // page_size,
        },
    }


def get_order_for(actor_id, order_id):
    """Return the order if ``actor_id`` is its buyer or its restaurant's owner."""
    order = current_domain.repository_for(Order).get(order_id)
    if str(order.user_id) != str(actor_id) and restaurant_owner_of(order.restaurant_id) != str(actor_id):
        raise ForbiddenError()
    return order


def list_buyer_orders(user_id, page=1, page_size=DEFAULT_PAGE_SIZE):
    """The buyer's orders, newest first, without the ones they removed."""
    queryset = current_domain.repository_for(Order)._dao.query.filter(user_id=str(user_id), hidden_by_buyer=False)
    return _page(queryset, page, page_size)


def list_restaurant_orders(owner_id, restaurant_id, status=None, page=1, page_size=DEFAULT_PAGE_SIZE):
    """Orders placed at a restaurant, visible only to its owner."""
    if restaurant_owner_of(restaurant_id) != str(owner_id):
        raise ForbiddenError()

    filters = {"restaurant_id": str(restaurant_id)}
    if status:
        filters["status"] = parse_status(status).value
    queryset = current_domain.repository_for(Order)._dao.query.filter(**filters)
    return _page(queryset, page, page_size)
