import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from ordering.api.errors import register_error_handlers
from ordering.api.routes import cart_router, order_router, payment_router, restaurant_router, webhook_router


@pytest.fixture()
def client():
    app = FastAPI()
    register_error_handlers(app)
    for router in (cart_router, order_router, restaurant_router, payment_router, webhook_router):
        app.include_router(router)
    return TestClient(app)
