import pytest
from checkout.api import cart_router, discount_router, register_checkout_exception_handlers
from fastapi import FastAPI
from fastapi.testclient import TestClient
from protean.integrations.fastapi import register_exception_handlers


@pytest.fixture()
def client():
    app = FastAPI()
    app.include_router(discount_router)
    app.include_router(cart_router)
    register_exception_handlers(app)
    register_checkout_exception_handlers(app)
    return TestClient(app)
