import logging
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

import backend.main as backend_main
from backend.app.routes import credits as credits_routes
from backend.app.services import credits as credits_service


@pytest.fixture
def app_client(monkeypatch, controller):
    monkeypatch.setattr(credits_service, "get_credit_controller", lambda: controller)
    backend_main.app.dependency_overrides[credits_routes._get_current_user] = lambda: SimpleNamespace(id=7)
    try:
        yield TestClient(backend_main.app, raise_server_exceptions=False, follow_redirects=False)
    finally:
        backend_main.app.dependency_overrides.clear()


def test_missing_product_answers_generic_server_error(app_client, catalog, caplog):
    catalog.products = []

    with caplog.at_level(logging.ERROR, logger="credits"):
        response = app_client.post("/api/credits/add", data={"amount": "1"})

    assert response.status_code == 500
    assert response.json() == {"detail": backend_main.CREDIT_ERROR_DETAIL}
    assert "No product found" not in response.text
    assert "No product found for credit purchase" in caplog.text
    assert "/api/credits/add" in caplog.text


def test_invoice_validation_failure_answers_generic_server_error(app_client, invoices):
    invoices.validation_errors = ["Unknown user"]

    response = app_client.post("/api/credits/add", data={"amount": "2"})

    assert response.status_code == 500
    assert response.json() == {"detail": backend_main.CREDIT_ERROR_DETAIL}
    assert "Unknown user" not in response.text


def test_form_post_through_app_redirects_to_payment(app_client):
    response = app_client.post("/api/credits/add", data={"amount": "3"})

    assert response.status_code == 303
    assert response.headers["location"] == "/pay/payment-link-1"
