"""Tests for the health check endpoint."""

import pytest
from django.db import DatabaseError

from core.circuit_breaker import CircuitBreaker


@pytest.mark.django_db
class TestHealthCheck:
    def test_healthy(self, client, settings):
        settings.HEALTH_CHECK_CIRCUITS = ["gateway:paystack", "gateway:flutterwave"]

        response = client.get("/health/")

        assert response.status_code == 200
        assert response.json() == {
            "status": "healthy",
            "database": "connected",
            "cache": "connected",
            "circuits": {"gateway:paystack": "closed", "gateway:flutterwave": "closed"},
        }

    def test_open_gateway_circuit_degrades(self, client, settings):
        settings.HEALTH_CHECK_CIRCUITS = ["gateway:paystack"]
        circuit = CircuitBreaker("gateway:paystack", failure_threshold=1)
        circuit.record_failure()

        response = client.get("/health/")

        assert response.status_code == 200
        assert response.json()["status"] == "degraded"
        assert response.json()["circuits"] == {"gateway:paystack": "open"}

    def test_database_down(self, client, mocker):
        connection = mocker.patch("core.views.connection")
        connection.cursor.side_effect = DatabaseError("could not connect to server")

        response = client.get("/health/")

        assert response.status_code == 503
        assert response.json()["status"] == "unhealthy"
        assert response.json()["database"] == "disconnected"

    def test_answers_plain_http_without_redirect(self, client):
        response = client.get("/health/", secure=False)

        assert response.status_code == 200
        assert "Location" not in response.headers
