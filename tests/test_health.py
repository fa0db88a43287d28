import logging

import pytest
from fastapi import status

def test_health_check(client):
    """Test the /health endpoint returns 200 and up status."""
    response = client.get("/health")
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["status"] == "up"
    assert "version" in data
    assert "timestamp" in data
    assert data["environment"] == "testing"

def test_readiness_check(client):
    """Test the /readiness endpoint returns 200 and database status."""
    response = client.get("/readiness")
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["status"] == "ready"
    assert data["components"]["database"] == "connected"

def test_liveness_check(client):
    response = client.get("/liveness")
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["status"] == "up"

def test_root_endpoint(client):
    """Test the API root endpoint."""
    response = client.get("/")
    assert response.status_code == 200
    assert "Leave Workflow API" in response.json()["message"]

def test_request_id_is_echoed(client):
    response = client.get("/health", headers={"X-Request-ID": "trace-123"})
    assert response.headers["X-Request-ID"] == "trace-123"

def test_unknown_route_uses_error_envelope(client):
    response = client.get("/api/does-not-exist")
    assert response.status_code == 404
    assert response.json()["success"] is False

def test_api_responses_carry_process_time(client):
    response = client.get("/api/does-not-exist")
    assert float(response.headers["X-Process-Time"]) >= 0

def test_client_errors_are_logged_at_warning(client, caplog):
    with caplog.at_level(logging.INFO, logger="app.http"):
        client.get("/api/does-not-exist", headers={"X-Request-ID": "trace-404"})
    records = [r for r in caplog.records if r.name == "app.http"]
    assert len(records) == 1
    assert records[0].levelno == logging.WARNING
    assert records[0].status_code == 404
    assert records[0].correlation_id == "trace-404"

def test_health_endpoints_are_not_logged(client, caplog):
    with caplog.at_level(logging.DEBUG, logger="app.http"):
        response = client.get("/health")
    assert "X-Process-Time" in response.headers
    assert not [r for r in caplog.records if r.name == "app.http"]
