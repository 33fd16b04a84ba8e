"""
Tests for the health and root endpoints.
"""
from crm.core.config import settings


def test_health(client):
    response = client.get("/health")

    body = response.json()
    assert response.status_code == 200
    assert body["status"] == "healthy"
    assert body["service"] == settings.APP_NAME
    assert isinstance(body["background_task_failures"], dict)


def test_root(client):
    assert client.get("/").json()["status"] == "running"
