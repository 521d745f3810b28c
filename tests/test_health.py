# tests/test_health.py
from fastapi import status

from parley.core.settings import settings


def test_health(client):
    response = client.get("/health")
    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"status": "ok"}


def test_root(client):
    data = client.get("/").json()
    assert data["name"] == settings.app_name
    assert data["version"] == settings.app_version
