"""Tests for health check endpoints."""

import pytest
from httpx import AsyncClient


@pytest.mark.integration
async def test_health_check(client: AsyncClient) -> None:
    """Test the liveness endpoint."""
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


@pytest.mark.integration
async def test_database_health(client: AsyncClient) -> None:
    """Test that the database check runs a query on the test database."""
    response = await client.get("/health/db")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "database": "connected"}
