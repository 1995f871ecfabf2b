"""Tests for the diagnostics endpoint."""


def test_diagnostics_reports_each_check(client):
    """Test that database and provider checks pass against the test doubles."""
    response = client.get("/debug/diagnostics")
    assert response.status_code == 200
    data = response.json()
    assert data["database"]["ok"] is True
    assert data["provider"]["ok"] is True
    assert data["ok"] == (data["config"]["ok"] and data["database"]["ok"])


def test_diagnostics_provider_unreachable(client, fake_provider):
    """Test that an unreachable provider is reported without raising."""
    fake_provider.unreachable = True

    response = client.get("/debug/diagnostics")
    assert response.status_code == 200
    data = response.json()
    assert data["ok"] is False
    assert data["provider"]["ok"] is False
    assert "NETWORK_ERROR" in data["provider"]["detail"]
