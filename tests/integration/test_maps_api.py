"""Integration tests for the map API quota endpoints."""

import pytest
from fastapi.testclient import TestClient


@pytest.mark.integration
class TestMapQuotaApi:
    def test_record_and_status(self, client: TestClient, auth_headers):
        recorded = client.post("/maps/quota/requests", json={"type": "search_text"}, headers=auth_headers)
        assert recorded.status_code == 200
        assert recorded.json()["allowed"] is True
        assert recorded.json()["status"]["recommended_service"] == "google"

        status = client.get("/maps/quota/status", headers=auth_headers).json()
        assert status["can_make_request"] is True
        assert status["should_show_warning"] is False
        assert status["warning_level"] == "none"
        assert status["time_until_reset_formatted"]

    def test_unknown_request_type(self, client: TestClient, auth_headers):
        response = client.post("/maps/quota/requests", json={"type": "street_view"}, headers=auth_headers)
        assert response.status_code == 422

    def test_requires_login(self, client: TestClient):
        assert client.get("/maps/quota/status").status_code == 401

    def test_exhaustion_and_admin_reset(self, client: TestClient, auth_headers, admin_headers):
        assert client.put(
            "/admin/maps/quota/limits", json={"daily_limit": 2, "monthly_limit": 60}, headers=auth_headers
        ).status_code == 403
        limits = client.put(
            "/admin/maps/quota/limits", json={"daily_limit": 2, "monthly_limit": 60}, headers=admin_headers
        )
        assert limits.json()["daily_limit"] == 2

        allowed = [
            client.post("/maps/quota/requests", json={"type": "place_details"}, headers=auth_headers).json()[
                "allowed"
            ]
            for _ in range(3)
        ]
        assert allowed == [True, True, False]

        status = client.get("/maps/quota/status", headers=auth_headers).json()
        assert status["is_available"] is False
        assert status["should_use_fallback"] is True
        assert status["recommended_service"] == "static"

        usage = client.get("/admin/maps/quota", headers=admin_headers).json()
        assert usage["total_requests"] == 2
        assert usage["place_details"] == 2

        reset = client.post("/admin/maps/quota/reset", headers=admin_headers).json()
        assert reset["total_requests"] == 0
        assert reset["daily_limit"] == 2

    def test_errors_raise_error_rate(self, client: TestClient, auth_headers):
        client.post("/maps/quota/requests", json={"type": "autocomplete"}, headers=auth_headers)
        status = client.post(
            "/maps/quota/errors", json={"kind": "network_error", "details": "timeout"}, headers=auth_headers
        ).json()
        assert status["error_rate"] == 1.0
        assert status["should_use_fallback"] is True
