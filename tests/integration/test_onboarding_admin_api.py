"""Integration tests for onboarding and site administration."""

import pytest
from fastapi.testclient import TestClient

from backend.terra_voyage.models.common import CollaboratorRole, TripStatus

WIZARD = {
    "display_name": "Sam Rivera",
    "location": "Toronto",
    "travel_style": "cultural",
    "pace": "moderate",
    "accommodation_type": ["hotel"],
    "transport_preferences": ["walking", "public_transport"],
    "interests": ["museums", "food", "architecture"],
    "accessibility": "full",
    "currency": "CAD",
    "measurement_unit": "metric",
    "language": "en",
}


@pytest.mark.integration
class TestOnboardingApi:
    def test_complete_wizard(self, client: TestClient, auth_headers):
        assert client.get("/user/onboarding", headers=auth_headers).json()["completed"] is False

        response = client.post("/user/onboarding", json=WIZARD, headers=auth_headers)
        assert response.status_code == 200
        body = response.json()
        assert body["completed"] is True
        assert body["completed_at"] is not None
        assert body["profile"]["name"] == "Sam Rivera"
        assert body["profile"]["interests"] == ["museums", "food", "architecture"]
        assert body["preferences"]["preferences"]["currency"] == "CAD"

        me = client.get("/auth/me", headers=auth_headers).json()
        assert me["onboarding_completed"] is True

    def test_wizard_needs_three_interests(self, client: TestClient, auth_headers):
        response = client.post(
            "/user/onboarding", json={**WIZARD, "interests": ["food"]}, headers=auth_headers
        )
        assert response.status_code == 422

    def test_update_single_field(self, client: TestClient, auth_headers):
        response = client.put("/user/onboarding", json={"field": "bio", "value": "Slow traveller"}, headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["profile"]["bio"] == "Slow traveller"

    def test_update_rejects_unknown_field(self, client: TestClient, auth_headers):
        response = client.put("/user/onboarding", json={"field": "role", "value": "ADMIN"}, headers=auth_headers)
        assert response.status_code == 400


@pytest.mark.integration
class TestAdminApi:
    def test_overview(
        self, client: TestClient, test_user, other_user, trip_factory, member_factory, admin_headers
    ):
        trip = trip_factory(test_user)
        trip_factory(test_user, TripStatus.cancelled, start_in_days=90)
        member_factory(trip, other_user, CollaboratorRole.viewer)

        body = client.get("/admin/overview", headers=admin_headers).json()
        assert body["users"] == 3
        assert body["admins"] == 1
        assert body["trips"] == 2
        assert body["trips_by_status"]["DRAFT"] == 1
        assert body["collaborations"] == 1
        assert body["affiliate"]["total_clicks"] == 0

    def test_users_and_promotion(self, client: TestClient, test_user, admin_headers, auth_headers):
        assert client.get("/admin/users", headers=auth_headers).status_code == 403

        listing = client.get("/admin/users", headers=admin_headers).json()
        assert listing["total"] == 2

        promoted = client.patch(
            f"/admin/users/{test_user.user_id}",
            json={"role": "ADMIN", "email_notifications": False},
            headers=admin_headers,
        ).json()
        assert promoted["role"] == "ADMIN"
        assert promoted["email_notifications"] is False

        # Roles come from the database, so the existing token gains access
        assert client.get("/admin/users", headers=auth_headers).status_code == 200
