"""Integration tests for PDF and calendar export and public share links."""

import fitz
import icalendar
import pytest
from fastapi.testclient import TestClient

from backend.terra_voyage.db.models import Trip
from backend.terra_voyage.models.common import CollaboratorRole


@pytest.fixture
def planned_trip(client: TestClient, test_trip: Trip, auth_headers) -> Trip:
    client.post(f"/trips/{test_trip.trip_id}/generate-itinerary", headers=auth_headers)
    return test_trip


@pytest.mark.integration
class TestPdfExport:
    def test_export_info(self, client: TestClient, test_trip: Trip, auth_headers):
        body = client.get("/export/pdf", params={"trip_id": str(test_trip.trip_id)}, headers=auth_headers).json()
        assert body["filename"] == "lisbon-getaway-itinerary.pdf"
        assert body["formats"] == ["A4", "Letter"]
        assert "modern" in body["themes"]

    def test_pdf_download(self, client: TestClient, planned_trip: Trip, auth_headers):
        response = client.post(
            "/export/pdf",
            json={"trip_id": str(planned_trip.trip_id), "options": {"format": "Letter", "theme": "classic"}},
            headers=auth_headers,
        )
        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert 'filename="lisbon-getaway-itinerary.pdf"' in response.headers["content-disposition"]

        with fitz.open(stream=response.content, filetype="pdf") as document:
            text = "".join(page.get_text() for page in document)
        assert "Lisbon Getaway" in text

    def test_non_member_cannot_export(self, client: TestClient, test_trip: Trip, other_headers):
        response = client.post("/export/pdf", json={"trip_id": str(test_trip.trip_id)}, headers=other_headers)
        assert response.status_code == 404


@pytest.mark.integration
class TestCalendarExport:
    def test_ical(self, client: TestClient, planned_trip: Trip, auth_headers):
        response = client.post(
            "/export/calendar",
            json={"trip_id": str(planned_trip.trip_id), "timezone": "Europe/Lisbon"},
            headers=auth_headers,
        )
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/calendar")
        calendar = icalendar.Calendar.from_ical(response.content)
        events = [c for c in calendar.walk() if c.name == "VEVENT"]
        assert events

    def test_google_links(self, client: TestClient, planned_trip: Trip, auth_headers):
        body = client.post(
            "/export/calendar",
            json={"trip_id": str(planned_trip.trip_id), "format": "google"},
            headers=auth_headers,
        ).json()
        assert body["format"] == "google"
        assert body["events"]
        assert body["events"][0]["url"].startswith("https://calendar.google.com/")

    def test_unknown_timezone(self, client: TestClient, test_trip: Trip, auth_headers):
        response = client.post(
            "/export/calendar",
            json={"trip_id": str(test_trip.trip_id), "timezone": "Mars/Olympus_Mons"},
            headers=auth_headers,
        )
        assert response.status_code == 400


@pytest.mark.integration
class TestShareLinks:
    def test_share_view_and_stats(self, client: TestClient, planned_trip: Trip, auth_headers):
        created = client.post(
            "/share",
            json={"trip_id": str(planned_trip.trip_id), "options": {"show_budget": True}},
            headers=auth_headers,
        )
        assert created.status_code == 201
        token = created.json()["share_token"]
        assert created.json()["share_url"].endswith(f"/share/{token}")

        view = client.get(f"/share/{token}")
        assert view.status_code == 200
        body = view.json()
        assert body["title"] == "Lisbon Getaway"
        assert body["budget"] == 2500.0
        assert body["owner"] == {"name": "Test User", "email": None}
        assert body["activities"]

        client.get(f"/share/{token}")
        stats = client.get("/share/stats", params={"trip_id": str(planned_trip.trip_id)}, headers=auth_headers).json()
        assert stats["view_count"] == 2
        assert stats["has_password"] is False

    def test_budget_hidden_by_default(self, client: TestClient, test_trip: Trip, auth_headers):
        token = client.post("/share", json={"trip_id": str(test_trip.trip_id)}, headers=auth_headers).json()[
            "share_token"
        ]
        assert client.get(f"/share/{token}").json()["budget"] is None

    def test_password_protected(self, client: TestClient, test_trip: Trip, auth_headers):
        token = client.post(
            "/share",
            json={"trip_id": str(test_trip.trip_id), "options": {"password": "sardines"}},
            headers=auth_headers,
        ).json()["share_token"]
        assert client.get(f"/share/{token}").status_code == 401
        assert client.get(f"/share/{token}", headers={"X-Share-Password": "tuna"}).status_code == 403
        assert client.get(f"/share/{token}", headers={"X-Share-Password": "sardines"}).status_code == 200

    def test_reshare_rotates_token_and_revoke(self, client: TestClient, test_trip: Trip, auth_headers):
        payload = {"trip_id": str(test_trip.trip_id)}
        first = client.post("/share", json=payload, headers=auth_headers).json()["share_token"]
        second = client.post("/share", json=payload, headers=auth_headers).json()["share_token"]
        assert first != second
        assert client.get(f"/share/{first}").status_code == 404

        revoked = client.delete("/share", params={"trip_id": str(test_trip.trip_id)}, headers=auth_headers)
        assert revoked.status_code == 204
        assert client.get(f"/share/{second}").status_code == 404

    def test_viewer_cannot_share(
        self, client: TestClient, test_trip: Trip, other_user, member_factory, other_headers
    ):
        member_factory(test_trip, other_user, CollaboratorRole.viewer)
        response = client.post("/share", json={"trip_id": str(test_trip.trip_id)}, headers=other_headers)
        assert response.status_code == 403
