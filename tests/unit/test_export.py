"""Unit tests for PDF and calendar export."""

from datetime import timedelta
from urllib.parse import parse_qs, urlsplit

import fitz
import pytest
from icalendar import Calendar

from backend.terra_voyage.db.models import Activity
from backend.terra_voyage.export.calendar import (
    build_ical,
    calendar_links,
    google_calendar_url,
    resolve_timezone,
)
from backend.terra_voyage.export.pdf import PDFOptions, pdf_filename, render_trip_pdf, sanitize_filename


@pytest.fixture
def planned_trip(test_session, test_trip):
    day_one = test_trip.start_date + timedelta(hours=10)
    test_session.add_all(
        [
            Activity(
                trip_id=test_trip.trip_id,
                name="Jerónimos Monastery",
                location="Belém, Lisbon",
                activity_type="ATTRACTION",
                day_number=1,
                start_time=day_one,
                end_time=day_one + timedelta(hours=2),
                price=12.0,
            ),
            Activity(
                trip_id=test_trip.trip_id,
                name="Time Out Market",
                location="Cais do Sodré",
                activity_type="RESTAURANT",
                day_number=1,
                order_index=1,
                start_time=day_one + timedelta(hours=3),
            ),
            Activity(
                trip_id=test_trip.trip_id,
                name="Wander Alfama",
                activity_type="OTHER",
                day_number=2,
            ),
        ]
    )
    test_session.commit()
    test_session.refresh(test_trip)
    return test_trip


@pytest.mark.unit
class TestFilenames:
    @pytest.mark.parametrize(
        ("title", "expected"),
        [
            ("Lisbon Getaway", "lisbon-getaway"),
            ("  Paris & Nice!! 2030 ", "paris-nice-2030"),
            ("???", "trip"),
        ],
    )
    def test_sanitize(self, title, expected):
        assert sanitize_filename(title) == expected

    def test_pdf_filename(self, test_trip):
        assert pdf_filename(test_trip) == "lisbon-getaway-itinerary.pdf"


@pytest.mark.unit
class TestPdf:
    def test_renders_itinerary(self, planned_trip):
        """Test that the PDF carries the trip overview and every day."""
        data = render_trip_pdf(planned_trip)
        assert data.startswith(b"%PDF")

        with fitz.open(stream=data, filetype="pdf") as doc:
            text = "".join(page.get_text() for page in doc)
        assert "Lisbon Getaway" in text
        assert "Daily Itinerary" in text
        assert "Day 1:" in text and "Day 2:" in text
        assert "Time Out Market" in text
        assert "Budget: $2,500.00" in text
        assert "Emergency Information" in text
        assert "Locations" in text

    def test_optional_sections(self, planned_trip):
        options = PDFOptions(include_map=False, include_emergency_info=False, theme="minimal")
        with fitz.open(stream=render_trip_pdf(planned_trip, options), filetype="pdf") as doc:
            text = "".join(page.get_text() for page in doc)
        assert "Emergency Information" not in text
        assert "Locations" not in text

    def test_landscape_letter(self, test_trip):
        options = PDFOptions(format="Letter", orientation="landscape")
        with fitz.open(stream=render_trip_pdf(test_trip, options), filetype="pdf") as doc:
            page = doc[0]
            assert page.rect.width > page.rect.height
            assert "No activities planned yet." in page.get_text()


@pytest.mark.unit
class TestCalendar:
    def test_ical_events(self, planned_trip):
        """Test one all-day trip event plus one event per timed activity."""
        cal = Calendar.from_ical(build_ical(planned_trip, "Europe/Lisbon"))
        events = list(cal.walk("VEVENT"))

        assert len(events) == 3
        trip_event = events[0]
        assert str(trip_event["summary"]) == "Lisbon Getaway (Lisbon, Portugal)"
        start = trip_event.decoded("dtstart")
        end = trip_event.decoded("dtend")
        assert (end - start).days == 6

        monastery = events[1]
        assert str(monastery["summary"]) == "Jerónimos Monastery"
        duration = monastery.decoded("dtend") - monastery.decoded("dtstart")
        assert duration == timedelta(hours=2)
        assert "Estimated cost: $12.00" in str(monastery["description"])

    def test_untimed_end_defaults_to_one_hour(self, planned_trip):
        cal = Calendar.from_ical(build_ical(planned_trip))
        market = [e for e in cal.walk("VEVENT") if str(e["summary"]) == "Time Out Market"][0]
        assert market.decoded("dtend") - market.decoded("dtstart") == timedelta(hours=1)

    def test_unknown_timezone(self):
        with pytest.raises(ValueError, match="Unknown timezone"):
            resolve_timezone("Mars/Olympus_Mons")

    def test_google_links(self, planned_trip):
        links = calendar_links(planned_trip, "google")
        assert [link.name for link in links] == ["Jerónimos Monastery", "Time Out Market"]

        query = parse_qs(urlsplit(google_calendar_url(planned_trip.activities[0])).query)
        assert query["action"] == ["TEMPLATE"]
        start, end = query["dates"][0].split("/")
        assert start.endswith("Z") and end.endswith("Z")

    def test_outlook_links(self, planned_trip):
        links = calendar_links(planned_trip, "outlook")
        assert all(link.url.startswith("https://outlook.live.com/") for link in links)
