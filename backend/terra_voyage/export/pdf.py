"""Itinerary PDF rendering with PyMuPDF."""

from __future__ import annotations

import logging
import re
from collections import defaultdict
from datetime import timedelta
from typing import Literal

import fitz  # PyMuPDF
from pydantic import BaseModel

from backend.terra_voyage.db.models import Activity, Trip
from backend.terra_voyage.trips.status import status_label

logger = logging.getLogger(__name__)

MARGIN = 50
LINE_GAP = 4
FOOTER_HEIGHT = 30

THEMES: dict[str, dict[str, tuple[float, float, float]]] = {
    "modern": {"accent": (0.15, 0.39, 0.92), "text": (0.07, 0.09, 0.15), "muted": (0.42, 0.45, 0.5)},
    "classic": {"accent": (0.45, 0.25, 0.1), "text": (0.1, 0.1, 0.1), "muted": (0.4, 0.4, 0.4)},
    "minimal": {"accent": (0.0, 0.0, 0.0), "text": (0.0, 0.0, 0.0), "muted": (0.5, 0.5, 0.5)},
}

EMERGENCY_LINES = [
    "International emergency number: 112 (911 in North America)",
    "Keep a copy of your passport and travel insurance policy offline.",
    "Register your trip with your embassy or consulate where available.",
    "Note the address of your accommodation in the local language.",
]


class PDFExportError(Exception):
    """Raised when the PDF cannot be rendered."""


class PDFOptions(BaseModel):
    include_weather: bool = True
    include_map: bool = True
    include_emergency_info: bool = True
    format: Literal["A4", "Letter"] = "A4"
    orientation: Literal["portrait", "landscape"] = "portrait"
    theme: Literal["modern", "classic", "minimal"] = "modern"


PDF_FORMATS = ["A4", "Letter"]
PDF_THEMES = list(THEMES)


def sanitize_filename(title: str) -> str:
    """Lowercase, non-alphanumerics to '-', repeats collapsed."""
    slug = re.sub(r"[^a-z0-9]+", "-", title.lower()).strip("-")
    return slug or "trip"


def pdf_filename(trip: Trip) -> str:
    return f"{sanitize_filename(trip.title)}-itinerary.pdf"


class _Writer:
    """Flows text down pages, starting a new page when one fills up."""

    def __init__(self, doc: fitz.Document, options: PDFOptions):
        self.doc = doc
        paper = options.format.lower() + ("-l" if options.orientation == "landscape" else "")
        self.width, self.height = fitz.paper_size(paper)
        self.colors = THEMES[options.theme]
        self.page: fitz.Page | None = None
        self.y = 0.0
        self.new_page()

    def new_page(self) -> None:
        self.page = self.doc.new_page(width=self.width, height=self.height)
        self.y = MARGIN

    def _wrap(self, text: str, fontname: str, fontsize: float) -> list[str]:
        max_width = self.width - 2 * MARGIN
        lines: list[str] = []
        for paragraph in text.splitlines() or [""]:
            current = ""
            for word in paragraph.split():
                candidate = f"{current} {word}".strip()
                if fitz.get_text_length(candidate, fontname=fontname, fontsize=fontsize) <= max_width:
                    current = candidate
                else:
                    if current:
                        lines.append(current)
                    current = word
            lines.append(current)
        return lines

    def text(
        self,
        text: str,
        fontsize: float = 10,
        bold: bool = False,
        color: str = "text",
        indent: float = 0,
    ) -> None:
        fontname = "hebo" if bold else "helv"
        for line in self._wrap(text, fontname, fontsize):
            if self.y + fontsize > self.height - MARGIN - FOOTER_HEIGHT:
                self.new_page()
            self.y += fontsize
            self.page.insert_text(
                (MARGIN + indent, self.y),
                line,
                fontname=fontname,
                fontsize=fontsize,
                color=self.colors[color],
            )
            self.y += LINE_GAP

    def space(self, amount: float = 8) -> None:
        self.y += amount

    def rule(self) -> None:
        self.page.draw_line(
            (MARGIN, self.y), (self.width - MARGIN, self.y), color=self.colors["accent"], width=0.8
        )
        self.y += 8

    def footers(self, title: str) -> None:
        total = self.doc.page_count
        for number, page in enumerate(self.doc, start=1):
            page.insert_text(
                (MARGIN, self.height - MARGIN / 2),
                f"{title} | Page {number} of {total}",
                fontname="helv",
                fontsize=8,
                color=self.colors["muted"],
            )


def _fmt_date(value) -> str:
    return f"{value:%A} {value:%B} {value.day}, {value.year}"


def _activity_line(activity: Activity) -> str:
    when = ""
    if activity.start_time:
        when = f"{activity.start_time:%H:%M}"
        if activity.end_time:
            when += f"-{activity.end_time:%H:%M}"
        when += "  "
    kind = activity.activity_type.title()
    return f"{when}{activity.name} ({kind})"


def render_trip_pdf(trip: Trip, options: PDFOptions | None = None) -> bytes:
    """Render the trip itinerary and return PDF bytes."""
    options = options or PDFOptions()
    try:
        doc = fitz.open()
        writer = _Writer(doc, options)

        # Title block
        writer.text(trip.title, fontsize=22, bold=True, color="accent")
        writer.text(trip.destination, fontsize=13, color="muted")
        writer.space()
        writer.rule()

        # Overview
        nights = max((trip.end_date - trip.start_date).days, 0)
        writer.text("Trip Overview", fontsize=14, bold=True)
        writer.text(f"Dates: {_fmt_date(trip.start_date)} to {_fmt_date(trip.end_date)} ({nights} nights)")
        writer.text(f"Travelers: {trip.travelers}")
        writer.text(f"Status: {status_label(trip.status)}")
        if trip.budget:
            writer.text(f"Budget: ${trip.budget:,.2f}")
        if trip.description:
            writer.space(4)
            writer.text(trip.description, color="muted")
        writer.space(12)

        # Day by day
        by_day: dict[int, list[Activity]] = defaultdict(list)
        for activity in trip.activities:
            by_day[activity.day_number].append(activity)

        writer.text("Daily Itinerary", fontsize=14, bold=True)
        if not by_day:
            writer.text("No activities planned yet.", color="muted")
        for day in sorted(by_day):
            writer.space(6)
            day_date = trip.start_date + timedelta(days=day - 1)
            writer.text(f"Day {day}: {_fmt_date(day_date)}", fontsize=12, bold=True, color="accent")
            for activity in sorted(by_day[day], key=lambda a: a.order_index):
                writer.text(_activity_line(activity), bold=True, indent=10)
                if activity.location:
                    writer.text(f"Location: {activity.location}", color="muted", indent=20)
                if activity.description:
                    writer.text(activity.description, indent=20)
                if activity.price:
                    writer.text(f"Estimated cost: ${activity.price:,.2f}", color="muted", indent=20)

        if options.include_map:
            locations = [a.location for a in trip.activities if a.location]
            if locations:
                writer.space(12)
                writer.text("Locations", fontsize=14, bold=True)
                for location in dict.fromkeys(locations):
                    writer.text(f"- {location}", indent=10)

        if options.include_emergency_info:
            writer.space(12)
            writer.text("Emergency Information", fontsize=14, bold=True)
            for line in EMERGENCY_LINES:
                writer.text(f"- {line}", indent=10)

        writer.footers(trip.title)
        pages = doc.page_count
        data = doc.tobytes()
        doc.close()
    except (RuntimeError, ValueError) as exc:
        logger.exception("pdf_export_failed", extra={"trip_id": str(trip.trip_id)})
        raise PDFExportError(f"Failed to render PDF: {exc}") from exc

    logger.info(
        "pdf_exported",
        extra={"trip_id": str(trip.trip_id), "pages": pages, "size": len(data)},
    )
    return data
