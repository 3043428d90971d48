"""PDF and calendar export of trip itineraries."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from backend.terra_voyage.api.auth import CurrentUser, get_current_user
from backend.terra_voyage.api.common import load_trip
from backend.terra_voyage.db.session import get_session
from backend.terra_voyage.export.calendar import (
    CalendarFormat,
    CalendarLink,
    build_ical,
    calendar_links,
    resolve_timezone,
)
from backend.terra_voyage.export.pdf import (
    PDF_FORMATS,
    PDF_THEMES,
    PDFExportError,
    PDFOptions,
    pdf_filename,
    render_trip_pdf,
    sanitize_filename,
)

router = APIRouter(prefix="/export", tags=["export"])


class PDFExportRequest(BaseModel):
    trip_id: UUID
    options: PDFOptions = PDFOptions()


class PDFExportInfo(BaseModel):
    trip_id: UUID
    filename: str
    default_options: PDFOptions
    formats: list[str]
    themes: list[str]


class CalendarExportRequest(BaseModel):
    trip_id: UUID
    format: CalendarFormat = "ical"
    timezone: str = "UTC"


class CalendarLinksResponse(BaseModel):
    format: CalendarFormat
    events: list[CalendarLink]


@router.get("/pdf", response_model=PDFExportInfo)
def pdf_export_info(
    trip_id: UUID = Query(...),
    current_user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> PDFExportInfo:
    trip, _ = load_trip(session, trip_id, current_user)
    return PDFExportInfo(
        trip_id=trip.trip_id,
        filename=pdf_filename(trip),
        default_options=PDFOptions(),
        formats=PDF_FORMATS,
        themes=PDF_THEMES,
    )


@router.post("/pdf")
def export_pdf(
    request: PDFExportRequest,
    current_user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> Response:
    trip, _ = load_trip(session, request.trip_id, current_user)
    try:
        content = render_trip_pdf(trip, request.options)
    except PDFExportError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e)) from e
    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{pdf_filename(trip)}"'},
    )


@router.post("/calendar", response_model=None)
def export_calendar(
    request: CalendarExportRequest,
    current_user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> Response | CalendarLinksResponse:
    """An .ics file for ``ical``; add-to-calendar links for google and outlook."""
    trip, _ = load_trip(session, request.trip_id, current_user)
    try:
        resolve_timezone(request.timezone)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e

    if request.format == "ical":
        filename = f"{sanitize_filename(trip.title)}.ics"
        return Response(
            content=build_ical(trip, request.timezone),
            media_type="text/calendar",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )
    return CalendarLinksResponse(format=request.format, events=calendar_links(trip, request.format))
