"""Price search parameter and offer models."""

from __future__ import annotations

from datetime import date
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, TypeAdapter, model_validator


class FlightSearchParams(BaseModel):
    """Flight search criteria."""

    type: Literal["flight"] = "flight"
    origin: str = Field(min_length=3, max_length=64)
    destination: str = Field(min_length=3, max_length=64)
    departure_date: date
    return_date: date | None = None
    adults: int = Field(default=1, ge=1, le=9)
    children: int = Field(default=0, ge=0, le=9)
    travel_class: Literal["ECONOMY", "PREMIUM_ECONOMY", "BUSINESS", "FIRST"] = "ECONOMY"

    @model_validator(mode="after")
    def _check_dates(self) -> "FlightSearchParams":
        if self.return_date is not None and self.return_date < self.departure_date:
            raise ValueError("return_date must not be before departure_date")
        return self


class HotelSearchParams(BaseModel):
    """Hotel search criteria."""

    type: Literal["hotel"] = "hotel"
    destination: str = Field(min_length=2, max_length=120)
    checkin_date: date
    checkout_date: date
    adults: int = Field(default=2, ge=1, le=20)
    children: int = Field(default=0, ge=0, le=10)
    rooms: int = Field(default=1, ge=1, le=10)

    @model_validator(mode="after")
    def _check_dates(self) -> "HotelSearchParams":
        if self.checkout_date <= self.checkin_date:
            raise ValueError("checkout_date must be after checkin_date")
        return self

    @property
    def nights(self) -> int:
        return (self.checkout_date - self.checkin_date).days


SearchParams = Annotated[
    FlightSearchParams | HotelSearchParams, Field(discriminator="type")
]
search_params_adapter: TypeAdapter[FlightSearchParams | HotelSearchParams] = TypeAdapter(
    SearchParams
)


class PriceOffer(BaseModel):
    """One priced result from a provider."""

    id: str
    type: Literal["flight", "hotel"]
    name: str
    provider: str
    price: float
    currency: str = "USD"
    booking_url: str
    details: dict[str, Any] = Field(default_factory=dict)


def cache_params(params: FlightSearchParams | HotelSearchParams) -> dict[str, Any]:
    """JSON-safe params without the discriminator, used for cache keys."""
    return params.model_dump(mode="json", exclude={"type"})
