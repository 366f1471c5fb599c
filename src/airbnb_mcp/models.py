from __future__ import annotations

from datetime import date
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class StayQuery(BaseModel):
    """Fields shared by search and listing lookups (camelCase on the wire)."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    checkin: Optional[date] = None
    checkout: Optional[date] = None
    adults: int = Field(1, ge=0)
    children: int = Field(0, ge=0)
    infants: int = Field(0, ge=0)
    pets: int = Field(0, ge=0)
    ignore_robots_text: bool = Field(False, alias="ignoreRobotsText")

    @field_validator("checkin", "checkout", mode="before")
    @classmethod
    def _blank_date(cls, v):
        return v or None

    @model_validator(mode="after")
    def _check_dates(self):
        if self.checkin and self.checkout and self.checkout < self.checkin:
            raise ValueError("checkout must not be before checkin")
        return self

    @property
    def total_guests(self) -> int:
        return self.adults + self.children

    def guest_params(self) -> list[tuple[str, str]]:
        # Infants and pets alone never make a party.
        if self.total_guests <= 0:
            return []
        return [
            ("adults", str(self.adults)),
            ("children", str(self.children)),
            ("infants", str(self.infants)),
            ("pets", str(self.pets)),
        ]


class SearchQuery(StayQuery):
    location: Optional[str] = None
    place_id: Optional[str] = Field(None, alias="placeId")
    min_price: Optional[float] = Field(None, ge=0, alias="minPrice")
    max_price: Optional[float] = Field(None, ge=0, alias="maxPrice")
    cursor: Optional[str] = None

    @model_validator(mode="after")
    def _check_location(self):
        if not (self.location or self.place_id):
            raise ValueError("location or placeId is required")
        return self


class ListingQuery(StayQuery):
    id: str = Field(..., min_length=1)

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, v):
        # Listing ids are large integers; clients sometimes send them as numbers.
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v
