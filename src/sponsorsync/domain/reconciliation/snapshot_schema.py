"""Pydantic model for one row of the register's CSV export."""

from __future__ import annotations

from typing import Final

from pydantic import BaseModel, ConfigDict, Field, field_validator

ORGANISATION_NAME: Final[str] = "Organisation Name"
TOWN_CITY: Final[str] = "Town/City"
COUNTY: Final[str] = "County"
TYPE_AND_RATING: Final[str] = "Type & Rating"
ROUTE: Final[str] = "Route"

SNAPSHOT_COLUMNS: Final[tuple[str, ...]] = (
    ORGANISATION_NAME,
    TOWN_CITY,
    COUNTY,
    TYPE_AND_RATING,
    ROUTE,
)


def _none_to_blank(value: object) -> object:
    return "" if value is None else value


class SnapshotRow(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True, str_strip_whitespace=True)

    organisation_name: str = Field(default="", alias=ORGANISATION_NAME)
    town_city: str = Field(default="", alias=TOWN_CITY)
    county: str = Field(default="", alias=COUNTY)
    type_and_rating: str = Field(default="", alias=TYPE_AND_RATING)
    route: str = Field(default="", alias=ROUTE)

    blank_missing = field_validator("*", mode="before")(_none_to_blank)
