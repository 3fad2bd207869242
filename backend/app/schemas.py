from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from .models import Capacities, MonitorInterval


class CalculateRequest(BaseModel):
    # Presence/positivity of totalArea and the venue type are checked by the
    # calculator so they come back as 400 {"error": ...}.
    model_config = ConfigDict(populate_by_name=True)

    total_area: Optional[float] = Field(default=None, alias="totalArea")
    venue_type: Optional[str] = Field(default=None, alias="venueType")
    entrance_count: Optional[int] = Field(default=None, alias="entranceCount")
    aisle_width: Optional[float] = Field(default=None, alias="aisleWidth")


class Polygon(BaseModel):
    # List of [x,y] pairs in meters
    points: list[tuple[float, float]] = Field(min_length=3)


class FloorAreaRequest(BaseModel):
    polygon: Polygon


class CapacitiesIn(BaseModel):
    level1: int = Field(ge=0)
    level2: int = Field(ge=0)
    level3: int = Field(ge=0)
    level4: int = Field(ge=0)
    level5: int = Field(ge=0)

    def to_domain(self) -> Capacities:
        return Capacities(self.level1, self.level2, self.level3, self.level4, self.level5)


class MonitorStart(BaseModel):
    capacities: CapacitiesIn
    interval: MonitorInterval = MonitorInterval.one_minute
