from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Optional


class VenueType(str, Enum):
    standing = "standing"
    banquet = "banquet"
    theater = "theater"
    classroom = "classroom"


class MonitorInterval(str, Enum):
    one_minute = "1min"
    ten_minutes = "10min"
    one_hour = "1hour"


@dataclass(frozen=True)
class CalculationInput:
    total_area: float
    venue_type: VenueType
    entrance_count: int = 2
    aisle_width: float = 2.0


@dataclass(frozen=True)
class Capacities:
    level1: int
    level2: int
    level3: int
    level4: int
    level5: int

    def as_list(self) -> list[int]:
        return [self.level1, self.level2, self.level3, self.level4, self.level5]

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "Capacities":
        return cls(**{f"level{n}": int(data[f"level{n}"]) for n in range(1, 6)})


@dataclass(frozen=True)
class CalculationResult:
    input: CalculationInput
    space_per_person: float
    theoretical_max: int
    exit_capacity: int
    required_aisle_width: float
    bottleneck_risk: bool
    capacities: Capacities
    recommended: int
    maximum: int
    safety_note: Optional[str] = None

    def to_dict(self) -> dict:
        # Wire shape uses camelCase keys.
        return {
            "input": {
                "totalArea": self.input.total_area,
                "venueType": self.input.venue_type.value,
                "entranceCount": self.input.entrance_count,
                "aisleWidth": self.input.aisle_width,
            },
            "calculation": {
                "spacePerPerson": self.space_per_person,
                "theoreticalMax": self.theoretical_max,
                "exitCapacity": self.exit_capacity,
                "bottleneckRisk": self.bottleneck_risk,
            },
            "capacities": self.capacities.to_dict(),
            "result": {
                "recommended": self.recommended,
                "maximum": self.maximum,
                "safetyNote": self.safety_note,
            },
        }
