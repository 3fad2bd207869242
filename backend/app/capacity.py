from __future__ import annotations

import math
from types import MappingProxyType
from typing import Any, Mapping, Optional

from .models import CalculationInput, CalculationResult, Capacities, VenueType


class InvalidInput(Exception):
    pass


class UnknownVenueType(InvalidInput):
    pass


# m^2 per occupant
SPACE_PER_PERSON: Mapping[VenueType, float] = MappingProxyType(
    {
        VenueType.standing: 0.5,
        VenueType.banquet: 1.5,  # 1.3-1.9 band
        VenueType.theater: 0.8,  # 0.65-1.0 band
        VenueType.classroom: 2.0,
    }
)

# occupants per m^2
STANDARD_DENSITY: Mapping[VenueType, float] = MappingProxyType(
    {
        VenueType.standing: 2.0,
        VenueType.banquet: 0.7,
        VenueType.theater: 1.2,
        VenueType.classroom: 0.5,
    }
)

# Share of standard density at which each congestion level starts.
LEVEL_RATIOS = (0.3, 0.5, 0.7, 0.9, 1.1)

PERSONS_PER_EXIT = 275
# Fire-code aisle throughput: persons per meter of aisle width.
PERSONS_PER_AISLE_METER = 82
SAFETY_CORRECTION_FACTOR = 0.85

SAFETY_NOTE = "Maximum occupancy has been adjusted for exit throughput and a safety margin."

DEFAULT_ENTRANCE_COUNT = 2
DEFAULT_AISLE_WIDTH_M = 2.0
# 1,000 km^2
MAX_TOTAL_AREA_M2 = 1e9


def parse_venue_type(value: Any) -> VenueType:
    if isinstance(value, VenueType):
        return value
    try:
        return VenueType(value)
    except ValueError as e:
        allowed = ", ".join(v.value for v in VenueType)
        raise UnknownVenueType(f"unknown venue type: {value!r} (expected one of: {allowed})") from e


def build_input(
    total_area: Optional[float],
    venue_type: Any,
    entrance_count: Optional[int] = None,
    aisle_width: Optional[float] = None,
) -> CalculationInput:
    """
    Validate raw values and apply defaults.
    Missing entrance count / aisle width fall back to 2; an explicit 0 entrances is kept.
    """
    if total_area is None or isinstance(total_area, bool) or not total_area > 0:
        raise InvalidInput("Please enter a valid area.")
    if not math.isfinite(float(total_area)) or total_area > MAX_TOTAL_AREA_M2:
        raise InvalidInput("Please enter a valid area.")
    vt = parse_venue_type(venue_type)

    entrances = DEFAULT_ENTRANCE_COUNT if entrance_count is None else int(entrance_count)
    if entrances < 0:
        raise InvalidInput("entranceCount must be >= 0")
    aisle = DEFAULT_AISLE_WIDTH_M if aisle_width is None else float(aisle_width)
    if not aisle > 0:
        raise InvalidInput("aisleWidth must be > 0")

    return CalculationInput(total_area=total_area, venue_type=vt, entrance_count=entrances, aisle_width=aisle)


def _corrected(n: int) -> int:
    return math.floor(n * SAFETY_CORRECTION_FACTOR)


def calculate(inp: CalculationInput) -> CalculationResult:
    if not 0 < inp.total_area <= MAX_TOTAL_AREA_M2:
        raise InvalidInput("Please enter a valid area.")
    vt = parse_venue_type(inp.venue_type)
    space_per_person = SPACE_PER_PERSON[vt]
    density = STANDARD_DENSITY[vt]

    theoretical_max = math.floor(inp.total_area / space_per_person)
    raw_levels = [math.floor(inp.total_area * density * r) for r in LEVEL_RATIOS]

    exit_capacity = inp.entrance_count * PERSONS_PER_EXIT

    required_aisle_width = theoretical_max / PERSONS_PER_AISLE_METER
    # Informational only; not folded into recommended/maximum.
    bottleneck_risk = required_aisle_width > inp.aisle_width

    recommended = min(raw_levels[1], exit_capacity)
    maximum = min(raw_levels[2], exit_capacity)

    corrected_recommended = _corrected(recommended)
    corrected_maximum = _corrected(maximum)

    return CalculationResult(
        input=inp,
        space_per_person=space_per_person,
        theoretical_max=theoretical_max,
        exit_capacity=exit_capacity,
        required_aisle_width=required_aisle_width,
        bottleneck_risk=bottleneck_risk,
        capacities=Capacities(*[_corrected(n) for n in raw_levels]),
        recommended=corrected_recommended,
        maximum=corrected_maximum,
        safety_note=SAFETY_NOTE if corrected_maximum < theoretical_max else None,
    )
