"""
Road-type categories and the conversion from classified route segments
to pure driving hours.
"""

import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

HIGHWAY = 'highway'
NATIONAL = 'national'
CITY = 'city'
FERRY = 'ferry'

ROAD_TYPES = (HIGHWAY, NATIONAL, CITY, FERRY)

# Average truck speeds in km/h.
DEFAULT_SPEEDS = {
    HIGHWAY: 80.0,
    NATIONAL: 64.0,
    CITY: 30.0,
    FERRY: 15.0,    # Slow on purpose, stands in for the crossing
}

LABELS = {
    HIGHWAY: 'Motorways and expressways',
    NATIONAL: 'National roads',
    CITY: 'City traffic',
    FERRY: 'Ferry crossings',
}

UNNAMED_ROAD = 'Unnamed road'

_HIGHWAY_REF = re.compile(r'\b(A|S)\s?\d+')
_NATIONAL_REF = re.compile(r'\b(DK|DW|E)\s?\d+')
_ANY_DIGIT = re.compile(r'\d+')


class InvalidSpeed(ValueError):
    """Raised when a speed table cannot be used to derive driving time."""


@dataclass(frozen=True)
class RouteSegment:
    name: str
    road_type: str
    distance_km: float
    duration_minutes: int


def classify_step(ref: str = '', name: str = '', mode: str = '', maneuver_type: str = '') -> str:
    """
    Categorise a single routing step from its road reference and name.

    Refs such as "A2", "S8" or "E30; A2" mark motorways and expressways;
    "DK50", "DW902" or a bare number mark national and regional roads.
    Steps without any reference are treated as city streets.
    """
    upper_ref = (ref or '').upper()
    upper_name = (name or '').upper()

    if mode == FERRY or maneuver_type == FERRY or 'PROM' in upper_name:
        return FERRY
    if (
        _HIGHWAY_REF.search(upper_ref)
        or 'AUTOSTRADA' in upper_name
        or 'DROGA EKSPRESOWA' in upper_name
    ):
        return HIGHWAY
    if _NATIONAL_REF.search(upper_ref) or _ANY_DIGIT.search(upper_ref):
        return NATIONAL
    return CITY


def resolve_speeds(overrides: Optional[Dict[str, float]] = None) -> Dict[str, float]:
    speeds = dict(DEFAULT_SPEEDS)
    for road_type, value in (overrides or {}).items():
        if road_type not in ROAD_TYPES:
            raise InvalidSpeed(f"Unknown road type '{road_type}'. Use one of: {', '.join(ROAD_TYPES)}.")
        speeds[road_type] = value

    for road_type in ROAD_TYPES:
        value = speeds.get(road_type)
        try:
            speed = float(value)
        except (TypeError, ValueError) as exc:
            raise InvalidSpeed(f"Speed for '{road_type}' must be a number, got {value!r}.") from exc
        if not speed > 0:
            raise InvalidSpeed(f"Speed for '{road_type}' must be greater than 0 km/h, got {value!r}.")
        speeds[road_type] = speed
    return speeds


def build_segment(name: str, road_type: str, distance_m: float, speeds: Dict[str, float]) -> RouteSegment:
    distance_km = round(distance_m / 1000.0, 1)
    speed = speeds.get(road_type) or 0
    duration_minutes = int(round(distance_km / speed * 60)) if speed > 0 else 0
    return RouteSegment(
        name=name,
        road_type=road_type,
        distance_km=distance_km,
        duration_minutes=duration_minutes,
    )


def pure_driving_hours(segments: Iterable[RouteSegment], speeds: Dict[str, float]) -> float:
    """Sum of distance / speed over all segments, in hours."""
    total = 0.0
    for segment in segments:
        speed = speeds.get(segment.road_type)
        if not speed or speed <= 0:
            raise InvalidSpeed(f"No usable speed configured for '{segment.road_type}'.")
        total += segment.distance_km / speed
    return total


def distance_by_type(segments: Iterable[RouteSegment]) -> List[dict]:
    totals = {road_type: 0.0 for road_type in ROAD_TYPES}
    for segment in segments:
        totals[segment.road_type] = totals.get(segment.road_type, 0.0) + segment.distance_km
    return [
        {'road_type': road_type, 'label': LABELS[road_type], 'distance_km': round(totals[road_type], 1)}
        for road_type in ROAD_TYPES
        if round(totals[road_type], 1) > 0
    ]


def segments_to_dict(segments: Iterable[RouteSegment]) -> list:
    return [
        {
            'name': s.name,
            'road_type': s.road_type,
            'distance_km': s.distance_km,
            'duration_minutes': s.duration_minutes,
        }
        for s in segments
    ]
