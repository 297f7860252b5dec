from __future__ import annotations

import re
from typing import Any

from core.models import Corporation, Itinerary, LineSegment, RailLine

RE_ISO_CLOCK = re.compile(r"T(?P<hour>\d{2}):(?P<minute>\d{2})")
RE_CLOCK = re.compile(r"^(?P<hour>\d{1,2}):?(?P<minute>\d{2})$")


def as_list(value: Any) -> list[Any]:
    """Ekispert returns one object for a single hit and an array for several."""
    if value is None:
        return []
    if isinstance(value, list):
        return list(value)
    return [value]


def _text(value: Any) -> str:
    if isinstance(value, dict):
        value = value.get("text", value.get("Name", ""))
    return str(value or "").strip()


def _name(value: Any) -> str:
    if isinstance(value, dict):
        return _text(value.get("Name"))
    return _text(value)


def _as_int(value: Any) -> int | None:
    if isinstance(value, dict):
        value = value.get("text")
    if value in (None, ""):
        return None
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def compact_clock(value: Any) -> str | None:
    text = _text(value)
    if not text:
        return None
    iso = RE_ISO_CLOCK.search(text)
    if iso is not None:
        return f"{iso.group('hour')}{iso.group('minute')}"
    match = RE_CLOCK.match(text)
    if match is None:
        return None
    return f"{int(match.group('hour')):02d}{match.group('minute')}"


def decode_station_codes(result_set: dict[str, Any]) -> list[str]:
    codes: list[str] = []
    for point in as_list(result_set.get("Point")):
        if not isinstance(point, dict):
            continue
        station = point.get("Station", {})
        code = str(station.get("code", "") or "").strip() if isinstance(station, dict) else ""
        if code:
            codes.append(code)
    return codes


def decode_corporations(result_set: dict[str, Any]) -> list[Corporation]:
    output: list[Corporation] = []
    for item in as_list(result_set.get("Corporation")):
        if not isinstance(item, dict):
            continue
        name = _name(item)
        if not name:
            continue
        output.append(Corporation(id=str(item.get("id", item.get("code", "")) or ""), name=name))
    return output


def decode_rail_lines(result_set: dict[str, Any]) -> list[RailLine]:
    output: list[RailLine] = []
    for item in as_list(result_set.get("Line")):
        if not isinstance(item, dict):
            continue
        name = _name(item)
        if not name:
            continue
        output.append(RailLine(id=str(item.get("id", item.get("code", "")) or ""), name=name))
    return output


def decode_itineraries(result_set: dict[str, Any]) -> list[Itinerary]:
    return [decode_itinerary(course) for course in as_list(result_set.get("Course")) if isinstance(course, dict)]


def decode_itinerary(course: dict[str, Any]) -> Itinerary:
    route = course.get("Route", {})
    if not isinstance(route, dict):
        route = {}
    points = [_point_station_name(point) for point in as_list(route.get("Point"))]
    lines = [line for line in as_list(route.get("Line")) if isinstance(line, dict)]

    segments: list[LineSegment] = []
    for index, line in enumerate(lines):
        stations = [_name(station) for station in as_list(line.get("Station"))]
        boarding = stations[0] if stations else _at(points, index)
        alighting = stations[-1] if stations else _at(points, index + 1)
        segments.append(
            LineSegment(
                line_name=_name(line),
                operator_name=_name(line.get("Corporation")) or None,
                boarding_station=boarding,
                alighting_station=alighting,
            )
        )

    departure = route.get("Departure", {}) if isinstance(route.get("Departure"), dict) else {}
    arrival = route.get("Arrival", {}) if isinstance(route.get("Arrival"), dict) else {}

    departure_station = _name(departure.get("Station")) or _at(points, 0)
    if not departure_station and segments:
        departure_station = segments[0].boarding_station
    arrival_station = _name(arrival.get("Station")) or (points[-1] if points else "")
    if not arrival_station and segments:
        arrival_station = segments[-1].alighting_station

    departure_time = compact_clock(departure.get("Time"))
    if departure_time is None and lines:
        departure_time = compact_clock(lines[0].get("DepartureState", {}).get("Datetime"))
    arrival_time = compact_clock(arrival.get("Time"))
    if arrival_time is None and lines:
        arrival_time = compact_clock(lines[-1].get("ArrivalState", {}).get("Datetime"))

    return Itinerary(
        departure_station=departure_station,
        arrival_station=arrival_station,
        departure_time=departure_time,
        arrival_time=arrival_time,
        segments=segments,
        time_on_board=_as_int(route.get("timeOnBoard")),
        fare=_decode_fare(course.get("Price")),
    )


def _decode_fare(price: Any) -> int | None:
    if isinstance(price, dict) and "Fare" in price:
        return _as_int(price.get("Fare"))
    for item in as_list(price):
        if not isinstance(item, dict):
            continue
        if str(item.get("kind", "")) == "Fare":
            return _as_int(item.get("Oneway"))
    return None


def _point_station_name(point: Any) -> str:
    if not isinstance(point, dict):
        return ""
    return _name(point.get("Station"))


def _at(values: list[str], index: int) -> str:
    if 0 <= index < len(values):
        return values[index]
    return ""
