from __future__ import annotations

from dataclasses import asdict, dataclass, field, is_dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

StationCode = str


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _serialize(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, Enum):
        return value.value
    if is_dataclass(value):
        return {k: _serialize(v) for k, v in asdict(value).items()}
    if isinstance(value, tuple):
        return [_serialize(v) for v in value]
    if isinstance(value, list):
        return [_serialize(v) for v in value]
    if isinstance(value, dict):
        return {k: _serialize(v) for k, v in value.items()}
    return value


@dataclass(slots=True)
class Corporation:
    id: str
    name: str


@dataclass(slots=True)
class RailLine:
    id: str
    name: str


@dataclass(slots=True)
class LineSegment:
    line_name: str
    operator_name: Optional[str]
    boarding_station: str
    alighting_station: str


@dataclass(slots=True)
class Itinerary:
    departure_station: str
    arrival_station: str
    departure_time: Optional[str]
    arrival_time: Optional[str]
    segments: list[LineSegment] = field(default_factory=list)
    time_on_board: Optional[int] = None
    fare: Optional[int] = None

    def operator_names(self) -> set[str]:
        return {segment.operator_name for segment in self.segments if segment.operator_name}

    def line_names(self) -> set[str]:
        return {segment.line_name for segment in self.segments if segment.line_name}


@dataclass(slots=True)
class RankedResult:
    rank: int
    itinerary: Itinerary
    path: str

    def to_dict(self) -> dict[str, Any]:
        return _serialize(self)


@dataclass(slots=True)
class SearchQuery:
    departure_station_code: StationCode
    destination_station_code: StationCode
    date: str
    departure_time: str
    arrival_time: str
    selected_operator: str
    selected_line: str
