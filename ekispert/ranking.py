from __future__ import annotations

from core.models import Itinerary, LineSegment, RankedResult

MAX_RESULTS = 3
PATH_ARROW = " → "


def filter_itineraries(
    itineraries: list[Itinerary],
    operator_name: str,
    line_name: str,
    arrival_bound: str,
) -> list[Itinerary]:
    """Keep itineraries using the operator and the line and arriving by the bound.

    Arrival times are compact HHMM strings, so plain string comparison orders them.
    """
    output: list[Itinerary] = []
    for itinerary in itineraries:
        if operator_name not in itinerary.operator_names():
            continue
        if line_name not in itinerary.line_names():
            continue
        if itinerary.arrival_time is None or itinerary.arrival_time > arrival_bound:
            continue
        output.append(itinerary)
    return output


def time_on_board_key(itinerary: Itinerary) -> tuple[int, int]:
    if itinerary.time_on_board is None:
        return (0, 0)
    return (1, itinerary.time_on_board)


def rank_itineraries(itineraries: list[Itinerary], limit: int = MAX_RESULTS) -> list[RankedResult]:
    # sorted() is stable, so ties keep the order the search endpoint returned.
    ordered = sorted(itineraries, key=time_on_board_key, reverse=True)
    return [
        RankedResult(rank=index, itinerary=itinerary, path=render_path(itinerary.segments))
        for index, itinerary in enumerate(ordered[: max(0, limit)], start=1)
    ]


def render_path(segments: list[LineSegment]) -> str:
    return PATH_ARROW.join(
        f"{segment.boarding_station} [{segment.line_name}]{PATH_ARROW}{segment.alighting_station}"
        for segment in segments
    )
