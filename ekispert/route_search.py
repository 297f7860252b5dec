from __future__ import annotations

from typing import Any

from core.models import Itinerary, RankedResult, SearchQuery
from ekispert.client import EkispertClient, UpstreamError
from ekispert.decoding import decode_itineraries
from ekispert.ranking import MAX_RESULTS, filter_itineraries, rank_itineraries

SEARCH_PATH = "/search/course/extreme"
SEARCH_ANSWER_COUNT = 10


class RouteSearchClient:
    def __init__(
        self,
        client: EkispertClient,
        answer_count: int = SEARCH_ANSWER_COUNT,
        max_results: int = MAX_RESULTS,
    ) -> None:
        self.client = client
        self.answer_count = max(1, int(answer_count))
        self.max_results = max(1, int(max_results))

    def build_search_params(self, query: SearchQuery) -> dict[str, Any]:
        # Planes, shinkansen and limited expresses are always excluded.
        return {
            "from": query.departure_station_code,
            "to": query.destination_station_code,
            "date": query.date,
            "time": query.departure_time,
            "searchType": "departure",
            "plane": False,
            "shinkansen": False,
            "limitedExpress": False,
            "sort": "time",
            "answerCount": self.answer_count,
        }

    def fetch_candidates(self, query: SearchQuery) -> list[Itinerary]:
        result_set = self.client.get_result_set(SEARCH_PATH, self.build_search_params(query))
        if "Course" not in result_set:
            raise UpstreamError("ekispert api error: Course missing from search response")
        return decode_itineraries(result_set)

    def search(self, query: SearchQuery) -> list[RankedResult]:
        candidates = self.fetch_candidates(query)
        survivors = filter_itineraries(
            candidates,
            operator_name=query.selected_operator,
            line_name=query.selected_line,
            arrival_bound=query.arrival_time,
        )
        return rank_itineraries(survivors, limit=self.max_results)
