from __future__ import annotations

from core.models import StationCode
from ekispert.client import EkispertClient, StationNotFoundError
from ekispert.decoding import decode_station_codes


class StationResolver:
    def __init__(self, client: EkispertClient) -> None:
        self.client = client

    def resolve(self, station_name: str) -> StationCode:
        name = (station_name or "").strip()
        if not name:
            raise StationNotFoundError(name)
        result_set = self.client.get_result_set("/station", {"name": name, "type": "train"})
        codes = decode_station_codes(result_set)
        if not codes:
            raise StationNotFoundError(name)
        # First hit wins; there is no disambiguation step.
        return codes[0]
