from __future__ import annotations

from core.models import Corporation, RailLine
from ekispert.client import EkispertClient, OperatorNotFoundError
from ekispert.decoding import decode_corporations, decode_rail_lines


class RailwayDirectory:
    def __init__(self, client: EkispertClient) -> None:
        self.client = client

    def list_operators(self) -> list[Corporation]:
        result_set = self.client.get_result_set("/corporation", {"type": "railway"})
        return decode_corporations(result_set)

    def list_lines(self, operator_name: str) -> list[RailLine]:
        name = (operator_name or "").strip()
        corporation = next((corp for corp in self.list_operators() if corp.name == name), None)
        if corporation is None:
            raise OperatorNotFoundError(f"operator not found: {name}")
        result_set = self.client.get_result_set("/railway", {"corporationId": corporation.id})
        return decode_rail_lines(result_set)
