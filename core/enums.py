from __future__ import annotations

from enum import Enum


class ConversationState(str, Enum):
    IDLE = "IDLE"
    AWAIT_DEPARTURE = "AWAIT_DEPARTURE"
    AWAIT_DESTINATION = "AWAIT_DESTINATION"
    AWAIT_DATE = "AWAIT_DATE"
    AWAIT_DEPARTURE_TIME = "AWAIT_DEPARTURE_TIME"
    AWAIT_ARRIVAL_TIME = "AWAIT_ARRIVAL_TIME"
    AWAIT_OPERATOR_CHOICE = "AWAIT_OPERATOR_CHOICE"
    AWAIT_LINE_CHOICE = "AWAIT_LINE_CHOICE"


class FieldName:
    DEPARTURE = "departure"
    DESTINATION = "destination"
    DATE = "date"
    DEPARTURE_TIME = "departure_time"
    ARRIVAL_TIME = "arrival_time"
    SELECTED_OPERATOR = "selected_operator"
    SELECTED_LINE = "selected_line"
