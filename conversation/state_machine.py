from __future__ import annotations

from core.enums import ConversationState, FieldName

STATE_SEQUENCE = (
    ConversationState.IDLE,
    ConversationState.AWAIT_DEPARTURE,
    ConversationState.AWAIT_DESTINATION,
    ConversationState.AWAIT_DATE,
    ConversationState.AWAIT_DEPARTURE_TIME,
    ConversationState.AWAIT_ARRIVAL_TIME,
    ConversationState.AWAIT_OPERATOR_CHOICE,
    ConversationState.AWAIT_LINE_CHOICE,
)

FIELD_BY_STATE = {
    ConversationState.AWAIT_DEPARTURE: FieldName.DEPARTURE,
    ConversationState.AWAIT_DESTINATION: FieldName.DESTINATION,
    ConversationState.AWAIT_DATE: FieldName.DATE,
    ConversationState.AWAIT_DEPARTURE_TIME: FieldName.DEPARTURE_TIME,
    ConversationState.AWAIT_ARRIVAL_TIME: FieldName.ARRIVAL_TIME,
    ConversationState.AWAIT_OPERATOR_CHOICE: FieldName.SELECTED_OPERATOR,
    ConversationState.AWAIT_LINE_CHOICE: FieldName.SELECTED_LINE,
}


def coerce_state(value: object) -> ConversationState:
    try:
        return ConversationState(str(getattr(value, "value", value)))
    except ValueError:
        return ConversationState.IDLE


def next_state(current: ConversationState) -> ConversationState:
    if current not in FIELD_BY_STATE:
        return ConversationState.IDLE
    index = STATE_SEQUENCE.index(current)
    if index + 1 >= len(STATE_SEQUENCE):
        return ConversationState.IDLE
    return STATE_SEQUENCE[index + 1]


def can_transition(current: ConversationState, target: ConversationState) -> bool:
    if target == ConversationState.AWAIT_DEPARTURE:
        return True
    if target == ConversationState.IDLE:
        return True
    return next_state(current) == target
