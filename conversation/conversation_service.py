from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Any, Iterator

from conversation.input_parsing import parse_date_input, parse_time_input
from conversation.models import Session
from conversation.session_store_interface import SessionStoreProtocol
from conversation.state_machine import FIELD_BY_STATE, can_transition, coerce_state, next_state
from core.enums import ConversationState, FieldName
from core.models import SearchQuery
from ekispert.client import OperatorNotFoundError, StationNotFoundError, UpstreamError
from ekispert.railways import RailwayDirectory
from ekispert.route_search import RouteSearchClient
from ekispert.stations import StationResolver
from line_messaging import message_templates


class ConversationService:
    def __init__(
        self,
        store: SessionStoreProtocol,
        station_resolver: StationResolver,
        railway_directory: RailwayDirectory,
        route_search: RouteSearchClient,
        start_keyword: str = message_templates.DEFAULT_START_KEYWORD,
    ) -> None:
        self.store = store
        self.station_resolver = station_resolver
        self.railway_directory = railway_directory
        self.route_search = route_search
        self.start_keyword = start_keyword
        self._locks: dict[str, _UserLock] = {}
        self._locks_guard = threading.Lock()

    def handle_text(self, line_user_id: str, text: str) -> list[dict[str, Any]]:
        # One user at a time; the webhook hands over a user's events in arrival order.
        with self._user_lock(line_user_id):
            return self._handle_text(line_user_id, text)

    def _handle_text(self, line_user_id: str, text: str) -> list[dict[str, Any]]:
        session = self.store.get_session(line_user_id)
        if session is None:
            session = Session(line_user_id=line_user_id)
            self.store.save_session(session)
        session.state = coerce_state(session.state)

        raw_text = text or ""
        normalized = raw_text.strip()
        if raw_text == self.start_keyword:
            session.reset(ConversationState.AWAIT_DEPARTURE)
            self.store.save_session(session)
            return message_templates.build_state_prompt(ConversationState.AWAIT_DEPARTURE)

        current = session.state
        field_name = FIELD_BY_STATE.get(current)
        if field_name is None:
            return message_templates.build_help_message(self.start_keyword)
        if not normalized:
            return message_templates.build_state_prompt(current)

        session.fields[field_name] = normalized
        self._advance(session, next_state(current))

        if current == ConversationState.AWAIT_ARRIVAL_TIME:
            return self._offer_operators(session)
        if current == ConversationState.AWAIT_OPERATOR_CHOICE:
            return self._offer_lines(session)
        if current == ConversationState.AWAIT_LINE_CHOICE:
            return self._search_routes(session)
        return message_templates.build_state_prompt(session.state)

    def _offer_operators(self, session: Session) -> list[dict[str, Any]]:
        try:
            # Both stations must resolve before the operator menu is worth showing.
            for field_name in (FieldName.DEPARTURE, FieldName.DESTINATION):
                self.station_resolver.resolve(session.fields.get(field_name, ""))
            operators = self.railway_directory.list_operators()
        except StationNotFoundError as exc:
            print(f"station-not-found line_user_id={session.line_user_id} error={exc}")
            self._abort(session)
            return message_templates.build_station_not_found_message(exc.station_name)
        except UpstreamError as exc:
            print(f"operator-lookup-failed line_user_id={session.line_user_id} error={exc}")
            self._abort(session)
            return message_templates.build_operator_lookup_failed_message()
        return message_templates.build_operator_menu([operator.name for operator in operators])

    def _offer_lines(self, session: Session) -> list[dict[str, Any]]:
        operator_name = session.fields.get(FieldName.SELECTED_OPERATOR, "")
        try:
            lines = self.railway_directory.list_lines(operator_name)
        except (OperatorNotFoundError, UpstreamError) as exc:
            print(f"line-lookup-failed line_user_id={session.line_user_id} operator={operator_name} error={exc}")
            self._abort(session)
            return message_templates.build_line_lookup_failed_message()
        return message_templates.build_line_menu([line.name for line in lines])

    def _search_routes(self, session: Session) -> list[dict[str, Any]]:
        fields = session.fields
        date_input = parse_date_input(fields.get(FieldName.DATE, ""))
        departure_input = parse_time_input(fields.get(FieldName.DEPARTURE_TIME, ""))
        arrival_input = parse_time_input(fields.get(FieldName.ARRIVAL_TIME, ""))
        for label, parsed in (("date", date_input), ("departure_time", departure_input), ("arrival_time", arrival_input)):
            if not parsed.is_valid:
                print(f"query-input-unparsed line_user_id={session.line_user_id} field={label} raw={parsed.raw}")

        try:
            query = SearchQuery(
                departure_station_code=self.station_resolver.resolve(fields.get(FieldName.DEPARTURE, "")),
                destination_station_code=self.station_resolver.resolve(fields.get(FieldName.DESTINATION, "")),
                date=date_input.compact,
                departure_time=departure_input.compact,
                arrival_time=arrival_input.compact,
                selected_operator=fields.get(FieldName.SELECTED_OPERATOR, ""),
                selected_line=fields.get(FieldName.SELECTED_LINE, ""),
            )
            results = self.route_search.search(query)
        except StationNotFoundError as exc:
            print(f"station-not-found line_user_id={session.line_user_id} error={exc}")
            return message_templates.build_station_not_found_message(exc.station_name)
        except UpstreamError as exc:
            print(f"route-search-failed line_user_id={session.line_user_id} error={exc}")
            return message_templates.build_route_search_failed_message()

        print(f"route-search-complete line_user_id={session.line_user_id} results={len(results)}")
        if not results:
            return message_templates.build_no_routes_message()
        return message_templates.build_result_messages(results)

    def _advance(self, session: Session, target: ConversationState) -> None:
        if not can_transition(session.state, target):
            raise RuntimeError(f"invalid transition: {session.state.value} -> {target.value}")
        session.state = target
        self.store.save_session(session)

    def _abort(self, session: Session) -> None:
        session.reset(ConversationState.IDLE)
        self.store.save_session(session)

    @contextmanager
    def _user_lock(self, line_user_id: str) -> Iterator[None]:
        with self._locks_guard:
            entry = self._locks.get(line_user_id)
            if entry is None:
                entry = self._locks[line_user_id] = _UserLock()
            entry.holders += 1
        try:
            with entry.lock:
                yield
        finally:
            # Dropped once no thread holds or waits for it, so the map only
            # carries users with a message in flight.
            with self._locks_guard:
                entry.holders -= 1
                if entry.holders == 0:
                    del self._locks[line_user_id]


class _UserLock:
    __slots__ = ("lock", "holders")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.holders = 0
