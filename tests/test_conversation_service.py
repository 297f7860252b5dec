from __future__ import annotations

import threading
import unittest
from typing import Any

from conversation.conversation_service import ConversationService
from conversation.memory_store import InMemorySessionStore
from core.enums import ConversationState, FieldName
from ekispert.client import UpstreamError
from ekispert.railways import RailwayDirectory
from ekispert.route_search import SEARCH_PATH, RouteSearchClient
from ekispert.stations import StationResolver
from ekispert_fakes import FakeEkispertClient, course, lines_result, operators_result, station_result
from line_messaging import message_templates

ANSWERS = ["東京", "東京", "2023-03-08", "10:00", "18:00", "JR東日本", "中央線"]


def _default_responses() -> dict[str, Any]:
    return {
        "/station": station_result("22828"),
        "/corporation": operators_result("JR東日本", "東京メトロ", "東急電鉄"),
        "/railway": lines_result("山手線", "中央線", "総武線"),
        SEARCH_PATH: {
            "Course": [
                course([("中央線", "JR東日本", "東京", "高尾"), ("中央線", "JR東日本", "高尾", "東京")], "17:40", 180, fare=1340),
                course([("山手線", "JR東日本", "東京", "東京")], "11:00", 60),
            ]
        },
    }


def _service(client: FakeEkispertClient, store: InMemorySessionStore | None = None) -> ConversationService:
    return ConversationService(
        store=store if store is not None else InMemorySessionStore(),
        station_resolver=StationResolver(client),
        railway_directory=RailwayDirectory(client),
        route_search=RouteSearchClient(client),
    )


class ConversationServiceTest(unittest.TestCase):
    def test_full_cycle_visits_every_state(self) -> None:
        client = FakeEkispertClient(_default_responses())
        store = InMemorySessionStore()
        service = _service(client, store)

        service.handle_text("U1", "出発")
        visited = [store.get_session("U1").state]
        replies: list[list[dict[str, Any]]] = []
        for answer in ANSWERS:
            replies.append(service.handle_text("U1", answer))
            visited.append(store.get_session("U1").state)

        self.assertEqual(
            visited,
            [
                ConversationState.AWAIT_DEPARTURE,
                ConversationState.AWAIT_DESTINATION,
                ConversationState.AWAIT_DATE,
                ConversationState.AWAIT_DEPARTURE_TIME,
                ConversationState.AWAIT_ARRIVAL_TIME,
                ConversationState.AWAIT_OPERATOR_CHOICE,
                ConversationState.AWAIT_LINE_CHOICE,
                ConversationState.IDLE,
            ],
        )
        operator_menu = replies[4][0]
        self.assertEqual(operator_menu["type"], "template")
        self.assertEqual(
            [action["text"] for action in operator_menu["template"]["actions"]],
            ["JR東日本", "東京メトロ", "東急電鉄"],
        )
        results = replies[-1]
        self.assertEqual(len(results), 2)
        self.assertIn("オススメ", results[0]["text"])
        self.assertIn("ルート1: 東京→東京", results[1]["text"])
        self.assertIn("所要時間: 180分", results[1]["text"])
        self.assertIn("運賃: 1,340円", results[1]["text"])
        self.assertIn("東京 [中央線] → 高尾 → 高尾 [中央線] → 東京", results[1]["text"])

        search_params = [params for path, params in client.calls if path == SEARCH_PATH][0]
        self.assertEqual(search_params["date"], "20230308")
        self.assertEqual(search_params["time"], "1000")

    def test_fields_accumulate(self) -> None:
        store = InMemorySessionStore()
        service = _service(FakeEkispertClient(_default_responses()), store)
        service.handle_text("U1", "出発")
        for answer in ANSWERS[:3]:
            service.handle_text("U1", answer)
        session = store.get_session("U1")
        self.assertEqual(
            session.fields,
            {FieldName.DEPARTURE: "東京", FieldName.DESTINATION: "東京", FieldName.DATE: "2023-03-08"},
        )

    def test_start_keyword_resets_from_any_state(self) -> None:
        store = InMemorySessionStore()
        service = _service(FakeEkispertClient(_default_responses()), store)
        service.handle_text("U1", "出発")
        service.handle_text("U1", "東京")
        service.handle_text("U1", "大阪")

        messages = service.handle_text("U1", "出発")
        first = store.get_session("U1")
        service.handle_text("U1", "出発")
        second = store.get_session("U1")

        self.assertEqual(messages[0]["text"], "出発駅を入力してください")
        for session in (first, second):
            self.assertEqual(session.state, ConversationState.AWAIT_DEPARTURE)
            self.assertEqual(session.fields, {})

    def test_idle_user_gets_help(self) -> None:
        store = InMemorySessionStore()
        service = _service(FakeEkispertClient(), store)
        messages = service.handle_text("U-new", "こんにちは")
        self.assertIn("「出発」と入力して", messages[0]["text"])
        session = store.get_session("U-new")
        self.assertEqual(session.state, ConversationState.IDLE)
        self.assertEqual(session.fields, {})

    def test_blank_text_reprompts_without_advancing(self) -> None:
        store = InMemorySessionStore()
        service = _service(FakeEkispertClient(), store)
        service.handle_text("U1", "出発")
        messages = service.handle_text("U1", "   ")
        self.assertEqual(messages[0]["text"], "出発駅を入力してください")
        self.assertEqual(store.get_session("U1").state, ConversationState.AWAIT_DEPARTURE)

    def test_operator_lookup_failure_resets_to_idle(self) -> None:
        responses = _default_responses()
        responses["/corporation"] = UpstreamError("timeout")
        store = InMemorySessionStore()
        service = _service(FakeEkispertClient(responses), store)
        service.handle_text("U1", "出発")
        for answer in ANSWERS[:4]:
            service.handle_text("U1", answer)

        messages = service.handle_text("U1", ANSWERS[4])

        self.assertEqual(messages, message_templates.build_operator_lookup_failed_message())
        session = store.get_session("U1")
        self.assertEqual(session.state, ConversationState.IDLE)
        self.assertEqual(session.fields, {})

        service.handle_text("U1", "出発")
        self.assertEqual(store.get_session("U1").fields, {})

    def test_station_not_found_ends_cycle(self) -> None:
        responses = _default_responses()
        responses["/station"] = {"max": "0"}
        store = InMemorySessionStore()
        service = _service(FakeEkispertClient(responses), store)
        service.handle_text("U1", "出発")
        for answer in ["どこか", "東京", "2023-03-08", "10:00"]:
            service.handle_text("U1", answer)

        messages = service.handle_text("U1", "18:00")

        self.assertEqual(len(messages), 1)
        self.assertIn("どこか", messages[0]["text"])
        self.assertEqual(store.get_session("U1").state, ConversationState.IDLE)

    def test_line_lookup_failure_resets_to_idle(self) -> None:
        responses = _default_responses()
        responses["/railway"] = UpstreamError("boom")
        store = InMemorySessionStore()
        service = _service(FakeEkispertClient(responses), store)
        service.handle_text("U1", "出発")
        for answer in ANSWERS[:5]:
            service.handle_text("U1", answer)

        messages = service.handle_text("U1", "JR東日本")

        self.assertEqual(messages, message_templates.build_line_lookup_failed_message())
        self.assertEqual(store.get_session("U1").state, ConversationState.IDLE)

    def test_operator_menu_is_truncated_to_four(self) -> None:
        responses = _default_responses()
        responses["/corporation"] = operators_result("A", "B", "C", "D", "E", "F")
        service = _service(FakeEkispertClient(responses))
        service.handle_text("U1", "出発")
        for answer in ANSWERS[:4]:
            service.handle_text("U1", answer)

        messages = service.handle_text("U1", ANSWERS[4])

        actions = messages[0]["template"]["actions"]
        self.assertEqual([action["label"] for action in actions], ["A", "B", "C", "D"])

    def test_search_failure_and_no_results_are_distinct(self) -> None:
        failing = _default_responses()
        failing[SEARCH_PATH] = UpstreamError("boom")
        empty = _default_responses()
        empty[SEARCH_PATH] = {"Course": []}

        outcomes = []
        for responses in (failing, empty):
            store = InMemorySessionStore()
            service = _service(FakeEkispertClient(responses), store)
            service.handle_text("U1", "出発")
            for answer in ANSWERS[:-1]:
                service.handle_text("U1", answer)
            outcomes.append(service.handle_text("U1", ANSWERS[-1]))
            self.assertEqual(store.get_session("U1").state, ConversationState.IDLE)

        self.assertEqual(outcomes[0], message_templates.build_route_search_failed_message())
        self.assertEqual(outcomes[1], message_templates.build_no_routes_message())
        self.assertNotEqual(outcomes[0], outcomes[1])

    def test_malformed_time_is_passed_downstream(self) -> None:
        client = FakeEkispertClient(_default_responses())
        service = _service(client)
        service.handle_text("U1", "出発")
        answers = list(ANSWERS)
        answers[3] = "朝"
        for answer in answers:
            service.handle_text("U1", answer)
        search_params = [params for path, params in client.calls if path == SEARCH_PATH][0]
        self.assertEqual(search_params["time"], "朝")

    def test_concurrent_messages_for_one_user_are_serialized(self) -> None:
        store = InMemorySessionStore()
        service = _service(FakeEkispertClient(_default_responses()), store)
        service.handle_text("U1", "出発")

        threads = [threading.Thread(target=service.handle_text, args=("U1", text)) for text in ("東京", "大阪")]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        session = store.get_session("U1")
        self.assertEqual(session.state, ConversationState.AWAIT_DATE)
        self.assertEqual(set(session.fields), {FieldName.DEPARTURE, FieldName.DESTINATION})
        self.assertEqual(service._locks, {})

    def test_start_keyword_must_match_exactly(self) -> None:
        store = InMemorySessionStore()
        service = _service(FakeEkispertClient(), store)

        messages = service.handle_text("U1", " 出発 ")

        self.assertIn("「出発」と入力して", messages[0]["text"])
        self.assertEqual(store.get_session("U1").state, ConversationState.IDLE)

        service.handle_text("U1", "出発")
        service.handle_text("U1", "出発 ")
        session = store.get_session("U1")
        self.assertEqual(session.state, ConversationState.AWAIT_DESTINATION)
        self.assertEqual(session.fields, {FieldName.DEPARTURE: "出発"})

    def test_custom_start_keyword(self) -> None:
        client = FakeEkispertClient()
        service = ConversationService(
            store=InMemorySessionStore(),
            station_resolver=StationResolver(client),
            railway_directory=RailwayDirectory(client),
            route_search=RouteSearchClient(client),
            start_keyword="start",
        )
        self.assertEqual(service.handle_text("U1", "start")[0]["text"], "出発駅を入力してください")
        self.assertIn("「start」", service.handle_text("U2", "出発")[0]["text"])


if __name__ == "__main__":
    unittest.main()
