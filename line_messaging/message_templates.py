from __future__ import annotations

from typing import Any

from core.enums import ConversationState
from core.models import RankedResult
from line_messaging.actions import MAX_MENU_OPTIONS, buttons_template, message_action, text_message

DEFAULT_START_KEYWORD = "出発"
UNKNOWN_TEXT = "不明"

PROMPT_BY_STATE = {
    ConversationState.AWAIT_DEPARTURE: "出発駅を入力してください",
    ConversationState.AWAIT_DESTINATION: "目的駅を入力してください",
    ConversationState.AWAIT_DATE: "出発日を入力してください（例: 2023-03-08）",
    ConversationState.AWAIT_DEPARTURE_TIME: "出発時刻を入力してください（例: 10:00）",
    ConversationState.AWAIT_ARRIVAL_TIME: "到着時刻を入力してください（例: 18:00）",
    ConversationState.AWAIT_OPERATOR_CHOICE: "利用する鉄道会社を選択してください",
    ConversationState.AWAIT_LINE_CHOICE: "利用する路線を選択してください",
}


def build_prompt_message(text: str) -> list[dict[str, Any]]:
    return [text_message(text)]


def build_state_prompt(state: ConversationState) -> list[dict[str, Any]]:
    return build_prompt_message(PROMPT_BY_STATE.get(state, ""))


def build_help_message(start_keyword: str = DEFAULT_START_KEYWORD) -> list[dict[str, Any]]:
    return build_prompt_message(f"「{start_keyword}」と入力して、旅行計画を始めましょう！")


def build_choice_menu(label: str, options: list[str]) -> list[dict[str, Any]]:
    """Render a single-choice menu; only the first four options are offered."""
    shown = [option for option in options if option][:MAX_MENU_OPTIONS]
    if not shown:
        return build_prompt_message(f"{label}\n候補が見つかりませんでした。名前を直接入力してください。")
    actions = [message_action(option, option) for option in shown]
    return [buttons_template(text=label, alt_text=label, actions=actions)]


def build_operator_menu(operator_names: list[str]) -> list[dict[str, Any]]:
    return build_choice_menu(PROMPT_BY_STATE[ConversationState.AWAIT_OPERATOR_CHOICE], operator_names)


def build_line_menu(line_names: list[str]) -> list[dict[str, Any]]:
    return build_choice_menu(PROMPT_BY_STATE[ConversationState.AWAIT_LINE_CHOICE], line_names)


def build_operator_lookup_failed_message() -> list[dict[str, Any]]:
    return build_prompt_message("鉄道会社の取得に失敗しました。もう一度お試しください。")


def build_station_not_found_message(station_name: str) -> list[dict[str, Any]]:
    return build_prompt_message(f"駅「{station_name}」が見つかりませんでした。もう一度お試しください。")


def build_line_lookup_failed_message() -> list[dict[str, Any]]:
    return build_prompt_message("路線の取得に失敗しました。もう一度お試しください。")


def build_route_search_failed_message() -> list[dict[str, Any]]:
    return build_prompt_message("ルートの取得に失敗しました。もう一度お試しください。")


def build_no_routes_message() -> list[dict[str, Any]]:
    return build_prompt_message("条件に合うルートが見つかりませんでした。条件を変えてもう一度お試しください。")


def _clock_text(value: str | None) -> str:
    if not value or len(value) != 4:
        return value or UNKNOWN_TEXT
    return f"{value[:2]}:{value[2:]}"


def build_result_messages(results: list[RankedResult]) -> list[dict[str, Any]]:
    if not results:
        return build_no_routes_message()
    messages = [text_message(f"以下の{len(results)}つのルートがオススメです！乗り鉄を楽しんでください！")]
    for result in results:
        itinerary = result.itinerary
        duration = f"{itinerary.time_on_board}分" if itinerary.time_on_board is not None else UNKNOWN_TEXT
        fare = f"{itinerary.fare:,}円" if itinerary.fare is not None else UNKNOWN_TEXT
        title = f"ルート{result.rank}: {itinerary.departure_station}→{itinerary.arrival_station}"
        summary = (
            f"出発: {_clock_text(itinerary.departure_time)} → 到着: {_clock_text(itinerary.arrival_time)}, "
            f"所要時間: {duration}, 運賃: {fare}"
        )
        messages.append(text_message(f"{title}\n{summary}\n\n{result.path}"))
    return messages
