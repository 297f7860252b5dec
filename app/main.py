from __future__ import annotations

import argparse
import json
import os
from typing import Any

from app.config import load_runtime_config
from conversation.input_parsing import parse_date_input, parse_time_input
from core.models import SearchQuery
from ekispert.client import EkispertClient, StationNotFoundError, UpstreamError
from ekispert.ranking import MAX_RESULTS
from ekispert.route_search import SEARCH_ANSWER_COUNT, RouteSearchClient
from ekispert.stations import StationResolver
from line_messaging import message_templates


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Noritetsu route bot")
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve_parser = subparsers.add_parser("serve", help="Run the LINE webhook server")
    serve_parser.add_argument("--config", default=None, help="Path to config.yaml or config.json")
    serve_parser.add_argument("--host", default=None)
    serve_parser.add_argument("--port", type=int, default=None)

    station_parser = subparsers.add_parser("station", help="Resolve a station name to its code")
    station_parser.add_argument("--config", default=None, help="Path to config.yaml or config.json")
    station_parser.add_argument("--name", required=True)

    search_parser = subparsers.add_parser("search", help="Search time-on-board ranked routes")
    search_parser.add_argument("--config", default=None, help="Path to config.yaml or config.json")
    search_parser.add_argument("--departure", required=True)
    search_parser.add_argument("--destination", required=True)
    search_parser.add_argument("--date", required=True, help="e.g. 2023-03-08")
    search_parser.add_argument("--departure-time", required=True, help="e.g. 10:00")
    search_parser.add_argument("--arrival-time", required=True, help="e.g. 18:00")
    search_parser.add_argument("--operator", required=True)
    search_parser.add_argument("--line", required=True)
    search_parser.add_argument("--messages", action="store_true", help="Print LINE message payloads")

    return parser


def _ekispert_client(config: dict[str, Any]) -> EkispertClient:
    conf = config.get("ekispert", {})
    return EkispertClient(
        api_key=str(conf.get("api_key", "") or ""),
        base_url=str(conf.get("base_url", "") or ""),
        timeout_sec=float(conf.get("timeout_sec", 10)),
    )


def cmd_serve(args: argparse.Namespace, config: dict[str, Any]) -> int:
    import uvicorn

    if args.config:
        os.environ["NORITETSU_CONFIG_PATH"] = args.config
    server_conf = config.get("server", {})
    host = args.host or str(server_conf.get("host", "0.0.0.0"))
    port = args.port or int(server_conf.get("port", 3000))
    print(f"server-starting host={host} port={port}")
    uvicorn.run("app.line_webhook:app", host=host, port=port)
    return 0


def cmd_station(args: argparse.Namespace, config: dict[str, Any]) -> int:
    resolver = StationResolver(_ekispert_client(config))
    try:
        code = resolver.resolve(args.name)
    except StationNotFoundError as exc:
        print(f"station not found: {exc.station_name}")
        return 1
    except UpstreamError as exc:
        print(f"station lookup failed: {exc}")
        return 1
    print(code)
    return 0


def cmd_search(args: argparse.Namespace, config: dict[str, Any]) -> int:
    client = _ekispert_client(config)
    resolver = StationResolver(client)
    route_search = RouteSearchClient(
        client,
        answer_count=int(config.get("ekispert", {}).get("answer_count", SEARCH_ANSWER_COUNT)),
        max_results=int(config.get("conversation", {}).get("max_results", MAX_RESULTS)),
    )
    try:
        query = SearchQuery(
            departure_station_code=resolver.resolve(args.departure),
            destination_station_code=resolver.resolve(args.destination),
            date=parse_date_input(args.date).compact,
            departure_time=parse_time_input(args.departure_time).compact,
            arrival_time=parse_time_input(args.arrival_time).compact,
            selected_operator=args.operator,
            selected_line=args.line,
        )
        results = route_search.search(query)
    except StationNotFoundError as exc:
        print(f"station not found: {exc.station_name}")
        return 1
    except UpstreamError as exc:
        print(f"search failed: {exc}")
        return 1

    if args.messages:
        payload: Any = message_templates.build_result_messages(results)
    else:
        payload = [result.to_dict() for result in results]
    print(json.dumps(payload, ensure_ascii=False, indent=2))
    return 0


def main() -> int:
    parser = build_parser()
    args = parser.parse_args()
    config = load_runtime_config(args.config)

    if args.command == "serve":
        return cmd_serve(args, config)
    if args.command == "station":
        return cmd_station(args, config)
    if args.command == "search":
        return cmd_search(args, config)

    parser.print_help()
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
