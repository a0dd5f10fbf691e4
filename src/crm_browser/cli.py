from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, Sequence

from .browser import RecordBrowser
from .config import ClientConfig, ConfigError, load_config
from .data_source import CrmApiDataSource, DataSource, StaticDataSource
from .entities import default_registry
from .exceptions import ApiError, ClientValidationError
from .export import export_view
from .filter_validation import parse_filter_expression
from .http_client import HttpClient
from .logger import configure_logging
from .models import SortDirection
from .table_printer import print_table
from .view_store import ViewStateStore


def _read_records_file(path: str, entity_type: str) -> list[dict[str, Any]]:
    try:
        payload = json.loads(Path(path).read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigError(f"{path}: cannot read records file ({exc.strerror or exc})") from exc
    except ValueError as exc:
        raise ConfigError(f"{path}: invalid JSON ({exc})") from exc
    if isinstance(payload, dict):
        payload = payload.get(entity_type, payload.get("data", []))
    if not isinstance(payload, list):
        raise ConfigError(f"{path}: expected a JSON array of records")
    return [record for record in payload if isinstance(record, dict)]


def _data_source(args: argparse.Namespace, config: ClientConfig) -> tuple[DataSource, str | None]:
    if args.input:
        records = _read_records_file(args.input, args.entity)
        return StaticDataSource({args.entity: records}), None
    config.require_api()
    token = args.token or os.getenv("CRM_ACCESS_TOKEN")
    source = CrmApiDataSource(http=HttpClient(config), fetch_all_limit=config.fetch_all_limit)
    return source, token


def cmd_entities(args: argparse.Namespace) -> None:
    registry = default_registry()
    for entity_type in registry.entity_types():
        accessor = registry.get(entity_type)
        print(f"{entity_type}: sortable={', '.join(accessor.sortable_fields)}")


def cmd_browse(args: argparse.Namespace) -> None:
    config = load_config(args.env_file)
    accessor = default_registry().get(args.entity)
    browser = RecordBrowser(accessor, page_size=config.default_page_size, max_page_size=config.max_page_size)

    store: ViewStateStore | None = None
    if args.restore_view or args.save_view:
        store = ViewStateStore(Path(config.view_state_path) if config.view_state_path else None).open()
    try:
        if store is not None and args.restore_view:
            restored = store.load(
                accessor,
                default_page_size=browser.default_page_size,
                max_page_size=browser.max_page_size,
            )
            if restored is not None:
                browser.state = restored

        if args.search is not None:
            browser.set_search_text(args.search)
        if args.filter:
            browser.set_filters([parse_filter_expression(expression) for expression in args.filter])
        if args.sort:
            direction = SortDirection.DESC if args.desc else SortDirection.ASC
            browser.set_sort(args.sort, direction)
        if args.page_size is not None:
            browser.set_page_size(args.page_size)
        if args.page is not None:
            browser.set_page(args.page)

        source, token = _data_source(args, config)
        result = browser.refresh(source, token)

        if args.json:
            payload = {
                "entity": accessor.entity_type,
                "pagination": result.render(),
                "data": [dict(record) for record in result.records],
            }
            print(json.dumps(payload, indent=2, default=str))
        else:
            print_table(accessor.entity_type, result, accessor)

        if args.export:
            path = export_view(browser, output_dir=args.export)
            print(f"exported {path}")

        if store is not None and args.save_view:
            store.save(accessor.entity_type, browser.state)
    finally:
        if store is not None:
            store.close()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="crm-browse", description="Browse CRM records from the command line")
    parser.add_argument("--env-file", default=None)
    parser.add_argument("--log-level", default="WARNING")
    subparsers = parser.add_subparsers(dest="command", required=True)

    entities_parser = subparsers.add_parser("entities", help="list entity types and their sortable fields")
    entities_parser.set_defaults(func=cmd_entities)

    browse_parser = subparsers.add_parser("browse", help="search, filter, sort and page one entity")
    browse_parser.add_argument("entity")
    browse_parser.add_argument("--input", default=None, help="JSON file of records instead of the API")
    browse_parser.add_argument("--token", default=None)
    browse_parser.add_argument("--search", default=None)
    browse_parser.add_argument(
        "--filter",
        action="append",
        default=[],
        metavar="FIELD:OPERATOR[:VALUE]",
        help="repeatable; conditions are combined with AND",
    )
    browse_parser.add_argument("--sort", default=None)
    browse_parser.add_argument("--desc", action="store_true")
    browse_parser.add_argument("--page", type=int, default=None)
    browse_parser.add_argument("--page-size", type=int, default=None)
    browse_parser.add_argument("--json", action="store_true")
    browse_parser.add_argument("--export", default=None, metavar="DIR")
    browse_parser.add_argument("--restore-view", action="store_true")
    browse_parser.add_argument("--save-view", action="store_true")
    browse_parser.set_defaults(func=cmd_browse)
    return parser


def main(argv: Sequence[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(getattr(logging, str(args.log_level).upper(), logging.WARNING))
    try:
        args.func(args)
    except ApiError as exc:
        print(
            json.dumps({"error": exc.code, "message": exc.message, "request_id": exc.request_id}, indent=2),
            file=sys.stderr,
        )
        raise SystemExit(1) from exc
    except (ClientValidationError, ConfigError, KeyError) as exc:
        message = exc.args[0] if isinstance(exc, KeyError) and exc.args else str(exc)
        print(f"error: {message}", file=sys.stderr)
        raise SystemExit(2) from exc


if __name__ == "__main__":
    main()
