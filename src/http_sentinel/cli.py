from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import List

from rich.console import Console

from .api import SentinelAPI
from .config import SentinelSettings
from .engine import SignatureClassifier
from .parsers import json_line_to_event_input
from .report import print_report
from .server import serve_http

logger = logging.getLogger(__name__)


def build_settings(args: argparse.Namespace) -> SentinelSettings:
    settings = SentinelSettings.from_env()
    overrides = {}
    if args.signatures:
        overrides["signatures_path"] = Path(args.signatures)
    if args.disable_defaults:
        overrides["include_default_signatures"] = False
    if args.log_level:
        overrides["log_level"] = args.log_level.upper()
    for name in ("host", "port", "sample"):
        value = getattr(args, name, None)
        if value is not None:
            overrides["sample_limit" if name == "sample" else name] = value
    return replace(settings, **overrides)


def build_api(settings: SentinelSettings) -> SentinelAPI:
    classifier = SignatureClassifier(config=settings.classifier_config())
    return SentinelAPI(
        classifier=classifier,
        default_limit=settings.default_limit,
        sample_limit=settings.sample_limit,
    )


def handle_classify(args: argparse.Namespace, settings: SentinelSettings) -> int:
    api = build_api(settings)
    raw_request = Path(args.raw).read_text() if args.raw else args.raw_request
    verdict = api.classify_entry({"url": args.url, "rawRequest": raw_request, "statusCode": args.status})
    print(json.dumps(verdict, indent=2, ensure_ascii=False))
    return int(verdict["isAttack"])


def handle_analyze_log(args: argparse.Namespace, settings: SentinelSettings) -> int:
    api = build_api(settings)
    path = Path(args.path)
    events = []
    for number, line in enumerate(path.read_text().splitlines(), 1):
        if not line.strip():
            continue
        try:
            events.append(json_line_to_event_input(line))
        except ValueError as exc:
            raise ValueError(f"{path}:{number}: {exc}") from exc
    api.store.insert_many(events)
    logger.info("Loaded %d events from %s", len(events), path)
    report = api.get_report(settings.sample_limit, top=args.top)
    if args.json:
        print(json.dumps(report, indent=2, ensure_ascii=False))
    else:
        print_report(report, Console())
    return int(report["summary"]["attackCount"] > 0)


def handle_serve(args: argparse.Namespace, settings: SentinelSettings) -> int:
    serve_http(build_api(settings), host=settings.host, port=settings.port)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Signature-based HTTP attack detection and traffic statistics")
    parser.add_argument("--signatures", help="Path to JSON signature list to append to the defaults (env HTTP_SENTINEL_SIGNATURES)")
    parser.add_argument("--disable-defaults", action="store_true", help="Use only user-supplied signatures")
    parser.add_argument("--log-level", help="Logging level (env HTTP_SENTINEL_LOG_LEVEL, default WARNING)")
    sub = parser.add_subparsers(dest="command", required=True)

    classify = sub.add_parser("classify", help="Classify a single HTTP event")
    classify.add_argument("--url", default="", help="Request URL including query string")
    classify.add_argument("--raw-request", default="", help="Raw request text")
    classify.add_argument("--raw", help="Path to a file holding the raw request text")
    classify.add_argument("--status", type=int, default=0, help="Response status code")
    classify.set_defaults(func=handle_classify)

    analyze = sub.add_parser("analyze-log", help="Ingest a JSON lines file of events and print a report")
    analyze.add_argument("path", help="Path to JSON lines file, one event object per line")
    analyze.add_argument("--json", action="store_true", help="Print the report as JSON")
    analyze.add_argument("--sample", type=int, help="Number of most recent events to aggregate")
    analyze.add_argument("--top", type=int, default=5, help="Entries in top-N tables")
    analyze.set_defaults(func=handle_analyze_log)

    serve = sub.add_parser("serve", help="Run the JSON HTTP API")
    serve.add_argument("--host", help="Bind address (env HTTP_SENTINEL_HOST)")
    serve.add_argument("--port", type=int, help="Bind port (env HTTP_SENTINEL_PORT)")
    serve.set_defaults(func=handle_serve)

    return parser


def main(argv: List[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        settings = build_settings(args)
        logging.basicConfig(
            level=getattr(logging, settings.log_level, logging.WARNING),
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
        return args.func(args, settings)
    except ValueError as exc:
        parser.error(str(exc))
    except FileNotFoundError as exc:
        parser.error(f"{exc}")
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
