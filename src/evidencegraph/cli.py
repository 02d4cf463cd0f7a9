"""
Command line entry point for the evidence graph core.
"""

from __future__ import annotations

import argparse
import json
import sys
from importlib.metadata import PackageNotFoundError, version
from typing import Any

from loguru import logger

from .audit import audit_record, publication_verdict
from .errors import EvidenceGraphError
from .logging import configure_logging
from .master import derive_master_filter
from .models.context import MasterContext
from .models.kinds import EntityKind
from .registry import get_link_direction
from .resolver import filter_by_other_kind, resolve_links_with_anomalies
from .store import InMemoryLinkStore


def _kind(value: str) -> EntityKind:
    try:
        return EntityKind(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"unknown record kind: {value}") from exc


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="evidencegraph",
        description="Evidence graph CLI.",
    )
    parser.add_argument(
        "--version",
        action="store_true",
        help="Print the installed evidencegraph version and exit.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Log to stderr (-v for INFO, -vv for DEBUG).",
    )
    parser.add_argument(
        "--log-level",
        help="Explicit log level (overrides -v and EVIDENCEGRAPH_LOG_LEVEL).",
    )
    subparsers = parser.add_subparsers(dest="command")

    direction = subparsers.add_parser("direction", help="Show the storage direction for two record kinds.")
    direction.add_argument("kind_a", type=_kind)
    direction.add_argument("kind_b", type=_kind)

    links = subparsers.add_parser("links", help="List a record's links from its own perspective.")
    links.add_argument("graph", help="Graph JSON file ({\"records\": [...], \"links\": [...]}).")
    links.add_argument("--kind", type=_kind, required=True)
    links.add_argument("--id", required=True)
    links.add_argument("--other-kind", type=_kind, help="Only show links to records of this kind.")

    audit = subparsers.add_parser("audit", help="Audit a record for publication readiness.")
    audit.add_argument("graph", help="Graph JSON file.")
    audit.add_argument("--kind", type=_kind, required=True)
    audit.add_argument("--id", required=True)

    master = subparsers.add_parser("master-filter", help="Derive the linked-records filter for a list.")
    master.add_argument("--kind", type=_kind, required=True, help="Kind of the list being filtered.")
    master.add_argument("--topic", help="Master topic id.")
    master.add_argument("--recursive", action="store_true", help="Include sub-topics of the master topic.")
    master.add_argument("--record-kind", type=_kind, help="Master record kind.")
    master.add_argument("--record-id", help="Master record id.")
    return parser


def _resolve_level(args: argparse.Namespace) -> str | None:
    if args.log_level:
        return args.log_level
    if args.verbose >= 2:
        return "DEBUG"
    if args.verbose == 1:
        return "INFO"
    return None


def _configure(level: str | None) -> None:
    configure_logging(level)
    logger.remove()
    if level:
        logger.add(sys.stderr, level=level.strip().upper())


def _print(payload: Any) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    _configure(_resolve_level(args))

    if args.version:
        try:
            print(version("evidencegraph"))
        except PackageNotFoundError:
            print("evidencegraph (not installed)")
        return 0

    try:
        if args.command == "direction":
            direction = get_link_direction(args.kind_a, args.kind_b)
            _print({"from_kind": direction.from_kind.value, "to_kind": direction.to_kind.value})
            return 0

        if args.command == "links":
            store = InMemoryLinkStore.load(args.graph)
            resolution = resolve_links_with_anomalies(store.read_record(args.kind, args.id))
            links = resolution.links
            if args.other_kind:
                links = filter_by_other_kind(links, args.other_kind)
            _print(
                {
                    "links": [link.model_dump(mode="json") for link in links],
                    "anomalies": [anomaly.reason for anomaly in resolution.anomalies],
                }
            )
            return 0

        if args.command == "audit":
            store = InMemoryLinkStore.load(args.graph)
            record = store.read_record(args.kind, args.id)
            entity_audit = audit_record(record)
            verdict = publication_verdict(
                record.status,
                entity_audit,
                label=f"{record.kind.value} #{record.id}",
            )
            _print(
                {
                    "audit": entity_audit.model_dump(mode="json", by_alias=True),
                    "verdict": verdict.model_dump(mode="json"),
                }
            )
            return 0

        if args.command == "master-filter":
            context = MasterContext(show_only_linked_records=True)
            if args.topic:
                context = context.with_master_topic(args.topic, args.recursive)
            if args.record_kind and args.record_id:
                context = context.with_master_record(args.record_kind, args.record_id)
            fragment = derive_master_filter(args.kind, context)
            _print(fragment.model_dump(mode="json", by_alias=True, exclude_none=True))
            return 0
    except (EvidenceGraphError, FileNotFoundError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    parser.print_help()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
