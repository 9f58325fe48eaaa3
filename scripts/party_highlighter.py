#!/usr/bin/env python3
"""Detect contracting parties in a .docx and highlight references to one.

Usage:
    python3 scripts/party_highlighter.py contract.docx detect
    python3 scripts/party_highlighter.py contract.docx add "Acme Inc."
    python3 scripts/party_highlighter.py contract.docx highlight --party "Acme Inc."
    python3 scripts/party_highlighter.py contract.docx reset --out clean.docx

Session state (detected parties, selected party) lives in a DuckDB sidecar,
``<docx>.partymark.duckdb`` unless --state is given. The document is saved in
place unless --out is given.

Outputs structured JSON to stdout, human messages to stderr.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

import orjson

from partymark.config import ConfigError, load_config
from partymark.docx_document import DocxDocument
from partymark.session import HighlightSession, OperationResult
from partymark.settings import DuckDBSettingsStore

log = logging.getLogger("party_highlighter")


def dump_json(obj: object) -> None:
    sys.stdout.buffer.write(orjson.dumps(obj, option=orjson.OPT_INDENT_2))
    sys.stdout.buffer.write(b"\n")


def default_state_path(docx_path: Path) -> Path:
    return docx_path.with_name(docx_path.name + ".partymark.duckdb")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Detect parties in a .docx and highlight references to one."
    )
    parser.add_argument("docx", help="Path to the .docx document")
    parser.add_argument("--state", default=None, help="Path to the DuckDB state sidecar")
    parser.add_argument("--config", default=None, help="Path to a JSON engine config")
    parser.add_argument("--out", default=None, help="Write the document here instead of in place")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("show", help="Show stored parties (detects when none are stored)")
    sub.add_parser("detect", help="Re-detect parties from the document head")
    add = sub.add_parser("add", help="Add a party manually and select it")
    add.add_argument("name")
    select = sub.add_parser("select", help="Select a stored party")
    select.add_argument("name")
    highlight = sub.add_parser("highlight", help="Highlight references to a party")
    highlight.add_argument("--party", default=None, help="Party name (default: selected)")
    sub.add_parser("reset", help="Remove all highlights and clear the selection")
    return parser


def run(args: argparse.Namespace) -> OperationResult:
    docx_path = Path(args.docx)
    if not docx_path.exists():
        raise FileNotFoundError(f"Document not found: {docx_path}")
    config = load_config(Path(args.config) if args.config else None)
    state_path = Path(args.state) if args.state else default_state_path(docx_path)

    document = DocxDocument(docx_path)
    with DuckDBSettingsStore(state_path) as store:
        session = HighlightSession(document, store, config=config, on_progress=log.info)
        if args.command == "show":
            result = session.start()
        elif args.command == "detect":
            result = session.detect()
        elif args.command == "add":
            result = session.add_party(args.name)
        elif args.command == "select":
            result = session.select(args.name)
        elif args.command == "highlight":
            result = session.highlight(args.party)
        else:
            result = session.reset()

    if args.command in ("highlight", "reset") and result.ok:
        out_path = Path(args.out) if args.out else docx_path
        document.save(out_path)
        log.info("Saved %s", out_path)
    return result


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    try:
        result = run(args)
    except (FileNotFoundError, ConfigError) as exc:
        log.error("%s", exc)
        return 1

    log.info("%s", result.status)
    dump_json(result.to_dict())
    return 0 if result.ok else 1


if __name__ == "__main__":
    sys.exit(main())
