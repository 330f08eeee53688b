"""
Name: Command Line Interface

Responsibilities:
  - Run ingest / query / delete against the configured engine
  - Load documents from JSONL ({"id", "text", "metadata"?} per line)
  - Print JSON results to stdout, human summaries to stderr

Usage:
    python -m ragcore ingest corpus.jsonl
    python -m ragcore query "remedy for fever" --k 3 --corpus corpus.jsonl
    python -m ragcore query "flu" --filters '{"lang": "en"}' --no-generate
    python -m ragcore delete 1 2 doc-7
    python -m ragcore collections

Environment:
    EMBEDDING_PROVIDER=fake (default), INDEX_BACKEND=memory (default).
    With the memory backend the index lives only for one invocation, so
    --corpus ingests a file before the query runs.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from pydantic import ValidationError

from .container import Container
from .exceptions import RAGError


def load_documents(path: Path) -> List[dict]:
    """R: Read one JSON document per non-blank line."""
    documents = []
    with open(path, "r", encoding="utf-8") as f:
        for line_number, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                documents.append(json.loads(line))
            except json.JSONDecodeError as exc:
                raise ValueError(f"{path}:{line_number}: invalid JSON ({exc.msg})") from exc
    return documents


def _parse_id(raw: str):
    """R: Numeric CLI ids are integers, everything else is a string id."""
    try:
        return int(raw)
    except ValueError:
        return raw


def _emit(payload: dict) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False))


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ragcore",
        description="Embedding-based retrieval, ranking and answer generation",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    ingest = sub.add_parser("ingest", help="Ingest documents from a JSONL file")
    ingest.add_argument("path", type=Path, help="JSONL file of documents")

    query = sub.add_parser("query", help="Retrieve, rank and (optionally) answer")
    query.add_argument("text", help="Query text")
    query.add_argument("--k", type=int, default=None, help="Number of matches")
    query.add_argument(
        "--min-score", type=float, default=None, help="Inclusive score threshold"
    )
    query.add_argument(
        "--filters", type=str, default=None, help="Metadata filter as a JSON object"
    )
    query.add_argument(
        "--no-generate",
        action="store_true",
        help="Return ranked matches without calling the generative model",
    )
    query.add_argument(
        "--corpus", type=Path, default=None, help="JSONL file to ingest first"
    )

    delete = sub.add_parser("delete", help="Delete documents by id")
    delete.add_argument("ids", nargs="+", help="Document ids (numeric ids as ints)")

    sub.add_parser("collections", help="List collections")
    return parser


def _run(container: Container, args: argparse.Namespace) -> int:
    handler = container.handler

    if args.command == "ingest":
        report = handler.handle_ingest(load_documents(args.path))
        print(
            f"ingested: {report['inserted']} inserted, {report['updated']} updated, "
            f"{report['skipped']} skipped, {len(report['errors'])} errors",
            file=sys.stderr,
        )
        _emit(report)
        return 1 if report["errors"] else 0

    if args.command == "query":
        if args.corpus is not None:
            handler.handle_ingest(load_documents(args.corpus))
        payload = {"text": args.text, "generate": not args.no_generate}
        if args.k is not None:
            payload["k"] = args.k
        if args.min_score is not None:
            payload["min_score"] = args.min_score
        if args.filters:
            payload["filters"] = json.loads(args.filters)
        body = handler.handle_query(payload)
        _emit(body)
        return 0 if body["status"] in ("answered", "no_context") else 1

    if args.command == "delete":
        _emit(handler.handle_delete({"ids": [_parse_id(raw) for raw in args.ids]}))
        return 0

    if args.command == "collections":
        _emit(
            {
                "collections": [
                    {
                        "name": info.name,
                        "metric": info.metric.value,
                        "dimension": info.dimension,
                    }
                    for info in container.catalog.list_collections()
                ]
            }
        )
        return 0

    raise ValueError(f"Unknown command: {args.command}")


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    container = Container().startup()
    try:
        return _run(container, args)
    except (RAGError, ValidationError, ValueError, OSError) as exc:
        print(f"ragcore: {exc}", file=sys.stderr)
        return 2
    finally:
        container.shutdown()


if __name__ == "__main__":
    sys.exit(main())
