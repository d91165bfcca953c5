#!/usr/bin/env python3
import argparse
import json
import logging
import sys

from local_notes_search.app import (
    ensure_indexed,
    find_notes,
    get_note_details,
    index_notes,
    index_stats,
    list_note_titles,
    purge_index,
    search_notes,
)
from local_notes_search.config import AppConfig, RetrievalConfig, load_config
from local_notes_search.errors import NotesSearchError
from local_notes_search.index.dense import SentenceTransformerEmbedder
from local_notes_search.index.store import NotesIndex
from local_notes_search.ingest.extract import HeuristicTextRecovery
from local_notes_search.ingest.notes_db import NotesDB
from local_notes_search.logging_utils import setup_logging

logger = logging.getLogger(__name__)


def positive_int(value: str) -> int:
    try:
        n = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"{value!r} is not an integer") from None
    if n <= 0:
        raise argparse.ArgumentTypeError(f"must be a positive integer, got {n}")
    return n


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="local-notes-search",
        description="Semantic + full-text search over your local notes.",
    )
    parser.add_argument("--config", type=str, default="config.yaml")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable DEBUG logs (to stderr).")
    parser.add_argument("--quiet", "-q", action="store_true", help="Reduce logs to WARN and above.")
    parser.add_argument("--log-json", action="store_true", help="Emit logs as JSON lines (stderr).")

    sub = parser.add_subparsers(dest="cmd", required=True)
    sub.add_parser("list", help="List the titles of all notes")

    p_get = sub.add_parser("get", help="Show a note's full content and dates")
    p_get.add_argument("title", type=str)

    sub.add_parser("index", help="(Re)build the search index from all notes")

    p_s = sub.add_parser("search", help="Search notes by meaning and by words")
    p_s.add_argument("query", type=str)
    p_s.add_argument("--limit", type=positive_int, default=None, help="Max results (default from config)")
    p_s.add_argument(
        "--no-auto-index",
        action="store_true",
        help="Fail instead of indexing when no index exists yet",
    )

    p_f = sub.add_parser("find", help="Find notes whose title or snippet contains TEXT (no index needed)")
    p_f.add_argument("text", type=str)
    p_f.add_argument("--limit", type=positive_int, default=50)

    sub.add_parser("stats", help="Show index statistics")
    sub.add_parser("purge", help="Delete the index; it is rebuilt on next search")
    return parser


def open_notes_db(cfg: AppConfig) -> NotesDB:
    return NotesDB(cfg.notes.db_path or None, recovery=HeuristicTextRecovery.from_config(cfg.extraction))


def open_index(cfg: AppConfig) -> NotesIndex:
    embedder = SentenceTransformerEmbedder(cfg.index.embedding_model, ndims=cfg.index.embedding_dims)
    return NotesIndex(cfg.index.index_dir, embedder)


def run(args: argparse.Namespace, cfg: AppConfig) -> int:
    if args.cmd == "purge":
        if purge_index(open_index(cfg)):
            print("Index purged. It will be rebuilt automatically on next search.")
        else:
            print("No index found to purge.")
        return 0

    with open_notes_db(cfg) as notes_db:
        if args.cmd == "list":
            titles = list_note_titles(notes_db)
            print(f"Found {len(titles)} notes:\n")
            print("\n".join(titles))
        elif args.cmd == "get":
            print(json.dumps(get_note_details(notes_db, args.title), indent=2, ensure_ascii=False))
        elif args.cmd == "index":
            report = index_notes(notes_db, open_index(cfg), cfg)
            print(f"Indexed {report.chunks} chunks from {report.notes} notes in {report.time_ms} ms.")
        elif args.cmd == "search":
            index = open_index(cfg)
            if not args.no_auto_index:
                ensure_indexed(notes_db, index, cfg)
            retrieval = cfg.retrieval
            if args.limit is not None:
                retrieval = RetrievalConfig.model_validate({**retrieval.model_dump(), "limit": args.limit})
            results = search_notes(index, args.query, retrieval)
            print(json.dumps([r.model_dump() for r in results], indent=2, ensure_ascii=False))
        elif args.cmd == "find":
            for item in find_notes(notes_db, args.text, limit=args.limit):
                print(f"{item.modification_date:%Y-%m-%d}  {item.title}")
        elif args.cmd == "stats":
            stats = index_stats(notes_db, open_index(cfg), cfg)
            print("Index Statistics:")
            print(f"- Indexed chunks: {stats.indexed_chunks}")
            print(f"- Total notes: {stats.total_notes}")
            print(f"- Embeddings model: {stats.embedding_model}")
            print(f"- Chunk size: {stats.chunk_size} chars")
            print(f"- Chunk overlap: {stats.chunk_overlap} chars")
    return 0


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.verbose and args.quiet:
        print("Cannot use --verbose and --quiet together.", file=sys.stderr)
        return 2
    if args.verbose:
        setup_logging(level="DEBUG", json_logs=args.log_json)
    elif args.quiet:
        setup_logging(level="WARNING", json_logs=args.log_json)
    else:
        setup_logging(json_logs=args.log_json)

    logger.debug("CLI args parsed: %s", vars(args))

    try:
        cfg = load_config(args.config)
        return run(args, cfg)
    except NotesSearchError as e:
        logger.error("%s: %s", type(e).__name__, e)
        return 2


if __name__ == "__main__":
    sys.exit(main())
