"""Command-line interface: ``requirements-search <command> [options]``."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from datetime import datetime
from pathlib import Path

from reqsearch import __version__
from reqsearch.config import settings
from reqsearch.engine import ReadySearchEngine, SearchEngine
from reqsearch.errors import ConfigurationError, ReqSearchError, StoreError
from reqsearch.ingestion.loader import discover_files
from reqsearch.observability import RunContext, configure_logging
from reqsearch.retrieval.models import SearchOptions, SearchResult

logger = logging.getLogger(__name__)

NO_INDEX_MSG = 'No documents in index. Run "requirements-search index" first.'


def make_engine(index_path: str) -> SearchEngine:
    """Build an engine for *index_path* from the process settings."""
    return SearchEngine(settings.model_copy(update={"index_path": index_path}))


def _confirm(question: str, default: bool = False) -> bool:
    suffix = " [Y/n] " if default else " [y/N] "
    try:
        answer = input(question + suffix).strip().lower()
    except EOFError:
        return default
    if not answer:
        return default
    return answer in ("y", "yes")


def _relpath(path: Path) -> str:
    try:
        return os.path.relpath(path)
    except ValueError:
        return str(path)


# ── Presentation ──────────────────────────────────────────────────────


def display_results(query: str, results: list[SearchResult], show_text_matches: bool = False) -> None:
    print(f'\nSearch results for: "{query}"\n')
    if not results:
        print("No results found")
        return

    for i, r in enumerate(results, 1):
        print(f"{i}. {r.file_name} ({r.relevance_percentage}% relevant)")
        if r.sheet:
            print(f"   Sheet: {r.sheet}, Row: {r.row}")
        if show_text_matches:
            if r.has_direct_match:
                print(f"   Text matches: {', '.join(r.text_matches or [])}")
            else:
                print("   No direct text matches found")
        print(f"   {r.preview}")
        print()


async def _print_exact_matches(ready: ReadySearchEngine, text: str, case_sensitive: bool = False) -> None:
    matches = await ready.find_exact_text(text, case_sensitive)
    if not matches:
        print(f'No chunks contain "{text}"')
        return
    print(f'Found "{text}" in {len(matches)} chunk(s):\n')
    for m in matches:
        where = f" [{m.sheet} row {m.row}]" if m.sheet else ""
        print(f"- {m.file_name}{where} chunk {m.chunk_index} ({m.occurrences}x)")
        print(f"   {m.context}")


async def _print_analysis(ready: ReadySearchEngine, query: str) -> None:
    analysis = await ready.analyze(query)
    print(f"Query tokens: {analysis.tokens}")
    print(f"Significant tokens (>2 chars): {analysis.significant_tokens}")
    print(f"Indexed chunks: {analysis.total_chunks}\n")
    print("Token coverage:")
    for token, count in analysis.token_document_counts.items():
        print(f"   {token}: {count} chunk(s)")
    if analysis.missing_tokens:
        print(f"Not found anywhere: {', '.join(analysis.missing_tokens)}")

    print("\nTop results:")
    for i, r in enumerate(analysis.results, 1):
        matches = ", ".join(r.text_matches or []) or "-"
        print(
            f"{i}. {r.file_name} chunk {r.chunk_index} score={r.score:.4f} "
            f"text_score={r.text_match_score or 0:.2f} matches={matches}"
        )


# ── Commands ──────────────────────────────────────────────────────────


async def cmd_index(args: argparse.Namespace) -> int:
    print("Requirements Document Indexer\n")
    directory = Path(args.directory)
    if not directory.is_dir():
        print(f"Directory {directory} does not exist or is not a directory")
        return 1

    files = discover_files(directory, args.recursive, args.file_types)
    if not files:
        print(f"No documents found in {directory}")
        print(f"   Supported types: {args.file_types}")
        print(f"   Recursive: {'Yes' if args.recursive else 'No'}")
        return 0

    print(f"Found {len(files)} documents:")
    for f in files:
        print(f"   {_relpath(f)}")

    if args.dry_run:
        print("\nDry run complete - no files were indexed")
        return 0

    if not args.yes and not _confirm(f"Proceed with indexing {len(files)} documents?", default=True):
        print("Indexing cancelled")
        return 0

    ready = await make_engine(args.index_path).initialize()
    ctx = RunContext(debug=args.debug)

    if args.clear:
        try:
            await ready.clear()
            print("Index cleared")
        except StoreError as exc:
            print(f"Failed to clear index: {exc}")

    print("\nStarting indexing process...\n")
    success = errors = total_chunks = 0
    for i, path in enumerate(files, 1):
        progress = f"[{i}/{len(files)}]"
        try:
            result = await ready.index_file(path, ctx)
        except ReqSearchError as exc:
            print(f"{progress} FAILED {_relpath(path)}")
            print(f"   Error: {exc}")
            errors += 1
            continue
        print(f"{progress} OK {_relpath(path)} ({result.chunks_created} chunks)")
        success += 1
        total_chunks += result.chunks_created

    print("\nIndexing summary:")
    print(f"   Successfully indexed: {success} files")
    print(f"   Total chunks created: {total_chunks}")
    if errors:
        print(f"   Failed to index: {errors} files")
    print(f"   Index location: {args.index_path}")
    return 0


async def cmd_search(args: argparse.Namespace) -> int:
    ready = await make_engine(args.index_path).initialize()
    stats = await ready.stats()
    if stats.total_chunks == 0:
        print(NO_INDEX_MSG)
        return 1

    options = SearchOptions(include_text_matches=args.text_matches, min_score=args.min_score)
    results = await ready.search(args.query, args.num_results, options, RunContext(debug=args.debug))

    if args.json:
        print(json.dumps([r.model_dump(mode="json") for r in results], indent=2))
        return 0
    display_results(args.query, results, args.text_matches)
    return 0


async def cmd_analyze(args: argparse.Namespace) -> int:
    print(f'Analyzing search for: "{args.query}"\n')
    ready = await make_engine(args.index_path).initialize()
    await _print_analysis(ready, args.query)
    return 0


async def cmd_find_text(args: argparse.Namespace) -> int:
    print(f'Finding exact text: "{args.text}"\n')
    ready = await make_engine(args.index_path).initialize()
    await _print_exact_matches(ready, args.text, args.case_sensitive)
    return 0


async def cmd_debug(args: argparse.Namespace) -> int:
    print(f'Debug mode: analyzing "{args.query}"\n')
    ready = await make_engine(args.index_path).initialize()

    print("=== SEARCH ANALYSIS ===")
    await _print_analysis(ready, args.query)

    if args.find_text:
        print("\n=== EXACT TEXT SEARCH ===")
        await _print_exact_matches(ready, args.find_text)

    print("\n=== RECOMMENDATIONS ===")
    print("- Try using more specific terms from your documents")
    print('- Use the "find-text" command to verify text is indexed correctly')
    print("- Check if documents were processed correctly during indexing")
    print("- Consider re-indexing with --debug to see processing details")
    return 0


async def cmd_interactive(args: argparse.Namespace) -> int:
    ready = await make_engine(args.index_path).initialize()
    stats = await ready.stats()
    if stats.total_chunks == 0:
        print(NO_INDEX_MSG)
        return 1

    print("Interactive Requirements Search")
    print(f"Index contains {stats.total_chunks} chunks from {stats.total_documents} documents\n")
    ctx = RunContext(debug=args.debug)
    actions = {
        "1": "Normal search",
        "2": "Search with text matching analysis",
        "3": "Find exact text matches",
        "4": "Full debug analysis",
    }

    while True:
        try:
            query = input('Enter search query (or "exit" to quit): ').strip()
        except EOFError:
            query = "exit"
        if not query:
            continue
        if query.lower() == "exit":
            print("Goodbye!")
            return 0

        for key, label in actions.items():
            print(f"  {key}) {label}")
        try:
            action = input("What would you like to do? [1] ").strip() or "1"
        except EOFError:
            action = "1"

        try:
            if action == "2":
                results = await ready.search(query, 10, SearchOptions(include_text_matches=True), ctx)
                display_results(query, results, show_text_matches=True)
            elif action == "3":
                await _print_exact_matches(ready, query)
            elif action == "4":
                await _print_analysis(ready, query)
            else:
                results = await ready.search(query, 5, None, ctx)
                display_results(query, results)
        except ReqSearchError as exc:
            print(f"Operation failed: {exc}")
        print()


async def cmd_status(args: argparse.Namespace) -> int:
    ready = await make_engine(args.index_path).initialize()
    stats = await ready.stats()

    print("Index status\n")
    print(f"Index location: {stats.index_path}")
    print(f"Total documents: {stats.total_documents}")
    print(f"Total chunks: {stats.total_chunks}")
    if stats.documents:
        print("\nIndexed documents:")
        for i, doc in enumerate(stats.documents, 1):
            print(f"   {i}. {doc}")
    else:
        print("\nNo documents indexed yet")
    return 0


async def cmd_clear(args: argparse.Namespace) -> int:
    if not args.yes and not _confirm("Are you sure you want to clear the index? This cannot be undone."):
        print("Clear operation cancelled")
        return 0

    ready = await make_engine(args.index_path).initialize()
    try:
        await ready.clear()
    except StoreError as exc:
        print(f"Failed to clear index: {exc}")
        return 1
    print("Index cleared successfully")
    return 0


async def cmd_backup(args: argparse.Namespace) -> int:
    engine = make_engine(args.index_path)
    try:
        info = await engine.backup(args.output)
    except StoreError as exc:
        print(str(exc))
        return 1

    print("Backup created successfully\n")
    print(f"Original: {info.original_path}")
    print(f"Backup: {info.backup_path}")
    print(f"Created: {datetime.fromtimestamp(info.timestamp / 1000):%Y-%m-%d %H:%M:%S}")
    return 0


async def cmd_restore(args: argparse.Namespace) -> int:
    if not args.yes and not _confirm(
        f"Restore index from {args.backup_path}? This will replace the current index."
    ):
        print("Restore operation cancelled")
        return 0

    engine = make_engine(args.index_path)
    try:
        _, stats = await engine.restore(args.backup_path)
    except StoreError as exc:
        print(str(exc))
        return 1

    print("Index restored successfully\n")
    print(f"Documents: {stats.total_documents}")
    print(f"Chunks: {stats.total_chunks}")
    return 0


# ── Parser ────────────────────────────────────────────────────────────


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="requirements-search",
        description="Natural language search tool for business requirements documents",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = parser.add_subparsers(dest="command", required=True)

    def add_index_path(p: argparse.ArgumentParser) -> None:
        p.add_argument("-i", "--index-path", default=settings.index_path, help="Path to vector index")

    p = sub.add_parser("index", help="Index documents from a directory")
    p.add_argument("-d", "--directory", default="./docs", help="Directory to scan for documents")
    p.add_argument("-r", "--recursive", action="store_true", help="Scan subdirectories recursively")
    add_index_path(p)
    p.add_argument("-f", "--file-types", default=settings.file_types, help="Comma-separated file extensions")
    p.add_argument("--clear", action="store_true", help="Clear existing index before indexing")
    p.add_argument("--dry-run", action="store_true", help="Show files that would be indexed without processing")
    p.add_argument("-y", "--yes", action="store_true", help="Skip confirmation prompts")
    p.add_argument("--debug", action="store_true", help="Enable debug output during indexing")
    p.set_defaults(func=cmd_index)

    p = sub.add_parser("search", help="Search indexed documents")
    p.add_argument("query", help="Search query")
    add_index_path(p)
    p.add_argument("-n", "--num-results", type=int, default=settings.default_top_k, help="Number of results")
    p.add_argument("-j", "--json", action="store_true", help="Output results in JSON format")
    p.add_argument("--debug", action="store_true", help="Enable debug output for search")
    p.add_argument("--text-matches", action="store_true", help="Include direct text matching analysis")
    p.add_argument("--min-score", type=float, default=0.0, help="Minimum relevance score (0-1)")
    p.set_defaults(func=cmd_search)

    p = sub.add_parser("analyze", help="Perform detailed search analysis")
    p.add_argument("query", help="Search query to analyze")
    add_index_path(p)
    p.set_defaults(func=cmd_analyze)

    p = sub.add_parser("find-text", help="Find all chunks containing exact text")
    p.add_argument("text", help="Text to search for exactly")
    add_index_path(p)
    p.add_argument("--case-sensitive", action="store_true", help="Case sensitive search")
    p.set_defaults(func=cmd_find_text)

    p = sub.add_parser("interactive", help="Start interactive search session")
    add_index_path(p)
    p.add_argument("--debug", action="store_true", help="Enable debug output in the session")
    p.set_defaults(func=cmd_interactive)

    p = sub.add_parser("status", help="Show index statistics")
    add_index_path(p)
    p.set_defaults(func=cmd_status)

    p = sub.add_parser("clear", help="Clear the vector index")
    add_index_path(p)
    p.add_argument("-y", "--yes", action="store_true", help="Skip confirmation prompt")
    p.set_defaults(func=cmd_clear)

    p = sub.add_parser("backup", help="Create a backup of the current index")
    add_index_path(p)
    p.add_argument("-o", "--output", default=None, help="Backup output path")
    p.set_defaults(func=cmd_backup)

    p = sub.add_parser("restore", help="Restore index from backup")
    p.add_argument("backup_path", help="Path to backup directory")
    add_index_path(p)
    p.add_argument("-y", "--yes", action="store_true", help="Skip confirmation prompt")
    p.set_defaults(func=cmd_restore)

    p = sub.add_parser("debug", help="Debug search issues and analyze index")
    p.add_argument("query", help="Query to debug")
    add_index_path(p)
    p.add_argument("--find-text", default=None, help="Also search for exact text matches")
    p.set_defaults(func=cmd_debug)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging("INFO" if getattr(args, "debug", False) else settings.log_level)
    try:
        return asyncio.run(args.func(args))
    except ConfigurationError as exc:
        print(str(exc))
        return 1
    except ReqSearchError as exc:
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(f"{args.command} failed: {exc}")
        return 1
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
