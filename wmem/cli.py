"""``wmem`` command line: inspect and edit the memory store.

Usage examples:
    # Collection size
    wmem stats

    # Hybrid search (JSON output)
    wmem search "coffee preferences" --limit 10

    # Keyword-only search
    wmem search "Postgres" --mode keyword

    # Store a memory by hand
    wmem store "I prefer dark roast" --category preference --importance 0.9

    # Delete by ID
    wmem forget 3f2b8c1e-0d4a-4c6e-9a77-1b2c3d4e5f60
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from wmem.config import load_config, settings
from wmem.errors import MemoryPluginError
from wmem.memory.engine import RECALL_MODES, MemoryEngine
from wmem.memory.models import DEFAULT_IMPORTANCE, MEMORY_CATEGORIES

logger = logging.getLogger(__name__)


async def cmd_stats(engine: MemoryEngine, args: argparse.Namespace) -> None:
    stats = await engine.stats()
    print(f"Collection: {stats.collection}")
    print(f"Weaviate: {stats.url}")
    print(f"Total memories: {stats.count}")


async def cmd_search(engine: MemoryEngine, args: argparse.Namespace) -> None:
    results = await engine.recall(args.query, limit=args.limit, mode=args.mode)
    output = [
        {
            "id": r.entry.id,
            "text": r.entry.text,
            "category": r.entry.category,
            "importance": r.entry.importance,
            "source": r.entry.source,
            "score": r.score,
        }
        for r in results
    ]
    print(json.dumps(output, indent=2))


async def cmd_store(engine: MemoryEngine, args: argparse.Namespace) -> None:
    outcome = await engine.store(
        args.text,
        importance=args.importance,
        category=args.category,
        source="manual",
    )
    if outcome.action == "duplicate":
        existing = outcome.existing.entry
        print(f'Similar memory already exists: {existing.id} "{existing.text}"')
        return
    print(f"Stored: {outcome.entry.id}")


async def cmd_forget(engine: MemoryEngine, args: argparse.Namespace) -> None:
    outcome = await engine.forget(memory_id=args.id)
    print(f"Deleted: {outcome.memory_id}")


COMMANDS = {
    "stats": cmd_stats,
    "search": cmd_search,
    "store": cmd_store,
    "forget": cmd_forget,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="wmem", description="Weaviate memory plugin commands")
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help=f"Plugin config JSON (default: {settings.config_path})",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("stats", help="Show memory statistics")

    search = sub.add_parser("search", help="Search memories")
    search.add_argument("query", help="Search query")
    search.add_argument("--limit", "-n", type=int, default=5, help="Max results (default: 5)")
    search.add_argument("--mode", choices=RECALL_MODES, default="hybrid", help="Search mode")

    store = sub.add_parser("store", help="Manually store a memory")
    store.add_argument("text", help="Text to store")
    store.add_argument("--category", choices=MEMORY_CATEGORIES, default="other")
    store.add_argument("--importance", type=float, default=DEFAULT_IMPORTANCE, help="Importance 0-1")

    forget = sub.add_parser("forget", help="Delete a memory by ID")
    forget.add_argument("id", help="Memory UUID")

    return parser


async def _run(args: argparse.Namespace) -> None:
    engine = MemoryEngine(load_config(args.config))
    try:
        await COMMANDS[args.command](engine, args)
    finally:
        await engine.close()


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
    )

    try:
        asyncio.run(_run(args))
    except (MemoryPluginError, ValueError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
