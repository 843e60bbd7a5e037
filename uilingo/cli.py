"""
Command-line entry point.

Usage:
    # Translate a source dictionary to German (cached afterwards)
    uilingo translate de --source strings/en.yaml

    # Write the result to a file
    uilingo translate fr --source strings/en.yaml --output strings/fr.yaml

    # Inspect / reset the cache
    uilingo status
    uilingo languages
    uilingo clear-cache

    # Run the HTTP control API
    uilingo serve
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

import yaml

from uilingo.config import configure_logging, get_settings
from uilingo.i18n import (
    AllProvidersFailedError,
    InMemoryHost,
    JsonFileCacheStore,
    OutcomeStatus,
    TranslationOrchestrator,
    TranslationSession,
    UnknownLanguageError,
    load_source_dictionary,
)
from uilingo.integrations.sentry import init_sentry


def _build_orchestrator(args: argparse.Namespace, source: dict[str, str] | None = None) -> TranslationOrchestrator:
    settings = get_settings()
    host = InMemoryHost({settings.source_language: source or {}}, source_code=settings.source_language)
    return TranslationOrchestrator.from_settings(
        host,
        settings,
        cache_store=JsonFileCacheStore(args.cache or settings.cache_path),
        toast=lambda message: print(f"  {message}", file=sys.stderr),
    )


def _print_progress(session: TranslationSession) -> None:
    if session.visible:
        print(f"   {session.progress:5.1f}%  {session.label:<50}", end="\r", file=sys.stderr, flush=True)
    else:
        print(" " * 64, end="\r", file=sys.stderr, flush=True)


async def _translate(args: argparse.Namespace) -> int:
    settings = get_settings()
    source_path = args.source or settings.source_path
    if not source_path:
        print("⚠️  No source dictionary: pass --source or set SOURCE_PATH", file=sys.stderr)
        return 2

    source = load_source_dictionary(source_path)
    orchestrator = _build_orchestrator(args, source)
    if not args.quiet:
        orchestrator.add_progress_listener(_print_progress)
        print(f"🌍 Translating {len(source)} strings to {args.code}...", file=sys.stderr)

    try:
        outcome = await orchestrator.translate(args.code)
    except UnknownLanguageError as e:
        print(f"⚠️  {e}", file=sys.stderr)
        return 2
    except AllProvidersFailedError as e:
        print(f"⚠️  Translation failed: {e}", file=sys.stderr)
        return 1
    finally:
        await orchestrator.close()

    if outcome.status == OutcomeStatus.CANCELLED:
        print("Translation cancelled.")
        return 1

    if outcome.status == OutcomeStatus.DELEGATED:
        print(f"{args.code} is built into the host, nothing to translate")
        return 0

    dictionary = outcome.dictionary or {}
    if args.output:
        _write_dictionary(Path(args.output), dictionary)
        print(f"   ✓ Wrote {len(dictionary)} strings to {args.output} (via {outcome.source})")
    else:
        print(yaml.safe_dump(dictionary, allow_unicode=True, sort_keys=False), end="")
    return 0


def _write_dictionary(path: Path, dictionary: dict[str, str]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        if path.suffix.lower() == ".json":
            json.dump(dictionary, f, ensure_ascii=False, indent=2)
        else:
            yaml.safe_dump(dictionary, f, allow_unicode=True, sort_keys=False)


async def _status(args: argparse.Namespace) -> int:
    orchestrator = _build_orchestrator(args)
    status = await orchestrator.status()
    print(f"{status['plugin']} {status['version']}")
    print(f"   Languages: {', '.join(status['langs'])}")
    print(f"   Cached: {', '.join(status['cached']) or '(none)'}")
    return 0


async def _languages(args: argparse.Namespace) -> int:
    orchestrator = _build_orchestrator(args)
    for row in await orchestrator.languages():
        badge = "builtin" if row["builtin"] else ("cached" if row["cached"] else "")
        print(f"  {row['flag']} {row['code']:<4} {row['label']:<14} {badge}")
    return 0


async def _clear_cache(args: argparse.Namespace) -> int:
    orchestrator = _build_orchestrator(args)
    await orchestrator.clear_cache()
    return 0


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "uilingo.api.app:app",
        host=args.host or settings.api_host,
        port=args.port or settings.api_port,
        reload=False,
        log_level=settings.log_level.lower(),
    )
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="uilingo",
        description="On-demand UI-string translation with caching",
    )
    parser.add_argument("--cache", help="Path to the translation cache file")
    parser.add_argument("--log-level", help="Logging level (default: LOG_LEVEL)")
    commands = parser.add_subparsers(dest="command", required=True)

    translate = commands.add_parser("translate", help="Translate the source dictionary")
    translate.add_argument("code", help="Target language code, e.g. de")
    translate.add_argument("--source", "-s", help="YAML or JSON source dictionary")
    translate.add_argument("--output", "-o", help="Write the result here instead of stdout")
    translate.add_argument("--quiet", "-q", action="store_true", help="No progress output")

    commands.add_parser("status", help="Show version, roster and cached languages")
    commands.add_parser("languages", help="List the language roster")
    commands.add_parser("clear-cache", help="Delete every cached translation")

    serve = commands.add_parser("serve", help="Run the HTTP control API")
    serve.add_argument("--host")
    serve.add_argument("--port", type=int)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Run from command line."""
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level or "WARNING")

    if args.command == "serve":
        return _serve(args)

    init_sentry()

    handlers = {
        "translate": _translate,
        "status": _status,
        "languages": _languages,
        "clear-cache": _clear_cache,
    }
    return asyncio.run(handlers[args.command](args))


if __name__ == "__main__":
    sys.exit(main())
