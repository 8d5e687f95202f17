"""CLI for inspecting and discovering a holder's documents."""

import argparse
import asyncio
import sys
from collections.abc import Sequence
from pathlib import Path

from chaindocs_core.cache.factory import create_document_cache
from chaindocs_core.discovery.orchestrator import DocumentDiscovery, ScanState
from chaindocs_core.documents.document import LedgerDocument
from chaindocs_core.issuance import import_shareable_document, verify_document
from chaindocs_core.ledger.rpc import SolanaRpcClient
from chaindocs_core.logging import setup_logging
from chaindocs_core.settings import Settings, settings

EXIT_DEGRADED = 2


def _settings_from_args(args: argparse.Namespace) -> Settings:
    overrides = {}
    if args.rpc_url:
        overrides["rpc_url"] = args.rpc_url
    if args.cache_dir:
        overrides["cache_dir"] = str(args.cache_dir)
    return settings.model_copy(update=overrides) if overrides else settings


def _print_table(headers: list[str], rows: list[list[str]]) -> None:
    """Print an aligned text table."""
    if not rows:
        return
    widths = [max(len(h), *(len(row[i]) for row in rows)) for i, h in enumerate(headers)]
    header_line = "  ".join(h.ljust(w) for h, w in zip(headers, widths, strict=True))
    separator = "  ".join("-" * w for w in widths)
    print(header_line)
    print(separator)
    for row in rows:
        print("  ".join(val.ljust(w) for val, w in zip(row, widths, strict=True)))


def _print_documents(documents: Sequence[LedgerDocument]) -> None:
    if not documents:
        print("No documents found.")
        return
    headers = ["DOCUMENT", "TYPE", "TITLE", "ISSUED", "ISSUER", "CLAIMED"]
    rows = [
        [doc.document_id, doc.document_type, doc.title, doc.issue_date, doc.issuer, "yes" if doc.claimed else "no"]
        for doc in documents
    ]
    _print_table(headers, rows)


# ---------------------------------------------------------------------------
# Subcommands
# ---------------------------------------------------------------------------


def _cmd_cached(args: argparse.Namespace) -> int:
    """Show the holder's cached documents without touching the ledger."""
    cache = create_document_cache(_settings_from_args(args))
    _print_documents(cache.cached_for_holder(args.holder))
    return 0


async def _discover(args: argparse.Namespace) -> int:
    config = _settings_from_args(args)
    async with SolanaRpcClient(config.rpc_url, timeout=config.rpc_timeout) as ledger:
        discovery = DocumentDiscovery(ledger, create_document_cache(config), settings=config)
        result = await discovery.discover(args.holder)

    _print_documents(result.documents)
    print(f"\nStatus: {result.status}")
    for strategy in result.strategies:
        flags = [name for name, on in (("throttled", strategy.throttled), ("failed", strategy.failed)) if on]
        print(f"  {strategy.strategy}: {len(strategy.documents)} candidate(s) {' '.join(flags)}".rstrip())
    return EXIT_DEGRADED if result.status == ScanState.DEGRADED else 0


def _cmd_discover(args: argparse.Namespace) -> int:
    """Scan the ledger for the holder's documents."""
    return asyncio.run(_discover(args))


async def _poll(args: argparse.Namespace) -> int:
    config = _settings_from_args(args)

    def report(documents: list[LedgerDocument]) -> None:
        print(f"{len(documents)} new document(s):")
        _print_documents(documents)

    async with SolanaRpcClient(config.rpc_url, timeout=config.rpc_timeout) as ledger:
        discovery = DocumentDiscovery(ledger, create_document_cache(config), settings=config)
        discovery.get_cached(args.holder)
        await discovery.poll_forever(args.holder, report, interval=args.interval, max_polls=args.count)
    return 0


def _cmd_poll(args: argparse.Namespace) -> int:
    """Poll the ledger and print documents as they appear."""
    try:
        return asyncio.run(_poll(args))
    except KeyboardInterrupt:
        return 0


def _cmd_verify(args: argparse.Namespace) -> int:
    """Check a credential token against a cached document."""
    cache = create_document_cache(_settings_from_args(args))
    result = verify_document(cache, args.credential_hash, args.document_id)
    if not result.valid or result.document is None:
        print(f"Invalid: {result.error}", file=sys.stderr)
        return 1
    doc = result.document
    print(f"Valid: {doc.title} ({doc.document_type}) issued by {doc.issuer} to {doc.holder} on {doc.issue_date}")
    return 0


def _cmd_import(args: argparse.Namespace) -> int:
    """Import a shareable document code into the cache."""
    cache = create_document_cache(_settings_from_args(args))
    result = import_shareable_document(cache, args.code)
    if not result.success or result.document is None:
        print(f"Import failed: {result.error}", file=sys.stderr)
        return 1
    print(f"Imported {result.document.document_id} for {result.document.holder}")
    return 0


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> int:
    """CLI entry point for document discovery operations."""
    parser = argparse.ArgumentParser(prog="chaindocs", description="Ledger document discovery CLI")
    parser.add_argument("--rpc-url", help="Ledger JSON-RPC endpoint (default: CHAINDOCS_RPC_URL)")
    parser.add_argument("--cache-dir", type=Path, help="Local cache directory (default: CHAINDOCS_CACHE_DIR)")
    parser.add_argument("--log-level", help="Log level for chaindocs loggers")
    subparsers = parser.add_subparsers(dest="command")

    # cached
    cached_parser = subparsers.add_parser("cached", help="Show cached documents of a holder")
    cached_parser.add_argument("holder", help="Holder address")

    # discover
    discover_parser = subparsers.add_parser("discover", help="Scan the ledger for a holder's documents")
    discover_parser.add_argument("holder", help="Holder address")

    # poll
    poll_parser = subparsers.add_parser("poll", help="Poll the ledger for new documents")
    poll_parser.add_argument("holder", help="Holder address")
    poll_parser.add_argument("--interval", type=float, default=None, help="Seconds between polls")
    poll_parser.add_argument("--count", type=int, default=None, help="Stop after this many polls")

    # verify
    verify_parser = subparsers.add_parser("verify", help="Verify a document's credential token")
    verify_parser.add_argument("document_id", help="Document id")
    verify_parser.add_argument("credential_hash", help="Credential token presented by the holder")

    # import
    import_parser = subparsers.add_parser("import", help="Import a shareable document code")
    import_parser.add_argument("code", help="Base64 shareable code or JSON record")

    args = parser.parse_args(argv)

    handlers = {
        "cached": _cmd_cached,
        "discover": _cmd_discover,
        "poll": _cmd_poll,
        "verify": _cmd_verify,
        "import": _cmd_import,
    }
    handler = handlers.get(args.command)
    if handler is None:
        parser.print_help()
        return 1

    setup_logging(level=args.log_level.upper() if args.log_level else None)
    return handler(args)


__all__ = ["main"]
