"""auditprep CLI — fetch verified contracts and triage them for manual audit.

Usage:
    auditprep fetch <chain> <address>     Resolve proxies, fetch, triage and save sources
    auditprep proxy <chain> <address>     Only resolve the implementation behind a proxy
    auditprep strip <file>                Print a Solidity file without comments
    auditprep chains                      List supported chains
    auditprep config                      Show current configuration

Examples:
    auditprep fetch ethereum 0xF4a21Ac7e51d17A0e1C8B59f7a98bb7A97806f14
    auditprep fetch bsc 0x25aB3Efd52e6470681CE037cD546Dc60726948D3 --format json
    auditprep proxy base 0x1234...abcd
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

from auditprep import __version__
from auditprep.core.addresses import is_address_format
from auditprep.core.chains import CHAINS, get_chain_config, get_supported_chains
from auditprep.core.errors import AuditPrepError, InvalidAddressError, UnsupportedChainError
from auditprep.core.types import FetchResult, ProxyResolution


# ── Coloured output helpers ──────────────────────────────────────────────────

_RESET = "\033[0m"
_BOLD = "\033[1m"
_RED = "\033[91m"
_YELLOW = "\033[93m"
_GREEN = "\033[92m"
_CYAN = "\033[96m"
_DIM = "\033[2m"


def _c(text: str, code: str) -> str:
    return f"{code}{text}{_RESET}"


# ── Banner ───────────────────────────────────────────────────────────────────

BANNER = f"""
{_BOLD}{_CYAN}auditprep{_RESET} {_DIM}— proxy resolution & audit triage for verified contracts, v{__version__}{_RESET}
"""


# ── CLI argument parser ─────────────────────────────────────────────────────


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="auditprep",
        description="auditprep — prepare on-chain contract sources for manual audit",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="store_true", help="Print version and exit")
    parser.add_argument("--no-banner", action="store_true", help="Suppress the startup banner")
    parser.add_argument("--quiet", "-q", action="store_true", help="Minimal output")
    parser.add_argument("--log-level", default=None, help="Override AUDITPREP_LOG_LEVEL")

    sub = parser.add_subparsers(dest="command")

    # ── fetch ────────────────────────────────────────────────────────────────
    fetch_p = sub.add_parser("fetch", help="Fetch, triage and save a contract's sources")
    fetch_p.add_argument("chain", help=f"Chain name ({', '.join(CHAINS)})")
    fetch_p.add_argument("address", help="Contract address (0x...)")
    fetch_p.add_argument("--output-dir", "-o", help="Override AUDITPREP_OUTPUT_DIR")
    fetch_p.add_argument(
        "--format",
        "-f",
        default="table",
        choices=["table", "json"],
        help="Summary format (default: table)",
    )

    # ── proxy ────────────────────────────────────────────────────────────────
    proxy_p = sub.add_parser("proxy", help="Resolve the implementation behind a proxy")
    proxy_p.add_argument("chain", help="Chain name")
    proxy_p.add_argument("address", help="Contract address (0x...)")

    # ── strip ────────────────────────────────────────────────────────────────
    strip_p = sub.add_parser("strip", help="Print a Solidity file with comments removed")
    strip_p.add_argument("path", help="Path to a .sol file")

    sub.add_parser("chains", help="List supported chains")
    sub.add_parser("config", help="Show current configuration")

    return parser


# ── Output ───────────────────────────────────────────────────────────────────


def _print_proxy(info: ProxyResolution) -> None:
    if info.error:
        print(f"  {_c('✗', _RED)} {info.error}")
    elif info.is_proxy:
        print(f"  {_c('✓', _GREEN)} Contract IS a proxy")
        print(f"    Proxy Address:    {info.proxy_address}")
        print(f"    Implementation:   {_c(str(info.implementation_address), _CYAN)}")
        print(f"    Detection Method: {info.method.value}")
    else:
        print(f"  {_c('✓', _GREEN)} Contract is NOT a proxy")


def _print_summary(result: FetchResult, quiet: bool = False) -> None:
    if result.proxy_info and not quiet:
        _print_proxy(result.proxy_info)
        print()

    for item in result.source_results:
        label = _c(f"{item.contract_type.value:<14}", _BOLD)
        if not item.success:
            print(f"  {label} {item.address}  {_c(item.error or 'failed', _RED)}")
            continue

        save = item.save
        manifest = save.audit_manifest
        print(f"  {label} {item.address}  {_c(item.contract_name, _CYAN)}")
        print(f"    Main contract: {manifest.main_contract} ({manifest.main_contract_path})")
        if not quiet:
            print(
                f"    {_DIM}kept {len(save.kept_files)} · deleted {len(save.deleted_files)}"
                f" · blacklisted {len(save.blacklisted_files)}{_RESET}"
            )
        for warning in save.warnings:
            if warning.reason == "interface-review":
                continue
            print(f"    {_c('⚠', _YELLOW)} {warning.file}: {warning.warning}")
        if not quiet:
            print(f"    {_DIM}{save.output_dir}{_RESET}")


# ── Commands ─────────────────────────────────────────────────────────────────


async def _run_fetch(args: argparse.Namespace) -> int:
    from auditprep.core.config import TriageConfig, get_settings
    from auditprep.pipeline.orchestrator import FetchOrchestrator

    settings = get_settings()
    if args.output_dir:
        settings = settings.model_copy(update={"output_dir": args.output_dir})

    orchestrator = FetchOrchestrator(settings=settings, triage_config=TriageConfig.from_settings(settings))
    try:
        result = await orchestrator.fetch_contract(args.chain, args.address)
    finally:
        await orchestrator.close()

    if args.format == "json":
        print(result.model_dump_json(indent=2))
    else:
        _print_summary(result, quiet=args.quiet)

    return 0 if result.succeeded else 1


async def _run_proxy(args: argparse.Namespace) -> int:
    import httpx

    from auditprep.analyzer.proxy.resolver import ProxyResolver
    from auditprep.ingestion.chain_provider import ChainProvider
    from auditprep.ingestion.contract_fetcher import ContractFetcher

    chain_config = get_chain_config(args.chain)
    if not chain_config:
        raise UnsupportedChainError(args.chain, get_supported_chains())
    if not is_address_format(args.address):
        raise InvalidAddressError(args.address)

    fetcher = ContractFetcher()
    try:
        record = await fetcher.fetch_contract_source(chain_config.key, args.address)
    except (AuditPrepError, httpx.HTTPError) as exc:
        print(_c(f"  ⚠ Could not fetch source: {exc}", _YELLOW), file=sys.stderr)
        record = None
    finally:
        await fetcher.close()

    provider = ChainProvider(chain_config)
    try:
        info = await ProxyResolver(provider).detect(args.address, record)
    finally:
        await provider.close()
    _print_proxy(info)
    return 1 if info.error else 0


def _run_strip(args: argparse.Namespace) -> int:
    from auditprep.analyzer.triage.comment_stripper import strip_solidity_comments

    path = Path(args.path)
    if not path.is_file():
        print(_c(f"Error: path '{path}' does not exist.", _RED), file=sys.stderr)
        return 1
    sys.stdout.write(strip_solidity_comments(path.read_text(encoding="utf-8")))
    return 0


def _run_chains() -> int:
    print(f"\n{_BOLD}Supported chains{_RESET}\n")
    for key, chain in CHAINS.items():
        print(f"  {key:<10} {_DIM}{chain.chain_id:>6}{_RESET}  {chain.name}")
    print()
    return 0


def _run_config() -> int:
    """Print current settings (redacted)."""
    from auditprep.core.config import get_settings

    s = get_settings()
    print(f"\n{_BOLD}auditprep configuration{_RESET}\n")
    for field_name in sorted(type(s).model_fields.keys()):
        val = getattr(s, field_name, "")
        if any(kw in field_name for kw in ("secret", "key", "token")):
            val = "****" if val else "(not set)"
        print(f"  {_DIM}{field_name}:{_RESET}  {val}")
    print()
    return 0


# ── Entrypoint ───────────────────────────────────────────────────────────────


def main(argv: list[str] | None = None) -> int:
    from auditprep.core.config import get_settings
    from auditprep.core.logging import setup_logging

    parser = build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(f"auditprep {__version__}")
        return 0

    if not args.no_banner and not args.quiet:
        print(BANNER, file=sys.stderr)

    if not args.command:
        parser.print_help()
        return 0

    settings = get_settings()
    setup_logging(settings.app_env, args.log_level or ("WARNING" if args.quiet else settings.log_level))

    try:
        if args.command == "fetch":
            return asyncio.run(_run_fetch(args))
        if args.command == "proxy":
            return asyncio.run(_run_proxy(args))
        if args.command == "strip":
            return _run_strip(args)
        if args.command == "chains":
            return _run_chains()
        if args.command == "config":
            return _run_config()
    except AuditPrepError as exc:
        print(_c(f"Error: {exc.message}", _RED), file=sys.stderr)
        return 1

    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
