# src/main.py - v1
"""CLI entry point: serve, lookup, probe and invalidate commands.

Usage:
    cepgateway serve [--host HOST] [--port PORT]
    cepgateway lookup <cep>
    cepgateway probe
    cepgateway invalidate <cep>
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import TYPE_CHECKING

from cepgateway.version import __version__

if TYPE_CHECKING:
    from cepgateway.config.settings import Settings

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    from cepgateway.config.settings import load_settings
    from cepgateway.logging.logger import setup_logging

    settings = load_settings()
    setup_logging(
        level="DEBUG" if args.verbose else settings.log_level,
        log_format=settings.log_format,
    )

    try:
        return args.func(args, settings)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="cepgateway",
        description=f"cepgateway v{__version__}: CEP lookup with provider fallback",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- serve ---
    p_serve = subparsers.add_parser("serve", help="Run the HTTP API")
    p_serve.add_argument("--host", default=None, help="Bind address (default: HOST)")
    p_serve.add_argument("--port", type=int, default=None, help="Port (default: PORT)")
    p_serve.set_defaults(func=_cmd_serve)

    # --- lookup ---
    p_lookup = subparsers.add_parser("lookup", help="Resolve one CEP and print JSON")
    p_lookup.add_argument("cep", help="CEP, with or without hyphen")
    p_lookup.set_defaults(func=_cmd_lookup)

    # --- probe ---
    p_probe = subparsers.add_parser("probe", help="Check provider availability")
    p_probe.set_defaults(func=_cmd_probe)

    # --- invalidate ---
    p_invalidate = subparsers.add_parser(
        "invalidate", help="Drop a CEP from the configured cache",
    )
    p_invalidate.add_argument("cep", help="CEP, with or without hyphen")
    p_invalidate.set_defaults(func=_cmd_invalidate)

    return parser


def _cmd_serve(args: argparse.Namespace, settings: Settings) -> int:
    import uvicorn

    from cepgateway.api.app import create_app

    uvicorn.run(
        create_app(settings),
        host=args.host or settings.host,
        port=args.port or settings.port,
        log_config=None,
    )
    return 0


def _cmd_lookup(args: argparse.Namespace, settings: Settings) -> int:
    return asyncio.run(_lookup(args.cep, settings))


async def _lookup(raw: str, settings: Settings) -> int:
    from cepgateway.cep.orchestrator import build_service
    from cepgateway.cep.validation import normalize_cep
    from cepgateway.core.errors import CepLookupError

    try:
        cep = normalize_cep(raw)
    except CepLookupError as e:
        _print_failure(e)
        return 1

    service = build_service(settings)
    try:
        address = await service.find_address(cep)
    except CepLookupError as e:
        _print_failure(e)
        return 1
    finally:
        await service.aclose()

    print(address.model_dump_json(indent=2))
    return 0


def _cmd_probe(args: argparse.Namespace, settings: Settings) -> int:
    return asyncio.run(_probe(settings))


async def _probe(settings: Settings) -> int:
    from cepgateway.cep.orchestrator import build_service

    service = build_service(settings)
    try:
        status = await service.provider_status()
    finally:
        await service.aclose()

    for name, ok in status.items():
        print(f"  {name:12s} {'up' if ok else 'DOWN'}")
    return 0 if any(status.values()) else 1


def _cmd_invalidate(args: argparse.Namespace, settings: Settings) -> int:
    return asyncio.run(_invalidate(args.cep, settings))


async def _invalidate(raw: str, settings: Settings) -> int:
    from cepgateway.cep.orchestrator import build_service
    from cepgateway.cep.validation import normalize_cep
    from cepgateway.core.errors import CepLookupError

    try:
        cep = normalize_cep(raw)
    except CepLookupError as e:
        _print_failure(e)
        return 1

    service = build_service(settings)
    try:
        await service.invalidate(cep)
    finally:
        await service.aclose()
    print(f"Invalidated {cep}")
    return 0


def _print_failure(error: Exception) -> None:
    failure = getattr(error, "failure", None)
    if failure is None:
        print(str(error), file=sys.stderr)
        return
    print(
        json.dumps(
            {"code": failure.code.value, "message": failure.message, "details": failure.details},
            indent=2,
            ensure_ascii=False,
        ),
        file=sys.stderr,
    )


if __name__ == "__main__":
    sys.exit(main())
