#!/usr/bin/env python3
"""Price Node.

Collects spot rates from several sources, reconciles them into one consensus
rate per pair, re-expresses every rate against the pivot currency and
publishes the snapshot with per-source freshness metadata.

Configure via CLI flags or environment variables. See --help.
"""

import argparse
import asyncio
import logging
import os
import sys

from .src import __version__
from .src.currency_registry import (
    DEFAULT_CRYPTO_CURRENCIES,
    DEFAULT_FIAT_CURRENCIES,
    StaticCurrencyRegistry,
)
from .src.PriceNode import PriceNode
from .src.sources import BaseSource, get_available_sources, get_source

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)

DEFAULT_SOURCE_KIND = "jsonfeed"


def parse_source_specs(spec_str: str | None) -> list[tuple[str, str, str]]:
    """Parse comma-separated source specs.

    Format: [kind:]NAME=URL,[kind:]NAME=URL
    Example: KRAKEN=https://a.example/rates.json,jsonfeed:BLUE=https://b.example/ars.json

    :param spec_str: Comma-separated source specs.
    :returns: List of (kind, name, url) tuples.
    :raises ValueError: If an entry has no NAME=URL part.
    """
    if not spec_str:
        return []

    specs = []
    for item in spec_str.split(","):
        item = item.strip()
        if not item:
            continue
        if "=" not in item:
            raise ValueError(f"Invalid source '{item}'. Expected '[kind:]NAME=URL'")
        head, url = item.split("=", 1)
        kind, _, name = head.rpartition(":")
        name = name.strip()
        if not name or not url.strip():
            raise ValueError(f"Invalid source '{item}'. Expected '[kind:]NAME=URL'")
        specs.append(((kind.strip() or DEFAULT_SOURCE_KIND).lower(), name, url.strip()))
    return specs


def parse_currency_list(codes: str | None, default: tuple[str, ...]) -> list[str]:
    """Parse a comma-separated list of currency codes.

    :param codes: Comma-separated codes, or None/empty for the default.
    :param default: Codes used when none are given.
    :returns: Upper-cased codes.
    """
    if not codes:
        return list(default)
    return [c.strip().upper() for c in codes.split(",") if c.strip()]


def get_version() -> str:
    """Build version reported by --version."""
    return os.environ.get("PRICENODE_VERSION") or __version__


def main() -> None:
    """Main entry point for the Price Node CLI."""
    available_kinds = get_available_sources()

    parser = argparse.ArgumentParser(
        description="Price Node: pivot-currency rate aggregation",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Available source kinds:
  {', '.join(available_kinds)}

Examples:
  # One snapshot from two feeds, printed to stdout
  python -m pricenode.main --once \\
      --sources KRAKEN=https://a.example/rates.json,POLO=https://b.example/rates.json

  # Serve a snapshot file refreshed every 60s, with the ARS blue-market premium
  python -m pricenode.main --output /var/lib/pricenode/snapshot.json \\
      --sources KRAKEN=https://a.example/rates.json,BLUE=https://c.example/ars.json \\
      --ars-blue-source BLUE

Environment variables (CLI args take precedence):
  SOURCES, PIVOT_CURRENCY, BRIDGE_CRYPTO, BRIDGE_FIAT, OUTLIER_STD_DEVIATION,
  CRYPTO_CURRENCIES, FIAT_CURRENCIES, REFRESH_PERIOD, CACHE_TTL, FETCH_TIMEOUT,
  OUTPUT_PATH, ARS_BLUE_SOURCE, PRICENODE_VERSION
""",
    )

    parser.add_argument(
        "--sources",
        type=str,
        help="Comma-separated sources as [kind:]NAME=URL",
        default=os.environ.get("SOURCES"),
    )

    parser.add_argument(
        "--pivot",
        type=str,
        help="Currency every rate is expressed against (default: XMR)",
        default=os.environ.get("PIVOT_CURRENCY") or "XMR",
    )

    parser.add_argument(
        "--bridge-crypto",
        dest="bridge_crypto",
        type=str,
        help="Crypto bridge currency (default: BTC)",
        default=os.environ.get("BRIDGE_CRYPTO") or "BTC",
    )

    parser.add_argument(
        "--bridge-fiat",
        dest="bridge_fiat",
        type=str,
        help="Fiat bridge currency (default: USD)",
        default=os.environ.get("BRIDGE_FIAT") or "USD",
    )

    parser.add_argument(
        "--outlier-std-deviation",
        dest="outlier_std_deviation",
        type=float,
        help="Outlier range half-width in standard deviations (default: 1.1)",
        default=float(os.environ.get("OUTLIER_STD_DEVIATION") or "1.1"),
    )

    parser.add_argument(
        "--crypto-currencies",
        dest="crypto_currencies",
        type=str,
        help="Comma-separated crypto currency codes",
        default=os.environ.get("CRYPTO_CURRENCIES"),
    )

    parser.add_argument(
        "--fiat-currencies",
        dest="fiat_currencies",
        type=str,
        help="Comma-separated fiat currency codes",
        default=os.environ.get("FIAT_CURRENCIES"),
    )

    parser.add_argument(
        "--refresh-period",
        dest="refresh_period",
        type=int,
        help="Seconds between refresh passes (minimum: 1, default: 60)",
        default=int(os.environ.get("REFRESH_PERIOD") or "60"),
    )

    parser.add_argument(
        "--cache-ttl",
        dest="cache_ttl",
        type=float,
        help="Seconds before a source's cached rates are dropped (default: 300)",
        default=float(os.environ.get("CACHE_TTL") or "300"),
    )

    parser.add_argument(
        "--fetch-timeout",
        dest="fetch_timeout",
        type=float,
        help="Timeout for one source refresh in seconds (default: 10.0)",
        default=float(os.environ.get("FETCH_TIMEOUT") or "10.0"),
    )

    parser.add_argument(
        "--output",
        type=str,
        help="Snapshot JSON file (default: stdout)",
        default=os.environ.get("OUTPUT_PATH"),
    )

    parser.add_argument(
        "--ars-blue-source",
        dest="ars_blue_source",
        type=str,
        help="Source name of the ARS blue-market feed (enables the ARS transformer)",
        default=os.environ.get("ARS_BLUE_SOURCE"),
    )

    parser.add_argument(
        "--once",
        action="store_true",
        help="Build and publish a single snapshot, then exit",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {get_version()}",
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )

    args = parser.parse_args()

    # Configure logging level
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    # Validate arguments
    if args.refresh_period < 1:
        parser.error("--refresh-period must be at least 1 second")

    if args.outlier_std_deviation <= 0:
        parser.error("--outlier-std-deviation must be positive")

    if args.cache_ttl <= 0:
        parser.error("--cache-ttl must be positive")

    try:
        source_specs = parse_source_specs(args.sources)
    except ValueError as e:
        parser.error(str(e))

    if not source_specs:
        parser.error("At least one source must be specified")

    invalid_kinds = sorted({kind for kind, _, _ in source_specs if kind not in available_kinds})
    if invalid_kinds:
        parser.error(
            f"Unknown source kinds: {invalid_kinds}. "
            f"Available: {', '.join(available_kinds)}"
        )

    crypto = parse_currency_list(args.crypto_currencies, DEFAULT_CRYPTO_CURRENCIES)
    fiat = parse_currency_list(args.fiat_currencies, DEFAULT_FIAT_CURRENCIES)

    # Log configuration
    logger.info("=" * 60)
    logger.info(f"Price Node {get_version()}")
    logger.info("=" * 60)
    logger.info(f"Sources:           {', '.join(name for _, name, _ in source_specs)}")
    logger.info(f"Pivot:             {args.pivot.upper()}")
    logger.info(f"Bridges:           {args.bridge_crypto.upper()} / {args.bridge_fiat.upper()}")
    logger.info(f"Outlier StdDev:    {args.outlier_std_deviation}")
    logger.info(f"Refresh Period:    {args.refresh_period}s")
    logger.info(f"Cache TTL:         {args.cache_ttl}s")
    logger.info(f"Fetch Timeout:     {args.fetch_timeout}s")
    logger.info(f"Output:            {args.output or 'stdout'}")
    if args.ars_blue_source:
        logger.info(f"ARS Blue Source:   {args.ars_blue_source}")
    logger.info("=" * 60)

    try:
        sources: list[BaseSource] = [
            get_source(kind, name, url=url, cache_ttl=args.cache_ttl, timeout=args.fetch_timeout)
            for kind, name, url in source_specs
        ]
        price_node = PriceNode(
            sources=sources,
            currency_registry=StaticCurrencyRegistry(crypto, fiat),
            pivot=args.pivot,
            bridge_crypto=args.bridge_crypto,
            bridge_fiat=args.bridge_fiat,
            outlier_std_deviation=args.outlier_std_deviation,
            blue_source_name=args.ars_blue_source,
            refresh_period=args.refresh_period,
            fetch_timeout=args.fetch_timeout,
            output_path=args.output,
        )
        if args.once:
            asyncio.run(_run_once(price_node))
        else:
            asyncio.run(price_node.run())
    except KeyboardInterrupt:
        logger.info("Shutting down...")
    except Exception as e:
        logger.error(f"Fatal error: {e}")
        sys.exit(1)


async def _run_once(price_node: PriceNode) -> None:
    try:
        price_node.publish(await price_node.run_once())
    finally:
        await BaseSource.close_shared_client()


if __name__ == "__main__":
    main()
