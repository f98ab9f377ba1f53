"""
Orchestrator - CLI.

============================================================
RESPONSIBILITY
============================================================
Command-line interface for the harvest and normalization pipelines.

- Provides argparse-based CLI with one subcommand per pipeline
- Loads configuration from CLI and environment (.env supported)
- Exits non-zero when a run fails, after in-flight work has drained

============================================================
USAGE
============================================================
python -m orchestrator.cli harvest my-collection
python -m orchestrator.cli normalize .metadata/my-collection out --inject-mint-date
python -m orchestrator.cli normalize in out --substitute-media --search-term ape

============================================================
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

from collection_harvest.config import HarvestConfig, RetryConfig
from collection_harvest.exceptions import HarvestError, PartialAssetFailure
from corpus_normalizer.config import MediaSourceConfig, NormalizeOptions, OutputLayout
from .core import run_harvest, run_normalize, setup_logging


logger = logging.getLogger(__name__)


# ============================================================
# CLI ARGUMENT PARSER
# ============================================================

def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="collection-harvest",
        description="Harvest an NFT collection's history and renumber it for re-minting",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  harvest    - Download every asset, its events, owners and image
  normalize  - Renumber a harvested corpus by provenance into 1..N

Examples:
  %(prog)s harvest my-collection --api-key KEY
  %(prog)s normalize .metadata/my-collection out --inject-mint-date --classify-names
  %(prog)s normalize .metadata/my-collection out --substitute-media --search-term ape
        """
    )

    # --------------------------------------------------------
    # Logging Options
    # --------------------------------------------------------
    logging_group = parser.add_argument_group("Logging Options")

    logging_group.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default="INFO",
        help="Logging level (default: INFO)",
    )

    logging_group.add_argument(
        "--log-format",
        type=str,
        choices=["json", "text"],
        default="text",
        help="Logging format (default: text)",
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version="%(prog)s 1.0.0",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # --------------------------------------------------------
    # Harvest
    # --------------------------------------------------------
    harvest = subparsers.add_parser("harvest", help="Harvest a collection")

    harvest.add_argument("collection_slug", help="Marketplace collection slug")

    harvest.add_argument(
        "--api-key",
        type=str,
        help="Marketplace API key (default: $MARKETPLACE_API_KEY)",
    )

    harvest.add_argument(
        "--api-url",
        type=str,
        help="Marketplace API base URL (default: $MARKETPLACE_API_URL)",
    )

    harvest.add_argument(
        "--output-root",
        type=Path,
        metavar="DIR",
        help="Harvest storage root (default: .metadata)",
    )

    harvest.add_argument(
        "--concurrency",
        type=int,
        default=1,
        help="Concurrent asset enrichments (default: 1)",
    )

    harvest.add_argument(
        "--resume",
        action="store_true",
        help="Skip tokens that already have a committed record",
    )

    _add_retry_arguments(harvest)

    # --------------------------------------------------------
    # Normalize
    # --------------------------------------------------------
    normalize = subparsers.add_parser("normalize", help="Renumber a harvested corpus")

    normalize.add_argument("input_dir", type=Path, help="Harvested collection directory")
    normalize.add_argument("output_dir", type=Path, help="Output directory")

    media_group = normalize.add_argument_group("Media Options")

    media_group.add_argument(
        "--substitute-media",
        action="store_true",
        help="Replace images with placeholder GIFs",
    )

    media_group.add_argument(
        "--search-term",
        type=str,
        default="ape",
        help="Placeholder media search term (default: ape)",
    )

    media_group.add_argument(
        "--giphy-api-key",
        type=str,
        help="Placeholder media API key (default: $GIPHY_API_KEY)",
    )

    attribute_group = normalize.add_argument_group("Attribute Options")

    attribute_group.add_argument(
        "--classify-names",
        action="store_true",
        help="Add a Type trait (Classic / Named)",
    )

    attribute_group.add_argument(
        "--classic-pattern",
        type=str,
        default=NormalizeOptions.classic_name_pattern,
        metavar="REGEX",
        help="Names matching this are Classic (default: %(default)s)",
    )

    attribute_group.add_argument(
        "--inject-mint-date",
        action="store_true",
        help="Add Original Mint Date trait and provenance sentence",
    )

    attribute_group.add_argument(
        "--storefront-name",
        type=str,
        default=NormalizeOptions.storefront_name,
        help="Storefront named in the provenance sentence",
    )

    normalize.add_argument(
        "--layout",
        type=str,
        choices=[layout.value for layout in OutputLayout],
        default=OutputLayout.SPLIT.value,
        help="Output layout (default: split into assets/ and metadata/)",
    )

    _add_retry_arguments(normalize)

    return parser


def _add_retry_arguments(parser: argparse.ArgumentParser) -> None:
    group = parser.add_argument_group("Retry Options")

    group.add_argument(
        "--max-attempts",
        type=int,
        default=RetryConfig.max_attempts,
        help="Attempts per HTTP call (default: %(default)s)",
    )

    group.add_argument(
        "--initial-delay",
        type=float,
        default=RetryConfig.initial_delay_seconds,
        metavar="SECONDS",
        help="Backoff delay before the second attempt (default: %(default)s)",
    )


# ============================================================
# CLI VALIDATION
# ============================================================

def validate_args(args: argparse.Namespace) -> List[str]:
    """
    Validate CLI arguments.

    Returns:
        List of validation errors
    """
    errors = []

    if args.max_attempts < 1:
        errors.append("--max-attempts must be at least 1")
    if args.initial_delay < 0:
        errors.append("--initial-delay must not be negative")

    if args.command == "harvest":
        if args.concurrency < 1:
            errors.append("--concurrency must be at least 1")

    if args.command == "normalize":
        if not args.input_dir.is_dir():
            errors.append(f"input directory not found: {args.input_dir}")
        if args.substitute_media and not args.search_term:
            errors.append("--search-term must not be empty")

    return errors


# ============================================================
# CLI CONFIGURATION BUILDERS
# ============================================================

def build_retry_config(args: argparse.Namespace) -> RetryConfig:
    return RetryConfig(
        max_attempts=args.max_attempts,
        initial_delay_seconds=args.initial_delay,
    )


def build_harvest_config(args: argparse.Namespace) -> HarvestConfig:
    """Harvest configuration from CLI arguments layered over the environment."""
    return HarvestConfig.from_env(
        api_key=args.api_key,
        api_url=args.api_url,
        output_root=args.output_root,
        concurrency=args.concurrency,
        resume=args.resume,
        retry=build_retry_config(args),
    )


def build_normalize_options(args: argparse.Namespace) -> NormalizeOptions:
    return NormalizeOptions(
        substitute_media=args.substitute_media,
        media_search_term=args.search_term,
        classify_names=args.classify_names,
        classic_name_pattern=args.classic_pattern,
        inject_mint_date=args.inject_mint_date,
        storefront_name=args.storefront_name,
        layout=OutputLayout(args.layout),
    )


# ============================================================
# MAIN ENTRY POINT
# ============================================================

async def async_main(args: argparse.Namespace) -> int:
    """
    Async main entry point.

    Returns:
        Exit code
    """
    try:
        if args.command == "harvest":
            report = await run_harvest(build_harvest_config(args), args.collection_slug)
            print(f"Harvested {len(report.harvested)} assets into {args.collection_slug}")
        else:
            retry = build_retry_config(args)
            report = await run_normalize(
                build_normalize_options(args),
                args.input_dir,
                args.output_dir,
                media_config=MediaSourceConfig.from_env(api_key=args.giphy_api_key),
                retry_policy=retry.build_policy(),
            )
            print(f"Normalized {report.records} records into {args.output_dir}")
        return 0

    except PartialAssetFailure as e:
        print(f"Error: {e.message}", file=sys.stderr)
        for failure in e.failures:
            print(f"  - {failure}", file=sys.stderr)
        return 1
    except HarvestError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Args:
        argv: Command line arguments (default: sys.argv[1:])

    Returns:
        Exit code
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    errors = validate_args(args)
    if errors:
        for error in errors:
            print(f"Error: {error}", file=sys.stderr)
        return 1

    setup_logging(args.log_level, args.log_format)

    return asyncio.run(async_main(args))


# ============================================================
# MODULE EXECUTION
# ============================================================

if __name__ == "__main__":
    sys.exit(main())
