#!/usr/bin/env python3
"""
CLI script for running the provider conformance matrix.

Runs every configured provider against the golden fixtures and reports a
pass/fail line per case. Useful for scheduled jobs or checking a new
provider endpoint before relying on it.

Usage:
    python cli.py --config config.json
    python cli.py --config config.json --providers alchemy,etherscan
    python cli.py --config config.json --networks homestead --json-output
"""

import argparse
import asyncio
import json
import sys
import uuid
from typing import Optional

from config.loader import ConfigurationManager
from config.models import Config
from conformance.driver import MatrixDriver
from conformance.fixtures import FixtureStore
from conformance.skip_matrix import SkipMatrix
from core.exceptions import ConfigurationError, FixtureError
from core.logging import configure_logging, get_logger
from core.stats import RunStatistics
from providers.registry import ProviderRegistry

EXIT_OK = 0
EXIT_FAILURES = 1
EXIT_CONFIG_ERROR = 2


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Provider Conformance Harness - CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run with default configuration
  python cli.py

  # Run with custom config file
  python cli.py --config /path/to/config.json

  # Run specific providers only
  python cli.py --providers alchemy,etherscan

  # Run specific networks only
  python cli.py --networks homestead

  # Use another fixture file or directory
  python cli.py --fixtures ./fixtures/homestead.json

  # Verbose output
  python cli.py --verbose
        """
    )

    parser.add_argument(
        "--config", "-c",
        type=str,
        default="./config.json",
        help="Path to configuration file (default: ./config.json)"
    )

    parser.add_argument(
        "--env-file", "-e",
        type=str,
        default="./.env",
        help="Path to .env file (default: ./.env)"
    )

    parser.add_argument(
        "--fixtures", "-f",
        type=str,
        help="Fixture JSON file or directory (overrides config)"
    )

    parser.add_argument(
        "--providers",
        type=str,
        help="Comma-separated list of providers to test (e.g., alchemy,etherscan)"
    )

    parser.add_argument(
        "--networks",
        type=str,
        help="Comma-separated list of networks to test (e.g., homestead,sepolia)"
    )

    parser.add_argument(
        "--run-id",
        type=str,
        help="Custom run ID (default: auto-generated UUID)"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose (DEBUG) logging"
    )

    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Suppress output except errors"
    )

    parser.add_argument(
        "--json-output",
        action="store_true",
        help="Output results as JSON to stdout"
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="List the cases that would run without calling any provider"
    )

    return parser.parse_args(argv)


def split_list(value: Optional[str]) -> Optional[list[str]]:
    """Split a comma-separated CLI value, or None if not given."""
    if not value:
        return None
    items = [item.strip().lower() for item in value.split(",") if item.strip()]
    return items or None


def load_configuration(
    config_path: str,
    env_file: str,
    fixtures_override: Optional[str] = None,
    providers: Optional[list[str]] = None
) -> Config:
    """Load and validate configuration.

    Args:
        config_path: Path to JSON config file.
        env_file: Path to .env file.
        fixtures_override: Optional fixture path override.
        providers: Provider names requested on the command line.

    Returns:
        Validated Config object.

    Raises:
        ConfigurationError: If no provider is configured or a requested
            provider is unknown.
    """
    config_manager = ConfigurationManager(
        config_path=config_path,
        env_file=env_file
    )

    config = config_manager.load_config()

    if fixtures_override:
        config.fixtures_path = fixtures_override

    if not config_manager.get_provider_configs():
        raise ConfigurationError("no providers configured", config_key="providers")

    for name in providers or []:
        if config_manager.get_provider_by_name(name) is None:
            raise ConfigurationError(f"unknown provider '{name}'", config_key="providers")

    return config


def resolve_log_level(args: argparse.Namespace, config: Optional[Config] = None) -> str:
    """Pick the log level: --quiet/--verbose win over the configured level."""
    if args.quiet:
        return "ERROR"
    if args.verbose:
        return "DEBUG"
    if config is not None:
        return config.logging.level
    return "INFO"


def build_driver(
    config: Config,
    stats: RunStatistics,
    providers: Optional[list[str]] = None,
    networks: Optional[list[str]] = None,
) -> MatrixDriver:
    """Wire fixtures, registry and skip matrix into a matrix driver."""
    return MatrixDriver(
        registry=ProviderRegistry.from_config(config),
        fixtures=FixtureStore.load(config.fixtures_path),
        skip_matrix=SkipMatrix.from_config(config.skip_matrix),
        stats=stats,
        harness_config=config.harness,
        retry_config=config.retry,
        providers=providers,
        networks=networks,
    )


async def run_matrix(driver: MatrixDriver, run_id: str, logger) -> dict:
    """Run the matrix and return the summary as a dictionary.

    Args:
        driver: Configured matrix driver.
        run_id: Unique run identifier.
        logger: Logger instance.

    Returns:
        Dictionary with run results.
    """
    logger.info(f"Starting conformance run: {run_id}")
    logger.info(f"Providers: {driver.registry.provider_names}")
    logger.info(f"Networks: {driver.fixtures.networks}")

    try:
        summary = await driver.run(run_id=run_id)
    finally:
        await driver.registry.close()

    results = summary.to_dict()
    results["run_id"] = run_id
    return results


def print_results(results: dict, json_output: bool = False) -> None:
    """Print results to console.

    Args:
        results: Results dictionary from the run.
        json_output: If True, output as JSON.
    """
    if json_output:
        print(json.dumps(results, indent=2, default=str))
        return

    print("\n" + "=" * 60)
    print("CONFORMANCE RESULTS")
    print("=" * 60)
    print(f"Run ID: {results['run_id']}")
    print(f"Status: {'SUCCESS' if results['success'] else 'FAILED'}")
    print(f"Duration: {results['duration_seconds']:.2f} seconds")
    print(
        f"Cases: {results['total']} "
        f"({results['passed']} passed, {results['failed']} failed, "
        f"{results['skipped_unsupported']} unsupported)"
    )
    print(f"Attempts: {results['total_attempts']} ({results['retries']} retries)")

    print("\nCases:")
    for result in results.get("results", []):
        marker = {"passed": "ok", "failed": "FAIL", "skipped_unsupported": "unsupported"}
        print(f"  [{marker[result['outcome']]}] {result['name']} ({result['attempts']} attempt(s))")
        if result.get("error"):
            print(f"      {result['error']}")

    if results.get("exclusions"):
        print("\nExcluded:")
        for exclusion in results["exclusions"]:
            print(f"  - {exclusion['provider']}.{exclusion['network']}: {exclusion['reason']}")

    print("=" * 60 + "\n")


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point for CLI.

    Returns:
        Exit code (0 if no case failed, 1 if any failed, 2 on configuration
        or fixture errors).
    """
    args = parse_args(argv)

    # Text logging until the configuration says otherwise
    configure_logging(
        level=resolve_log_level(args),
        fmt="text",
        service_name="provider-conformance-cli"
    )
    logger = get_logger(__name__)

    try:
        # Load configuration
        logger.info(f"Loading configuration from {args.config}")
        providers = split_list(args.providers)
        config = load_configuration(
            config_path=args.config,
            env_file=args.env_file,
            fixtures_override=args.fixtures,
            providers=providers
        )

        # Reconfigure logging with settings from config
        configure_logging(
            level=resolve_log_level(args, config),
            fmt=config.logging.format,
            service_name="provider-conformance-cli"
        )

        run_id = args.run_id or str(uuid.uuid4())
        driver = build_driver(
            config,
            RunStatistics(),
            providers=providers,
            networks=split_list(args.networks),
        )

        # Dry run - list cases and exit
        if args.dry_run:
            cases = driver.build_cases()
            print("Configuration validated successfully!")
            print(f"Cases ({len(cases)}):")
            for case in cases:
                print(f"  - {case.name}")
            for exclusion in driver.exclusions:
                print(f"Excluded: {exclusion.provider}.{exclusion.network}: {exclusion.reason}")
            return EXIT_OK

        results = asyncio.run(run_matrix(driver, run_id, logger))

        # Print results
        if not args.quiet:
            print_results(results, json_output=args.json_output)
        elif args.json_output:
            print(json.dumps(results, indent=2, default=str))

        # Return appropriate exit code
        if results.get("success"):
            logger.info("Conformance run completed successfully")
            return EXIT_OK
        else:
            logger.error("Conformance run completed with failures")
            return EXIT_FAILURES

    except FileNotFoundError as e:
        logger.error(f"Configuration file not found: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR
    except (ConfigurationError, FixtureError) as e:
        logger.error(str(e))
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR
    except KeyboardInterrupt:
        logger.info("Conformance run interrupted by user")
        print("\nInterrupted by user", file=sys.stderr)
        return 130
    except Exception as e:
        logger.exception(f"Unexpected error: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FAILURES


if __name__ == "__main__":
    sys.exit(main())
