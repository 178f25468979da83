"""Command-line interface for the pool migration tool."""

import argparse
import json
import logging
import sys
from typing import List, Optional

from .context import RuntimeContext
from .directory.pool_directory import PoolDirectory
from .exceptions import ConfigError, MigrateError
from .migrators.pool_migrator import UpdatePoolMigrator
from .models.migration import MigrationConfig
from .models.record import MigrationOutcome
from .runner import MigrationRunner
from .services.checkpoint import CheckpointStore

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_PARTIAL = 2


def _add_connection_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config", help="Path to JSON config file")
    parser.add_argument("--rpc-url", help="Cluster RPC endpoint (env: RPC_URL, ANCHOR_PROVIDER_URL)")
    parser.add_argument("--keypair", help="Authority keypair file (env: KEYPAIR_PATH, ANCHOR_WALLET)")
    parser.add_argument("--program-id", help="Gamma program id (env: GAMMA_PROGRAM)")
    parser.add_argument("--checkpoint", help="Checkpoint file (env: CHECKPOINT_PATH)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gamma-migrate",
        description="Gamma pool migration - apply update_pool to every pool, resumably"
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Run migration
    run_parser = subparsers.add_parser("run", help="Run the migration")
    _add_connection_args(run_parser)
    run_parser.add_argument("--param", type=int, help="update_pool param selector (u32, must be handled by the deployed program)")
    run_parser.add_argument("--value", type=int, help="update_pool value (u64)")
    run_parser.add_argument("--dry-run", action="store_true", help="Simulate without sending transactions")
    run_parser.add_argument("--report-dir", help="Directory for the JSON run report")

    # Diagnostics
    pools_parser = subparsers.add_parser("pools", help="Print every pool as JSON")
    _add_connection_args(pools_parser)

    status_parser = subparsers.add_parser("status", help="Show checkpoint progress")
    _add_connection_args(status_parser)
    status_parser.add_argument("--offline", action="store_true", help="Only read the checkpoint file")

    init_parser = subparsers.add_parser("init", help="Create an empty checkpoint file")
    _add_connection_args(init_parser)

    return parser


def load_config(args: argparse.Namespace) -> MigrationConfig:
    """Layer defaults, config file, environment and CLI flags."""
    config = MigrationConfig()
    if getattr(args, "config", None):
        try:
            with open(args.config) as f:
                config = MigrationConfig.from_dict(json.load(f))
        except (OSError, ValueError) as e:
            raise ConfigError(f"Cannot read config file {args.config}: {e}") from e

    config = MigrationConfig.from_env(config)
    return config.with_overrides(
        rpc_url=getattr(args, "rpc_url", None),
        keypair_path=getattr(args, "keypair", None),
        program_id=getattr(args, "program_id", None),
        checkpoint_path=getattr(args, "checkpoint", None),
        update_param=getattr(args, "param", None),
        update_value=getattr(args, "value", None),
        dry_run=True if getattr(args, "dry_run", False) else None,
        report_dir=getattr(args, "report_dir", None),
    )


def _require_valid(config: MigrationConfig) -> None:
    errors = config.validate()
    if errors:
        raise ConfigError("Invalid configuration: " + "; ".join(errors), {"errors": errors})


def _print_outcome(outcome: MigrationOutcome) -> None:
    line = f"[{outcome.status.value.upper():7}] {outcome.record_id}"
    if outcome.signature:
        line += f" {outcome.signature}"
    if outcome.error:
        line += f" - {outcome.error}"
    print(line, flush=True)


def run_migration(config: MigrationConfig) -> int:
    """Run the migration and print the summary."""
    _require_valid(config)
    context = RuntimeContext.from_config(config)

    try:
        migrator = UpdatePoolMigrator(
            context,
            dry_run=config.dry_run,
            confirm_timeout=config.confirm_timeout,
            poll_interval=config.poll_interval,
        )
        runner = MigrationRunner.from_config(config, PoolDirectory(context), migrator, _print_outcome)
        result = runner.run_migration()
    finally:
        context.rpc.close()

    print("\n" + "=" * 60)
    print("MIGRATION COMPLETE" + (" (DRY RUN)" if result.dry_run else ""))
    print("=" * 60)
    print(f"Status: {result.status.value}")
    print(f"Pools Listed: {result.total_records_listed}")
    print(f"Skipped: {result.skipped}")
    print(f"Applied: {result.applied}")
    print(f"Failed: {result.failed}")
    if result.unrecorded:
        print(f"Applied but NOT checkpointed: {result.unrecorded}")
    if result.duration_seconds is not None:
        print(f"Duration: {result.duration_seconds:.2f} seconds")

    return EXIT_PARTIAL if (result.failed or result.unrecorded) else EXIT_OK


def print_pools(config: MigrationConfig) -> int:
    """Print every pool as JSON."""
    _require_valid(config)
    context = RuntimeContext.from_config(config)
    try:
        pools = PoolDirectory(context).list_all()
    finally:
        context.rpc.close()
    print(json.dumps([p.to_dict() for p in pools], indent=2))
    return EXIT_OK


def show_status(config: MigrationConfig, offline: bool = False) -> int:
    """Show how many pools are checkpointed and how many are pending."""
    checkpoint = CheckpointStore(config.checkpoint_path).load()
    print(f"Checkpoint: {config.checkpoint_path}")
    print(f"Migrated: {len(set(checkpoint))}")

    if offline:
        return EXIT_OK

    _require_valid(config)
    context = RuntimeContext.from_config(config)
    try:
        pools = PoolDirectory(context).list_all()
    finally:
        context.rpc.close()

    pending = [p.id for p in pools if p.id not in checkpoint]
    print(f"Pools Listed: {len(pools)}")
    print(f"Pending: {len(pending)}")
    for pool_id in pending:
        print(f"  - {pool_id}")
    return EXIT_OK


def init_checkpoint(config: MigrationConfig) -> int:
    store = CheckpointStore(config.checkpoint_path)
    if store.initialize():
        print(f"Created {store.path}")
    else:
        print(f"{store.path} already exists")
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    # Set up logging
    log_level = logging.DEBUG if getattr(args, "verbose", False) else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    if not args.command:
        parser.print_help()
        return EXIT_FATAL

    try:
        config = load_config(args)

        if args.command == "run":
            return run_migration(config)
        elif args.command == "pools":
            return print_pools(config)
        elif args.command == "status":
            return show_status(config, offline=args.offline)
        elif args.command == "init":
            return init_checkpoint(config)
    except MigrateError as e:
        logger.error(f"{e.code.value}: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FATAL

    parser.print_help()
    return EXIT_FATAL


if __name__ == "__main__":
    sys.exit(main())
