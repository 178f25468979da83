#!/usr/bin/env python3
"""
Example: apply update_pool to every Gamma pool

This script shows how to drive the runner from code instead of the
`gamma-migrate` CLI.

Usage:
    # Simulate against the cluster, nothing is sent or checkpointed
    ANCHOR_PROVIDER_URL=<rpc> ANCHOR_WALLET=~/.config/solana/id.json \
        python run_migration.py --dry-run

    # Full migration, resumable: re-run after any interruption
    python run_migration.py --config config.json
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from gamma_migrate.context import RuntimeContext
from gamma_migrate.directory.pool_directory import PoolDirectory
from gamma_migrate.exceptions import MigrateError
from gamma_migrate.migrators.pool_migrator import UpdatePoolMigrator
from gamma_migrate.models.migration import MigrationConfig
from gamma_migrate.runner import MigrationRunner

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(),
        logging.FileHandler('migration.log')
    ]
)
logger = logging.getLogger(__name__)


def create_config(config_path: str = None, dry_run: bool = False) -> MigrationConfig:
    """Build the config from an optional file plus the Anchor environment variables."""
    config = MigrationConfig()
    if config_path:
        config = MigrationConfig.from_dict(json.loads(Path(config_path).read_text()))
    config = MigrationConfig.from_env(config)
    if dry_run:
        config.dry_run = True
    return config


def run_migration(config: MigrationConfig):
    """Run the migration."""
    logger.info("=" * 60)
    logger.info("STARTING POOL MIGRATION")
    logger.info("=" * 60)
    logger.info(f"Program: {config.program_id}")
    logger.info(f"update_pool({config.update_param}, {config.update_value})")
    logger.info(f"Checkpoint: {config.checkpoint_path}")
    logger.info(f"Dry Run: {config.dry_run}")

    context = RuntimeContext.from_config(config)
    migrator = UpdatePoolMigrator(
        context,
        dry_run=config.dry_run,
        confirm_timeout=config.confirm_timeout,
        poll_interval=config.poll_interval,
    )
    runner = MigrationRunner.from_config(config, PoolDirectory(context), migrator)

    try:
        result = runner.run_migration()
    finally:
        context.rpc.close()

    if result.errors:
        logger.warning(f"Errors ({len(result.errors)}):")
        for error in result.errors[:10]:  # Show first 10
            logger.warning(f"  - {error.get('record_id')}: {error.get('error')}")

    return result


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Apply update_pool to every Gamma pool")
    parser.add_argument("--config", help="Path to JSON config file")
    parser.add_argument("--dry-run", action="store_true", help="Simulate without sending transactions")
    args = parser.parse_args()

    config = create_config(args.config, args.dry_run)

    errors = config.validate()
    if errors:
        for error in errors:
            logger.error(error)
        sys.exit(1)

    try:
        result = run_migration(config)
    except MigrateError as e:
        logger.error(f"Migration aborted: {e}")
        sys.exit(1)

    sys.exit(2 if result.failed or result.unrecorded else 0)


if __name__ == "__main__":
    main()
