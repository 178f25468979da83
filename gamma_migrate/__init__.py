"""
Gamma Pool Migration

A resumable batch tool that brings every Gamma AMM pool on a Solana cluster
to a target configuration.

Supports:
- Enumerating PoolState accounts with a single getProgramAccounts call
- Applying an idempotent update_pool instruction to each pool
- A JSON checkpoint file, rewritten atomically after every confirmed update
- Per-pool failure isolation, with a re-run as the retry mechanism
- Dry runs through transaction simulation
"""

__version__ = "0.1.0"
