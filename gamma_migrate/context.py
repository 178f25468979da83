"""Runtime context passed explicitly to every component."""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Union

from solders.keypair import Keypair
from solders.pubkey import Pubkey

from .exceptions import ConfigError
from .models.migration import MigrationConfig
from .services.rpc_client import SolanaRPCClient

logger = logging.getLogger(__name__)


def load_keypair(path: Union[str, Path]) -> Keypair:
    """Read a Solana CLI keypair file (a JSON array of 64 byte values)."""
    path = Path(path).expanduser()
    try:
        secret = bytes(json.loads(path.read_text()))
        if len(secret) != 64:
            raise ValueError(f"expected 64 bytes, got {len(secret)}")
        return Keypair.from_bytes(secret)
    except FileNotFoundError as e:
        raise ConfigError(f"Keypair file not found: {path}") from e
    except (OSError, ValueError, TypeError) as e:
        raise ConfigError(f"Invalid keypair file {path}: {e}") from e


def parse_pubkey(value: str, name: str = "pubkey") -> Pubkey:
    try:
        return Pubkey.from_string(value)
    except ValueError as e:
        raise ConfigError(f"Invalid {name}: {value}") from e


@dataclass(frozen=True)
class RuntimeContext:
    """Connection and identity for one run. Built once, never global."""
    rpc: SolanaRPCClient
    authority: Keypair
    program_id: Pubkey
    commitment: str = "confirmed"

    @property
    def authority_pubkey(self) -> Pubkey:
        return self.authority.pubkey()

    @classmethod
    def from_config(cls, config: MigrationConfig) -> "RuntimeContext":
        """Build the RPC client, load the signing key and parse the program id."""
        if not config.rpc_url:
            raise ConfigError("RPC URL is required")
        if not config.keypair_path:
            raise ConfigError("Keypair path is required")

        authority = load_keypair(config.keypair_path)
        program_id = parse_pubkey(config.program_id, "program id")
        rpc = SolanaRPCClient(
            config.rpc_url,
            timeout=config.request_timeout,
            max_retries=config.max_retries,
            backoff_factor=config.backoff_factor,
        )
        logger.info(f"Using RPC {config.rpc_url} as {authority.pubkey()} for program {program_id}")
        return cls(rpc=rpc, authority=authority, program_id=program_id, commitment=config.commitment)
