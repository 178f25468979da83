"""Directory of Gamma PoolState accounts."""

import base64
import binascii
import hashlib
import logging
from typing import Any, Dict, List

from solders.pubkey import Pubkey

from .base import BaseDirectory
from ..context import RuntimeContext
from ..exceptions import ConfigError, MalformedRecordError, RemoteUnavailableError, RPCError
from ..models.record import PoolRecord

logger = logging.getLogger(__name__)

PUBKEY_LEN = 32
DISCRIMINATOR_LEN = 8

# Byte offsets into the zero-copy PoolState layout (after the discriminator)
AMM_CONFIG_OFFSET = DISCRIMINATOR_LEN
POOL_CREATOR_OFFSET = AMM_CONFIG_OFFSET + PUBKEY_LEN
TOKEN_0_VAULT_OFFSET = POOL_CREATOR_OFFSET + PUBKEY_LEN
TOKEN_1_VAULT_OFFSET = TOKEN_0_VAULT_OFFSET + PUBKEY_LEN
TOKEN_0_MINT_OFFSET = TOKEN_1_VAULT_OFFSET + 2 * PUBKEY_LEN  # skips _padding1
TOKEN_1_MINT_OFFSET = TOKEN_0_MINT_OFFSET + PUBKEY_LEN
STATUS_OFFSET = DISCRIMINATOR_LEN + 10 * PUBKEY_LEN + 1  # after auth_bump
MIN_POOL_STATE_LEN = STATUS_OFFSET + 1


def account_discriminator(name: str) -> bytes:
    """Anchor account discriminator: first 8 bytes of sha256("account:<Name>")."""
    return hashlib.sha256(f"account:{name}".encode()).digest()[:DISCRIMINATOR_LEN]


def _pubkey_at(data: bytes, offset: int) -> str:
    return str(Pubkey.from_bytes(data[offset:offset + PUBKEY_LEN]))


def decode_pool_state(address: str, data: bytes, lamports: int = 0) -> PoolRecord:
    """Decode the fields of a PoolState account the migration needs."""
    if len(data) < MIN_POOL_STATE_LEN:
        raise MalformedRecordError(
            f"PoolState {address} has {len(data)} bytes, expected at least {MIN_POOL_STATE_LEN}",
            address,
        )
    if data[:DISCRIMINATOR_LEN] != account_discriminator("PoolState"):
        raise MalformedRecordError(f"Account {address} is not a PoolState", address)

    return PoolRecord(
        id=address,
        amm_config=_pubkey_at(data, AMM_CONFIG_OFFSET),
        pool_creator=_pubkey_at(data, POOL_CREATOR_OFFSET),
        token_0_vault=_pubkey_at(data, TOKEN_0_VAULT_OFFSET),
        token_1_vault=_pubkey_at(data, TOKEN_1_VAULT_OFFSET),
        token_0_mint=_pubkey_at(data, TOKEN_0_MINT_OFFSET),
        token_1_mint=_pubkey_at(data, TOKEN_1_MINT_OFFSET),
        status=data[STATUS_OFFSET],
        lamports=lamports,
        raw_data=data,
    )


class PoolDirectory(BaseDirectory):
    """
    Lists every PoolState account owned by the Gamma program.

    Equivalent to Anchor's `program.account.poolState.all()`: a single
    `getProgramAccounts` call filtered on the account discriminator.
    """

    kind = "PoolState"

    def __init__(self, context: RuntimeContext):
        self.context = context

    def _filters(self, kind: str) -> List[Dict[str, Any]]:
        return [{
            "memcmp": {
                "offset": 0,
                "bytes": base64.b64encode(account_discriminator(kind)).decode("ascii"),
                "encoding": "base64",
            }
        }]

    def list_all(self, kind: str = "") -> List[PoolRecord]:
        kind = kind or self.kind
        if kind != self.kind:
            raise ConfigError(f"Unsupported record kind: {kind}", {"kind": kind, "supported": self.kind})

        program_id = str(self.context.program_id)
        try:
            accounts = self.context.rpc.get_program_accounts(
                program_id,
                filters=self._filters(kind),
                commitment=self.context.commitment,
            )
        except RPCError as e:
            raise RemoteUnavailableError(
                f"Failed to list {kind} accounts of {program_id}: {e.message}",
                {"program_id": program_id, "rpc": e.details},
            ) from e

        records = [self._parse_account(item) for item in accounts]
        logger.info(f"Listed {len(records)} {kind} accounts from {program_id}")
        return records

    def _parse_account(self, item: Dict[str, Any]) -> PoolRecord:
        address = item.get("pubkey", "")
        account = item.get("account") or {}
        try:
            encoded, encoding = account["data"]
            if encoding != "base64":
                raise ValueError(f"unexpected encoding {encoding}")
            data = base64.b64decode(encoded)
        except (KeyError, TypeError, ValueError, binascii.Error) as e:
            raise MalformedRecordError(f"Cannot decode account data for {address}: {e}", address) from e
        return decode_pool_state(address, data, account.get("lamports", 0))
