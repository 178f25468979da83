"""Migrator that sends `update_pool` to each Gamma pool."""

import hashlib
import logging
import struct
import time
from typing import Any, Dict, Optional

from solders.hash import Hash
from solders.instruction import AccountMeta, Instruction
from solders.message import Message
from solders.pubkey import Pubkey
from solders.transaction import Transaction

from .base import BaseMigrator
from ..context import RuntimeContext
from ..exceptions import MigrationError, RPCError
from ..models.record import Confirmation, PoolRecord, UpdateParams

logger = logging.getLogger(__name__)

COMMITMENT_RANK = {"processed": 0, "confirmed": 1, "finalized": 2}


def instruction_discriminator(name: str) -> bytes:
    """Anchor instruction discriminator: first 8 bytes of sha256("global:<name>")."""
    return hashlib.sha256(f"global:{name}".encode()).digest()[:8]


def encode_update_pool(params: UpdateParams) -> bytes:
    """Instruction data for `update_pool(param: u32, value: u64)`."""
    return instruction_discriminator("update_pool") + struct.pack("<IQ", params.param, params.value)


def build_update_pool_instruction(
    program_id: Pubkey,
    authority: Pubkey,
    record: PoolRecord,
    params: UpdateParams
) -> Instruction:
    """
    Build the `update_pool` instruction for one pool.

    Both vaults follow the pool as read-only remaining accounts.
    """
    accounts = [
        AccountMeta(authority, is_signer=True, is_writable=False),
        AccountMeta(Pubkey.from_string(record.id), is_signer=False, is_writable=True),
        AccountMeta(Pubkey.from_string(record.token_0_vault), is_signer=False, is_writable=False),
        AccountMeta(Pubkey.from_string(record.token_1_vault), is_signer=False, is_writable=False),
    ]
    return Instruction(program_id, encode_update_pool(params), accounts)


class UpdatePoolMigrator(BaseMigrator):
    """
    Applies `update_pool(param, value)` to a pool and waits for confirmation.

    The same target parameters are sent on every invocation, so re-applying
    converges on the same pool state.
    """

    def __init__(
        self,
        context: RuntimeContext,
        dry_run: bool = False,
        confirm_timeout: float = 60.0,
        poll_interval: float = 1.0
    ):
        """
        Initialize the migrator.

        Args:
            context: Runtime context with RPC client and authority
            dry_run: If True, simulate the transaction instead of sending it
            confirm_timeout: Seconds to wait for the commitment level
            poll_interval: Seconds between signature status polls
        """
        super().__init__(dry_run)
        self.context = context
        self.confirm_timeout = confirm_timeout
        self.poll_interval = poll_interval

    def build_transaction(self, record: PoolRecord, params: UpdateParams) -> Transaction:
        """Build and sign the update transaction against a fresh blockhash."""
        authority = self.context.authority
        instruction = build_update_pool_instruction(
            self.context.program_id, authority.pubkey(), record, params
        )
        blockhash = Hash.from_string(self.context.rpc.get_latest_blockhash(self.context.commitment))
        message = Message.new_with_blockhash([instruction], authority.pubkey(), blockhash)
        return Transaction([authority], message, blockhash)

    def apply(self, record: PoolRecord, params: UpdateParams) -> Confirmation:
        try:
            transaction = self.build_transaction(record, params)
            raw = bytes(transaction)
            signature = str(transaction.signatures[0])

            if self.dry_run:
                self._simulate(record, raw)
                logger.debug(f"Simulated update_pool for {record.id}")
                return Confirmation(record_id=record.id, signature=signature, simulated=True)

            self.context.rpc.send_transaction(raw, preflight_commitment=self.context.commitment)
            logger.debug(f"Sent update_pool for {record.id}: {signature}")
        except RPCError as e:
            raise MigrationError(
                f"RPC failure updating {record.id}: {e.message}", record.id, {"rpc": e.details}
            ) from e

        self._await_confirmation(record, signature)
        return Confirmation(record_id=record.id, signature=signature)

    def _simulate(self, record: PoolRecord, raw: bytes) -> None:
        value = self.context.rpc.simulate_transaction(raw, commitment=self.context.commitment)
        if value.get("err"):
            raise MigrationError(
                f"Simulation failed for {record.id}: {value['err']}",
                record.id,
                {"logs": value.get("logs") or []},
            )

    def _await_confirmation(self, record: PoolRecord, signature: str) -> None:
        """Poll signature status until the target commitment or the deadline."""
        target = COMMITMENT_RANK.get(self.context.commitment, 1)
        deadline = time.monotonic() + self.confirm_timeout

        while True:
            try:
                status = self.context.rpc.get_signature_statuses([signature])[0]
            except RPCError as e:
                raise MigrationError(
                    f"Could not confirm {signature} for {record.id}: {e.message}",
                    record.id,
                    {"signature": signature},
                ) from e

            if self._is_final(record, signature, status, target):
                return

            if time.monotonic() >= deadline:
                raise MigrationError(
                    f"Timed out after {self.confirm_timeout}s waiting for {signature} ({record.id})",
                    record.id,
                    {"signature": signature},
                )
            time.sleep(self.poll_interval)

    def _is_final(
        self,
        record: PoolRecord,
        signature: str,
        status: Optional[Dict[str, Any]],
        target: int
    ) -> bool:
        if not status:
            return False
        if status.get("err"):
            raise MigrationError(
                f"Transaction {signature} failed for {record.id}: {status['err']}",
                record.id,
                {"signature": signature},
            )
        level = status.get("confirmationStatus")
        if level is None and "confirmations" in status and status["confirmations"] is None:
            level = "finalized"  # rooted, reported by nodes without confirmationStatus
        return COMMITMENT_RANK.get(level or "", -1) >= target
