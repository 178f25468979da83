"""Tests for migrators/pool_migrator.py."""

import hashlib
import struct
from unittest.mock import MagicMock

import pytest
from solders.hash import Hash
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from gamma_migrate.context import RuntimeContext
from gamma_migrate.exceptions import MigrationError, RPCError
from gamma_migrate.migrators.pool_migrator import (
    UpdatePoolMigrator,
    build_update_pool_instruction,
    encode_update_pool,
)
from gamma_migrate.models.record import PoolRecord, UpdateParams

CONFIRMED = {"slot": 1, "confirmations": 0, "err": None, "confirmationStatus": "confirmed"}


@pytest.fixture
def record():
    return PoolRecord(
        id=str(Pubkey.new_unique()),
        token_0_vault=str(Pubkey.new_unique()),
        token_1_vault=str(Pubkey.new_unique()),
    )


@pytest.fixture
def rpc():
    rpc = MagicMock()
    rpc.get_latest_blockhash.return_value = str(Hash.new_unique())
    rpc.send_transaction.return_value = "sig"
    rpc.get_signature_statuses.return_value = [CONFIRMED]
    return rpc


@pytest.fixture
def context(rpc):
    return RuntimeContext(rpc=rpc, authority=Keypair(), program_id=Pubkey.new_unique())


def make_migrator(context, **kwargs):
    kwargs.setdefault("poll_interval", 0)
    return UpdatePoolMigrator(context, **kwargs)


class TestEncoding:
    def test_update_pool_data(self):
        data = encode_update_pool(UpdateParams(param=10, value=10))

        assert data[:8] == hashlib.sha256(b"global:update_pool").digest()[:8]
        assert data[8:12] == (10).to_bytes(4, "little")
        assert data[12:] == (10).to_bytes(8, "little")
        assert len(data) == 20

    def test_params_range_checked(self):
        with pytest.raises(ValueError):
            UpdateParams(param=-1)
        with pytest.raises(ValueError):
            UpdateParams(value=2 ** 64)

    def test_instruction_accounts(self, record):
        program_id = Pubkey.new_unique()
        authority = Pubkey.new_unique()

        ix = build_update_pool_instruction(program_id, authority, record, UpdateParams())

        assert ix.program_id == program_id
        metas = ix.accounts
        assert metas[0].pubkey == authority and metas[0].is_signer and not metas[0].is_writable
        assert str(metas[1].pubkey) == record.id and metas[1].is_writable and not metas[1].is_signer
        assert [str(m.pubkey) for m in metas[2:]] == [record.token_0_vault, record.token_1_vault]
        assert not any(m.is_writable for m in metas[2:])


class TestMigrate:
    def test_sends_and_confirms(self, context, rpc, record):
        confirmation = make_migrator(context).migrate(record, UpdateParams())

        assert confirmation.record_id == record.id
        assert confirmation.simulated is False
        rpc.send_transaction.assert_called_once()
        rpc.get_signature_statuses.assert_called_with([confirmation.signature])
        rpc.simulate_transaction.assert_not_called()

    def test_polls_until_commitment_reached(self, context, rpc, record):
        processed = dict(CONFIRMED, confirmationStatus="processed")
        rpc.get_signature_statuses.side_effect = [[None], [processed], [CONFIRMED]]

        make_migrator(context).migrate(record, UpdateParams())

        assert rpc.get_signature_statuses.call_count == 3

    def test_on_chain_error(self, context, rpc, record):
        rpc.get_signature_statuses.return_value = [dict(CONFIRMED, err={"InstructionError": [0, {"Custom": 6000}]})]

        with pytest.raises(MigrationError) as exc:
            make_migrator(context).migrate(record, UpdateParams())
        assert exc.value.record_id == record.id
        assert "6000" in str(exc.value)

    def test_confirmation_timeout(self, context, rpc, record):
        rpc.get_signature_statuses.return_value = [None]

        with pytest.raises(MigrationError) as exc:
            make_migrator(context, confirm_timeout=0).migrate(record, UpdateParams())
        assert "Timed out" in str(exc.value)

    def test_send_rpc_error(self, context, rpc, record):
        rpc.send_transaction.side_effect = RPCError("RPC error on sendTransaction: blockhash not found", "sendTransaction")

        with pytest.raises(MigrationError) as exc:
            make_migrator(context).migrate(record, UpdateParams())
        assert "blockhash not found" in str(exc.value)
        rpc.get_signature_statuses.assert_not_called()

    def test_unexpected_error_is_classified(self, context, rpc, record):
        rpc.get_latest_blockhash.return_value = "not-a-hash"

        with pytest.raises(MigrationError) as exc:
            make_migrator(context).migrate(record, UpdateParams())
        assert exc.value.record_id == record.id


class TestDryRun:
    def test_simulates_instead_of_sending(self, context, rpc, record):
        rpc.simulate_transaction.return_value = {"err": None, "logs": []}

        confirmation = make_migrator(context, dry_run=True).migrate(record, UpdateParams())

        assert confirmation.simulated is True
        rpc.send_transaction.assert_not_called()
        rpc.get_signature_statuses.assert_not_called()

    def test_simulation_error(self, context, rpc, record):
        rpc.simulate_transaction.return_value = {"err": "InvalidAccountData", "logs": ["Program log: nope"]}

        with pytest.raises(MigrationError) as exc:
            make_migrator(context, dry_run=True).migrate(record, UpdateParams())
        assert exc.value.details["logs"] == ["Program log: nope"]

    def test_unhandled_selector_surfaces_program_error(self, context, rpc, record):
        rpc.simulate_transaction.return_value = {
            "err": {"InstructionError": [0, {"Custom": 6002}]},
            "logs": ["Program log: AnchorError occurred. Error Code: InvalidInput."],
        }

        with pytest.raises(MigrationError) as exc:
            make_migrator(context, dry_run=True).migrate(record, UpdateParams(param=10, value=10))
        assert "InvalidInput" in exc.value.details["logs"][0]

    def test_custom_selector_is_sent(self, context, rpc, record):
        rpc.simulate_transaction.return_value = {"err": None, "logs": []}
        migrator = make_migrator(context, dry_run=True)

        transaction = migrator.build_transaction(record, UpdateParams(param=5, value=1_700_000_000))

        data = bytes(transaction.message.instructions[0].data)
        assert data[8:] == struct.pack("<IQ", 5, 1_700_000_000)
