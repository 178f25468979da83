"""Shared fixtures and remote-side test doubles."""

import json
from typing import Iterable, List, Optional

import pytest

from gamma_migrate.directory.base import BaseDirectory
from gamma_migrate.exceptions import RemoteUnavailableError
from gamma_migrate.migrators.base import BaseMigrator
from gamma_migrate.models.record import Confirmation, PoolRecord, UpdateParams
from gamma_migrate.services.checkpoint import CheckpointStore


def make_record(record_id: str) -> PoolRecord:
    return PoolRecord(id=record_id, token_0_vault=f"{record_id}-vault0", token_1_vault=f"{record_id}-vault1")


class FakeDirectory(BaseDirectory):
    kind = "PoolState"

    def __init__(self, ids: Iterable[str] = (), unavailable: bool = False):
        self.ids = list(ids)
        self.unavailable = unavailable
        self.calls = 0

    def list_all(self, kind: str = "") -> List[PoolRecord]:
        self.calls += 1
        if self.unavailable:
            raise RemoteUnavailableError("connection refused")
        return [make_record(i) for i in self.ids]


class FakeMigrator(BaseMigrator):
    def __init__(self, fail_ids: Iterable[str] = (), dry_run: bool = False, on_apply=None):
        super().__init__(dry_run)
        self.fail_ids = set(fail_ids)
        self.applied: List[str] = []
        self.params: List[UpdateParams] = []
        self.on_apply = on_apply

    def apply(self, record: PoolRecord, params: UpdateParams) -> Confirmation:
        if self.on_apply:
            self.on_apply(record)
        if record.id in self.fail_ids:
            raise RuntimeError(f"custom program error for {record.id}")
        self.applied.append(record.id)
        self.params.append(params)
        return Confirmation(record_id=record.id, signature=f"sig-{record.id}", simulated=self.dry_run)


@pytest.fixture
def checkpoint_path(tmp_path):
    return tmp_path / "poolDataMigration.json"


@pytest.fixture
def store(checkpoint_path):
    return CheckpointStore(checkpoint_path)


@pytest.fixture
def clean_env(monkeypatch):
    for name in ("RPC_URL", "ANCHOR_PROVIDER_URL", "KEYPAIR_PATH", "ANCHOR_WALLET",
                 "GAMMA_PROGRAM", "CHECKPOINT_PATH"):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def seed(path, ids: Optional[List[str]]):
    path.write_text(json.dumps(ids))
