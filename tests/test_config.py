"""Tests for models/migration.py config and context.py."""

import json

import pytest
from solders.keypair import Keypair

from gamma_migrate.context import RuntimeContext, load_keypair
from gamma_migrate.exceptions import ConfigError
from gamma_migrate.models.migration import DEFAULT_PROGRAM_ID, MigrationConfig


def write_keypair(path, keypair=None):
    keypair = keypair or Keypair()
    path.write_text(json.dumps(list(bytes(keypair))))
    return keypair


class TestMigrationConfig:
    def test_defaults(self):
        config = MigrationConfig()
        assert config.program_id == DEFAULT_PROGRAM_ID
        assert config.checkpoint_path == "scripts/poolDataMigration.json"
        assert config.update_params.param == 10
        assert config.update_params.value == 10

    def test_from_dict_ignores_unknown_keys(self):
        config = MigrationConfig.from_dict({"rpc_url": "http://x", "schemas_dir": "ignored"})
        assert config.rpc_url == "http://x"

    def test_round_trip_dict(self):
        config = MigrationConfig(rpc_url="http://x", dry_run=True, update_value=3)
        assert MigrationConfig.from_dict(config.to_dict()) == config

    def test_from_env_anchor_names(self):
        env = {"ANCHOR_PROVIDER_URL": "https://rpc", "ANCHOR_WALLET": "~/.config/solana/id.json"}
        config = MigrationConfig.from_env(environ=env)
        assert config.rpc_url == "https://rpc"
        assert config.keypair_path == "~/.config/solana/id.json"

    def test_from_env_prefers_specific_names(self):
        env = {"RPC_URL": "https://a", "ANCHOR_PROVIDER_URL": "https://b", "GAMMA_PROGRAM": "Prog"}
        config = MigrationConfig.from_env(MigrationConfig(rpc_url="https://file"), environ=env)
        assert config.rpc_url == "https://a"
        assert config.program_id == "Prog"

    def test_from_env_keeps_base_when_unset(self):
        config = MigrationConfig.from_env(MigrationConfig(rpc_url="https://file"), environ={})
        assert config.rpc_url == "https://file"

    def test_with_overrides_skips_none(self):
        config = MigrationConfig(rpc_url="https://a").with_overrides(rpc_url=None, update_param=2)
        assert config.rpc_url == "https://a"
        assert config.update_param == 2

    def test_validate(self):
        errors = MigrationConfig(commitment="eventually", update_value=-1).validate()
        assert any("RPC URL" in e for e in errors)
        assert any("Keypair" in e for e in errors)
        assert any("commitment" in e for e in errors)
        assert any("u64" in e for e in errors)

    def test_validate_ok(self):
        assert MigrationConfig(rpc_url="http://x", keypair_path="id.json").validate() == []


class TestRuntimeContext:
    def test_load_keypair(self, tmp_path):
        keypair = write_keypair(tmp_path / "id.json")
        assert load_keypair(tmp_path / "id.json").pubkey() == keypair.pubkey()

    def test_load_keypair_missing(self, tmp_path):
        with pytest.raises(ConfigError):
            load_keypair(tmp_path / "missing.json")

    def test_load_keypair_invalid(self, tmp_path):
        path = tmp_path / "id.json"
        path.write_text("[1, 2, 3]")
        with pytest.raises(ConfigError):
            load_keypair(path)

    def test_from_config(self, tmp_path):
        keypair = write_keypair(tmp_path / "id.json")
        config = MigrationConfig(rpc_url="http://localhost:8899", keypair_path=str(tmp_path / "id.json"))

        context = RuntimeContext.from_config(config)

        assert context.authority_pubkey == keypair.pubkey()
        assert str(context.program_id) == DEFAULT_PROGRAM_ID
        assert context.rpc.url == "http://localhost:8899"
        assert context.commitment == "confirmed"
        context.rpc.close()

    def test_from_config_bad_program_id(self, tmp_path):
        write_keypair(tmp_path / "id.json")
        config = MigrationConfig(
            rpc_url="http://localhost:8899",
            keypair_path=str(tmp_path / "id.json"),
            program_id="not-a-pubkey",
        )
        with pytest.raises(ConfigError):
            RuntimeContext.from_config(config)

    def test_from_config_requires_rpc(self):
        with pytest.raises(ConfigError):
            RuntimeContext.from_config(MigrationConfig(keypair_path="id.json"))
