"""
Unit tests for settings, sync targets and ABI loading.

Tests:
- Settings file parsing and defaults
- Missing or malformed files raise RuntimeError
- Sync target validation
- ABI files and build artifacts
"""

import json

import pytest

from config import loader
from logsync.models.data_models import SyncTarget

SETTINGS = {
    "namespace": "mainnet",
    "rpc": {"url": "http://localhost:8545"},
    "storage": {"backend": "sqlite", "sqlite_path": "./db/logs"},
}


@pytest.fixture
def settings_file(tmp_path, monkeypatch):
    path = tmp_path / "settings.json"
    monkeypatch.setattr(loader, "SETTINGS_FILE", str(path))
    loader.get_core_config.cache_clear()
    yield path
    loader.get_core_config.cache_clear()


@pytest.fixture
def targets_file(tmp_path, monkeypatch):
    path = tmp_path / "sync_targets.json"
    monkeypatch.setattr(loader, "SYNC_TARGETS_CONFIG_PATH", str(path))
    loader.get_sync_targets_config.cache_clear()
    yield path
    loader.get_sync_targets_config.cache_clear()


class TestCoreConfig:
    """Test settings.json loading."""

    def test_defaults_applied(self, settings_file):
        settings_file.write_text(json.dumps(SETTINGS))
        settings = loader.get_core_config()

        assert settings.rpc.retry == 3
        assert settings.sync.initial_batch_size == 50000
        assert settings.sync.min_batch_size == 100
        assert settings.sync.max_block_span == 100000
        assert settings.logs.level == "INFO"

    def test_cached(self, settings_file):
        settings_file.write_text(json.dumps(SETTINGS))
        assert loader.get_core_config() is loader.get_core_config()

    def test_missing_file(self, settings_file):
        with pytest.raises(RuntimeError, match="not found"):
            loader.get_core_config()

    def test_invalid_json(self, settings_file):
        settings_file.write_text("{not json")
        with pytest.raises(RuntimeError, match="decoding"):
            loader.get_core_config()

    def test_backend_without_settings(self, settings_file):
        settings_file.write_text(json.dumps({**SETTINGS, "storage": {"backend": "postgres"}}))
        with pytest.raises(RuntimeError, match="postgres_dsn"):
            loader.get_core_config()


class TestSyncTargets:
    """Test sync target loading."""

    def test_targets_loaded(self, targets_file):
        targets_file.write_text(json.dumps({"targets": [
            {"name": "usdc", "contract_address": "0x" + "11" * 20, "abi_path": "abis/ERC20.json",
             "event_names": ["Transfer"], "start_block": 6082465},
            {"name": "paused", "contract_address": "0x" + "22" * 20, "abi_path": "abis/ERC20.json",
             "enabled": False, "topics": {"Transfer": [None, "0x" + "33" * 20]}},
        ]}))
        targets = loader.get_sync_targets_config().targets

        assert [target.name for target in targets] == ["usdc", "paused"]
        assert targets[0].start_block == 6082465
        assert targets[1].topics == {"Transfer": [None, "0x" + "33" * 20]}

    def test_target_missing_fields(self, targets_file):
        targets_file.write_text(json.dumps({"targets": [{"name": "broken"}]}))
        with pytest.raises(RuntimeError):
            loader.get_sync_targets_config()

    def test_target_defaults(self):
        target = SyncTarget(name="t", contract_address="0x" + "11" * 20, abi_path="a.json")
        assert target.enabled
        assert target.start_block == 0
        assert target.event_names is None


class TestLoadAbi:
    """Test ABI file loading."""

    def test_plain_abi_list(self, tmp_path):
        path = tmp_path / "abi.json"
        path.write_text(json.dumps([{"type": "event", "name": "Ping", "inputs": []}]))
        assert loader.load_abi(str(path))[0]["name"] == "Ping"

    def test_artifact_unwrapped(self, tmp_path):
        path = tmp_path / "Token.json"
        path.write_text(json.dumps({"contractName": "Token", "abi": [{"type": "fallback"}], "bytecode": "0x"}))
        assert loader.load_abi(str(path)) == [{"type": "fallback"}]

    def test_bundled_erc20_abi(self):
        names = [entry.get("name") for entry in loader.load_abi("abis/ERC20.json")]
        assert "Transfer" in names

    def test_missing_abi(self, tmp_path):
        with pytest.raises(RuntimeError, match="not found"):
            loader.load_abi(str(tmp_path / "missing.json"))

    def test_non_list_abi(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"name": "nope"}))
        with pytest.raises(RuntimeError):
            loader.load_abi(str(path))
