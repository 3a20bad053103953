"""
Tests for inventory configuration loading and validation.
"""

import logging

import pytest
import yaml

from stock_config import CONFIG_PATH_ENV, DEFAULT_CONFIG_FILE, get_active_config
from stock_config.loader import compute_checksum, load_yaml_file, parse_config
from stock_config.schema import InventoryConfig


def _write(tmp_path, data) -> str:
    path = tmp_path / "inventory.yaml"
    path.write_text(yaml.safe_dump(data))
    return str(path)


class TestDefaultConfig:

    def test_packaged_default(self, monkeypatch):
        monkeypatch.delenv(CONFIG_PATH_ENV, raising=False)
        config = get_active_config()
        assert config.config_id == "default"
        assert config.low_stock_threshold == 10
        assert config.warehouses == ("Lorenzo", "Oroquieta")
        assert config.batch_id_prefix == "BATCH"
        assert config.legacy_batch_label == "Legacy"
        assert config.checksum == compute_checksum(load_yaml_file(DEFAULT_CONFIG_FILE))

    def test_schema_defaults_match_packaged_file(self, monkeypatch):
        monkeypatch.delenv(CONFIG_PATH_ENV, raising=False)
        config = get_active_config()
        defaults = InventoryConfig()
        assert config.low_stock_threshold == defaults.low_stock_threshold
        assert config.warehouses == defaults.warehouses
        assert config.database_url == defaults.database_url

    def test_trace_logged(self, monkeypatch, captured_logs):
        monkeypatch.delenv(CONFIG_PATH_ENV, raising=False)
        get_active_config()
        trace = next(r for r in captured_logs() if r["message"] == "STOCK_CONFIG_TRACE")
        assert trace["config_id"] == "default"


class TestConfigSources:

    def test_explicit_path(self, tmp_path):
        path = _write(tmp_path, {"config_id": "staging", "inventory": {"low_stock_threshold": 5}})
        config = get_active_config(path)
        assert config.config_id == "staging"
        assert config.low_stock_threshold == 5
        assert config.warehouses == ("Lorenzo", "Oroquieta")

    def test_environment_variable(self, tmp_path, monkeypatch):
        path = _write(tmp_path, {"config_id": "from-env", "logging": {"level": "debug"}})
        monkeypatch.setenv(CONFIG_PATH_ENV, path)
        config = get_active_config()
        assert config.config_id == "from-env"
        assert config.log_level_number == logging.DEBUG

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_config(tmp_path / "nope.yaml")

    def test_top_level_must_be_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ValueError):
            load_yaml_file(path)

    def test_empty_file_uses_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert get_active_config(path).low_stock_threshold == 10

    def test_checksum_changes_with_content(self):
        assert compute_checksum({"a": 1}) != compute_checksum({"a": 2})
        assert compute_checksum({"a": 1, "b": 2}) == compute_checksum({"b": 2, "a": 1})


class TestValidation:

    @pytest.mark.parametrize(
        "data",
        [
            {"inventory": {"low_stock_threshold": -1}},
            {"inventory": {"low_stock_threshold": "ten"}},
            {"inventory": {"low_stock_threshold": True}},
            {"inventory": {"warehouses": []}},
            {"inventory": {"warehouses": ["Lorenzo", "Cebu"]}},
            {"inventory": {"warehouses": ["Lorenzo", "Lorenzo"]}},
            {"inventory": {"warehouses": "Lorenzo"}},
            {"inventory": {"batch_id_prefix": "BATCH-"}},
            {"inventory": {"legacy_batch_label": ""}},
            {"database": {"url": ""}},
            {"logging": {"level": "LOUD"}},
            {"inventory": ["not", "a", "mapping"]},
        ],
    )
    def test_invalid_values_rejected(self, data):
        with pytest.raises(ValueError):
            parse_config(data)

    def test_single_warehouse_allowed(self):
        config = parse_config({"inventory": {"warehouses": ["Oroquieta"]}})
        assert config.warehouses == ("Oroquieta",)

    def test_config_is_frozen(self):
        config = InventoryConfig()
        with pytest.raises(AttributeError):
            config.low_stock_threshold = 3
