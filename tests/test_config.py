"""
Tests for ConfigurationStore and ConfigurationGate.
"""

from unittest.mock import Mock

import pytest

from sweep_autocomplete._constants import DEFAULT_MAX_CONTEXT_FILES
from sweep_autocomplete.config import ConfigurationGate, ConfigurationStore, SweepSettings


class TestConfigurationStore:
    def test_nested_sections(self):
        store = ConfigurationStore({"sweep": {"enabled": False, "maxContextFiles": 3}})
        assert store.get("sweep", "enabled") is False
        assert store.get("sweep", "maxContextFiles") == 3

    def test_dotted_keys(self):
        store = ConfigurationStore({"sweep.enabled": False})
        assert store.get("sweep", "enabled") is False

    def test_update_merges(self):
        store = ConfigurationStore({"sweep": {"enabled": False, "apiKey": "k"}})
        store.update({"sweep": {"enabled": True}})
        assert store.get("sweep", "enabled") is True
        assert store.get("sweep", "apiKey") == "k"

    def test_default_for_missing(self):
        store = ConfigurationStore()
        assert store.get("sweep", "enabled", "fallback") == "fallback"

    @pytest.mark.parametrize("settings", [None, [], "sweep", 3])
    def test_update_ignores_non_mappings(self, settings):
        store = ConfigurationStore()
        store.update(settings)
        assert store.get("sweep", "enabled") is None

    def test_set(self):
        store = ConfigurationStore()
        store.set("sweep", "apiKey", "k")
        assert store.get("sweep", "apiKey") == "k"


class TestIsEnabled:
    def test_default_true(self):
        assert ConfigurationGate(ConfigurationStore()).is_enabled() is True

    def test_explicit_false(self):
        store = ConfigurationStore({"sweep": {"enabled": False}})
        assert ConfigurationGate(store).is_enabled() is False

    @pytest.mark.parametrize("value", ["no", 0, None, {}])
    def test_non_bool_fails_open(self, value):
        store = ConfigurationStore({"sweep": {"enabled": value}})
        assert ConfigurationGate(store).is_enabled() is True

    def test_unreadable_store_fails_open(self):
        store = Mock()
        store.get.side_effect = RuntimeError("storage unavailable")
        assert ConfigurationGate(store).is_enabled() is True

    def test_read_fresh_every_call(self):
        store = ConfigurationStore()
        gate = ConfigurationGate(store)
        assert gate.is_enabled() is True
        store.set("sweep", "enabled", False)
        assert gate.is_enabled() is False


class TestMaxContextFiles:
    def test_default(self):
        gate = ConfigurationGate(ConfigurationStore())
        assert gate.get_max_context_files() == DEFAULT_MAX_CONTEXT_FILES

    @pytest.mark.parametrize("value, expected", [(0, 0), (2, 2), (12, 12), (4.0, 4)])
    def test_valid_values(self, value, expected):
        store = ConfigurationStore({"sweep": {"maxContextFiles": value}})
        assert ConfigurationGate(store).get_max_context_files() == expected

    @pytest.mark.parametrize("value", [-1, 2.5, "3", True, None])
    def test_invalid_values_use_default(self, value):
        store = ConfigurationStore({"sweep": {"maxContextFiles": value}})
        assert ConfigurationGate(store).get_max_context_files() == DEFAULT_MAX_CONTEXT_FILES

    def test_unreadable_store_uses_default(self):
        store = Mock()
        store.get.side_effect = RuntimeError("storage unavailable")
        assert ConfigurationGate(store).get_max_context_files() == DEFAULT_MAX_CONTEXT_FILES


class TestSnapshot:
    def test_snapshot(self):
        store = ConfigurationStore({"sweep": {"enabled": False, "maxContextFiles": 1}})
        assert ConfigurationGate(store).snapshot() == SweepSettings(
            enabled=False, max_context_files=1
        )

    def test_custom_section(self):
        store = ConfigurationStore({"other": {"enabled": False}})
        assert ConfigurationGate(store, section="other").is_enabled() is False
