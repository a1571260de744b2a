"""
Configuration gate for the completion pipeline.

Settings are read fresh on every completion so that changes the user makes
in the editor take effect on the very next keystroke. Nothing is cached.

The store mirrors the editor's configuration: the language server fills it
from initializationOptions and workspace/didChangeConfiguration, keyed by
section ("sweep") and setting name ("enabled", "maxContextFiles", ...).
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from ._constants import (
    CONFIG_KEY_ENABLED,
    CONFIG_KEY_MAX_CONTEXT_FILES,
    CONFIG_SECTION,
    DEFAULT_ENABLED,
    DEFAULT_MAX_CONTEXT_FILES,
)

logger = logging.getLogger(__name__)


class ConfigurationStore:
    """Process-wide namespaced settings, as last reported by the editor."""

    def __init__(self, settings: Mapping[str, Any] | None = None):
        self._sections: dict[str, dict[str, Any]] = {}
        self._lock = threading.Lock()
        if settings:
            self.update(settings)

    def get(self, section: str, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._sections.get(section, {}).get(key, default)

    def set(self, section: str, key: str, value: Any) -> None:
        with self._lock:
            self._sections.setdefault(section, {})[key] = value

    def update(self, settings: Mapping[str, Any] | None) -> None:
        """
        Merge editor settings into the store.

        Accepts either nested sections ({"sweep": {"enabled": False}}) or
        dotted keys ({"sweep.enabled": False}). Anything else is ignored.
        """
        if not isinstance(settings, Mapping):
            return

        with self._lock:
            for name, value in settings.items():
                if isinstance(value, Mapping):
                    self._sections.setdefault(name, {}).update(value)
                elif isinstance(name, str) and "." in name:
                    section, key = name.split(".", 1)
                    self._sections.setdefault(section, {})[key] = value

        logger.debug(f"[CONFIG] Settings updated, sections: {sorted(self._sections)}")


@dataclass(frozen=True, slots=True)
class SweepSettings:
    """Settings snapshot taken once per completion."""

    enabled: bool
    max_context_files: int


class ConfigurationGate:
    """Reads the two settings that govern whether and how completions run."""

    def __init__(self, store: ConfigurationStore, section: str = CONFIG_SECTION):
        self._store = store
        self._section = section

    def is_enabled(self) -> bool:
        # Fails open: a missing or unreadable setting leaves completions on
        try:
            value = self._store.get(self._section, CONFIG_KEY_ENABLED, DEFAULT_ENABLED)
        except Exception as e:
            logger.warning(f"[CONFIG] Could not read {self._section}.{CONFIG_KEY_ENABLED}: {e}")
            return DEFAULT_ENABLED
        if isinstance(value, bool):
            return value
        return DEFAULT_ENABLED

    def get_max_context_files(self) -> int:
        try:
            value = self._store.get(
                self._section, CONFIG_KEY_MAX_CONTEXT_FILES, DEFAULT_MAX_CONTEXT_FILES
            )
        except Exception as e:
            logger.warning(
                f"[CONFIG] Could not read {self._section}.{CONFIG_KEY_MAX_CONTEXT_FILES}: {e}"
            )
            return DEFAULT_MAX_CONTEXT_FILES

        # bool is an int subclass; True is not a file count
        if isinstance(value, bool):
            return DEFAULT_MAX_CONTEXT_FILES
        if isinstance(value, float) and value.is_integer():
            value = int(value)
        if isinstance(value, int) and value >= 0:
            return value
        return DEFAULT_MAX_CONTEXT_FILES

    def snapshot(self) -> SweepSettings:
        return SweepSettings(
            enabled=self.is_enabled(),
            max_context_files=self.get_max_context_files(),
        )
