"""
Throttle for "API key missing" prompts.

Every keystroke can trigger a completion, and every completion without an
API key wants to ask the user for one. The throttle lets the first request
through and then suppresses prompts until the interval has passed.

States:
    never prompted   -> eligible
    eligible         -> recently prompted   (prompt fires, timestamp recorded)
    recently prompted -> eligible           (interval elapses)

The state lives for the process lifetime and is never persisted; a fresh
process starts out eligible.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable

from ._constants import API_KEY_PROMPT_INTERVAL_SECONDS

logger = logging.getLogger(__name__)


class CredentialPromptThrottle:
    """
    Fires the credential prompt at most once per interval.

    Args:
        prompt: Fire-and-forget callable that asks the user for a key.
            Its result is not awaited and its failures are only logged.
        interval: Minimum seconds between prompts
        clock: Monotonic clock, injectable for tests
    """

    def __init__(
        self,
        prompt: Callable[[], object],
        interval: float = API_KEY_PROMPT_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._prompt = prompt
        self._interval = interval
        self._clock = clock
        self._last_prompt: float | None = None
        self._lock = threading.Lock()

    @property
    def last_prompt(self) -> float | None:
        return self._last_prompt

    def prompt_if_needed(self, has_credential: bool) -> bool:
        """Prompt for a credential unless one exists or a prompt fired recently.

        Returns:
            True if the prompt fired on this call
        """
        if has_credential:
            return False

        with self._lock:
            now = self._clock()
            if self._last_prompt is not None and now - self._last_prompt < self._interval:
                logger.debug(
                    f"[THROTTLE] Suppressing API key prompt "
                    f"({now - self._last_prompt:.0f}s since last, interval {self._interval:.0f}s)"
                )
                return False
            self._last_prompt = now

        logger.info("[THROTTLE] API key missing, prompting user")
        try:
            self._prompt()
        except Exception as e:
            logger.warning(f"[THROTTLE] API key prompt failed: {e}")
        return True
