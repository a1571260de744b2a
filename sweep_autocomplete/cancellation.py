"""Cooperative cancellation for completion requests."""

from __future__ import annotations

import threading


class CancellationToken:
    """
    Poll-able flag telling an in-flight completion its result is unwanted.

    The host creates one token per request and cancels it when the user keeps
    typing or the editor withdraws the request. The provider polls it before
    dispatching and again after the response arrives; nothing is interrupted
    preemptively.
    """

    __slots__ = ("_event",)

    def __init__(self) -> None:
        self._event = threading.Event()

    @property
    def is_cancellation_requested(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    def __repr__(self) -> str:
        return f"CancellationToken(cancelled={self.is_cancellation_requested})"
