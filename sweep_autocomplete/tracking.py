"""
In-memory document tracker.

Remembers, for the lifetime of the language server process:
- the content each document had when it was first opened (the baseline
  completions are diffed against)
- the current text and modification time of every open buffer
- a bounded history of edits as unified diffs
- a bounded, per-file list of user actions derived from change events

Nothing is persisted; closing a document forgets its baseline.
"""

from __future__ import annotations

import difflib
import logging
import time
from collections import deque
from collections.abc import Callable, Iterable, Sequence
from typing import Any

from pygls.workspace import PositionCodec

from ._constants import MAX_DIFF_HISTORY, MAX_USER_ACTIONS, SINGLE_CHAR_ACTION_LENGTH
from .document import offset_at
from .models import ContextFile, EditDiffRecord, UserAction, UserActionType

logger = logging.getLogger(__name__)


def unified_diff(path: str, before: str, after: str) -> str:
    """Unified diff between two versions of a file, or "" if they are equal."""
    if before == after:
        return ""
    return "".join(
        difflib.unified_diff(
            before.splitlines(keepends=True),
            after.splitlines(keepends=True),
            fromfile=path,
            tofile=path,
        )
    )


def apply_change(text: str, change: Any, codec: PositionCodec | None = None) -> str:
    """Apply one LSP content change event to ``text``."""
    new_text = getattr(change, "text", "") or ""
    change_range = getattr(change, "range", None)
    if change_range is None:
        return new_text
    start = offset_at(text, change_range.start, codec)
    end = offset_at(text, change_range.end, codec)
    return text[:start] + new_text + text[end:]


def classify_change(
    change: Any, previous_text: str, codec: PositionCodec | None = None
) -> tuple[UserActionType, int, int] | None:
    """
    Classify one LSP content change event.

    Returns (action type, start line, start offset), or None for whole-document
    replacements, which carry no range to classify.
    """
    change_range = getattr(change, "range", None)
    if change_range is None:
        return None

    start = offset_at(previous_text, change_range.start, codec)
    end = offset_at(previous_text, change_range.end, codec)
    removed = end - start
    inserted = len(getattr(change, "text", "") or "")

    if inserted and inserted >= removed:
        action = (
            UserActionType.INSERT_CHAR
            if inserted <= SINGLE_CHAR_ACTION_LENGTH and not removed
            else UserActionType.INSERT_SELECTION
        )
    elif removed:
        action = (
            UserActionType.DELETE_CHAR
            if removed <= SINGLE_CHAR_ACTION_LENGTH and not inserted
            else UserActionType.DELETE_SELECTION
        )
    else:
        return None

    return action, change_range.start.line, start


class DocumentTracker:
    """
    Tracks open documents and their edit history.

    Args:
        max_diff_history: Number of edit diffs kept across all files
        max_user_actions: Number of user actions kept per file
        clock: Wall clock used for modification times, injectable for tests
    """

    def __init__(
        self,
        max_diff_history: int = MAX_DIFF_HISTORY,
        max_user_actions: int = MAX_USER_ACTIONS,
        clock: Callable[[], float] = time.time,
    ):
        self._clock = clock
        self._max_user_actions = max_user_actions
        self._original: dict[str, str] = {}
        self._buffers: dict[str, ContextFile] = {}
        self._diffs: deque[EditDiffRecord] = deque(maxlen=max_diff_history)
        self._actions: dict[str, deque[UserAction]] = {}

    # ═══════════════════════════════════════════════════════════════════════════
    # Recording
    # ═══════════════════════════════════════════════════════════════════════════

    def open_document(self, uri: str, path: str, text: str) -> None:
        """Start tracking a document; the first text seen becomes its baseline."""
        self._original.setdefault(uri, text)
        self._buffers[uri] = ContextFile(filepath=path, content=text, mtime=self._clock())
        logger.debug(f"[TRACKER] Opened {uri} ({len(text)} chars)")

    def update_document(
        self,
        uri: str,
        path: str,
        text: str,
        changes: Iterable[Any] = (),
        position_codec: PositionCodec | None = None,
    ) -> None:
        """
        Record a new version of a document.

        Args:
            uri: Document URI
            path: Filesystem path of the document
            text: Full text after the changes were applied
            changes: LSP content change events that produced ``text``, in order
            position_codec: Codec the change ranges are encoded in (UTF-16 by default)
        """
        if uri not in self._buffers:
            self.open_document(uri, path, text)
            return

        previous = self._buffers[uri].content
        now = self._clock()

        diff = unified_diff(path, previous, text)
        if diff:
            self._diffs.append(EditDiffRecord(filepath=path, diff=diff, timestamp=now))

        self._record_actions(path, previous, changes, now, position_codec)
        self._buffers[uri] = ContextFile(filepath=path, content=text, mtime=now)

    def close_document(self, uri: str) -> None:
        self._buffers.pop(uri, None)
        self._original.pop(uri, None)
        logger.debug(f"[TRACKER] Closed {uri}")

    def _record_actions(
        self,
        path: str,
        previous: str,
        changes: Iterable[Any],
        now: float,
        codec: PositionCodec | None,
    ) -> None:
        actions = self._actions.get(path)
        if actions is None:
            actions = self._actions[path] = deque(maxlen=self._max_user_actions)

        # Each change's range refers to the text left by the changes before it
        running = previous
        for change in changes:
            classified = classify_change(change, running, codec)
            running = apply_change(running, change, codec)
            if classified is None:
                continue
            action_type, line_number, offset = classified
            actions.append(
                UserAction(
                    action_type=action_type,
                    filepath=path,
                    line_number=line_number,
                    offset=offset,
                    timestamp=now,
                )
            )

    # ═══════════════════════════════════════════════════════════════════════════
    # Queries
    # ═══════════════════════════════════════════════════════════════════════════

    def get_original_content(self, uri: str) -> str | None:
        return self._original.get(uri)

    def get_recent_context_files(self, uri: str, limit: int) -> Sequence[ContextFile]:
        """Other open buffers, most recently modified first, at most ``limit``."""
        if limit <= 0:
            return []
        others = [buffer for key, buffer in self._buffers.items() if key != uri]
        others.sort(key=lambda buffer: buffer.mtime, reverse=True)
        return others[:limit]

    def get_edit_diff_history(self) -> Sequence[EditDiffRecord]:
        return list(self._diffs)

    def get_user_actions(self, filename: str) -> Sequence[UserAction]:
        return list(self._actions.get(filename, ()))
