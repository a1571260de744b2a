"""
Data model for the inline-edit completion pipeline.

Two families of types live here:

- Tracker records (ContextFile, EditDiffRecord, UserAction): what the
  document tracker remembers about the editing session.
- Per-invocation payloads (CompletionRequest, CompletionResult, InlineEdit):
  built for a single completion call and discarded afterwards.

Everything is a frozen dataclass so a request cannot be mutated after it has
been handed to the client.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol

from lsprotocol.types import Diagnostic, InlineCompletionItem, Position, Range


class UserActionType(str, Enum):
    """Kind of edit the user made, as reported to the inference service."""

    INSERT_CHAR = "INSERT_CHAR"
    DELETE_CHAR = "DELETE_CHAR"
    INSERT_SELECTION = "INSERT_SELECTION"
    DELETE_SELECTION = "DELETE_SELECTION"


# ═══════════════════════════════════════════════════════════════════════════════
# Tracker records
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class ContextFile:
    """
    A recently edited buffer as held by the tracker.

    Attributes:
        filepath: Filesystem path of the buffer
        content: Full text of the buffer at its last modification
        mtime: Last modification time (seconds since the epoch)
    """

    filepath: str
    content: str
    mtime: float


@dataclass(frozen=True, slots=True)
class EditDiffRecord:
    """A single recorded edit, as a unified diff against the previous text."""

    filepath: str
    diff: str
    timestamp: float = 0.0


@dataclass(frozen=True, slots=True)
class UserAction:
    """
    One user edit, scoped to a file.

    Attributes:
        action_type: What kind of edit it was
        filepath: File the edit happened in
        line_number: Zero-based line where the edit started
        offset: Character offset where the edit started
        timestamp: When the edit was observed (seconds since the epoch)
    """

    action_type: UserActionType
    filepath: str
    line_number: int
    offset: int
    timestamp: float

    def to_payload(self) -> dict[str, Any]:
        return {
            "action_type": self.action_type.value,
            "file_path": self.filepath,
            "line_number": self.line_number,
            "offset": self.offset,
            "timestamp": self.timestamp,
        }


class ContextTracker(Protocol):
    """What the completion pipeline needs from a document tracker."""

    def get_original_content(self, uri: str) -> str | None: ...

    def get_recent_context_files(self, uri: str, limit: int) -> Sequence[ContextFile]: ...

    def get_edit_diff_history(self) -> Sequence[EditDiffRecord]: ...

    def get_user_actions(self, filename: str) -> Sequence[UserAction]: ...


# ═══════════════════════════════════════════════════════════════════════════════
# Per-invocation payloads
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class RecentBuffer:
    """A context file in the shape sent to the inference service."""

    path: str
    content: str
    mtime: float


@dataclass(frozen=True, slots=True)
class RecentChange:
    """A recorded diff in the shape sent to the inference service."""

    path: str
    diff: str


@dataclass(frozen=True, slots=True)
class DocumentSnapshot:
    """Identity and text of the document a request was built for."""

    uri: str
    path: str
    text: str


@dataclass(frozen=True, slots=True)
class CompletionRequest:
    """
    Bounded payload describing the document and recent editing history.

    Owned by the invocation that built it; discarded after dispatch.

    Attributes:
        document: The document being completed, as of assembly time
        position: Cursor position
        cursor_offset: Cursor position as a character offset into document.text
        original_content: Baseline text the current text is diffed against
        recent_buffers: At most maxContextFiles other recently edited files
        recent_changes: Recorded edit diffs, oldest first
        diagnostics: Live diagnostics for the document
        user_actions: Recent user actions in this file only
    """

    document: DocumentSnapshot
    position: Position
    cursor_offset: int
    original_content: str
    recent_buffers: tuple[RecentBuffer, ...] = field(default_factory=tuple)
    recent_changes: tuple[RecentChange, ...] = field(default_factory=tuple)
    diagnostics: tuple[Diagnostic, ...] = field(default_factory=tuple)
    user_actions: tuple[UserAction, ...] = field(default_factory=tuple)


@dataclass(frozen=True, slots=True)
class CompletionResult:
    """
    Completion returned by the inference service.

    start_index and end_index are character offsets into the document text.
    They are only meaningful until translated into positions, which must
    happen exactly once, against the document state at translation time.
    """

    completion: str
    start_index: int
    end_index: int

    def fits(self, length: int) -> bool:
        """Whether the offsets form a valid range in a text of ``length`` characters."""
        return 0 <= self.start_index <= self.end_index <= length


@dataclass(frozen=True, slots=True)
class InlineEdit:
    """
    An edit suggestion anchored to document positions.

    is_inline_edit marks the suggestion as a replace-range edit rather than
    a plain insertion at the cursor.
    """

    insert_text: str
    range: Range
    is_inline_edit: bool = True

    def to_lsp(self) -> InlineCompletionItem:
        return InlineCompletionItem(insert_text=self.insert_text, range=self.range)
