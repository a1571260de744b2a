"""
Context assembly for completion requests.

Shapes what the document tracker remembers into a bounded CompletionRequest.
Relevance ordering is the tracker's job; the assembler only enforces the
file-count bound and the shape of each element. Empty collections pass
through as they are: an empty history must not be padded with anything the
model could mistake for real context.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence

from lsprotocol.types import Diagnostic, Position

from .document import EditorDocument
from .models import CompletionRequest, ContextTracker, RecentBuffer, RecentChange

logger = logging.getLogger(__name__)

DiagnosticsSource = Callable[[str], Sequence[Diagnostic]]


class ContextAssembler:
    """
    Builds CompletionRequest payloads from tracker state.

    Args:
        tracker: Source of original content, recent files, diffs and actions
        diagnostics: Returns the live diagnostics for a document URI; called
            on every assembly so the request reflects the latest analysis
    """

    def __init__(self, tracker: ContextTracker, diagnostics: DiagnosticsSource):
        self._tracker = tracker
        self._diagnostics = diagnostics

    def assemble(
        self,
        document: EditorDocument,
        position: Position,
        original_content: str,
        max_context_files: int,
    ) -> CompletionRequest:
        uri = document.uri
        limit = max(0, max_context_files)

        recent_files = self._tracker.get_recent_context_files(uri, limit)
        recent_buffers = tuple(
            RecentBuffer(path=file.filepath, content=file.content, mtime=file.mtime)
            for file in list(recent_files)[:limit]
        )

        recent_changes = tuple(
            RecentChange(path=record.filepath, diff=record.diff)
            for record in self._tracker.get_edit_diff_history()
        )

        user_actions = tuple(self._tracker.get_user_actions(document.path))
        diagnostics = tuple(self._diagnostics(uri))

        logger.debug(
            f"[CONTEXT] Assembled request for {uri}: "
            f"buffers={len(recent_buffers)}/{limit}, changes={len(recent_changes)}, "
            f"actions={len(user_actions)}, diagnostics={len(diagnostics)}"
        )

        return CompletionRequest(
            document=document.snapshot(),
            position=position,
            cursor_offset=document.offset_at(position),
            original_content=original_content,
            recent_buffers=recent_buffers,
            recent_changes=recent_changes,
            diagnostics=diagnostics,
            user_actions=user_actions,
        )
