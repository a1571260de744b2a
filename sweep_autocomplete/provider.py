"""
Inline-edit completion provider.

This module implements the completion request pipeline that sits between
the editor and the Sweep inference service:

    gate -> credential -> change detection -> cancellation
         -> context assembly -> dispatch -> cancellation -> edit

Every call is independent and short-lived. The only suspension point is the
HTTP call; everything before and after it runs to completion. The editor
fires completions much faster than the network answers, so the provider
checks the cancellation token before dispatching and again before turning a
response into an edit, and it anchors the edit against the document as it is
*after* the response arrived.

The provider is the single catch boundary for the pipeline: nothing raised
by assembly or by the client escapes to the editor. A failed completion is
the same as no completion.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any

from lsprotocol.types import Position, Range

from .cancellation import CancellationToken
from .config import ConfigurationGate
from .context import ContextAssembler
from .document import EditorDocument
from .exceptions import SweepError
from .models import ContextTracker, InlineEdit
from .throttle import CredentialPromptThrottle

logger = logging.getLogger(__name__)


class InlineEditProvider:
    """
    Produces at most one inline edit per completion request.

    Attributes:
        tracker: Source of the original-content baseline
        api_client: Object with an ``api_key`` property and an async
            ``get_autocomplete(request)`` method
        config: Gate for sweep.enabled / sweep.maxContextFiles
        throttle: Rate limiter for "API key missing" prompts
        assembler: Builds the request payload

    Example:
        >>> provider = InlineEditProvider(tracker, client, gate, throttle, assembler)
        >>> edit = await provider.provide(document, position, token)
        >>> if edit is not None:
        ...     item = edit.to_lsp()
    """

    def __init__(
        self,
        tracker: ContextTracker,
        api_client: Any,  # SweepApiClient
        config: ConfigurationGate,
        throttle: CredentialPromptThrottle,
        assembler: ContextAssembler,
    ):
        self._tracker = tracker
        self._api = api_client
        self._config = config
        self._throttle = throttle
        self._assembler = assembler

        # NOTE on semantics:
        # - _request_count counts every provide() call, including gated ones
        # - _dispatch_count counts calls that reached the inference service
        # - _completion_count counts edits actually returned to the editor
        # - _cancelled_count counts calls dropped at either cancellation check
        # - _error_count counts calls that failed in assembly or dispatch
        self._request_count: int = 0
        self._dispatch_count: int = 0
        self._completion_count: int = 0
        self._cancelled_count: int = 0
        self._error_count: int = 0
        self._total_response_time_ms: float = 0.0

    async def provide(
        self,
        document: EditorDocument,
        position: Position,
        token: CancellationToken,
    ) -> InlineEdit | None:
        """
        Run the completion pipeline for one request.

        Args:
            document: Live view of the document being edited
            position: Cursor position
            token: Cancellation token for this request

        Returns:
            InlineEdit replacing the returned range, or None. Never raises
            (other than asyncio.CancelledError from the host's own task).
        """
        self._request_count += 1
        uri = document.uri

        try:
            settings = self._config.snapshot()
            if not settings.enabled:
                return None

            if not self._api.api_key:
                self._throttle.prompt_if_needed(False)
                return None

            current_content = document.text
            original_content = self._tracker.get_original_content(uri)
            if original_content is None:
                # Untracked documents are their own baseline
                original_content = current_content

            if current_content == original_content:
                return None

            if token.is_cancellation_requested:
                self._cancelled_count += 1
                return None

            request = self._assembler.assemble(
                document, position, original_content, settings.max_context_files
            )

            self._dispatch_count += 1
            start_time = time.time()
            result = await self._api.get_autocomplete(request)
            self._total_response_time_ms += (time.time() - start_time) * 1000

            if token.is_cancellation_requested:
                self._cancelled_count += 1
                logger.debug(f"[PROVIDER] Discarding completion for {uri}: request cancelled")
                return None

            if result is None or not result.completion:
                return None

            # Offsets are anchored against the text as it is now, which may
            # have changed while the request was in flight
            current_text = document.text
            if not result.fits(len(current_text)):
                logger.warning(
                    f"[PROVIDER] Discarding completion for {uri}: range "
                    f"[{result.start_index}, {result.end_index}) outside document "
                    f"of {len(current_text)} chars"
                )
                return None

            edit = InlineEdit(
                insert_text=result.completion,
                range=Range(
                    start=document.position_at(result.start_index),
                    end=document.position_at(result.end_index),
                ),
            )
            self._completion_count += 1
            return edit

        except asyncio.CancelledError:
            self._cancelled_count += 1
            raise
        except SweepError as e:
            self._error_count += 1
            logger.warning(f"[PROVIDER] Completion failed for {uri}: {type(e).__name__}: {e}")
            return None
        except Exception as e:
            self._error_count += 1
            logger.exception(f"[PROVIDER] Unexpected error for {uri}: {type(e).__name__}: {e}")
            return None

    def get_metrics(self) -> dict[str, Any]:
        """
        Return counters for monitoring and debugging.

        Note on semantics:
            - avg_response_time_ms averages over dispatched requests only
        """
        return {
            "total_requests": self._request_count,
            "dispatched": self._dispatch_count,
            "completions": self._completion_count,
            "cancelled": self._cancelled_count,
            "errors": self._error_count,
            "avg_response_time_ms": self._total_response_time_ms / max(self._dispatch_count, 1),
        }
