"""
sweep-autocomplete: language server for Sweep next-edit completions.

Features:
- textDocument/inlineCompletion backed by the Sweep inference service
- Document tracking from didOpen / didChange / didClose
- Live settings from initializationOptions and didChangeConfiguration
- Throttled "API key missing" prompts and a sweep.setApiKey command

The editor-facing logic lives in CompletionService, which knows nothing
about pygls; create_server() wires it to a pygls LanguageServer.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from collections.abc import Callable, Mapping, Sequence
from typing import Any

from lsprotocol import converters
from lsprotocol.types import (
    INITIALIZE,
    SHUTDOWN,
    TEXT_DOCUMENT_DID_CHANGE,
    TEXT_DOCUMENT_DID_CLOSE,
    TEXT_DOCUMENT_DID_OPEN,
    TEXT_DOCUMENT_INLINE_COMPLETION,
    WORKSPACE_DID_CHANGE_CONFIGURATION,
    Diagnostic,
    DidChangeConfigurationParams,
    DidChangeTextDocumentParams,
    DidCloseTextDocumentParams,
    DidOpenTextDocumentParams,
    InitializeParams,
    InlineCompletionList,
    InlineCompletionOptions,
    InlineCompletionParams,
    MessageType,
    Position,
)
from pygls.server import LanguageServer

from ._constants import (
    CONFIG_KEY_API_KEY,
    CONFIG_SECTION,
    PUBLISH_DIAGNOSTICS_NOTIFICATION,
    SERVER_NAME,
    SERVER_VERSION,
    SET_API_KEY_COMMAND,
    SET_API_KEY_NOTIFICATION,
)
from .cancellation import CancellationToken
from .client import SweepApiClient
from .config import ConfigurationGate, ConfigurationStore
from .context import ContextAssembler
from .document import EditorDocument, WorkspaceDocument
from .provider import InlineEditProvider
from .throttle import CredentialPromptThrottle
from .tracking import DocumentTracker

logger = logging.getLogger(__name__)

_converter = converters.get_converter()


def to_plain(value: Any) -> Any:
    """Turn pygls' namedtuple-style params for custom methods back into JSON data."""
    if hasattr(value, "_asdict"):
        return {key: to_plain(item) for key, item in value._asdict().items()}
    if isinstance(value, Mapping):
        return {key: to_plain(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_plain(item) for item in value]
    return value


class DiagnosticsCollection:
    """Latest diagnostics the editor reported for each document."""

    def __init__(self) -> None:
        self._by_uri: dict[str, tuple[Diagnostic, ...]] = {}

    def set(self, uri: str, diagnostics: Sequence[Diagnostic]) -> None:
        self._by_uri[uri] = tuple(diagnostics)

    def clear(self, uri: str) -> None:
        self._by_uri.pop(uri, None)

    def get(self, uri: str) -> tuple[Diagnostic, ...]:
        return self._by_uri.get(uri, ())


class CompletionService:
    """
    Editor-facing state of one language server process.

    Owns the settings store, tracker, diagnostics and client, and keeps one
    cancellation token per document for the newest in-flight completion.
    A newer request or an edit to the document cancels the older token.

    Args:
        prompt: Fire-and-forget callable asking the user for an API key
        store: Settings store (a fresh one by default)
        tracker: Document tracker (a fresh one by default)
        api_client: Inference client (an httpx-backed SweepApiClient by default)
        throttle: Prompt throttle (wraps ``prompt`` by default)
    """

    def __init__(
        self,
        prompt: Callable[[], object],
        store: ConfigurationStore | None = None,
        tracker: DocumentTracker | None = None,
        api_client: Any | None = None,
        throttle: CredentialPromptThrottle | None = None,
    ):
        self.store = store or ConfigurationStore()
        self.tracker = tracker or DocumentTracker()
        self.diagnostics = DiagnosticsCollection()
        self.api_client = api_client or SweepApiClient(self.store)
        self.provider = InlineEditProvider(
            tracker=self.tracker,
            api_client=self.api_client,
            config=ConfigurationGate(self.store),
            throttle=throttle or CredentialPromptThrottle(prompt),
            assembler=ContextAssembler(self.tracker, self.diagnostics.get),
        )
        self._inflight: dict[str, CancellationToken] = {}

    # ── Settings ───────────────────────────────────────────────────────

    def update_settings(self, settings: Any) -> None:
        self.store.update(to_plain(settings))

    def set_api_key(self, api_key: str) -> None:
        self.store.set(CONFIG_SECTION, CONFIG_KEY_API_KEY, api_key)
        logger.info("[SERVER] API key updated")

    # ── Documents ──────────────────────────────────────────────────────

    def did_open(self, uri: str, path: str, text: str) -> None:
        self.tracker.open_document(uri, path, text)

    def did_change(
        self,
        uri: str,
        path: str,
        text: str,
        changes: Sequence[Any] = (),
        position_codec: Any = None,
    ) -> None:
        self.cancel_inflight(uri)
        self.tracker.update_document(uri, path, text, changes, position_codec)

    def did_close(self, uri: str) -> None:
        self.cancel_inflight(uri)
        self.tracker.close_document(uri)
        self.diagnostics.clear(uri)

    def publish_diagnostics(self, params: Any) -> None:
        data = to_plain(params) or {}
        uri = data.get("uri")
        if not uri:
            logger.debug("[SERVER] Ignoring diagnostics without a uri")
            return
        try:
            diagnostics = [
                _converter.structure(item, Diagnostic) for item in data.get("diagnostics", [])
            ]
        except Exception as e:
            logger.warning(f"[SERVER] Ignoring malformed diagnostics for {uri}: {e}")
            return
        self.diagnostics.set(uri, diagnostics)

    # ── Completions ────────────────────────────────────────────────────

    def cancel_inflight(self, uri: str) -> None:
        token = self._inflight.pop(uri, None)
        if token is not None:
            token.cancel()

    async def inline_completion(
        self, document: EditorDocument, position: Position
    ) -> InlineCompletionList | None:
        uri = document.uri
        self.cancel_inflight(uri)
        token = CancellationToken()
        self._inflight[uri] = token

        try:
            edit = await self.provider.provide(document, position, token)
        except asyncio.CancelledError:
            token.cancel()
            raise
        finally:
            if self._inflight.get(uri) is token:
                del self._inflight[uri]

        if edit is None:
            return None
        return InlineCompletionList(items=[edit.to_lsp()])

    async def close(self) -> None:
        for uri in list(self._inflight):
            self.cancel_inflight(uri)
        close = getattr(self.api_client, "close", None)
        if close is not None:
            await close()


class SweepLanguageServer(LanguageServer):
    """pygls server carrying a CompletionService."""

    def __init__(self, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.service = CompletionService(prompt=self.prompt_for_api_key)

    def prompt_for_api_key(self) -> None:
        self.show_message(
            "Sweep API key is not set. Run the 'Sweep: Set API Key' command.",
            MessageType.Warning,
        )
        self.send_notification(SET_API_KEY_NOTIFICATION, {"command": SET_API_KEY_COMMAND})


def create_server() -> SweepLanguageServer:
    """Build the language server and register its handlers."""
    server = SweepLanguageServer(SERVER_NAME, SERVER_VERSION)

    @server.feature(INITIALIZE)
    def initialize(ls: SweepLanguageServer, params: InitializeParams) -> None:
        ls.service.update_settings(params.initialization_options)

    @server.feature(WORKSPACE_DID_CHANGE_CONFIGURATION)
    def did_change_configuration(
        ls: SweepLanguageServer, params: DidChangeConfigurationParams
    ) -> None:
        ls.service.update_settings(params.settings)

    @server.feature(TEXT_DOCUMENT_DID_OPEN)
    def did_open(ls: SweepLanguageServer, params: DidOpenTextDocumentParams) -> None:
        document = ls.workspace.get_text_document(params.text_document.uri)
        ls.service.did_open(document.uri, document.path, document.source)

    @server.feature(TEXT_DOCUMENT_DID_CHANGE)
    def did_change(ls: SweepLanguageServer, params: DidChangeTextDocumentParams) -> None:
        document = ls.workspace.get_text_document(params.text_document.uri)
        ls.service.did_change(
            document.uri,
            document.path,
            document.source,
            params.content_changes,
            getattr(document, "position_codec", None),
        )

    @server.feature(TEXT_DOCUMENT_DID_CLOSE)
    def did_close(ls: SweepLanguageServer, params: DidCloseTextDocumentParams) -> None:
        ls.service.did_close(params.text_document.uri)

    @server.feature(PUBLISH_DIAGNOSTICS_NOTIFICATION)
    def publish_diagnostics(ls: SweepLanguageServer, params: Any) -> None:
        ls.service.publish_diagnostics(params)

    @server.feature(TEXT_DOCUMENT_INLINE_COMPLETION, InlineCompletionOptions())
    async def inline_completion(
        ls: SweepLanguageServer, params: InlineCompletionParams
    ) -> InlineCompletionList | None:
        document = WorkspaceDocument(ls.workspace.get_text_document(params.text_document.uri))
        return await ls.service.inline_completion(document, params.position)

    @server.command(SET_API_KEY_COMMAND)
    def set_api_key(ls: SweepLanguageServer, args: Any) -> None:
        values = to_plain(args) or []
        api_key = values[0] if values else None
        if not isinstance(api_key, str) or not api_key.strip():
            ls.show_message("Usage: sweep.setApiKey <api key>", MessageType.Error)
            return
        ls.service.set_api_key(api_key.strip())

    @server.feature(SHUTDOWN)
    async def shutdown(ls: SweepLanguageServer, params: Any) -> None:
        await ls.service.close()

    return server


def main(argv: Sequence[str] | None = None) -> None:
    """Start the language server on stdio or TCP."""
    parser = argparse.ArgumentParser(prog=SERVER_NAME, description=__doc__.splitlines()[1])
    parser.add_argument("--tcp", action="store_true", help="Serve over TCP instead of stdio")
    parser.add_argument("--host", default="127.0.0.1", help="TCP host (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, default=2087, help="TCP port (default: 2087)")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )
    args = parser.parse_args(argv)

    # stdout carries the protocol; logs go to stderr
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    server = create_server()
    if args.tcp:
        logger.info(f"[SERVER] Listening on {args.host}:{args.port}")
        server.start_tcp(args.host, args.port)
    else:
        logger.info("[SERVER] Serving on stdio")
        server.start_io()


if __name__ == "__main__":
    main()
