"""
Sweep Autocomplete: next-edit inline completions over the Language Server Protocol.

This package answers textDocument/inlineCompletion requests by sending the
document, its original content and recent editing history to the Sweep
inference service, and returning the suggested edit as a replace-range
inline completion.

Pattern: Stateless Orchestrator
- Each completion is an independent, short-lived pipeline run
- The document tracker holds the editing history between runs
- The only state shared between runs is the API key prompt throttle

Usage:
    Run the server from an editor's LSP client configuration:

    ```bash
    sweep-autocomplete            # stdio
    sweep-autocomplete --tcp --port 2087
    ```

    Settings (sent as initializationOptions or didChangeConfiguration):

    ```json
    {"sweep": {"enabled": true, "maxContextFiles": 5, "apiKey": "..."}}
    ```

Prerequisites:
    - A Sweep API key, via the sweep.setApiKey command, the sweep.apiKey
      setting, or the SWEEP_API_KEY environment variable
"""

from __future__ import annotations

from .cancellation import CancellationToken
from .client import SweepApiClient
from .config import ConfigurationGate, ConfigurationStore, SweepSettings
from .context import ContextAssembler
from .document import EditorDocument, TextDocument, WorkspaceDocument
from .exceptions import (
    SweepAuthenticationError,
    SweepConnectionError,
    SweepError,
    SweepRateLimitError,
    SweepResponseError,
    SweepTimeoutError,
)
from .models import (
    CompletionRequest,
    CompletionResult,
    ContextFile,
    EditDiffRecord,
    InlineEdit,
    RecentBuffer,
    RecentChange,
    UserAction,
    UserActionType,
)
from .provider import InlineEditProvider
from .server import create_server, main
from .throttle import CredentialPromptThrottle
from .tracking import DocumentTracker

# Module exports
__all__ = [
    # Main exports
    "InlineEditProvider",
    "create_server",
    "main",
    # Pipeline components
    "ConfigurationGate",
    "ConfigurationStore",
    "SweepSettings",
    "CredentialPromptThrottle",
    "ContextAssembler",
    "CancellationToken",
    "SweepApiClient",
    "DocumentTracker",
    # Documents
    "EditorDocument",
    "TextDocument",
    "WorkspaceDocument",
    # Data model
    "CompletionRequest",
    "CompletionResult",
    "ContextFile",
    "EditDiffRecord",
    "InlineEdit",
    "RecentBuffer",
    "RecentChange",
    "UserAction",
    "UserActionType",
    # Exceptions
    "SweepError",
    "SweepAuthenticationError",
    "SweepConnectionError",
    "SweepRateLimitError",
    "SweepResponseError",
    "SweepTimeoutError",
]

__version__ = "0.1.0"
