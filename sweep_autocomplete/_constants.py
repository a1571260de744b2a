"""Constants for the Sweep inline-edit completion server.

This module defines constants used across the completion pipeline,
following the principle of single source of truth.

Timeout Philosophy:
- Inline completions are only useful while the user is still looking at the
  cursor, so the default request timeout is short (10 seconds)
- A request that outlives the user's typing is discarded by cancellation
  long before the timeout fires; the timeout only bounds hung connections
- Override via settings if the inference service is far away:
    {"sweep": {"timeout": 20}}

═══════════════════════════════════════════════════════════════════════════════
CONFIGURATION KEYS
═══════════════════════════════════════════════════════════════════════════════

All settings live under the "sweep" section of the editor configuration:
  - sweep.enabled          (bool, default True)
  - sweep.maxContextFiles  (int, default DEFAULT_MAX_CONTEXT_FILES)
  - sweep.apiKey           (str, falls back to $SWEEP_API_KEY)
  - sweep.apiUrl           (str, default DEFAULT_API_URL)
  - sweep.timeout          (seconds, default DEFAULT_TIMEOUT)
"""

CONFIG_SECTION = "sweep"

CONFIG_KEY_ENABLED = "enabled"
CONFIG_KEY_MAX_CONTEXT_FILES = "maxContextFiles"
CONFIG_KEY_API_KEY = "apiKey"
CONFIG_KEY_API_URL = "apiUrl"
CONFIG_KEY_TIMEOUT = "timeout"

API_KEY_ENV_VAR = "SWEEP_API_KEY"

# Default configuration values
DEFAULT_ENABLED = True
DEFAULT_MAX_CONTEXT_FILES = 5

DEFAULT_API_URL = "https://autocomplete.sweep.dev"
AUTOCOMPLETE_ENDPOINT = "/backend/next_edit_autocomplete"

DEFAULT_TIMEOUT = 10.0  # seconds

# Minimum time between two "API key missing" prompts
API_KEY_PROMPT_INTERVAL_SECONDS = 5 * 60.0

# Command the editor runs to collect an API key
SET_API_KEY_COMMAND = "sweep.setApiKey"

# Custom notifications exchanged with the editor
SET_API_KEY_NOTIFICATION = "sweep/setApiKey"
PUBLISH_DIAGNOSTICS_NOTIFICATION = "sweep/publishDiagnostics"

# ═══════════════════════════════════════════════════════════════════════════════
# DOCUMENT TRACKER BOUNDS
# ═══════════════════════════════════════════════════════════════════════════════
#
# The tracker keeps edit history in memory only. These bounds keep a long
# editing session from growing the request payload without limit.

MAX_DIFF_HISTORY = 20
MAX_USER_ACTIONS = 50

# Changes that insert or delete at most this many characters are recorded as
# single-character actions; anything larger is a selection edit.
SINGLE_CHAR_ACTION_LENGTH = 1

SERVER_NAME = "sweep-autocomplete"
SERVER_VERSION = "0.1.0"
