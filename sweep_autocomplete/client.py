"""
HTTP client for the Sweep autocomplete service.

This module provides a thin wrapper around httpx.AsyncClient with lazy
initialization, error translation to domain-specific exceptions, and
logging that never includes the API key or document bodies.

One POST per completion; the wrapper holds no per-request state, so any
number of completions may be in flight on the same client.
"""

from __future__ import annotations

import asyncio
import logging
import os
from typing import Any

import httpx
from lsprotocol import converters

from ._constants import (
    API_KEY_ENV_VAR,
    AUTOCOMPLETE_ENDPOINT,
    CONFIG_KEY_API_KEY,
    CONFIG_KEY_API_URL,
    CONFIG_KEY_TIMEOUT,
    CONFIG_SECTION,
    DEFAULT_API_URL,
    DEFAULT_TIMEOUT,
)
from .config import ConfigurationStore
from .exceptions import (
    SweepAuthenticationError,
    SweepConnectionError,
    SweepRateLimitError,
    SweepResponseError,
    SweepTimeoutError,
    parse_retry_after,
)
from .models import CompletionRequest, CompletionResult

logger = logging.getLogger(__name__)

_converter = converters.get_converter()


def build_payload(request: CompletionRequest) -> dict[str, Any]:
    """Serialize a CompletionRequest into the service's JSON body."""
    document = request.document
    return {
        "file_path": document.path,
        "file_contents": document.text,
        "original_file_contents": request.original_content,
        "cursor_position": request.cursor_offset,
        "recent_changes": [
            {"file_path": change.path, "diff": change.diff} for change in request.recent_changes
        ],
        "file_chunks": [
            {"file_path": buffer.path, "content": buffer.content, "mtime": buffer.mtime}
            for buffer in request.recent_buffers
        ],
        "recent_user_actions": [action.to_payload() for action in request.user_actions],
        "editor_diagnostics": [_converter.unstructure(d) for d in request.diagnostics],
    }


def parse_result(data: Any) -> CompletionResult | None:
    """
    Read an autocomplete response body.

    Returns None when the service has nothing to suggest (empty body or
    null completion).

    Raises:
        SweepResponseError: If the body is not a valid autocomplete result
    """
    if data is None:
        return None
    if not isinstance(data, dict):
        raise SweepResponseError(f"Unexpected response body type: {type(data).__name__}")

    completion = data.get("completion")
    if completion is None:
        return None
    if not isinstance(completion, str):
        raise SweepResponseError("Response field 'completion' is not a string")

    start_index = data.get("start_index")
    end_index = data.get("end_index")
    for name, value in (("start_index", start_index), ("end_index", end_index)):
        if isinstance(value, bool) or not isinstance(value, int):
            raise SweepResponseError(f"Response field '{name}' is not an integer")

    if start_index < 0 or end_index < start_index:
        raise SweepResponseError(f"Invalid completion range [{start_index}, {end_index})")

    return CompletionResult(completion=completion, start_index=start_index, end_index=end_index)


class SweepApiClient:
    """
    Client for the next-edit autocomplete endpoint.

    This class provides:
    - Fresh API key / URL reads from configuration on every request
    - Lazy, lock-guarded creation of the underlying httpx.AsyncClient
    - Error translation to SweepError subclasses
    - Graceful cleanup on shutdown

    Attributes:
        timeout: Per-request timeout in seconds; sweep.timeout overrides the
            constructor value when it is a positive number

    Example:
        >>> async with SweepApiClient(store) as client:
        ...     result = await client.get_autocomplete(request)
    """

    __slots__ = ("_config", "_timeout", "_client", "_owns_client", "_lock")

    def __init__(
        self,
        config: ConfigurationStore,
        timeout: float = DEFAULT_TIMEOUT,
        http_client: httpx.AsyncClient | None = None,
    ):
        """
        Initialize the client.

        Args:
            config: Configuration store holding sweep.apiKey / sweep.apiUrl / sweep.timeout
            timeout: Default request timeout in seconds (must be > 0)
            http_client: Optional pre-built httpx client. The caller keeps
                ownership and is responsible for closing it.

        Raises:
            ValueError: If timeout is not positive
        """
        if timeout <= 0:
            raise ValueError(f"timeout must be positive, got {timeout}")

        self._config = config
        self._timeout = timeout
        self._client = http_client
        self._owns_client = http_client is None
        self._lock = asyncio.Lock()

        logger.debug(f"[CLIENT] SweepApiClient initialized, timeout={timeout}s")

    @property
    def timeout(self) -> float:
        value = self._config.get(CONFIG_SECTION, CONFIG_KEY_TIMEOUT)
        if isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0:
            return float(value)
        return self._timeout

    @property
    def api_key(self) -> str | None:
        """API key from settings, falling back to the environment."""
        key = self._config.get(CONFIG_SECTION, CONFIG_KEY_API_KEY)
        if isinstance(key, str) and key.strip():
            return key.strip()
        key = os.environ.get(API_KEY_ENV_VAR, "").strip()
        return key or None

    @property
    def base_url(self) -> str:
        url = self._config.get(CONFIG_SECTION, CONFIG_KEY_API_URL)
        if isinstance(url, str) and url.strip():
            return url.strip().rstrip("/")
        return DEFAULT_API_URL

    async def ensure_client(self) -> httpx.AsyncClient:
        """Lazily create and return the underlying httpx client."""
        if self._client is not None:
            return self._client

        async with self._lock:
            if self._client is None:
                logger.debug("[CLIENT] Creating HTTP client")
                self._client = httpx.AsyncClient(timeout=self._timeout)
                self._owns_client = True
            return self._client

    async def get_autocomplete(self, request: CompletionRequest) -> CompletionResult | None:
        """
        Request a completion for the given context.

        Args:
            request: Assembled completion request

        Returns:
            CompletionResult, or None if the service has no suggestion

        Raises:
            SweepAuthenticationError: If no key is configured or it is rejected
            SweepRateLimitError: If the service rate limits the caller
            SweepTimeoutError: If the request exceeds the timeout
            SweepConnectionError: If the service cannot be reached
            SweepResponseError: If the response is unexpected or malformed
        """
        api_key = self.api_key
        if not api_key:
            raise SweepAuthenticationError("No Sweep API key configured")

        client = await self.ensure_client()
        timeout = self.timeout
        url = f"{self.base_url}{AUTOCOMPLETE_ENDPOINT}"
        payload = build_payload(request)

        logger.debug(
            f"[CLIENT] POST {url} file={request.document.path} "
            f"cursor={payload['cursor_position']} buffers={len(payload['file_chunks'])} "
            f"changes={len(payload['recent_changes'])}"
        )

        try:
            response = await client.post(
                url,
                json=payload,
                headers={"Authorization": f"Bearer {api_key}"},
                timeout=timeout,
            )
        except httpx.TimeoutException as e:
            raise SweepTimeoutError(timeout=timeout) from e
        except httpx.TransportError as e:
            raise SweepConnectionError(
                f"Failed to reach Sweep service: {type(e).__name__}: {e}"
            ) from e

        self._raise_for_status(response)

        if not response.content.strip():
            logger.debug("[CLIENT] Empty response body")
            return None

        try:
            data = response.json()
        except ValueError as e:
            raise SweepResponseError(
                "Response body is not valid JSON", status_code=response.status_code
            ) from e

        result = parse_result(data)
        if result is not None:
            logger.debug(
                f"[CLIENT] Received completion ({len(result.completion)} chars) "
                f"for range [{result.start_index}, {result.end_index})"
            )
        return result

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        status = response.status_code
        if status in (401, 403):
            raise SweepAuthenticationError(f"Sweep API key rejected (HTTP {status})")
        if status == 429:
            raise SweepRateLimitError(
                retry_after=parse_retry_after(response.headers.get("Retry-After"))
            )
        if status >= 400:
            raise SweepResponseError(f"Sweep service returned HTTP {status}", status_code=status)

    async def close(self) -> None:
        """
        Close the underlying HTTP client if this wrapper created it.

        Safe to call multiple times.
        """
        async with self._lock:
            if self._client is not None and self._owns_client:
                try:
                    await self._client.aclose()
                    logger.debug("[CLIENT] HTTP client closed")
                except Exception as e:
                    logger.warning(f"[CLIENT] Error closing HTTP client: {e}")
                finally:
                    self._client = None

    async def __aenter__(self) -> SweepApiClient:
        await self.ensure_client()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()


