"""
Custom exceptions for the Sweep completion client.

This module defines a hierarchy of domain-specific exceptions that provide
clear error context for failures talking to the inference service.

Exception Hierarchy:
    SweepError (base)
    ├── SweepAuthenticationError - API key rejected
    ├── SweepConnectionError - Network/connection issues
    ├── SweepRateLimitError - Rate limiting (with retry_after)
    ├── SweepTimeoutError - Request timeouts
    └── SweepResponseError - Unexpected status or malformed body

None of these ever reach the editor: the completion provider is the single
catch boundary and turns every one of them into "no completion".

All exceptions provide context without exposing the API key or document
contents, so they are safe to log.
"""

from __future__ import annotations


class SweepError(Exception):
    """
    Base exception for all Sweep client errors.

    Example:
        try:
            result = await client.get_autocomplete(request)
        except SweepError as e:
            logger.warning(f"Completion failed: {e}")
    """

    pass


class SweepAuthenticationError(SweepError):
    """
    Raised when the inference service rejects the API key (HTTP 401/403).

    The user needs to run the "sweep.setApiKey" command with a valid key.
    """

    pass


class SweepConnectionError(SweepError):
    """
    Raised when the inference service cannot be reached.

    This typically indicates:
    - DNS or TLS failure
    - Connection refused or reset
    - The service dropped the connection mid-response
    """

    pass


class SweepRateLimitError(SweepError):
    """
    Raised when the inference service rate limits the caller (HTTP 429).

    Attributes:
        retry_after: Suggested wait time in seconds before retry.
                    None if the service did not send a Retry-After header.

    Example:
        raise SweepRateLimitError(retry_after=30.0)
    """

    def __init__(self, retry_after: float | None = None, message: str | None = None):
        self.retry_after = retry_after
        if message:
            super().__init__(message)
        elif retry_after is not None:
            super().__init__(f"Rate limited. Retry after: {retry_after}s")
        else:
            super().__init__("Rate limited. Please retry later.")


class SweepTimeoutError(SweepError):
    """
    Raised when an autocomplete request takes longer than the timeout.

    Attributes:
        timeout: The timeout value that was exceeded, in seconds.

    Example:
        raise SweepTimeoutError(timeout=10.0)
    """

    def __init__(self, timeout: float | None = None, message: str | None = None):
        self.timeout = timeout
        if message:
            super().__init__(message)
        elif timeout is not None:
            super().__init__(f"Request timed out after {timeout}s")
        else:
            super().__init__("Request timed out")


class SweepResponseError(SweepError):
    """
    Raised when the service answers with an unexpected status or a body
    that cannot be read as an autocomplete result.

    Attributes:
        status_code: HTTP status of the response, if there was one.
    """

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


def parse_retry_after(value: str | None) -> float | None:
    """Parse a Retry-After header given in seconds; HTTP dates are ignored."""
    if not value:
        return None
    try:
        seconds = float(value.strip())
    except ValueError:
        return None
    return seconds if seconds >= 0 else None
