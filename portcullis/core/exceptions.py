from __future__ import annotations

"""Centralized, structured exception hierarchy for Portcullis.

Each exception carries a machine-readable `code` for programmatic handling and
a human-readable `message` for logging. The hierarchy separates three kinds of
failure:

- Infrastructure faults (``StoreError`` and subclasses) raised by storage
  repositories. Domain services catch these locally and degrade; they never
  cross a public entry point.
- Configuration faults (``ConfigurationError``) raised at startup so a
  misconfigured process refuses to boot.
- Policy rejections at the FastAPI seam (``PolicyRejectedError``). Everywhere
  else a rejection is a first-class result object, not an exception.
"""

from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from starlette.responses import Response

__all__: Final = [
    "PortcullisError",
    "StoreError",
    "StoreUnavailableError",
    "StoreTimeoutError",
    "StoreDataError",
    "ConfigurationError",
    "PolicyRejectedError",
]


class PortcullisError(Exception):
    """Base exception class for all custom errors in Portcullis.

    Attributes:
        message (str): A human-readable error message, suitable for logging.
        code (str): A unique, machine-readable error code.
    """

    message: str
    code: str = "generic_error"

    def __init__(self, message: str, code: str = "generic_error"):
        self.message = message
        self.code = code
        Exception.__init__(self, self.message)

    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Storage faults (never surfaced to API callers)
# ---------------------------------------------------------------------------


class StoreError(PortcullisError):
    """Raised when a backing store operation fails for infrastructure reasons."""

    def __init__(self, message: str, code: str = "store_error"):
        super().__init__(message, code)


class StoreUnavailableError(StoreError):
    """Raised when the durable store cannot be reached or rejects a command."""

    def __init__(self, message: str, code: str = "store_unavailable"):
        super().__init__(message, code)


class StoreTimeoutError(StoreError):
    """Raised when a store round trip exceeds its configured timeout."""

    def __init__(self, message: str, code: str = "store_timeout"):
        super().__init__(message, code)


class StoreDataError(StoreError):
    """Raised when data read back from the store is malformed."""

    def __init__(self, message: str, code: str = "store_data_error"):
        super().__init__(message, code)


# ---------------------------------------------------------------------------
# Startup faults
# ---------------------------------------------------------------------------


class ConfigurationError(PortcullisError):
    """Raised for invalid or missing configuration detected at startup."""

    def __init__(self, message: str, code: str = "configuration_error"):
        super().__init__(message, code)


# ---------------------------------------------------------------------------
# HTTP seam
# ---------------------------------------------------------------------------


class PolicyRejectedError(PortcullisError):
    """Carries a ready-made rejection response out of a FastAPI dependency.

    Dependencies cannot return a response directly, so they raise this and the
    registered handler returns ``response`` verbatim.
    """

    def __init__(self, response: "Response", code: str = "policy_rejected"):
        self.response = response
        super().__init__(f"Request rejected with status {response.status_code}", code)
