"""Error types and classification utilities for zenith.

Only the LLM collaborator produces errors that cross into caller-visible logic.
Storage and validation problems are recovered locally and reported as results.
"""

from enum import Enum

import httpx


class LLMErrorKind(Enum):
    """Categories of failures raised by the LLM collaborator."""

    NO_API_KEY = "no_api_key"
    INVALID_URL = "invalid_url"
    INVALID_RESPONSE = "invalid_response"
    CONNECTION_FAILED = "connection_failed"
    SERVER_ERROR = "server_error"
    DECODING_FAILED = "decoding_failed"
    UNKNOWN = "unknown"


class LLMServiceError(Exception):
    """Typed failure from the LLM collaborator.

    Attributes:
        kind: The failure category
        detail: Free-form detail for connection_failed/unknown failures
        status_code: HTTP status for server_error failures
    """

    def __init__(self, kind: LLMErrorKind, *, detail: str | None = None, status_code: int | None = None) -> None:
        self.kind = kind
        self.detail = detail
        self.status_code = status_code
        super().__init__(self.description)

    @property
    def description(self) -> str:
        """Human-readable description suitable for display."""
        match self.kind:
            case LLMErrorKind.NO_API_KEY:
                return "API key is required"
            case LLMErrorKind.INVALID_URL:
                return "Invalid URL"
            case LLMErrorKind.INVALID_RESPONSE:
                return "Invalid response from server"
            case LLMErrorKind.CONNECTION_FAILED:
                return f"Connection failed: {self.detail}"
            case LLMErrorKind.SERVER_ERROR:
                return f"Server error: {self.status_code}"
            case LLMErrorKind.DECODING_FAILED:
                return "Failed to decode response"
            case _:
                return f"Unknown error: {self.detail}"

    @classmethod
    def no_api_key(cls) -> "LLMServiceError":
        return cls(LLMErrorKind.NO_API_KEY)

    @classmethod
    def invalid_url(cls) -> "LLMServiceError":
        return cls(LLMErrorKind.INVALID_URL)

    @classmethod
    def invalid_response(cls) -> "LLMServiceError":
        return cls(LLMErrorKind.INVALID_RESPONSE)

    @classmethod
    def connection_failed(cls, detail: str) -> "LLMServiceError":
        return cls(LLMErrorKind.CONNECTION_FAILED, detail=detail)

    @classmethod
    def server_error(cls, status_code: int) -> "LLMServiceError":
        return cls(LLMErrorKind.SERVER_ERROR, status_code=status_code)

    @classmethod
    def decoding_failed(cls) -> "LLMServiceError":
        return cls(LLMErrorKind.DECODING_FAILED)

    @classmethod
    def unknown(cls, detail: str) -> "LLMServiceError":
        return cls(LLMErrorKind.UNKNOWN, detail=detail)


class TaskNotFoundError(KeyError):
    """Raised when a task id is not present in the expected task list."""


class GenerationInProgressError(RuntimeError):
    """Raised when a task generation is requested while another one is pending."""


def classify_llm_exception(exception: Exception) -> LLMServiceError:
    """Map an exception raised during an LLM request onto the typed taxonomy.

    Args:
        exception: The exception raised while talking to the LLM service

    Returns:
        LLMServiceError describing the failure
    """
    if isinstance(exception, LLMServiceError):
        return exception

    if isinstance(exception, httpx.UnsupportedProtocol | httpx.InvalidURL):
        return LLMServiceError.invalid_url()

    if isinstance(exception, httpx.HTTPStatusError):
        return LLMServiceError.server_error(exception.response.status_code)

    if isinstance(exception, httpx.TransportError):
        return LLMServiceError.connection_failed(str(exception) or type(exception).__name__)

    if isinstance(exception, ValueError | KeyError | IndexError | TypeError):
        return LLMServiceError.decoding_failed()

    return LLMServiceError.unknown(str(exception) or type(exception).__name__)
