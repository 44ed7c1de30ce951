"""Error taxonomy for the fetch-and-analyze pipeline.

Every expected failure is a ``PageScopeError`` subclass carrying a stable
``ErrorCode``. Errors propagate unchanged from the component that raised them
to the MCP tool layer, which serialises them with ``to_dict()``.
"""

from __future__ import annotations

from enum import StrEnum


class ErrorCode(StrEnum):
    INVALID_INPUT = "INVALID_INPUT"
    SCHEME_NOT_ALLOWED = "SCHEME_NOT_ALLOWED"
    ADDRESS_BLOCKED = "ADDRESS_BLOCKED"
    ROBOTS_DISALLOWED = "ROBOTS_DISALLOWED"
    FETCH_TIMEOUT = "FETCH_TIMEOUT"
    SIZE_LIMIT_EXCEEDED = "SIZE_LIMIT_EXCEEDED"
    HTTP_STATUS = "HTTP_STATUS"
    PARSE_FAILED = "PARSE_FAILED"
    FETCH_FAILED = "FETCH_FAILED"


class PageScopeError(Exception):
    """Base class for all expected failure conditions.

    Subclasses pin ``code``, a default ``suggestion`` and ``recoverable``.
    Never catch this inside business logic; let it reach the tool layer so
    the agent receives a structured error with a suggestion.
    """

    code: ErrorCode = ErrorCode.FETCH_FAILED
    default_suggestion: str = ""
    recoverable: bool = False

    def __init__(
        self,
        message: str,
        *,
        suggestion: str | None = None,
        recoverable: bool | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.suggestion = suggestion if suggestion is not None else self.default_suggestion
        if recoverable is not None:
            self.recoverable = recoverable

    def to_dict(self) -> dict:
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "suggestion": self.suggestion,
                "recoverable": self.recoverable,
            }
        }


class InvalidInputError(PageScopeError):
    code = ErrorCode.INVALID_INPUT
    default_suggestion = "Provide an absolute http(s) URL of at most 2048 characters."


class SchemeError(PageScopeError):
    code = ErrorCode.SCHEME_NOT_ALLOWED
    default_suggestion = "Only http:// and https:// URLs can be fetched."


class BlockedAddressError(PageScopeError):
    code = ErrorCode.ADDRESS_BLOCKED
    default_suggestion = "Private, loopback and link-local addresses are never fetched."


class RobotsDisallowedError(PageScopeError):
    code = ErrorCode.ROBOTS_DISALLOWED
    default_suggestion = "The site's robots.txt forbids this path; try another source."


class FetchTimeoutError(PageScopeError):
    code = ErrorCode.FETCH_TIMEOUT
    default_suggestion = "The site did not respond in time. It may be slow or unavailable."
    recoverable = True


class SizeLimitError(PageScopeError):
    code = ErrorCode.SIZE_LIMIT_EXCEEDED
    default_suggestion = "The page is larger than the configured size limit."


class HTTPStatusError(PageScopeError):
    code = ErrorCode.HTTP_STATUS
    default_suggestion = "The site returned an error status for this URL."

    def __init__(self, message: str, *, status_code: int, suggestion: str | None = None) -> None:
        # 429 and 5xx are worth retrying later; other statuses are final.
        super().__init__(
            message,
            suggestion=suggestion,
            recoverable=status_code == 429 or status_code >= 500,
        )
        self.status_code = status_code


class ParseError(PageScopeError):
    code = ErrorCode.PARSE_FAILED
    default_suggestion = "The response could not be parsed as an HTML document."


class FetchError(PageScopeError):
    code = ErrorCode.FETCH_FAILED
    default_suggestion = "The site may be temporarily unavailable."
    recoverable = True
