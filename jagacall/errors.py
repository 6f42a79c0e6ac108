# jagacall/errors.py

"""
Error taxonomy shared by the orchestrator and the HTTP layer.

Every error carries the stable `code` and HTTP `status_code` it maps to.
Upstream failures keep their detail for logging but expose only a generic
`public_message` to callers.
"""

from __future__ import annotations

from typing import Optional

INVALID_INPUT = "INVALID_INPUT"
FILE_TOO_LARGE = "FILE_TOO_LARGE"
NOT_FOUND = "NOT_FOUND"
RATE_LIMITED = "RATE_LIMITED"
INTERNAL_ERROR = "INTERNAL_ERROR"


class JagaCallError(Exception):
    """Base error for anything that ends up as an error envelope."""

    code = INTERNAL_ERROR
    status_code = 500

    def __init__(self, message: str = "Internal server error"):
        super().__init__(message)
        self.message = message

    @property
    def public_message(self) -> str:
        return self.message


class InvalidInput(JagaCallError):
    code = INVALID_INPUT
    status_code = 400


class FileTooLarge(JagaCallError):
    code = FILE_TOO_LARGE
    status_code = 400

    def __init__(self, limit_bytes: int):
        mb = limit_bytes // (1024 * 1024)
        super().__init__(f"File size too large. Maximum size is {mb}MB.")
        self.limit_bytes = limit_bytes


class RateLimited(JagaCallError):
    code = RATE_LIMITED
    status_code = 429

    def __init__(self, retry_after: int):
        super().__init__("Too many requests from this IP, please try again later.")
        self.retry_after = retry_after


class UpstreamFailure(JagaCallError):
    """The AI provider could not produce a reply."""

    @property
    def public_message(self) -> str:
        return "Analysis service temporarily unavailable"


class UpstreamTimeout(UpstreamFailure):
    def __init__(self, timeout: float):
        super().__init__(f"ILMU API did not respond within {timeout:g}s")
        self.timeout = timeout


class UpstreamUnreachable(UpstreamFailure):
    pass


class UpstreamError(UpstreamFailure):
    def __init__(self, status: int, body: Optional[str] = None):
        super().__init__(f"ILMU API returned HTTP {status}")
        self.status = status
        self.body = body or ""
