"""
Application errors for clean API error handling.

Use ServiceUnavailableError when a dependency (LLM provider) is misconfigured or
unreachable so the API can return 503 with a user-facing message.
"""

# The only failure text callers ever see; details stay in the logs.
GENERIC_FAILURE_MESSAGE = "An error occurred while processing your request."


class ServiceUnavailableError(Exception):
    """Raised when a required service (e.g. the LLM provider) is unavailable or misconfigured."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class InvalidUploadError(Exception):
    """Raised when an uploaded file is empty or too large to store."""

    def __init__(self, filename: str, reason: str) -> None:
        self.filename = filename
        self.reason = reason
        super().__init__(f"{filename}: {reason}")
