"""Exceptions raised by the S3 client."""

from typing import Optional


class S3Error(Exception):
    """An S3 request failed.

    Carries the HTTP status (None when no response was obtained) and the
    best available message text.
    """

    def __init__(self, status: Optional[int], message: str = ""):
        self.status = status
        self.message = message
        super().__init__(f"AWS S3 request failed: {status} {message}")


class S3TransientError(S3Error):
    """Transport-level failure that may succeed when retried."""


class S3ResourceError(S3Error):
    """A local streaming source or sink could not be opened."""

    def __init__(self, message: str = ""):
        super().__init__(None, message)
