"""HTTP request/response capture for debug logging."""

from dataclasses import dataclass, field
from typing import Mapping

# Header values that must never reach a log line
REDACTED_HEADERS = {"authorization", "x-amz-security-token"}


@dataclass
class HTTPCapture:
    """Captured HTTP request and response details for one attempt."""

    # Request details
    method: str
    url: str
    request_headers: dict = field(default_factory=dict)
    streamed: bool = False

    # Response details
    status_code: int = 0
    response_headers: dict = field(default_factory=dict)

    # Metadata
    attempt: int = 1

    def record_response(self, status_code: int, headers: Mapping[str, str]) -> None:
        self.status_code = status_code
        self.response_headers = dict(headers)

    def request_to_text(self) -> str:
        """Render the request head with credentials redacted."""
        lines = [f"{self.method} {self.url} HTTP/1.1 (attempt {self.attempt})"]

        for key, value in self.request_headers.items():
            if key.lower() in REDACTED_HEADERS:
                lines.append(f"{key}: [REDACTED]")
            else:
                lines.append(f"{key}: {value}")

        if self.streamed:
            lines.append("[streamed body]")

        return "\n".join(lines)

    def response_to_text(self) -> str:
        """Render the response head."""
        lines = [f"HTTP/1.1 {self.status_code}"]

        # Filter out noisy headers
        skip_headers = {"date", "server", "x-amz-id-2", "connection"}
        for key, value in self.response_headers.items():
            if key.lower() not in skip_headers:
                lines.append(f"{key}: {value}")

        return "\n".join(lines)
