"""HTTP execution of signed requests on top of requests."""

import logging
import time
from dataclasses import dataclass, field
from http.cookiejar import DefaultCookiePolicy
from typing import BinaryIO, Optional

import requests
from requests.structures import CaseInsensitiveDict
from requests.utils import super_len
from urllib3.exceptions import HTTPError as URLLib3Error
from urllib3.exceptions import ReadTimeoutError

from simple_s3.errors import S3TransientError
from simple_s3.http_capture import HTTPCapture
from simple_s3.request import SignedRequest

logger = logging.getLogger(__name__)

# Statuses that say nothing about the request itself
TRANSIENT_STATUSES = frozenset({0, 100, 500, 502, 503})

DEFAULT_CONNECT_TIMEOUT = 2.0
DEFAULT_TIMEOUT = 5.0
DEFAULT_CHUNK_SIZE = 64 * 1024


def is_transient_status(status: Optional[int]) -> bool:
    return status is None or status in TRANSIENT_STATUSES


@dataclass
class RawResponse:
    """Status, headers and body of one HTTP exchange.

    `body` holds the bytes exactly as stored, without any Content-Encoding
    decoding. When the body was streamed into a sink, `body` is empty and
    `streamed` is True.
    """
    status: int
    headers: CaseInsensitiveDict = field(default_factory=CaseInsensitiveDict)
    body: bytes = b""
    streamed: bool = False


class DeadlineReader:
    """Upload body wrapper whose reads fail once the attempt deadline passed.

    `len` is the remaining length of the wrapped stream as requests would
    measure it (0 when unknown), so Content-Length handling is unchanged.
    """

    blocksize = 16 * 1024

    def __init__(self, stream: BinaryIO, deadline: float, timeout: float):
        self.stream = stream
        self.deadline = deadline
        self.timeout = timeout
        self.len = super_len(stream)

    def read(self, size: int = -1) -> bytes:
        if time.monotonic() > self.deadline:
            raise S3TransientError(None, f"Request exceeded the {self.timeout}s timeout")
        return self.stream.read(size)

    def __iter__(self):
        while True:
            chunk = self.read(self.blocksize)
            if not chunk:
                return
            yield chunk


class Transport:
    """Sends one signed request per call.

    A single requests.Session is owned per transport for connection
    pooling. The urllib3 pool behind it is thread-safe; the only other
    per-session state that responses could change is the cookie jar and
    redirect handling, so cookies are refused and redirects disabled.
    """

    def __init__(
        self,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
        timeout: float = DEFAULT_TIMEOUT,
        verify_ssl: bool = True,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        session: Optional[requests.Session] = None,
    ):
        self.connect_timeout = connect_timeout
        self.timeout = timeout
        self.verify_ssl = verify_ssl
        self.chunk_size = chunk_size
        if session is None:
            session = requests.Session()
            session.cookies.set_policy(DefaultCookiePolicy(allowed_domains=[]))
        self.session = session

    def close(self) -> None:
        self.session.close()

    def send(
        self,
        request: SignedRequest,
        sink: Optional[BinaryIO] = None,
        attempt: int = 1,
    ) -> RawResponse:
        """Execute a signed request.

        Args:
            request: Output of RequestBuilder.build
            sink: Binary file object receiving a successful response body
            attempt: Attempt number, for logging

        Returns:
            RawResponse

        Raises:
            S3TransientError: No response, or the overall deadline passed
        """
        capture = HTTPCapture(
            method=request.method,
            url=request.url,
            request_headers=dict(request.headers),
            streamed=request.streamed,
            attempt=attempt,
        )
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("Sending request:\n%s", capture.request_to_text())

        deadline = time.monotonic() + self.timeout
        body = request.body
        if request.streamed:
            body = DeadlineReader(body, deadline, self.timeout)
        try:
            response = self.session.request(
                request.method,
                request.url,
                headers=dict(request.headers),
                data=body,
                timeout=(self.connect_timeout, self.timeout),
                verify=self.verify_ssl,
                allow_redirects=False,
                stream=True,
            )
        except requests.Timeout as exc:
            raise S3TransientError(None, f"Request timed out: {exc}") from exc
        except requests.RequestException as exc:
            raise S3TransientError(None, str(exc)) from exc

        try:
            status = response.status_code
            headers = CaseInsensitiveDict(response.headers)
            capture.record_response(status, headers)
            if logger.isEnabledFor(logging.DEBUG):
                logger.debug("Received response:\n%s", capture.response_to_text())

            if sink is not None and 200 <= status < 300:
                self._read(response, deadline, sink)
                return RawResponse(status, headers, streamed=True)
            return RawResponse(status, headers, self._read(response, deadline))
        except ReadTimeoutError as exc:
            raise S3TransientError(None, f"Request exceeded the {self.timeout}s timeout") from exc
        except (URLLib3Error, requests.RequestException) as exc:
            raise S3TransientError(None, str(exc)) from exc
        finally:
            response.close()

    def _read(self, response, deadline: float, sink: Optional[BinaryIO] = None) -> bytes:
        # read1 returns as soon as any bytes arrive, and the socket timeout is
        # clamped to the time left, so no single read outlives the deadline.
        raw = response.raw
        chunks = []
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise S3TransientError(
                    None, f"Request exceeded the {self.timeout}s timeout"
                )
            _clamp_socket_timeout(raw, remaining)
            chunk = raw.read1(self.chunk_size, decode_content=False)
            if not chunk:
                break
            if sink is not None:
                sink.write(chunk)
            else:
                chunks.append(chunk)
        return b"".join(chunks)


def _clamp_socket_timeout(raw, remaining: float) -> None:
    sock = getattr(getattr(raw, "connection", None), "sock", None)
    if sock is not None and hasattr(sock, "settimeout"):
        sock.settimeout(remaining)
