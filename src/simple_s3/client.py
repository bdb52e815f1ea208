"""S3 client exposing get/put/delete over the signed request pipeline."""

from dataclasses import dataclass, replace
from pathlib import Path
from typing import BinaryIO, Callable, Mapping, Optional, Union
import logging
import os
import time

import requests

from simple_s3.errors import S3Error, S3ResourceError
from simple_s3.request import Body, RequestBuilder
from simple_s3.response import S3Response, interpret
from simple_s3.retry import DEFAULT_RETRY_DELAYS, RetryPolicy, StreamRewinder
from simple_s3.signing import Credentials, SigningTime, get_credentials
from simple_s3.transport import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_TIMEOUT,
    Transport,
)

logger = logging.getLogger(__name__)

Headers = Optional[Mapping[str, str]]
Query = Optional[Mapping[str, Optional[str]]]


def _normalize_endpoint(url: Optional[str]) -> Optional[str]:
    """Ensure endpoint URL has proper scheme."""
    if not url:
        return None
    if not url.startswith(("http://", "https://")):
        return f"https://{url}"
    return url.rstrip("/")


def _parse_delays(value: str) -> tuple:
    return tuple(float(part) for part in value.split(",") if part.strip())


@dataclass(frozen=True)
class ClientConfig:
    """Configuration for an S3 endpoint."""
    region: str = "us-east-1"
    endpoint: Optional[str] = None
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    timeout: float = DEFAULT_TIMEOUT
    retry_delays: tuple = DEFAULT_RETRY_DELAYS
    verify_ssl: bool = True
    chunk_size: int = DEFAULT_CHUNK_SIZE

    def __post_init__(self):
        object.__setattr__(self, "endpoint", _normalize_endpoint(self.endpoint))
        object.__setattr__(self, "retry_delays", tuple(self.retry_delays))

    @classmethod
    def from_env(cls) -> "ClientConfig":
        """Build a config from AWS_REGION and the S3_* variables."""
        return cls(
            region=os.getenv("AWS_REGION", "us-east-1"),
            endpoint=os.getenv("S3_ENDPOINT"),
            connect_timeout=float(os.getenv("S3_CONNECT_TIMEOUT", DEFAULT_CONNECT_TIMEOUT)),
            timeout=float(os.getenv("S3_TIMEOUT", DEFAULT_TIMEOUT)),
            retry_delays=_parse_delays(
                os.getenv("S3_RETRY_DELAYS", ",".join(str(d) for d in DEFAULT_RETRY_DELAYS))
            ),
            # SSL verification enabled by default for security
            # Set S3_VERIFY_SSL=false to disable (use with caution)
            verify_ssl=os.getenv("S3_VERIFY_SSL", "true").lower() == "true",
        )


class SimpleS3:
    """Minimal S3 client.

    Holds only immutable credentials and configuration; every call builds,
    signs and sends its own request, so one instance can serve several
    threads. Results unpack as (status, body, headers).

    Usage:
        s3 = SimpleS3(Credentials("AKID", "secret"), ClientConfig(region="eu-west-1"))
        s3.put("my-bucket", "path/to/key", b"content")
        status, body, headers = s3.get("my-bucket", "path/to/key")
    """

    def __init__(
        self,
        credentials: Credentials,
        config: Optional[ClientConfig] = None,
        session: Optional[requests.Session] = None,
        clock: Callable[[], SigningTime] = SigningTime.now,
        sleep: Optional[Callable[[float], None]] = None,
    ):
        self.credentials = credentials
        self.config = config or ClientConfig()
        self._session = session
        self._clock = clock
        self._sleep = sleep
        self.builder = RequestBuilder(credentials, self.config.region, self.config.endpoint, clock)
        self.transport = Transport(
            connect_timeout=self.config.connect_timeout,
            timeout=self.config.timeout,
            verify_ssl=self.config.verify_ssl,
            chunk_size=self.config.chunk_size,
            session=session,
        )
        self.retry = RetryPolicy(self.config.retry_delays, sleep=sleep or time.sleep)

    @classmethod
    def from_env(cls, profile_name: Optional[str] = None) -> "SimpleS3":
        """Create a client from AWS_* environment variables or a profile."""
        access_key = os.getenv("AWS_ACCESS_KEY_ID")
        secret_key = os.getenv("AWS_SECRET_ACCESS_KEY")
        if access_key and secret_key:
            credentials = Credentials(access_key, secret_key, os.getenv("AWS_SESSION_TOKEN") or None)
        else:
            credentials = get_credentials(profile_name or os.getenv("AWS_PROFILE"))
            if credentials is None:
                raise ValueError("No AWS credentials found in environment or profile")
        return cls(credentials, ClientConfig.from_env())

    def with_config(self, **changes) -> "SimpleS3":
        """Return a new client whose config has `changes` applied."""
        return SimpleS3(
            self.credentials,
            replace(self.config, **changes),
            session=self._session,
            clock=self._clock,
            sleep=self._sleep,
        )

    def close(self) -> None:
        self.transport.close()

    def __enter__(self) -> "SimpleS3":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # Operations

    def get(
        self,
        bucket: str,
        key: str,
        headers: Headers = None,
        query: Query = None,
        sink: Optional[BinaryIO] = None,
    ) -> S3Response:
        """GET an object; with `sink`, the body is streamed into it."""
        return self.request("GET", bucket, key, headers, query=query, sink=sink)

    def get_if_exists(
        self,
        bucket: str,
        key: str,
        headers: Headers = None,
        query: Query = None,
        sink: Optional[BinaryIO] = None,
    ) -> S3Response:
        """Like get(), but a 404 is returned instead of raised."""
        return self.request("GET", bucket, key, headers, query=query, sink=sink, allow_missing=True)

    def get_to_file(
        self,
        bucket: str,
        key: str,
        path: Union[str, Path],
        headers: Headers = None,
    ) -> S3Response:
        """Stream an object into a local file.

        The file is removed again when the download fails.
        """
        try:
            sink = open(path, "wb")
        except OSError as exc:
            raise S3ResourceError(f"Cannot open {path} for writing: {exc}") from exc
        try:
            with sink:
                return self.get(bucket, key, headers, sink=sink)
        except Exception:
            Path(path).unlink(missing_ok=True)
            raise

    def head(self, bucket: str, key: str, headers: Headers = None) -> S3Response:
        return self.request("HEAD", bucket, key, headers)

    def exists(self, bucket: str, key: str, headers: Headers = None) -> bool:
        status, _, _ = self.request("HEAD", bucket, key, headers, allow_missing=True)
        return status != 404

    def put(
        self,
        bucket: str,
        key: str,
        body: Body = b"",
        headers: Headers = None,
        content_length: Optional[int] = None,
    ) -> S3Response:
        """PUT an object.

        Args:
            bucket: Bucket name
            key: Object key
            body: bytes/str, or a binary file object to stream (UNSIGNED-PAYLOAD)
            headers: Extra headers such as Content-Type
            content_length: Size of a streamed body when known

        Returns:
            S3Response
        """
        return self.request("PUT", bucket, key, headers, body=body, content_length=content_length)

    def put_file(
        self,
        bucket: str,
        key: str,
        path: Union[str, Path],
        headers: Headers = None,
    ) -> S3Response:
        """Stream a local file into an object."""
        try:
            source = open(path, "rb")
        except OSError as exc:
            raise S3ResourceError(f"Cannot open {path} for reading: {exc}") from exc
        with source:
            size = os.fstat(source.fileno()).st_size
            return self.put(bucket, key, source, headers, content_length=size)

    def delete(self, bucket: str, key: str, headers: Headers = None) -> S3Response:
        return self.request("DELETE", bucket, key, headers)

    def request(
        self,
        method: str,
        bucket: str,
        key: str,
        headers: Headers = None,
        body: Body = None,
        query: Query = None,
        content_length: Optional[int] = None,
        sink: Optional[BinaryIO] = None,
        allow_missing: bool = False,
    ) -> S3Response:
        """Sign, send (with retry) and interpret one request."""

        def attempt(number: int):
            signed = self.builder.build(
                method, bucket, key, headers, body=body, query=query, content_length=content_length,
            )
            return self.transport.send(signed, sink=sink, attempt=number)

        rewinder = StreamRewinder(body=body, sink=sink)
        raw = self.retry.call(attempt, rewind=rewinder.rewind)
        try:
            return interpret(raw, allow_missing=allow_missing)
        except S3Error as exc:
            logger.debug("%s s3://%s/%s failed: %s", method, bucket, key, exc)
            raise
