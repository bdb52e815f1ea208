"""Assembly of fully signed, fully addressed S3 requests."""

from dataclasses import dataclass
from typing import BinaryIO, Callable, Mapping, Optional, Union

from requests.structures import CaseInsensitiveDict

from simple_s3.signing import (
    UNSIGNED_PAYLOAD,
    Credentials,
    SigningTime,
    authorization_header,
    canonical_request,
    sign,
)
from simple_s3.utils import calculate_content_sha256, canonical_query_string, url_encode_key

Body = Union[bytes, str, BinaryIO, None]


def is_stream(body: Body) -> bool:
    return hasattr(body, "read")


def get_hostname(bucket: str, region: str) -> str:
    """Virtual-hosted-style hostname for a bucket."""
    if region == "us-east-1":
        return f"{bucket}.s3.amazonaws.com"
    return f"{bucket}.s3-{region}.amazonaws.com"


@dataclass
class SignedRequest:
    """A request ready to transmit.

    `headers` is exactly the header set that was signed.
    """
    method: str
    url: str
    headers: CaseInsensitiveDict
    body: Body = None
    streamed: bool = False


class RequestBuilder:
    """Injects the SigV4 headers and addresses requests for one client."""

    def __init__(
        self,
        credentials: Credentials,
        region: str,
        endpoint: Optional[str] = None,
        clock: Callable[[], SigningTime] = SigningTime.now,
    ):
        self.credentials = credentials
        self.region = region
        self.endpoint = endpoint.rstrip("/") if endpoint else None
        self.clock = clock

    def build(
        self,
        method: str,
        bucket: str,
        key: str,
        headers: Optional[Mapping[str, str]] = None,
        body: Body = None,
        query: Optional[Mapping[str, Optional[str]]] = None,
        content_length: Optional[int] = None,
    ) -> SignedRequest:
        """Sign a request against a fresh timestamp.

        Args:
            method: HTTP verb
            bucket: Bucket name
            key: Object key (unencoded)
            headers: Caller headers; case-insensitive, injected headers win
            body: bytes/str for a buffered body, a binary file object to stream
            query: Query parameters
            content_length: Length of a streamed body, when known

        Returns:
            SignedRequest
        """
        method = method.upper()
        path = url_encode_key(key)
        query_string = canonical_query_string(query)
        hostname = get_hostname(bucket, self.region)
        if isinstance(body, str):
            body = body.encode("utf-8")
        streamed = is_stream(body)
        if streamed:
            content_hash = UNSIGNED_PAYLOAD
        else:
            content_hash = calculate_content_sha256(body or b"")

        # Computed once: both the canonical request and the scope use it.
        when = self.clock()

        signed = CaseInsensitiveDict(headers or {})
        signed.pop("authorization", None)
        signed["host"] = hostname
        signed["x-amz-date"] = when.timestamp
        signed["x-amz-content-sha256"] = content_hash
        if self.credentials.token:
            signed["x-amz-security-token"] = self.credentials.token
        if streamed and content_length is not None:
            signed["Content-Length"] = str(content_length)

        canonical = canonical_request(method, path, query_string, signed, content_hash)
        signature = sign(self.credentials.secret_key, when, self.region, canonical)
        signed["authorization"] = authorization_header(
            self.credentials, when, self.region, signed, signature
        )

        base = self.endpoint or f"https://{hostname}"
        url = f"{base}{path}"
        if query_string:
            url = f"{url}?{query_string}"

        return SignedRequest(method=method, url=url, headers=signed, body=body, streamed=streamed)
