"""Minimal S3 client built on SigV4 request signing."""

from simple_s3.client import ClientConfig, SimpleS3
from simple_s3.errors import S3Error, S3ResourceError, S3TransientError
from simple_s3.request import RequestBuilder, SignedRequest, get_hostname
from simple_s3.response import S3Response, interpret, parse_error_message
from simple_s3.retry import RetryPolicy
from simple_s3.signing import (
    Credentials,
    SigningTime,
    canonical_request,
    get_credentials,
    sign,
    signing_key,
)
from simple_s3.transport import RawResponse, Transport
from simple_s3.utils import calculate_content_sha256, url_encode_key

__all__ = [
    # Client
    "SimpleS3",
    "ClientConfig",
    # Errors
    "S3Error",
    "S3TransientError",
    "S3ResourceError",
    # Signing
    "Credentials",
    "SigningTime",
    "canonical_request",
    "get_credentials",
    "sign",
    "signing_key",
    # Requests and responses
    "RequestBuilder",
    "SignedRequest",
    "get_hostname",
    "Transport",
    "RawResponse",
    "RetryPolicy",
    "S3Response",
    "interpret",
    "parse_error_message",
    # Utils
    "calculate_content_sha256",
    "url_encode_key",
]
