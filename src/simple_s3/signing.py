"""SigV4 signing utilities for S3 requests."""

import hashlib
import hmac
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, Mapping, Optional

import boto3
from botocore.session import Session

ALGORITHM = "AWS4-HMAC-SHA256"
SERVICE = "s3"
TERMINATOR = "aws4_request"
UNSIGNED_PAYLOAD = "UNSIGNED-PAYLOAD"


@dataclass(frozen=True)
class Credentials:
    """Access key pair plus optional session token."""
    access_key: str
    secret_key: str
    token: Optional[str] = None

    def __repr__(self) -> str:
        return f"Credentials(access_key={self.access_key!r}, secret_key='***')"

    @classmethod
    def from_botocore(cls, credentials) -> "Credentials":
        """Freeze a botocore credentials object into a Credentials value."""
        frozen = credentials.get_frozen_credentials()
        return cls(frozen.access_key, frozen.secret_key, frozen.token or None)


def get_credentials(profile_name: Optional[str] = None) -> Optional[Credentials]:
    """Get AWS credentials from profile.

    Tries boto3 first, falls back to botocore Session.
    """
    try:
        session = boto3.Session(profile_name=profile_name)
        credentials = session.get_credentials()
        if credentials:
            return Credentials.from_botocore(credentials)
    except Exception:
        pass

    # Fallback to botocore Session
    try:
        credentials = Session(profile=profile_name).get_credentials()
    except Exception:
        return None
    return Credentials.from_botocore(credentials) if credentials else None


@dataclass(frozen=True)
class SigningTime:
    """UTC date and timestamp computed once per signing attempt."""
    date: str
    timestamp: str

    @classmethod
    def from_datetime(cls, moment: datetime) -> "SigningTime":
        moment = moment.astimezone(timezone.utc)
        return cls(moment.strftime("%Y%m%d"), moment.strftime("%Y%m%dT%H%M%SZ"))

    @classmethod
    def now(cls) -> "SigningTime":
        return cls.from_datetime(datetime.now(timezone.utc))


def sorted_headers(headers: Mapping[str, str]) -> list[tuple[str, str]]:
    """Return (lower-cased name, trimmed value) pairs in signing order.

    The sort is byte-wise over lower-cased names, never locale-aware and
    never dependent on the mapping's own iteration order.
    """
    pairs = [(name.lower(), str(value).strip()) for name, value in headers.items()]
    return sorted(pairs, key=lambda pair: pair[0].encode("utf-8"))


def signed_header_names(pairs: Iterable[tuple[str, str]]) -> str:
    return ";".join(name for name, _ in pairs)


def canonical_request(
    method: str,
    path: str,
    query: str,
    headers: Mapping[str, str],
    content_hash: str,
) -> str:
    """Build the canonical request string that SigV4 signs.

    Args:
        method: HTTP verb, sent as-is
        path: Encoded URI path starting with a single "/"
        query: Canonical query string (may be empty)
        headers: Headers to sign; names are compared case-insensitively
        content_hash: Hex SHA-256 of the body, or UNSIGNED-PAYLOAD

    Returns:
        str: Canonical request
    """
    pairs = sorted_headers(headers)
    header_block = "".join(f"{name}:{value}\n" for name, value in pairs)
    return "\n".join([
        method.upper(),
        path,
        query,
        header_block,
        signed_header_names(pairs),
        content_hash,
    ])


def _hmac(key: bytes, msg: str) -> bytes:
    return hmac.new(key, msg.encode("utf-8"), hashlib.sha256).digest()


def signing_key(secret_key: str, date: str, region: str, service: str = SERVICE) -> bytes:
    """Derive the per-day, per-region, per-service key (raw bytes)."""
    k_date = _hmac(("AWS4" + secret_key).encode("utf-8"), date)
    k_region = _hmac(k_date, region)
    k_service = _hmac(k_region, service)
    return _hmac(k_service, TERMINATOR)


def credential_scope(date: str, region: str, service: str = SERVICE) -> str:
    return f"{date}/{region}/{service}/{TERMINATOR}"


def string_to_sign(canonical: str, timestamp: str, scope: str) -> str:
    digest = hashlib.sha256(canonical.encode("utf-8")).hexdigest()
    return f"{ALGORITHM}\n{timestamp}\n{scope}\n{digest}"


def sign(secret_key: str, when: SigningTime, region: str, canonical: str) -> str:
    """Compute the hex signature of a canonical request."""
    scope = credential_scope(when.date, region)
    key = signing_key(secret_key, when.date, region)
    return hmac.new(
        key,
        string_to_sign(canonical, when.timestamp, scope).encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()


def authorization_header(
    credentials: Credentials,
    when: SigningTime,
    region: str,
    headers: Mapping[str, str],
    signature: str,
) -> str:
    scope = credential_scope(when.date, region)
    names = signed_header_names(sorted_headers(headers))
    return (
        f"{ALGORITHM} Credential={credentials.access_key}/{scope},"
        f"SignedHeaders={names},Signature={signature}"
    )
