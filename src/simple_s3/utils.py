"""Hashing and encoding helpers shared by the request pipeline."""

import hashlib
from typing import Mapping, Optional, Union
from urllib.parse import quote


def calculate_content_sha256(content: Union[str, bytes]) -> str:
    """Calculate x-amz-content-sha256 header value (hex encoded).

    Args:
        content: Request body as string or bytes

    Returns:
        Hex-encoded SHA256 hash
    """
    if isinstance(content, str):
        content = content.encode("utf-8")
    return hashlib.sha256(content).hexdigest()


def url_encode_key(key: Union[str, bytes]) -> str:
    """URL-encode an S3 object key into a request path.

    The key is percent-encoded, then "/" separators are restored so that
    hierarchical keys keep their path shape, and the result carries exactly
    one leading "/".

    Args:
        key: Object key as string or bytes

    Returns:
        Encoded URI path
    """
    if isinstance(key, str):
        key = key.encode("utf-8")
    encoded = quote(key, safe="").replace("%2F", "/")
    return "/" + encoded.lstrip("/")


def canonical_query_string(query: Optional[Mapping[str, Optional[str]]]) -> str:
    """Encode query parameters with sorted keys for signing and sending.

    A value of None produces a bare key followed by "=", e.g. "uploads=".
    """
    if not query:
        return ""
    pairs = sorted(
        (quote(str(name), safe="-_.~"), quote("" if value is None else str(value), safe="-_.~"))
        for name, value in query.items()
    )
    return "&".join(f"{name}={value}" for name, value in pairs)
