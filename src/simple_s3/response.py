"""Interpretation of raw S3 responses."""

from typing import NamedTuple
import xml.etree.ElementTree as ET

from requests.structures import CaseInsensitiveDict

from simple_s3.errors import S3Error, S3TransientError
from simple_s3.transport import RawResponse, is_transient_status

# Raw text used as a message when an error body is not XML
MAX_RAW_MESSAGE = 1000


class S3Response(NamedTuple):
    """Result of a successful call; unpacks as (status, body, headers)."""
    status: int
    body: bytes
    headers: CaseInsensitiveDict


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def parse_error_message(body: bytes) -> str:
    """Extract the message of an S3 XML error envelope.

    The message is the full text content of the root <Error> element, so
    <Code>, <Message> and any other children are concatenated in document
    order. A body that is not XML is returned as text for diagnostics;
    any other document yields an empty message.
    """
    if not body or not body.strip():
        return ""
    try:
        root = ET.fromstring(body)
    except ET.ParseError:
        return body.decode("utf-8", errors="replace").strip()[:MAX_RAW_MESSAGE]

    if _local_name(root.tag) != "Error":
        return ""
    return "".join(root.itertext())


def interpret(raw: RawResponse, allow_missing: bool = False) -> S3Response:
    """Classify a raw response into a result or an S3Error.

    Args:
        raw: Final response of the retry loop
        allow_missing: Return 404 responses instead of raising

    Returns:
        S3Response for 2xx, 304, and 404 when allow_missing is set
    """
    status = raw.status
    if 200 <= status < 300:
        return S3Response(status, raw.body, raw.headers)
    if status == 304:
        return S3Response(status, b"", raw.headers)
    if status == 404 and allow_missing:
        return S3Response(status, raw.body, raw.headers)

    message = parse_error_message(raw.body)
    if is_transient_status(status):
        raise S3TransientError(status, message)
    raise S3Error(status, message)
