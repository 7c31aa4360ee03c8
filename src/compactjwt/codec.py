"""Compact serialization codec.

Builds and parses the three-part ``header.payload.signature`` token string
and owns the base64url (unpadded) and JSON rules. Every function here is
pure: the same input always yields the same bytes, which keeps signature
computation reproducible.
"""

import base64
import binascii
import json
import re
from collections.abc import Mapping
from typing import Any

from compactjwt.errors import EncodingError, MalformedTokenError

SEPARATOR = "."

_SEGMENT_RE = re.compile(r"[A-Za-z0-9_-]*")


def encode_segment(data: bytes) -> str:
    """Base64url encode without padding."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def decode_segment(segment: str) -> bytes:
    """Strict base64url decode without padding.

    Rejects characters outside the URL-safe alphabet, padding, impossible
    lengths and non-zero trailing bits, so that exactly one segment string
    maps to each byte string.

    Raises:
        MalformedTokenError: Segment is not canonical unpadded base64url
    """
    if not _SEGMENT_RE.fullmatch(segment):
        raise MalformedTokenError("segment contains characters outside base64url alphabet")
    if len(segment) % 4 == 1:
        raise MalformedTokenError("segment has an impossible base64 length")

    padded = segment + "=" * (-len(segment) % 4)
    try:
        data = base64.b64decode(padded, altchars=b"-_", validate=True)
    except (binascii.Error, ValueError) as e:
        raise MalformedTokenError(f"segment is not valid base64url: {e}") from e

    if encode_segment(data) != segment:
        raise MalformedTokenError("segment has non-canonical trailing bits")
    return data


def encode(header_json: bytes, payload_json: bytes) -> str:
    """Signing input: ``b64url(header) "." b64url(payload)``."""
    return encode_segment(header_json) + SEPARATOR + encode_segment(payload_json)


def assemble(signing_input: str, signature: bytes) -> str:
    """Append the signature segment to a signing input."""
    return signing_input + SEPARATOR + encode_segment(signature)


def split(token: str | bytes) -> tuple[str, str, str]:
    """Split a compact token into its header, payload and signature segments.

    Raises:
        MalformedTokenError: Not exactly three non-empty segments
    """
    if isinstance(token, (bytes, bytearray)):
        try:
            token = bytes(token).decode("ascii")
        except UnicodeDecodeError as e:
            raise MalformedTokenError("token is not ASCII") from e

    parts = token.split(SEPARATOR)
    if len(parts) != 3:
        raise MalformedTokenError(
            f"token has {len(parts)} segments, want 3", details={"segments": len(parts)}
        )
    if not all(parts):
        raise MalformedTokenError("token has an empty segment")
    header, payload, signature = parts
    return header, payload, signature


def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-standard JSON constant {name}")


def _unique_object(pairs: list[tuple[str, Any]]) -> dict[str, Any]:
    obj: dict[str, Any] = {}
    for key, value in pairs:
        if key in obj:
            raise ValueError(f"duplicate key {key!r}")
        obj[key] = value
    return obj


def parse_json_object(raw: bytes, what: str = "payload") -> dict[str, Any]:
    """Parse strict UTF-8 JSON that must be an object.

    Duplicate member names and NaN/Infinity literals are rejected.

    Raises:
        MalformedTokenError: Not a strict JSON object
    """
    try:
        text = raw.decode("utf-8")
        value = json.loads(
            text, object_pairs_hook=_unique_object, parse_constant=_reject_constant
        )
    except (UnicodeDecodeError, ValueError, RecursionError) as e:
        raise MalformedTokenError(f"{what} is not valid JSON: {e}") from e

    if not isinstance(value, dict):
        raise MalformedTokenError(f"{what} is not a JSON object")
    return value


def parse_header(segment: str) -> dict[str, Any]:
    """Decode a header segment; it must carry a string ``alg``.

    Unknown header members are tolerated.
    """
    header = parse_json_object(decode_segment(segment), what="header")
    if not isinstance(header.get("alg"), str):
        raise MalformedTokenError("header has no string alg")
    return header


def canonical_json(value: Mapping[str, Any]) -> bytes:
    """Compact, key-sorted UTF-8 JSON.

    Raises:
        EncodingError: Non-finite number or value JSON cannot represent
    """
    try:
        data = json.dumps(
            value,
            separators=(",", ":"),
            sort_keys=True,
            ensure_ascii=False,
            allow_nan=False,
        ).encode("utf-8")
    except (TypeError, ValueError) as e:
        raise EncodingError(f"claims not serializable: {e}") from e
    return data
