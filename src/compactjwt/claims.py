"""Claims set model (RFC 7519 section 4).

A Claims value holds the registered claims as attributes plus an open
``claim_set`` mapping for everything else. Registered claims are also
reachable through the mapping view under their short names (``iss``,
``sub``, ...), so there is a single namespace.

Claims built by a caller are plain mutable dataclasses. Claims returned by
verification are frozen: attributes cannot be reassigned and the claim set
is read-only at every level (objects become read-only mappings, arrays
become tuples). ``to_mapping`` always returns plain mutable copies.
"""

import math
from collections.abc import Mapping, Sequence
from dataclasses import FrozenInstanceError, dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any

from compactjwt.codec import canonical_json, parse_json_object
from compactjwt.errors import MalformedTokenError

# Registered claim names
ISSUER = "iss"
SUBJECT = "sub"
AUDIENCE = "aud"
EXPIRES = "exp"
NOT_BEFORE = "nbf"
ISSUED = "iat"
ID = "jti"

_STRING_CLAIMS = {"issuer": ISSUER, "subject": SUBJECT, "id": ID}
_TIME_CLAIMS = {"expires": EXPIRES, "not_before": NOT_BEFORE, "issued": ISSUED}

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def numeric_time(t: datetime | None) -> float | None:
    """Seconds since the epoch, or None for an absent/zero time.

    The zero calendar time (``datetime.min``) maps to None, never to 0.
    Naive datetimes are taken as UTC.
    """
    if t is None:
        return None
    if t.replace(tzinfo=None) == datetime.min:
        return None
    if t.tzinfo is None:
        t = t.replace(tzinfo=timezone.utc)
    return (t - _EPOCH).total_seconds()


def to_datetime(n: float | None) -> datetime | None:
    """UTC datetime for a numeric time, None for None."""
    if n is None:
        return None
    return datetime.fromtimestamp(n, tz=timezone.utc)


def format_numeric_time(n: float | None) -> str:
    """ISO-8601 representation with trimmed fraction, e.g. 2024-01-01T00:00:00.5Z.

    Times outside the calendar range are rendered as the raw number.
    """
    try:
        t = to_datetime(n)
    except (OverflowError, ValueError, OSError):
        return f"{n}"
    if t is None:
        return ""
    text = t.strftime("%Y-%m-%dT%H:%M:%S")
    if t.microsecond:
        text += f".{t.microsecond:06d}".rstrip("0")
    return text + "Z"


def _json_time(n: float) -> float | int:
    # integral times go out as JSON integers
    if isinstance(n, float) and n.is_integer():
        return int(n)
    return n


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _freeze(value: Any) -> Any:
    if isinstance(value, dict):
        return MappingProxyType({k: _freeze(v) for k, v in value.items()})
    if isinstance(value, list):
        return tuple(_freeze(v) for v in value)
    return value


def _thaw(value: Any) -> Any:
    # inverse of _freeze; returns fresh JSON-shaped containers
    if isinstance(value, Mapping):
        return {k: _thaw(v) for k, v in value.items()}
    if isinstance(value, tuple):
        return [_thaw(v) for v in value]
    return value


@dataclass(eq=False)
class Claims:
    """JWT claims set.

    Example:
        >>> c = Claims(subject="user-123", audience=["api", "cli"])
        >>> c.expires = numeric_time(datetime(2030, 1, 1, tzinfo=timezone.utc))
        >>> c.claim_set["tenant"] = "tenant-456"
        >>> c.to_mapping()["sub"]
        'user-123'
    """

    # Principal that issued the token.
    issuer: str | None = None
    # Principal that is the subject of the token.
    subject: str | None = None
    # Intended recipients, a single name or a list.
    audience: str | Sequence[str] | None = None
    # Time on or after which the token must not be accepted.
    expires: float | None = None
    # Time before which the token must not be accepted.
    not_before: float | None = None
    # Time at which the token was issued.
    issued: float | None = None
    # Unique token identifier.
    id: str | None = None

    claim_set: dict[str, Any] = field(default_factory=dict)

    # Exact payload JSON this value was parsed from (read-only).
    raw: bytes | None = field(default=None, repr=False)

    _frozen: bool = field(default=False, init=False, repr=False)

    def __post_init__(self) -> None:
        for attr in _TIME_CLAIMS:
            value = getattr(self, attr)
            if isinstance(value, datetime):
                setattr(self, attr, numeric_time(value))

    def __setattr__(self, name: str, value: Any) -> None:
        if self._frozen:
            raise FrozenInstanceError(f"cannot assign to field {name!r} of verified claims")
        super().__setattr__(name, value)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Claims):
            return NotImplemented
        return self.to_mapping() == other.to_mapping()

    __hash__ = None  # type: ignore[assignment]

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def audiences(self) -> list[str]:
        """Audience as a list (empty when absent)."""
        if not self.audience:
            return []
        if isinstance(self.audience, str):
            return [self.audience]
        return list(self.audience)

    def to_mapping(self) -> dict[str, Any]:
        """Merged claims: the claim set overridden by present registered claims."""
        merged = _thaw(self.claim_set)
        for attr, name in _STRING_CLAIMS.items():
            value = getattr(self, attr)
            if value:
                merged[name] = value
        if self.audience:
            merged[AUDIENCE] = (
                self.audience if isinstance(self.audience, str) else list(self.audience)
            )
        for attr, name in _TIME_CLAIMS.items():
            value = getattr(self, attr)
            if value is not None:
                merged[name] = value
        return merged

    def to_json(self) -> bytes:
        """Canonical payload JSON.

        Raises:
            EncodingError: Non-finite time or unserializable claim value
        """
        payload = self.to_mapping()
        for name in _TIME_CLAIMS.values():
            if name in payload and isinstance(payload[name], float):
                payload[name] = _json_time(payload[name])
        return canonical_json(payload)

    @classmethod
    def from_json(cls, raw: bytes) -> "Claims":
        """Parse payload JSON into frozen claims.

        Raises:
            MalformedTokenError: Not a JSON object, or a registered claim of the wrong type
        """
        claim_set = parse_json_object(raw)

        kwargs: dict[str, Any] = {}
        for attr, name in _STRING_CLAIMS.items():
            value = claim_set.get(name)
            if value is not None and not isinstance(value, str):
                raise MalformedTokenError(f"{name} claim is not a string")
            kwargs[attr] = value

        audience = claim_set.get(AUDIENCE)
        if audience is not None:
            if isinstance(audience, list):
                if not all(isinstance(a, str) for a in audience):
                    raise MalformedTokenError("aud claim is not an array of strings")
            elif not isinstance(audience, str):
                raise MalformedTokenError("aud claim is not a string or array of strings")
        kwargs["audience"] = audience

        for attr, name in _TIME_CLAIMS.items():
            value = claim_set.get(name)
            if value is None:
                kwargs[attr] = None
                continue
            if not _is_number(value):
                raise MalformedTokenError(f"{name} claim is not a number")
            try:
                n = float(value)
            except OverflowError as e:
                raise MalformedTokenError(f"{name} claim out of range") from e
            if not math.isfinite(n):
                raise MalformedTokenError(f"{name} claim out of range")
            kwargs[attr] = n

        claims = cls(claim_set=claim_set, raw=bytes(raw), **kwargs)
        claims.freeze()
        return claims

    def freeze(self) -> None:
        """Make this instance immutable, nested claim values included."""
        if self._frozen:
            return
        object.__setattr__(self, "claim_set", _freeze(dict(self.claim_set)))
        if isinstance(self.audience, list):
            object.__setattr__(self, "audience", tuple(self.audience))
        object.__setattr__(self, "_frozen", True)

    def is_valid(self, at: datetime | None) -> bool:
        """Whether the claims may be accepted for processing at ``at``.

        Expiry is inclusive (``at >= exp`` rejects), not-before is strict
        (``at < nbf`` rejects). No clock skew is applied. When ``at`` has no
        numeric representation, only claims without time limits are valid.
        """
        n = numeric_time(at)
        if n is None:
            return self.expires is None and self.not_before is None
        if self.expires is not None and self.expires <= n:
            return False
        if self.not_before is not None and self.not_before > n:
            return False
        return True

    def get(self, name: str, default: Any = None) -> Any:
        return self.to_mapping().get(name, default)

    def string(self, name: str) -> str | None:
        """Claim value when present and a JSON string."""
        value = self.get(name)
        return value if isinstance(value, str) else None

    def number(self, name: str) -> float | None:
        """Claim value as float when present and a JSON number."""
        value = self.get(name)
        if not _is_number(value):
            return None
        try:
            return float(value)
        except OverflowError:
            return None

    def __contains__(self, name: object) -> bool:
        return name in self.to_mapping()

    def __getitem__(self, name: str) -> Any:
        return self.to_mapping()[name]

