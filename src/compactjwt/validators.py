"""Field validators for verified claims.

A validator is a callable taking Claims and raising a ClaimError subclass
when the claims do not match the expected value it closes over.
``validate_fields`` runs a sequence of them and stops at the first failure.

Example:
    >>> claims = engine.verify(token, Family.ECDSA, public_key)
    >>> validate_fields(
    ...     claims,
    ...     issuer_validator("https://issuer.example"),
    ...     audiences_validator(["api"]),
    ...     time_validator(datetime.now(timezone.utc)),
    ... )
"""

from collections.abc import Callable, Iterable
from datetime import datetime
from typing import Any

from compactjwt.claims import (
    AUDIENCE,
    EXPIRES,
    ID,
    ISSUER,
    NOT_BEFORE,
    SUBJECT,
    Claims,
    format_numeric_time,
    numeric_time,
)
from compactjwt.errors import ClaimMismatchError, ExpiredError, MissingClaimError

FieldValidator = Callable[[Claims], None]


def _string_validator(name: str, label: str, expected: str) -> FieldValidator:
    def validate(claims: Claims) -> None:
        value = claims.string(name)
        if value is None:
            raise MissingClaimError(f"missing {label} claim", claim=name)
        if value != expected:
            raise ClaimMismatchError(f"invalid {label} claim", claim=name)

    return validate


def issuer_validator(expected_iss: str) -> FieldValidator:
    return _string_validator(ISSUER, "issuer", expected_iss)


def subject_validator(expected_sub: str) -> FieldValidator:
    return _string_validator(SUBJECT, "subject", expected_sub)


def id_validator(expected_id: str) -> FieldValidator:
    return _string_validator(ID, "id", expected_id)


def audiences_validator(expected_aud: str | Iterable[str]) -> FieldValidator:
    """Audience must equal the expected set exactly, ignoring order.

    A token audience that is a subset or superset of the expected one is
    rejected. A bare string is a single audience.
    """
    if isinstance(expected_aud, str):
        expected_aud = [expected_aud]
    expected = sorted(expected_aud)

    def validate(claims: Claims) -> None:
        token_aud = claims.audiences
        if not token_aud:
            raise MissingClaimError("missing audience claim", claim=AUDIENCE)
        if len(token_aud) != len(expected) or sorted(token_aud) != expected:
            raise ClaimMismatchError("invalid audience claim", claim=AUDIENCE)

    return validate


def custom_field_validator(field_name: str, expected_value: Any) -> FieldValidator:
    """Claim ``field_name`` must equal ``expected_value``.

    Booleans only match booleans, so ``true`` never equals ``1``.
    """

    def validate(claims: Claims) -> None:
        if field_name not in claims:
            raise MissingClaimError(f"missing {field_name} claim", claim=field_name)
        value = claims[field_name]
        if isinstance(value, bool) != isinstance(expected_value, bool) or value != expected_value:
            raise ClaimMismatchError(f"invalid {field_name} claim", claim=field_name)

    return validate


def time_validator(expected_time: datetime | None) -> FieldValidator:
    """Claims must be valid at ``expected_time`` (see Claims.is_valid)."""

    def validate(claims: Claims) -> None:
        if not claims.is_valid(expected_time):
            now = numeric_time(expected_time)
            if claims.expires is not None and (now is None or claims.expires <= now):
                name = EXPIRES
            else:
                name = NOT_BEFORE
            window = (
                f"nbf={format_numeric_time(claims.not_before) or '-'}, "
                f"exp={format_numeric_time(claims.expires) or '-'}"
            )
            raise ExpiredError(f"token is not valid at the given time ({window})", claim=name)

    return validate


def validate_fields(claims: Claims, *validators: FieldValidator) -> None:
    """Run validators in order; the first failure propagates and stops the run.

    Raises:
        ClaimError: First validator failure
    """
    for validator in validators:
        validator(claims)
