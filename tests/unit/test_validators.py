"""Unit tests for field validators and the validation combinator."""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from compactjwt.claims import Claims
from compactjwt.errors import (
    ClaimError,
    ClaimMismatchError,
    ExpiredError,
    MissingClaimError,
)
from compactjwt.validators import (
    audiences_validator,
    custom_field_validator,
    id_validator,
    issuer_validator,
    subject_validator,
    time_validator,
    validate_fields,
)

T = datetime(2024, 1, 1, tzinfo=timezone.utc)
T_SECONDS = 1704067200.0


class TestAudiences:
    """Audience must match the expected set exactly."""

    def test_order_is_ignored(self):
        validate_fields(Claims(audience=["b", "a"]), audiences_validator(["a", "b"]))

    def test_single_string_audience(self):
        validate_fields(Claims(audience="api"), audiences_validator(["api"]))

    def test_bare_string_expected_audience(self):
        """A string is one audience, not a set of characters."""
        validate_fields(Claims(audience="api"), audiences_validator("api"))
        validate_fields(Claims(audience=["api"]), audiences_validator("api"))

        with pytest.raises(ClaimMismatchError):
            validate_fields(Claims(audience=["a", "i", "p"]), audiences_validator("api"))

    @pytest.mark.parametrize("audience", [["a"], ["a", "b", "c"], ["a", "c"], "a"])
    def test_subset_or_superset_rejected(self, audience):
        with pytest.raises(ClaimMismatchError) as exc:
            validate_fields(Claims(audience=audience), audiences_validator(["a", "b"]))
        assert exc.value.claim == "aud"

    def test_missing_audience(self):
        with pytest.raises(MissingClaimError):
            validate_fields(Claims(subject="agent"), audiences_validator(["a"]))

    def test_inputs_not_mutated(self):
        expected = ["b", "a"]
        claims = Claims(audience=["b", "a"])

        validate_fields(claims, audiences_validator(expected))

        assert expected == ["b", "a"]
        assert claims.audience == ["b", "a"]


class TestStringClaims:
    """Issuer, subject and id validators."""

    @pytest.mark.parametrize(
        "make_validator,attr,name",
        [
            (issuer_validator, "issuer", "iss"),
            (subject_validator, "subject", "sub"),
            (id_validator, "id", "jti"),
        ],
    )
    def test_match_mismatch_missing(self, make_validator, attr, name):
        validator = make_validator("expected")

        validator(Claims(**{attr: "expected"}))

        with pytest.raises(ClaimMismatchError) as exc:
            validator(Claims(**{attr: "other"}))
        assert exc.value.claim == name

        with pytest.raises(MissingClaimError) as exc:
            validator(Claims())
        assert exc.value.claim == name

    def test_issuer_from_claim_set(self):
        issuer_validator("me")(Claims(claim_set={"iss": "me"}))

    def test_messages(self):
        with pytest.raises(MissingClaimError, match="missing issuer claim"):
            issuer_validator("me")(Claims())
        with pytest.raises(ClaimMismatchError, match="invalid subject claim"):
            subject_validator("me")(Claims(subject="you"))


class TestCustomField:
    """Arbitrary claim equality."""

    def test_match(self):
        claims = Claims(claim_set={"tenant": "t-1", "roles": ["admin"], "admin": True})

        validate_fields(
            claims,
            custom_field_validator("tenant", "t-1"),
            custom_field_validator("roles", ["admin"]),
            custom_field_validator("admin", True),
        )

    def test_registered_claim(self):
        custom_field_validator("sub", "agent")(Claims(subject="agent"))

    def test_bool_only_matches_bool(self):
        """true never equals 1."""
        with pytest.raises(ClaimMismatchError):
            custom_field_validator("admin", 1)(Claims(claim_set={"admin": True}))
        with pytest.raises(ClaimMismatchError):
            custom_field_validator("level", True)(Claims(claim_set={"level": 1}))

    def test_mismatch_and_missing(self):
        with pytest.raises(ClaimMismatchError):
            custom_field_validator("tenant", "t-1")(Claims(claim_set={"tenant": "t-2"}))
        with pytest.raises(MissingClaimError) as exc:
            custom_field_validator("tenant", "t-1")(Claims())
        assert exc.value.claim == "tenant"


class TestTime:
    """Time validator over Claims.is_valid."""

    def test_valid(self):
        time_validator(T)(Claims(not_before=T_SECONDS, expires=T_SECONDS + 60))

    def test_expired(self):
        with pytest.raises(ExpiredError) as exc:
            time_validator(T)(Claims(expires=T_SECONDS))
        assert exc.value.claim == "exp"
        assert "2024-01-01T00:00:00Z" in exc.value.message

    def test_not_yet_valid(self):
        with pytest.raises(ExpiredError) as exc:
            time_validator(T - timedelta(seconds=1))(Claims(not_before=T_SECONDS))
        assert exc.value.claim == "nbf"

    def test_absent_time(self):
        with pytest.raises(ExpiredError) as exc:
            time_validator(None)(Claims(expires=T_SECONDS))
        assert exc.value.claim == "exp"

        time_validator(None)(Claims(subject="agent"))

    def test_not_before_beyond_calendar(self):
        """A far-future nbf is rejected, not a crash while formatting."""
        with pytest.raises(ExpiredError) as exc:
            time_validator(T)(Claims(not_before=1e20))
        assert exc.value.claim == "nbf"
        assert "1e+20" in exc.value.message

    def test_expiry_before_calendar(self):
        with pytest.raises(ExpiredError) as exc:
            time_validator(T)(Claims(expires=-1e13))
        assert exc.value.claim == "exp"

    def test_verified_out_of_range_time(self, engine, hmac_secret):
        token = engine.sign(Claims(subject="agent", not_before=1e20), "HS256", hmac_secret)
        claims = engine.hmac_check(token, hmac_secret)

        with pytest.raises(ExpiredError):
            validate_fields(claims, time_validator(T))


class TestValidateFields:
    """The combinator runs validators in order and stops at the first failure."""

    def test_all_pass(self):
        claims = Claims(issuer="me", subject="agent", audience="api", expires=T_SECONDS + 60)

        result = validate_fields(
            claims,
            issuer_validator("me"),
            subject_validator("agent"),
            audiences_validator(["api"]),
            time_validator(T),
        )

        assert result is None

    def test_no_validators(self):
        assert validate_fields(Claims()) is None

    def test_fail_fast(self):
        """Later validators do not run after a failure."""
        later = MagicMock()

        with pytest.raises(ClaimMismatchError):
            validate_fields(Claims(issuer="other"), issuer_validator("me"), later)

        later.assert_not_called()

    def test_first_failure_wins(self):
        claims = Claims(issuer="other")

        with pytest.raises(MissingClaimError):
            validate_fields(claims, subject_validator("agent"), issuer_validator("me"))

    def test_claim_errors_share_base(self):
        with pytest.raises(ClaimError) as exc:
            validate_fields(Claims(), id_validator("token-1"))
        assert exc.value.code == "missing_claim"
