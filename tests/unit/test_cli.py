"""Tests for the compactjwt command line."""

import pytest
from cryptography.hazmat.primitives import serialization
from typer.testing import CliRunner

from compactjwt.cli.main import app

runner = CliRunner()


def _sign(*args: str) -> str:
    result = runner.invoke(app, ["sign", *args])
    assert result.exit_code == 0, result.output
    return result.output.strip()


@pytest.fixture
def ec_pem_files(tmp_path, ec256_key):
    private_path = tmp_path / "ec-private.pem"
    public_path = tmp_path / "ec-public.pem"
    private_path.write_bytes(
        ec256_key.private_bytes(
            serialization.Encoding.PEM,
            serialization.PrivateFormat.PKCS8,
            serialization.NoEncryption(),
        )
    )
    public_path.write_bytes(
        ec256_key.public_key().public_bytes(
            serialization.Encoding.PEM, serialization.PublicFormat.SubjectPublicKeyInfo
        )
    )
    return private_path, public_path


class TestSignVerify:
    def test_hmac_round_trip(self):
        token = _sign("--alg", "HS256", "--secret", "s3cret", "--sub", "agent", "--expires-in", "3600")
        assert token.count(".") == 2

        result = runner.invoke(app, ["verify", token, "--secret", "s3cret", "--sub", "agent"])

        assert result.exit_code == 0, result.output
        assert "agent" in result.output

    def test_extra_claims_and_audience(self):
        token = _sign(
            "--secret", "s3cret",
            "--aud", "api",
            "--aud", "cli",
            "--claim", 'roles=["admin"]',
            "--claim", "tenant=t-1",
        )

        result = runner.invoke(
            app, ["verify", token, "--secret", "s3cret", "--aud", "cli", "--aud", "api"]
        )

        assert result.exit_code == 0, result.output
        assert "admin" in result.output
        assert "t-1" in result.output

    def test_wrong_secret(self):
        token = _sign("--secret", "s3cret", "--sub", "agent")

        result = runner.invoke(app, ["verify", token, "--secret", "other"])

        assert result.exit_code == 1
        assert "invalid_signature" in result.output

    def test_claim_mismatch(self):
        token = _sign("--secret", "s3cret", "--iss", "me")

        result = runner.invoke(app, ["verify", token, "--secret", "s3cret", "--iss", "you"])

        assert result.exit_code == 1
        assert "claim_mismatch" in result.output

    def test_expired(self):
        token = _sign("--secret", "s3cret", "--expires-in=-10")

        result = runner.invoke(app, ["verify", token, "--secret", "s3cret"])
        assert result.exit_code == 1
        assert "expired" in result.output

        result = runner.invoke(app, ["verify", token, "--secret", "s3cret", "--no-check-time"])
        assert result.exit_code == 0, result.output

    def test_ecdsa_with_pem_keys(self, ec_pem_files):
        private_path, public_path = ec_pem_files
        token = _sign("--alg", "ES256", "--key", str(private_path), "--sub", "agent")

        result = runner.invoke(
            app, ["verify", token, "--family", "ecdsa", "--key", str(public_path)]
        )
        assert result.exit_code == 0, result.output

        result = runner.invoke(app, ["verify", token, "--secret", "s3cret"])
        assert result.exit_code == 1
        assert "algorithm_family_mismatch" in result.output

    @pytest.mark.parametrize(
        "key_args",
        [[], ["--secret", "s3cret", "--key", "missing.pem"]],
    )
    def test_exactly_one_key_source(self, key_args):
        result = runner.invoke(app, ["sign", *key_args])
        assert result.exit_code == 2

    def test_unknown_algorithm(self):
        result = runner.invoke(app, ["sign", "--alg", "HS1024", "--secret", "s3cret"])

        assert result.exit_code == 1
        assert "unknown_algorithm" in result.output


class TestInspect:
    def test_inspect_shows_unverified_contents(self):
        token = _sign("--secret", "s3cret", "--sub", "agent", "--iat")

        result = runner.invoke(app, ["inspect", token])

        assert result.exit_code == 0, result.output
        assert "UNVERIFIED" in result.output
        assert "HS256" in result.output
        assert "agent" in result.output
        assert "iat:" in result.output

    def test_inspect_malformed(self):
        result = runner.invoke(app, ["inspect", "not-a-token"])

        assert result.exit_code == 1
        assert "malformed_token" in result.output


def test_algorithms_lists_registry():
    result = runner.invoke(app, ["algorithms"])

    assert result.exit_code == 0, result.output
    for name in ("HS256", "RS384", "ES512"):
        assert name in result.output
