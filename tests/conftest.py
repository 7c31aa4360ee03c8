"""Shared fixtures: keys for every family and a default engine."""

import pytest
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec, rsa

from compactjwt.algorithms import AlgorithmRegistry
from compactjwt.engine import TokenEngine


class UnlinkedHash(hashes.HashAlgorithm):
    """Hash the crypto provider does not know."""

    name = "unlinked-hash"
    digest_size = 32
    block_size = 64


@pytest.fixture
def unlinked_hash() -> hashes.HashAlgorithm:
    return UnlinkedHash()


@pytest.fixture
def engine() -> TokenEngine:
    return TokenEngine(AlgorithmRegistry.default())


@pytest.fixture(scope="session")
def hmac_secret() -> bytes:
    return b"0123456789abcdef0123456789abcdef-test-secret"


@pytest.fixture(scope="session")
def rsa_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def ec256_key() -> ec.EllipticCurvePrivateKey:
    return ec.generate_private_key(ec.SECP256R1())


@pytest.fixture(scope="session")
def ec384_key() -> ec.EllipticCurvePrivateKey:
    return ec.generate_private_key(ec.SECP384R1())


@pytest.fixture(scope="session")
def ec521_key() -> ec.EllipticCurvePrivateKey:
    return ec.generate_private_key(ec.SECP521R1())
