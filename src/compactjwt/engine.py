"""Signature engine: sign and verify compact tokens.

Three families are supported:

- HMAC: keyed hash over the signing input, constant-time comparison.
- RSA: RSASSA-PKCS1-v1_5 with the resolved hash.
- ECDSA: the provider's DER signature converted to the fixed-width
  ``r || s`` form of RFC 7518 section 3.4, each half zero-padded to the
  curve's coordinate length.

Verification is bound to a family chosen by the caller (the entry point or
the key), never to the algorithm a token names in its own header.

Example:
    >>> engine = TokenEngine(AlgorithmRegistry.default())
    >>> token = engine.sign(Claims(subject="agent"), "HS256", b"secret")
    >>> engine.verify(token, Family.HMAC, b"secret").subject
    'agent'
"""

from typing import Union

from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives import hmac as crypto_hmac
from cryptography.hazmat.primitives.asymmetric import ec, padding, rsa
from cryptography.hazmat.primitives.asymmetric.utils import (
    decode_dss_signature,
    encode_dss_signature,
)
from loguru import logger

from compactjwt import codec
from compactjwt.algorithms import AlgorithmRegistry, Family
from compactjwt.claims import Claims
from compactjwt.errors import (
    AlgorithmFamilyMismatchError,
    HashUnavailableError,
    InvalidKeyParametersError,
    InvalidSignatureError,
    KeyTooSmallError,
    MalformedTokenError,
    TokenError,
)
from compactjwt.settings import settings

SigningKey = Union[bytes, bytearray, memoryview, rsa.RSAPrivateKey, ec.EllipticCurvePrivateKey]
VerifyingKey = Union[
    bytes,
    bytearray,
    memoryview,
    rsa.RSAPublicKey,
    rsa.RSAPrivateKey,
    ec.EllipticCurvePublicKey,
    ec.EllipticCurvePrivateKey,
]

# DER DigestInfo prefix lengths for EMSA-PKCS1-v1_5 (RFC 8017 section 9.2)
_DIGEST_INFO_PREFIX = {
    "sha1": 15,
    "sha224": 19,
    "sha256": 19,
    "sha384": 19,
    "sha512": 19,
}


def key_family(key: object) -> Family:
    """Family a key belongs to.

    Raises:
        TypeError: Key type not usable by any family
    """
    if isinstance(key, (bytes, bytearray, memoryview)):
        return Family.HMAC
    if isinstance(key, (rsa.RSAPrivateKey, rsa.RSAPublicKey)):
        return Family.RSA
    if isinstance(key, (ec.EllipticCurvePrivateKey, ec.EllipticCurvePublicKey)):
        return Family.ECDSA
    raise TypeError(f"unsupported key type {type(key).__name__}")


def _require_family(key: object, family: Family) -> None:
    actual = key_family(key)
    if actual is not family:
        raise AlgorithmFamilyMismatchError(
            f"{actual.value} key cannot be used with the {family.value} family",
            details={"family": family.value, "key_family": actual.value},
        )


def coordinate_size(curve: ec.EllipticCurve) -> int:
    """Byte length of one signature component for ``curve``.

    Raises:
        InvalidKeyParametersError: Degenerate curve (zero size)
    """
    size = (curve.key_size + 7) // 8
    if size <= 0:
        raise InvalidKeyParametersError(
            "zero parameter", details={"curve": getattr(curve, "name", None)}
        )
    return size


class TokenEngine:
    """Signs claims and verifies tokens against an algorithm registry."""

    def __init__(self, registry: AlgorithmRegistry | None = None):
        self.registry = registry or AlgorithmRegistry.default()

    # Signing

    def sign(self, claims: Claims, algorithm: str, key: SigningKey) -> str:
        """Sign claims with the family implied by ``key``.

        Args:
            claims: Claims to serialize (not modified)
            algorithm: Algorithm name, e.g. "HS512"
            key: HMAC secret bytes, RSA private key or EC private key

        Returns:
            Compact token string

        Raises:
            UnknownAlgorithmError: Algorithm not registered
            AlgorithmFamilyMismatchError: Algorithm registered under another family
            HashUnavailableError: Hash not available in the provider
            EncodingError: Claims not serializable
            KeyTooSmallError: RSA modulus too small for the digest
            InvalidKeyParametersError: Degenerate EC key
        """
        return self._sign(key_family(key), claims, algorithm, key)

    def hmac_sign(self, claims: Claims, algorithm: str, secret: bytes) -> str:
        _require_family(secret, Family.HMAC)
        return self._sign(Family.HMAC, claims, algorithm, secret)

    def rsa_sign(self, claims: Claims, algorithm: str, key: rsa.RSAPrivateKey) -> str:
        _require_family(key, Family.RSA)
        return self._sign(Family.RSA, claims, algorithm, key)

    def ecdsa_sign(
        self, claims: Claims, algorithm: str, key: ec.EllipticCurvePrivateKey
    ) -> str:
        _require_family(key, Family.ECDSA)
        return self._sign(Family.ECDSA, claims, algorithm, key)

    def _sign(self, family: Family, claims: Claims, algorithm: str, key: SigningKey) -> str:
        try:
            header, hash_algorithm = self.registry.resolve(algorithm, family)
            payload = claims.to_json()
            signing_input = header + codec.SEPARATOR + codec.encode_segment(payload)
            data = signing_input.encode("ascii")

            try:
                if family is Family.HMAC:
                    signature = _hmac_digest(bytes(key), hash_algorithm, data)
                elif family is Family.RSA:
                    signature = _rsa_sign(key, hash_algorithm, data)
                else:
                    signature = _ecdsa_sign(key, hash_algorithm, data)
            except UnsupportedAlgorithm as e:
                raise HashUnavailableError(algorithm, hash_algorithm.name) from e
        except TokenError as e:
            logger.debug(f"Sign {algorithm} failed: {e.code}")
            raise

        logger.debug(f"Signed {algorithm} token")
        return codec.assemble(signing_input, signature)

    # Verification

    def verify(self, token: str | bytes, family: Family, key: VerifyingKey) -> Claims:
        """Verify a token within ``family`` and return its claims.

        Time and field claims are not evaluated; apply validators afterwards.

        Args:
            token: Compact token
            family: Family the caller accepts; the header algorithm must resolve here
            key: HMAC secret, or RSA/EC public key (private keys are reduced to public)

        Returns:
            Frozen Claims with ``raw`` holding the payload JSON

        Raises:
            MalformedTokenError: Structural failure
            UnknownAlgorithmError: Header names an unregistered algorithm
            AlgorithmFamilyMismatchError: Header algorithm or key outside ``family``
            HashUnavailableError: Hash not available in the provider
            InvalidSignatureError: Signature does not match
        """
        family = Family(family)
        _require_family(key, family)

        try:
            header_seg, payload_seg, signature_seg = codec.split(token)
            header = codec.parse_header(header_seg)
            algorithm = header["alg"]
            _, hash_algorithm = self.registry.resolve(algorithm, family)

            signature = codec.decode_segment(signature_seg)
            data = (header_seg + codec.SEPARATOR + payload_seg).encode("ascii")

            try:
                if family is Family.HMAC:
                    _hmac_check(bytes(key), hash_algorithm, data, signature)
                elif family is Family.RSA:
                    _rsa_check(key, hash_algorithm, data, signature)
                else:
                    _ecdsa_check(key, hash_algorithm, data, signature)
            except UnsupportedAlgorithm as e:
                raise HashUnavailableError(algorithm, hash_algorithm.name) from e

            claims = Claims.from_json(codec.decode_segment(payload_seg))
        except TokenError as e:
            logger.debug(f"Rejected {family.value} token: {e.code}")
            raise

        logger.debug(f"Verified {algorithm} token")
        return claims

    def hmac_check(self, token: str | bytes, secret: bytes) -> Claims:
        return self.verify(token, Family.HMAC, secret)

    def rsa_check(self, token: str | bytes, key: rsa.RSAPublicKey) -> Claims:
        return self.verify(token, Family.RSA, key)

    def ecdsa_check(self, token: str | bytes, key: ec.EllipticCurvePublicKey) -> Claims:
        return self.verify(token, Family.ECDSA, key)


def _hmac_digest(secret: bytes, hash_algorithm: hashes.HashAlgorithm, data: bytes) -> bytes:
    h = crypto_hmac.HMAC(secret, hash_algorithm)
    h.update(data)
    return h.finalize()


def _hmac_check(
    secret: bytes, hash_algorithm: hashes.HashAlgorithm, data: bytes, signature: bytes
) -> None:
    h = crypto_hmac.HMAC(secret, hash_algorithm)
    h.update(data)
    try:
        h.verify(signature)  # constant time
    except InvalidSignature as e:
        raise InvalidSignatureError() from e


def _rsa_sign(key: rsa.RSAPrivateKey, hash_algorithm: hashes.HashAlgorithm, data: bytes) -> bytes:
    if not isinstance(key, rsa.RSAPrivateKey):
        raise TypeError("RSA signing requires a private key")

    prefix = _DIGEST_INFO_PREFIX.get(hash_algorithm.name)
    if prefix is not None:
        modulus_len = (key.key_size + 7) // 8
        if modulus_len < prefix + hash_algorithm.digest_size + 11:
            raise KeyTooSmallError(
                f"{key.key_size}-bit RSA key too small for {hash_algorithm.name}",
                details={"key_size": key.key_size, "hash": hash_algorithm.name},
            )

    return key.sign(data, padding.PKCS1v15(), hash_algorithm)


def _rsa_check(
    key: rsa.RSAPublicKey | rsa.RSAPrivateKey,
    hash_algorithm: hashes.HashAlgorithm,
    data: bytes,
    signature: bytes,
) -> None:
    if isinstance(key, rsa.RSAPrivateKey):
        key = key.public_key()
    try:
        key.verify(signature, data, padding.PKCS1v15(), hash_algorithm)
    except InvalidSignature as e:
        raise InvalidSignatureError() from e


def _ecdsa_sign(
    key: ec.EllipticCurvePrivateKey, hash_algorithm: hashes.HashAlgorithm, data: bytes
) -> bytes:
    if not isinstance(key, ec.EllipticCurvePrivateKey):
        raise TypeError("ECDSA signing requires a private key")

    size = coordinate_size(key.curve)
    r, s = decode_dss_signature(key.sign(data, ec.ECDSA(hash_algorithm)))
    return r.to_bytes(size, "big") + s.to_bytes(size, "big")


def _ecdsa_check(
    key: ec.EllipticCurvePublicKey | ec.EllipticCurvePrivateKey,
    hash_algorithm: hashes.HashAlgorithm,
    data: bytes,
    signature: bytes,
) -> None:
    if isinstance(key, ec.EllipticCurvePrivateKey):
        key = key.public_key()

    size = coordinate_size(key.curve)
    if len(signature) != 2 * size:
        raise MalformedTokenError(
            f"ECDSA signature is {len(signature)} bytes, want {2 * size}",
            details={"length": len(signature), "expected": 2 * size},
        )

    r = int.from_bytes(signature[:size], "big")
    s = int.from_bytes(signature[size:], "big")
    try:
        key.verify(encode_dss_signature(r, s), data, ec.ECDSA(hash_algorithm))
    except InvalidSignature as e:
        raise InvalidSignatureError() from e


_default_engine: TokenEngine | None = None


def default_engine() -> TokenEngine:
    """Process-wide engine built from settings on first use."""
    global _default_engine
    if _default_engine is None:
        _default_engine = TokenEngine(AlgorithmRegistry.from_settings(settings))
    return _default_engine


def sign(claims: Claims, algorithm: str, key: SigningKey) -> str:
    """Sign with the default engine. See TokenEngine.sign."""
    return default_engine().sign(claims, algorithm, key)


def verify(token: str | bytes, family: Family, key: VerifyingKey) -> Claims:
    """Verify with the default engine. See TokenEngine.verify."""
    return default_engine().verify(token, family, key)
