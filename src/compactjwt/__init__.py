"""Compact JSON Web Token signing and verification.

This package implements RFC 7519 tokens in the RFC 7515 compact
serialization with:
- HMAC (HS256/384/512), RSA PKCS#1 v1.5 (RS256/384/512) and
  ECDSA (ES256/384/512) signatures via ``cryptography``
- Family-bound verification against algorithm confusion
- Claims model with time validity and composable field validators

Logging goes through loguru and is disabled until the host application
enables it (see ``compactjwt.logging_config``).
"""

from loguru import logger

from compactjwt.algorithms import (
    ES256,
    ES384,
    ES512,
    HS256,
    HS384,
    HS512,
    RS256,
    RS384,
    RS512,
    Algorithm,
    AlgorithmRegistry,
    Family,
)
from compactjwt.claims import Claims, format_numeric_time, numeric_time, to_datetime
from compactjwt.engine import TokenEngine, default_engine, sign, verify
from compactjwt.errors import (
    AlgorithmFamilyMismatchError,
    ClaimError,
    ClaimMismatchError,
    EncodingError,
    ExpiredError,
    HashUnavailableError,
    InvalidKeyParametersError,
    InvalidSignatureError,
    KeyTooSmallError,
    MalformedTokenError,
    MissingClaimError,
    TokenError,
    UnknownAlgorithmError,
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
from compactjwt.version import __version__

logger.disable("compactjwt")

__all__ = [
    "ES256",
    "ES384",
    "ES512",
    "HS256",
    "HS384",
    "HS512",
    "RS256",
    "RS384",
    "RS512",
    "Algorithm",
    "AlgorithmRegistry",
    "Family",
    "Claims",
    "format_numeric_time",
    "numeric_time",
    "to_datetime",
    "TokenEngine",
    "default_engine",
    "sign",
    "verify",
    "AlgorithmFamilyMismatchError",
    "ClaimError",
    "ClaimMismatchError",
    "EncodingError",
    "ExpiredError",
    "HashUnavailableError",
    "InvalidKeyParametersError",
    "InvalidSignatureError",
    "KeyTooSmallError",
    "MalformedTokenError",
    "MissingClaimError",
    "TokenError",
    "UnknownAlgorithmError",
    "audiences_validator",
    "custom_field_validator",
    "id_validator",
    "issuer_validator",
    "subject_validator",
    "time_validator",
    "validate_fields",
    "__version__",
]
