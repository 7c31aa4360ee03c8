"""Error taxonomy for token signing, verification and claim validation.

Every failure raised by compactjwt derives from TokenError and carries a
stable machine-readable ``code`` so callers can log parse failures apart
from authentication failures while still rejecting both.

Hierarchy:
    TokenError
    ├── UnknownAlgorithmError
    ├── AlgorithmFamilyMismatchError
    ├── HashUnavailableError
    ├── EncodingError
    ├── MalformedTokenError
    ├── InvalidSignatureError
    ├── InvalidKeyParametersError
    ├── KeyTooSmallError
    └── ClaimError
        ├── MissingClaimError
        ├── ClaimMismatchError
        └── ExpiredError
"""

from typing import Any


class TokenError(Exception):
    """Base exception for compactjwt."""

    code = "token_error"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Error as a JSON-friendly dict (code, message, details)."""
        return {"code": self.code, "message": self.message, "details": self.details}


class UnknownAlgorithmError(TokenError):
    """Algorithm name not registered in any family table."""

    code = "unknown_algorithm"

    def __init__(self, algorithm: str):
        super().__init__(
            f"unknown algorithm {algorithm!r}", details={"algorithm": algorithm}
        )
        self.algorithm = algorithm


class AlgorithmFamilyMismatchError(TokenError):
    """Algorithm or key used with a family it does not belong to."""

    code = "algorithm_family_mismatch"


class HashUnavailableError(TokenError):
    """Hash function is registered but the crypto provider cannot compute it."""

    code = "hash_unavailable"

    def __init__(self, algorithm: str, hash_name: str):
        super().__init__(
            f"hash function {hash_name!r} for {algorithm!r} is not available",
            details={"algorithm": algorithm, "hash": hash_name},
        )


class EncodingError(TokenError):
    """Claims could not be serialized (non-finite number, unsupported type)."""

    code = "encoding_error"


class MalformedTokenError(TokenError):
    """Structural token failure: segments, base64, JSON or signature length."""

    code = "malformed_token"


class InvalidSignatureError(TokenError):
    """Well-formed token whose signature does not check out."""

    code = "invalid_signature"

    def __init__(self, message: str = "signature mismatch", details: dict[str, Any] | None = None):
        super().__init__(message, details)


class InvalidKeyParametersError(TokenError):
    """Key with degenerate domain parameters."""

    code = "invalid_key_parameters"


class KeyTooSmallError(TokenError):
    """RSA modulus too small to encode the digest."""

    code = "key_too_small"


class ClaimError(TokenError):
    """Base for claim validation failures."""

    code = "claim_error"

    def __init__(self, message: str, claim: str | None = None):
        super().__init__(message, details={"claim": claim} if claim else None)
        self.claim = claim


class MissingClaimError(ClaimError):
    code = "missing_claim"


class ClaimMismatchError(ClaimError):
    code = "claim_mismatch"


class ExpiredError(ClaimError):
    """Claims are not valid at the requested time (expired or not yet valid)."""

    code = "expired"
