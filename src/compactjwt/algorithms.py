"""Algorithm registry.

Maps JWS algorithm names (RFC 7518) to a signature family and a hash
function. A registry is an immutable value built at configuration time and
handed to the engine; adding or removing an algorithm produces a new
registry instead of mutating shared tables.

Example:
    >>> registry = AlgorithmRegistry.default()
    >>> header, hash_algorithm = registry.resolve("HS512", Family.HMAC)
    >>> header
    'eyJhbGciOiJIUzUxMiJ9'
"""

import json
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes
from loguru import logger

from compactjwt.codec import encode_segment
from compactjwt.errors import (
    AlgorithmFamilyMismatchError,
    HashUnavailableError,
    UnknownAlgorithmError,
)
from compactjwt.settings import Settings


class Family(str, Enum):
    """Signature algorithm family; determines key shape and signature encoding."""

    HMAC = "hmac"
    RSA = "rsa"
    ECDSA = "ecdsa"


# Algorithm identification tokens
HS256 = "HS256"  # HMAC SHA-256
HS384 = "HS384"  # HMAC SHA-384
HS512 = "HS512"  # HMAC SHA-512
RS256 = "RS256"  # RSASSA-PKCS1-v1_5 with SHA-256
RS384 = "RS384"  # RSASSA-PKCS1-v1_5 with SHA-384
RS512 = "RS512"  # RSASSA-PKCS1-v1_5 with SHA-512
ES256 = "ES256"  # ECDSA P-256 with SHA-256
ES384 = "ES384"  # ECDSA P-384 with SHA-384
ES512 = "ES512"  # ECDSA P-521 with SHA-512

STANDARD_ALGORITHMS: dict[Family, dict[str, hashes.HashAlgorithm]] = {
    Family.HMAC: {HS256: hashes.SHA256(), HS384: hashes.SHA384(), HS512: hashes.SHA512()},
    Family.RSA: {RS256: hashes.SHA256(), RS384: hashes.SHA384(), RS512: hashes.SHA512()},
    Family.ECDSA: {ES256: hashes.SHA256(), ES384: hashes.SHA384(), ES512: hashes.SHA512()},
}


@dataclass(frozen=True)
class Algorithm:
    """A registered algorithm."""

    name: str
    family: Family
    hash: hashes.HashAlgorithm


def hash_available(hash_algorithm: hashes.HashAlgorithm) -> bool:
    """Whether the crypto provider can compute the given hash."""
    try:
        hashes.Hash(hash_algorithm)
    except UnsupportedAlgorithm:
        return False
    return True


def header_segment(algorithm: str) -> str:
    """Encoded header ``{"alg":"<algorithm>"}``; byte-for-byte reproducible."""
    header = json.dumps({"alg": algorithm}, separators=(",", ":"), ensure_ascii=False)
    return encode_segment(header.encode("utf-8"))


class AlgorithmRegistry:
    """Immutable per-family algorithm tables.

    Lookups are always scoped to one family: the caller selects the family
    table by the entry point it uses (or the key it supplies), never by the
    algorithm a token claims for itself.
    """

    def __init__(
        self, tables: Mapping[Family, Mapping[str, hashes.HashAlgorithm]] | None = None
    ):
        tables = tables or {}
        self._tables: Mapping[Family, Mapping[str, hashes.HashAlgorithm]] = MappingProxyType(
            {family: MappingProxyType(dict(tables.get(family, {}))) for family in Family}
        )

    @classmethod
    def default(cls) -> "AlgorithmRegistry":
        """Registry with the nine standard HMAC, RSA and ECDSA algorithms."""
        return cls(STANDARD_ALGORITHMS)

    @classmethod
    def from_settings(cls, config: Settings) -> "AlgorithmRegistry":
        """Default registry minus ``config.disabled_algorithms``."""
        registry = cls.default()
        for name in config.disabled_algorithms:
            registry = registry.without_algorithm(name)
        if config.disabled_algorithms:
            logger.info(f"Disabled algorithms: {', '.join(config.disabled_algorithms)}")
        return registry

    def with_algorithm(
        self, family: Family, name: str, hash_algorithm: hashes.HashAlgorithm
    ) -> "AlgorithmRegistry":
        """New registry with ``name`` added to (or replaced in) ``family``.

        A name lives in exactly one family; registering it under another
        family moves it.
        """
        family = Family(family)
        tables = {f: {n: h for n, h in t.items() if n != name} for f, t in self._tables.items()}
        tables[family][name] = hash_algorithm
        return AlgorithmRegistry(tables)

    def without_algorithm(self, name: str) -> "AlgorithmRegistry":
        """New registry with ``name`` removed from every family."""
        tables = {f: {n: h for n, h in t.items() if n != name} for f, t in self._tables.items()}
        return AlgorithmRegistry(tables)

    def table(self, family: Family) -> Mapping[str, hashes.HashAlgorithm]:
        return self._tables[Family(family)]

    def family_of(self, name: str) -> Family | None:
        for family, table in self._tables.items():
            if name in table:
                return family
        return None

    def resolve(self, name: str, family: Family) -> tuple[str, hashes.HashAlgorithm]:
        """Look up ``name`` in the ``family`` table.

        Args:
            name: Algorithm identifier, e.g. "ES384"
            family: Family table to consult

        Returns:
            Tuple of (encoded header segment, hash algorithm)

        Raises:
            UnknownAlgorithmError: Name not registered at all
            AlgorithmFamilyMismatchError: Name registered under another family
            HashUnavailableError: Provider cannot compute the registered hash
        """
        family = Family(family)
        hash_algorithm = self._tables[family].get(name)
        if hash_algorithm is None:
            other = self.family_of(name)
            if other is None:
                raise UnknownAlgorithmError(name)
            raise AlgorithmFamilyMismatchError(
                f"algorithm {name!r} belongs to family {other.value}, not {family.value}",
                details={"algorithm": name, "family": family.value, "actual": other.value},
            )

        if not hash_available(hash_algorithm):
            raise HashUnavailableError(name, hash_algorithm.name)

        return header_segment(name), hash_algorithm

    def __iter__(self) -> Iterator[Algorithm]:
        for family, table in self._tables.items():
            for name, hash_algorithm in table.items():
                yield Algorithm(name=name, family=family, hash=hash_algorithm)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.family_of(name) is not None

    def __len__(self) -> int:
        return sum(len(table) for table in self._tables.values())

    def __repr__(self) -> str:
        names = ", ".join(a.name for a in self)
        return f"AlgorithmRegistry({names})"
