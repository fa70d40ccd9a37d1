"""
Proof-of-Work (PoW) hash challenge.

The client proves work by finding a nonce such that

    SHA256(source_value + ":" + nonce)

starts with enough hex zeros. Difficulty may be fractional: the integer part
is the number of leading zeros, the fractional part bounds the hex digit that
follows them (difficulty 4.5 means "0000" followed by a digit below 8).

Verification is a single hash, so it is cheap on the server and expensive
for anyone who has to solve many challenges.
"""

import base64
import binascii
import hashlib
import logging
import math
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)

HEX_BASE = 16


@dataclass(frozen=True)
class DifficultySpec:
    """Difficulty split into leading-zero count and fractional digit bound."""
    full: int  # Number of leading hex zeros required
    fraction: float  # In [0, 1), tightens the digit after the zeros

    @classmethod
    def from_value(cls, difficulty: float) -> "DifficultySpec":
        if not math.isfinite(difficulty) or difficulty < 0:
            # Settings validation rejects these; never let them raise here
            logger.warning(
                f"Difficulty {difficulty!r} is not a non-negative number, "
                f"treating it as no requirement"
            )
            return cls(full=0, fraction=0.0)

        full = math.floor(difficulty)
        return cls(full=int(full), fraction=difficulty - full)

    @property
    def threshold(self) -> float:
        """Exclusive upper bound for the hex digit following the zeros."""
        return HEX_BASE - HEX_BASE * self.fraction


def build_input(source_value: str, nonce) -> str:
    """Build the string the client hashes: ``source:nonce``."""
    return f"{source_value}:{nonce}"


def compute_hash(data: str) -> str:
    return hashlib.sha256(data.encode()).hexdigest()


def satisfies_difficulty(hash_hex: str, spec: DifficultySpec) -> bool:
    """
    Check a hex digest against a (possibly fractional) difficulty.

    Args:
        hash_hex: Lowercase hex SHA-256 digest
        spec: Difficulty to test against

    Returns:
        True if the first ``spec.full`` characters are '0' and, for a
        fractional difficulty, the next digit is below ``spec.threshold``
    """
    if spec.full > len(hash_hex):
        return False

    if not hash_hex.startswith("0" * spec.full):
        return False

    if spec.fraction > 0:
        if len(hash_hex) <= spec.full:
            return False
        next_digit = int(hash_hex[spec.full], HEX_BASE)
        return next_digit < spec.threshold

    return True


def decode_proof_token(token: str) -> Optional[str]:
    """
    Decode a proof cookie into its decimal nonce string.

    The browser stores ``btoa(nonce.toString())``. Anything that is not valid
    base64 of ASCII digits is treated as no proof at all.
    """
    try:
        raw = base64.b64decode(token, validate=True)
    except (binascii.Error, ValueError):
        return None

    try:
        nonce = raw.decode("ascii")
    except UnicodeDecodeError:
        return None

    if not nonce.isdigit():
        return None
    return nonce


def verify_proof(source_value: str, token: str, spec: DifficultySpec) -> bool:
    """Verify a proof cookie value against the current source value."""
    nonce = decode_proof_token(token)
    if nonce is None:
        logger.debug("Proof token is not base64 of a decimal nonce")
        return False

    proof_hash = compute_hash(build_input(source_value, nonce))
    if not satisfies_difficulty(proof_hash, spec):
        logger.debug(
            f"Proof hash {proof_hash[:16]}... does not meet difficulty "
            f"{spec.full + spec.fraction}"
        )
        return False

    return True


# =============================================================================
# Utility for testing/client reference
# =============================================================================


def solve(source_value: str, spec: DifficultySpec, start: int = 0) -> int:
    """
    Find the first nonce from ``start`` that satisfies the difficulty.

    This is what pow.js does in the browser:
    - Try nonces 0, 1, 2, ... until SHA256(source + ":" + nonce) qualifies
    """
    nonce = start

    while True:
        hash_result = compute_hash(build_input(source_value, nonce))

        if satisfies_difficulty(hash_result, spec):
            return nonce

        nonce += 1


def encode_proof_token(nonce: int) -> str:
    """Encode a nonce the way the browser stores it in the cookie."""
    return base64.b64encode(str(nonce).encode("ascii")).decode("ascii")
