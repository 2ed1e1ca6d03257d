"""
Shamir's Secret Sharing over GF(2^8).

Splits an arbitrarily long secret into N shares where any K shares
reconstruct the original and K-1 shares reveal nothing about it. Each
byte of the secret gets its own random polynomial of degree K-1; every
share holds one evaluation per byte plus the x-coordinate it was
evaluated at.

Wire form of a share: y_1 y_2 ... y_n x (one byte longer than the secret).
"""

import secrets
from dataclasses import dataclass
from typing import Iterable, List, Union

from . import galois
from .errors import ValidationError


MAX_PARTS = 255


@dataclass(frozen=True)
class RawShare:
    """One (x, y-sequence) output of a split."""
    payload: bytes
    x: int

    def __post_init__(self):
        if not 1 <= self.x <= 255:
            raise ValidationError(f"Share x-coordinate must be in 1..255, got {self.x}")

    def to_bytes(self) -> bytes:
        return bytes(self.payload) + bytes([self.x])

    @classmethod
    def from_bytes(cls, data: bytes) -> 'RawShare':
        if len(data) < 2:
            raise ValidationError("Shares must be at least two bytes")
        return cls(payload=bytes(data[:-1]), x=data[-1])

    def __len__(self) -> int:
        return len(self.payload) + 1


def split(secret: bytes, parts: int, threshold: int) -> List[RawShare]:
    """
    Split a secret into `parts` shares, `threshold` of which reconstruct it.

    Args:
        secret: Secret bytes (any non-empty length)
        parts: Total number of shares (<= 255)
        threshold: Shares needed to reconstruct (>= 2)

    Returns:
        List of RawShare with distinct random x-coordinates.

    Raises:
        ValidationError: If parameters are invalid
    """
    if parts < threshold:
        raise ValidationError("Parts cannot be less than threshold")
    if threshold > MAX_PARTS:
        raise ValidationError(f"Threshold cannot exceed {MAX_PARTS}")
    if parts > MAX_PARTS:
        raise ValidationError(f"Parts cannot exceed {MAX_PARTS}")
    if threshold < 2:
        raise ValidationError("Threshold must be at least 2")
    if len(secret) == 0:
        raise ValidationError("Cannot split an empty secret")

    # x = 0 is where the secret lives, never hand it out
    rng = secrets.SystemRandom()
    xs = rng.sample(range(1, 256), parts)

    ys = [bytearray(len(secret)) for _ in range(parts)]
    for idx, val in enumerate(secret):
        poly = galois.Polynomial.generate(val, threshold - 1)
        for i, x in enumerate(xs):
            ys[i][idx] = poly.evaluate(x)

    return [RawShare(payload=bytes(y), x=x) for y, x in zip(ys, xs)]


def _as_raw(share: Union[RawShare, bytes]) -> RawShare:
    if isinstance(share, RawShare):
        return share
    return RawShare.from_bytes(share)


def combine(shares: Iterable[Union[RawShare, bytes]]) -> bytes:
    """
    Reconstruct a secret from shares of a single split.

    No threshold check is done here: passing fewer shares than the split's
    threshold yields a deterministic but wrong result.

    Raises:
        ValidationError: No shares, unequal lengths or duplicate x-coordinates
    """
    raw = [_as_raw(s) for s in shares]
    if len(raw) < 1:
        raise ValidationError("Less than one share cannot be used to reconstruct the secret")

    length = len(raw[0])
    if length < 2:
        raise ValidationError("Shares must be at least two bytes")
    if any(len(s) != length for s in raw):
        raise ValidationError("All shares must be the same length")

    xs = [s.x for s in raw]
    if len(set(xs)) != len(xs):
        raise ValidationError("Duplicate share detected")

    secret = bytearray(length - 1)
    for idx in range(length - 1):
        ys = [s.payload[idx] for s in raw]
        secret[idx] = galois.interpolate(xs, ys, 0)

    return bytes(secret)
