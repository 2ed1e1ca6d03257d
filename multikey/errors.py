"""
Multikey exceptions.

Validation, format and combine errors subclass ValueError so callers
that already catch ValueError around share handling keep working.
"""


class MultikeyError(Exception):
    """Base exception for multikey."""


class ValidationError(MultikeyError, ValueError):
    """Bad parameters: threshold/parts out of range, empty secret, malformed shares."""


class FieldError(MultikeyError, ArithmeticError):
    """GF(256) arithmetic or table construction failure."""


class GaloisZeroDivision(FieldError, ZeroDivisionError):
    """Division by the zero element."""


class CryptoError(MultikeyError):
    """Underlying RSA encrypt/decrypt failure or malformed ciphertext."""


class KeyMismatchError(CryptoError):
    """The private key's fingerprint does not match the shard's key id."""


class CombineError(MultikeyError, ValueError):
    """Not enough (or inconsistent) shares to reconstruct a secret."""


class FormatError(MultikeyError, ValueError):
    """Malformed textual or PEM envelope, or an undecodable PEM key."""


__all__ = [
    'MultikeyError',
    'ValidationError',
    'FieldError',
    'GaloisZeroDivision',
    'CryptoError',
    'KeyMismatchError',
    'CombineError',
    'FormatError',
]
