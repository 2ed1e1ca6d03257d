"""
Arithmetic over GF(2^8) and polynomials with coefficients in it.

Elements are ints in [0, 255]. Addition is XOR; multiplication and division
go through log/exp tables generated once at import from a fixed irreducible
polynomial and a primitive generator. The tables are immutable tuples and
are safe to share across threads.

Because the field only has 256 elements a polynomial can only carry one
byte as its intercept, so a multi-byte secret uses one polynomial per byte
(see shamir.py).
"""

import secrets
from dataclasses import dataclass
from typing import Sequence, Tuple

from .errors import FieldError, GaloisZeroDivision, ValidationError


# x^8 + x^4 + x^3 + x + 1 (the AES field). 3 generates its multiplicative group.
POLYNOMIAL = 0x11B
GENERATOR = 3

_ORDER = 255


@dataclass(frozen=True)
class GaloisTables:
    """Discrete log / antilog tables for one representation of GF(256)."""
    polynomial: int
    generator: int
    log: Tuple[int, ...]
    exp: Tuple[int, ...]


def _mul_slow(a: int, b: int, polynomial: int) -> int:
    """Carry-less multiply with reduction, only used to build the tables."""
    p = 0
    while b:
        if b & 1:
            p ^= a
        a <<= 1
        if a & 0x100:
            a ^= polynomial
        b >>= 1
    return p


def build_tables(polynomial: int = POLYNOMIAL, generator: int = GENERATOR) -> GaloisTables:
    """
    Generate log/exp tables by walking the powers of `generator`.

    Raises:
        FieldError: if `generator` does not have order 255 modulo `polynomial`
            (the log table would then be ambiguous).
    """
    if not 0x100 <= polynomial <= 0x1FF:
        raise FieldError(f"Polynomial must be of degree 8, got {polynomial:#x}")
    if not 1 < generator < 256:
        raise FieldError(f"Generator must be a field element > 1, got {generator}")

    log = [0] * 256
    exp = [0] * _ORDER
    seen = set()
    x = 1
    for i in range(_ORDER):
        if x in seen:
            raise FieldError(
                f"{generator} is not a generator modulo {polynomial:#x} "
                f"(order {i})"
            )
        seen.add(x)
        exp[i] = x
        log[x] = i
        x = _mul_slow(x, generator, polynomial)

    return GaloisTables(polynomial, generator, tuple(log), tuple(exp))


def check_tables(tables: GaloisTables) -> None:
    """Verify exp[log[i]] == i for every nonzero element."""
    for i in range(1, 256):
        if tables.exp[tables.log[i]] != i:
            raise FieldError(
                f"Table mismatch at {i}: log={tables.log[i]} "
                f"exp={tables.exp[tables.log[i]]}"
            )


TABLES = build_tables()
check_tables(TABLES)


def add(a: int, b: int) -> int:
    """Addition (and subtraction) in GF(2^8)."""
    return a ^ b


def mult(a: int, b: int, tables: GaloisTables = TABLES) -> int:
    """Multiplication in GF(2^8)."""
    if a == 0 or b == 0:
        return 0
    return tables.exp[(tables.log[a] + tables.log[b]) % _ORDER]


def div(a: int, b: int, tables: GaloisTables = TABLES) -> int:
    """Division in GF(2^8). Raises GaloisZeroDivision when b is 0."""
    if b == 0:
        raise GaloisZeroDivision("Division by zero in GF(256)")
    if a == 0:
        return 0
    return tables.exp[(tables.log[a] - tables.log[b] + _ORDER) % _ORDER]


class Polynomial:
    """A polynomial over GF(2^8); coefficients[0] is the intercept."""

    def __init__(self, coefficients: Sequence[int], tables: GaloisTables = TABLES):
        if not coefficients:
            raise ValidationError("Polynomial needs at least one coefficient")
        self.coefficients = tuple(coefficients)
        self.tables = tables

    @classmethod
    def generate(cls, intercept: int, degree: int,
                 tables: GaloisTables = TABLES) -> 'Polynomial':
        """Random polynomial of the given degree with a fixed intercept."""
        if not 0 <= intercept <= 255:
            raise ValidationError(f"Intercept must be a byte, got {intercept}")
        if degree < 0:
            raise ValidationError(f"Degree must be >= 0, got {degree}")
        return cls((intercept,) + tuple(secrets.token_bytes(degree)), tables)

    @property
    def degree(self) -> int:
        return len(self.coefficients) - 1

    @property
    def intercept(self) -> int:
        return self.coefficients[0]

    def evaluate(self, x: int) -> int:
        """Value at x, by Horner's method."""
        if x == 0:
            return self.coefficients[0]

        out = self.coefficients[-1]
        for coeff in reversed(self.coefficients[:-1]):
            out = add(mult(out, x, self.tables), coeff)
        return out

    def __repr__(self) -> str:
        return f"Polynomial(degree={self.degree})"


def interpolate(xs: Sequence[int], ys: Sequence[int], x: int = 0,
                tables: GaloisTables = TABLES) -> int:
    """
    Lagrange interpolation of the sample points, evaluated at x.

    The x samples must be pairwise distinct, otherwise the basis
    denominator is zero and GaloisZeroDivision is raised.
    """
    if len(xs) != len(ys):
        raise ValidationError(
            f"Sample length mismatch: {len(xs)} x values, {len(ys)} y values"
        )

    result = 0
    for i, xi in enumerate(xs):
        basis = 1
        for j, xj in enumerate(xs):
            if i == j:
                continue
            term = div(add(x, xj), add(xi, xj), tables)
            basis = mult(basis, term, tables)
        result = add(result, mult(ys[i], basis, tables))
    return result
