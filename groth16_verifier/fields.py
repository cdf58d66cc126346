# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only

# fields.py

"""
Finite field arithmetic for bn254.

The base field tower comes straight from py_ecc:

    Fq   = integers mod q
    Fq2  = Fq[i] / (i^2 + 1)
    Fq12 = Fq[w] / (w^12 - 18 w^6 + 82)

Addition, subtraction, multiplication, negation, inversion and powering are
the py_ecc operators. This module adds what verification needs on top of
them: the scalar field, square roots for point decompression, parity for the
compression flag, and the Frobenius maps used by the pairing.

Inversion of zero is a caller contract violation: py_ecc returns zero rather
than raising, and zero never appears as a divisor in the verification
equations.
"""

from py_ecc.fields import optimized_bn128_FQ as FQ
from py_ecc.fields import optimized_bn128_FQ2 as FQ2
from py_ecc.fields import optimized_bn128_FQ12 as FQ12
from py_ecc.fields.optimized_field_elements import FQ as PrimeField

from groth16_verifier.constants import CURVE_ORDER, FIELD_MODULUS


class Fr(PrimeField):
    """Scalar field element, integers mod the bn254 group order."""

    field_modulus = CURVE_ORDER


def coeffs(element: FQ2 | FQ12) -> list[int]:
    """
    Return the coefficients of an extension field element as canonical ints.

    Args:
        element: An Fq2 or Fq12 element.

    Returns:
        list[int]: Coefficients in [0, q), lowest degree first.
    """
    return [int(c) % FIELD_MODULUS for c in element.coeffs]


def fq_sqrt(a: FQ) -> FQ | None:
    """
    Square root in Fq.

    q = 3 mod 4, so a^((q+1)/4) is a root whenever one exists.

    Args:
        a: The element to take the root of.

    Returns:
        FQ | None: A root, or None when `a` is a non-residue.
    """
    candidate = a ** ((FIELD_MODULUS + 1) // 4)
    if candidate * candidate == a:
        return candidate
    return None


def fq2_sqrt(a: FQ2) -> FQ2 | None:
    """
    Square root in Fq2 by the complex method.

    For a = a0 + a1*i, take s = sqrt(a0^2 + a1^2) in Fq, then
    x0 = sqrt((a0 +- s) / 2) and x1 = a1 / (2 x0). The candidate is checked
    before it is returned.

    Args:
        a: The element to take the root of.

    Returns:
        FQ2 | None: A root, or None when `a` is a non-residue.
    """
    a0, a1 = (FQ(c) for c in coeffs(a))
    if a1 == FQ.zero():
        root = fq_sqrt(a0)
        if root is not None:
            return FQ2([root.n, 0])
        # a0 is a non-residue in Fq, so -a0 is a residue (q = 3 mod 4)
        root = fq_sqrt(-a0)
        if root is None:
            return None
        return FQ2([0, root.n])

    s = fq_sqrt(a0 * a0 + a1 * a1)
    if s is None:
        return None
    x0 = fq_sqrt((a0 + s) / 2)
    if x0 is None:
        x0 = fq_sqrt((a0 - s) / 2)
    if x0 is None or x0 == FQ.zero():
        return None
    x1 = a1 / (x0 * 2)
    candidate = FQ2([x0.n, x1.n])
    if candidate * candidate == a:
        return candidate
    return None


def fq_is_odd(a: FQ) -> bool:
    return a.n % 2 == 1


def fq2_is_odd(a: FQ2) -> bool:
    # parity of the real part, or of the imaginary part when the real part is zero
    c0, c1 = coeffs(a)
    if c0 != 0:
        return c0 % 2 == 1
    return c1 % 2 == 1


def fq2_conjugate(a: FQ2) -> FQ2:
    """Fq2 conjugation, which is also its q-power Frobenius map."""
    c0, c1 = coeffs(a)
    return FQ2([c0, -c1 % FIELD_MODULUS])


def embed_fq2(a: FQ2, shift: int) -> list[int]:
    """
    Coefficients of emb(a) * w^shift inside Fq12, where emb maps i to w^6 - 9.

    Args:
        a: The Fq2 element.
        shift: Power of w to multiply by, 0 <= shift < 6.

    Returns:
        list[int]: Twelve Fq12 coefficients (not reduced).
    """
    c0, c1 = coeffs(a)
    out = [0] * 12
    out[shift] = c0 - 9 * c1
    out[shift + 6] = c1
    return out


def conjugate(f: FQ12) -> FQ12:
    """
    The q^6 Frobenius map of Fq12.

    w^2 lies in the degree-6 subfield and w does not, so w^(q^6) = -w and the
    map negates the odd coefficients. On the cyclotomic subgroup this is the
    inverse.
    """
    return FQ12(
        [c if i % 2 == 0 else -c % FIELD_MODULUS for i, c in enumerate(coeffs(f))]
    )


def _powers(base: FQ12) -> list[FQ12]:
    out = [FQ12.one()]
    for _ in range(11):
        out.append(out[-1] * base)
    return out


def _apply(f: FQ12, basis: list[FQ12]) -> FQ12:
    # Frobenius fixes Fq, so f(w)^(q^k) = sum c_i * (w^(q^k))^i
    result = FQ12.zero()
    for c, w_i in zip(coeffs(f), basis):
        if c:
            result = result + w_i * c
    return result


_W = FQ12([0, 1] + [0] * 10)
_W_Q = _W**FIELD_MODULUS
_W_Q2 = _apply(_W_Q, _powers(_W_Q))
_W_Q3 = _apply(_W_Q2, _powers(_W_Q))

_FROBENIUS_BASES = {
    1: _powers(_W_Q),
    2: _powers(_W_Q2),
    3: _powers(_W_Q3),
}


def frobenius(f: FQ12, power: int) -> FQ12:
    """
    Raise an Fq12 element to q^power using precomputed images of w.

    Args:
        f: The element.
        power: 1, 2 or 3 (use `conjugate` for 6).

    Returns:
        FQ12: f^(q^power).

    Raises:
        ValueError: If no table exists for `power`.
    """
    if power not in _FROBENIUS_BASES:
        raise ValueError(f"no Frobenius table for power {power}")
    return _apply(f, _FROBENIUS_BASES[power])
