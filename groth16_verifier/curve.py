# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only
from py_ecc.optimized_bn128 import (
    G1,
    G2,
    Z1,
    Z2,
    add,
    b,
    b2,
    curve_order,
    eq,
    is_inf,
    is_on_curve,
    multiply,
    neg,
    normalize,
)

from groth16_verifier.constants import FIELD_MODULUS
from groth16_verifier.fields import (
    FQ,
    FQ2,
    Fr,
    coeffs,
    fq2_conjugate,
    fq2_is_odd,
    fq2_sqrt,
    fq_is_odd,
    fq_sqrt,
)

# projective (x, y, z) points as used by py_ecc; z == 0 is the identity
G1Point = tuple[FQ, FQ, FQ]
G2Point = tuple[FQ2, FQ2, FQ2]

# twisted Frobenius constants, xi = 9 + i
XI = FQ2([9, 1])
PSI_X = XI ** ((FIELD_MODULUS - 1) // 3)
PSI_Y = XI ** ((FIELD_MODULUS - 1) // 2)


def g1_point(scalar: int) -> G1Point:
    """
    Multiply the G1 generator by a scalar.

    Args:
        scalar (int): The scalar value for multiplication.

    Returns:
        G1Point: The resulting projective point.
    """
    return multiply(G1, scalar % curve_order)


def g2_point(scalar: int) -> G2Point:
    """
    Multiply the G2 generator by a scalar.

    Args:
        scalar (int): The scalar value for multiplication.

    Returns:
        G2Point: The resulting projective point.
    """
    return multiply(G2, scalar % curve_order)


def scale(element, scalar: int | Fr):
    """
    Scalar multiplication by double-and-add.

    Args:
        element: A G1 or G2 point.
        scalar: An int or a scalar field element.

    Returns:
        The point [scalar]element.
    """
    if isinstance(scalar, Fr):
        scalar = scalar.n
    return multiply(element, scalar % curve_order)


def combine(left_element, right_element):
    """Group addition, correct for the identity and for P + (-P)."""
    return add(left_element, right_element)


def invert(element):
    """Group negation."""
    return neg(element)


def same_point(left_element, right_element) -> bool:
    """Equality of projective points."""
    return eq(left_element, right_element)


def to_affine(element) -> tuple | None:
    """
    Normalize a projective point to affine (x, y).

    Returns:
        tuple | None: The affine coordinates, or None for the identity.
    """
    if is_inf(element):
        return None
    return normalize(element)


def from_affine(x, y):
    """Lift affine coordinates into py_ecc's projective form."""
    return (x, y, x.one())


def is_on_curve_g1(element: G1Point) -> bool:
    """Check y^2 = x^3 + 3 over Fq."""
    return is_on_curve(element, b)


def is_on_curve_g2(element: G2Point) -> bool:
    """Check y^2 = x^3 + 3/(9+i) over Fq2."""
    return is_on_curve(element, b2)


def is_in_subgroup_g1(element: G1Point) -> bool:
    """
    Subgroup membership for G1.

    The bn254 G1 cofactor is 1, so every point on the curve lies in the
    prime-order subgroup.
    """
    return is_on_curve_g1(element)


def is_in_subgroup_g2(element: G2Point) -> bool:
    """
    Subgroup membership for G2, checked as [r]Q == O.

    The twist has a large cofactor, so points parsed from untrusted input
    must pass this before any pairing work is spent on them.
    """
    if not is_on_curve_g2(element):
        return False
    return is_inf(multiply(element, curve_order))


def recover_y_g1(x: FQ, odd: bool) -> FQ | None:
    """
    Recompute y from x on G1, selecting the root with the requested parity.

    Args:
        x: The x coordinate.
        odd: Whether the returned y must be odd.

    Returns:
        FQ | None: The y coordinate, or None if x^3 + 3 is a non-residue.
    """
    y = fq_sqrt(x * x * x + b)
    if y is None:
        return None
    if fq_is_odd(y) != odd:
        y = -y
    if fq_is_odd(y) != odd:
        # y == 0 has no odd twin
        return None
    return y


def recover_y_g2(x: FQ2, odd: bool) -> FQ2 | None:
    """
    Recompute y from x on the twist, selecting the root with the requested
    parity.

    Args:
        x: The x coordinate.
        odd: Whether the returned y must be odd (see `fq2_is_odd`).

    Returns:
        FQ2 | None: The y coordinate, or None if x^3 + b2 is a non-residue.
    """
    y = fq2_sqrt(x * x * x + b2)
    if y is None:
        return None
    if fq2_is_odd(y) != odd:
        y = FQ2([-c % FIELD_MODULUS for c in coeffs(y)])
    if fq2_is_odd(y) != odd:
        return None
    return y


def psi(x: FQ2, y: FQ2) -> tuple[FQ2, FQ2]:
    """
    The q-power Frobenius endomorphism carried onto the twist.

    Args:
        x: Affine x coordinate of a G2 point.
        y: Affine y coordinate of a G2 point.

    Returns:
        tuple[FQ2, FQ2]: Affine coordinates of psi(Q).
    """
    return fq2_conjugate(x) * PSI_X, fq2_conjugate(y) * PSI_Y


# identity elements
g1_identity = Z1
g2_identity = Z2

# curve order
curve_order = curve_order
