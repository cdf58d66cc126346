# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only

# pairing.py

"""
Optimal ate pairing on bn254 with a shared final exponentiation.

The Miller loop runs over the signed digits of 6x + 2. G2 points stay on the
twist in affine Fq2 coordinates; each line is evaluated at the G1 point and
lands in Fq12 as a sparse element (coefficients at w^0, w^1, w^3, w^7, w^9).
Vertical lines are dropped because they lie in the degree-6 subfield and are
sent to 1 by the final exponentiation.

A product of pairings is checked by running one loop for all pairs with a
single accumulator and exponentiating once at the end. Both the Miller loop
and the final exponentiation can be run a few steps at a time.
"""

from groth16_verifier.budget import COSTS, ComputeMeter, charge
from groth16_verifier.constants import ATE_LOOP_COUNT, BN_X, FIELD_MODULUS
from groth16_verifier.curve import from_affine, psi, to_affine
from groth16_verifier.fields import (
    FQ,
    FQ2,
    FQ12,
    coeffs,
    conjugate,
    embed_fq2,
    frobenius,
)


def _signed_digits(k: int) -> list[int]:
    """Non-adjacent form of k, most significant digit first."""
    digits = []
    while k:
        if k % 2:
            d = 2 - k % 4
            k -= d
        else:
            d = 0
        digits.append(d)
        k //= 2
    return digits[::-1]


LOOP_DIGITS = _signed_digits(ATE_LOOP_COUNT)
LOOP_STEPS = len(LOOP_DIGITS) - 1

gt_identity = FQ12.one()

AffineG2 = tuple[FQ2, FQ2]


def _line(slope: FQ2, x_t: FQ2, y_t: FQ2, x_p: int, y_p: int) -> FQ12:
    # y_P - slope' * x_P + (slope * x_T - y_T)' w^3, primes meaning the twist image
    out = [0] * 12
    out[0] = y_p
    for i, c in enumerate(embed_fq2(slope, 1)):
        out[i] -= x_p * c
    for i, c in enumerate(embed_fq2(slope * x_t - y_t, 3)):
        out[i] += c
    return FQ12([c % FIELD_MODULUS for c in out])


def _double_step(
    t: AffineG2 | None, p: tuple[int, int]
) -> tuple[FQ12, AffineG2 | None]:
    if t is None:
        return FQ12.one(), None
    x, y = t
    if not any(coeffs(y)):
        return FQ12.one(), None
    slope = x * x * 3 / (y * 2)
    line = _line(slope, x, y, *p)
    x3 = slope * slope - x * 2
    y3 = slope * (x - x3) - y
    return line, (x3, y3)


def _add_step(
    t: AffineG2 | None, q: AffineG2, p: tuple[int, int]
) -> tuple[FQ12, AffineG2 | None]:
    if t is None:
        return FQ12.one(), q
    x1, y1 = t
    x2, y2 = q
    if coeffs(x1) == coeffs(x2):
        if coeffs(y1) == coeffs(y2):
            return _double_step(t, p)
        # T = -Q: vertical line, and the sum is the identity
        return FQ12.one(), None
    slope = (y2 - y1) / (x2 - x1)
    line = _line(slope, x1, y1, *p)
    x3 = slope * slope - x1 - x2
    y3 = slope * (x1 - x3) - y1
    return line, (x3, y3)


class MillerLoop:
    """
    A resumable multi-pairing Miller loop.

    Pairs with an identity on either side contribute a factor of 1 and are
    dropped at construction. The loop can be advanced a few digits at a time
    and its state exported, so a verification can be spread across several
    bounded invocations.

    Attributes:
        accumulator: The running Fq12 product.
        cursor: Number of loop digits processed, 0 <= cursor <= LOOP_STEPS.
    """

    def __init__(
        self,
        pairs: list[tuple],
        accumulator: FQ12 | None = None,
        cursor: int = 0,
        points: list | None = None,
    ) -> None:
        if not 0 <= cursor <= LOOP_STEPS:
            raise ValueError(f"cursor must be in [0, {LOOP_STEPS}], got {cursor}")
        self._p: list[tuple[int, int]] = []
        self._q: list[AffineG2] = []
        self._t: list[AffineG2 | None] = []
        for g1, g2 in pairs:
            p = to_affine(g1)
            q = to_affine(g2)
            if p is None or q is None:
                continue
            self._p.append((p[0].n, p[1].n))
            self._q.append(q)
            self._t.append(q)
        if points is not None:
            if len(points) != len(self._p):
                raise ValueError(
                    f"expected {len(self._p)} intermediate points, got {len(points)}"
                )
            self._t = [to_affine(t) for t in points]
        self.accumulator = accumulator if accumulator is not None else FQ12.one()
        self.cursor = cursor

    @property
    def done(self) -> bool:
        return self.cursor == LOOP_STEPS

    @property
    def pairs(self) -> list[tuple]:
        """The non-trivial pairs, as projective (G1, G2) points."""
        return [
            (from_affine(FQ(p[0]), FQ(p[1])), from_affine(*q))
            for p, q in zip(self._p, self._q)
        ]

    @property
    def points(self) -> list:
        """The running multiples T of each G2 point, projective."""
        return [
            from_affine(*t) if t is not None else (FQ2.one(), FQ2.one(), FQ2.zero())
            for t in self._t
        ]

    def step(self, count: int = 1, meter: ComputeMeter | None = None) -> int:
        """
        Process up to `count` loop digits.

        Args:
            count: Maximum number of digits to process.
            meter: Optional meter, charged once per pair per digit before the
                digit is processed.

        Returns:
            int: The number of digits actually processed.
        """
        taken = 0
        while taken < count and not self.done:
            charge(meter, "miller_step", max(len(self._p), 1))
            digit = LOOP_DIGITS[self.cursor + 1]
            f = self.accumulator * self.accumulator
            for i, (p, q) in enumerate(zip(self._p, self._q)):
                line, t = _double_step(self._t[i], p)
                f = f * line
                if digit:
                    addend = q if digit == 1 else (q[0], -q[1])
                    line, t = _add_step(t, addend, p)
                    f = f * line
                self._t[i] = t
            self.accumulator = f
            self.cursor += 1
            taken += 1
        return taken

    def finish(self, meter: ComputeMeter | None = None, fixed: FQ12 | None = None) -> FQ12:
        """
        Apply the two Frobenius correction lines, for psi(Q) and -psi^2(Q).

        Args:
            meter: Optional meter.
            fixed: A precomputed Miller loop value of further pairs, multiplied
                into the result.

        Returns:
            FQ12: The Miller loop value, before final exponentiation.

        Raises:
            ValueError: If loop digits remain to be processed.
        """
        if not self.done:
            raise ValueError(
                f"Miller loop has {LOOP_STEPS - self.cursor} steps remaining"
            )
        f = self.accumulator
        for p, q, t in zip(self._p, self._q, self._t):
            charge(meter, "miller_finish")
            q1 = psi(*q)
            x2, y2 = psi(*q1)
            line, t = _add_step(t, q1, p)
            f = f * line
            line, _ = _add_step(t, (x2, -y2), p)
            f = f * line
        if fixed is not None:
            charge(meter, "fe_mul")
            f = f * fixed
        return f


def multi_miller_loop(
    pairs: list[tuple], meter: ComputeMeter | None = None, fixed: FQ12 | None = None
) -> FQ12:
    """Run the whole shared Miller loop for a list of (G1, G2) pairs."""
    loop = MillerLoop(pairs)
    loop.step(LOOP_STEPS, meter)
    return loop.finish(meter, fixed)


X_BITS = [int(bit) for bit in bin(BN_X)[2:]]
EXP_CHUNK_BITS = 8

REGISTERS = (
    "f", "y0", "y1", "y2", "y3", "y4", "y5", "y6", "y7",
    "y8", "y9", "y10", "y11", "y13", "y14", "y15", "t", "out",
)


def _exp_by_neg_x(dst: str, src: str) -> list[tuple]:
    # dst = src^-x, valid on the cyclotomic subgroup where conjugation inverts
    ops = [
        ("exp", dst, src, start, min(start + EXP_CHUNK_BITS, len(X_BITS)))
        for start in range(0, len(X_BITS), EXP_CHUNK_BITS)
    ]
    ops.append(("conj", dst, dst))
    return ops


# Easy part f^((q^6 - 1)(q^2 + 1)), then the hard part following
# Fuentes-Castaneda, Knapp and Rodriguez-Henriquez, "Faster hashing to G2",
# which computes f^(2x(6x^2 + 3x + 1) (q^4 - q^2 + 1) / r).
EXP_OPS: list[tuple] = [
    ("easy", "f", "f"),
    *_exp_by_neg_x("y0", "f"),
    ("mul", "y1", "y0", "y0"),
    ("mul", "y2", "y1", "y1"),
    ("mul", "y3", "y2", "y1"),
    *_exp_by_neg_x("y4", "y3"),
    ("mul", "y5", "y4", "y4"),
    *_exp_by_neg_x("y6", "y5"),
    ("conj", "y6", "y6"),
    ("conj", "y3", "y3"),
    ("mul", "y7", "y6", "y4"),
    ("mul", "y8", "y7", "y3"),
    ("mul", "y9", "y8", "y1"),
    ("mul", "y10", "y8", "y4"),
    ("mul", "y11", "y10", "f"),
    ("frob", "t", "y9", 1),
    ("mul", "y13", "t", "y11"),
    ("frob", "t", "y8", 2),
    ("mul", "y14", "t", "y13"),
    ("conj", "t", "f"),
    ("mul", "t", "t", "y9"),
    ("frob", "y15", "t", 3),
    ("mul", "out", "y15", "y14"),
]
EXP_STEPS = len(EXP_OPS)

_OP_COSTS = {"easy": "fe_easy_part", "conj": "fe_conjugate", "mul": "fe_mul", "frob": "fe_frobenius"}


def _op_cost(op: tuple) -> tuple[str, int]:
    if op[0] == "exp":
        return "fe_exp_bit", op[4] - op[3]
    return _OP_COSTS[op[0]], 1


def _reads(op: tuple) -> tuple[str, ...]:
    if op[0] == "mul":
        return op[2], op[3]
    if op[0] == "exp" and op[3] > 0:
        return op[2], op[1]
    return (op[2],)


def live_registers(cursor: int) -> set[str]:
    """Registers read by the operations from `cursor` on before they write them."""
    if cursor == EXP_STEPS:
        return {"out"}
    live: set[str] = set()
    written: set[str] = set()
    for op in EXP_OPS[cursor:]:
        live.update(r for r in _reads(op) if r not in written)
        written.add(op[1])
    return live


FINAL_EXP_COST = sum(COSTS[label] * count for label, count in map(_op_cost, EXP_OPS))


class FinalExponentiation:
    """
    A resumable final exponentiation.

    The exponentiation is a fixed straight-line program over named Fq12
    registers. Each exponentiation by x is split into chunks of
    EXP_CHUNK_BITS square-and-multiply bits, so no single operation is much
    more expensive than a handful of Fq12 multiplications.

    Args:
        f: The Miller loop value to exponentiate. Ignored when `registers`
            is given.
        cursor: Number of operations already run.
        registers: Register contents of a partially run program.

    Attributes:
        registers: Register name to Fq12 value.
        cursor: Number of operations run, 0 <= cursor <= EXP_STEPS.
    """

    def __init__(
        self,
        f: FQ12 | None = None,
        cursor: int = 0,
        registers: dict[str, FQ12] | None = None,
    ) -> None:
        if not 0 <= cursor <= EXP_STEPS:
            raise ValueError(f"cursor must be in [0, {EXP_STEPS}], got {cursor}")
        if registers is None:
            if f is None:
                raise ValueError("need either a Miller loop value or registers")
            registers = {"f": f}
        unknown = set(registers) - set(REGISTERS)
        if unknown:
            raise ValueError(f"unknown registers {sorted(unknown)}")
        missing = live_registers(cursor) - set(registers)
        if missing:
            raise ValueError(f"missing registers {sorted(missing)} at step {cursor}")
        self.registers = dict(registers)
        self.cursor = cursor

    def live(self) -> dict[str, FQ12]:
        """The registers the remaining operations still need."""
        needed = live_registers(self.cursor)
        return {name: value for name, value in self.registers.items() if name in needed}

    @property
    def done(self) -> bool:
        return self.cursor == EXP_STEPS

    @property
    def result(self) -> FQ12:
        if not self.done:
            raise ValueError(
                f"final exponentiation has {EXP_STEPS - self.cursor} steps remaining"
            )
        return self.registers["out"]

    def _run(self, op: tuple) -> None:
        r = self.registers
        kind, dst, src = op[0], op[1], op[2]
        if kind == "easy":
            f = conjugate(r[src]) * r[src].inv()
            r[dst] = frobenius(f, 2) * f
        elif kind == "exp":
            acc = r[dst] if op[3] > 0 else FQ12.one()
            for bit in X_BITS[op[3] : op[4]]:
                acc = acc * acc
                if bit:
                    acc = acc * r[src]
            r[dst] = acc
        elif kind == "conj":
            r[dst] = conjugate(r[src])
        elif kind == "mul":
            r[dst] = r[src] * r[op[3]]
        else:
            r[dst] = frobenius(r[src], op[3])

    def step(self, count: int = 1, meter: ComputeMeter | None = None) -> int:
        """
        Run up to `count` operations, charging each before it runs.

        Returns:
            int: The number of operations actually run.
        """
        taken = 0
        while taken < count and not self.done:
            op = EXP_OPS[self.cursor]
            label, units = _op_cost(op)
            charge(meter, label, units)
            self._run(op)
            self.cursor += 1
            taken += 1
        return taken


def final_exponentiate(f: FQ12, meter: ComputeMeter | None = None) -> FQ12:
    """
    Project a Miller loop value into the order-r subgroup of Fq12.

    Args:
        f: A non-zero Miller loop value.
        meter: Optional meter, charged per operation, FINAL_EXP_COST in all.

    Returns:
        FQ12: The reduced pairing value, raised to 2x(6x^2 + 3x + 1).
    """
    exponentiation = FinalExponentiation(f)
    exponentiation.step(EXP_STEPS, meter)
    return exponentiation.result


def pairing(g1_element, g2_element, meter: ComputeMeter | None = None) -> FQ12:
    """
    Compute the reduced pairing e(P, Q).

    Args:
        g1_element: A point of G1.
        g2_element: A point of G2.

    Returns:
        FQ12: The pairing value.
    """
    return final_exponentiate(multi_miller_loop([(g1_element, g2_element)], meter), meter)


def check(
    pairs: list[tuple], meter: ComputeMeter | None = None, fixed: FQ12 | None = None
) -> bool:
    """
    Decide whether the product of e(A_i, B_i) over all pairs is 1.

    The Miller loops of all pairs are accumulated together and the final
    exponentiation runs once for the whole product.

    Args:
        pairs: (G1 point, G2 point) pairs.
        meter: Optional meter.
        fixed: Optional precomputed Miller loop value of pairs that do not
            change between calls.

    Returns:
        bool: True iff the product is the identity of the target group.
    """
    return final_exponentiate(multi_miller_loop(pairs, meter, fixed), meter) == gt_identity
