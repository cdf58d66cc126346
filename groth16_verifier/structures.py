# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only
from dataclasses import dataclass

from groth16_verifier.curve import G1Point, G2Point, same_point


@dataclass(frozen=True, eq=False)
class Proof:
    """A Groth16 proof (A, B, C), created per request and never mutated."""

    a: G1Point
    b: G2Point
    c: G1Point

    def __eq__(self, other):
        if not isinstance(other, Proof):
            return NotImplemented
        return (
            same_point(self.a, other.a)
            and same_point(self.b, other.b)
            and same_point(self.c, other.c)
        )


@dataclass(frozen=True, eq=False)
class VerifyingKey:
    """
    Groth16 verifying key, provisioned once and read-only afterwards.

    `ic` holds one base point per public input plus the constant term, so a
    key for n public inputs has n + 1 entries.
    """

    alpha: G1Point
    beta: G2Point
    gamma: G2Point
    delta: G2Point
    ic: tuple[G1Point, ...]

    def __post_init__(self):
        if len(self.ic) < 1:
            raise ValueError("verifying key needs at least one ic point")
        object.__setattr__(self, "ic", tuple(self.ic))

    @property
    def num_public_inputs(self) -> int:
        return len(self.ic) - 1

    def __eq__(self, other):
        if not isinstance(other, VerifyingKey):
            return NotImplemented
        return (
            same_point(self.alpha, other.alpha)
            and same_point(self.beta, other.beta)
            and same_point(self.gamma, other.gamma)
            and same_point(self.delta, other.delta)
            and len(self.ic) == len(other.ic)
            and all(same_point(x, y) for x, y in zip(self.ic, other.ic))
        )
