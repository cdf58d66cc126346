# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only

# budget.py

"""
Cost model for verification.

The verifier does not depend on any host metering API. Instead every stage
charges a fixed number of units from this table to an optional meter before
it runs, so cheap length and range checks are always paid for (and can fail)
before expensive curve and pairing arithmetic is attempted.

The numbers are relative weights, roughly proportional to the field
multiplications each operation performs.
"""

COSTS: dict[str, int] = {
    "length_check": 10,
    "field_decode": 40,
    "g1_decompress": 2_500,
    "g2_decompress": 9_000,
    "g1_curve_check": 300,
    "g2_subgroup_check": 90_000,
    "scalar_range_check": 20,
    "g1_scalar_mul": 25_000,
    "g1_add": 300,
    "miller_step": 3_000,
    "miller_finish": 6_000,
    "fe_easy_part": 20_000,
    "fe_exp_bit": 1_100,
    "fe_mul": 1_000,
    "fe_conjugate": 50,
    "fe_frobenius": 1_500,
    "state_write": 500,
}


class ComputeBudgetExceeded(RuntimeError):
    """
    Raised when a meter runs out of units.

    This is an abort of the whole invocation, not a verification outcome; it
    is never caught inside the verifier.
    """

    def __init__(self, label: str, needed: int, remaining: int) -> None:
        super().__init__(
            f"compute budget exceeded at {label}: needed {needed}, remaining {remaining}"
        )
        self.label = label
        self.needed = needed
        self.remaining = remaining


class ComputeMeter:
    """
    A metered allowance of compute units for one invocation.

    Attributes:
        limit: Units available at construction.
        consumed: Units charged so far.
    """

    def __init__(self, limit: int) -> None:
        if limit < 0:
            raise ValueError(f"compute limit must be non-negative, got {limit}")
        self.limit = limit
        self.consumed = 0

    @property
    def remaining(self) -> int:
        return self.limit - self.consumed

    def consume(self, label: str, times: int = 1) -> None:
        """
        Charge `times` units of the operation `label`.

        Raises:
            KeyError: If `label` is not in the cost table.
            ComputeBudgetExceeded: If the charge does not fit; nothing is
                consumed in that case.
        """
        needed = COSTS[label] * times
        if needed > self.remaining:
            raise ComputeBudgetExceeded(label, needed, self.remaining)
        self.consumed += needed


def charge(meter: ComputeMeter | None, label: str, times: int = 1) -> None:
    """Charge a meter if one is present; off-chain callers pass None."""
    if meter is not None:
        meter.consume(label, times)
