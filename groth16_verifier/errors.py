# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only
from enum import Enum


class ErrorKind(Enum):
    """
    Closed set of reasons a verification request can be rejected.

    The values are the names reported to callers and stored in verdict records.
    """

    MALFORMED_INPUT = "MalformedInput"
    MALFORMED_POINT = "MalformedPoint"
    INVALID_SUBGROUP = "InvalidSubgroup"
    OUT_OF_RANGE_INPUT = "OutOfRangeInput"
    INPUT_COUNT_MISMATCH = "InputCountMismatch"
    PAIRING_MISMATCH = "PairingMismatch"
    COMPUTE_BUDGET_EXCEEDED = "ComputeBudgetExceeded"

    @property
    def code(self) -> int:
        # 1-based, stable in declaration order
        return list(ErrorKind).index(self) + 1


class DecodeError(ValueError):
    """
    Raised by the codec and validation helpers when untrusted bytes do not
    describe a well-formed verifier input.

    Attributes:
        kind: The rejection reason.
    """

    def __init__(self, kind: ErrorKind, message: str) -> None:
        super().__init__(f"{kind.value}: {message}")
        self.kind = kind
