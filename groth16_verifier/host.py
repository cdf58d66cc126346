# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only

# host.py

"""
A minimal execution host for the verifier program.

The host owns the account store, checks the Ed25519 signature on each
transaction, and runs its instruction with a fresh compute meter. Effects are
all-or-nothing: the program writes to a copy of the store that is committed
only when the instruction completes.
"""

from dataclasses import dataclass, field

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey

from groth16_verifier.budget import ComputeBudgetExceeded, ComputeMeter
from groth16_verifier.constants import COUNT_SIZE, DEFAULT_COMPUTE_UNITS, MAX_COMPUTE_UNITS
from groth16_verifier.errors import ErrorKind
from groth16_verifier.program import ProgramError, VerifierProgram
from groth16_verifier.records import VerdictRecord, verdict_key

INVALID_SIGNATURE = 200


def signing_message(signer: bytes, compute_units: int, data: bytes) -> bytes:
    """The bytes a transaction signature covers: signer || units(u32) || data."""
    return signer + compute_units.to_bytes(COUNT_SIZE, "big") + data


@dataclass(frozen=True)
class Transaction:
    """
    A signed single-instruction transaction.

    Attributes:
        signer: The raw 32-byte Ed25519 public key of the fee payer.
        data: The instruction bytes.
        signature: Ed25519 signature over `signing_message`.
        compute_units: Requested compute limit, capped by the host.
    """

    signer: bytes
    data: bytes
    signature: bytes
    compute_units: int = DEFAULT_COMPUTE_UNITS

    def message(self) -> bytes:
        return signing_message(self.signer, self.compute_units, self.data)


@dataclass(frozen=True)
class InstructionResult:
    """
    What the host reports back for one transaction.

    `success` means the instruction completed and its writes were committed;
    a rejected proof is still a success, with its ErrorKind in `code` and
    `error`. On failure `code` is a ProgramError code, the budget error code
    or INVALID_SIGNATURE, and nothing was written.
    """

    success: bool
    code: int = 0
    error: str | None = None
    logs: tuple[str, ...] = field(default_factory=tuple)
    compute_units: int = 0


class Host:
    """
    Runs transactions against a VerifierProgram and its account store.

    Args:
        program: The deployed program.
        store: Optional initial account store.
    """

    def __init__(self, program: VerifierProgram, store: dict[str, bytes] | None = None) -> None:
        self.program = program
        self.store: dict[str, bytes] = dict(store) if store else {}

    def get(self, key: str) -> bytes | None:
        return self.store.get(key)

    def verdict(self, rid: bytes) -> VerdictRecord | None:
        data = self.store.get(verdict_key(rid))
        if data is None:
            return None
        return VerdictRecord.from_bytes(data)

    def submit(self, tx: Transaction) -> InstructionResult:
        """
        Verify, execute and commit (or discard) one transaction.

        Args:
            tx: The signed transaction.

        Returns:
            InstructionResult: The result, including the program logs.
        """
        try:
            Ed25519PublicKey.from_public_bytes(tx.signer).verify(tx.signature, tx.message())
        except (InvalidSignature, ValueError, OverflowError):
            return InstructionResult(
                success=False,
                code=INVALID_SIGNATURE,
                error="InvalidSignature",
                logs=("Transaction signature verification failed",),
            )

        logs: list[str] = []
        meter = ComputeMeter(max(0, min(tx.compute_units, MAX_COMPUTE_UNITS)))
        working = dict(self.store)

        def log(message: str) -> None:
            logs.append(f"Program log: {message}")

        try:
            outcome = self.program.process_instruction(tx.data, working, meter, log)
        except ProgramError as e:
            logs.append(f"Program failed: {e}")
            return InstructionResult(
                success=False,
                code=int(e.code),
                error=e.name,
                logs=tuple(logs),
                compute_units=meter.consumed,
            )
        except ComputeBudgetExceeded as e:
            logs.append(f"Program failed: {e}")
            kind = ErrorKind.COMPUTE_BUDGET_EXCEEDED
            return InstructionResult(
                success=False,
                code=kind.code,
                error=kind.value,
                logs=tuple(logs),
                compute_units=meter.consumed,
            )

        self.store = working
        logs.append(f"Program consumed {meter.consumed} of {meter.limit} compute units")
        if outcome is not None and not outcome.accepted:
            return InstructionResult(
                success=True,
                code=outcome.error.code,
                error=outcome.error.value,
                logs=tuple(logs),
                compute_units=meter.consumed,
            )
        return InstructionResult(success=True, logs=tuple(logs), compute_units=meter.consumed)
