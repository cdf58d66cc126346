# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only

# commands.py

"""
Offline commands over a directory written by `groth16_verifier.convert`.

Usage:
    python -m groth16_verifier.commands verify <out_dir>
    python -m groth16_verifier.commands staged <out_dir> [steps_per_tx] [exp_steps_per_tx]
"""

import sys
from pathlib import Path

from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

from groth16_verifier.budget import ComputeBudgetExceeded, ComputeMeter
from groth16_verifier.client import Client
from groth16_verifier.constants import DEFAULT_COMPUTE_UNITS
from groth16_verifier.convert import PROOF_FILE, PUBLIC_FILE, VK_FILE
from groth16_verifier.files import load_hex
from groth16_verifier.host import Host
from groth16_verifier.program import VerifierProgram
from groth16_verifier.verifier import VerificationOutcome, VerifierCore


def load_request(out_dir: str | Path) -> tuple[bytes, bytes, bytes]:
    """
    Read the verifying key, proof and public inputs from hex files.

    Returns:
        tuple[bytes, bytes, bytes]: (vk, proof, public inputs) bytes.
    """
    out_dir = Path(out_dir)
    return (
        load_hex(out_dir / VK_FILE),
        load_hex(out_dir / PROOF_FILE),
        load_hex(out_dir / PUBLIC_FILE),
    )


def verify_directory(out_dir: str | Path) -> tuple[VerificationOutcome, int]:
    """
    Verify a converted request in one metered pass.

    Args:
        out_dir: Directory holding vk.hex, proof.hex and public.hex.

    Returns:
        tuple[VerificationOutcome, int]: The outcome and the compute units it
        consumed.

    Raises:
        ComputeBudgetExceeded: If the request needs more than one
            invocation's compute limit.
    """
    vk_bytes, proof_bytes, inputs_bytes = load_request(out_dir)
    core = VerifierCore.from_bytes(vk_bytes)
    meter = ComputeMeter(DEFAULT_COMPUTE_UNITS)
    outcome = core.verify(proof_bytes, inputs_bytes, meter)
    return outcome, meter.consumed


def staged_verify_directory(
    out_dir: str | Path, steps_per_tx: int = 32, exp_steps_per_tx: int | None = None
) -> list:
    """
    Run a converted request through a local host as BEGIN, STEP...,
    EXPONENTIATE... and FINALIZE, signing with a throwaway key.

    Returns:
        list[InstructionResult]: One result per transaction.
    """
    vk_bytes, proof_bytes, inputs_bytes = load_request(out_dir)
    host = Host(VerifierProgram(vk_bytes))
    client = Client(host, Ed25519PrivateKey.generate())
    return client.staged_verify(proof_bytes, inputs_bytes, steps_per_tx, exp_steps_per_tx)


def _usage() -> None:
    print(
        "Usage: python -m groth16_verifier.commands verify <out_dir>\n"
        "       python -m groth16_verifier.commands staged <out_dir> [steps_per_tx] [exp_steps_per_tx]",
        file=sys.stderr,
    )
    sys.exit(1)


def main() -> None:
    """CLI entry point; exits 0 when the proof is accepted, 2 when rejected."""
    if len(sys.argv) < 3:
        _usage()
    command, out_dir = sys.argv[1], sys.argv[2]

    if command == "verify":
        try:
            outcome, used = verify_directory(out_dir)
        except ComputeBudgetExceeded as e:
            print(f"Rejected: ComputeBudgetExceeded ({e})")
            sys.exit(2)
        if outcome.accepted:
            print(f"Accepted ({used} compute units)")
            sys.exit(0)
        print(f"Rejected: {outcome.error.value} at {outcome.failed_at.value} ({used} compute units)")
        sys.exit(2)

    if command == "staged":
        steps = int(sys.argv[3]) if len(sys.argv) > 3 else 32
        exp_steps = int(sys.argv[4]) if len(sys.argv) > 4 else None
        results = staged_verify_directory(out_dir, steps, exp_steps)
        for result in results:
            for line in result.logs:
                print(line)
        last = results[-1]
        if last.success and last.code == 0:
            print(f"Accepted after {len(results)} transactions")
            sys.exit(0)
        print(f"Rejected: {last.error}")
        sys.exit(2)

    _usage()


if __name__ == "__main__":
    main()
