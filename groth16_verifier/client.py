# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only

# client.py

"""
Client-side helpers: instruction builders and a signing submitter.
"""

from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat

from groth16_verifier.constants import COUNT_SIZE, DEFAULT_COMPUTE_UNITS, FIELD_SIZE, REQUEST_ID_SIZE
from groth16_verifier.files import extract_key
from groth16_verifier.hashing import request_id
from groth16_verifier.host import Host, InstructionResult, Transaction
from groth16_verifier.pairing import EXP_STEPS, LOOP_STEPS
from groth16_verifier.program import Instruction
from groth16_verifier.records import VerdictRecord


def _request_body(proof_bytes: bytes, inputs_bytes: bytes) -> bytes:
    if len(inputs_bytes) % FIELD_SIZE:
        raise ValueError(
            f"public inputs must be a multiple of {FIELD_SIZE} bytes, got {len(inputs_bytes)}"
        )
    count = len(inputs_bytes) // FIELD_SIZE
    return proof_bytes + count.to_bytes(COUNT_SIZE, "big") + inputs_bytes


def build_verify_instruction(proof_bytes: bytes, inputs_bytes: bytes) -> bytes:
    return bytes([Instruction.VERIFY]) + _request_body(proof_bytes, inputs_bytes)


def build_begin_instruction(proof_bytes: bytes, inputs_bytes: bytes) -> bytes:
    return bytes([Instruction.BEGIN]) + _request_body(proof_bytes, inputs_bytes)


def _stepped(instruction: Instruction, rid: bytes, steps: int) -> bytes:
    if len(rid) != REQUEST_ID_SIZE:
        raise ValueError(f"request id must be {REQUEST_ID_SIZE} bytes, got {len(rid)}")
    if not 1 <= steps <= 255:
        raise ValueError(f"steps must be in [1, 255], got {steps}")
    return bytes([instruction]) + rid + bytes([steps])


def build_step_instruction(rid: bytes, steps: int) -> bytes:
    """
    Build a STEP instruction.

    Args:
        rid: The 28-byte request id.
        steps: Loop iterations to run, 1 to 255.

    Raises:
        ValueError: On a bad request id or step count.
    """
    return _stepped(Instruction.STEP, rid, steps)


def build_exponentiate_instruction(rid: bytes, steps: int) -> bytes:
    """Build an EXPONENTIATE instruction running 1 to 255 exponentiation steps."""
    return _stepped(Instruction.EXPONENTIATE, rid, steps)


def build_finalize_instruction(rid: bytes) -> bytes:
    if len(rid) != REQUEST_ID_SIZE:
        raise ValueError(f"request id must be {REQUEST_ID_SIZE} bytes, got {len(rid)}")
    return bytes([Instruction.FINALIZE]) + rid


class Client:
    """
    Signs and submits verifier instructions to a host.

    Args:
        host: The host to submit to.
        signing_key: The Ed25519 key that signs every transaction.
        compute_units: Compute limit requested per transaction.
    """

    def __init__(
        self,
        host: Host,
        signing_key: Ed25519PrivateKey,
        compute_units: int = DEFAULT_COMPUTE_UNITS,
    ) -> None:
        self.host = host
        self.signing_key = signing_key
        self.compute_units = compute_units

    @classmethod
    def from_key_file(cls, host: Host, file_path: str, **kwargs) -> "Client":
        """
        Load the signing key from a JSON key file with a `cborHex` field
        wrapping a 32-byte Ed25519 seed.
        """
        seed = bytes.fromhex(extract_key(file_path))
        return cls(host, Ed25519PrivateKey.from_private_bytes(seed), **kwargs)

    @property
    def public_key(self) -> bytes:
        return self.signing_key.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw)

    def sign(self, data: bytes, compute_units: int | None = None) -> Transaction:
        units = self.compute_units if compute_units is None else compute_units
        signer = self.public_key
        unsigned = Transaction(signer=signer, data=data, signature=b"", compute_units=units)
        return Transaction(
            signer=signer,
            data=data,
            signature=self.signing_key.sign(unsigned.message()),
            compute_units=units,
        )

    def send(self, data: bytes, compute_units: int | None = None) -> InstructionResult:
        return self.host.submit(self.sign(data, compute_units))

    def verify(self, proof_bytes: bytes, inputs_bytes: bytes) -> InstructionResult:
        """Verify a proof in a single transaction."""
        return self.send(build_verify_instruction(proof_bytes, inputs_bytes))

    def staged_verify(
        self,
        proof_bytes: bytes,
        inputs_bytes: bytes,
        steps_per_tx: int = 32,
        exp_steps_per_tx: int | None = None,
    ) -> list[InstructionResult]:
        """
        Verify a proof across BEGIN, several STEPs and FINALIZE.

        Stops at the first transaction that fails or that rejects the request
        outright.

        Args:
            proof_bytes: The encoded proof.
            inputs_bytes: The encoded public inputs.
            steps_per_tx: Miller loop steps per STEP transaction.
            exp_steps_per_tx: When set, the final exponentiation is run in
                EXPONENTIATE transactions of this many steps before FINALIZE,
                for compute limits too small to exponentiate in one go.

        Returns:
            list[InstructionResult]: One result per submitted transaction.
        """
        results = [self.send(build_begin_instruction(proof_bytes, inputs_bytes))]
        if not results[-1].success or results[-1].code != 0:
            return results

        rid = request_id(proof_bytes, inputs_bytes)
        remaining = LOOP_STEPS
        while remaining > 0:
            n = min(steps_per_tx, remaining)
            results.append(self.send(build_step_instruction(rid, n)))
            if not results[-1].success:
                return results
            remaining -= n

        if exp_steps_per_tx is not None:
            remaining = EXP_STEPS
            while remaining > 0:
                n = min(exp_steps_per_tx, remaining)
                results.append(self.send(build_exponentiate_instruction(rid, n)))
                if not results[-1].success:
                    return results
                remaining -= n

        results.append(self.send(build_finalize_instruction(rid)))
        return results

    def verdict(self, proof_bytes: bytes, inputs_bytes: bytes) -> VerdictRecord | None:
        return self.host.verdict(request_id(proof_bytes, inputs_bytes))
