# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only

# verifier.py

"""
Groth16 verification over bn254.

A proof (A, B, C) for public inputs x_1..x_n is accepted when

    e(A, B) = e(alpha, beta) * e(L, gamma) * e(C, delta)

with L = ic_0 + sum x_i * ic_i. The check is run as the single product

    e(-A, B) * e(alpha, beta) * e(L, gamma) * e(C, delta) == 1

The Miller loop value of (alpha, beta) is the same for every request, so it
is computed once when the key is provisioned and only the other three pairs
go through the loop per request.

Verification of one request moves through

    Decoding -> Validating -> PairingCheck -> Accepted | Rejected

and every decode or validation failure ends in Rejected with a specific
ErrorKind. Cheap checks run first so that malformed requests cost little.
"""

from dataclasses import dataclass
from enum import Enum

from groth16_verifier.budget import ComputeMeter, charge
from groth16_verifier.codec import decode_proof, decode_public_inputs, decode_verifying_key
from groth16_verifier.constants import FIELD_SIZE, PROOF_SIZE
from groth16_verifier.curve import (
    G1Point,
    combine,
    invert,
    is_in_subgroup_g1,
    is_in_subgroup_g2,
    is_on_curve_g1,
    is_on_curve_g2,
    scale,
)
from groth16_verifier.errors import DecodeError, ErrorKind
from groth16_verifier.fields import Fr
from groth16_verifier.pairing import check, multi_miller_loop
from groth16_verifier.structures import Proof, VerifyingKey


class Stage(Enum):
    DECODING = "Decoding"
    VALIDATING = "Validating"
    PAIRING_CHECK = "PairingCheck"
    ACCEPTED = "Accepted"
    REJECTED = "Rejected"


@dataclass(frozen=True)
class VerificationOutcome:
    """
    Terminal result of one verification request.

    Attributes:
        accepted: Whether the proof was accepted.
        error: The rejection reason, None when accepted.
        failed_at: The stage the request was rejected in, None when accepted.
    """

    accepted: bool
    error: ErrorKind | None = None
    failed_at: Stage | None = None

    @classmethod
    def accept(cls) -> "VerificationOutcome":
        return cls(accepted=True)

    @classmethod
    def reject(cls, kind: ErrorKind, failed_at: Stage | None = None) -> "VerificationOutcome":
        return cls(accepted=False, error=kind, failed_at=failed_at)

    @property
    def stage(self) -> Stage:
        return Stage.ACCEPTED if self.accepted else Stage.REJECTED


def prepare_inputs(
    vk: VerifyingKey, inputs: list[Fr], meter: ComputeMeter | None = None
) -> G1Point:
    """
    Compute the public input combination L = ic_0 + sum x_i * ic_i.

    Args:
        vk: The verifying key.
        inputs: One scalar per public input.
        meter: Optional meter, charged per scalar multiplication and addition.

    Returns:
        G1Point: L.

    Raises:
        DecodeError: InputCountMismatch when len(inputs) != len(vk.ic) - 1.
    """
    if len(inputs) != vk.num_public_inputs:
        raise DecodeError(
            ErrorKind.INPUT_COUNT_MISMATCH,
            f"expected {vk.num_public_inputs} public inputs, got {len(inputs)}",
        )
    acc = vk.ic[0]
    for x, base in zip(inputs, vk.ic[1:]):
        charge(meter, "g1_scalar_mul")
        charge(meter, "g1_add")
        acc = combine(acc, scale(base, x))
    return acc


class VerifierCore:
    """
    Verifies Groth16 proofs against one provisioned verifying key.

    The key is trusted: its points are checked to lie on their curves once at
    construction, but no subgroup checks are run on them. The core keeps no
    state between requests.

    Attributes:
        vk: The verifying key.
        alpha_beta: The Miller loop value of (alpha, beta), before final
            exponentiation.
    """

    def __init__(self, vk: VerifyingKey) -> None:
        for point in (vk.alpha, *vk.ic):
            if not is_on_curve_g1(point):
                raise ValueError("verifying key has a G1 point off the curve")
        for point in (vk.beta, vk.gamma, vk.delta):
            if not is_on_curve_g2(point):
                raise ValueError("verifying key has a G2 point off the twist")
        self.vk = vk
        self.alpha_beta = multi_miller_loop([(vk.alpha, vk.beta)])

    @classmethod
    def from_bytes(cls, data: bytes) -> "VerifierCore":
        """Provision a core from an encoded verifying key."""
        return cls(decode_verifying_key(data))

    def decode(
        self, proof_bytes: bytes, inputs_bytes: bytes, meter: ComputeMeter | None = None
    ) -> Proof:
        """
        Decoding stage: length checks, then proof point decompression.

        Raises:
            DecodeError: MalformedInput or MalformedPoint.
        """
        charge(meter, "length_check")
        if len(proof_bytes) != PROOF_SIZE:
            raise DecodeError(
                ErrorKind.MALFORMED_INPUT,
                f"proof must be {PROOF_SIZE} bytes, got {len(proof_bytes)}",
            )
        if len(inputs_bytes) % FIELD_SIZE:
            raise DecodeError(
                ErrorKind.MALFORMED_INPUT,
                f"public inputs must be a multiple of {FIELD_SIZE} bytes, got {len(inputs_bytes)}",
            )
        charge(meter, "g1_decompress", 2)
        charge(meter, "g2_decompress")
        return decode_proof(proof_bytes)

    def validate(
        self, proof: Proof, inputs_bytes: bytes, meter: ComputeMeter | None = None
    ) -> list[Fr]:
        """
        Validating stage: input count and range, then curve and subgroup
        membership of the proof points.

        Returns:
            list[Fr]: The public inputs.

        Raises:
            DecodeError: InputCountMismatch, OutOfRangeInput, MalformedPoint
                or InvalidSubgroup.
        """
        count = len(inputs_bytes) // FIELD_SIZE
        if count != self.vk.num_public_inputs:
            raise DecodeError(
                ErrorKind.INPUT_COUNT_MISMATCH,
                f"expected {self.vk.num_public_inputs} public inputs, got {count}",
            )
        charge(meter, "field_decode", count)
        charge(meter, "scalar_range_check", count)
        inputs = decode_public_inputs(inputs_bytes)

        charge(meter, "g1_curve_check", 2)
        for point in (proof.a, proof.c):
            if not is_on_curve_g1(point):
                raise DecodeError(ErrorKind.MALFORMED_POINT, "proof point is off the G1 curve")
            if not is_in_subgroup_g1(point):
                raise DecodeError(ErrorKind.INVALID_SUBGROUP, "proof point is outside G1")
        if not is_on_curve_g2(proof.b):
            raise DecodeError(ErrorKind.MALFORMED_POINT, "proof point B is off the twist")
        charge(meter, "g2_subgroup_check")
        if not is_in_subgroup_g2(proof.b):
            raise DecodeError(ErrorKind.INVALID_SUBGROUP, "proof point B is outside G2")
        return inputs

    def pairing_inputs(
        self, proof: Proof, inputs: list[Fr], meter: ComputeMeter | None = None
    ) -> list[tuple]:
        """The per-request (G1, G2) pairs; with (alpha, beta) their pairing product must be 1."""
        vk = self.vk
        l_point = prepare_inputs(vk, inputs, meter)
        return [
            (invert(proof.a), proof.b),
            (l_point, vk.gamma),
            (proof.c, vk.delta),
        ]

    def prepare(
        self, proof_bytes: bytes, inputs_bytes: bytes, meter: ComputeMeter | None = None
    ) -> list[tuple]:
        """
        Run decoding and validation and build the pairing inputs.

        This is the part of verification shared by the one-shot and staged
        paths.

        Raises:
            DecodeError: On any decoding or validation failure.
        """
        proof = self.decode(proof_bytes, inputs_bytes, meter)
        inputs = self.validate(proof, inputs_bytes, meter)
        return self.pairing_inputs(proof, inputs, meter)

    def verify(
        self, proof_bytes: bytes, inputs_bytes: bytes, meter: ComputeMeter | None = None
    ) -> VerificationOutcome:
        """
        Verify an encoded proof against encoded public inputs.

        Every malformed request yields a Rejected outcome; nothing here raises
        except ComputeBudgetExceeded when a meter runs dry.

        Args:
            proof_bytes: Compressed A || B || C.
            inputs_bytes: Concatenated 32-byte public input scalars.
            meter: Optional compute meter.

        Returns:
            VerificationOutcome: Accepted, or Rejected with a reason.
        """
        stage = Stage.DECODING
        try:
            proof = self.decode(proof_bytes, inputs_bytes, meter)
            stage = Stage.VALIDATING
            inputs = self.validate(proof, inputs_bytes, meter)
        except DecodeError as e:
            return VerificationOutcome.reject(e.kind, stage)

        pairs = self.pairing_inputs(proof, inputs, meter)
        if not check(pairs, meter, fixed=self.alpha_beta):
            return VerificationOutcome.reject(ErrorKind.PAIRING_MISMATCH, Stage.PAIRING_CHECK)
        return VerificationOutcome.accept()
