# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only

# tests/test_host.py

import pytest
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat

from groth16_verifier.client import build_begin_instruction, build_verify_instruction
from groth16_verifier.constants import MAX_COMPUTE_UNITS
from groth16_verifier.errors import ErrorKind
from groth16_verifier.hashing import request_id
from groth16_verifier.host import INVALID_SIGNATURE, Host, Transaction, signing_message
from groth16_verifier.program import ProgramErrorCode, VerifierProgram
from groth16_verifier.records import session_key

KEY = Ed25519PrivateKey.from_private_bytes(bytes(range(32)))
SIGNER = KEY.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw)


def signed(data: bytes, units: int = MAX_COMPUTE_UNITS) -> Transaction:
    return Transaction(
        signer=SIGNER,
        data=data,
        signature=KEY.sign(signing_message(SIGNER, units, data)),
        compute_units=units,
    )


@pytest.fixture()
def host(vk_bytes) -> Host:
    return Host(VerifierProgram(vk_bytes))


def test_signing_message_layout():
    assert signing_message(b"\xaa", 1, b"\xbb") == b"\xaa\x00\x00\x00\x01\xbb"


def test_accepted_transaction_commits(host, proof_bytes, inputs_bytes):
    result = host.submit(signed(build_verify_instruction(proof_bytes, inputs_bytes)))
    assert result.success
    assert result.code == 0
    assert result.error is None
    assert 0 < result.compute_units <= MAX_COMPUTE_UNITS
    assert "Program log: Instruction: Verify" in result.logs
    assert host.verdict(request_id(proof_bytes, inputs_bytes)).accepted


def test_rejection_commits_with_error_code(host, proof_bytes, wrong_inputs_bytes):
    result = host.submit(signed(build_verify_instruction(proof_bytes, wrong_inputs_bytes)))
    assert result.success
    assert result.code == ErrorKind.PAIRING_MISMATCH.code
    assert result.error == "PairingMismatch"
    record = host.verdict(request_id(proof_bytes, wrong_inputs_bytes))
    assert record.error == ErrorKind.PAIRING_MISMATCH


def test_bad_signature_runs_nothing(host, proof_bytes, inputs_bytes):
    tx = signed(build_verify_instruction(proof_bytes, inputs_bytes))
    forged = Transaction(
        signer=tx.signer, data=tx.data, signature=bytes(64), compute_units=tx.compute_units
    )
    result = host.submit(forged)
    assert not result.success
    assert result.code == INVALID_SIGNATURE
    assert result.compute_units == 0
    assert host.store == {}


def test_signature_covers_compute_units(host, proof_bytes, inputs_bytes):
    tx = signed(build_verify_instruction(proof_bytes, inputs_bytes), units=1_000)
    tampered = Transaction(
        signer=tx.signer, data=tx.data, signature=tx.signature, compute_units=MAX_COMPUTE_UNITS
    )
    assert host.submit(tampered).error == "InvalidSignature"


def test_malformed_signer(host):
    tx = Transaction(signer=b"\x01", data=b"\x00", signature=bytes(64))
    assert host.submit(tx).code == INVALID_SIGNATURE


def test_budget_exhaustion_rolls_back(host, proof_bytes, inputs_bytes):
    result = host.submit(signed(build_verify_instruction(proof_bytes, inputs_bytes), units=200_000))
    assert not result.success
    assert result.code == ErrorKind.COMPUTE_BUDGET_EXCEEDED.code
    assert result.error == "ComputeBudgetExceeded"
    assert host.store == {}


def test_requested_units_are_capped(host, proof_bytes, inputs_bytes):
    result = host.submit(signed(build_verify_instruction(proof_bytes, inputs_bytes), units=5_000_000))
    assert result.success
    assert f"of {MAX_COMPUTE_UNITS} compute units" in result.logs[-1]


def test_program_error_rolls_back(host, proof_bytes, inputs_bytes):
    data = build_begin_instruction(proof_bytes, inputs_bytes)
    assert host.submit(signed(data)).success
    before = dict(host.store)
    result = host.submit(signed(data))
    assert not result.success
    assert result.code == ProgramErrorCode.ALREADY_PROCESSED
    assert result.error == "AlreadyProcessed"
    assert any(line.startswith("Program failed: AlreadyProcessed") for line in result.logs)
    assert host.store == before
    assert session_key(request_id(proof_bytes, inputs_bytes)) in host.store


def test_verdict_for_unknown_request(host):
    assert host.verdict(bytes(28)) is None
    assert host.get("missing") is None


if __name__ == "__main__":
    pytest.main()
