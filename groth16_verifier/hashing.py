# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only

import binascii
import hashlib

from groth16_verifier.constants import REQ_DOMAIN_TAG, REQUEST_ID_SIZE


def generate(input_string: str) -> str:
    """
    Calculates the blake2b_224 hash digest of the input string.

    Args:
        input_string (str): Hex encoded bytes to be hashed.

    Returns:
        str: The blake2b_224 hash digest of the input, hex encoded.
    """
    hash_digest = hashlib.blake2b(
        binascii.unhexlify(input_string), digest_size=REQUEST_ID_SIZE
    ).hexdigest()

    return hash_digest


def request_id(proof_bytes: bytes, inputs_bytes: bytes) -> bytes:
    """
    Identify a verification request by its proof and public inputs.

    The identifier is blake2b_224 over the request domain tag followed by the
    proof and input bytes, so the same request always maps to the same
    persisted verdict.

    Args:
        proof_bytes: The encoded proof.
        inputs_bytes: The encoded public inputs.

    Returns:
        bytes: A 28-byte request identifier.
    """
    return bytes.fromhex(generate(REQ_DOMAIN_TAG + proof_bytes.hex() + inputs_bytes.hex()))
