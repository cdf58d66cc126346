# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only

# tests/conftest.py

"""
Groth16 vectors built from a known trapdoor.

With alpha, beta, gamma, delta and the ic scalars k_i known, a proof for any
public inputs can be simulated: pick A = [a]G1, B = [b]G2 and solve the
verification equation for C,

    c = (a*b - alpha*beta - l*gamma) / delta,   l = k_0 + sum x_i k_i

so e(A, B) = e(alpha, beta) e(L, gamma) e(C, delta) holds exactly.
"""

import pytest

from groth16_verifier.codec import encode_proof, encode_public_inputs, encode_verifying_key
from groth16_verifier.constants import CURVE_ORDER
from groth16_verifier.curve import from_affine, g1_point, g2_point
from groth16_verifier.fields import FQ2, fq2_sqrt
from groth16_verifier.structures import Proof, VerifyingKey
from groth16_verifier.verifier import VerifierCore
from py_ecc.optimized_bn128 import b2

ALPHA = 5
BETA = 7
GAMMA = 11
DELTA = 13
IC_SCALARS = (17, 19)
A_SCALAR = 23
B_SCALAR = 29


def build_vk(ic_scalars=IC_SCALARS) -> VerifyingKey:
    return VerifyingKey(
        alpha=g1_point(ALPHA),
        beta=g2_point(BETA),
        gamma=g2_point(GAMMA),
        delta=g2_point(DELTA),
        ic=tuple(g1_point(k) for k in ic_scalars),
    )


def build_proof(inputs, ic_scalars=IC_SCALARS, a=A_SCALAR, b=B_SCALAR) -> Proof:
    l_scalar = ic_scalars[0] + sum(x * k for x, k in zip(inputs, ic_scalars[1:]))
    c = (a * b - ALPHA * BETA - l_scalar * GAMMA) * pow(DELTA, -1, CURVE_ORDER)
    return Proof(a=g1_point(a), b=g2_point(b), c=g1_point(c % CURVE_ORDER))


def twist_point_outside_g2():
    """A point on the twist that is not in the order-r subgroup."""
    k = 1
    while True:
        x = FQ2([k, 1])
        y = fq2_sqrt(x * x * x + b2)
        if y is not None:
            return from_affine(x, y)
        k += 1


@pytest.fixture(scope="session")
def vk() -> VerifyingKey:
    return build_vk()


@pytest.fixture(scope="session")
def vk_bytes(vk) -> bytes:
    return encode_verifying_key(vk)


@pytest.fixture(scope="session")
def core(vk) -> VerifierCore:
    return VerifierCore(vk)


@pytest.fixture(scope="session")
def proof() -> Proof:
    return build_proof([1])


@pytest.fixture(scope="session")
def proof_bytes(proof) -> bytes:
    return encode_proof(proof)


@pytest.fixture(scope="session")
def inputs_bytes() -> bytes:
    return encode_public_inputs([1])


@pytest.fixture(scope="session")
def wrong_inputs_bytes() -> bytes:
    return encode_public_inputs([2])


@pytest.fixture()
def make_proof():
    return build_proof


@pytest.fixture()
def make_vk():
    return build_vk


@pytest.fixture(scope="session")
def bad_g2():
    return twist_point_outside_g2()
