# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only

# convert.py

"""
Convert snarkjs Groth16 artifacts into the verifier's binary encodings.

snarkjs outputs:
  - verification_key.json: {protocol, curve, nPublic, vk_alpha_1, vk_beta_2,
    vk_gamma_2, vk_delta_2, IC}
  - proof.json: {pi_a, pi_b, pi_c, protocol, curve}
  - public.json: [decimal strings]

Points are projective with a trailing z that is "1" (or "0" for infinity);
G2 coordinates are [c0, c1] pairs.

Usage:
    python -m groth16_verifier.convert <vk.json> <proof.json> <public.json> <out_dir>
"""

import sys
from pathlib import Path
from typing import Any

from groth16_verifier.codec import encode_proof, encode_public_inputs, encode_verifying_key
from groth16_verifier.constants import CURVE_ORDER, FIELD_MODULUS, FIELD_SIZE
from groth16_verifier.curve import (
    G1Point,
    G2Point,
    from_affine,
    g1_identity,
    g2_identity,
    is_on_curve_g1,
    is_on_curve_g2,
)
from groth16_verifier.fields import FQ, FQ2
from groth16_verifier.files import load_json, save_json, save_string
from groth16_verifier.hashing import request_id
from groth16_verifier.structures import Proof, VerifyingKey

VK_FILE = "vk.hex"
PROOF_FILE = "proof.hex"
PUBLIC_FILE = "public.hex"
MANIFEST_FILE = "manifest.json"


def _field(value: str) -> int:
    n = int(value)
    if not 0 <= n < FIELD_MODULUS:
        raise ValueError(f"coordinate {value} is not a canonical field element")
    return n


def g1_from_json(coords: list[str]) -> G1Point:
    """
    Parse a snarkjs G1 point [x, y, z].

    Raises:
        ValueError: If z is neither 0 nor 1, or the point is off the curve.
    """
    if len(coords) != 3:
        raise ValueError(f"G1 point needs 3 coordinates, got {len(coords)}")
    z = int(coords[2])
    if z == 0:
        return g1_identity
    if z != 1:
        raise ValueError(f"expected affine z = 1, got {coords[2]}")
    point = from_affine(FQ(_field(coords[0])), FQ(_field(coords[1])))
    if not is_on_curve_g1(point):
        raise ValueError("G1 point is not on the curve")
    return point


def g2_from_json(coords: list[list[str]]) -> G2Point:
    """
    Parse a snarkjs G2 point [[x0, x1], [y0, y1], [z0, z1]].

    Raises:
        ValueError: If z is neither 0 nor 1, or the point is off the twist.
    """
    if len(coords) != 3:
        raise ValueError(f"G2 point needs 3 coordinates, got {len(coords)}")
    z = [int(c) for c in coords[2]]
    if z == [0, 0]:
        return g2_identity
    if z != [1, 0]:
        raise ValueError(f"expected affine z = [1, 0], got {coords[2]}")
    x = FQ2([_field(c) for c in coords[0]])
    y = FQ2([_field(c) for c in coords[1]])
    point = from_affine(x, y)
    if not is_on_curve_g2(point):
        raise ValueError("G2 point is not on the twist")
    return point


def _check_curve(data: dict[str, Any]) -> None:
    curve = data.get("curve", "bn128")
    if curve != "bn128":
        raise ValueError(f"unsupported curve {curve}, expected bn128")
    protocol = data.get("protocol", "groth16")
    if protocol != "groth16":
        raise ValueError(f"unsupported protocol {protocol}, expected groth16")


def vk_from_json(vk: dict[str, Any]) -> VerifyingKey:
    """
    Build a VerifyingKey from snarkjs verification_key.json.

    Raises:
        ValueError: On a foreign curve or protocol, a bad point, or when
            nPublic disagrees with the number of IC points.
    """
    _check_curve(vk)
    ic = tuple(g1_from_json(p) for p in vk["IC"])
    if "nPublic" in vk and int(vk["nPublic"]) != len(ic) - 1:
        raise ValueError(f"nPublic is {vk['nPublic']} but there are {len(ic)} IC points")
    return VerifyingKey(
        alpha=g1_from_json(vk["vk_alpha_1"]),
        beta=g2_from_json(vk["vk_beta_2"]),
        gamma=g2_from_json(vk["vk_gamma_2"]),
        delta=g2_from_json(vk["vk_delta_2"]),
        ic=ic,
    )


def proof_from_json(proof: dict[str, Any]) -> Proof:
    _check_curve(proof)
    return Proof(
        a=g1_from_json(proof["pi_a"]),
        b=g2_from_json(proof["pi_b"]),
        c=g1_from_json(proof["pi_c"]),
    )


def inputs_from_json(public: list[str]) -> list[int]:
    """
    Parse snarkjs public.json.

    Raises:
        ValueError: If a value is outside the scalar field.
    """
    values = [int(v) for v in public]
    for v in values:
        if not 0 <= v < CURVE_ORDER:
            raise ValueError(f"public input {v} is outside the scalar field")
    return values


def convert_files(
    vk_path: str | Path,
    proof_path: str | Path,
    public_path: str | Path,
    out_dir: str | Path,
) -> bytes:
    """
    Read the snarkjs artifacts and write vk.hex, proof.hex, public.hex and a
    manifest into `out_dir`.

    Returns:
        bytes: The request id of the converted proof.
    """
    out_dir = Path(out_dir)
    vk_bytes = encode_verifying_key(vk_from_json(load_json(vk_path)))
    proof_bytes = encode_proof(proof_from_json(load_json(proof_path)))
    inputs_bytes = encode_public_inputs(inputs_from_json(load_json(public_path)))

    save_string(out_dir / VK_FILE, vk_bytes.hex())
    save_string(out_dir / PROOF_FILE, proof_bytes.hex())
    save_string(out_dir / PUBLIC_FILE, inputs_bytes.hex())

    rid = request_id(proof_bytes, inputs_bytes)
    save_json(
        out_dir / MANIFEST_FILE,
        {"nPublic": len(inputs_bytes) // FIELD_SIZE, "requestId": rid.hex()},
    )
    return rid


def main() -> None:
    """CLI: convert snarkjs artifacts into hex files."""
    if len(sys.argv) != 5:
        print(
            "Usage: python -m groth16_verifier.convert <vk.json> <proof.json> <public.json> <out_dir>",
            file=sys.stderr,
        )
        sys.exit(1)

    rid = convert_files(*sys.argv[1:5])
    print(f"request id: {rid.hex()}")


if __name__ == "__main__":
    main()
