# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only

# codec.py

"""
Fixed-width big-endian encodings for field elements, points, proofs,
verifying keys and public inputs.

    field element   32 bytes
    G1 compressed   x                                       32 bytes
    G1 uncompressed x || y                                  64 bytes
    G2 compressed   x.c1 || x.c0                            64 bytes
    G2 uncompressed x.c1 || x.c0 || y.c1 || y.c0           128 bytes
    proof           A || B || C (compressed)               128 bytes
    verifying key   alpha || beta || gamma || delta || n || ic[0..n)
    public inputs   n x 32-byte scalars
    Fq12            12 x 32-byte coefficients, lowest first 384 bytes

Every coordinate is below 2^254, which leaves the top two bits of the
leading byte free for flags: 0x80 marks an odd y in compressed form and 0x40
marks the point at infinity (all other bits zero).

Decoders raise DecodeError with the matching ErrorKind. Length is always
checked before any field decoding.
"""

from groth16_verifier.constants import (
    COUNT_SIZE,
    CURVE_ORDER,
    FIELD_MODULUS,
    FIELD_SIZE,
    FLAG_MASK,
    FQ12_SIZE,
    G1_COMPRESSED_SIZE,
    G1_UNCOMPRESSED_SIZE,
    G2_COMPRESSED_SIZE,
    G2_UNCOMPRESSED_SIZE,
    INFINITY_FLAG,
    ODD_FLAG,
    PROOF_SIZE,
)
from groth16_verifier.curve import (
    G1Point,
    G2Point,
    from_affine,
    g1_identity,
    g2_identity,
    recover_y_g1,
    recover_y_g2,
    to_affine,
)
from groth16_verifier.errors import DecodeError, ErrorKind
from groth16_verifier.fields import FQ, FQ2, FQ12, Fr, coeffs, fq2_is_odd, fq_is_odd
from groth16_verifier.structures import Proof, VerifyingKey

VK_HEADER_SIZE = G1_COMPRESSED_SIZE + 3 * G2_COMPRESSED_SIZE


def encode_field(value: int) -> bytes:
    """Encode a canonical field value as 32 big-endian bytes."""
    return int(value).to_bytes(FIELD_SIZE, "big")


def decode_field(data: bytes, modulus: int, kind: ErrorKind) -> int:
    """
    Decode 32 big-endian bytes into a canonical field value.

    Args:
        data: Exactly 32 bytes.
        modulus: The field modulus the value must stay below.
        kind: Error kind to report for a non-canonical value.

    Returns:
        int: The value, in [0, modulus).

    Raises:
        DecodeError: MalformedInput on a wrong length, `kind` when the value
            is >= modulus.
    """
    if len(data) != FIELD_SIZE:
        raise DecodeError(
            ErrorKind.MALFORMED_INPUT,
            f"field element must be {FIELD_SIZE} bytes, got {len(data)}",
        )
    value = int.from_bytes(data, "big")
    if value >= modulus:
        raise DecodeError(kind, f"value {value} is not below modulus {modulus}")
    return value


def _strip_flags(data: bytes) -> tuple[int, bytes]:
    flags = data[0] & FLAG_MASK
    return flags, bytes([data[0] & ~FLAG_MASK & 0xFF]) + data[1:]


def _coordinate(data: bytes) -> int:
    return decode_field(data, FIELD_MODULUS, ErrorKind.MALFORMED_POINT)


def _check_infinity(flags: int, raw: bytes) -> None:
    if flags != INFINITY_FLAG or any(raw):
        raise DecodeError(
            ErrorKind.MALFORMED_POINT, "infinity must carry no other bits"
        )


def _set_flags(data: bytes, flags: int) -> bytes:
    return bytes([data[0] | flags]) + data[1:]


def encode_g1(point: G1Point, compressed: bool = True) -> bytes:
    """
    Encode a G1 point.

    Args:
        point: The projective point.
        compressed: Emit x plus a parity flag (32 bytes) instead of x || y.

    Returns:
        bytes: The encoding.
    """
    size = G1_COMPRESSED_SIZE if compressed else G1_UNCOMPRESSED_SIZE
    affine = to_affine(point)
    if affine is None:
        return _set_flags(bytes(size), INFINITY_FLAG)
    x, y = affine
    if compressed:
        return _set_flags(encode_field(x.n), ODD_FLAG if fq_is_odd(y) else 0)
    return encode_field(x.n) + encode_field(y.n)


def decode_g1(data: bytes) -> G1Point:
    """
    Decode a G1 point; the length selects compressed or uncompressed form.

    Compressed points are recovered from the curve equation and so always lie
    on the curve. Uncompressed points are not checked here.

    Raises:
        DecodeError: MalformedInput for a wrong length, MalformedPoint for a
            bad flag, a coordinate >= q or an x with no matching y.
    """
    if len(data) not in (G1_COMPRESSED_SIZE, G1_UNCOMPRESSED_SIZE):
        raise DecodeError(
            ErrorKind.MALFORMED_INPUT,
            f"G1 point must be {G1_COMPRESSED_SIZE} or {G1_UNCOMPRESSED_SIZE} bytes, got {len(data)}",
        )
    compressed = len(data) == G1_COMPRESSED_SIZE
    flags, raw = _strip_flags(data)
    if flags & INFINITY_FLAG:
        _check_infinity(flags, raw)
        return g1_identity
    x = FQ(_coordinate(raw[:FIELD_SIZE]))
    if not compressed:
        if flags:
            raise DecodeError(
                ErrorKind.MALFORMED_POINT, "uncompressed point carries a parity flag"
            )
        return from_affine(x, FQ(_coordinate(raw[FIELD_SIZE:])))
    y = recover_y_g1(x, bool(flags & ODD_FLAG))
    if y is None:
        raise DecodeError(ErrorKind.MALFORMED_POINT, "x is not on the G1 curve")
    return from_affine(x, y)


def _encode_fq2(value: FQ2) -> bytes:
    c0, c1 = coeffs(value)
    return encode_field(c1) + encode_field(c0)


def _decode_fq2(data: bytes) -> FQ2:
    c1 = _coordinate(data[:FIELD_SIZE])
    c0 = _coordinate(data[FIELD_SIZE:])
    return FQ2([c0, c1])


def encode_g2(point: G2Point, compressed: bool = True) -> bytes:
    """
    Encode a G2 point, imaginary coefficient first.

    Args:
        point: The projective point.
        compressed: Emit x plus a parity flag (64 bytes) instead of x || y.

    Returns:
        bytes: The encoding.
    """
    size = G2_COMPRESSED_SIZE if compressed else G2_UNCOMPRESSED_SIZE
    affine = to_affine(point)
    if affine is None:
        return _set_flags(bytes(size), INFINITY_FLAG)
    x, y = affine
    if compressed:
        return _set_flags(_encode_fq2(x), ODD_FLAG if fq2_is_odd(y) else 0)
    return _encode_fq2(x) + _encode_fq2(y)


def decode_g2(data: bytes) -> G2Point:
    """
    Decode a G2 point; the length selects compressed or uncompressed form.

    Subgroup membership is not checked here.

    Raises:
        DecodeError: MalformedInput for a wrong length, MalformedPoint for a
            bad flag, a coefficient >= q or an x with no matching y.
    """
    if len(data) not in (G2_COMPRESSED_SIZE, G2_UNCOMPRESSED_SIZE):
        raise DecodeError(
            ErrorKind.MALFORMED_INPUT,
            f"G2 point must be {G2_COMPRESSED_SIZE} or {G2_UNCOMPRESSED_SIZE} bytes, got {len(data)}",
        )
    compressed = len(data) == G2_COMPRESSED_SIZE
    flags, raw = _strip_flags(data)
    if flags & INFINITY_FLAG:
        _check_infinity(flags, raw)
        return g2_identity
    x = _decode_fq2(raw[: 2 * FIELD_SIZE])
    if not compressed:
        if flags:
            raise DecodeError(
                ErrorKind.MALFORMED_POINT, "uncompressed point carries a parity flag"
            )
        return from_affine(x, _decode_fq2(raw[2 * FIELD_SIZE :]))
    y = recover_y_g2(x, bool(flags & ODD_FLAG))
    if y is None:
        raise DecodeError(ErrorKind.MALFORMED_POINT, "x is not on the G2 twist")
    return from_affine(x, y)


def encode_proof(proof: Proof) -> bytes:
    return encode_g1(proof.a) + encode_g2(proof.b) + encode_g1(proof.c)


def decode_proof(data: bytes) -> Proof:
    """
    Decode a compressed proof A || B || C.

    Raises:
        DecodeError: MalformedInput unless exactly PROOF_SIZE bytes are given,
            otherwise whatever the point decoders raise.
    """
    if len(data) != PROOF_SIZE:
        raise DecodeError(
            ErrorKind.MALFORMED_INPUT,
            f"proof must be {PROOF_SIZE} bytes, got {len(data)}",
        )
    a_end = G1_COMPRESSED_SIZE
    b_end = a_end + G2_COMPRESSED_SIZE
    return Proof(
        a=decode_g1(data[:a_end]),
        b=decode_g2(data[a_end:b_end]),
        c=decode_g1(data[b_end:]),
    )


def encode_verifying_key(vk: VerifyingKey) -> bytes:
    out = encode_g1(vk.alpha) + encode_g2(vk.beta) + encode_g2(vk.gamma)
    out += encode_g2(vk.delta)
    out += len(vk.ic).to_bytes(COUNT_SIZE, "big")
    for point in vk.ic:
        out += encode_g1(point)
    return out


def decode_verifying_key(data: bytes) -> VerifyingKey:
    """
    Decode a compressed verifying key.

    Raises:
        DecodeError: MalformedInput when the length does not match the ic
            count, otherwise whatever the point decoders raise.
    """
    minimum = VK_HEADER_SIZE + COUNT_SIZE
    if len(data) < minimum:
        raise DecodeError(
            ErrorKind.MALFORMED_INPUT,
            f"verifying key must be at least {minimum} bytes, got {len(data)}",
        )
    count = int.from_bytes(data[VK_HEADER_SIZE:minimum], "big")
    expected = minimum + count * G1_COMPRESSED_SIZE
    if count < 1 or len(data) != expected:
        raise DecodeError(
            ErrorKind.MALFORMED_INPUT,
            f"verifying key with {count} ic points must be {expected} bytes, got {len(data)}",
        )
    offset = 0
    alpha = decode_g1(data[offset : offset + G1_COMPRESSED_SIZE])
    offset += G1_COMPRESSED_SIZE
    g2_points = []
    for _ in range(3):
        g2_points.append(decode_g2(data[offset : offset + G2_COMPRESSED_SIZE]))
        offset += G2_COMPRESSED_SIZE
    offset += COUNT_SIZE
    ic = []
    for _ in range(count):
        ic.append(decode_g1(data[offset : offset + G1_COMPRESSED_SIZE]))
        offset += G1_COMPRESSED_SIZE
    beta, gamma, delta = g2_points
    return VerifyingKey(alpha=alpha, beta=beta, gamma=gamma, delta=delta, ic=tuple(ic))


def encode_public_inputs(values: list[int | Fr]) -> bytes:
    """
    Encode public inputs as consecutive 32-byte scalars.

    Raises:
        ValueError: If a value is outside [0, r).
    """
    out = b""
    for v in values:
        n = v.n if isinstance(v, Fr) else int(v)
        if not 0 <= n < CURVE_ORDER:
            raise ValueError(f"public input {n} is outside the scalar field")
        out += encode_field(n)
    return out


def decode_public_inputs(data: bytes) -> list[Fr]:
    """
    Decode consecutive 32-byte scalars.

    Raises:
        DecodeError: MalformedInput if the length is not a multiple of 32,
            OutOfRangeInput for any value >= r.
    """
    if len(data) % FIELD_SIZE:
        raise DecodeError(
            ErrorKind.MALFORMED_INPUT,
            f"public inputs must be a multiple of {FIELD_SIZE} bytes, got {len(data)}",
        )
    return [
        Fr(decode_field(data[i : i + FIELD_SIZE], CURVE_ORDER, ErrorKind.OUT_OF_RANGE_INPUT))
        for i in range(0, len(data), FIELD_SIZE)
    ]


def encode_fq12(value: FQ12) -> bytes:
    return b"".join(encode_field(c) for c in coeffs(value))


def decode_fq12(data: bytes) -> FQ12:
    """
    Decode 384 bytes into an Fq12 element.

    Raises:
        DecodeError: MalformedInput for a wrong length or a coefficient >= q.
    """
    if len(data) != FQ12_SIZE:
        raise DecodeError(
            ErrorKind.MALFORMED_INPUT,
            f"Fq12 element must be {FQ12_SIZE} bytes, got {len(data)}",
        )
    return FQ12(
        [
            decode_field(data[i : i + FIELD_SIZE], FIELD_MODULUS, ErrorKind.MALFORMED_INPUT)
            for i in range(0, FQ12_SIZE, FIELD_SIZE)
        ]
    )

