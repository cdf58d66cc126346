# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only

# records.py

"""
Persisted program state as canonical CBOR maps.

    verdict = { 0 => bstr .size 28, 1 => bool, 2 => tstr / null }
    session = { 0 => bstr .size 28, 1 => uint, 2 => bstr .size 384, 3 => [* pair],
                ? 4 => exponentiation }
    pair    = { 0 => bstr .size 64, 1 => bstr .size 128, 2 => bstr .size 128 }
    exponentiation = { 0 => uint, 1 => { * uint => bstr .size 384 } }

Registers of a running final exponentiation are keyed by their index in
REGISTERS, and only the ones later steps still read are stored.

Canonical encoding (RFC 8949 section 4.2) keeps the stored bytes a pure
function of the record, so replays of the same instruction write identical
state.
"""

from dataclasses import dataclass

import cbor2

from groth16_verifier.codec import decode_fq12, decode_g1, decode_g2, encode_fq12, encode_g1, encode_g2
from groth16_verifier.constants import (
    G1_UNCOMPRESSED_SIZE,
    G2_UNCOMPRESSED_SIZE,
    REQUEST_ID_SIZE,
    SESSION_PREFIX,
    VERDICT_PREFIX,
)
from groth16_verifier.errors import DecodeError, ErrorKind
from groth16_verifier.pairing import REGISTERS, FinalExponentiation, MillerLoop
from groth16_verifier.verifier import VerificationOutcome


def verdict_key(request_id: bytes) -> str:
    return VERDICT_PREFIX + request_id.hex()


def session_key(request_id: bytes) -> str:
    return SESSION_PREFIX + request_id.hex()


def _load_map(data: bytes, required: tuple[int, ...]) -> dict:
    try:
        m = cbor2.loads(data)
    except cbor2.CBORDecodeError as e:
        raise ValueError(f"corrupt CBOR: {e}") from e
    if not isinstance(m, dict):
        raise ValueError(f"Expected CBOR map, got {type(m).__name__}")
    for k in m:
        if not isinstance(k, int):
            raise ValueError(f"All keys must be int, got {type(k).__name__}")
    for k in required:
        if k not in m:
            raise ValueError(f"Missing required field {k}")
    return m


def _check_request_id(value) -> bytes:
    if not isinstance(value, bytes) or len(value) != REQUEST_ID_SIZE:
        raise ValueError(f"request id must be {REQUEST_ID_SIZE} bytes")
    return value


@dataclass(frozen=True)
class VerdictRecord:
    """
    The stored result of a finished request; doubles as its replay marker.
    """

    request_id: bytes
    accepted: bool
    error: ErrorKind | None = None

    @classmethod
    def from_outcome(cls, request_id: bytes, outcome: VerificationOutcome) -> "VerdictRecord":
        return cls(request_id=request_id, accepted=outcome.accepted, error=outcome.error)

    def to_bytes(self) -> bytes:
        return cbor2.dumps(
            {
                0: self.request_id,
                1: self.accepted,
                2: self.error.value if self.error is not None else None,
            },
            canonical=True,
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> "VerdictRecord":
        """
        Parse a stored verdict.

        Raises:
            ValueError: If the CBOR does not match the verdict layout or names
                an unknown error kind.
        """
        m = _load_map(data, (0, 1))
        accepted = m[1]
        if not isinstance(accepted, bool):
            raise ValueError(f"field 1 must be bool, got {type(accepted).__name__}")
        error = m.get(2)
        return cls(
            request_id=_check_request_id(m[0]),
            accepted=accepted,
            error=ErrorKind(error) if error is not None else None,
        )


@dataclass(frozen=True)
class SessionRecord:
    """
    A staged verification between BEGIN and FINALIZE.

    Holds the pairing inputs, the Miller loop accumulator and cursor, and the
    running multiples T of each G2 input, which is all a later invocation
    needs to resume the loop. Once the loop is done and the final
    exponentiation has been started, its registers and cursor are kept too.
    """

    request_id: bytes
    loop: MillerLoop
    exponentiation: FinalExponentiation | None = None

    def to_bytes(self) -> bytes:
        pairs = [
            {
                0: encode_g1(p, compressed=False),
                1: encode_g2(q, compressed=False),
                2: encode_g2(t, compressed=False),
            }
            for (p, q), t in zip(self.loop.pairs, self.loop.points)
        ]
        record = {
            0: self.request_id,
            1: self.loop.cursor,
            2: encode_fq12(self.loop.accumulator),
            3: pairs,
        }
        if self.exponentiation is not None:
            record[4] = {
                0: self.exponentiation.cursor,
                1: {
                    REGISTERS.index(name): encode_fq12(value)
                    for name, value in self.exponentiation.live().items()
                },
            }
        return cbor2.dumps(record, canonical=True)

    @classmethod
    def from_bytes(cls, data: bytes) -> "SessionRecord":
        """
        Parse a stored session and rebuild its Miller loop and, when present,
        its final exponentiation.

        Raises:
            ValueError: If the CBOR does not match the session layout or holds
                an undecodable point, accumulator or register.
        """
        m = _load_map(data, (0, 1, 2, 3))
        if not isinstance(m[1], int) or not isinstance(m[3], list):
            raise ValueError("session cursor must be int and pairs a list")
        pairs = []
        points = []
        try:
            for entry in m[3]:
                if not isinstance(entry, dict):
                    raise ValueError("pair record must be a map")
                p, q, t = entry[0], entry[1], entry[2]
                if len(p) != G1_UNCOMPRESSED_SIZE or len(q) != G2_UNCOMPRESSED_SIZE:
                    raise ValueError("pair points must be stored uncompressed")
                pairs.append((decode_g1(p), decode_g2(q)))
                points.append(decode_g2(t))
            accumulator = decode_fq12(m[2])
            exponentiation = _load_exponentiation(m[4]) if 4 in m else None
        except (DecodeError, KeyError, TypeError, IndexError) as e:
            raise ValueError(f"corrupt session record: {e}") from e
        loop = MillerLoop(pairs, accumulator=accumulator, cursor=m[1], points=points)
        if exponentiation is not None and not loop.done:
            raise ValueError("final exponentiation started before the Miller loop finished")
        return cls(request_id=_check_request_id(m[0]), loop=loop, exponentiation=exponentiation)


def _load_exponentiation(m) -> FinalExponentiation:
    if not isinstance(m, dict) or not isinstance(m[0], int) or not isinstance(m[1], dict):
        raise ValueError("exponentiation record must map a cursor and registers")
    registers = {}
    for index, value in m[1].items():
        if not isinstance(index, int) or index < 0:
            raise ValueError(f"bad register index {index!r}")
        registers[REGISTERS[index]] = decode_fq12(value)
    return FinalExponentiation(cursor=m[0], registers=registers)
