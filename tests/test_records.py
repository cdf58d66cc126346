# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only

# tests/test_records.py

import cbor2
import pytest

from groth16_verifier.constants import SESSION_PREFIX, VERDICT_PREFIX
from groth16_verifier.curve import g1_point, g2_point, same_point
from groth16_verifier.errors import ErrorKind
from groth16_verifier.pairing import EXP_STEPS, LOOP_STEPS, REGISTERS, FinalExponentiation, MillerLoop
from groth16_verifier.records import SessionRecord, VerdictRecord, session_key, verdict_key
from groth16_verifier.verifier import VerificationOutcome

RID = bytes(range(28))


class TestKeys:
    def test_prefixes(self):
        assert verdict_key(RID) == VERDICT_PREFIX + RID.hex()
        assert session_key(RID) == SESSION_PREFIX + RID.hex()


class TestVerdictRecord:
    def test_accepted_layout(self):
        record = VerdictRecord.from_outcome(RID, VerificationOutcome.accept())
        assert cbor2.loads(record.to_bytes()) == {0: RID, 1: True, 2: None}

    def test_rejected_layout(self):
        outcome = VerificationOutcome.reject(ErrorKind.INVALID_SUBGROUP)
        record = VerdictRecord.from_outcome(RID, outcome)
        assert cbor2.loads(record.to_bytes()) == {0: RID, 1: False, 2: "InvalidSubgroup"}

    def test_round_trip(self):
        record = VerdictRecord(RID, False, ErrorKind.PAIRING_MISMATCH)
        assert VerdictRecord.from_bytes(record.to_bytes()) == record

    def test_canonical_encoding_is_deterministic(self):
        a = VerdictRecord(RID, True).to_bytes()
        b = VerdictRecord(RID, True).to_bytes()
        assert a == b
        # canonical maps sort their keys
        assert a == cbor2.dumps({0: RID, 1: True, 2: None}, canonical=True)

    def test_not_a_map(self):
        with pytest.raises(ValueError, match="Expected CBOR map"):
            VerdictRecord.from_bytes(cbor2.dumps([1, 2]))

    def test_missing_field(self):
        with pytest.raises(ValueError, match="Missing required field 1"):
            VerdictRecord.from_bytes(cbor2.dumps({0: RID}))

    def test_string_keys(self):
        with pytest.raises(ValueError, match="keys must be int"):
            VerdictRecord.from_bytes(cbor2.dumps({"0": RID, 0: RID, 1: True}))

    def test_short_request_id(self):
        with pytest.raises(ValueError, match="request id"):
            VerdictRecord.from_bytes(cbor2.dumps({0: b"\x00", 1: True}))

    def test_unknown_error_kind(self):
        with pytest.raises(ValueError):
            VerdictRecord.from_bytes(cbor2.dumps({0: RID, 1: False, 2: "Nope"}))

    @pytest.mark.parametrize("blob", [b"\xff", b"\x1f", b"", b"\x5f\x41\x00"])
    def test_invalid_cbor(self, blob):
        with pytest.raises(ValueError, match="corrupt CBOR"):
            VerdictRecord.from_bytes(blob)


class TestSessionRecord:
    def pairs(self):
        return [(g1_point(2), g2_point(3)), (g1_point(5), g2_point(7))]

    def test_round_trip_mid_loop(self):
        loop = MillerLoop(self.pairs())
        loop.step(9)
        record = SessionRecord(RID, loop)
        restored = SessionRecord.from_bytes(record.to_bytes())
        assert restored.request_id == RID
        assert restored.loop.cursor == 9
        assert restored.loop.accumulator == loop.accumulator
        for a, b in zip(restored.loop.points, loop.points):
            assert same_point(a, b)
        for (p1, q1), (p2, q2) in zip(restored.loop.pairs, loop.pairs):
            assert same_point(p1, p2)
            assert same_point(q1, q2)

    def test_layout(self):
        loop = MillerLoop(self.pairs())
        m = cbor2.loads(SessionRecord(RID, loop).to_bytes())
        assert m[0] == RID
        assert m[1] == 0
        assert len(m[2]) == 384
        assert len(m[3]) == 2
        assert [len(m[3][0][k]) for k in (0, 1, 2)] == [64, 128, 128]

    def test_restored_loop_continues(self):
        loop = MillerLoop(self.pairs())
        loop.step(30)
        restored = SessionRecord.from_bytes(SessionRecord(RID, loop).to_bytes()).loop
        loop.step(100)
        restored.step(100)
        assert restored.finish() == loop.finish()

    def test_corrupt_accumulator(self):
        loop = MillerLoop(self.pairs())
        m = cbor2.loads(SessionRecord(RID, loop).to_bytes())
        m[2] = b"\x00" * 10
        with pytest.raises(ValueError, match="corrupt session"):
            SessionRecord.from_bytes(cbor2.dumps(m, canonical=True))

    def test_compressed_points_are_refused(self):
        loop = MillerLoop(self.pairs())
        m = cbor2.loads(SessionRecord(RID, loop).to_bytes())
        m[3][0][0] = m[3][0][0][:32]
        with pytest.raises(ValueError, match="uncompressed"):
            SessionRecord.from_bytes(cbor2.dumps(m, canonical=True))

    def finished_loop(self):
        loop = MillerLoop(self.pairs())
        loop.step(LOOP_STEPS)
        return loop

    def test_exponentiation_round_trip(self):
        loop = self.finished_loop()
        exponentiation = FinalExponentiation(loop.finish())
        exponentiation.step(20)
        restored = SessionRecord.from_bytes(SessionRecord(RID, loop, exponentiation).to_bytes())
        assert restored.exponentiation.cursor == 20
        assert restored.exponentiation.live() == exponentiation.live()
        restored.exponentiation.step(EXP_STEPS)
        exponentiation.step(EXP_STEPS)
        assert restored.exponentiation.result == exponentiation.result

    def test_only_live_registers_are_stored(self):
        loop = self.finished_loop()
        exponentiation = FinalExponentiation(loop.finish())
        exponentiation.step(20)
        m = cbor2.loads(SessionRecord(RID, loop, exponentiation).to_bytes())
        stored = {REGISTERS[i] for i in m[4][1]}
        assert stored == set(exponentiation.live())
        assert all(len(v) == 384 for v in m[4][1].values())

    def test_no_exponentiation_field_while_looping(self):
        m = cbor2.loads(SessionRecord(RID, MillerLoop(self.pairs())).to_bytes())
        assert 4 not in m
        assert SessionRecord.from_bytes(cbor2.dumps(m, canonical=True)).exponentiation is None

    def test_exponentiation_before_loop_is_done(self):
        loop = self.finished_loop()
        m = cbor2.loads(SessionRecord(RID, loop, FinalExponentiation(loop.finish())).to_bytes())
        m[1] = 3
        with pytest.raises(ValueError, match="before the Miller loop finished"):
            SessionRecord.from_bytes(cbor2.dumps(m, canonical=True))

    def test_bad_register_index(self):
        loop = self.finished_loop()
        m = cbor2.loads(SessionRecord(RID, loop, FinalExponentiation(loop.finish())).to_bytes())
        m[4][1] = {len(REGISTERS): m[4][1][0]}
        with pytest.raises(ValueError, match="corrupt session"):
            SessionRecord.from_bytes(cbor2.dumps(m, canonical=True))

    def test_missing_register(self):
        loop = self.finished_loop()
        m = cbor2.loads(SessionRecord(RID, loop, FinalExponentiation(loop.finish())).to_bytes())
        m[4][1] = {}
        with pytest.raises(ValueError, match="missing registers"):
            SessionRecord.from_bytes(cbor2.dumps(m, canonical=True))


if __name__ == "__main__":
    pytest.main()
