# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only

# tests/test_pairing.py

import pytest
from py_ecc import optimized_bn128 as reference

from groth16_verifier.budget import COSTS, ComputeBudgetExceeded, ComputeMeter
from groth16_verifier.constants import ATE_LOOP_COUNT, BN_X, CURVE_ORDER
from groth16_verifier.curve import g1_identity, g1_point, g2_identity, g2_point, invert
from groth16_verifier.fields import FQ12
from groth16_verifier.pairing import (
    EXP_STEPS,
    FINAL_EXP_COST,
    LOOP_DIGITS,
    LOOP_STEPS,
    FinalExponentiation,
    MillerLoop,
    _signed_digits,
    check,
    final_exponentiate,
    gt_identity,
    multi_miller_loop,
    live_registers,
    pairing,
)

# the hard part chain yields the reduced pairing raised to this fixed power
HARD_PART_MULTIPLE = 2 * BN_X * (6 * BN_X**2 + 3 * BN_X + 1)


def reference_product_is_one(pairs) -> bool:
    f = FQ12.one()
    for p, q in pairs:
        f = f * reference.pairing(q, p)
    return f == FQ12.one()


class TestSignedDigits:
    def test_digits_reconstruct_the_loop_count(self):
        value = 0
        for d in LOOP_DIGITS:
            value = 2 * value + d
        assert value == ATE_LOOP_COUNT

    def test_digits_are_non_adjacent(self):
        for left, right in zip(LOOP_DIGITS, LOOP_DIGITS[1:]):
            assert left == 0 or right == 0

    def test_small_value(self):
        # 7 = 8 - 1
        assert _signed_digits(7) == [1, 0, 0, -1]

    def test_steps_exclude_leading_digit(self):
        assert LOOP_DIGITS[0] == 1
        assert LOOP_STEPS == len(LOOP_DIGITS) - 1


class TestMillerLoop:
    def test_miller_value_matches_reference_after_exponentiation(self):
        p = g1_point(3)
        q = g2_point(5)
        f = multi_miller_loop([(p, q)])
        assert reference.final_exponentiate(f) == reference.pairing(q, p)

    def test_stepping_in_chunks_matches_one_pass(self):
        pairs = [(g1_point(2), g2_point(3)), (g1_point(4), g2_point(5))]
        whole = multi_miller_loop(pairs)
        loop = MillerLoop(pairs)
        while not loop.done:
            loop.step(7)
        assert loop.finish() == whole

    def test_resume_from_exported_state(self):
        pairs = [(g1_point(2), g2_point(3))]
        first = MillerLoop(pairs)
        first.step(20)
        resumed = MillerLoop(
            first.pairs,
            accumulator=first.accumulator,
            cursor=first.cursor,
            points=first.points,
        )
        resumed.step(LOOP_STEPS)
        assert resumed.finish() == multi_miller_loop(pairs)

    def test_step_reports_digits_taken(self):
        loop = MillerLoop([(g1_point(1), g2_point(1))])
        assert loop.step(LOOP_STEPS - 2) == LOOP_STEPS - 2
        assert loop.step(10) == 2
        assert loop.step(10) == 0
        assert loop.done

    def test_finish_before_done(self):
        loop = MillerLoop([(g1_point(1), g2_point(1))])
        with pytest.raises(ValueError, match="remaining"):
            loop.finish()

    def test_cursor_out_of_range(self):
        with pytest.raises(ValueError):
            MillerLoop([], cursor=LOOP_STEPS + 1)

    def test_identity_pairs_are_dropped(self):
        loop = MillerLoop([(g1_identity, g2_point(1)), (g1_point(1), g2_identity)])
        assert loop.pairs == []
        loop.step(LOOP_STEPS)
        assert loop.finish() == FQ12.one()

    def test_wrong_number_of_points(self):
        with pytest.raises(ValueError, match="intermediate points"):
            MillerLoop([(g1_point(1), g2_point(1))], points=[])

    def test_meter_is_charged_per_pair(self):
        meter = ComputeMeter(10**9)
        loop = MillerLoop([(g1_point(1), g2_point(1)), (g1_point(2), g2_point(2))])
        loop.step(3, meter)
        assert meter.consumed == 3 * 2 * COSTS["miller_step"]


class TestFinalExponentiation:
    def test_relation_to_reference(self):
        f = multi_miller_loop([(g1_point(7), g2_point(11))])
        expected = reference.final_exponentiate(f) ** HARD_PART_MULTIPLE
        assert final_exponentiate(f) == expected

    def test_result_has_order_r(self):
        e = pairing(g1_point(1), g2_point(1))
        assert e ** CURVE_ORDER == gt_identity

    def test_meter_is_charged_in_full(self):
        f = multi_miller_loop([(g1_point(3), g2_point(5))])
        meter = ComputeMeter(FINAL_EXP_COST)
        final_exponentiate(f, meter)
        assert meter.remaining == 0


class TestStagedExponentiation:
    @pytest.fixture(scope="class")
    def miller_value(self):
        return multi_miller_loop([(g1_point(7), g2_point(11))])

    def test_stepwise_matches_one_shot(self, miller_value):
        staged = FinalExponentiation(miller_value)
        while not staged.done:
            assert staged.step(5) <= 5
        assert staged.result == final_exponentiate(miller_value)

    def test_small_meters_add_up(self, miller_value):
        # each invocation gets a budget well below the whole exponentiation
        staged = FinalExponentiation(miller_value)
        spent = 0
        while not staged.done:
            meter = ComputeMeter(FINAL_EXP_COST // 3)
            staged.step(4, meter)
            spent += meter.consumed
        assert spent == FINAL_EXP_COST
        assert staged.result == final_exponentiate(miller_value)

    def test_one_invocation_cannot_do_it_all(self, miller_value):
        with pytest.raises(ComputeBudgetExceeded):
            FinalExponentiation(miller_value).step(EXP_STEPS, ComputeMeter(FINAL_EXP_COST - 1))

    def test_resume_from_live_registers(self, miller_value):
        staged = FinalExponentiation(miller_value)
        staged.step(17)
        resumed = FinalExponentiation(cursor=17, registers=staged.live())
        resumed.step(EXP_STEPS)
        assert resumed.result == final_exponentiate(miller_value)

    def test_missing_register(self, miller_value):
        staged = FinalExponentiation(miller_value)
        staged.step(12)
        live = staged.live()
        live.pop(sorted(live)[0])
        with pytest.raises(ValueError, match="missing registers"):
            FinalExponentiation(cursor=12, registers=live)

    def test_unknown_register(self):
        with pytest.raises(ValueError, match="unknown registers"):
            FinalExponentiation(registers={"f": FQ12.one(), "z": FQ12.one()})

    def test_needs_an_input(self):
        with pytest.raises(ValueError):
            FinalExponentiation()

    def test_result_before_done(self, miller_value):
        with pytest.raises(ValueError, match="remaining"):
            FinalExponentiation(miller_value).result

    def test_live_registers_at_the_ends(self):
        assert live_registers(0) == {"f"}
        assert live_registers(EXP_STEPS) == {"out"}

    def test_cursor_out_of_range(self):
        with pytest.raises(ValueError):
            FinalExponentiation(FQ12.one(), cursor=EXP_STEPS + 1)


class TestPairing:
    def test_non_degenerate(self):
        assert pairing(g1_point(1), g2_point(1)) != gt_identity

    def test_bilinear(self):
        e = pairing(g1_point(1), g2_point(1))
        assert pairing(g1_point(6), g2_point(1)) == e**6
        assert pairing(g1_point(2), g2_point(3)) == e**6
        assert pairing(g1_point(1), g2_point(6)) == e**6

    def test_identity_argument(self):
        assert pairing(g1_identity, g2_point(3)) == gt_identity
        assert pairing(g1_point(3), g2_identity) == gt_identity


class TestCheck:
    def test_single_pair_agrees_with_reference(self):
        pairs = [(g1_point(2), g2_point(3))]
        assert check(pairs) is False
        assert reference_product_is_one(pairs) is False

    def test_cancelling_pairs(self):
        pairs = [(g1_point(6), g2_point(1)), (invert(g1_point(2)), g2_point(3))]
        assert check(pairs) is True
        assert reference_product_is_one(pairs) is True

    def test_non_cancelling_pairs(self):
        pairs = [(g1_point(6), g2_point(1)), (invert(g1_point(2)), g2_point(4))]
        assert check(pairs) is False
        assert reference_product_is_one(pairs) is False

    def test_empty_product_is_one(self):
        assert check([]) is True

    def test_fixed_miller_value(self):
        fixed = multi_miller_loop([(invert(g1_point(2)), g2_point(3))])
        assert check([(g1_point(6), g2_point(1))], fixed=fixed) is True
        assert check([(g1_point(5), g2_point(1))], fixed=fixed) is False

    def test_budget_exhaustion_propagates(self):
        meter = ComputeMeter(COSTS["miller_step"] * 10)
        with pytest.raises(ComputeBudgetExceeded):
            check([(g1_point(1), g2_point(1))], meter)


if __name__ == "__main__":
    pytest.main()
