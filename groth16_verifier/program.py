# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only

# program.py

"""
The on-chain verifier program.

Instructions are `[discriminant: u8][body]`:

    0 VERIFY    proof(128) || count(u32) || inputs(32 * count)
    1 BEGIN     proof(128) || count(u32) || inputs(32 * count)
    2 STEP      request_id(28) || steps(u8)
    3 FINALIZE  request_id(28)
    4 EXPONENTIATE  request_id(28) || steps(u8)

VERIFY runs a whole verification in one invocation. BEGIN, STEP, EXPONENTIATE
and FINALIZE spread the same work over several invocations, each with its own
compute budget, by persisting the Miller loop and then the final
exponentiation between them. EXPONENTIATE is optional: FINALIZE runs whatever
part of the exponentiation is still outstanding.

Every finished request leaves a verdict record keyed by its request id, and a
request id with a verdict or an open session is never processed again.
"""

from collections.abc import Callable
from dataclasses import replace
from enum import IntEnum

from groth16_verifier.budget import ComputeMeter, charge
from groth16_verifier.constants import COUNT_SIZE, FIELD_SIZE, PROOF_SIZE, REQUEST_ID_SIZE
from groth16_verifier.errors import DecodeError, ErrorKind
from groth16_verifier.hashing import request_id
from groth16_verifier.pairing import (
    EXP_STEPS,
    LOOP_STEPS,
    FinalExponentiation,
    MillerLoop,
    gt_identity,
)
from groth16_verifier.records import SessionRecord, VerdictRecord, session_key, verdict_key
from groth16_verifier.verifier import Stage, VerificationOutcome, VerifierCore

State = dict[str, bytes]
Log = Callable[[str], None]


class Instruction(IntEnum):
    VERIFY = 0
    BEGIN = 1
    STEP = 2
    FINALIZE = 3
    EXPONENTIATE = 4


class ProgramErrorCode(IntEnum):
    UNKNOWN_INSTRUCTION = 100
    MALFORMED_INSTRUCTION = 101
    ALREADY_PROCESSED = 102
    UNKNOWN_SESSION = 103
    SESSION_INCOMPLETE = 104
    CORRUPT_STATE = 105


class ProgramError(Exception):
    """
    An instruction-level failure. The host discards every state change made
    by an instruction that raises this.

    Attributes:
        code: The numeric error code.
        name: The error name, e.g. "AlreadyProcessed".
    """

    NAMES = {
        ProgramErrorCode.UNKNOWN_INSTRUCTION: "UnknownInstruction",
        ProgramErrorCode.MALFORMED_INSTRUCTION: "MalformedInstruction",
        ProgramErrorCode.ALREADY_PROCESSED: "AlreadyProcessed",
        ProgramErrorCode.UNKNOWN_SESSION: "UnknownSession",
        ProgramErrorCode.SESSION_INCOMPLETE: "SessionIncomplete",
        ProgramErrorCode.CORRUPT_STATE: "CorruptState",
    }

    def __init__(self, code: ProgramErrorCode, message: str) -> None:
        super().__init__(f"{self.NAMES[code]}: {message}")
        self.code = code
        self.name = self.NAMES[code]


def parse_request(body: bytes) -> tuple[bytes, bytes]:
    """
    Split a VERIFY or BEGIN body into proof bytes and public input bytes.

    Raises:
        ProgramError: MalformedInstruction if the body is truncated or its
            input count disagrees with its length.
    """
    header = PROOF_SIZE + COUNT_SIZE
    if len(body) < header:
        raise ProgramError(
            ProgramErrorCode.MALFORMED_INSTRUCTION,
            f"request body must be at least {header} bytes, got {len(body)}",
        )
    proof_bytes = body[:PROOF_SIZE]
    count = int.from_bytes(body[PROOF_SIZE:header], "big")
    inputs_bytes = body[header:]
    if len(inputs_bytes) != count * FIELD_SIZE:
        raise ProgramError(
            ProgramErrorCode.MALFORMED_INSTRUCTION,
            f"{count} public inputs need {count * FIELD_SIZE} bytes, got {len(inputs_bytes)}",
        )
    return proof_bytes, inputs_bytes


def _parse_request_id(body: bytes, extra: int = 0) -> bytes:
    if len(body) != REQUEST_ID_SIZE + extra:
        raise ProgramError(
            ProgramErrorCode.MALFORMED_INSTRUCTION,
            f"expected {REQUEST_ID_SIZE + extra} byte body, got {len(body)}",
        )
    return body[:REQUEST_ID_SIZE]


class VerifierProgram:
    """
    Dispatches instructions against a verifier provisioned with one key.

    Args:
        vk_bytes: The encoded verifying key.
    """

    def __init__(self, vk_bytes: bytes) -> None:
        self.core = VerifierCore.from_bytes(vk_bytes)

    def process_instruction(
        self, data: bytes, state: State, meter: ComputeMeter, log: Log
    ) -> VerificationOutcome | None:
        """
        Execute one instruction.

        Args:
            data: The instruction bytes.
            state: The account store; writes land here.
            meter: The invocation's compute meter.
            log: Diagnostic sink.

        Returns:
            VerificationOutcome | None: The outcome when the instruction
            finished a request, None for BEGIN, STEP and EXPONENTIATE.

        Raises:
            ProgramError: On an instruction-level failure.
            ComputeBudgetExceeded: When the meter runs dry.
        """
        if not data:
            raise ProgramError(ProgramErrorCode.MALFORMED_INSTRUCTION, "empty instruction")
        try:
            instruction = Instruction(data[0])
        except ValueError:
            raise ProgramError(
                ProgramErrorCode.UNKNOWN_INSTRUCTION, f"unknown discriminant {data[0]}"
            ) from None
        body = data[1:]
        log(f"Instruction: {instruction.name.capitalize()}")

        if instruction == Instruction.VERIFY:
            return self.verify(body, state, meter, log)
        if instruction == Instruction.BEGIN:
            return self.begin(body, state, meter, log)
        if instruction == Instruction.STEP:
            return self.step(body, state, meter, log)
        if instruction == Instruction.EXPONENTIATE:
            return self.exponentiate(body, state, meter, log)
        return self.finalize(body, state, meter, log)

    def _ensure_fresh(self, rid: bytes, state: State) -> None:
        if verdict_key(rid) in state or session_key(rid) in state:
            raise ProgramError(
                ProgramErrorCode.ALREADY_PROCESSED, f"request {rid.hex()} already seen"
            )

    def _load_session(self, rid: bytes, state: State) -> SessionRecord:
        data = state.get(session_key(rid))
        if data is None:
            raise ProgramError(
                ProgramErrorCode.UNKNOWN_SESSION, f"no open session for {rid.hex()}"
            )
        try:
            return SessionRecord.from_bytes(data)
        except ValueError as e:
            raise ProgramError(ProgramErrorCode.CORRUPT_STATE, str(e)) from e

    def _record(
        self, rid: bytes, outcome: VerificationOutcome, state: State, meter: ComputeMeter, log: Log
    ) -> VerificationOutcome:
        charge(meter, "state_write")
        state[verdict_key(rid)] = VerdictRecord.from_outcome(rid, outcome).to_bytes()
        if outcome.accepted:
            log(f"request {rid.hex()} accepted")
        else:
            log(f"request {rid.hex()} rejected: {outcome.error.value}")
        return outcome

    def verify(self, body: bytes, state: State, meter: ComputeMeter, log: Log) -> VerificationOutcome:
        proof_bytes, inputs_bytes = parse_request(body)
        rid = request_id(proof_bytes, inputs_bytes)
        self._ensure_fresh(rid, state)
        outcome = self.core.verify(proof_bytes, inputs_bytes, meter)
        return self._record(rid, outcome, state, meter, log)

    def begin(
        self, body: bytes, state: State, meter: ComputeMeter, log: Log
    ) -> VerificationOutcome | None:
        """Decode and validate a request, then open a session for its Miller loop."""
        proof_bytes, inputs_bytes = parse_request(body)
        rid = request_id(proof_bytes, inputs_bytes)
        self._ensure_fresh(rid, state)
        try:
            pairs = self.core.prepare(proof_bytes, inputs_bytes, meter)
        except DecodeError as e:
            return self._record(rid, VerificationOutcome.reject(e.kind), state, meter, log)

        self._save(SessionRecord(request_id=rid, loop=MillerLoop(pairs)), state, meter)
        log(f"session {rid.hex()} opened, {LOOP_STEPS} steps")
        return None

    def _parse_steps(self, body: bytes) -> tuple[bytes, int]:
        rid = _parse_request_id(body, extra=1)
        steps = body[REQUEST_ID_SIZE]
        if steps < 1:
            raise ProgramError(ProgramErrorCode.MALFORMED_INSTRUCTION, "steps must be at least 1")
        return rid, steps

    def _save(self, session: SessionRecord, state: State, meter: ComputeMeter) -> None:
        charge(meter, "state_write")
        state[session_key(session.request_id)] = session.to_bytes()

    def step(self, body: bytes, state: State, meter: ComputeMeter, log: Log) -> None:
        rid, steps = self._parse_steps(body)
        session = self._load_session(rid, state)
        taken = session.loop.step(steps, meter)
        self._save(session, state, meter)
        log(f"session {rid.hex()} at step {session.loop.cursor}/{LOOP_STEPS} (+{taken})")

    def _exponentiation(self, session: SessionRecord, meter: ComputeMeter) -> FinalExponentiation:
        # the first call applies the correction lines and the cached (alpha, beta) value
        if not session.loop.done:
            raise ProgramError(
                ProgramErrorCode.SESSION_INCOMPLETE,
                f"{LOOP_STEPS - session.loop.cursor} steps remaining",
            )
        if session.exponentiation is not None:
            return session.exponentiation
        return FinalExponentiation(session.loop.finish(meter, fixed=self.core.alpha_beta))

    def exponentiate(self, body: bytes, state: State, meter: ComputeMeter, log: Log) -> None:
        """Advance the final exponentiation of a fully stepped session."""
        rid, steps = self._parse_steps(body)
        session = self._load_session(rid, state)
        exponentiation = self._exponentiation(session, meter)
        taken = exponentiation.step(steps, meter)
        self._save(replace(session, exponentiation=exponentiation), state, meter)
        log(
            f"session {rid.hex()} at exponentiation step "
            f"{exponentiation.cursor}/{EXP_STEPS} (+{taken})"
        )

    def finalize(
        self, body: bytes, state: State, meter: ComputeMeter, log: Log
    ) -> VerificationOutcome:
        """Run what is left of the final exponentiation and close the session."""
        rid = _parse_request_id(body)
        session = self._load_session(rid, state)
        exponentiation = self._exponentiation(session, meter)
        exponentiation.step(EXP_STEPS, meter)
        if exponentiation.result == gt_identity:
            outcome = VerificationOutcome.accept()
        else:
            outcome = VerificationOutcome.reject(ErrorKind.PAIRING_MISMATCH, Stage.PAIRING_CHECK)
        del state[session_key(rid)]
        return self._record(rid, outcome, state, meter, log)
