"""
Tests for the invocation engine.

These tests verify:
1. Steps run in a fixed order and cannot be skipped or repeated
2. Any failure moves the invocation to FAILED with no output
3. The gate returns either an output or an auditable Failure, never both
"""

from dataclasses import replace

import pytest

from chainproof.circuits.tokens import MINIMUM_USDC_BALANCE, TOKEN_HOLDER
from chainproof.domain import (
    Batch,
    CapacityMismatch,
    FailureRule,
    Overflow,
    ParameterError,
    PatternMismatch,
    ThresholdUnmet,
    Var,
)
from chainproof.engine import (
    Invocation,
    InvocationState,
    InvocationStateError,
    evaluate_circuit,
    run_circuit,
)
from chainproof.evidence import create_storage_slot
from chainproof.keys import mapping_slot, to_address
from chainproof.output import decode_output, output_uint


USDC = "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48"
HOLDER = to_address("0x28C6c06298d514Db089934071355E5743bf21d60")
OTHER = to_address("0x1111111111111111111111111111111111111111")
BLOCK = 18_000_000


def holder_batch(balance: int = 150_000000, contract: str = USDC, holder: int = HOLDER) -> Batch:
    """Helper: one USDC balance slot."""
    return Batch.of(storage_slots=[
        create_storage_slot(contract, mapping_slot(9, holder), balance, BLOCK),
    ])


# =============================================================================
# HAPPY PATH
# =============================================================================

class TestRunCircuit:
    """Test a complete invocation."""

    def test_token_holder(self):
        """150 USDC against a 100 USDC threshold is accepted."""
        output = run_circuit(TOKEN_HOLDER, holder_batch(), {"holder": HOLDER})

        assert output.circuit_name == "token_holder"
        assert output.values == (HOLDER, 150_000000, BLOCK)
        assert len(output.buffer) == 59
        assert decode_output(output.buffer, TOKEN_HOLDER.output_widths) == [HOLDER, 150_000000, BLOCK]
        assert output.computed == {"balance": 150_000000, "block": BLOCK}
        assert output.hex() == "0x" + output.buffer.hex()

    def test_exact_threshold(self):
        output = run_circuit(TOKEN_HOLDER, holder_batch(MINIMUM_USDC_BALANCE), {"holder": HOLDER})
        assert output.values[1] == MINIMUM_USDC_BALANCE

    def test_deterministic(self):
        first = run_circuit(TOKEN_HOLDER, holder_batch(), {"holder": HOLDER})
        second = run_circuit(TOKEN_HOLDER, holder_batch(), {"holder": HOLDER})
        assert first.buffer == second.buffer


# =============================================================================
# FAILURE KINDS
# =============================================================================

class TestFailures:
    """Each failure kind propagates as its own exception type."""

    def test_below_threshold(self):
        with pytest.raises(ThresholdUnmet):
            run_circuit(TOKEN_HOLDER, holder_batch(50_000000), {"holder": HOLDER})

    def test_wrong_contract(self):
        batch = holder_batch(contract="0x8AC76a51cc950d9822D68b83fE1Ad97B32Cd580d")
        with pytest.raises(PatternMismatch, match="contract"):
            run_circuit(TOKEN_HOLDER, batch, {"holder": HOLDER})

    def test_someone_elses_balance(self):
        """A rich account's slot cannot stand in for the holder's."""
        batch = holder_batch(balance=10 ** 12, holder=OTHER)
        with pytest.raises(PatternMismatch, match="slot"):
            run_circuit(TOKEN_HOLDER, batch, {"holder": HOLDER})

    def test_empty_batch(self):
        with pytest.raises(CapacityMismatch):
            run_circuit(TOKEN_HOLDER, Batch(), {"holder": HOLDER})

    def test_missing_parameter(self):
        with pytest.raises(ParameterError):
            run_circuit(TOKEN_HOLDER, holder_batch(), {})


# =============================================================================
# STATE MACHINE
# =============================================================================

class TestInvocationState:
    """Test the per-invocation state machine."""

    def test_linear_progression(self):
        invocation = Invocation(TOKEN_HOLDER, {"holder": HOLDER})
        assert invocation.state == InvocationState.UNINITIALIZED

        invocation.load(holder_batch())
        assert invocation.state == InvocationState.BATCH_LOADED
        invocation.validate()
        assert invocation.state == InvocationState.VALIDATED
        invocation.aggregate()
        assert invocation.state == InvocationState.AGGREGATED
        invocation.assert_thresholds()
        assert invocation.state == InvocationState.ASSERTED
        invocation.encode()
        assert invocation.state == InvocationState.OUTPUT_ENCODED

        output = invocation.finish()
        assert invocation.state == InvocationState.DONE
        assert output.values[0] == HOLDER

    def test_cannot_skip_validation(self):
        invocation = Invocation(TOKEN_HOLDER, {"holder": HOLDER})
        invocation.load(holder_batch())
        with pytest.raises(InvocationStateError, match="from batch_loaded"):
            invocation.aggregate()
        assert invocation.state == InvocationState.BATCH_LOADED

    def test_failure_is_terminal(self):
        invocation = Invocation(TOKEN_HOLDER, {"holder": HOLDER})
        invocation.load(holder_batch(balance=1))
        invocation.validate()
        invocation.aggregate()
        with pytest.raises(ThresholdUnmet):
            invocation.assert_thresholds()

        assert invocation.state == InvocationState.FAILED
        assert invocation.output is None
        with pytest.raises(InvocationStateError):
            invocation.encode()

    def test_parameter_failure_at_load(self):
        invocation = Invocation(TOKEN_HOLDER, {"holder": 1 << 160})
        with pytest.raises(ParameterError):
            invocation.load(holder_batch())
        assert invocation.state == InvocationState.FAILED

    def test_pattern_failure_at_validate(self):
        invocation = Invocation(TOKEN_HOLDER, {"holder": HOLDER})
        invocation.load(holder_batch(holder=OTHER))
        with pytest.raises(PatternMismatch):
            invocation.validate()

        assert invocation.state == InvocationState.FAILED
        assert invocation.output is None
        with pytest.raises(InvocationStateError, match="from failed"):
            invocation.aggregate()

    def test_output_overflow_at_encode(self):
        """A balance wider than its output slot fails encoding, not truncates."""
        narrow = replace(TOKEN_HOLDER, outputs=(output_uint(8, Var("balance"), "balance"),))
        invocation = Invocation(narrow, {"holder": HOLDER})
        invocation.load(holder_batch())
        invocation.validate()
        invocation.aggregate()
        invocation.assert_thresholds()
        with pytest.raises(Overflow, match="uint8"):
            invocation.encode()

        assert invocation.state == InvocationState.FAILED
        assert invocation.output is None
        with pytest.raises(InvocationStateError):
            invocation.finish()

    def test_non_batch_rejected_at_load(self):
        invocation = Invocation(TOKEN_HOLDER, {"holder": HOLDER})
        with pytest.raises(TypeError, match="Batch"):
            invocation.load(object())

        assert invocation.state == InvocationState.FAILED
        with pytest.raises(InvocationStateError):
            invocation.validate()

    def test_any_exception_is_terminal(self):
        """Errors outside the failure taxonomy still end the invocation."""
        invocation = Invocation(TOKEN_HOLDER, {"holder": HOLDER})
        invocation.load(holder_batch())

        def broken():
            raise RuntimeError("unexpected")

        with pytest.raises(RuntimeError):
            invocation._advance(InvocationState.BATCH_LOADED, InvocationState.VALIDATED, broken)
        assert invocation.state == InvocationState.FAILED
        with pytest.raises(InvocationStateError):
            invocation.validate()

    def test_done_cannot_rerun(self):
        invocation = Invocation(TOKEN_HOLDER, {"holder": HOLDER})
        invocation.run(holder_batch())
        with pytest.raises(InvocationStateError):
            invocation.run(holder_batch())


# =============================================================================
# GATE
# =============================================================================

class TestEvaluateCircuit:
    """Test the binary accept/reject gate."""

    def test_accepted(self):
        result = evaluate_circuit(TOKEN_HOLDER, holder_batch(), {"holder": HOLDER})
        assert result.accepted
        assert result.output.values[1] == 150_000000
        assert result.failure is None

    def test_rejected_carries_failure(self):
        result = evaluate_circuit(TOKEN_HOLDER, holder_batch(50_000000), {"holder": HOLDER})
        assert not result.accepted
        assert result.output is None
        assert result.failure.circuit_name == "token_holder"
        assert result.failure.rule == FailureRule.THRESHOLD_UNMET
        assert "below threshold" in result.failure.reason

    def test_rejects_bad_evidence(self):
        batch = holder_batch(holder=OTHER)
        result = evaluate_circuit(TOKEN_HOLDER, batch, {"holder": HOLDER})
        assert not result.accepted
        assert result.failure.rule == FailureRule.PATTERN_MISMATCH
