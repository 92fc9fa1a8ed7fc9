"""
Tests for the control-flow verifier.
"""

import pytest

from tilescript.core import steps as st
from tilescript.core.flow import FlowError, ensure_valid, verify_program
from tilescript.core.steps import Step, StepKind


class TestVerifyProgram:
    """Tests for verify_program."""

    def test_halting_target_is_valid(self):
        steps = [
            st.check_variable("v", "1", fail="off"),
            st.tile_image("tile", "first"),
            st.anchor("off", stop=True),
            st.tile_image("tile", "last"),
        ]
        report = verify_program(steps)
        assert report.valid
        assert report.errors == []

    def test_stop_between_check_and_target_is_valid(self):
        steps = [
            st.check_variable("v", "1", fail="next"),
            st.chat_message("matched"),
            st.stop(),
            st.anchor("next"),
            st.chat_message("other"),
        ]
        assert verify_program(steps).valid

    def test_fallthrough_into_sibling_is_an_error(self):
        steps = [
            st.check_variable("v", "1", fail="next"),
            st.chat_message("matched"),
            st.anchor("next"),
            st.chat_message("other"),
        ]
        report = verify_program(steps)
        assert not report.valid
        assert "falls through" in report.errors[0]

    def test_missing_anchor(self):
        report = verify_program([st.check_variable("v", "1", fail="nowhere")])
        assert not report.valid
        assert "missing anchor" in report.errors[0]

    def test_backward_jump(self):
        steps = [st.anchor("top"), st.check_variable("v", "1", fail="top")]
        report = verify_program(steps)
        assert not report.valid
        assert "backwards" in report.errors[0]

    def test_duplicate_anchor(self):
        report = verify_program([st.anchor("a"), st.anchor("a")])
        assert not report.valid

    def test_duplicate_step_id(self):
        step = st.stop()
        copy = Step(kind=StepKind.STOP, data={}, id=step.id)
        report = verify_program([step, copy])
        assert not report.valid
        assert "Duplicate step id" in report.errors[0]

    def test_filter_request_targets_must_exist(self):
        steps = [
            st.filter_request("ok", "bad", "done"),
            st.anchor("bad", stop=True),
            st.anchor("ok", stop=True),
        ]
        report = verify_program(steps)
        assert not report.valid
        assert "'done'" in report.errors[0]

    def test_unreferenced_halting_anchor_warns(self):
        steps = [st.anchor("dead", stop=True), st.chat_message("never")]
        report = verify_program(steps)
        assert report.valid
        assert len(report.warnings) == 1

    def test_empty_program_is_valid(self):
        assert verify_program([]).valid


class TestEnsureValid:
    """Tests for ensure_valid."""

    def test_raises_with_report(self):
        with pytest.raises(FlowError) as exc:
            ensure_valid([st.check_variable("v", "1", fail="nowhere")])
        assert not exc.value.report.valid

    def test_returns_report(self):
        assert ensure_valid([st.stop()]).valid
