"""
Tests for the check-state compiler.
"""

from tilescript.compilers.check_state import branch_anchors, compile_check_state
from tilescript.core.flow import verify_program
from tilescript.core.models import (
    BranchCondition,
    CheckStateConfig,
    ConditionOperator,
)
from tilescript.core.schemas import validate_steps
from tilescript.core.steps import StepKind
from tests.fixtures.configs import make_branch, make_check_state


class TestBranchAnchors:
    """Tests for branch anchor naming."""

    def test_sanitized_lowercase(self):
        assert branch_anchors([make_branch("Lever On!")]) == ["lever_on_"]

    def test_duplicates_and_reserved(self):
        branches = [make_branch("A b"), make_branch("a-b"), make_branch("End"), make_branch("")]
        assert branch_anchors(branches) == ["a_b", "a_b_2", "end_2", "branch_4"]


class TestCheckStateProgram:
    """Tests for the router program."""

    def test_zero_branches(self, empty_scene):
        """A router with no branches is a single broadcast."""
        compiled = compile_check_state(CheckStateConfig(name="Empty"), empty_scene)
        assert [s.kind for s in compiled.steps] == [StepKind.CHAT_MESSAGE]
        assert "No branches configured" in compiled.steps[0].data["text"]

    def test_two_branches(self, empty_scene):
        steps = compile_check_state(make_check_state(), empty_scene).steps

        assert [s.kind for s in steps] == [
            StepKind.ANCHOR,
            StepKind.CHECK_VARIABLE,
            StepKind.ACTIVATE,
            StepKind.TRIGGER,
            StepKind.CHANGE_DOOR,
            StepKind.CHAT_MESSAGE,
            StepKind.STOP,
            StepKind.ANCHOR,
            StepKind.CHECK_VARIABLE,
            StepKind.SHOW_HIDE,
            StepKind.CHAT_MESSAGE,
            StepKind.STOP,
            StepKind.ANCHOR,
            StepKind.CHAT_MESSAGE,
        ]
        assert steps[0].data["tag"] == "lever_on"
        assert steps[1].data["fail"] == "lever_off"
        assert steps[7].data["tag"] == "lever_off"
        assert steps[8].data["fail"] == "end"
        assert steps[12].data["tag"] == "end"
        assert "No branch conditions matched" in steps[13].data["text"]

    def test_condition_reads_owning_tile(self, empty_scene):
        check = compile_check_state(make_check_state(), empty_scene).steps[1]
        assert check.data["name"] == "lever_state"
        assert check.data["value"] == '"ON"'
        assert check.data["entity"] == {"id": "Scene.scene1.Tile.lever", "name": "Lever"}
        assert check.data["type"] == "all"

    def test_actions(self, empty_scene):
        steps = compile_check_state(make_check_state(), empty_scene).steps
        activate, trigger, door = steps[2], steps[3], steps[4]

        assert activate.data["entity"] == {"id": "Scene.scene1.Tile.gate", "name": "Gate"}
        assert activate.data["activate"] == "activate"
        assert trigger.data["entity"]["id"] == "Scene.scene1.Tile.gate"
        assert door.data["entity"] == {"id": "Scene.scene1.Wall.door1", "name": "Vault Door"}
        assert door.data["state"] == "OPEN"

    def test_conditions_share_fail_target(self, empty_scene):
        """Several conditions in one branch form an AND."""
        branch = make_branch("Both", conditions=[
            BranchCondition(variable_name="a", value="1", tile_id="t1"),
            BranchCondition(variable_name="b", value="2", tile_id="t2",
                            operator=ConditionOperator.GREATER_THAN),
        ])
        config = CheckStateConfig(name="And", branches=[branch, make_branch("Other")])
        steps = compile_check_state(config, empty_scene).steps
        checks = [s for s in steps if s.kind == StepKind.CHECK_VARIABLE]

        assert [c.data["fail"] for c in checks] == ["other", "other"]
        assert checks[1].data["type"] == "gt"
        assert checks[1].data["entity"]["id"] == "Scene.scene1.Tile.t2"

    def test_every_branch_is_terminated(self, empty_scene):
        steps = compile_check_state(make_check_state(), empty_scene).steps
        validate_steps(steps)
        report = verify_program(steps)
        assert report.valid, report.errors

    def test_tile_settings(self, empty_scene):
        compiled = compile_check_state(make_check_state(), empty_scene)
        assert compiled.tile["width"] == 200
        assert compiled.settings.trigger == ["dblclick"]
        assert compiled.tag == "EMVaultRouter"
