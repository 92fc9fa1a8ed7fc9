"""
Tests for the reset compiler.
"""

from tilescript.compilers.reset import compile_reset, encode_reset_value, restore_tile
from tilescript.core.models import ResetConfig, WallDoorState
from tilescript.core.steps import StepKind
from tests.fixtures.configs import make_reset, make_tile_state


class TestEncodeResetValue:
    """Tests for reset literals."""

    def test_literals(self):
        assert encode_reset_value(None) == "null"
        assert encode_reset_value("OFF") == '"OFF"'
        assert encode_reset_value(True) == "true"
        assert encode_reset_value(False) == "false"
        assert encode_reset_value(0) == "0"
        assert encode_reset_value(2.5) == "2.5"


class TestRestoreTile:
    """Tests for per-tile restoration policy."""

    def test_activate_only_tile(self, empty_scene):
        """A tile exposing only activation gets one activate step and nothing else."""
        state = make_tile_state(has_activate_action=True, active=False, has_files=True)
        steps = restore_tile(state, empty_scene)

        assert [s.kind for s in steps] == [StepKind.ACTIVATE]
        assert steps[0].data["activate"] == "deactivate"
        assert steps[0].data["entity"]["id"] == "Scene.scene1.Tile.t1"

    def test_plain_tile_gets_full_set(self, empty_scene):
        """A tile with no exposed behavior gets visibility, image and position."""
        state = make_tile_state(hidden=True, fileindex=2, has_files=True)
        steps = restore_tile(state, empty_scene)

        assert [s.kind for s in steps] == [
            StepKind.SHOW_HIDE,
            StepKind.TILE_IMAGE,
            StepKind.MOVE,
        ]
        assert steps[0].data["hidden"] == "hide"
        assert steps[1].data["select"] == "2"
        assert steps[2].data["x"] == "100"

    def test_plain_tile_without_files_skips_image(self, empty_scene):
        steps = restore_tile(make_tile_state(), empty_scene)
        assert StepKind.TILE_IMAGE not in [s.kind for s in steps]

    def test_rotation_only_when_rotated(self, empty_scene):
        steps = restore_tile(make_tile_state(has_movement_action=True, rotation=90), empty_scene)
        assert [s.kind for s in steps] == [StepKind.MOVE, StepKind.ROTATE]
        assert steps[1].data["rotation"] == "90"

    def test_doors_and_history(self, empty_scene):
        state = make_tile_state(
            has_show_hide_action=True,
            wall_door_states=[WallDoorState(entity_id="Scene.scene1.Wall.w1", state="CLOSED")],
            reset_trigger_history=True,
        )
        steps = restore_tile(state, empty_scene)
        assert [s.kind for s in steps] == [
            StepKind.SHOW_HIDE,
            StepKind.CHANGE_DOOR,
            StepKind.RESET_HISTORY,
        ]
        assert steps[1].data["state"] == "CLOSED"


class TestCompileReset:
    """Tests for the full reset program."""

    def test_variables_then_tiles_then_confirmation(self, empty_scene):
        config = make_reset(tiles_to_reset=[make_tile_state(has_activate_action=True)])
        steps = compile_reset(config, empty_scene).steps

        assert [s.kind for s in steps] == [
            StepKind.SET_VARIABLE,
            StepKind.SET_VARIABLE,
            StepKind.SET_VARIABLE,
            StepKind.ACTIVATE,
            StepKind.CHAT_MESSAGE,
        ]
        assert [s.data["value"] for s in steps[:3]] == ['"OFF"', "false", "0"]
        assert steps[-1].data["text"] == "Reset Room: Variables reset"
        assert steps[-1].data["whisper"] == "gm"

    def test_tile_is_two_grid_squares(self, empty_scene):
        compiled = compile_reset(make_reset(), empty_scene)
        assert compiled.tile["width"] == 200
        assert compiled.settings.trigger == ["dblclick"]

    def test_empty_reset(self, empty_scene):
        compiled = compile_reset(ResetConfig(), empty_scene)
        assert [s.kind for s in compiled.steps] == [StepKind.CHAT_MESSAGE]
        assert compiled.name == "Reset Tile"
