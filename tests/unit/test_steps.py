"""
Tests for the step builder.
"""

import pytest

from tilescript.core import steps as st
from tilescript.core.steps import Step, StepKind


class TestStep:
    """Tests for the Step record."""

    def test_wire_form(self):
        """to_dict yields action/data/id."""
        step = st.anchor("off", stop=True)
        wire = step.to_dict()

        assert wire["action"] == "anchor"
        assert wire["data"] == {"tag": "off", "stop": True}
        assert wire["id"] == step.id

    def test_ids_are_16_chars_and_fresh(self):
        """Every built step gets its own 16-character id."""
        a = st.stop()
        b = st.stop()
        assert len(a.id) == 16
        assert a.id != b.id

    def test_data_is_read_only(self):
        """Step data cannot be changed after build."""
        step = st.set_variable("x", "1")
        with pytest.raises(TypeError):
            step.data["value"] = "2"

    def test_data_detached_from_caller(self):
        """Mutating the dict a step was built from does not change the step."""
        data = {"tag": "a", "stop": False}
        step = st.build(StepKind.ANCHOR, data)
        data["tag"] = "b"
        assert step.data["tag"] == "a"

    def test_from_dict_roundtrip(self):
        """A wire step parses back to an equal step."""
        step = st.check_variable("door_state", '"ON"', fail="off")
        assert Step.from_dict(step.to_dict()) == step

    def test_from_dict_unknown_action(self):
        """Unknown wire actions are rejected."""
        with pytest.raises(ValueError):
            Step.from_dict({"action": "explode", "data": {}})

    def test_hashable_by_id(self):
        """Steps can be collected in sets despite their read-only data."""
        step = st.set_variable("x", "1")
        twin = Step.from_dict(step.to_dict())

        assert hash(step) == hash(twin)
        assert len({step, twin, st.stop()}) == 2

    def test_wire_names(self):
        """Roll-extension steps use the namespaced wire names."""
        assert StepKind.REQUEST_ROLL.value == "monks-tokenbar.requestroll"
        assert StepKind.FILTER_REQUEST.value == "monks-tokenbar.filterrequest"


class TestFlowProperties:
    """Tests for jump targets and halting."""

    def test_check_jump_target(self):
        assert st.check_variable("v", "1", fail="end").jump_targets == ["end"]

    def test_check_without_fail_has_no_target(self):
        assert st.check_variable("v", "1").jump_targets == []

    def test_filter_request_targets(self):
        step = st.filter_request(passed="ok", failed="bad", resume="done")
        assert step.jump_targets == ["ok", "bad", "done"]

    def test_halting(self):
        assert st.stop().halts
        assert st.anchor("a", stop=True).halts
        assert not st.anchor("a", stop=False).halts
        assert not st.chat_message("hi").halts


class TestHelpers:
    """Tests for helper defaults."""

    def test_set_variable_stringifies_booleans(self):
        step = st.set_variable("flag", True)
        assert step.data["value"] == "true"
        assert step.data["scope"] == "scene"

    def test_play_sound_defaults(self):
        data = st.play_sound("click.ogg").data
        assert data["volume"] == 1
        assert data["fade"] == 0.25
        assert data["audiofor"] == "everyone"

    def test_chat_message_whisper_defaults_empty(self):
        assert st.chat_message("hello").data["whisper"] == ""

    def test_move_token_defaults(self):
        data = st.move_token("Scene.s.Tile.t", 100, 200).data
        assert data["snap"] is True
        assert data["speed"] == 6
        assert data["x"] == "100"
        assert "position" not in data

    def test_tile_image_select_index(self):
        """Image index selections are stored as strings."""
        assert st.tile_image("tile", 2).data["select"] == "2"

    def test_check_variable_defaults_to_this_tile(self):
        data = st.check_variable("v", "1").data
        assert data["entity"] == {"id": "tile", "name": "This Tile"}
        assert data["type"] == "eq"

    def test_change_door_only_touches_state(self):
        data = st.change_door("Scene.s.Wall.w", "OPEN").data
        assert data["state"] == "OPEN"
        assert data["movement"] == "nothing"
        assert data["sight"] == "nothing"

    def test_request_roll_carries_options(self):
        data = st.request_roll("save:dex", 13, usetokens="all", continue_on="always").data
        assert data["dc"] == "13"
        assert data["usetokens"] == "all"
        assert data["continue"] == "always"
        assert data["entity"]["id"] == "token"
