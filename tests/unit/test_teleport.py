"""
Tests for the teleport compiler.
"""

from tilescript.compilers.common import PREVIOUS
from tilescript.compilers.teleport import RETURN_FLAG, compile_teleport
from tilescript.config import Settings
from tilescript.core.steps import StepKind
from tests.fixtures.configs import make_teleport


class TestTeleportProgram:
    """Tests for the teleport pad program."""

    def test_plain_teleport(self, empty_scene):
        compiled = compile_teleport(make_teleport(), empty_scene)
        sound, teleport = compiled.steps

        assert sound.kind == StepKind.PLAY_SOUND
        assert teleport.data["entity"]["id"] == "token"
        assert teleport.data["location"]["x"] == 300
        assert teleport.data["location"]["sceneId"] == "vault"
        assert compiled.settings.trigger == ["enter"]
        assert compiled.companions == []

    def test_save_moves_failing_tokens(self, empty_scene):
        compiled = compile_teleport(
            make_teleport(has_saving_throw=True, pause_game_on_trigger=True), empty_scene
        )
        kinds = [s.kind for s in compiled.steps]

        assert kinds == [
            StepKind.PLAY_SOUND,
            StepKind.PAUSE,
            StepKind.REQUEST_ROLL,
            StepKind.TELEPORT,
        ]
        assert compiled.steps[2].data["flavor"] == "Make a saving throw to resist teleportation!"
        assert compiled.steps[3].data["entity"] == PREVIOUS
        assert compiled.settings.allowpaused is True

    def test_save_needs_roll_extension(self, empty_scene):
        compiled = compile_teleport(
            make_teleport(has_saving_throw=True),
            empty_scene,
            settings=Settings(token_bar_enabled=False),
        )
        assert StepKind.REQUEST_ROLL not in [s.kind for s in compiled.steps]

    def test_delete_source(self, empty_scene):
        teleport = compile_teleport(make_teleport(delete_source_token=True), empty_scene).steps[-1]
        assert teleport.data["deletesource"] is True


class TestReturnTeleport:
    """Tests for the return pad companion."""

    def test_return_pad(self, empty_scene):
        compiled = compile_teleport(
            make_teleport(create_return_teleport=True, custom_tags="portals"),
            empty_scene,
            x=800,
            y=900,
        )
        [pad] = compiled.companions

        assert pad.kind == "Tile"
        assert pad.scene_id == "vault"
        assert pad.tags == ["EMTeleport", "EMReturnTeleport", "portals"]
        assert pad.data["x"] == 300

        block = pad.data["flags"]["monks-active-tiles"]
        assert block["name"] == "Return: Portal"
        back = block["actions"][-1]
        assert back["action"] == "teleport"
        assert back["data"]["location"]["x"] == 800
        assert back["data"]["location"]["sceneId"] == "scene1"

        assert compiled.extra_flags == {RETURN_FLAG: pad.id}

    def test_no_destination_scene_skips_return(self, empty_scene):
        compiled = compile_teleport(
            make_teleport(create_return_teleport=True, teleport_scene_id=""), empty_scene
        )
        assert compiled.companions == []
        assert compiled.extra_flags == {}

    def test_tags_avoid_existing(self, empty_scene):
        scene = empty_scene.with_tags("EMTeleport")
        compiled = compile_teleport(make_teleport(create_return_teleport=True), scene)
        assert compiled.tag == "EMTeleport2"
        assert compiled.companions[0].tags[:2] == ["EMTeleport2", "EMReturnTeleport"]

    def test_return_pad_id_is_stable(self, empty_scene):
        """Recompiling the same teleport points at the same return pad."""
        config = make_teleport(create_return_teleport=True)
        a = compile_teleport(config, empty_scene)
        b = compile_teleport(config, empty_scene)

        assert a.companions[0].id == b.companions[0].id
        assert a.extra_flags == b.extra_flags
