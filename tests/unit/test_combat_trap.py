"""
Tests for the combat trap compiler.
"""

from tilescript.compilers.combat_trap import compile_combat_trap, trigger_count_variable
from tilescript.core.flow import verify_program
from tilescript.core.models import TrapTargetType
from tilescript.core.schemas import validate_steps
from tilescript.core.steps import StepKind
from tests.fixtures.configs import make_combat_trap, make_combatant


class TestCombatTrapBody:
    """Tests for the attack program."""

    def test_unlimited_program(self, empty_scene):
        compiled = compile_combat_trap(make_combat_trap(), empty_scene, make_combatant())
        kinds = [s.kind for s in compiled.steps]

        assert kinds == [
            StepKind.TILE_IMAGE,
            StepKind.PLAY_SOUND,
            StepKind.SHOW_HIDE,
            StepKind.ATTACK,
        ]

    def test_token_revealed_before_attack(self, empty_scene):
        steps = compile_combat_trap(make_combat_trap(), empty_scene, make_combatant()).steps
        reveal, attack = steps[-2], steps[-1]

        assert reveal.data["entity"]["id"] == "Scene.scene1.Token.token1"
        assert reveal.data["hidden"] == "show"
        assert reveal.data["collection"] == "tokens"

        assert attack.data["actor"] == {"id": "Scene.scene1.Token.token1", "name": "Blade Trap (Trap)"}
        assert attack.data["itemid"] == "weapon1"
        assert attack.data["attack"]["name"] == "Blade Trap Attack"
        assert attack.data["entity"]["id"] == "token"

    def test_within_target(self, empty_scene):
        config = make_combat_trap(target_type=TrapTargetType.WITHIN_TILE)
        attack = compile_combat_trap(config, empty_scene, make_combatant()).steps[-1]
        assert attack.data["entity"]["id"] == "within"

    def test_hide_on_trigger(self, empty_scene):
        config = make_combat_trap(hide_trap_on_trigger=True)
        compiled = compile_combat_trap(config, empty_scene, make_combatant())
        assert compiled.steps[0].data["hidden"] == "hide"
        assert len(compiled.program.files) == 1


class TestTriggerLimit:
    """Tests for the trigger-limiting prelude."""

    def test_prelude(self, empty_scene):
        compiled = compile_combat_trap(
            make_combat_trap(name="Blade Trap #1", max_triggers=3), empty_scene, make_combatant()
        )
        steps = compiled.steps
        variable = "Blade_Trap__1_trigger_count"
        assert trigger_count_variable("Blade Trap #1") == variable

        assert [s.kind for s in steps[:7]] == [
            StepKind.SET_VARIABLE,
            StepKind.SET_VARIABLE,
            StepKind.CHECK_VARIABLE,
            StepKind.ACTIVATE,
            StepKind.CHAT_MESSAGE,
            StepKind.STOP,
            StepKind.ANCHOR,
        ]
        assert steps[0].data["value"] == (
            f"{{{{#if variable.{variable}}}}}{{{{variable.{variable}}}}}{{{{else}}}}0{{{{/if}}}}"
        )
        assert steps[1].data["value"] == f"{{{{add variable.{variable} 1}}}}"
        assert steps[2].data["value"] == "3"
        assert steps[2].data["type"] == "gt"
        assert steps[2].data["fail"] == "continue_trap"
        assert steps[3].data["activate"] == "deactivate"
        assert "Maximum triggers reached (3)" in steps[4].data["text"]
        assert steps[6].data == {"tag": "continue_trap", "stop": False}

        assert steps[-1].kind == StepKind.ATTACK
        validate_steps(steps)
        assert verify_program(steps).valid


class TestCombatTrapTile:
    """Tests for tile data and flags."""

    def test_actor_flag_and_tag(self, empty_scene):
        compiled = compile_combat_trap(make_combat_trap(), empty_scene, make_combatant())
        block = compiled.document()["flags"]["monks-active-tiles"]

        assert block["em-trap-actor-id"] == "actor1"
        assert block["trigger"] == ["enter"]
        assert block["record"] is True
        assert compiled.tag == "EMBladeTrapCombat"

    def test_missing_image_hides_tile(self, empty_scene, settings):
        config = make_combat_trap(starting_image="")
        compiled = compile_combat_trap(config, empty_scene, make_combatant())
        assert compiled.tile["hidden"] is True
        assert compiled.tile["texture"]["src"] == settings.default_trap_image

    def test_visible_with_image(self, empty_scene):
        compiled = compile_combat_trap(make_combat_trap(), empty_scene, make_combatant())
        assert compiled.tile["hidden"] is False
