"""
Tests for reading tile config documents.
"""

import json

import pytest

from tilescript.core.models import (
    CheckStateConfig,
    ConditionOperator,
    ResetConfig,
    SwitchConfig,
    SwitchStateFormat,
    TeleportTarget,
    TrapConfig,
    TrapResultType,
)
from tilescript.loader import (
    ConfigError,
    load_config_document,
    parse_config,
    to_snake_case,
)


class TestToSnakeCase:

    def test_camel_case(self):
        assert to_snake_case("variableName") == "variable_name"
        assert to_snake_case("hideTrapOnTrigger") == "hide_trap_on_trigger"

    def test_snake_case_passes_through(self):
        assert to_snake_case("damage_on_fail") == "damage_on_fail"


class TestParseConfig:
    """Tests for building typed configs from mappings."""

    def test_switch_with_placement(self):
        document = parse_config({
            "type": "switch",
            "name": "Door Switch",
            "variableName": "door_state",
            "stateFormat": "boolean",
            "x": 1200,
            "y": 800,
        })

        assert isinstance(document.config, SwitchConfig)
        assert document.config.variable_name == "door_state"
        assert document.config.state_format == SwitchStateFormat.BOOLEAN
        assert (document.x, document.y) == (1200, 800)
        assert document.width is None
        assert document.type_name == "switch"

    def test_missing_keys_use_defaults(self):
        document = parse_config({"type": "trap"})
        assert document.config == TrapConfig()

    def test_nested_dataclasses(self):
        document = parse_config({
            "type": "trap",
            "resultType": "teleport",
            "teleport": {"x": 500, "y": 600, "sceneId": "vault"},
            "dc": 15,
        })
        config = document.config

        assert config.result_type == TrapResultType.TELEPORT
        assert config.teleport == TeleportTarget(x=500.0, y=600.0, scene_id="vault")
        assert isinstance(config.teleport.x, float)

    def test_check_state_branches(self):
        document = parse_config({
            "type": "check-state",
            "name": "Router",
            "tilesToCheck": [{"tileId": "lever", "variables": ["lever_state"]}],
            "branches": [{
                "name": "Open",
                "conditions": [{"variableName": "lever_state", "value": "ON", "operator": "ne"}],
            }],
        })
        config = document.config

        assert isinstance(config, CheckStateConfig)
        assert config.tiles_to_check[0].variables == {"lever_state": None}
        assert config.branches[0].conditions[0].operator == ConditionOperator.NOT_EQUALS

    def test_reset_values_keep_their_types(self):
        document = parse_config({
            "type": "reset",
            "varsToReset": {"door": "OFF", "open": False, "count": 0, "gone": None},
        })
        assert isinstance(document.config, ResetConfig)
        assert document.config.vars_to_reset == {"door": "OFF", "open": False, "count": 0, "gone": None}

    def test_numeric_string_field(self):
        document = parse_config({"type": "trap", "damageOnFail": 7})
        assert document.config.damage_on_fail == "7"

    def test_unknown_keys_are_ignored(self, caplog):
        document = parse_config({"type": "switch", "colour": "red"})
        assert isinstance(document.config, SwitchConfig)
        assert "colour" in caplog.text

    def test_bad_enum(self):
        with pytest.raises(ConfigError, match="resultType|result_type"):
            parse_config({"type": "trap", "resultType": "explode"})

    def test_unknown_type(self):
        with pytest.raises(ConfigError, match="Unknown tile type"):
            parse_config({"type": "fountain"})

    def test_missing_type(self):
        with pytest.raises(ConfigError, match="missing its 'type'"):
            parse_config({"name": "Nameless"})

    def test_missing_required_nested_field(self):
        with pytest.raises(ConfigError, match="missing required field 'x'"):
            parse_config({"type": "trap", "teleport": {"y": 1}})

    def test_not_a_mapping(self):
        with pytest.raises(ConfigError):
            parse_config(["switch"])


class TestLoadConfigDocument:
    """Tests for reading documents from disk."""

    def test_yaml(self, tmp_path):
        path = tmp_path / "torch.yaml"
        path.write_text(
            "type: light\n"
            "name: Torch\n"
            "dimLight: 30\n"
            "useDarkness: true\n"
            "darknessMin: 0.4\n"
        )
        document = load_config_document(path)

        assert document.type_name == "light"
        assert document.config.dim_light == 30
        assert document.config.use_darkness is True

    def test_json(self, tmp_path):
        path = tmp_path / "portal.json"
        path.write_text(json.dumps({
            "type": "teleport",
            "name": "Portal",
            "teleportX": 300,
            "teleportY": 400,
            "teleportSceneId": "vault",
        }))
        document = load_config_document(path)
        assert document.config.teleport_scene_id == "vault"

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            load_config_document(tmp_path / "nope.yaml")

    def test_unparseable(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json")
        with pytest.raises(ConfigError, match="Could not parse"):
            load_config_document(path)
