"""
Shared compiler types and helpers.

Every compiler returns a CompiledTile: the program the automation engine
runs plus the document data the caller persists. Compilers are pure; ids
for companion entities are derived here from the scene and the allocated
tag, so steps can reference them before anything exists in the store and
the same config compiles to the same steps.
"""

import uuid
from dataclasses import dataclass, field
from typing import Optional

from ..core import steps as st
from ..core.entities import automation_flags
from ..core.models import TrapTargetType
from ..core.steps import Step, new_step_id
from ..core.tags import parse_custom_tags

COMPANION_NAMESPACE = uuid.UUID("3f6c8e2a-9d41-5b7e-a0c3-6e2f1d8b4a95")


@dataclass
class FileRef:
    """One image in a tile's ordered image list."""
    name: str
    id: str = field(default_factory=new_step_id)

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name}


@dataclass
class Program:
    """Compiled output: ordered steps plus the tile's image list and variables."""
    steps: list[Step] = field(default_factory=list)
    files: list[FileRef] = field(default_factory=list)
    variables: dict = field(default_factory=dict)
    fileindex: int = 0

    def to_dict(self) -> dict:
        return {
            "steps": [s.to_dict() for s in self.steps],
            "files": [f.to_dict() for f in self.files],
            "variables": dict(self.variables),
            "fileindex": self.fileindex,
        }

    def kinds(self) -> list[st.StepKind]:
        return [s.kind for s in self.steps]


@dataclass
class TriggerSettings:
    """How and when the engine runs the tile's program."""
    trigger: list[str] = field(default_factory=lambda: ["dblclick"])
    active: bool = True
    record: bool = False
    pointer: bool = True
    allowpaused: bool = False
    minrequired: Optional[int] = None


@dataclass
class Companion:
    """Another document created alongside the tile.

    kind is the document collection: AmbientLight, AmbientSound, Tile.
    scene_id is set when the companion lives on a different scene; tags
    is set when the companion is tagged differently from its tile.
    """
    kind: str
    id: str
    data: dict
    scene_id: str = ""
    tags: Optional[list[str]] = None


def companion_id(scene_id: str, tag: str, role: str) -> str:
    """Stable 16-character id for one companion role of a tagged tile.

    Tags are unique within a scene, so (scene, tag, role) never repeats
    among live documents.
    """
    return uuid.uuid5(COMPANION_NAMESPACE, f"{scene_id}:{tag}:{role}").hex[:16]


@dataclass
class CompiledTile:
    """Everything the caller needs to persist one authored tile."""
    name: str
    program: Program
    tile: dict
    tag: str
    tags: list[str] = field(default_factory=list)
    settings: TriggerSettings = field(default_factory=TriggerSettings)
    companions: list[Companion] = field(default_factory=list)
    extra_flags: dict = field(default_factory=dict)

    @property
    def steps(self) -> list[Step]:
        return self.program.steps

    def document(self) -> dict:
        """Tile document with the program embedded in its automation flags."""
        return {
            **self.tile,
            "flags": automation_flags(
                name=self.name,
                actions=[s.to_dict() for s in self.program.steps],
                files=[f.to_dict() for f in self.program.files],
                variables=self.program.variables,
                trigger=self.settings.trigger,
                active=self.settings.active,
                record=self.settings.record,
                pointer=self.settings.pointer,
                allowpaused=self.settings.allowpaused,
                minrequired=self.settings.minrequired,
                fileindex=self.program.fileindex,
                extra=self.extra_flags,
            ),
        }


def all_tags(tag: str, custom_tags: str) -> list[str]:
    """Allocated tag first, then the user's own tags."""
    return [tag, *parse_custom_tags(custom_tags)]


# =============================================================================
# Target sets
# =============================================================================

# Tokens carried forward by the previous roll request
PREVIOUS = {"id": "previous", "name": "Current tokens"}

_TARGETS = {
    TrapTargetType.TRIGGERING: {"id": "token", "name": "Triggering Token"},
    TrapTargetType.WITHIN_TILE: {"id": "within", "name": "Tokens within Tile"},
    TrapTargetType.PLAYER_TOKENS: {"id": "players", "name": "Player Tokens"},
}


def target_entity(target_type: TrapTargetType) -> dict:
    """Entity reference for a trap's original target set."""
    return dict(_TARGETS[target_type])


def saving_throw(
    request: str,
    dc: int,
    target: dict,
    flavor: str = "",
    default_flavor: str = "Make a saving throw!",
) -> Step:
    """Roll request that carries only failing tokens forward."""
    return st.request_roll(
        request,
        dc,
        entity=target,
        flavor=flavor or default_flavor,
        fastforward=False,
        usetokens="fail",
        continue_on="failed",
    )
