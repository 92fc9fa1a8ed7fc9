"""
Scene snapshot - the read-once view of a scene a compiler works against.

Compilers never touch live scene state. The caller snapshots the tag set
and tile names once per compile call and passes the snapshot in.
"""

from dataclasses import dataclass, field
from typing import Iterable, Optional


@dataclass(frozen=True)
class SceneSnapshot:
    """Tags, tile names and geometry of one scene at compile time."""
    scene_id: str = ""
    tags: frozenset = field(default_factory=frozenset)
    tile_names: tuple = ()
    grid_size: int = 100
    width: float = 4000
    height: float = 3000

    @classmethod
    def of(
        cls,
        scene_id: str = "",
        tags: Optional[Iterable[str]] = None,
        tile_names: Optional[Iterable[str]] = None,
        **geometry
    ) -> "SceneSnapshot":
        return cls(
            scene_id=scene_id,
            tags=frozenset(tags or ()),
            tile_names=tuple(tile_names or ()),
            **geometry,
        )

    def default_position(self, x: Optional[float] = None, y: Optional[float] = None) -> tuple:
        """Scene centre for any coordinate not given."""
        return (
            x if x is not None else self.width / 2,
            y if y is not None else self.height / 2,
        )

    def with_tags(self, *tags: str) -> "SceneSnapshot":
        """Copy of this snapshot with extra tags marked as taken."""
        return SceneSnapshot(
            scene_id=self.scene_id,
            tags=self.tags | frozenset(tags),
            tile_names=self.tile_names,
            grid_size=self.grid_size,
            width=self.width,
            height=self.height,
        )

    # Entity references in the engine's Scene.<id>.<Kind>.<id> form

    def tile_ref(self, tile_id: str) -> str:
        return f"Scene.{self.scene_id}.Tile.{tile_id}"

    def wall_ref(self, wall_id: str) -> str:
        return f"Scene.{self.scene_id}.Wall.{wall_id}"

    def light_ref(self, light_id: str) -> str:
        return f"Scene.{self.scene_id}.AmbientLight.{light_id}"

    def sound_ref(self, sound_id: str) -> str:
        return f"Scene.{self.scene_id}.AmbientSound.{sound_id}"

    def token_ref(self, token_id: str) -> str:
        return f"Scene.{self.scene_id}.Token.{token_id}"
