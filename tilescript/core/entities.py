"""
Entity data builders.

Shapes of the documents handed to the document store: the tile itself,
the automation flags that carry a compiled program, and the companion
lights, sounds, actors and tokens some tiles need.
"""

from typing import Optional

AUTOMATION_FLAG = "monks-active-tiles"


def base_tile_data(
    texture_src: str,
    width: float,
    height: float,
    x: float,
    y: float,
    hidden: bool = False,
    elevation: float = 0,
    rotation: float = 0,
    alpha: float = 1,
    locked: bool = False,
) -> dict:
    """Tile document with the engine's default texture settings."""
    return {
        "texture": {
            "src": texture_src,
            "anchorX": 0.5,
            "anchorY": 0.5,
            "fit": "fill",
            "scaleX": 1,
            "scaleY": 1,
            "rotation": 0,
            "tint": "#ffffff",
            "alphaThreshold": 0.75,
        },
        "width": width,
        "height": height,
        "x": x,
        "y": y,
        "elevation": elevation,
        "sort": 0,
        "occlusion": {"mode": 0, "alpha": 0},
        "rotation": rotation,
        "alpha": alpha,
        "hidden": hidden,
        "locked": locked,
        "restrictions": {"light": False, "weather": False},
        "video": {"loop": True, "autoplay": True, "volume": 0},
        "visible": True,
        "img": texture_src,
    }


def automation_flags(
    name: str,
    actions: list[dict],
    files: Optional[list[dict]] = None,
    variables: Optional[dict] = None,
    trigger: Optional[list[str]] = None,
    active: bool = True,
    record: bool = False,
    pointer: bool = True,
    allowpaused: bool = False,
    minrequired: Optional[int] = None,
    fileindex: int = 0,
    extra: Optional[dict] = None,
) -> dict:
    """Flags block the automation engine reads from a tile."""
    block = {
        "name": name,
        "active": active,
        "record": record,
        "restriction": "all",
        "controlled": "all",
        "trigger": trigger if trigger is not None else ["dblclick"],
        "allowpaused": allowpaused,
        "usealpha": False,
        "pointer": pointer,
        "vision": True,
        "pertoken": False,
        "minrequired": minrequired,
        "cooldown": None,
        "chance": 100,
        "fileindex": fileindex,
        "actions": actions,
        "files": files or [],
        "variables": variables or {},
    }
    if extra:
        block.update(extra)
    return {AUTOMATION_FLAG: block}


def ambient_light_data(
    x: float,
    y: float,
    dim: float,
    bright: float,
    color: Optional[str] = None,
    color_intensity: float = 0.5,
    use_darkness: bool = False,
    darkness_min: float = 0,
) -> dict:
    """Light source. Darkness-driven lights start visible, manual ones hidden."""
    return {
        "x": x,
        "y": y,
        "rotation": 0,
        "elevation": 0,
        "walls": True,
        "vision": False,
        "config": {
            "angle": 360,
            "color": color or None,
            "dim": dim,
            "bright": bright,
            "alpha": color_intensity,
            "negative": False,
            "priority": 0,
            "coloration": 1,
            "attenuation": 0.5,
            "luminosity": 0.5,
            "saturation": 0,
            "contrast": 0,
            "shadows": 0,
            "animation": {"type": None, "speed": 5, "intensity": 5, "reverse": False},
            "darkness": {
                "min": darkness_min if use_darkness else 0,
                "max": 1,
            },
        },
        "hidden": not use_darkness,
    }


def ambient_sound_data(
    x: float,
    y: float,
    path: str,
    radius: float = 40,
    volume: float = 0.5,
    hidden: bool = True,
) -> dict:
    return {
        "x": x,
        "y": y,
        "radius": radius,
        "path": path,
        "volume": volume,
        "easing": True,
        "repeat": True,
        "hidden": hidden,
        "walls": True,
    }


def trap_actor_data(name: str, folder_id: str, img: str, token_img: str) -> dict:
    """Hostile NPC actor that owns a combat trap's attack item."""
    return {
        "name": name,
        "type": "npc",
        "folder": folder_id,
        "img": img,
        "prototypeToken": {"texture": {"src": token_img}},
        "system": {
            "abilities": {
                ability: {"value": 10}
                for ability in ("str", "dex", "con", "int", "wis", "cha")
            }
        },
    }


def trap_token_data(actor_id: str, name: str, img: str, x: float, y: float, visible: bool) -> dict:
    """Token for a trap actor. Hidden tokens are half transparent for the GM."""
    return {
        "actorId": actor_id,
        "name": name,
        "texture": {"src": img},
        "x": x,
        "y": y,
        "width": 1,
        "height": 1,
        "rotation": 0,
        "hidden": not visible,
        "locked": False,
        "disposition": -1,
        "displayName": 0,
        "displayBars": 0,
        "alpha": 1 if visible else 0.5,
    }
