"""
tilescript CLI.

Commands:
  init-db       Initialize the SQLite schema
  create-scene  Create a scene to author tiles in
  create-item   Create a world item combat traps can attack with
  compile       Compile a config file and print the program JSON
  create        Compile a config file and persist it to a scene
  list-tiles    List the tiles of a scene
  delete-tile   Delete a tile and everything authored with it
  verify        Check a program JSON file's steps and control flow
  show-config   Print the effective authoring settings
"""

import argparse
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path

from tilescript.authoring import TileAuthor
from tilescript.compilers import compile_config
from tilescript.config import get_config_path, load_settings
from tilescript.core.entities import AUTOMATION_FLAG
from tilescript.core.flow import FlowError, verify_program
from tilescript.core.models import Combatant, CombatTrapConfig
from tilescript.core.scene import SceneSnapshot
from tilescript.core.schemas import StepSchemaError, validate_steps
from tilescript.core.steps import Step
from tilescript.db.scene_store import EntityNotFoundError, SceneStore, TagConflictError
from tilescript.loader import ConfigError, load_config_document

logger = logging.getLogger(__name__)

# Errors reported as one line instead of a traceback
USER_ERRORS = (ConfigError, EntityNotFoundError, FlowError, StepSchemaError, TagConflictError)


def _store(args) -> SceneStore:
    store = SceneStore(args.db)
    store.ensure_schema()
    return store


def init_db(args):
    _store(args)
    print(f"Initialized database at {args.db}")


def create_scene_cmd(args):
    settings = load_settings()
    scene = _store(args).create_scene(
        name=args.name,
        scene_id=args.id,
        grid_size=args.grid_size or settings.grid_size,
        width=args.width,
        height=args.height,
    )
    print(f"Created scene '{scene['name']}' ({scene['id']})")


def create_item_cmd(args):
    data = {"img": args.img} if args.img else {}
    item = _store(args).create_item(args.name, item_type=args.type, data=data, item_id=args.id)
    print(f"Created {item['type']} '{item['name']}' ({item['id']})")


def compile_cmd(args):
    document = load_config_document(args.file)
    settings = load_settings()

    if args.scene:
        snapshot = _store(args).scene_snapshot(args.scene)
    else:
        snapshot = SceneSnapshot(grid_size=settings.grid_size)

    combatant = None
    if isinstance(document.config, CombatTrapConfig):
        # Preview only; real ids come from provisioning in `create`
        combatant = Combatant(
            actor_id="<actor>",
            token_id="<token>",
            item_id=document.config.item_id,
            name=document.config.name,
        )

    compiled = compile_config(
        document.config, snapshot, document.x, document.y,
        settings=settings, combatant=combatant,
        width=document.width, height=document.height,
    )
    output = compiled.program.to_dict()
    if args.document:
        output = compiled.document()
    print(json.dumps(output, indent=2, ensure_ascii=False))


def create_cmd(args):
    document = load_config_document(args.file)
    author = TileAuthor(_store(args), load_settings(), max_retries=args.retries)
    result = author.create(
        document.config, args.scene, document.x, document.y, document.width, document.height
    )
    print(f"Created {document.type_name} tile '{result.compiled.name}' ({result.tile_id})")
    print(f"  Tags: {', '.join(result.compiled.tags)}")
    print(f"  Steps: {len(result.compiled.steps)}")
    for companion in result.companions:
        print(f"  + {companion['kind']} {companion['id']}")


def list_tiles_cmd(args):
    store = _store(args)
    store.require_scene(args.scene)
    tiles = store.list_documents(args.scene, kind="Tile")
    if not tiles:
        print("No tiles.")
        return
    for tile in tiles:
        block = (tile["data"].get("flags") or {}).get(AUTOMATION_FLAG, {})
        trigger = ",".join(block.get("trigger") or [])
        print(
            f"{tile['id']}  {tile['name']:<30} "
            f"[{trigger}] {len(block.get('actions', []))} steps  {' '.join(tile['tags'])}"
        )


def delete_tile_cmd(args):
    author = TileAuthor(_store(args), load_settings())
    deleted = author.delete_tile(args.tile_id)
    print(f"Deleted {len(deleted)} document(s): {', '.join(deleted)}")


def _program_steps(raw) -> list[Step]:
    """Steps from a program, a bare step list, or a full tile document."""
    if isinstance(raw, dict) and "flags" in raw:
        raw = raw["flags"].get(AUTOMATION_FLAG, {}).get("actions", [])
    elif isinstance(raw, dict):
        raw = raw.get("steps", raw.get("actions", []))
    if not isinstance(raw, list):
        raise ConfigError("Program must be a list of steps")
    try:
        return [Step.from_dict(s) for s in raw]
    except (KeyError, TypeError, ValueError) as e:
        raise ConfigError(f"Malformed step: {e}")


def verify_cmd(args):
    path = Path(args.file)
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Could not read {path}: {e}")

    steps = _program_steps(raw)
    validate_steps(steps)
    report = verify_program(steps)

    for warning in report.warnings:
        print(f"WARNING: {warning}")
    for error in report.errors:
        print(f"ERROR: {error}")
    if not report.valid:
        sys.exit(1)
    print(f"OK: {len(steps)} steps")


def show_config_cmd(args):
    settings = load_settings()
    print(f"# {get_config_path()}")
    print(json.dumps(asdict(settings), indent=2))


def build_parser():
    parser = argparse.ArgumentParser(
        description="tilescript - compile tile behaviors into automation step programs"
    )
    parser.add_argument(
        "--db",
        default="tiles.db",
        help="SQLite database path (default: tiles.db)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    sub = parser.add_subparsers(dest="command")

    # init-db
    init_db_parser = sub.add_parser("init-db", help="Initialize the SQLite schema")
    init_db_parser.set_defaults(func=init_db)

    # create-scene
    scene_parser = sub.add_parser("create-scene", help="Create a scene")
    scene_parser.add_argument("name", help="Scene name")
    scene_parser.add_argument("--id", help="Scene ID (generated if omitted)")
    scene_parser.add_argument("--grid-size", type=int, help="Grid size in pixels")
    scene_parser.add_argument("--width", type=float, default=4000, help="Scene width")
    scene_parser.add_argument("--height", type=float, default=3000, help="Scene height")
    scene_parser.set_defaults(func=create_scene_cmd)

    # create-item
    item_parser = sub.add_parser("create-item", help="Create a world item")
    item_parser.add_argument("name", help="Item name")
    item_parser.add_argument("--id", help="Item ID (generated if omitted)")
    item_parser.add_argument("--type", default="weapon", help="Item type (default: weapon)")
    item_parser.add_argument("--img", help="Item image")
    item_parser.set_defaults(func=create_item_cmd)

    # compile
    compile_parser = sub.add_parser("compile", help="Compile a config file to program JSON")
    compile_parser.add_argument("file", help="YAML or JSON config file")
    compile_parser.add_argument("--scene", help="Compile against a stored scene's tags and names")
    compile_parser.add_argument(
        "--document",
        action="store_true",
        help="Print the full tile document instead of the program",
    )
    compile_parser.set_defaults(func=compile_cmd)

    # create
    create_parser = sub.add_parser("create", help="Compile a config file and persist the tile")
    create_parser.add_argument("file", help="YAML or JSON config file")
    create_parser.add_argument("--scene", required=True, help="Target scene ID")
    create_parser.add_argument(
        "--retries",
        type=int,
        default=3,
        help="Recompile attempts on tag conflicts (default: 3)",
    )
    create_parser.set_defaults(func=create_cmd)

    # list-tiles
    list_parser = sub.add_parser("list-tiles", help="List tiles in a scene")
    list_parser.add_argument("--scene", required=True, help="Scene ID")
    list_parser.set_defaults(func=list_tiles_cmd)

    # delete-tile
    delete_parser = sub.add_parser("delete-tile", help="Delete a tile and its companions")
    delete_parser.add_argument("tile_id", help="Tile ID")
    delete_parser.set_defaults(func=delete_tile_cmd)

    # verify
    verify_parser = sub.add_parser("verify", help="Verify a program JSON file")
    verify_parser.add_argument("file", help="Program, step list, or tile document JSON")
    verify_parser.set_defaults(func=verify_cmd)

    # show-config
    config_parser = sub.add_parser("show-config", help="Show effective settings")
    config_parser.set_defaults(func=show_config_cmd)

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        return

    try:
        args.func(args)
    except USER_ERRORS as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
