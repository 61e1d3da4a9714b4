"""Facility Builder CLI.

Usage:
    python -m facility_builder <command> <document.json> [options]

All layout modifications go through the 'apply' command with JSON actions.
Read-only commands (summary, validate, list, render) use simple CLI args.
Every command prints JSON to stdout.
"""
from __future__ import annotations

import json
import logging
import sys
from collections import Counter
from pathlib import Path
from typing import Optional

import typer

from facility_builder.editor.facility import FacilityEditor
from facility_builder.logging_config import setup_logging
from facility_builder.models.config import EditorConfig
from facility_builder.models.geometry import Footprint
from facility_builder.persistence.document import ImportReport, export_document, import_document
from facility_builder.registry.assets import AssetRegistry
from facility_builder.validators.placement import describe_result

app = typer.Typer(
    name="facility_builder",
    help="Facility Builder: grid layout editing for storage facilities.",
    no_args_is_help=True,
)

_settings: dict = {"config": None}


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging to stderr"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="EditorConfig JSON file"),
    log_file: Optional[str] = typer.Option(None, "--log-file", help="Also write logs to this file"),
):
    """Load a facility document, inspect or edit it, and save it back."""
    setup_logging(logging.DEBUG if verbose else logging.WARNING, log_file)
    _settings["config"] = config


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _output(data: dict) -> None:
    """Print JSON output to stdout."""
    typer.echo(json.dumps(data, indent=2, ensure_ascii=False))


def _fail(message: str) -> None:
    _output({"ok": False, "error": message})
    raise typer.Exit(1)


def _new_editor() -> FacilityEditor:
    config = EditorConfig()
    if _settings["config"]:
        path = Path(_settings["config"])
        if not path.exists():
            _fail(f"Config not found: {path}")
        config = EditorConfig.load(path)
    return FacilityEditor(AssetRegistry.with_defaults(), config)


def _load_editor(document: str, create: bool = False) -> tuple[FacilityEditor, ImportReport | None]:
    """Load a document into a fresh editor."""
    editor = _new_editor()
    path = Path(document)
    if not path.exists():
        if create:
            return editor, None
        _fail(f"Document not found: {path}")
    try:
        report = import_document(editor, path)
    except ValueError as e:
        _fail(f"Invalid document {path}: {e}")
    return editor, report


def _save_editor(editor: FacilityEditor, document: str, name: str | None = None) -> Path:
    path = Path(document)
    if name is None and path.exists():
        name = json.loads(path.read_text()).get("name")
    return export_document(editor, name=name or path.stem).save(path)


def _xz(value) -> tuple[int, int]:
    x, z = value
    return int(x), int(z)


# ---------------------------------------------------------------------------
# Read-only commands
# ---------------------------------------------------------------------------

@app.command()
def summary(document: str = typer.Argument(..., help="Facility document (JSON)")):
    """Counts of objects, buildings and floors."""
    editor, report = _load_editor(document)
    categories: Counter = Counter()
    for obj in editor.objects:
        asset = editor.get_asset(obj.asset_id)
        categories[asset.category.value if asset else "unknown"] += 1

    _output({
        "ok": True,
        "name": report.name,
        "objects": len(editor.objects),
        "by_category": dict(sorted(categories.items())),
        "buildings": [
            {"id": b.id, "name": b.name, "cells": len(b.cells()), "floors": b.floor_levels()}
            for b in editor.buildings.buildings
        ],
        "skipped": len(report.skipped),
    })


@app.command()
def validate(document: str = typer.Argument(..., help="Facility document (JSON)")):
    """Load a document and report records that fail validation."""
    _, report = _load_editor(document)
    _output({"ok": True, "valid": report.ok, "report": report.to_dict()})


@app.command("list")
def list_cmd(
    document: str = typer.Argument(..., help="Facility document (JSON)"),
    what: str = typer.Argument(..., help="What to list: objects, buildings, floors, assets"),
    floor: Optional[int] = typer.Option(None, "--floor", "-f", help="Filter objects by floor"),
):
    """List layout elements."""
    result: dict = {"ok": True}

    if what == "assets":
        registry = AssetRegistry.with_defaults()
        result["assets"] = [
            {"id": a.id, "name": a.name, "category": a.category.value,
             "size": [a.grid_units.x, a.grid_units.z], "spans_all_floors": a.spans_all_floors}
            for a in registry.all_assets()
        ]
        _output(result)
        return

    editor, _ = _load_editor(document)

    if what == "objects":
        objects = editor.objects if floor is None else editor.objects_on_floor(floor)
        result["objects"] = [
            {"id": o.id, "asset": o.asset_id, "name": o.name,
             "position": [o.position.x, o.position.z], "orientation": int(o.orientation),
             "floor": o.floor, "building": o.building_id, "shaft": o.vertical_shaft_id}
            for o in objects
        ]

    elif what == "buildings":
        result["buildings"] = [
            {"id": b.id, "name": b.name,
             "footprints": [[fp.min_x, fp.min_z, fp.max_x, fp.max_z] for fp in b.footprints],
             "floors": b.floor_levels(), "walls": len(b.walls)}
            for b in editor.buildings.buildings
        ]

    elif what == "floors":
        result["floors"] = [
            {"building": b.id, "level": f.level, "height": f.height,
             "objects": sum(1 for o in editor.objects_on_floor(f.level) if o.building_id == b.id)}
            for b in editor.buildings.buildings
            for f in b.floors
        ]

    else:
        _fail(f"Unknown list target: {what}. Use objects, buildings, floors, assets")

    _output(result)


@app.command()
def render(
    document: str = typer.Argument(..., help="Facility document (JSON)"),
    floor: int = typer.Option(0, "--floor", "-f", help="Floor level to render"),
    output: Optional[str] = typer.Option(None, "--output", "-o", help="Output PNG path"),
):
    """Render a floor plan to PNG."""
    from facility_builder.export.floorplan import render_floorplan

    editor, report = _load_editor(document)
    path = Path(output) if output else Path(document).with_name(f"{Path(document).stem}_floor{floor}.png")
    render_floorplan(editor, floor, path, title=f"{report.name}: floor {floor}")
    _output({"ok": True, "floor": floor, "path": str(path)})


@app.command()
def version() -> None:
    """Show version."""
    from facility_builder import __version__

    _output({"ok": True, "version": __version__})


# ---------------------------------------------------------------------------
# Apply command
# ---------------------------------------------------------------------------

def _blocked(editor: FacilityEditor) -> str:
    return describe_result(editor.last_result)


def _dispatch_action(editor: FacilityEditor, action: dict) -> dict:
    """Dispatch a single action to the editor. Returns result dict."""
    cmd = action.get("action")

    try:
        if cmd == "place":
            obj = editor.place_asset(
                action["asset"],
                _xz(action["position"]),
                action.get("orientation", 0),
                action.get("floor"),
                name=action.get("name"),
                properties=action.get("properties"),
            )
            if obj is None:
                raise ValueError(_blocked(editor))
            return {"action": cmd, "id": obj.id, "name": obj.name, "shaft": obj.vertical_shaft_id}

        elif cmd == "delete":
            if not editor.delete_object(action["id"]):
                raise ValueError(f"Object '{action['id']}' not found")
            return {"action": cmd, "id": action["id"]}

        elif cmd == "move":
            if "delta" in action:
                ids = action.get("ids") or [action["id"]]
                dx, dz = _xz(action["delta"])
                moved = editor.move_objects(ids, dx, dz)
            else:
                moved = editor.move_object(action["id"], _xz(action["position"]), action.get("orientation"))
            if not moved:
                raise ValueError(_blocked(editor))
            return {"action": cmd, "id": action.get("id"), "ids": action.get("ids")}

        elif cmd == "rotate":
            if not editor.rotate_object(action["id"], action.get("clockwise", True)):
                raise ValueError(_blocked(editor))
            obj = editor.get_object(action["id"])
            return {"action": cmd, "id": obj.id, "orientation": int(obj.orientation)}

        elif cmd == "rename":
            if "building" in action:
                if not editor.rename_building(action["building"], action["name"]):
                    raise ValueError(f"Building '{action['building']}' not found")
                return {"action": cmd, "building": action["building"], "name": action["name"]}
            if editor.get_object(action["id"]) is None:
                raise ValueError(f"Object '{action['id']}' not found")
            editor.rename_object(action["id"], action["name"])
            return {"action": cmd, "id": action["id"], "name": action["name"]}

        elif cmd == "create-building":
            corner_a, corner_b = action["footprint"]
            building = editor.create_building(
                Footprint.from_corners(_xz(corner_a), _xz(corner_b)), action.get("name")
            )
            if building is None:
                raise ValueError(_blocked(editor))
            return {"action": cmd, "id": building.id, "name": building.name, "cells": len(building.cells())}

        elif cmd == "delete-building":
            if not editor.delete_building(action["building"]):
                raise ValueError(f"Building '{action['building']}' not found")
            return {"action": cmd, "building": action["building"]}

        elif cmd == "move-building":
            dx, dz = _xz(action["delta"])
            if not editor.move_building(action["building"], dx, dz):
                raise ValueError(_blocked(editor))
            return {"action": cmd, "building": action["building"], "delta": [dx, dz]}

        elif cmd == "remove-cells":
            cells = [_xz(c) for c in action["cells"]]
            if not editor.remove_building_cells(action["building"], cells):
                raise ValueError("No cells of the building were removed")
            still_there = action["building"] in editor.buildings
            return {"action": cmd, "building": action["building"], "deleted": not still_there}

        elif cmd == "add-floor":
            floor = editor.add_floor(action["building"])
            if floor is None:
                raise ValueError(f"Building '{action['building']}' not found")
            return {"action": cmd, "building": action["building"], "level": floor.level}

        elif cmd == "insert-floor":
            floor = editor.insert_floor(action["building"], int(action["level"]))
            if floor is None:
                raise ValueError(f"Cannot insert floor {action['level']} into '{action['building']}'")
            return {"action": cmd, "building": action["building"], "level": floor.level}

        elif cmd == "delete-floor":
            if not editor.delete_floor(action["building"], int(action["level"])):
                raise ValueError(f"Cannot delete floor {action['level']} of '{action['building']}'")
            return {"action": cmd, "building": action["building"], "level": action["level"]}

        elif cmd == "undo":
            return {"action": cmd, "undone": editor.undo()}

        elif cmd == "redo":
            return {"action": cmd, "redone": editor.redo()}

        else:
            return {"action": cmd, "error": f"Unknown action: {cmd}"}

    except KeyError as e:
        return {"action": cmd, "error": f"Missing field: {e.args[0]}"}
    except Exception as e:
        return {"action": cmd, "error": str(e)}


@app.command()
def apply(
    document: str = typer.Argument(..., help="Facility document (JSON); created if missing"),
    actions_json: Optional[str] = typer.Argument(None, help="JSON array of actions"),
    file: Optional[str] = typer.Option(None, "--file", help="Read actions from JSON file"),
    stdin: bool = typer.Option(False, "--stdin", help="Read actions from stdin"),
    name: Optional[str] = typer.Option(None, "--name", "-n", help="Document name to save"),
):
    """Apply modifications to a facility via JSON actions."""
    # Parse actions from one of: positional arg, --file, --stdin
    if stdin:
        raw = sys.stdin.read()
    elif file:
        raw = Path(file).read_text()
    elif actions_json:
        raw = actions_json
    else:
        _fail("Provide actions as argument, --file, or --stdin")

    try:
        actions = json.loads(raw)
    except json.JSONDecodeError as e:
        _fail(f"Invalid JSON: {e}")

    if not isinstance(actions, list):
        actions = [actions]  # allow single action without wrapping in array

    editor, _ = _load_editor(document, create=True)

    results = []
    for i, action in enumerate(actions):
        result = _dispatch_action(editor, action)
        results.append(result)
        if "error" in result:
            # Stop on first error; nothing is saved
            _output({
                "ok": False,
                "error": f"Action {i} ({action.get('action', '?')}) failed: {result['error']}",
                "applied": i,
                "results": results,
            })
            raise typer.Exit(1)

    path = _save_editor(editor, document, name)
    _output({
        "ok": True,
        "actions_applied": len(results),
        "results": results,
        "saved": str(path),
        "objects": len(editor.objects),
        "buildings": len(editor.buildings),
    })


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    app()
