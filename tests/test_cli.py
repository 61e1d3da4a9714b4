"""Tests for the CLI interface."""
import json
import subprocess
import sys
from pathlib import Path

import pytest

CLI = [sys.executable, "-m", "facility_builder"]
ROOT = Path(__file__).parent.parent


def run_cli(*args: str) -> dict:
    """Run CLI command and return parsed JSON output."""
    result = subprocess.run(
        [*CLI, *args],
        capture_output=True, text=True, cwd=str(ROOT),
    )
    assert result.returncode == 0, f"CLI failed: {result.stderr}\n{result.stdout}"
    return json.loads(result.stdout)


def run_cli_expect_fail(*args: str) -> dict:
    """Run CLI command expecting failure, return parsed JSON output."""
    result = subprocess.run(
        [*CLI, *args],
        capture_output=True, text=True, cwd=str(ROOT),
    )
    assert result.returncode != 0
    return json.loads(result.stdout)


def apply(doc: Path, *actions: dict) -> dict:
    return run_cli("apply", str(doc), json.dumps(list(actions)))


@pytest.fixture
def facility(tmp_path) -> tuple[Path, str]:
    """A saved document with one two-floor building and a unit inside."""
    doc = tmp_path / "site.json"
    data = apply(
        doc,
        {"action": "create-building", "footprint": [[0, 0], [5, 5]], "name": "Main"},
    )
    building_id = data["results"][0]["id"]
    apply(
        doc,
        {"action": "add-floor", "building": building_id},
        {"action": "place", "asset": "unit-small", "position": [1, 1], "name": "A-1"},
    )
    return doc, building_id


class TestApply:
    def test_apply_creates_document(self, tmp_path):
        doc = tmp_path / "new.json"
        data = apply(doc, {"action": "place", "asset": "unit-tiny", "position": [0, 0]})
        assert data["ok"] is True
        assert data["actions_applied"] == 1
        assert data["objects"] == 1
        assert doc.exists()
        saved = json.loads(doc.read_text())
        assert saved["version"] == "2.0.0"
        assert saved["placedObjects"][0]["assetId"] == "unit-tiny"
        assert saved["name"] == "new"

    def test_apply_single_action_without_array(self, tmp_path):
        doc = tmp_path / "single.json"
        data = run_cli("apply", str(doc), json.dumps(
            {"action": "place", "asset": "unit-tiny", "position": [2, 3]}
        ))
        assert data["ok"] is True
        assert data["actions_applied"] == 1

    def test_apply_stops_on_blocked_placement(self, facility):
        doc, _ = facility
        before = doc.read_text()
        data = run_cli_expect_fail("apply", str(doc), json.dumps([
            {"action": "place", "asset": "unit-tiny", "position": [8, 8]},
            {"action": "place", "asset": "unit-tiny", "position": [1, 1]},
        ]))
        assert data["ok"] is False
        assert data["applied"] == 1
        assert "occupied" in data["error"].lower()
        assert doc.read_text() == before

    def test_apply_unknown_action_fails(self, tmp_path):
        data = run_cli_expect_fail("apply", str(tmp_path / "x.json"), '[{"action": "teleport"}]')
        assert "Unknown action" in data["error"]

    def test_apply_missing_field_fails(self, tmp_path):
        data = run_cli_expect_fail("apply", str(tmp_path / "x.json"), '[{"action": "place"}]')
        assert "Missing field" in data["error"]

    def test_apply_invalid_json_fails(self, tmp_path):
        data = run_cli_expect_fail("apply", str(tmp_path / "x.json"), "not json")
        assert "Invalid JSON" in data["error"]

    def test_apply_from_file(self, tmp_path):
        actions = tmp_path / "actions.json"
        actions.write_text(json.dumps([{"action": "place", "asset": "keypad", "position": [4, 4]}]))
        data = run_cli("apply", str(tmp_path / "doc.json"), "--file", str(actions), "--name", "Depot")
        assert data["ok"] is True
        assert json.loads((tmp_path / "doc.json").read_text())["name"] == "Depot"

    def test_apply_undo_within_batch(self, tmp_path):
        doc = tmp_path / "undo.json"
        data = apply(
            doc,
            {"action": "place", "asset": "unit-tiny", "position": [0, 0]},
            {"action": "undo"},
        )
        assert data["results"][1]["undone"] is True
        assert data["objects"] == 0

    def test_shaft_through_cli(self, facility):
        doc, _ = facility
        data = apply(doc, {"action": "place", "asset": "elevator-passenger", "position": [3, 3]})
        assert data["results"][0]["shaft"] is not None
        listed = run_cli("list", str(doc), "objects", "--floor", "1")
        assert [o["asset"] for o in listed["objects"]] == ["elevator-passenger"]

    def test_building_actions(self, facility):
        doc, building_id = facility
        data = apply(
            doc,
            {"action": "rename", "building": building_id, "name": "Annex"},
            {"action": "insert-floor", "building": building_id, "level": 1},
            {"action": "move-building", "building": building_id, "delta": [10, 0]},
        )
        assert data["ok"] is True
        listed = run_cli("list", str(doc), "buildings")
        (building,) = listed["buildings"]
        assert building["name"] == "Annex"
        assert building["floors"] == [0, 1, 2]
        assert building["footprints"] == [[10, 0, 15, 5]]
        objects = run_cli("list", str(doc), "objects")["objects"]
        assert objects[0]["position"] == [11, 1]


class TestReadOnly:
    def test_summary(self, facility):
        doc, building_id = facility
        data = run_cli("summary", str(doc))
        assert data["ok"] is True
        assert data["objects"] == 1
        assert data["by_category"] == {"storage_unit": 1}
        assert data["buildings"][0]["id"] == building_id
        assert data["buildings"][0]["floors"] == [0, 1]

    def test_validate(self, facility):
        doc, _ = facility
        data = run_cli("validate", str(doc))
        assert data["valid"] is True
        assert data["report"]["objects_loaded"] == 1

    def test_validate_reports_unknown_assets(self, tmp_path):
        doc = tmp_path / "odd.json"
        doc.write_text(json.dumps({
            "version": "2.0.0",
            "placedObjects": [
                {"id": "obj-1", "assetId": "hovercraft", "position": {"x": 0, "z": 0}},
            ],
        }))
        data = run_cli("validate", str(doc))
        assert data["valid"] is False
        assert data["report"]["skipped"][0]["id"] == "obj-1"

    def test_validate_skips_malformed_record(self, tmp_path):
        doc = tmp_path / "partial.json"
        doc.write_text(json.dumps({
            "placedObjects": [
                {"id": "obj-1", "assetId": "unit-small", "position": {"x": 0, "z": 0}},
                {"id": "obj-2", "assetId": "unit-small"},
            ],
        }))
        data = run_cli("validate", str(doc))
        assert data["valid"] is False
        assert data["report"]["objects_loaded"] == 1
        assert data["report"]["skipped"][0]["id"] == "obj-2"

    def test_unreadable_document(self, tmp_path):
        doc = tmp_path / "broken.json"
        doc.write_text("{not json")
        data = run_cli_expect_fail("summary", str(doc))
        assert data["ok"] is False

    def test_missing_document(self, tmp_path):
        data = run_cli_expect_fail("summary", str(tmp_path / "missing.json"))
        assert data["ok"] is False

    def test_list_floors(self, facility):
        doc, _ = facility
        data = run_cli("list", str(doc), "floors")
        assert [(f["level"], f["objects"]) for f in data["floors"]] == [(0, 1), (1, 0)]

    def test_list_assets(self, tmp_path):
        data = run_cli("list", str(tmp_path / "unused.json"), "assets")
        assert len(data["assets"]) == 25

    def test_list_unknown_target(self, facility):
        doc, _ = facility
        data = run_cli_expect_fail("list", str(doc), "spaceships")
        assert "Unknown list target" in data["error"]

    def test_version(self):
        data = run_cli("version")
        assert data["version"] == "0.1.0"


class TestRender:
    def test_render_default_path(self, facility):
        doc, _ = facility
        data = run_cli("render", str(doc))
        path = Path(data["path"])
        assert path.name == "site_floor0.png"
        assert path.exists()

    def test_render_upper_floor(self, facility, tmp_path):
        doc, _ = facility
        out = tmp_path / "plans" / "upper.png"
        data = run_cli("render", str(doc), "--floor", "1", "--output", str(out))
        assert data["floor"] == 1
        assert out.exists()
