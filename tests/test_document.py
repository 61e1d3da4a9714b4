"""Tests for document export and import."""

import json
import logging

import pytest

from facility_builder.editor import FacilityEditor
from facility_builder.models import Binding, EditorConfig, FacilityDocument, Footprint, GridPosition
from facility_builder.persistence import export_document, import_document
from facility_builder.registry import AssetRegistry


def fp(min_x, max_x, min_z, max_z):
    return Footprint(min_x=min_x, max_x=max_x, min_z=min_z, max_z=max_z)


def new_editor(**kwargs):
    return FacilityEditor(AssetRegistry.with_defaults(), **kwargs)


@pytest.fixture
def layout():
    """An editor holding one of everything worth saving."""
    ed = new_editor()
    main = ed.create_building(fp(0, 5, 0, 5), "Main")
    ed.create_building(fp(10, 12, 0, 2), "Office")
    ed.add_floor(main.id)
    ed.place_asset("elevator-passenger", (1, 1))
    ed.place_asset("door-single", (4, 0))
    ed.place_asset("unit-small", (4, 4), floor=1, properties={"rate": 95})
    ed.place_asset(
        "gate-entry", (0, 8), "east",
        binding=Binding(entity_type="gate", entity_id="g-1", entity_name="Front"),
    )
    ed.place_asset("ground-pavement", (6, 6))
    return ed


class TestExport:
    def test_wire_format(self, layout):
        data = export_document(layout, name="Depot").to_dict()
        assert data["name"] == "Depot"
        assert data["version"] == "2.0.0"
        assert data["gridSize"] == 1.0
        assert data["activeFloor"] == 0
        assert {"placedObjects", "buildings", "camera", "showGrid"} <= set(data)

        records = {r["assetId"]: r for r in data["placedObjects"] if r["assetId"] != "elevator-passenger"}
        assert "floor" not in records["door-single"]
        assert records["unit-small"]["floor"] == 1
        assert records["unit-small"]["properties"] == {"rate": 95}
        assert "properties" not in records["door-single"]
        assert records["door-single"]["wallAttachment"]["wallId"].endswith(":f0:4,0-5,0")
        assert records["gate-entry"]["orientation"] == 90
        assert records["gate-entry"]["binding"]["entityId"] == "g-1"
        assert records["gate-entry"]["position"] == {"x": 0.0, "z": 8.0}

    def test_buildings(self, layout):
        data = export_document(layout).to_dict()
        main = data["buildings"][0]
        assert main["name"] == "Main"
        assert main["footprints"] == [{"minX": 0, "maxX": 5, "minZ": 0, "maxZ": 5}]
        assert [f["level"] for f in main["floors"]] == [0, 1]

    def test_save_writes_json(self, layout, tmp_path):
        path = layout.save(tmp_path / "out" / "depot.json", name="Depot")
        loaded = json.loads(path.read_text())
        assert loaded["name"] == "Depot"
        assert len(loaded["placedObjects"]) == len(layout.objects)


class TestRoundTrip:
    def test_export_import_restores_state(self, layout, tmp_path):
        path = layout.save(tmp_path / "depot.json")
        fresh = new_editor()
        report = fresh.load_document(path)
        assert report.ok
        assert report.objects_loaded == len(layout.objects)
        assert report.buildings_loaded == 2
        assert fresh.snapshot() == layout.snapshot()
        assert not fresh.can_undo

    def test_accepts_dict_and_string(self, layout):
        doc = export_document(layout)
        for source in (doc, doc.to_dict(), doc.to_json()):
            fresh = new_editor()
            import_document(fresh, source)
            assert fresh.snapshot() == layout.snapshot()

    def test_import_replaces_content(self, layout):
        target = new_editor()
        target.place_asset("unit-huge", (50, 50))
        import_document(target, export_document(layout))
        assert {o.asset_id for o in target.objects} == {o.asset_id for o in layout.objects}

    def test_document_state_carried(self, layout):
        layout.active_skins = {"storage_unit": "blue"}
        layout.active_theme_id = "dark"
        layout.show_grid = False
        layout.camera.zoom = 2.5
        fresh = new_editor()
        import_document(fresh, export_document(layout))
        assert fresh.active_skins == {"storage_unit": "blue"}
        assert fresh.active_theme_id == "dark"
        assert fresh.show_grid is False
        assert fresh.camera.zoom == 2.5


class TestImportTolerance:
    def test_unknown_asset_skipped(self, caplog):
        doc = {
            "version": "2.0.0",
            "placedObjects": [
                {"id": "obj-a", "assetId": "unit-tiny", "position": {"x": 0, "z": 0}},
                {"id": "obj-b", "assetId": "hovercraft", "position": {"x": 2, "z": 0}},
            ],
        }
        ed = new_editor()
        with caplog.at_level(logging.WARNING):
            report = import_document(ed, doc)
        assert [o.id for o in ed.objects] == ["obj-a"]
        assert not report.ok
        assert report.skipped[0].id == "obj-b"
        assert "hovercraft" in caplog.text

    def test_conflicting_objects_skipped(self):
        doc = {
            "placedObjects": [
                {"id": "obj-a", "assetId": "unit-tiny", "position": {"x": 0, "z": 0}},
                {"id": "obj-b", "assetId": "unit-tiny", "position": {"x": 0, "z": 0}},
            ],
        }
        report = import_document(new_editor(), doc)
        assert report.objects_loaded == 1
        assert report.skipped[0].reason == "occupied"

    def test_overlapping_building_skipped(self):
        doc = {
            "buildings": [
                {"id": "bld-a", "footprints": [{"minX": 0, "maxX": 2, "minZ": 0, "maxZ": 2}]},
                {"id": "bld-b", "footprints": [{"minX": 1, "maxX": 3, "minZ": 0, "maxZ": 2}]},
            ],
        }
        ed = new_editor()
        report = import_document(ed, doc)
        assert report.buildings_loaded == 1
        assert report.skipped[0].kind == "building"
        assert ed.get_building("bld-a").floor_levels() == [0]

    def test_malformed_records_skipped(self, caplog):
        doc = {
            "name": "Depot",
            "buildings": [
                {"id": "bld-a", "footprints": [{"minX": 0, "maxX": 2, "minZ": 0, "maxZ": 2}]},
                {"id": "bld-b", "footprints": [{"minX": 5, "maxZ": 2}]},
            ],
            "placedObjects": [
                {"id": "obj-a", "assetId": "unit-small", "position": {"x": 8, "z": 8}},
                {"id": "obj-b", "assetId": "unit-small"},
                "not-an-object",
            ],
        }
        ed = new_editor()
        with caplog.at_level(logging.WARNING):
            report = import_document(ed, doc)
        assert report.name == "Depot"
        assert report.buildings_loaded == 1
        assert report.objects_loaded == 1
        assert [o.id for o in ed.objects] == ["obj-a"]
        assert [(s.kind, s.id) for s in report.skipped] == [
            ("building", "bld-b"),
            ("object", "obj-b"),
            ("object", "#2"),
        ]
        assert all("invalid" in s.reason for s in report.skipped)
        assert "obj-b" in caplog.text

    def test_non_list_records_ignored(self):
        report = import_document(new_editor(), {"placedObjects": {"id": "obj-a"}})
        assert report.objects_loaded == 0
        assert any("placedObjects" in w for w in report.warnings)

    def test_unreadable_document_rejected(self):
        with pytest.raises(ValueError):
            import_document(new_editor(), "[1, 2]")

    def test_positions_round_half_up(self):
        doc = {
            "placedObjects": [
                {"id": "obj-a", "assetId": "unit-tiny", "position": {"x": 2.5, "z": 1.4}},
            ],
        }
        ed = new_editor()
        import_document(ed, doc)
        assert ed.get_object("obj-a").position == GridPosition(x=3, z=1)

    def test_unknown_skins_and_theme(self):
        doc = {
            "placedObjects": [
                {"id": "obj-a", "assetId": "unit-tiny", "position": {"x": 0, "z": 0}, "skinId": "red"},
            ],
            "activeSkins": {"storage_unit": "red", "gate": "blue"},
            "activeThemeId": "neon",
        }
        ed = new_editor(skin_ids={"blue"}, theme_ids={"default", "dark"})
        report = import_document(ed, doc)
        assert ed.get_object("obj-a").skin_id is None
        assert ed.active_skins == {"gate": "blue"}
        assert ed.active_theme_id == "default"
        assert len(report.warnings) == 3
        assert report.ok

    def test_grid_size_mismatch_warns(self):
        ed = FacilityEditor(AssetRegistry.with_defaults(), EditorConfig(cell_size=2))
        report = import_document(ed, {"gridSize": 1.0})
        assert any("grid size" in w for w in report.warnings)


class TestLegacy:
    def test_embedded_metadata_registered(self):
        doc = {
            "version": "1.0.0",
            "placedObjects": [
                {
                    "id": "obj-bench",
                    "assetId": "bench",
                    "position": {"x": 4, "y": 0, "z": 4},
                    "orientation": 90,
                    "assetMetadata": {
                        "id": "bench",
                        "name": "Bench",
                        "category": "decoration",
                        "gridUnits": {"x": 2, "z": 1},
                        "thumbnailUrl": "ignored.png",
                    },
                },
            ],
        }
        ed = new_editor()
        report = import_document(ed, doc)
        assert report.legacy
        assert report.assets_registered == 1
        assert ed.get_asset("bench").name == "Bench"
        assert sorted(ed.grid.cells_of("obj-bench")) == [(4, 4), (4, 5)]

    def test_bad_embedded_metadata(self):
        doc = {
            "placedObjects": [
                {
                    "id": "obj-x",
                    "assetId": "saucer",
                    "position": {"x": 0, "z": 0},
                    "assetMetadata": {"id": "saucer", "category": "spaceship"},
                },
            ],
        }
        report = import_document(new_editor(), doc)
        assert report.legacy
        assert [s.kind for s in report.skipped] == ["asset", "object"]

    def test_document_model_detects_legacy(self):
        assert FacilityDocument(version="1.0.0").is_legacy
        assert not FacilityDocument().is_legacy
