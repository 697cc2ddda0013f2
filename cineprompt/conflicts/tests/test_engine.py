import sys
from copy import deepcopy
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[3]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from cineprompt.catalog.catalog import get_default_catalog
from cineprompt.conflicts.engine import ConflictResolver, compute_blocked, resolve_conflicts
from cineprompt.conflicts.models import SelectionSnapshot


@pytest.fixture
def catalog():
    return get_default_catalog()


def test_empty_snapshot_blocks_nothing(catalog):
    result = resolve_conflicts(SelectionSnapshot(), catalog)
    assert result.blocked_atmospheres == []
    assert result.blocked_cameras == []
    assert result.active_conflicts == []
    assert result.fixed_lens is None
    assert result.zoom_range is None
    assert result.has_conflicts is False


def test_camera_category_rules_apply(catalog):
    result = resolve_conflicts(SelectionSnapshot(camera="VHS Camcorder"), catalog)
    assert set(result.blocked_atmospheres) >= {"studio", "cyberpunk"}
    assert set(result.blocked_presets) == {"vivid", "highcontrast"}
    assert set(result.blocked_dof) == {"shallow", "tilt-shift"}
    assert result.allowed_aspect_ratios == ["4:3"]
    assert "16:9" in result.blocked_aspect_ratios
    assert "none" not in result.blocked_aspect_ratios
    assert result.warning_message == "Lo-fi cameras have limited quality and fixed lenses"


@pytest.mark.parametrize(
    "camera, fixed, zoom",
    [
        ("GoPro", "ultra-wide 16mm equivalent", None),
        ("VHS Camcorder", None, "8-80mm (48-480mm equiv)"),
        ("Super 8", "fixed zoom lens", None),
        ("ARRI Alexa", None, None),
    ],
)
def test_lens_precedence(catalog, camera, fixed, zoom):
    result = resolve_conflicts(SelectionSnapshot(camera=camera), catalog)
    assert result.fixed_lens == fixed
    assert (result.zoom_range.range_label if result.zoom_range else None) == zoom


def test_zoom_cameras_never_report_category_lens(catalog):
    for camera in catalog.zoom_ranges:
        result = resolve_conflicts(SelectionSnapshot(camera=camera), catalog)
        assert result.fixed_lens is None
        assert result.zoom_range.options


def test_atmosphere_blocks_cameras_in_reverse(catalog):
    result = resolve_conflicts(SelectionSnapshot(atmosphere="studio"), catalog)
    assert "VHS Camcorder" in result.blocked_cameras
    assert "Daguerreotype" in result.blocked_cameras
    assert "ARRI Alexa" not in result.blocked_cameras


def test_director_rules_join_the_union(catalog):
    snapshot = SelectionSnapshot(director="Wes Anderson", camera="VHS Camcorder")
    result = resolve_conflicts(snapshot, catalog)
    assert {"studio", "cyberpunk", "moody"} <= set(result.blocked_atmospheres)
    assert "bleachbypass" in result.blocked_presets
    assert "iPhone Pro" in result.blocked_cameras


def test_active_conflicts_name_both_choices(catalog):
    snapshot = SelectionSnapshot(camera="VHS Camcorder", atmosphere="studio")
    result = resolve_conflicts(snapshot, catalog)
    assert '"Studio" atmosphere conflicts with VHS Camcorder' in result.active_conflicts
    assert '"VHS Camcorder" camera conflicts with Studio' in result.active_conflicts
    assert result.has_conflicts


def test_dof_conflicts_use_labels(catalog):
    snapshot = SelectionSnapshot(atmosphere="dreamy", depth_of_field="shallow")
    result = resolve_conflicts(snapshot, catalog)
    assert result.active_conflicts == ['"Shallow (Bokeh)" DOF conflicts with Dreamy']


def test_indoor_location_blocks_daylight(catalog):
    result = resolve_conflicts(SelectionSnapshot(location="Office"), catalog)
    assert {"goldenhour", "bluehour", "moonlit"} <= set(result.blocked_lighting)
    assert "softbox" not in result.blocked_lighting


def test_either_location_never_blocks_lighting(catalog):
    assert compute_blocked("lighting", SelectionSnapshot(location="Ancient Ruins"), catalog) == []
    assert compute_blocked("lighting", SelectionSnapshot(location="my backyard"), catalog) == []


def test_shot_and_director_block_lenses(catalog):
    blocked = compute_blocked("lens", SelectionSnapshot(shot="Over the Shoulder (OTS)"), catalog)
    assert {"14mm", "400mm", "Macro"} <= set(blocked)
    assert "50mm" not in blocked

    kubrick = compute_blocked("lens", SelectionSnapshot(director="Stanley Kubrick"), catalog)
    assert {"135mm", "600mm"} <= set(kubrick)


def test_lens_blocks_shots_and_recommends(catalog):
    result = resolve_conflicts(SelectionSnapshot(lens="14mm"), catalog)
    assert {"Over the Shoulder (OTS)", "Close-Up (CU)", "Extreme Close-Up (ECU)"} <= set(result.blocked_shots)
    assert result.recommended_shots == ["Extreme Wide Shot (XWS)", "Wide Shot (WS)", "Bird's Eye View"]


def test_subject_keywords_block_locations(catalog):
    snapshot = SelectionSnapshot(subject="A Formula 1 car at 200mph", location="Office")
    result = resolve_conflicts(snapshot, catalog)
    assert "Office" in result.blocked_locations
    assert "Enchanted Forest" in result.blocked_locations
    assert "Beach" not in result.blocked_locations
    assert '"Office" location conflicts with the subject' in result.active_conflicts


def test_advisory_warnings(catalog):
    moody = resolve_conflicts(SelectionSnapshot(atmosphere="moody", lighting="lowkey"), catalog)
    assert moody.warnings == ["Moody atmosphere already implies dark, low-key lighting"]

    wong = resolve_conflicts(SelectionSnapshot(director="Wong Kar-wai", lighting="neon"), catalog)
    assert wong.warnings == ["Wong Kar-wai style already implies Cyberpunk Neon"]
    assert wong.active_conflicts == []


def test_resolve_is_pure(catalog):
    snapshot = SelectionSnapshot(camera="Betacam", atmosphere="studio", director="Wes Anderson", lens="14mm")
    before = deepcopy(snapshot)
    first = resolve_conflicts(snapshot, catalog)
    second = resolve_conflicts(snapshot, catalog)
    assert first == second
    assert snapshot == before


def test_unknown_axis_raises(catalog):
    with pytest.raises(ValueError):
        compute_blocked("weather", SelectionSnapshot(), catalog)


def test_resolver_uses_stacking_settings(catalog):
    resolver = ConflictResolver(catalog, {"stacking": {"total_threshold": 2}})
    snapshot = SelectionSnapshot(director="Christopher Nolan")
    result = resolver(snapshot)
    assert result.stacking.has_style_overload is True
    assert resolver.is_blocked("atmosphere", "dreamy", snapshot)
    assert not resolver.is_blocked("atmosphere", None, snapshot)
