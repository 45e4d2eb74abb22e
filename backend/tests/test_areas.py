"""Tests for the named port/anchorage area configuration."""
import pytest

from vtms.config import settings
from vtms.models.base import AreaKindEnum
from vtms.models.vessel import Position
from vtms.utils import areas
from vtms.utils.areas import anchorage_areas, find_area, port_areas, reload_areas_config


@pytest.fixture(autouse=True)
def _reset_cache():
    yield
    areas._AREAS_CONFIG = None


def test_bundled_config_has_ports_and_anchorages():
    reload_areas_config()
    ports = port_areas()
    anchorages = anchorage_areas()

    assert {p.name for p in ports} >= {"Baku", "Sumqayit"}
    assert len(anchorages) == 5
    assert all(a.kind == AreaKindEnum.ANCHORAGE for a in anchorages)


def test_find_area_matches_circle():
    reload_areas_config()
    baku = Position(40.392, 49.867)
    assert find_area(baku, port_areas()).name == "Baku"
    assert find_area(Position(0.0, 0.0), port_areas()) is None


def test_missing_file_falls_back_to_defaults(monkeypatch):
    monkeypatch.setattr(settings, "AREAS_CONFIG", "/nonexistent/areas.yaml")
    reload_areas_config()
    assert len(port_areas()) == 3


def test_invalid_yaml_falls_back_to_defaults(monkeypatch, tmp_path):
    bad = tmp_path / "areas.yaml"
    bad.write_text("ports: [\n")
    monkeypatch.setattr(settings, "AREAS_CONFIG", str(bad))
    reload_areas_config()
    assert len(anchorage_areas()) == 5


def test_malformed_entries_are_skipped(monkeypatch, tmp_path):
    path = tmp_path / "areas.yaml"
    path.write_text(
        "ports:\n"
        "  - {name: Good, lat: 1.0, lon: 2.0, radius_nm: 0.5}\n"
        "  - {name: Bad, lat: 1.0}\n"
    )
    monkeypatch.setattr(settings, "AREAS_CONFIG", str(path))
    reload_areas_config()
    assert [p.name for p in port_areas()] == ["Good"]
    assert anchorage_areas() == []
