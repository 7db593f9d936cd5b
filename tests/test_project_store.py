"""
Unit tests for project_store module.

Tests record conversion and validation, and project file creation,
loading and saving.
"""

import json
from pathlib import Path

import numpy as np
import pytest

from INK_Libs.ColorLib.ink_models import Color, Ink, MixEntry, MixRule, Region
from INK_Libs.ColorLib.patterns import Ordered2, Stripes
from INK_Libs.MappingLib.snapshot import MapperOptions
from INK_Libs.ProjStoreLib.ink_project import InkProject
from INK_Libs.ProjStoreLib.project_store import (
    SCHEMA_VERSION,
    create_project_file,
    get_projects_dir,
    list_project_files,
    load_project,
    load_project_name,
    project_from_record,
    project_to_record,
    save_project,
)


@pytest.fixture
def sample_project():
    mask = np.zeros((3, 5), dtype=bool)
    mask[1, 1:4] = True
    mask[2, 4] = True
    return InkProject(
        palette=[Ink(Color(0, 0, 0), 10.0), Ink(Color(255, 255, 255)), Ink(Color(200, 30, 30), 0.0)],
        restricted=[0, 2],
        regions=[Region(mask, {1, 2})],
        mix_rules={
            2: MixRule(target=2, entries=[MixEntry(0, 0.5, Stripes(width=3)), MixEntry(1, 0.25, Ordered2(invert=True))]),
            1: MixRule(target=Color(250, 250, 250), entries=[MixEntry(1)]),
        },
        options=MapperOptions(weight_light=1.5, dither=True, seed=3),
        sharpen_edges=True,
    )


def through_json(record):
    return json.loads(json.dumps(record))


class TestRecordConversion:
    """Tests for project_to_record and project_from_record."""

    def test_round_trip(self, sample_project):
        record = through_json(project_to_record(sample_project, "Poster"))
        assert record["schema_version"] == SCHEMA_VERSION
        assert record["name"] == "Poster"

        loaded = project_from_record(record)
        assert loaded.palette == sample_project.palette
        assert loaded.restricted == [0, 2]
        assert len(loaded.regions) == 1
        np.testing.assert_array_equal(loaded.regions[0].mask, sample_project.regions[0].mask)
        assert loaded.regions[0].allowed == frozenset({1, 2})
        assert loaded.mix_rules == sample_project.mix_rules
        assert loaded.options == sample_project.options
        assert loaded.sharpen_edges is True

    def test_mask_is_packed_bits(self, sample_project):
        region = project_to_record(sample_project)["regions"][0]
        assert region["width"] == 5
        assert region["height"] == 3
        assert isinstance(region["mask"], str)

    def test_empty_record_gives_empty_project(self):
        project = project_from_record({})
        assert project.palette == []
        assert project.options == MapperOptions()

    def test_newer_schema_rejected(self, sample_project):
        record = project_to_record(sample_project)
        record["schema_version"] = SCHEMA_VERSION + 1
        with pytest.raises(ValueError, match="schema"):
            project_from_record(record)

    @pytest.mark.parametrize(
        "mutate",
        [
            lambda r: r.update(palette="#000000"),
            lambda r: r["palette"][0].update(hex="#00"),
            lambda r: r["palette"][0].update(tolerance=-3),
            lambda r: r.update(restricted=[0, -1]),
            lambda r: r["regions"][0].update(mask="AAAA"),
            lambda r: r["regions"][0].update(mask="not base64!"),
            lambda r: r["regions"][0].update(width=0),
            lambda r: r["mix_rules"][0]["entries"][0].update(weight=-1),
            lambda r: r["mix_rules"][0]["entries"][0].update(pattern={"kind": "spiral"}),
            lambda r: r["mix_rules"][0].update(target_index="2"),
            lambda r: r.update(options={"background_mode": "glow"}),
            lambda r: r.update(options=[]),
        ],
    )
    def test_invalid_fields_rejected(self, sample_project, mutate):
        record = through_json(project_to_record(sample_project))
        mutate(record)
        with pytest.raises(ValueError):
            project_from_record(record)

    def test_non_dict_rejected(self):
        with pytest.raises(ValueError):
            project_from_record(["palette"])


class TestGetProjectsDir:
    """Tests for get_projects_dir function."""

    def test_creates_projects_directory(self, temp_project_dir):
        projects_dir = get_projects_dir(temp_project_dir)
        assert projects_dir.is_dir()
        assert projects_dir.name == "Projects"


class TestListProjectFiles:
    """Tests for list_project_files function."""

    def test_lists_sorted_inkproj_files(self, temp_project_dir):
        projects_dir = get_projects_dir(temp_project_dir)
        (projects_dir / "zebra.inkproj").touch()
        (projects_dir / "alpha.inkproj").touch()
        (projects_dir / "notes.txt").touch()

        files = list_project_files(temp_project_dir)
        assert [f.name for f in files] == ["alpha.inkproj", "zebra.inkproj"]


class TestCreateProjectFile:
    """Tests for create_project_file function."""

    def test_sanitizes_name(self, temp_project_dir):
        path = create_project_file(temp_project_dir, "My Poster!")
        assert path.name == "My_Poster.inkproj"
        assert load_project_name(path) == "My Poster!"

    def test_unique_names(self, temp_project_dir):
        first = create_project_file(temp_project_dir, "job")
        second = create_project_file(temp_project_dir, "job")
        assert first != second
        assert second.name == "job_1.inkproj"

    def test_blank_name(self, temp_project_dir):
        path = create_project_file(temp_project_dir, "!!!")
        assert path.name == "new_project.inkproj"

    def test_initial_content(self, temp_project_dir, sample_project):
        path = create_project_file(temp_project_dir, "job", sample_project)
        assert load_project(path).palette == sample_project.palette


class TestLoadAndSave:
    """Tests for load_project and save_project."""

    def test_save_then_load(self, temp_project_dir, sample_project):
        path = create_project_file(temp_project_dir, "job")
        created_at = json.loads(path.read_text())["created_at"]

        save_project(path, sample_project)
        payload = json.loads(path.read_text())
        assert payload["name"] == "job"
        assert payload["created_at"] == created_at

        loaded = load_project(path)
        assert loaded.mix_rules == sample_project.mix_rules

    def test_save_with_new_name(self, temp_project_dir, sample_project):
        path = create_project_file(temp_project_dir, "job")
        save_project(path, sample_project, name="Renamed")
        assert load_project_name(path) == "Renamed"

    def test_load_missing_file(self, temp_project_dir):
        with pytest.raises(ValueError):
            load_project(temp_project_dir / "missing.inkproj")

    def test_load_corrupt_file(self, temp_project_dir):
        path = temp_project_dir / "broken.inkproj"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ValueError):
            load_project(path)

    def test_name_falls_back_to_stem(self, temp_project_dir):
        path = temp_project_dir / "orphan.inkproj"
        path.write_text("[]", encoding="utf-8")
        assert load_project_name(path) == "orphan"
        assert load_project_name(Path(temp_project_dir / "absent.inkproj")) == "absent"
