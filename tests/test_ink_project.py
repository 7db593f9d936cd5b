"""
Unit tests for ink_project module.

Tests palette editing, restricted selection, mix rule editing and
regeneration of the mapped output.
"""

import numpy as np
import pytest

from INK_Libs.ColorLib.ink_models import Color, MixEntry, MixRule, Region
from INK_Libs.ColorLib.mix_solver import MixProposal
from INK_Libs.ColorLib.patterns import Checker, Stripes
from INK_Libs.ProjStoreLib.ink_project import InkProject, regenerate


@pytest.fixture
def project():
    p = InkProject()
    p.set_palette_from_hex(["#000000", "#FFFFFF", "#FF0000"])
    return p


class TestPaletteEditing:
    """Tests for palette operations."""

    def test_set_palette_selects_all(self, project):
        assert len(project.palette) == 3
        assert project.restricted == [0, 1, 2]

    def test_set_palette_from_centers(self):
        project = InkProject()
        project.set_palette_from_centers([(1, 2, 3), (4, 5, 6)], tolerance=5.0)
        assert [ink.color for ink in project.palette] == [Color(1, 2, 3), Color(4, 5, 6)]
        assert project.palette[0].tolerance == 5.0

    def test_add_ink(self, project):
        index = project.add_ink(Color(0, 0, 255))
        assert index == 3
        assert 3 in project.restricted

    def test_remove_ink(self, project):
        project.remove_ink(2)
        assert len(project.palette) == 2
        assert project.restricted == [0, 1]
        with pytest.raises(IndexError):
            project.remove_ink(5)

    def test_set_tolerance(self, project):
        project.set_tolerance(1, 12.5)
        assert project.palette[1].tolerance == 12.5
        with pytest.raises(ValueError):
            project.set_tolerance(1, -1.0)

    def test_set_restricted_drops_unknown(self, project):
        project.set_restricted([2, 0, 2, 8])
        assert project.restricted == [0, 2]
        assert project.active_palette() == [0, 2]

    def test_empty_restriction_means_everything(self, project):
        project.set_restricted([])
        assert project.active_palette() == [0, 1, 2]


class TestMixRuleEditing:
    """Tests for mix rule operations."""

    def test_update_rule_in_place(self, project):
        project.set_mix_rule(2, MixRule(target=2, entries=[MixEntry(0, 0.5)]))
        project.update_mix_rule(2, 0, weight=0.25, pattern=Stripes(width=2))
        entry = project.mix_rules[2].entries[0]
        assert entry.weight == 0.25
        assert entry.pattern == Stripes(width=2)

    def test_update_missing_rule(self, project):
        with pytest.raises(KeyError):
            project.update_mix_rule(1, 0, weight=0.5)

    def test_update_rejects_negative_weight(self, project):
        project.set_mix_rule(2, MixRule(target=2, entries=[MixEntry(0, 0.5)]))
        with pytest.raises(ValueError):
            project.update_mix_rule(2, 0, weight=-0.5)

    def test_delete_and_clear(self, project):
        project.set_mix_rule(1, MixRule(target=1, entries=[MixEntry(0)]))
        project.set_mix_rule(2, MixRule(target=2, entries=[MixEntry(0)]))
        assert project.delete_mix_rule(1)
        assert not project.delete_mix_rule(1)
        project.clear_mix_rules()
        assert project.mix_rules == {}

    def test_apply_proposals(self, project):
        rule = MixRule(target=Color(128, 0, 0), entries=[MixEntry(0, 0.5, Checker()), MixEntry(2, 0.5, Checker(invert=True))])
        proposal = MixProposal(target=Color(128, 0, 0), rule=rule, error=1.0, target_index=2)
        assert project.apply_proposals([proposal]) == 1
        assert project.mix_rules[2] is rule

    def test_smart_mix_adopts_rule(self, project):
        project.set_restricted([0, 1])
        proposal = project.smart_mix(Color(128, 128, 128))

        assert proposal.target_index == 1
        assert project.mix_rules[1] is proposal.rule
        assert set(proposal.rule.ink_indices()) == {0, 1}
        assert [e.pattern for e in proposal.rule.entries] == [Checker(), Checker(invert=True)]

    def test_smart_mix_without_inks(self):
        assert InkProject().smart_mix(Color(1, 2, 3)) is None


class TestRegenerate:
    """Tests for regions_for and regenerate."""

    def test_restricted_inks_limit_output(self, project):
        image = np.full((3, 3, 4), 250, dtype=np.uint8)
        image[..., 3] = 255
        project.set_restricted([0, 2])
        out = regenerate(project, image)
        assert not (out[..., :3] == 255).all(axis=-1).any()

    def test_user_region_overrides_restriction(self, project):
        image = np.full((2, 3, 4), 250, dtype=np.uint8)
        image[..., 3] = 255
        project.set_restricted([0])
        mask = np.zeros((2, 3), dtype=bool)
        mask[:, 0] = True
        project.add_region(Region(mask, {1}))

        out = regenerate(project, image)
        assert (out[:, 0, :3] == 255).all()
        assert (out[:, 1:, :3] == 0).all()

    def test_regions_for_without_restriction(self, project):
        assert project.regions_for(4, 4) == []

    def test_sharpen_applied(self, project):
        project.add_ink(Color(128, 128, 128))
        image = np.zeros((5, 5, 4), dtype=np.uint8)
        image[..., 3] = 255
        image[2, 2, :3] = 128
        plain = regenerate(project, image)
        project.sharpen_edges = True
        sharpened = regenerate(project, image)
        assert plain.shape == sharpened.shape
        assert not np.array_equal(plain, sharpened)

    def test_mix_rule_applied(self, project):
        image = np.zeros((2, 2, 4), dtype=np.uint8)
        image[..., 0] = 255
        image[..., 3] = 255
        project.set_mix_rule(2, MixRule(target=2, entries=[MixEntry(1, 1.0, Checker(cell_size=1))]))
        out = regenerate(project, image)
        assert tuple(out[0, 0, :3]) == (0, 0, 0)
        assert tuple(out[0, 1, :3]) == (255, 255, 255)

    def test_snapshot_is_independent(self, project):
        snapshot = project.snapshot()
        project.add_ink(Color(1, 2, 3))
        assert len(snapshot.palette) == 3
