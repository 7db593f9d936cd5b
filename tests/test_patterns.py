"""
Tests for coverage patterns.

Tests cover:
- Checker, stripes and ordered-dither coverage rules
- Inversion
- Stochastic stipple bounds
- Vectorized coverage against the scalar form
- Dictionary serialization
"""

import unittest

import numpy as np

from INK_Libs.ColorLib.patterns import (
    Checker,
    Ordered2,
    Ordered4,
    Stipple,
    Stripes,
    coverage_grid,
    evaluate_coverage,
    pattern_from_dict,
    pattern_to_dict,
)


class TestDeterministicPatterns(unittest.TestCase):
    """Coverage rules for the deterministic variants."""

    def test_checker_cell_size_one(self):
        pattern = Checker(cell_size=1)
        self.assertEqual(evaluate_coverage(pattern, 0, 0), 0)
        self.assertEqual(evaluate_coverage(pattern, 1, 0), 1)
        self.assertEqual(evaluate_coverage(pattern, 0, 1), 1)
        self.assertEqual(evaluate_coverage(pattern, 1, 1), 0)

    def test_checker_larger_cells(self):
        pattern = Checker(cell_size=3)
        self.assertEqual(evaluate_coverage(pattern, 2, 2), 0)
        self.assertEqual(evaluate_coverage(pattern, 3, 0), 1)
        self.assertEqual(evaluate_coverage(pattern, 3, 3), 0)

    def test_stripes(self):
        pattern = Stripes(width=2)
        row = [evaluate_coverage(pattern, x, 7) for x in range(8)]
        self.assertEqual(row, [0, 0, 1, 1, 0, 0, 1, 1])

    def test_ordered2_threshold(self):
        pattern = Ordered2()
        covered = sum(evaluate_coverage(pattern, x, y, threshold=0.5) for x in range(2) for y in range(2))
        self.assertEqual(covered, 2)

    def test_ordered4_threshold_extremes(self):
        pattern = Ordered4()
        cells = [(x, y) for x in range(4) for y in range(4)]
        self.assertEqual(sum(evaluate_coverage(pattern, x, y, threshold=0.0) for x, y in cells), 0)
        self.assertEqual(sum(evaluate_coverage(pattern, x, y, threshold=1.0) for x, y in cells), 16)

    def test_ordered4_coverage_tracks_threshold(self):
        pattern = Ordered4()
        cells = [(x, y) for x in range(4) for y in range(4)]
        self.assertEqual(sum(evaluate_coverage(pattern, x, y, threshold=0.25) for x, y in cells), 4)

    def test_invert_complements_coverage(self):
        for plain, inverted in [
            (Checker(), Checker(invert=True)),
            (Stripes(), Stripes(invert=True)),
            (Ordered4(), Ordered4(invert=True)),
        ]:
            for x in range(6):
                for y in range(6):
                    self.assertEqual(
                        evaluate_coverage(plain, x, y) + evaluate_coverage(inverted, x, y), 1
                    )

    def test_invalid_parameters(self):
        with self.assertRaises(ValueError):
            Checker(cell_size=0)
        with self.assertRaises(ValueError):
            Stripes(width=0)
        with self.assertRaises(ValueError):
            Stipple(jitter=-0.1)

    def test_fractional_sizes_rejected(self):
        with self.assertRaises(ValueError):
            Checker(cell_size=2.5)
        with self.assertRaises(ValueError):
            Stripes(width=1.5)
        with self.assertRaises(ValueError):
            Checker(cell_size=True)
        with self.assertRaises(ValueError):
            pattern_from_dict({"kind": "checker", "cell_size": 2.5})

    def test_numpy_integer_sizes_accepted(self):
        pattern = Checker(cell_size=np.int64(2))
        self.assertEqual(evaluate_coverage(pattern, 1, 0), 0)
        self.assertEqual(evaluate_coverage(pattern, 2, 0), 1)
        self.assertEqual(evaluate_coverage(pattern, 2, 2), 0)

    def test_unknown_pattern_type(self):
        with self.assertRaises(TypeError):
            evaluate_coverage("checker", 0, 0)


class TestStipple(unittest.TestCase):
    """Stochastic stipple draws."""

    def test_zero_density_never_covers(self):
        rng = np.random.default_rng(3)
        pattern = Stipple(density=0.0, jitter=0.0)
        self.assertEqual(sum(evaluate_coverage(pattern, x, 0, rng=rng) for x in range(200)), 0)

    def test_full_density_always_covers(self):
        rng = np.random.default_rng(3)
        pattern = Stipple(density=1.0, jitter=0.0)
        self.assertEqual(sum(evaluate_coverage(pattern, x, 0, rng=rng) for x in range(200)), 200)

    def test_probability_is_clamped(self):
        rng = np.random.default_rng(0)
        pattern = Stipple(density=0.95, jitter=0.5)
        for _ in range(100):
            self.assertTrue(0.0 <= pattern.probability(rng) <= 1.0)

    def test_grid_density_is_roughly_respected(self):
        rng = np.random.default_rng(11)
        xs, ys = np.meshgrid(np.arange(100), np.arange(100))
        grid = coverage_grid(Stipple(density=0.5, jitter=0.0), xs, ys, rng=rng)
        self.assertAlmostEqual(grid.mean(), 0.5, delta=0.05)

    def test_seeded_draws_repeat(self):
        xs, ys = np.meshgrid(np.arange(10), np.arange(10))
        first = coverage_grid(Stipple(), xs, ys, rng=np.random.default_rng(5))
        second = coverage_grid(Stipple(), xs, ys, rng=np.random.default_rng(5))
        np.testing.assert_array_equal(first, second)


class TestCoverageGrid(unittest.TestCase):
    """coverage_grid agrees with evaluate_coverage."""

    def test_matches_scalar_form(self):
        xs, ys = np.meshgrid(np.arange(9), np.arange(7))
        for pattern in [Checker(), Checker(cell_size=1, invert=True), Stripes(width=3), Ordered2(), Ordered4(invert=True)]:
            grid = coverage_grid(pattern, xs, ys, threshold=0.6)
            self.assertEqual(grid.dtype, np.uint8)
            for y in range(7):
                for x in range(9):
                    self.assertEqual(grid[y, x], evaluate_coverage(pattern, x, y, threshold=0.6))


class TestPatternSerialization(unittest.TestCase):
    """pattern_to_dict / pattern_from_dict."""

    def test_round_trip(self):
        for pattern in [Checker(cell_size=4, invert=True), Ordered2(), Ordered4(), Stripes(width=6), Stipple(0.3, 0.1)]:
            data = pattern_to_dict(pattern)
            self.assertEqual(data["kind"], pattern.kind)
            self.assertEqual(pattern_from_dict(data), pattern)

    def test_missing_parameters_use_defaults(self):
        self.assertEqual(pattern_from_dict({"kind": "stripes"}), Stripes())

    def test_unknown_kind(self):
        with self.assertRaises(ValueError):
            pattern_from_dict({"kind": "spiral"})

    def test_bad_parameter_value(self):
        with self.assertRaises(ValueError):
            pattern_from_dict({"kind": "checker", "cell_size": 0})


if __name__ == "__main__":
    unittest.main()
