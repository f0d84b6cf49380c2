from __future__ import annotations

import sys
import unittest
from pathlib import Path

import numpy as np

sys.path.append(str(Path(__file__).resolve().parents[1] / "src"))

from hydroviz.colormap import colorize, colorize_with_cmap, density_to_color, resolve_cmap


class FireColormapTests(unittest.TestCase):
    def test_endpoints(self) -> None:
        self.assertEqual(density_to_color(0.0), (0, 0, 0))
        self.assertEqual(density_to_color(1.0), (255, 255, 255))

    def test_interpolates_between_stops(self) -> None:
        r, g, b = density_to_color(0.5)
        self.assertEqual((r, b), (229, 0))
        self.assertAlmostEqual(g, 63, delta=1)

    def test_lands_on_stop(self) -> None:
        r, g, b = density_to_color(0.2)
        self.assertAlmostEqual(r, 76, delta=1)
        self.assertEqual(g, 0)
        self.assertAlmostEqual(b, 153, delta=1)

    def test_out_of_range_and_nan_are_clamped(self) -> None:
        self.assertEqual(density_to_color(-3.0), (0, 0, 0))
        self.assertEqual(density_to_color(7.5), (255, 255, 255))
        self.assertEqual(density_to_color(float("nan")), (0, 0, 0))

    def test_vectorized_shape_and_dtype(self) -> None:
        rgb = colorize(np.linspace(0.0, 1.0, 12).reshape(3, 4))
        self.assertEqual(rgb.shape, (3, 4, 3))
        self.assertEqual(rgb.dtype, np.uint8)

    def test_red_channel_monotonic(self) -> None:
        rgb = colorize(np.linspace(0.0, 1.0, 256))
        self.assertTrue(np.all(np.diff(rgb[:, 0].astype(int)) >= 0))

    def test_luminance_rises_within_each_segment(self) -> None:
        for low, high in zip(np.linspace(0.0, 0.8, 5), np.linspace(0.2, 1.0, 5)):
            rgb = colorize(np.linspace(low, high - 1e-6, 64)).astype(float)
            luminance = rgb @ np.array([0.299, 0.587, 0.114])
            self.assertTrue(np.all(np.diff(luminance) >= -1.0), (low, high))
            self.assertGreater(luminance[-1], luminance[0])

    def test_vectorized_matches_scalar(self) -> None:
        values = np.linspace(-0.1, 1.1, 97)
        rgb = colorize(values)
        for value, row in zip(values, rgb):
            self.assertEqual(density_to_color(float(value)), tuple(int(c) for c in row))


class NamedColormapTests(unittest.TestCase):
    def test_fire_name_uses_builtin_stops(self) -> None:
        values = np.linspace(0.0, 1.0, 9)
        np.testing.assert_array_equal(colorize_with_cmap(values, "fire"), colorize(values))
        np.testing.assert_array_equal(colorize_with_cmap(values, None), colorize(values))

    def test_matplotlib_colormap(self) -> None:
        rgb = colorize_with_cmap(np.array([0.0, 1.0]), "gray")
        np.testing.assert_array_equal(rgb[0], [0, 0, 0])
        np.testing.assert_array_equal(rgb[1], [255, 255, 255])

    def test_crameri_colormap_resolves(self) -> None:
        self.assertEqual(resolve_cmap("batlow").name.split(".")[-1], "batlow")

    def test_unknown_name_falls_back_to_viridis(self) -> None:
        self.assertEqual(resolve_cmap("not-a-colormap").name, "viridis")


if __name__ == "__main__":
    unittest.main()
