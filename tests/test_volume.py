from __future__ import annotations

import math
import sys
import unittest
from dataclasses import replace
from pathlib import Path

import numpy as np

sys.path.append(str(Path(__file__).resolve().parents[1] / "src"))

from hydroviz.orbitals import InvalidQuantumState
from hydroviz.rendering.buffers import unpack_bgra
from hydroviz.rendering.volume import OPACITY_CUTOFF, VolumeParams, cast_ray, render_volume, rotate

SIZE = 16
FAST = VolumeParams(samples=24)


def _pixels(n: int, l: int, m: int, params: VolumeParams, size: int = SIZE) -> np.ndarray:
    return unpack_bgra(render_volume(n, l, m, size, size, params, workers=1), size, size).astype(int)


class RotateTests(unittest.TestCase):
    def test_x_then_y(self) -> None:
        x, y, z = rotate(0.0, 1.0, 0.0, math.pi / 2.0, math.pi / 2.0, 0.0)
        self.assertAlmostEqual(x, 1.0)
        self.assertAlmostEqual(y, 0.0)
        self.assertAlmostEqual(z, 0.0)

    def test_preserves_length(self) -> None:
        point = np.array([0.3, -1.2, 2.5])
        rotated = np.array(rotate(*point, 0.4, -1.1, 2.0))
        self.assertAlmostEqual(float(np.linalg.norm(rotated)), float(np.linalg.norm(point)))

    def test_identity(self) -> None:
        self.assertEqual(rotate(1.0, 2.0, 3.0, 0.0, 0.0, 0.0), (1.0, 2.0, 3.0))


class VolumeParamsTests(unittest.TestCase):
    def test_defaults(self) -> None:
        params = VolumeParams()
        self.assertEqual((params.rotation_x, params.rotation_y, params.rotation_z), (0.3, 0.5, 0.0))
        self.assertEqual(params.samples, 50)
        self.assertTrue(params.early_exit)

    def test_rejects_bad_values(self) -> None:
        with self.assertRaises(ValueError):
            VolumeParams(samples=0)
        with self.assertRaises(ValueError):
            VolumeParams(samples=2.5)
        with self.assertRaises(ValueError):
            VolumeParams(length_scale=0.0)
        with self.assertRaises(ValueError):
            VolumeParams(color_scale=-1.0)


class RenderVolumeTests(unittest.TestCase):
    def test_buffer_size_and_opaque_alpha(self) -> None:
        buffer = render_volume(1, 0, 0, 12, 9, FAST, workers=1)
        self.assertEqual(len(buffer), 12 * 9 * 4)
        self.assertTrue(np.all(unpack_bgra(buffer, 12, 9)[..., 3] == 255))

    def test_1s_centre_lit(self) -> None:
        pixels = _pixels(1, 0, 0, FAST)
        self.assertGreater(pixels[SIZE // 2, SIZE // 2, :3].sum(), 0)

    def test_1s_invariant_under_rotation(self) -> None:
        front = _pixels(1, 0, 0, replace(FAST, rotation_x=0.0, rotation_y=0.0))
        side = _pixels(1, 0, 0, replace(FAST, rotation_x=0.0, rotation_y=math.pi / 2.0))
        self.assertLessEqual(int(np.abs(front - side).max()), 1)

    def test_early_exit_close_to_full_march(self) -> None:
        stopped = _pixels(2, 1, 0, FAST)
        full = _pixels(2, 1, 0, replace(FAST, early_exit=False))
        # a saturated ray has at most 5% of its opacity left to gain
        self.assertLessEqual(int(np.abs(stopped - full).max()), 13)

    def test_full_clip_is_black(self) -> None:
        for axis in ("clip_x", "clip_y", "clip_z"):
            pixels = _pixels(2, 1, 1, replace(FAST, **{axis: 1.0}))
            self.assertTrue(np.all(pixels[..., :3] == 0), axis)

    def test_clip_below_threshold_is_ignored(self) -> None:
        np.testing.assert_array_equal(_pixels(2, 1, 1, replace(FAST, clip_y=0.005)), _pixels(2, 1, 1, FAST))

    def test_partial_clip_removes_density(self) -> None:
        facing = replace(FAST, rotation_x=0.0, rotation_y=0.0)
        open_view = _pixels(3, 2, 0, facing)
        clipped = _pixels(3, 2, 0, replace(facing, clip_x=0.6))
        # unrotated rays keep their screen x, so columns beyond the slab go dark
        self.assertGreater(open_view[:, :3, :3].sum(), 0)
        self.assertTrue(np.all(clipped[:, :3, :3] == 0))
        self.assertLessEqual(int(np.abs(clipped[:, 6:10] - open_view[:, 6:10]).max()), 1)

    def test_zero_color_scale_is_black(self) -> None:
        pixels = _pixels(1, 0, 0, replace(FAST, color_scale=0.0))
        self.assertTrue(np.all(pixels[..., :3] == 0))

    def test_parallel_matches_serial(self) -> None:
        serial = _pixels(2, 1, -1, FAST)
        parallel = unpack_bgra(render_volume(2, 1, -1, SIZE, SIZE, FAST, workers=3), SIZE, SIZE).astype(int)
        self.assertLessEqual(int(np.abs(serial - parallel).max()), 1)

    def test_invalid_arguments(self) -> None:
        with self.assertRaises(InvalidQuantumState):
            render_volume(2, 2, 0, 8, 8)
        with self.assertRaises(ValueError):
            render_volume(1, 0, 0, 8, -1)
        with self.assertRaises(TypeError):
            render_volume(1, 0, 0, 8, 8, {"samples": 10})


class CastRayTests(unittest.TestCase):
    def test_matches_rendered_pixel(self) -> None:
        pixels = _pixels(2, 1, 0, FAST)
        for x, y in ((8, 4), (3, 11), (8, 8)):
            ray = cast_ray(2, 1, 0, x, y, SIZE, SIZE, FAST)
            blue, green, red = pixels[y, x, :3]
            self.assertLessEqual(max(abs(ray.rgb[0] - red), abs(ray.rgb[1] - green), abs(ray.rgb[2] - blue)), 1)

    def test_alpha_history(self) -> None:
        ray = cast_ray(1, 0, 0, SIZE // 2, SIZE // 2, SIZE, SIZE, FAST)
        history = np.array(ray.alpha_history)
        self.assertEqual(len(history), FAST.samples)
        self.assertTrue(np.all(np.diff(history) >= 0.0))
        self.assertAlmostEqual(history[-1], ray.alpha)
        self.assertGreater(ray.alpha, OPACITY_CUTOFF)
        saturated = int(np.argmax(history > OPACITY_CUTOFF))
        np.testing.assert_array_equal(history[saturated:], history[saturated])

    def test_pixel_outside_image(self) -> None:
        with self.assertRaises(ValueError):
            cast_ray(1, 0, 0, SIZE, 0, SIZE, SIZE, FAST)


if __name__ == "__main__":
    unittest.main()
