from __future__ import annotations

import sys
import unittest
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1] / "src"))

from hydroviz.views.orbital_view import buffer_to_qimage


class BufferToImageTests(unittest.TestCase):
    def test_bgra_bytes_map_to_colors(self) -> None:
        # one red pixel, one blue pixel
        buffer = bytes([0, 0, 255, 255, 255, 0, 0, 255])
        image = buffer_to_qimage(buffer, 2, 1)
        self.assertEqual((image.width(), image.height()), (2, 1))
        left = image.pixelColor(0, 0)
        right = image.pixelColor(1, 0)
        self.assertEqual((left.red(), left.green(), left.blue(), left.alpha()), (255, 0, 0, 255))
        self.assertEqual((right.red(), right.green(), right.blue()), (0, 0, 255))

    def test_image_outlives_buffer(self) -> None:
        image = buffer_to_qimage(bytes([10, 20, 30, 255]), 1, 1)
        self.assertEqual(image.pixelColor(0, 0).green(), 20)

    def test_size_mismatch(self) -> None:
        with self.assertRaises(ValueError):
            buffer_to_qimage(bytes(12), 2, 2)


if __name__ == "__main__":
    unittest.main()
