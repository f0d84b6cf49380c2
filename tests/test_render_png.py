from __future__ import annotations

import importlib.util
import subprocess
import sys
import tempfile
import textwrap
import unittest
from pathlib import Path

from PySide6 import QtGui

ROOT = Path(__file__).resolve().parents[1]
SCRIPT = ROOT / "tools" / "render_png.py"
sys.path.append(str(ROOT / "src"))


def _load_cli():
    spec = importlib.util.spec_from_file_location("render_png", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


class RenderPngTests(unittest.TestCase):
    def test_writes_png_of_requested_size(self) -> None:
        cli = _load_cli()
        with tempfile.TemporaryDirectory() as tmp:
            out = Path(tmp) / "frames" / "2p.png"
            cli.main(["2", "1", "0", "--out", str(out), "--mode", "slice", "--size", "24x16", "--scale", "20"])
            image = QtGui.QImage(str(out))
            self.assertEqual((image.width(), image.height()), (24, 16))

    def test_invalid_state_exits(self) -> None:
        cli = _load_cli()
        with tempfile.TemporaryDirectory() as tmp:
            with self.assertRaises(SystemExit):
                cli.main(["1", "1", "0", "--out", str(Path(tmp) / "bad.png")])

    def test_does_not_import_viewer_stack(self) -> None:
        code = textwrap.dedent(
            f"""
            import importlib.util, sys
            spec = importlib.util.spec_from_file_location("render_png", {str(SCRIPT)!r})
            spec.loader.exec_module(importlib.util.module_from_spec(spec))
            heavy = [name for name in ("hydroviz.views.main_window", "pyvistaqt", "qtawesome") if name in sys.modules]
            print(",".join(heavy))
            """
        )
        result = subprocess.run([sys.executable, "-c", code], capture_output=True, text=True, check=True)
        self.assertEqual(result.stdout.strip(), "")


if __name__ == "__main__":
    unittest.main()
