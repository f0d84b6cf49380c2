from __future__ import annotations

import argparse
import logging
import math
import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1] / "src"))

from hydroviz.logconfig import configure_logging
from hydroviz.orbitals import InvalidQuantumState
from hydroviz.rendering.slice import PLANES, SliceParams
from hydroviz.rendering.volume import DEFAULT_SAMPLES, VolumeParams
from hydroviz.views.orbital_view import buffer_to_qimage
from hydroviz.views.render_worker import RENDER_MODES, VOLUME, RenderRequest

logger = logging.getLogger("render_png")


def _size(text: str) -> tuple[int, int]:
    try:
        width, height = (int(part) for part in text.lower().split("x"))
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Expected WIDTHxHEIGHT, got '{text}'.") from exc
    return width, height


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Render a hydrogen orbital density image to PNG.")
    parser.add_argument("n", type=int)
    parser.add_argument("l", type=int)
    parser.add_argument("m", type=int)
    parser.add_argument("--out", type=Path, required=True)
    parser.add_argument("--mode", choices=RENDER_MODES, default=VOLUME)
    parser.add_argument("--size", type=_size, default=(256, 256), help="WIDTHxHEIGHT in pixels")
    parser.add_argument("--scale", type=float, default=50.0, help="slice pixels per bohr at n=1")
    parser.add_argument("--plane", choices=PLANES, default=PLANES[0])
    parser.add_argument("--cmap", default=None, help="matplotlib/cmcrameri colormap for slices")
    parser.add_argument("--rotate", type=float, nargs=3, default=None, metavar=("X", "Y", "Z"), help="degrees")
    parser.add_argument("--clip", type=float, nargs=3, default=(0.0, 0.0, 0.0), metavar=("X", "Y", "Z"))
    parser.add_argument("--color-scale", type=float, default=1.0)
    parser.add_argument("--samples", type=int, default=DEFAULT_SAMPLES)
    parser.add_argument("--log-level", default=None)
    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)
    width, height = args.size
    defaults = VolumeParams()
    if args.rotate is None:
        rotation = (defaults.rotation_x, defaults.rotation_y, defaults.rotation_z)
    else:
        rotation = tuple(math.radians(value) for value in args.rotate)
    try:
        request = RenderRequest(
            mode=args.mode,
            n=args.n,
            l=args.l,
            m=args.m,
            width=width,
            height=height,
            slice_params=SliceParams(scale=args.scale, plane=args.plane, cmap=args.cmap),
            volume_params=VolumeParams(
                rotation_x=rotation[0],
                rotation_y=rotation[1],
                rotation_z=rotation[2],
                clip_x=args.clip[0],
                clip_y=args.clip[1],
                clip_z=args.clip[2],
                color_scale=args.color_scale,
                samples=args.samples,
            ),
        )
        buffer = request.run()
    except InvalidQuantumState as exc:
        raise SystemExit(str(exc)) from exc
    except ValueError as exc:
        raise SystemExit(f"Invalid render parameters: {exc}") from exc

    image = buffer_to_qimage(buffer, width, height)
    args.out.parent.mkdir(parents=True, exist_ok=True)
    if not image.save(str(args.out)):
        raise SystemExit(f"Could not write {args.out}")
    logger.info("Wrote %s (%dx%d, %s)", args.out, width, height, args.mode)


if __name__ == "__main__":
    main()
