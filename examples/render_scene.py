#!/usr/bin/env python3
"""Render a scene to a PNG file.

The scene comes from a TOML render configuration, a JSON scene file, or,
when neither is given, the built-in demonstration scene (a blue sphere on
a mirrored checkerboard lit by a green light).

Usage:
    python examples/render_scene.py [options]

Options:
    --config CONFIG       TOML render configuration (overrides the options below)
    --scene SCENE         JSON scene file (default: built-in demo scene)
    --width WIDTH         Image width in pixels (default: 640)
    --height HEIGHT       Image height in pixels (default: 480)
    --supersampling N     Oversampling factor (default: 1)
    --depth DEPTH         Maximum reflection depth (default: 3)
    --output OUTPUT       Output file path (default: image.png)
    --quiet               Suppress progress output
    --verbose             Enable debug logging

Example:
    python examples/render_scene.py --config examples/render.toml
    python examples/render_scene.py --width 320 --height 240 --supersampling 2
"""

import argparse
import logging
import sys
import time
from pathlib import Path

import taichi as ti

from glint.config import DEFAULT_REFLECTION_DEPTH, RenderConfig, load_config


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Render a scene with the glint ray tracer.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="TOML render configuration (overrides the other render options)",
    )
    parser.add_argument(
        "--scene",
        type=str,
        default=None,
        help="JSON scene file (default: built-in demo scene)",
    )
    parser.add_argument(
        "--width",
        type=int,
        default=640,
        help="Image width in pixels (default: 640)",
    )
    parser.add_argument(
        "--height",
        type=int,
        default=480,
        help="Image height in pixels (default: 480)",
    )
    parser.add_argument(
        "--supersampling",
        type=int,
        default=1,
        help="Oversampling factor (default: 1)",
    )
    parser.add_argument(
        "--depth",
        type=int,
        default=DEFAULT_REFLECTION_DEPTH,
        help=f"Maximum reflection depth (default: {DEFAULT_REFLECTION_DEPTH})",
    )
    parser.add_argument(
        "--output",
        type=str,
        default="image.png",
        help="Output file path (default: image.png)",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress progress output",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    return parser.parse_args()


def render_to_file(
    scene_path: Path | None,
    output_path: Path,
    width: int,
    height: int,
    supersampling: int = 1,
    reflection_depth: int = DEFAULT_REFLECTION_DEPTH,
    quiet: bool = False,
) -> Path:
    """Load (or build) a scene, render it and save it as PNG.

    Args:
        scene_path: JSON scene file, or None for the demo scene.
        output_path: Output PNG path.
        width: Output width in pixels.
        height: Output height in pixels.
        supersampling: Oversampling factor.
        reflection_depth: Maximum reflection depth.
        quiet: If True, suppress progress output.

    Returns:
        Path to the saved image file.
    """
    # Lazy imports so Taichi fields are created after ti.init
    from glint.preview.export import render_supersampled, save_png
    from glint.scene.demo import create_demo_scene
    from glint.scene.manager import load_scene

    if scene_path is None:
        if not quiet:
            print("Building demo scene...")
        scene = create_demo_scene()
    else:
        if not quiet:
            print(f"Loading scene {scene_path}...")
        scene = load_scene(scene_path)

    if not quiet:
        print(
            f"Rendering {width}x{height} "
            f"(supersampling {supersampling}, reflection depth {reflection_depth})..."
        )

    start_time = time.time()
    image = render_supersampled(scene, width, height, reflection_depth, supersampling)
    save_png(image, output_path)

    total_time = time.time() - start_time
    if not quiet:
        print(f"Saved to: {output_path.absolute()}")
        print(f"Total time: {total_time:.2f}s")

    return output_path


def main() -> int:
    """Main entry point."""
    args = parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        if args.config is not None:
            config = load_config(args.config)
        else:
            config = RenderConfig(
                scene_config=Path(args.scene) if args.scene else None,
                output_file=Path(args.output),
                width=args.width,
                height=args.height,
                supersampling=args.supersampling,
                reflection_depth=args.depth,
            )
    except (OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    # Initialize Taichi
    # Use GPU if available, fall back to CPU
    try:
        ti.init(arch=ti.gpu)
        if not args.quiet:
            print("Using GPU backend")
    except Exception:
        ti.init(arch=ti.cpu)
        if not args.quiet:
            print("Using CPU backend")

    try:
        render_to_file(
            scene_path=config.scene_config,
            output_path=config.output_file,
            width=config.width,
            height=config.height,
            supersampling=config.supersampling,
            reflection_depth=config.reflection_depth,
            quiet=args.quiet,
        )
        return 0
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
