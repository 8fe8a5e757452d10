"""Render job configuration loaded from TOML.

A render configuration names the scene file, the output image and the
render settings:

    scene_config = "scenes/demo.json"   # optional, defaults to the demo scene
    output_file = "demo.png"
    width = 640
    height = 480
    supersampling = 2
    reflection_depth = 1

Relative paths are resolved against the directory of the configuration
file, so a configuration and its scene can be moved together.
"""

import logging
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

# Default reflection recursion limit
DEFAULT_REFLECTION_DEPTH = 3


@dataclass(frozen=True)
class RenderConfig:
    """Settings for one render job.

    Attributes:
        scene_config: Path to the JSON scene file, or None for the built-in
            demonstration scene.
        output_file: Path of the PNG to write.
        width: Output width in pixels.
        height: Output height in pixels.
        supersampling: Integer oversampling factor (1 disables it).
        reflection_depth: Maximum number of mirror bounces.
    """

    scene_config: Path | None
    output_file: Path
    width: int
    height: int
    supersampling: int = 1
    reflection_depth: int = DEFAULT_REFLECTION_DEPTH

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Image dimensions must be positive, got {self.width}x{self.height}")
        if self.supersampling < 1:
            raise ValueError(f"supersampling must be at least 1, got {self.supersampling}")
        if self.reflection_depth < 0:
            raise ValueError(f"reflection_depth must be non-negative, got {self.reflection_depth}")

    @classmethod
    def from_dict(cls, data: dict[str, Any], base_dir: str | Path | None = None) -> "RenderConfig":
        """Build a configuration from parsed TOML.

        Raises:
            ValueError: If a required key is missing or has the wrong type.
        """
        base = Path(base_dir) if base_dir is not None else Path.cwd()

        def path_value(key: str) -> Path | None:
            value = _get(data, key, str, None)
            if value is None:
                return None
            path = Path(value)
            return path if path.is_absolute() else base / path

        return cls(
            scene_config=path_value("scene_config"),
            output_file=path_value("output_file") or base / "image.png",
            width=_get(data, "width", int),
            height=_get(data, "height", int),
            supersampling=_get(data, "supersampling", int, 1),
            reflection_depth=_get(data, "reflection_depth", int, DEFAULT_REFLECTION_DEPTH),
        )


_MISSING = object()


def _get(data: dict[str, Any], key: str, kind: type, default: Any = _MISSING) -> Any:
    if key not in data:
        if default is _MISSING:
            raise ValueError(f"Missing required config key {key!r}")
        return default
    value = data[key]
    # bool is an int subclass; reject it for numeric settings
    if not isinstance(value, kind) or (kind is int and isinstance(value, bool)):
        raise ValueError(f"Config key {key!r} must be {kind.__name__}, got {value!r}")
    return value


def load_config(path: str | Path) -> RenderConfig:
    """Load a render configuration from a TOML file.

    Args:
        path: Path to the configuration file.

    Returns:
        The parsed RenderConfig.

    Raises:
        OSError: If the file cannot be read.
        ValueError: If the file is not valid TOML or a setting is invalid.
    """
    path = Path(path)
    with path.open("rb") as f:
        data = tomllib.load(f)
    config = RenderConfig.from_dict(data, base_dir=path.parent)
    logger.info("Loaded render config %s (%dx%d)", path, config.width, config.height)
    return config
