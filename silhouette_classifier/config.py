"""Configuration models for the silhouette classifier."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from enum import IntEnum
import json
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

from errors import ConfigurationError


DEBUG_IMAGE_EXTS = ("bmp", "gif", "png", "tif", "tiff")


class DebugLevel(IntEnum):
    """Debug image verbosity. Each level includes everything below it.

    OFF: no debug images.
    COMPOSITE: annotated composite (darkened subject, edges, corner markers).
    STAGES: additionally the raw silhouette and raw edge mask.
    CLIP: additionally the clipped subject before binarization.
    """

    OFF = 0
    COMPOSITE = 1
    STAGES = 2
    CLIP = 3


@dataclass(frozen=True)
class EdgeDetectConfig:
    """Parameters passed to the edge detector."""

    kernel_radius: float = 1.5
    kernel_width: int = 3
    low_threshold: float = 50.0
    high_threshold: float = 150.0

    def validate(self) -> None:
        """Validate configuration values."""
        if self.kernel_radius <= 0:
            raise ConfigurationError("kernel_radius must be > 0")
        if self.kernel_width < 1:
            raise ConfigurationError("kernel_width must be >= 1")
        if self.low_threshold < 0 or self.high_threshold < 0:
            raise ConfigurationError("edge thresholds must be >= 0")
        if self.low_threshold > self.high_threshold:
            raise ConfigurationError("low_threshold must not exceed high_threshold")

    def to_dict(self) -> Dict[str, object]:
        """Return a JSON-serializable dict."""
        return {
            "kernel_radius": self.kernel_radius,
            "kernel_width": self.kernel_width,
            "low_threshold": self.low_threshold,
            "high_threshold": self.high_threshold,
        }


@dataclass(frozen=True)
class CornerDetectConfig:
    """Parameters passed to the corner detector."""

    sensitivity: int = 5
    contrast: int = 128
    turn_angle_threshold: float = 35.0
    min_separation: float = 4.0
    max_corners: int = 64

    def validate(self) -> None:
        """Validate configuration values."""
        if self.sensitivity < 1:
            raise ConfigurationError("sensitivity must be >= 1")
        if not (0 <= self.contrast <= 255):
            raise ConfigurationError("contrast must be in [0, 255]")
        if not (0.0 < self.turn_angle_threshold < 180.0):
            raise ConfigurationError("turn_angle_threshold must be in (0, 180)")
        if self.min_separation < 0:
            raise ConfigurationError("min_separation must be >= 0")
        if self.max_corners < 1:
            raise ConfigurationError("max_corners must be >= 1")

    def to_dict(self) -> Dict[str, object]:
        """Return a JSON-serializable dict."""
        return {
            "sensitivity": self.sensitivity,
            "contrast": self.contrast,
            "turn_angle_threshold": self.turn_angle_threshold,
            "min_separation": self.min_separation,
            "max_corners": self.max_corners,
        }


@dataclass(frozen=True)
class SilhouetteConfig:
    """Settings for normalizing source images into silhouettes."""

    render_density: int = 8
    resize_blur: float = 0.8
    fuzz: float = 0.02
    min_transparency: float = 0.01

    def validate(self) -> None:
        """Validate configuration values."""
        if self.render_density < 1:
            raise ConfigurationError("render_density must be >= 1")
        if self.resize_blur < 0:
            raise ConfigurationError("resize_blur must be >= 0")
        if not (0.0 <= self.fuzz <= 1.0):
            raise ConfigurationError("fuzz must be in [0, 1]")
        if not (0.0 <= self.min_transparency <= 1.0):
            raise ConfigurationError("min_transparency must be in [0, 1]")

    def to_dict(self) -> Dict[str, object]:
        """Return a JSON-serializable dict."""
        return {
            "render_density": self.render_density,
            "resize_blur": self.resize_blur,
            "fuzz": self.fuzz,
            "min_transparency": self.min_transparency,
        }


@dataclass(frozen=True)
class ClassifierConfig:
    """Root configuration for a classifier instance.

    ``work_dir`` defaults to ``training_dir`` and ``match_radius`` to
    ``image_size / 20``. Both are resolved at construction, after which the
    whole object is immutable and already validated.
    """

    training_dir: Path
    work_dir: Optional[Path] = None
    image_size: int = 200
    image_border: int = 4
    match_radius: Optional[float] = None
    debug_level: DebugLevel = DebugLevel.OFF
    force_refresh: bool = False
    debug_image_ext: str = "gif"
    verbose: bool = False
    edge: EdgeDetectConfig = field(default_factory=EdgeDetectConfig)
    corner: CornerDetectConfig = field(default_factory=CornerDetectConfig)
    silhouette: SilhouetteConfig = field(default_factory=SilhouetteConfig)

    def __post_init__(self) -> None:
        if self.training_dir is None or str(self.training_dir) == "":
            raise ConfigurationError("training_dir is required")
        object.__setattr__(self, "training_dir", Path(self.training_dir))
        work_dir = self.training_dir if self.work_dir is None else Path(self.work_dir)
        object.__setattr__(self, "work_dir", work_dir)
        if self.match_radius is None:
            object.__setattr__(self, "match_radius", self.image_size / 20.0)
        try:
            object.__setattr__(self, "debug_level", DebugLevel(int(self.debug_level)))
        except ValueError as exc:
            raise ConfigurationError(
                f"debug_level must be one of {[level.value for level in DebugLevel]}"
            ) from exc
        self.validate()

    @property
    def scaled_size(self) -> int:
        """Side of the box the subject is scaled into."""
        return self.image_size - 2 * self.image_border

    def validate(self) -> None:
        """Validate configuration values across groups."""
        if self.image_size < 8:
            raise ConfigurationError("image_size must be >= 8")
        if self.image_border < 0:
            raise ConfigurationError("image_border must be >= 0")
        if self.scaled_size < 1:
            raise ConfigurationError("image_border leaves no room for the subject")
        if self.match_radius is None or self.match_radius <= 0:
            raise ConfigurationError("match_radius must be > 0")
        if self.debug_image_ext not in DEBUG_IMAGE_EXTS:
            raise ConfigurationError(
                f"debug_image_ext must be one of {sorted(DEBUG_IMAGE_EXTS)}"
            )
        self.edge.validate()
        self.corner.validate()
        self.silhouette.validate()

    def to_dict(self) -> Dict[str, object]:
        """Return a JSON-serializable dict."""
        return {
            "training_dir": str(self.training_dir),
            "work_dir": str(self.work_dir),
            "image_size": self.image_size,
            "image_border": self.image_border,
            "match_radius": self.match_radius,
            "debug_level": int(self.debug_level),
            "force_refresh": self.force_refresh,
            "debug_image_ext": self.debug_image_ext,
            "verbose": self.verbose,
            "edge": self.edge.to_dict(),
            "corner": self.corner.to_dict(),
            "silhouette": self.silhouette.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ClassifierConfig":
        """Build a config from a dict shaped like ``to_dict()`` output."""
        groups = {
            "edge": EdgeDetectConfig,
            "corner": CornerDetectConfig,
            "silhouette": SilhouetteConfig,
        }
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ConfigurationError(f"Unknown config keys: {sorted(unknown)}")

        kwargs: Dict[str, Any] = {}
        for key, value in data.items():
            group_cls = groups.get(key)
            if group_cls is None:
                kwargs[key] = value
                continue
            if not isinstance(value, Mapping):
                raise ConfigurationError(f"{key} must be a mapping")
            group_known = {f.name for f in fields(group_cls)}
            bad = set(value) - group_known
            if bad:
                raise ConfigurationError(f"Unknown {key} keys: {sorted(bad)}")
            kwargs[key] = group_cls(**value)
        try:
            return cls(**kwargs)
        except TypeError as exc:
            raise ConfigurationError(str(exc)) from exc


def load_config_file(
    path: Union[str, Path], **overrides: Any
) -> ClassifierConfig:
    """Read a JSON config file; keyword overrides win over file values.

    Overrides set to ``None`` are ignored so CLI defaults don't mask the file.
    """
    try:
        with open(path, "r", encoding="utf-8") as handle:
            data = json.load(handle)
    except OSError as exc:
        raise ConfigurationError(f"Cannot read config file {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Config file {path} is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a JSON object")

    data.update({key: value for key, value in overrides.items() if value is not None})
    return ClassifierConfig.from_dict(data)
