"""Scan a training tree of category directories into corner sets."""

from __future__ import annotations

from pathlib import Path
from types import MappingProxyType
from typing import Dict, List, Optional, Tuple, Union

from errors import ConfigurationError
from geometry.corner_models import TrainingExample, TrainingIndex
from integration.corner_extractor import CornerExtractor
from utils.progress import iter_progress
from utils.run_context import RunContext
from utils.work_paths import WorkPaths, base_name, is_work_artifact


def _sorted_entries(directory: Path) -> List[Path]:
    try:
        entries = list(directory.iterdir())
    except OSError as exc:
        raise ConfigurationError(f"Cannot list directory {directory}: {exc}") from exc
    return sorted(
        (entry for entry in entries if not entry.name.startswith(".")),
        key=lambda entry: entry.name,
    )


def list_categories(training_dir: Union[str, Path]) -> List[Path]:
    """Category directories directly under ``training_dir``, sorted by name."""
    training_dir = Path(training_dir)
    if not training_dir.is_dir():
        raise ConfigurationError(f"Training directory not found: {training_dir}")
    return [entry for entry in _sorted_entries(training_dir) if entry.is_dir()]


def list_images(
    category_dir: Union[str, Path], *, skip_artifacts: bool = False
) -> List[Path]:
    """Image files in a category directory, sorted by name.

    With ``skip_artifacts`` the cache files and debug images this tool writes
    are left out; only set it when the work files land in ``category_dir``.

    Raises:
        ConfigurationError: Two files share a base name, and so a cache file
    """
    images: List[Path] = []
    stems: Dict[str, Path] = {}
    for entry in _sorted_entries(Path(category_dir)):
        if not entry.is_file() or (skip_artifacts and is_work_artifact(entry)):
            continue
        stem = base_name(entry)
        if stem in stems:
            raise ConfigurationError(
                f"{stems[stem].name} and {entry.name} in {category_dir} "
                f"would share the cache file {stem}.corners"
            )
        stems[stem] = entry
        images.append(entry)
    return images


def build_training_index(
    training_dir: Union[str, Path],
    extractor: CornerExtractor,
    *,
    work_dir: Optional[Union[str, Path]] = None,
    context: Optional[RunContext] = None,
    show_progress: bool = False,
) -> TrainingIndex:
    """
    Extract every training image's corners, grouped by category.

    Categories and files are visited in name order so classification ties
    resolve the same way on every run. Work artifacts are skipped only in
    categories that ``work_dir`` (default ``training_dir``) writes into.
    Extraction errors propagate.

    Returns:
        Read-only mapping of category name to its training examples
    """
    context = context or RunContext()
    paths = WorkPaths(Path(training_dir), Path(work_dir or training_dir))
    work: List[Tuple[str, Path]] = []
    data: Dict[str, List[TrainingExample]] = {}
    for category_dir in list_categories(training_dir):
        data[category_dir.name] = []
        skip = paths.writes_into(category_dir)
        for image in list_images(category_dir, skip_artifacts=skip):
            work.append((category_dir.name, image))

    for category, image in iter_progress(
        work, desc="Loading training images", total=len(work), enabled=show_progress
    ):
        corners = extractor.extract(image, cacheable=True)
        data[category].append(TrainingExample(source=image.name, corners=corners))

    for category, examples in data.items():
        context.info("loaded category", category=category, examples=len(examples))
    return MappingProxyType({name: tuple(examples) for name, examples in data.items()})
