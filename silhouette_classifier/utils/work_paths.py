"""Mapping from source images to cache and debug files under the work dir."""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path
import re
from typing import Optional, Union

from config import DEBUG_IMAGE_EXTS
from errors import CacheIOError

CACHE_EXT = "corners"
DEBUG_STAGES = ("composite", "silhouette", "edges", "clip")
_PARTIAL_SUFFIX = ".tmp"
_DEBUG_IMAGE_RE = re.compile(
    rf"-({'|'.join(DEBUG_STAGES)})\.({'|'.join(map(re.escape, DEBUG_IMAGE_EXTS))})$"
)


def base_name(image: Union[str, Path]) -> str:
    """File name without its final extension."""
    path = Path(image)
    return path.stem or path.name


def _absolute(path: Union[str, Path]) -> Path:
    # Normalizes ".." without following symlinks.
    return Path(os.path.abspath(path))


@dataclass(frozen=True)
class WorkPaths:
    """Mirror the training tree under ``work_dir``.

    An image at ``training_dir/<rel>/<name>.<ext>`` maps to
    ``work_dir/<rel>/<name>[-<kind>].<ext2>``. Images outside the training
    tree map straight into ``work_dir``. Paths are compared as written, so a
    symlinked category keeps its own subdirectory.
    """

    training_dir: Path
    work_dir: Path

    def relative_dir(self, image: Union[str, Path]) -> Path:
        parent = _absolute(image).parent
        try:
            return parent.relative_to(_absolute(self.training_dir))
        except ValueError:
            return Path()

    def work_dir_for(self, image: Union[str, Path]) -> Path:
        """Directory holding the work files of ``image`` (not created)."""
        return Path(self.work_dir) / self.relative_dir(image)

    def writes_into(self, directory: Union[str, Path]) -> bool:
        """True if work files for images in ``directory`` land in ``directory`` itself."""
        target = self.work_dir_for(Path(directory) / "_")
        try:
            return target.resolve() == Path(directory).resolve()
        except OSError:
            return False

    def work_file(
        self, image: Union[str, Path], kind: Optional[str], ext: str
    ) -> Path:
        """Return the work file for ``image``, creating its directory."""
        directory = self.work_dir_for(image)
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise CacheIOError(f"Cannot create work directory {directory}: {exc}") from exc
        suffix = f"-{kind}" if kind else ""
        return directory / f"{base_name(image)}{suffix}.{ext}"


def is_work_artifact(path: Union[str, Path]) -> bool:
    """True for files this tool writes: cache files, partial writes, debug images.

    Debug images are recognised in every supported extension, so output from
    a run with a different ``debug_image_ext`` is still skipped.
    """
    name = Path(path).name
    if name.endswith(f".{CACHE_EXT}") or name.endswith(_PARTIAL_SUFFIX):
        return True
    return _DEBUG_IMAGE_RE.search(name) is not None
