"""On-disk corner-set cache with modification-time staleness checks."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Union

from errors import CacheIOError, CacheMissError
from geometry.corner_models import CornerSet, as_corner_set
from utils.work_paths import CACHE_EXT, WorkPaths


def dump_corners(corners: CornerSet) -> str:
    """Serialize corners as a JSON list with one ``[x, y]`` pair per line."""
    if not corners:
        return "[]\n"
    lines = ",\n".join(f"  {json.dumps([x, y])}" for x, y in corners)
    return f"[\n{lines}\n]\n"


def parse_corners(text: str) -> CornerSet:
    """Parse the output of :func:`dump_corners`."""
    data = json.loads(text)
    if not isinstance(data, list):
        raise ValueError("corner file must hold a JSON list")
    for pair in data:
        if not isinstance(pair, list) or len(pair) != 2:
            raise ValueError(f"bad corner entry {pair!r}")
        if not all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in pair):
            raise ValueError(f"non-numeric corner entry {pair!r}")
    return as_corner_set(data)


class FeatureCache:
    """Corner sets persisted as one text file per source image."""

    def __init__(self, paths: WorkPaths, *, force_refresh: bool = False) -> None:
        self.paths = paths
        self.force_refresh = force_refresh

    def cache_path(self, image: Union[str, Path]) -> Path:
        return self.paths.work_file(image, None, CACHE_EXT)

    def is_fresh(self, image: Union[str, Path]) -> bool:
        """A cache file is usable only if strictly newer than its source."""
        if self.force_refresh:
            return False
        cache_file = self.cache_path(image)
        try:
            cache_mtime = cache_file.stat().st_mtime_ns
        except FileNotFoundError:
            return False
        except OSError as exc:
            raise CacheIOError(f"Cannot stat cache file {cache_file}: {exc}") from exc
        try:
            source_mtime = Path(image).stat().st_mtime_ns
        except OSError:
            # Let the decode step report the missing source.
            return False
        return cache_mtime > source_mtime

    def lookup(self, image: Union[str, Path]) -> CornerSet:
        """Return cached corners for ``image`` or raise CacheMissError."""
        if not self.is_fresh(image):
            raise CacheMissError(str(image))
        return self.load(self.cache_path(image))

    def load(self, cache_file: Union[str, Path]) -> CornerSet:
        cache_file = Path(cache_file)
        try:
            with open(cache_file, "r", encoding="utf-8") as handle:
                text = handle.read()
        except FileNotFoundError as exc:
            raise CacheMissError(str(cache_file)) from exc
        except OSError as exc:
            raise CacheIOError(f"Can't open corner file '{cache_file}' for read: {exc}") from exc
        try:
            return parse_corners(text)
        except ValueError as exc:
            raise CacheIOError(f"Corrupt corner file '{cache_file}': {exc}") from exc

    def save(self, cache_file: Union[str, Path], corners: CornerSet) -> None:
        """Write corners, replacing any previous entry in one rename."""
        cache_file = Path(cache_file)
        partial = cache_file.with_name(f"{cache_file.name}.{os.getpid()}.tmp")
        try:
            with open(partial, "w", encoding="utf-8") as handle:
                handle.write(dump_corners(corners))
            os.replace(partial, cache_file)
        except OSError as exc:
            try:
                partial.unlink()
            except OSError:
                pass
            raise CacheIOError(f"Can't write corner file '{cache_file}': {exc}") from exc
