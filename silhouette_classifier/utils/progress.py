"""Progress bar and tqdm-safe printing helpers."""

from __future__ import annotations

import sys
from typing import Iterable, Optional, TextIO, TypeVar

from tqdm import tqdm

T = TypeVar("T")

_BAR_CHARS = "⣀⣄⣆⣇⣧⣶⣷⣿"
_BAR_FORMAT = "{l_bar}{bar}| {n_fmt}/{total_fmt} [{elapsed}<{remaining}]"


def iter_progress(
    iterable: Iterable[T],
    *,
    desc: Optional[str] = None,
    total: Optional[int] = None,
    enabled: bool = True,
) -> Iterable[T]:
    """Wrap ``iterable`` in a progress bar on stderr when enabled."""
    if not enabled:
        return iterable
    return tqdm(
        iterable,
        desc=desc,
        total=total,
        ascii=_BAR_CHARS,
        bar_format=_BAR_FORMAT,
        leave=False,
        dynamic_ncols=True,
        file=sys.stderr,
    )


def progress_print(
    *args: object, enabled: bool = True, file: Optional[TextIO] = None
) -> None:
    """Print without disrupting an active tqdm bar."""
    if not enabled:
        return
    stream = file if file is not None else sys.stdout
    tqdm.write(" ".join(str(arg) for arg in args), file=stream)
