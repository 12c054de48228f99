"""Run context: structured log lines and stage timings for one classifier."""

from __future__ import annotations

import contextlib
from dataclasses import dataclass, field
from datetime import datetime, timezone
import sys
import time
import uuid
from typing import Any, Dict, Iterator, List

from utils.progress import progress_print

LOG_TAG = "[silclass]"
_ALWAYS_SHOWN = {"warning", "error"}


@dataclass
class StageTiming:
    """Timing information for a pipeline stage."""

    stage: str
    elapsed_ms: float
    started_utc: str

    def to_dict(self) -> Dict[str, object]:
        """Return a JSON-serializable dict."""
        return {
            "stage": self.stage,
            "elapsed_ms": self.elapsed_ms,
            "started_utc": self.started_utc,
        }


@dataclass
class RunContext:
    """Per-instance log sink.

    Lines below warning level are only printed when ``verbose`` is set, but
    every entry is kept in ``logs`` either way.
    """

    verbose: bool = False
    run_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    stages: List[StageTiming] = field(default_factory=list)
    logs: List[Dict[str, object]] = field(default_factory=list)

    def log(self, level: str, message: str, **fields: Any) -> str:
        """Emit a structured log line tagged with the run_id."""
        ordered_fields = " ".join(f"{key}={fields[key]}" for key in sorted(fields))
        line = f"{LOG_TAG} run_id={self.run_id} level={level} msg={message}"
        if ordered_fields:
            line = f"{line} {ordered_fields}"
        if self.verbose or level in _ALWAYS_SHOWN:
            progress_print(line, file=sys.stderr)
        self.logs.append({"level": level, "message": message, **fields})
        return line

    def debug(self, message: str, **fields: Any) -> str:
        return self.log("debug", message, **fields)

    def info(self, message: str, **fields: Any) -> str:
        return self.log("info", message, **fields)

    def warning(self, message: str, **fields: Any) -> str:
        return self.log("warning", message, **fields)

    def error(self, message: str, **fields: Any) -> str:
        return self.log("error", message, **fields)

    @contextlib.contextmanager
    def time_block(self, stage: str) -> Iterator[None]:
        """Record elapsed wall time for ``stage``."""
        start = time.perf_counter()
        started_utc = datetime.now(timezone.utc).isoformat()
        try:
            yield
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000.0
            self.stages.append(
                StageTiming(stage=stage, elapsed_ms=elapsed_ms, started_utc=started_utc)
            )
