from __future__ import annotations

import logging
from typing import Optional

from recipe_archive.app.domain.models import ExportProgress, ProgressCallback

logger = logging.getLogger(__name__)


class ProgressReporter:
    """
    Emits step/current/total ticks for one pack or unpack run.

    ``total`` is fixed at construction and ``current`` only moves forward,
    so the reported percentage never exceeds 100. The callback is optional
    and its failures are logged, never propagated.
    """

    def __init__(self, total: int, callback: Optional[ProgressCallback] = None):
        self.total = max(0, total)
        self.current = 0
        self._callback = callback

    def advance(self, step: str, units: int = 1) -> None:
        self.current = min(self.total, self.current + max(0, units))
        self.report(step)

    def report(self, step: str) -> None:
        if self._callback is None:
            return
        try:
            self._callback(ExportProgress(step=step, current=self.current, total=self.total))
        except Exception as exc:
            logger.warning("Progress callback failed at '%s': %s", step, exc)

    def finish(self, step: str) -> None:
        self.current = self.total
        self.report(step)
