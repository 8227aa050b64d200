"""
Report emitter: throttles tracker output to at most one Report per
output interval. Performs no I/O; listeners decide where reports go.
"""

import time
from typing import Callable, List, Optional

from ..config import RadarConfig
from ..protocol.types import ParserStatistics
from .types import Report, TrackingCycle


class ReportEmitter:
    """
    Rate-limits tracking cycles into Reports.

    The latest offered cycle is held as pending and replaced by newer ones.
    Once output_interval_s has passed since the previous emission (or since
    construction/reset), the pending cycle is packaged with the current
    statistics and emitted. Frames inside the window are still counted by
    the statistics; they just do not produce their own Report.
    """

    def __init__(self, config: Optional[RadarConfig] = None, now: Optional[float] = None):
        self.config = config or RadarConfig()
        self._listeners: List[Callable[[Report], None]] = []
        self._pending: Optional[TrackingCycle] = None
        self._last_emit = time.monotonic() if now is None else now
        self.last_report: Optional[Report] = None
        self.reports_emitted = 0

    @property
    def has_pending(self) -> bool:
        return self._pending is not None

    def add_listener(self, callback: Callable[[Report], None]):
        """Register a callback invoked with each emitted Report."""
        self._listeners.append(callback)

    def remove_listener(self, callback: Callable[[Report], None]):
        if callback in self._listeners:
            self._listeners.remove(callback)

    def reset(self, now: Optional[float] = None):
        """Drop any pending cycle and restart the throttle window."""
        self._pending = None
        self._last_emit = time.monotonic() if now is None else now

    def offer(
        self,
        cycle: Optional[TrackingCycle],
        stats: ParserStatistics,
        now: Optional[float] = None,
    ) -> Optional[Report]:
        """
        Submit a tracking cycle (None means nothing new) and emit if due.

        Returns:
            The Report emitted by this call, if any
        """
        if cycle is not None:
            self._pending = cycle
        return self.poll(stats, now)

    def poll(self, stats: ParserStatistics, now: Optional[float] = None) -> Optional[Report]:
        """Emit the pending cycle if the throttle interval has elapsed."""
        if self._pending is None:
            return None
        now = time.monotonic() if now is None else now
        if now - self._last_emit < self.config.output_interval_s:
            return None
        return self._emit(stats, now)

    def _emit(self, stats: ParserStatistics, now: float) -> Report:
        cycle = self._pending
        report = Report(
            targets=cycle.targets,
            mode=cycle.mode,
            valid_frames=stats.valid_frames,
            dropped_frames=stats.dropped_frames,
            success_rate=stats.success_rate,
            timestamp=now,
        )
        self._pending = None
        self._last_emit = now
        self.last_report = report
        self.reports_emitted += 1

        for listener in list(self._listeners):
            listener(report)
        return report
