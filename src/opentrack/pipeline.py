"""
Radar Pipeline - wires the synchronizer, decoder, tracker and emitter
into one polling loop over a serial byte source.
"""

import logging
import threading
import time
from typing import Callable, List, Optional

from .config import RadarConfig
from .protocol.decoder import DecodeError, FrameDecoder
from .protocol.synchronizer import FrameSynchronizer
from .protocol.types import ParserStatistics, RawFrame
from .tracking.emitter import ReportEmitter
from .tracking.tracker import TargetTracker
from .tracking.types import Report

logger = logging.getLogger("opentrack.pipeline")
raw_logger = logging.getLogger("rd03d.raw")


class RadarPipeline:
    """
    Synchronous RD-03D processing pipeline.

    Each poll() drains the bytes currently available from the source (up to
    max_frames_per_cycle complete frames), decodes and tracks them, runs the
    slot expiry sweep and lets the emitter release a throttled Report. No
    call blocks waiting for input.

    The source is anything with `in_waiting` and `read(size)`, e.g. an
    RD03DRadar, a serial.Serial or MockRadarSource.

    Example:
        radar = RD03DRadar()
        radar.connect()
        pipeline = RadarPipeline(radar, config)
        pipeline.start(report_callback=on_report)

        # Later...
        pipeline.stop()
    """

    # Sleep between polls in the background loop
    POLL_INTERVAL_S = 0.002

    def __init__(self, source, config: Optional[RadarConfig] = None, now: Optional[float] = None):
        """
        Initialize pipeline.

        Args:
            source: Byte source with in_waiting and read(size)
            config: Shared runtime configuration
            now: Monotonic start time (default: now)
        """
        self.source = source
        self.config = config or RadarConfig()
        self.stats = ParserStatistics(started_at=time.monotonic() if now is None else now)
        self.synchronizer = FrameSynchronizer(self.stats, self.config)
        self.decoder = FrameDecoder()
        self.tracker = TargetTracker(self.config)
        self.emitter = ReportEmitter(self.config, now=now)

        self._tracker_reset_pending = False
        self._running = False
        self._poll_thread: Optional[threading.Thread] = None

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def last_report(self) -> Optional[Report]:
        return self.emitter.last_report

    def statistics(self) -> ParserStatistics:
        """Snapshot of the frame counters."""
        return self.stats.snapshot()

    def reset_statistics(self):
        """Clear frame counters (operator action)."""
        self.stats.reset()
        logger.info("Frame statistics reset")

    def apply_config(self, **changes) -> dict:
        """
        Change configuration at runtime.

        Takes effect on the next poll. A mode change is also sent to the
        sensor when the source supports it.

        Raises:
            ValueError: Invalid field or value
        """
        changed = self.config.update(**changes)
        if not changed:
            return changed

        logger.info(f"Configuration changed: {changed}")
        if "smoothing_window" in changed:
            # Rings are sized at slot creation; rebuild on the poll thread
            self._tracker_reset_pending = True
        if "multi_target" in changed and hasattr(self.source, "set_target_mode"):
            self.source.set_target_mode(self.config.mode)
        return changed

    def poll(self, now: Optional[float] = None) -> List[Report]:
        """
        Run one polling cycle.

        Args:
            now: Monotonic time for this cycle (default: now)

        Returns:
            Reports emitted during this cycle (usually zero or one)
        """
        now = time.monotonic() if now is None else now
        reports = []

        if self._tracker_reset_pending:
            self._tracker_reset_pending = False
            self.tracker.reset()

        self.synchronizer.check_timeout(now)

        frames = 0
        while frames < self.config.max_frames_per_cycle and self.source.in_waiting:
            chunk = self.source.read(1)
            if not chunk:
                break
            frame = self.synchronizer.push(chunk[0], now)
            if frame is None:
                continue
            frames += 1
            report = self._process_frame(frame)
            if report is not None:
                reports.append(report)

        self.tracker.expire(now)
        lost = self.tracker.pop_lost_cycle()
        report = self.emitter.offer(lost, self.stats, now)
        if report is not None:
            reports.append(report)
        return reports

    def _process_frame(self, frame: RawFrame) -> Optional[Report]:
        """Decode, track and offer one candidate frame."""
        raw_logger.debug(f"RX: {frame.hex}")
        try:
            samples = self.decoder.decode(frame)
        except DecodeError as e:
            self.stats.record_dropped()
            logger.debug(f"Dropped frame: {type(e).__name__}: {e}")
            return None

        self.stats.record_valid(frame.timestamp)
        cycle = self.tracker.update(samples, self.config.mode, frame.timestamp)
        return self.emitter.offer(cycle, self.stats, frame.timestamp)

    def start(self, report_callback: Optional[Callable[[Report], None]] = None):
        """
        Start polling on a background thread.

        Args:
            report_callback: Called with each emitted Report
        """
        if self._running:
            return

        if report_callback:
            self.emitter.add_listener(report_callback)
        self._running = True
        self._poll_thread = threading.Thread(target=self._poll_loop, daemon=True)
        self._poll_thread.start()
        logger.info("Radar pipeline started")

    def stop(self):
        """Stop the polling thread."""
        self._running = False
        if self._poll_thread:
            self._poll_thread.join(timeout=2.0)
            self._poll_thread = None
        logger.info("Radar pipeline stopped")

    def _poll_loop(self):
        """Internal polling loop."""
        while self._running:
            try:
                self.poll()
                time.sleep(self.POLL_INTERVAL_S)
            except Exception as e:
                logger.error(f"Poll loop error: {e}")
                time.sleep(1.0)
