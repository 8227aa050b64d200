"""
Multi-slot target tracker.

Maps each decoded frame's samples onto a fixed set of per-index slots,
drops samples below the activity thresholds, and optionally smooths
position and speed with a moving average.
"""

import logging
import math
import time
from typing import List, Optional, Sequence

from ..config import RadarConfig, TrackingMode
from ..protocol.types import MAX_TARGETS, MM_TO_M, TargetSample
from .ring import SampleRing
from .types import TargetSlot, TrackedTarget, TrackingCycle

logger = logging.getLogger("opentrack.tracking.tracker")


class TargetTracker:
    """
    Per-slot target state across decode cycles.

    Single-target mode reports only the first active sample in decode order.
    When that target disappears, exactly one empty cycle is returned so
    consumers can show "no target"; later inactive cycles return None.

    Multi-target mode reports every active sample (up to max_targets) in
    its positional slot and returns a cycle on every update.

    Slots are never expired inline with update(); call expire() from the
    polling loop.

    Example:
        tracker = TargetTracker(config)
        cycle = tracker.update(samples, TrackingMode.MULTI)
        tracker.expire()
    """

    def __init__(self, config: Optional[RadarConfig] = None):
        self.config = config or RadarConfig()
        self._slots: List[TargetSlot] = []
        self._mode: Optional[TrackingMode] = None
        self._reporting = False
        self._lost_cycle: Optional[TrackingCycle] = None
        self.reset()

    @property
    def slots(self) -> List[TargetSlot]:
        return list(self._slots)

    @property
    def active_slots(self) -> List[TargetSlot]:
        return [slot for slot in self._slots if slot.active]

    @property
    def mode(self) -> Optional[TrackingMode]:
        """Mode of the most recent update, None before the first."""
        return self._mode

    def reset(self):
        """Clear every slot and rebuild rings at the configured window size."""
        self._slots = [
            TargetSlot(index=i, ring=SampleRing(self.config.smoothing_window))
            for i in range(MAX_TARGETS)
        ]
        self._reporting = False
        self._lost_cycle = None

    def is_active(self, sample: TargetSample) -> bool:
        """Whether a sample is far enough or fast enough to be a real target."""
        if sample.is_empty:
            return False
        return (sample.distance_m > self.config.min_distance_m
                or abs(sample.speed_cms) > self.config.min_speed_cms)

    def update(
        self,
        samples: Sequence[TargetSample],
        mode: TrackingMode,
        now: Optional[float] = None,
    ) -> Optional[TrackingCycle]:
        """
        Attribute one frame's samples to slots.

        Args:
            samples: Decoded samples in frame order
            mode: TrackingMode.SINGLE or TrackingMode.MULTI
            now: Monotonic time of the frame (default: now)

        Returns:
            TrackingCycle to report, or None if nothing new to report
        """
        if not isinstance(mode, TrackingMode):
            raise ValueError(f"Unknown tracking mode: {mode!r}")
        now = time.monotonic() if now is None else now

        if self._mode is not None and mode != self._mode:
            logger.info(f"Tracking mode changed {self._mode.value} -> {mode.value}, clearing slots")
            self.reset()
        self._mode = mode

        if mode == TrackingMode.SINGLE:
            return self._update_single(samples, now)
        return self._update_multi(samples, now)

    def _update_single(self, samples: Sequence[TargetSample], now: float) -> Optional[TrackingCycle]:
        for sample in samples:
            if self.is_active(sample):
                target = self._attribute(sample, now)
                self._reporting = True
                return TrackingCycle((target,), TrackingMode.SINGLE, now)

        if self._reporting:
            self._reporting = False
            return TrackingCycle((), TrackingMode.SINGLE, now)
        return None

    def _update_multi(self, samples: Sequence[TargetSample], now: float) -> TrackingCycle:
        limit = min(self.config.max_targets, MAX_TARGETS)
        targets = [
            self._attribute(sample, now)
            for sample in samples
            if sample.index < limit and self.is_active(sample)
        ]
        self._reporting = bool(targets)
        return TrackingCycle(tuple(targets), TrackingMode.MULTI, now)

    def _attribute(self, sample: TargetSample, now: float) -> TrackedTarget:
        """Store a sample in its slot and build the reported view."""
        slot = self._slots[sample.index]
        slot.last_sample = sample
        slot.last_update = now
        slot.active = True

        if self.config.enable_filtering:
            slot.ring.push(sample.x_mm, sample.y_mm, sample.speed_cms)
            x, y, speed = slot.ring.mean()
            smoothed, count = True, len(slot.ring)
        else:
            # Stale entries must not leak into a later re-enabled average
            slot.ring.clear()
            x, y, speed = float(sample.x_mm), float(sample.y_mm), float(sample.speed_cms)
            smoothed, count = False, 1

        angle = math.degrees(math.atan2(x, y)) if self.config.enable_angle else 0.0
        return TrackedTarget(
            index=sample.index,
            x_mm=x,
            y_mm=y,
            distance_m=math.hypot(x, y) * MM_TO_M,
            angle_deg=angle,
            speed_cms=speed,
            gate=sample.gate,
            smoothed=smoothed,
            sample_count=count,
        )

    def expire(self, now: Optional[float] = None) -> List[int]:
        """
        Maintenance sweep: clear slots idle longer than slot_timeout_s.

        Returns:
            Indices of the slots that were cleared
        """
        now = time.monotonic() if now is None else now
        expired = []
        for slot in self._slots:
            if slot.last_update is None:
                continue
            if now - slot.last_update > self.config.slot_timeout_s:
                slot.clear()
                expired.append(slot.index)

        if expired:
            logger.info(f"Expired idle target slots: {expired}")
            if self._reporting and not self.active_slots:
                # Radar went quiet: report "no target" once
                self._reporting = False
                self._lost_cycle = TrackingCycle((), self._mode, now)
        return expired

    def pop_lost_cycle(self) -> Optional[TrackingCycle]:
        """Empty cycle produced when expiry removed the last reported target."""
        cycle, self._lost_cycle = self._lost_cycle, None
        return cycle
