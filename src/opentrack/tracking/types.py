"""
Data types for target tracking and reporting.

TrackedTarget and Report are immutable and built fresh for every cycle, so
they can be handed to other threads (web server, console) without copying.
"""

from dataclasses import dataclass, field
from typing import Optional, Tuple

from ..config import TrackingMode
from ..protocol.types import TargetSample
from .ring import SampleRing


@dataclass(frozen=True)
class TrackedTarget:
    """
    Reported state of one target slot.

    Attributes:
        index: Slot index (0-2), the target's position in the frame
        x_mm: Lateral position (smoothed if smoothed=True)
        y_mm: Forward position (smoothed if smoothed=True)
        distance_m: Distance recomputed from the reported position
        angle_deg: Bearing from the forward axis, 0 if disabled
        speed_cms: Speed (smoothed if smoothed=True)
        gate: Raw range-gate value of the latest sample
        smoothed: Whether the moving average was applied
        sample_count: Samples in the average (1 when not smoothed)
    """
    index: int
    x_mm: float
    y_mm: float
    distance_m: float
    angle_deg: float
    speed_cms: float
    gate: int
    smoothed: bool = False
    sample_count: int = 1


@dataclass(frozen=True)
class TrackingCycle:
    """Targets reported by one tracker update. Empty means "no target"."""
    targets: Tuple[TrackedTarget, ...]
    mode: TrackingMode
    timestamp: float


@dataclass(frozen=True)
class Report:
    """
    Throttled output handed to display, logging and web consumers.

    Attributes:
        targets: Active targets; empty tuple is an explicit "no target"
        mode: Tracking mode in effect for the cycle
        valid_frames: Cumulative valid frame count at emission
        dropped_frames: Cumulative dropped frame count at emission
        success_rate: Valid / total frames, percent
        timestamp: Monotonic time of emission
    """
    targets: Tuple[TrackedTarget, ...]
    mode: TrackingMode
    valid_frames: int
    dropped_frames: int
    success_rate: float
    timestamp: float

    @property
    def has_targets(self) -> bool:
        return bool(self.targets)

    @property
    def primary(self) -> Optional[TrackedTarget]:
        """First reported target, the only one in single-target mode."""
        return self.targets[0] if self.targets else None


@dataclass
class TargetSlot:
    """
    Tracker-owned state for one target index.

    Attributes:
        index: Slot index (0-2)
        ring: Recent (x, y, speed) samples for smoothing
        last_sample: Most recent sample attributed to this slot
        last_update: Monotonic time of the most recent sample
        active: Whether the slot currently holds a live target
    """
    index: int
    ring: SampleRing = field(default_factory=SampleRing)
    last_sample: Optional[TargetSample] = None
    last_update: Optional[float] = None
    active: bool = False

    @property
    def sample_count(self) -> int:
        return len(self.ring)

    def clear(self):
        """Return the slot to its empty state."""
        self.ring.clear()
        self.last_sample = None
        self.last_update = None
        self.active = False
