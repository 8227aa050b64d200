"""
Data types and wire constants for the RD-03D binary report protocol.

Each report is a fixed 30-byte frame:

    offset  size  field
    0       1     header mark, 0xAA (multi-target) or 0xAB (single-target)
    1       1     header mark, always 0xFF
    2       1     declared target count (1-3)
    3       1     reserved
    4+8*i   8     target i: x, y, speed, gate (little-endian u16 each)
    28      2     footer, 0x55 0xCC

Signed quantities use offset encoding, not two's complement. See
decoder.py for the exact conventions.
"""

import math
import time
from dataclasses import dataclass, field
from typing import Optional

# Framing
FRAME_LENGTH = 30
HEADER_FIRST_BYTES = frozenset({0xAA, 0xAB})
HEADER_SECOND_BYTE = 0xFF
FOOTER = b"\x55\xcc"
FOOTER_OFFSET = FRAME_LENGTH - len(FOOTER)

# Layout
COUNT_OFFSET = 2
TARGETS_OFFSET = 4
TARGET_STRIDE = 8
MAX_TARGETS = 3

# Field encoding
X_CENTER_OFFSET = 0x0200
Y_BASELINE = 0x8000
SPEED_BASELINE = 0x8000
SPEED_LIMIT_CMS = 1000

# Raw distance unit is millimetres
MM_TO_M = 0.001


@dataclass(frozen=True)
class RawFrame:
    """
    One complete 30-byte candidate frame from the synchronizer.

    Attributes:
        data: Exactly FRAME_LENGTH bytes, header through footer
        timestamp: Monotonic time the last byte arrived (seconds)
    """
    data: bytes
    timestamp: float

    def __post_init__(self):
        if len(self.data) != FRAME_LENGTH:
            raise ValueError(f"RawFrame must be {FRAME_LENGTH} bytes, got {len(self.data)}")

    @property
    def hex(self) -> str:
        """Spaced hex dump, as written to the raw log."""
        return self.data.hex(" ")


@dataclass(frozen=True)
class TargetSample:
    """
    A single decoded target measurement.

    Attributes:
        index: Position of the target in the frame (0-2)
        x_mm: Lateral position, signed, millimetres
        y_mm: Forward position, signed, millimetres
        speed_cms: Radial speed, signed, cm/s (clamped to +/-1000)
        gate: Raw range-gate value, passed through unmodified
        timestamp: Arrival time of the frame that carried it
        is_empty: True when every raw word was zero (unused hardware slot)
    """
    index: int
    x_mm: int
    y_mm: int
    speed_cms: int
    gate: int
    timestamp: float = 0.0
    is_empty: bool = False

    @property
    def distance_m(self) -> float:
        """Straight-line distance from the sensor in metres."""
        return math.hypot(self.x_mm, self.y_mm) * MM_TO_M

    @property
    def angle_deg(self) -> float:
        """Bearing from the forward axis in degrees (positive = right)."""
        return math.degrees(math.atan2(self.x_mm, self.y_mm))


@dataclass
class ParserStatistics:
    """
    Frame counters for the whole run.

    Only an explicit reset() clears them.
    """
    valid_frames: int = 0
    dropped_frames: int = 0
    last_frame_time: Optional[float] = None
    started_at: float = field(default_factory=time.monotonic)

    @property
    def total_frames(self) -> int:
        return self.valid_frames + self.dropped_frames

    @property
    def success_rate(self) -> float:
        """Percentage of candidate frames that decoded successfully."""
        if self.total_frames == 0:
            return 0.0
        return 100.0 * self.valid_frames / self.total_frames

    def record_valid(self, now: Optional[float] = None):
        self.valid_frames += 1
        self.last_frame_time = time.monotonic() if now is None else now

    def record_dropped(self):
        self.dropped_frames += 1

    def reset(self, now: Optional[float] = None):
        """Clear all counters (operator action)."""
        self.valid_frames = 0
        self.dropped_frames = 0
        self.last_frame_time = None
        self.started_at = time.monotonic() if now is None else now

    def snapshot(self) -> "ParserStatistics":
        """Independent copy safe to hand to another thread."""
        return ParserStatistics(
            valid_frames=self.valid_frames,
            dropped_frames=self.dropped_frames,
            last_frame_time=self.last_frame_time,
            started_at=self.started_at,
        )

    def to_dict(self) -> dict:
        return {
            "valid_frames": self.valid_frames,
            "dropped_frames": self.dropped_frames,
            "total_frames": self.total_frames,
            "success_rate": round(self.success_rate, 1),
        }
