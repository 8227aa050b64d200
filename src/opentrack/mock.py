"""
Mock RD-03D byte source for UI development and tests without hardware.

encode_frame() builds wire frames with the same offset conventions the
decoder reverses; MockRadarSource streams them for simulated walkers.
"""

import math
import random
import struct
import time
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from .config import TrackingMode
from .protocol.types import (
    FOOTER,
    HEADER_SECOND_BYTE,
    MAX_TARGETS,
    SPEED_BASELINE,
    SPEED_LIMIT_CMS,
    X_CENTER_OFFSET,
    Y_BASELINE,
)

# (x_mm, y_mm, speed_cms, gate)
TargetTuple = Tuple[int, int, int, int]

_EMPTY_TARGET = b"\x00" * 8


def encode_target(x_mm: int, y_mm: int, speed_cms: int, gate: int = 0) -> bytes:
    """
    Encode one target's 8 bytes.

    Raises:
        ValueError: A value is not representable on the wire
    """
    raw_x = x_mm + X_CENTER_OFFSET
    raw_y = y_mm + Y_BASELINE
    if abs(speed_cms) > SPEED_LIMIT_CMS:
        raise ValueError(f"Speed {speed_cms} cm/s outside +/-{SPEED_LIMIT_CMS}")
    raw_speed = speed_cms if speed_cms >= 0 else SPEED_BASELINE - speed_cms

    for name, value in (("x", raw_x), ("y", raw_y), ("gate", gate)):
        if not 0 <= value <= 0xFFFF:
            raise ValueError(f"{name} out of range for wire encoding: {value}")
    return struct.pack("<HHHH", raw_x, raw_y, raw_speed, gate)


def encode_frame(
    targets: Sequence[TargetTuple],
    count: Optional[int] = None,
    header: int = 0xAA,
) -> bytes:
    """
    Build a complete 30-byte report frame.

    Args:
        targets: Up to 3 (x_mm, y_mm, speed_cms, gate) tuples; missing
                 slots are zero-filled like an idle sensor
        count: Declared target count (default: len(targets))
        header: First header byte

    Returns:
        Frame bytes
    """
    if len(targets) > MAX_TARGETS:
        raise ValueError(f"At most {MAX_TARGETS} targets per frame")
    if count is None:
        count = len(targets)

    body = b"".join(encode_target(*t) for t in targets)
    body += _EMPTY_TARGET * (MAX_TARGETS - len(targets))
    return bytes([header, HEADER_SECOND_BYTE, count, 0x00]) + body + FOOTER


@dataclass
class SimulatedWalker:
    """A target pacing back and forth in front of the sensor."""
    near_mm: float = 600.0
    far_mm: float = 4000.0
    period_s: float = 8.0
    sway_mm: float = 400.0
    phase: float = 0.0

    def state(self, t: float) -> TargetTuple:
        """Position and speed at time t (seconds)."""
        w = 2 * math.pi / self.period_s
        mid = (self.near_mm + self.far_mm) / 2
        amp = (self.far_mm - self.near_mm) / 2
        y = mid + amp * math.sin(w * t + self.phase)
        x = self.sway_mm * math.sin(0.5 * w * t + self.phase)
        # Positive speed = moving away (mm/s -> cm/s)
        speed = amp * w * math.cos(w * t + self.phase) / 10
        gate = int(y // 750)
        return int(x), int(y), int(max(-SPEED_LIMIT_CMS, min(SPEED_LIMIT_CMS, speed))), gate


class MockRadarSource:
    """
    Byte source that streams synthetic RD-03D frames.

    Provides the same in_waiting / read interface as RD03DRadar, generating
    frames on demand at frame_rate_hz based on elapsed time.
    """

    def __init__(
        self,
        num_targets: int = 2,
        frame_rate_hz: float = 10.0,
        garbage_probability: float = 0.0,
        seed: Optional[int] = None,
    ):
        """
        Initialize mock source.

        Args:
            num_targets: Simulated walkers (1-3)
            frame_rate_hz: Frames generated per second
            garbage_probability: Chance of noise bytes before each frame
            seed: Random seed for reproducible noise
        """
        if not 1 <= num_targets <= MAX_TARGETS:
            raise ValueError(f"num_targets must be 1-{MAX_TARGETS}")
        self.walkers = [
            SimulatedWalker(phase=i * 2.1, period_s=8.0 + i * 3)
            for i in range(num_targets)
        ]
        self.frame_rate_hz = frame_rate_hz
        self.garbage_probability = garbage_probability
        self._random = random.Random(seed)
        self._buffer = bytearray()
        self._start = time.monotonic()
        self._frames_generated = 0
        self._mode = TrackingMode.MULTI
        self.frames_sent = 0

    @property
    def mode(self) -> TrackingMode:
        return self._mode

    def set_target_mode(self, mode: TrackingMode):
        """Mirror RD03DRadar: single mode sends only the first walker."""
        self._mode = mode

    def _generate(self):
        elapsed = time.monotonic() - self._start
        due = int(elapsed * self.frame_rate_hz)
        while self._frames_generated < due:
            t = self._frames_generated / self.frame_rate_hz
            self._frames_generated += 1
            self._buffer += self.frame_at(t)

    def frame_at(self, t: float) -> bytes:
        """Frame bytes (possibly preceded by noise) for time t."""
        walkers = self.walkers if self._mode == TrackingMode.MULTI else self.walkers[:1]
        targets = [w.state(t) for w in walkers]
        header = 0xAA if self._mode == TrackingMode.MULTI else 0xAB

        noise = b""
        if self._random.random() < self.garbage_probability:
            noise = bytes(self._random.randrange(0x00, 0xAA) for _ in range(self._random.randint(1, 12)))
        self.frames_sent += 1
        return noise + encode_frame(targets, header=header)

    @property
    def in_waiting(self) -> int:
        self._generate()
        return len(self._buffer)

    def read(self, size: int = 1) -> bytes:
        self._generate()
        data = bytes(self._buffer[:size])
        del self._buffer[:size]
        return data
