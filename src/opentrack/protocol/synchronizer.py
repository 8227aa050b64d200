"""
Byte-stream synchronizer for RD-03D frames.

Recovers frame boundaries from an unsynchronized serial stream and hands
complete 30-byte candidate frames to the decoder. Validation beyond the
two header marks is left to the decoder.
"""

import logging
import time
from enum import Enum
from typing import Iterable, List, Optional

from ..config import RadarConfig
from .types import (
    FRAME_LENGTH,
    HEADER_FIRST_BYTES,
    HEADER_SECOND_BYTE,
    ParserStatistics,
    RawFrame,
)

logger = logging.getLogger("opentrack.protocol.synchronizer")


class SyncState(Enum):
    """Synchronizer states."""
    SEEKING_FIRST_MARK = "seeking_first_mark"
    SEEKING_SECOND_MARK = "seeking_second_mark"
    COLLECTING = "collecting"


class FrameSynchronizer:
    """
    Three-state framing machine with a stall timeout.

    SEEKING_FIRST_MARK -> SEEKING_SECOND_MARK -> COLLECTING -> (emit) ->
    SEEKING_FIRST_MARK. A partial frame is abandoned if it is not completed
    within config.frame_timeout_s of its first header byte; this is checked
    by check_timeout() on every poll, whether or not bytes arrive.

    Example:
        sync = FrameSynchronizer(stats)
        for frame in sync.feed(serial_bytes):
            decoder.decode(frame)
    """

    def __init__(
        self,
        stats: Optional[ParserStatistics] = None,
        config: Optional[RadarConfig] = None,
    ):
        self.stats = stats if stats is not None else ParserStatistics()
        self.config = config or RadarConfig()
        self._state = SyncState.SEEKING_FIRST_MARK
        self._buffer = bytearray()
        self._frame_started: Optional[float] = None

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def in_progress(self) -> bool:
        """Whether a frame has been started but not completed."""
        return self._state != SyncState.SEEKING_FIRST_MARK

    @property
    def buffered(self) -> bytes:
        """Bytes collected for the frame in progress."""
        return bytes(self._buffer)

    def reset(self):
        """Drop any partial frame and start seeking again."""
        self._state = SyncState.SEEKING_FIRST_MARK
        self._buffer.clear()
        self._frame_started = None

    def _drop(self, reason: str):
        logger.debug(f"Dropping partial frame ({reason}): {len(self._buffer)} bytes")
        self.stats.record_dropped()
        self.reset()

    def check_timeout(self, now: Optional[float] = None) -> bool:
        """
        Abandon a stalled partial frame.

        Returns:
            True if a partial frame was discarded
        """
        if not self.in_progress or self._frame_started is None:
            return False

        now = time.monotonic() if now is None else now
        if now - self._frame_started > self.config.frame_timeout_s:
            self._drop("timeout")
            return True
        return False

    def push(self, byte: int, now: Optional[float] = None) -> Optional[RawFrame]:
        """
        Advance the state machine by one byte.

        Args:
            byte: Next byte from the stream (0-255)
            now: Monotonic timestamp of arrival (default: now)

        Returns:
            RawFrame when this byte completes a frame, else None
        """
        if self._state == SyncState.SEEKING_FIRST_MARK:
            if byte in HEADER_FIRST_BYTES:
                self._buffer.clear()
                self._buffer.append(byte)
                self._frame_started = time.monotonic() if now is None else now
                self._state = SyncState.SEEKING_SECOND_MARK
            return None

        if self._state == SyncState.SEEKING_SECOND_MARK:
            if byte == HEADER_SECOND_BYTE:
                self._buffer.append(byte)
                self._state = SyncState.COLLECTING
            else:
                # Ordinary resync; the failed byte is not a new first mark
                self.reset()
            return None

        if len(self._buffer) >= FRAME_LENGTH:
            self._drop("overflow")
            return None

        self._buffer.append(byte)
        if len(self._buffer) < FRAME_LENGTH:
            return None

        frame = RawFrame(
            data=bytes(self._buffer),
            timestamp=time.monotonic() if now is None else now,
        )
        self.reset()
        return frame

    def feed(self, data: Iterable[int], now: Optional[float] = None) -> List[RawFrame]:
        """Push every byte of data and return the frames completed."""
        frames = []
        for byte in data:
            frame = self.push(byte, now)
            if frame is not None:
                frames.append(frame)
        return frames
