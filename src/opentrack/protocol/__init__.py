"""
RD-03D serial protocol: framing and decoding.

Usage:
    from opentrack.protocol import FrameSynchronizer, FrameDecoder, ParserStatistics

    stats = ParserStatistics()
    sync = FrameSynchronizer(stats)
    decoder = FrameDecoder()

    for frame in sync.feed(data):
        try:
            samples = decoder.decode(frame)
        except DecodeError:
            stats.record_dropped()
"""

from .types import (
    FRAME_LENGTH,
    MAX_TARGETS,
    ParserStatistics,
    RawFrame,
    TargetSample,
)

from .synchronizer import FrameSynchronizer, SyncState

from .decoder import (
    DecodeError,
    FramingError,
    TargetCountError,
    IntegrityError,
    FrameDecoder,
    decode_frame,
    decode_speed,
    decode_x,
    decode_y,
)

__all__ = [
    # Types
    "FRAME_LENGTH",
    "MAX_TARGETS",
    "ParserStatistics",
    "RawFrame",
    "TargetSample",
    # Synchronizer
    "FrameSynchronizer",
    "SyncState",
    # Decoder
    "DecodeError",
    "FramingError",
    "TargetCountError",
    "IntegrityError",
    "FrameDecoder",
    "decode_frame",
    "decode_speed",
    "decode_x",
    "decode_y",
]
