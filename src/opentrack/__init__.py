"""
OpenTrack - RD-03D 24 GHz radar decoding and target tracking.

Usage:
    from opentrack import RD03DRadar, RadarPipeline, RadarConfig

    config = RadarConfig(multi_target=True, enable_filtering=True)
    radar = RD03DRadar(port="/dev/ttyUSB0")
    radar.connect()
    radar.set_target_mode(config.mode)

    pipeline = RadarPipeline(radar, config)
    pipeline.start(report_callback=on_report)

    # Or use via server.py:
    # opentrack-server --multi-target --filter
"""

from .config import RadarConfig, TrackingMode
from .pipeline import RadarPipeline
from .protocol import (
    DecodeError,
    FrameDecoder,
    FrameSynchronizer,
    ParserStatistics,
    RawFrame,
    TargetSample,
)
from .rd03d import RD03DRadar
from .tracking import Report, ReportEmitter, TargetTracker, TrackedTarget

__version__ = "0.1.0"

__all__ = [
    "RadarConfig",
    "TrackingMode",
    "RadarPipeline",
    "DecodeError",
    "FrameDecoder",
    "FrameSynchronizer",
    "ParserStatistics",
    "RawFrame",
    "TargetSample",
    "RD03DRadar",
    "Report",
    "ReportEmitter",
    "TargetTracker",
    "TrackedTarget",
]
