"""
Target tracking and report emission for RD-03D samples.

Usage:
    from opentrack.tracking import TargetTracker, ReportEmitter

    tracker = TargetTracker(config)
    emitter = ReportEmitter(config)
    emitter.add_listener(on_report)

    cycle = tracker.update(samples, config.mode)
    emitter.offer(cycle, stats)
"""

from .ring import SampleRing

from .types import (
    Report,
    TargetSlot,
    TrackedTarget,
    TrackingCycle,
)

from .tracker import TargetTracker

from .emitter import ReportEmitter

from ..config import TrackingMode

__all__ = [
    "SampleRing",
    # Types
    "Report",
    "TargetSlot",
    "TrackedTarget",
    "TrackingCycle",
    "TrackingMode",
    # Tracker
    "TargetTracker",
    # Emitter
    "ReportEmitter",
]
