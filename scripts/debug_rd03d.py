#!/usr/bin/env python3
"""
Debug RD-03D frame decoding against a live radar.

Sends the target mode command, then prints every decoded frame and the
frame statistics for a few seconds.
"""

import argparse
import sys
import time

sys.path.insert(0, "src")

from opentrack.config import RadarConfig, TrackingMode
from opentrack.pipeline import RadarPipeline
from opentrack.protocol import DecodeError
from opentrack.rd03d import RD03DRadar


def main():
    parser = argparse.ArgumentParser(description="RD-03D frame debugger")
    parser.add_argument("--port", "-p", help="Serial port for radar")
    parser.add_argument("--multi", action="store_true", help="Multi-target mode")
    parser.add_argument("--seconds", type=float, default=5.0, help="How long to listen")
    args = parser.parse_args()

    print("=" * 70)
    print("  RD-03D Frame Debugger")
    print("=" * 70)
    print()

    radar = RD03DRadar(port=args.port)
    radar.connect()
    print(f"Connected: {radar.port}")

    mode = TrackingMode.MULTI if args.multi else TrackingMode.SINGLE
    radar.set_target_mode(mode)
    print(f"Target mode: {mode.value}")
    print()

    config = RadarConfig(multi_target=args.multi)
    pipeline = RadarPipeline(radar, config)

    start = time.monotonic()
    while time.monotonic() - start < args.seconds:
        now = time.monotonic()
        pipeline.synchronizer.check_timeout(now)
        while radar.in_waiting:
            frame = pipeline.synchronizer.push(radar.read(1)[0], now)
            if frame is None:
                continue
            print(f"  {frame.hex}")
            try:
                for sample in pipeline.decoder.decode(frame):
                    print(f"           → [{sample.index}] x={sample.x_mm:+6d}mm y={sample.y_mm:+6d}mm "
                          f"v={sample.speed_cms:+5d}cm/s gate={sample.gate} "
                          f"({sample.distance_m:.2f} m, {sample.angle_deg:+.1f}°)"
                          f"{' empty' if sample.is_empty else ''}")
                pipeline.stats.record_valid(now)
            except DecodeError as e:
                pipeline.stats.record_dropped()
                print(f"           → DROPPED: {type(e).__name__}: {e}")
        time.sleep(0.01)

    stats = pipeline.statistics()
    print()
    print("-" * 70)
    print(f"Valid: {stats.valid_frames}  Dropped: {stats.dropped_frames}  "
          f"Success: {stats.success_rate:.1f}%")

    radar.disconnect()
    print()
    print("Done.")


if __name__ == "__main__":
    main()
