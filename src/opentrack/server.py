"""
WebSocket server for OpenTrack.

Publishes throttled radar reports to web clients via Flask-SocketIO and
accepts runtime configuration changes.
"""

import logging
import time
from typing import Optional

from flask import Flask, jsonify
from flask_cors import CORS
from flask_socketio import SocketIO

from .config import RadarConfig
from .mock import MockRadarSource
from .pipeline import RadarPipeline
from .rd03d import RD03DRadar
from .tracking.types import Report, TrackedTarget

# Configure logging
logger = logging.getLogger("opentrack.server")

app = Flask(__name__)
CORS(app)
socketio = SocketIO(app, cors_allowed_origins="*", async_mode="threading")

# Global state
pipeline: Optional[RadarPipeline] = None
radar: Optional[RD03DRadar] = None
mock_mode: bool = False


def target_to_dict(target: TrackedTarget) -> dict:
    """Convert TrackedTarget to JSON-serializable dict."""
    return {
        "index": target.index,
        "x_mm": round(target.x_mm),
        "y_mm": round(target.y_mm),
        "distance_m": round(target.distance_m, 3),
        "angle_deg": round(target.angle_deg, 1),
        "speed_cms": round(target.speed_cms, 1),
        "gate": target.gate,
        "smoothed": target.smoothed,
    }


def report_to_dict(report: Report) -> dict:
    """Convert Report to JSON-serializable dict."""
    return {
        "mode": report.mode.value,
        "has_targets": report.has_targets,
        "targets": [target_to_dict(t) for t in report.targets],
        "valid_frames": report.valid_frames,
        "dropped_frames": report.dropped_frames,
        "success_rate": round(report.success_rate, 1),
        "timestamp": report.timestamp,
    }


def status_dict() -> dict:
    """Current pipeline state for clients."""
    if pipeline is None:
        return {"running": False, "mock_mode": mock_mode}

    stats = pipeline.statistics()
    last = pipeline.last_report
    return {
        "running": pipeline.is_running,
        "mock_mode": mock_mode,
        "port": radar.port if radar else None,
        "stats": stats.to_dict(),
        "uptime_s": round(time.monotonic() - stats.started_at, 1),
        "config": pipeline.config.to_dict(),
        "last_report": report_to_dict(last) if last else None,
    }


@app.route("/api/status")
def api_status():
    """Pipeline status, statistics and latest report."""
    return jsonify(status_dict())


def on_report(report: Report):
    """Forward each emitted report to connected clients."""
    socketio.emit("radar_report", report_to_dict(report))


@socketio.on("connect")
def handle_connect():
    """Handle client connection."""
    logger.info("Client connected")
    socketio.emit("status", status_dict())


@socketio.on("disconnect")
def handle_disconnect():
    """Handle client disconnection."""
    logger.info("Client disconnected")


@socketio.on("get_stats")
def handle_get_stats():
    """Send current frame statistics."""
    if pipeline:
        socketio.emit("stats", pipeline.statistics().to_dict())


@socketio.on("reset_stats")
def handle_reset_stats():
    """Operator reset of frame statistics."""
    if pipeline:
        pipeline.reset_statistics()
        socketio.emit("stats", pipeline.statistics().to_dict())


@socketio.on("get_config")
def handle_get_config():
    """Get current pipeline configuration."""
    if pipeline:
        socketio.emit("config", pipeline.config.to_dict())


@socketio.on("set_config")
def handle_set_config(data):
    """Update pipeline configuration at runtime."""
    if not pipeline:
        socketio.emit("config_error", {"error": "Pipeline not running"})
        return

    try:
        changed = pipeline.apply_config(**(data or {}))
        if changed:
            print(f"Config updated: {changed}")
        socketio.emit("config", pipeline.config.to_dict())
    except (ValueError, ConnectionError) as e:
        logger.warning(f"Rejected config change {data!r}: {e}")
        socketio.emit("config_error", {"error": str(e)})


def start_pipeline(
    port: Optional[str] = None,
    mock: bool = False,
    config: Optional[RadarConfig] = None,
):
    """
    Connect to the radar (or mock) and start the polling pipeline.

    Args:
        port: Serial port for radar
        mock: Run with synthetic frames instead of hardware
        config: Pipeline configuration
    """
    global pipeline, radar, mock_mode  # pylint: disable=global-statement

    if pipeline is not None:
        print("[PIPELINE] Stopping existing pipeline before starting new one")
        stop_pipeline()

    config = config or RadarConfig()
    mock_mode = mock

    if mock:
        source = MockRadarSource(num_targets=config.max_targets, garbage_probability=0.05)
        source.set_target_mode(config.mode)
    else:
        radar = RD03DRadar(port=port, baud=config.baud_rate)
        radar.connect()
        radar.set_target_mode(config.mode)
        source = radar
        print(f"[RADAR] Connected on {radar.port}")

    pipeline = RadarPipeline(source, config)
    pipeline.start(report_callback=on_report)


def stop_pipeline():
    """Stop the pipeline and release the radar."""
    global pipeline, radar  # pylint: disable=global-statement

    if pipeline:
        pipeline.stop()
        pipeline = None
    if radar:
        radar.disconnect()
        radar = None


def main():
    """Run the server."""
    import argparse  # pylint: disable=import-outside-toplevel

    defaults = RadarConfig()
    parser = argparse.ArgumentParser(description="OpenTrack RD-03D Server")
    parser.add_argument("--port", "-p", help="Serial port for radar")
    parser.add_argument("--mock", "-m", action="store_true", help="Run without radar (synthetic frames)")
    parser.add_argument("--host", default="0.0.0.0", help="Host to bind to (default: 0.0.0.0)")
    parser.add_argument("--web-port", type=int, default=8080, help="Web server port (default: 8080)")
    parser.add_argument("--radar-log", action="store_true", help="Log raw radar frames to console (Python logging)")
    parser.add_argument(
        "--multi-target", action="store_true",
        help="Track up to 3 targets (default: single target)"
    )
    parser.add_argument(
        "--filter", action="store_true",
        help="Enable moving-average smoothing of position and speed"
    )
    parser.add_argument(
        "--no-angle", action="store_true",
        help="Disable bearing computation (angle reported as 0)"
    )
    parser.add_argument(
        "--output-interval", type=float, default=defaults.output_interval_s,
        help=f"Minimum seconds between reports (default: {defaults.output_interval_s})"
    )
    parser.add_argument(
        "--min-distance", type=float, default=defaults.min_distance_m,
        help=f"Activity distance threshold in metres (default: {defaults.min_distance_m})"
    )
    parser.add_argument(
        "--min-speed", type=float, default=defaults.min_speed_cms,
        help=f"Activity speed threshold in cm/s (default: {defaults.min_speed_cms})"
    )
    args = parser.parse_args()

    print("=" * 50)
    print("  OpenTrack RD-03D Server")
    print("=" * 50)
    print()

    # Configure radar logging if requested
    if args.radar_log:
        logging.basicConfig(
            level=logging.DEBUG,
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )
        logging.getLogger("rd03d").setLevel(logging.DEBUG)
        logging.getLogger("rd03d.raw").setLevel(logging.DEBUG)
        print("Radar raw logging ENABLED - all frames will be logged")
    else:
        logging.basicConfig(level=logging.INFO)

    config = RadarConfig.from_dict({
        "multi_target": args.multi_target,
        "enable_filtering": args.filter,
        "enable_angle": not args.no_angle,
        "output_interval_s": args.output_interval,
        "min_distance_m": args.min_distance,
        "min_speed_cms": args.min_speed,
    })

    start_pipeline(port=args.port, mock=args.mock, config=config)

    if args.mock:
        print("Running in MOCK mode - no radar required")
    print(f"Mode: {config.mode.value}-target, smoothing {'on' if config.enable_filtering else 'off'}")
    print(f"Server starting at http://{args.host}:{args.web_port}")
    print()

    try:
        socketio.run(app, host=args.host, port=args.web_port, debug=False, allow_unsafe_werkzeug=True)
    finally:
        stop_pipeline()


if __name__ == "__main__":
    main()
