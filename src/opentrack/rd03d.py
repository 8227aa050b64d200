"""
RD-03D 24 GHz FMCW Radar Driver.

This module provides a Python interface to the Ai-Thinker RD-03D radar
module over a USB-serial bridge (CH340 / CP210x).

Key specs:
- Up to 3 targets per report, ~10 reports/s per target slot
- Position in mm (x lateral, y forward), speed in cm/s
- 256000 baud, 8N1, binary 30-byte report frames

The radar streams reports continuously once powered. The only command the
host sends is a one-shot target-mode selection (single or multi) at
startup; everything else is read-only.
"""

import logging
import time
from typing import List, Optional

import serial
import serial.tools.list_ports

from .config import TrackingMode

# Configure logging for radar data
logger = logging.getLogger("rd03d")
raw_logger = logging.getLogger("rd03d.raw")

# Fixed 12-byte mode selection commands
_COMMAND_PREFIX = b"\xfd\xfc\xfb\xfa\x02\x00"
_COMMAND_SUFFIX = b"\x00\x04\x03\x02\x01"
SINGLE_TARGET_COMMAND = _COMMAND_PREFIX + b"\x80" + _COMMAND_SUFFIX
MULTI_TARGET_COMMAND = _COMMAND_PREFIX + b"\x90" + _COMMAND_SUFFIX


def target_mode_command(mode: TrackingMode) -> bytes:
    """Command bytes that switch the radar to the given target mode."""
    if mode == TrackingMode.MULTI:
        return MULTI_TARGET_COMMAND
    if mode == TrackingMode.SINGLE:
        return SINGLE_TARGET_COMMAND
    raise ValueError(f"Unknown tracking mode: {mode!r}")


class RD03DRadar:
    """
    Serial driver for the RD-03D radar.

    Exposes the non-blocking byte-source interface (in_waiting / read) that
    RadarPipeline consumes.

    Example usage:
        radar = RD03DRadar()
        radar.connect()
        radar.set_target_mode(TrackingMode.MULTI)

        pipeline = RadarPipeline(radar)
        pipeline.start(report_callback=print)
    """

    # Default serial settings per datasheet
    DEFAULT_BAUD = 256000
    DEFAULT_TIMEOUT = 0.0  # Non-blocking reads

    # USB-serial bridges commonly wired to the RD-03D
    VENDOR_IDS = [0x1A86, 0x10C4]  # QinHeng CH340, Silicon Labs CP210x

    def __init__(self, port: Optional[str] = None, baud: int = DEFAULT_BAUD):
        """
        Initialize radar driver.

        Args:
            port: Serial port (e.g., '/dev/ttyUSB0'). If None, auto-detect.
            baud: Baud rate (default 256000 per datasheet)
        """
        self.port = port
        self.baud = baud
        self.serial: Optional[serial.Serial] = None
        self._mode: Optional[TrackingMode] = None

    @staticmethod
    def find_radar_ports() -> List[str]:
        """
        Find potential RD-03D radar ports.

        Returns:
            List of port names that might be RD-03D devices
        """
        ports = []
        for port in serial.tools.list_ports.comports():
            if port.vid in RD03DRadar.VENDOR_IDS or "USB" in port.device:
                ports.append(port.device)
        return ports

    @property
    def is_connected(self) -> bool:
        return self.serial is not None and self.serial.is_open

    @property
    def mode(self) -> Optional[TrackingMode]:
        """Target mode most recently sent to the radar."""
        return self._mode

    def connect(self, timeout: float = DEFAULT_TIMEOUT) -> bool:
        """
        Connect to the radar sensor.

        Args:
            timeout: Serial read timeout in seconds (0 = non-blocking)

        Returns:
            True if connection successful
        """
        if self.port is None:
            ports = self.find_radar_ports()
            if not ports:
                raise ConnectionError(
                    "No RD-03D radar found. Check USB connection and try specifying port manually."
                )
            self.port = ports[0]

        try:
            self.serial = serial.Serial(
                port=self.port,
                baudrate=self.baud,
                timeout=timeout,
                bytesize=serial.EIGHTBITS,
                parity=serial.PARITY_NONE,
                stopbits=serial.STOPBITS_ONE
            )
            # Flush any partial frame from before we opened the port
            self.serial.reset_input_buffer()
            logger.info(f"Connected to RD-03D on {self.port} at {self.baud} baud")
            return True
        except serial.SerialException as e:
            raise ConnectionError(f"Failed to connect to {self.port}: {e}") from e

    def disconnect(self):
        """Disconnect from the radar sensor."""
        if self.serial and self.serial.is_open:
            self.serial.close()
        self.serial = None

    def set_target_mode(self, mode: TrackingMode):
        """
        Select single- or multi-target reporting at the sensor.

        Sent once at startup; the radar keeps streaming in that mode.

        Args:
            mode: TrackingMode.SINGLE or TrackingMode.MULTI
        """
        if not self.is_connected:
            raise ConnectionError("Not connected to radar")

        command = target_mode_command(mode)
        logger.info(f"Setting target mode: {mode.value}")
        raw_logger.debug(f"TX: {command.hex(' ')}")
        self.serial.write(command)
        self.serial.flush()
        # Give the module time to switch before frames are parsed
        time.sleep(0.05)
        self._mode = mode

    @property
    def in_waiting(self) -> int:
        """Bytes available to read without blocking."""
        if not self.is_connected:
            return 0
        try:
            return self.serial.in_waiting
        except serial.SerialException as e:
            raise ConnectionError(f"Serial error on {self.port}: {e}") from e

    def read(self, size: int = 1) -> bytes:
        """
        Read up to size bytes that are already available.

        Returns:
            The bytes read (possibly fewer than size, or empty)
        """
        if not self.is_connected:
            raise ConnectionError("Not connected to radar")
        try:
            return self.serial.read(size)
        except serial.SerialException as e:
            raise ConnectionError(f"Serial error on {self.port}: {e}") from e

    def __enter__(self):
        """Context manager entry."""
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.disconnect()
        return False
