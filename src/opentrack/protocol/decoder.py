"""
Frame validation and field decoding for RD-03D reports.

Signed values on the wire are offset-encoded rather than two's complement:

- x: unsigned word minus a 0x0200 centre offset
- y: unsigned word minus a 0x8000 baseline
- speed: words below 0x8000 are small positive speeds taken as-is; words at
  or above 0x8000 are negative speeds encoded as (0x8000 - raw). Both are
  clamped to +/-1000 cm/s. Reinterpreting the word as int16 gives the wrong
  sign and magnitude, e.g. 0x8010 is -16 cm/s here but -32752 as int16.

The integrity check is a plain byte sum of the target region. It is not a
checksum in any real sense: it is trivially defeated and only rejects
payloads that are entirely zero.
"""

import struct
from typing import List, Union

from .types import (
    COUNT_OFFSET,
    FOOTER,
    FOOTER_OFFSET,
    FRAME_LENGTH,
    HEADER_FIRST_BYTES,
    HEADER_SECOND_BYTE,
    MAX_TARGETS,
    SPEED_BASELINE,
    SPEED_LIMIT_CMS,
    TARGET_STRIDE,
    TARGETS_OFFSET,
    X_CENTER_OFFSET,
    Y_BASELINE,
    RawFrame,
    TargetSample,
)

_TARGET_STRUCT = struct.Struct("<HHHH")


class DecodeError(ValueError):
    """A candidate frame could not be decoded."""


class FramingError(DecodeError):
    """Header or footer marks do not match, or the frame has the wrong length."""


class TargetCountError(DecodeError):
    """Declared target count is zero or above the maximum."""


class IntegrityError(DecodeError):
    """Payload is implausible (sums to zero)."""


def decode_x(raw: int) -> int:
    """Lateral position in mm from its wire word."""
    return raw - X_CENTER_OFFSET


def decode_y(raw: int) -> int:
    """Forward position in mm from its wire word."""
    return raw - Y_BASELINE


def decode_speed(raw: int) -> int:
    """
    Speed in cm/s from its wire word.

    0x0010 -> +16, 0x8000 -> 0, 0x8010 -> -16, 0xFFFF -> -1000 (clamped).
    """
    if raw < SPEED_BASELINE:
        speed = raw
    else:
        speed = SPEED_BASELINE - raw
    return max(-SPEED_LIMIT_CMS, min(SPEED_LIMIT_CMS, speed))


def payload_sum(data: bytes) -> int:
    """16-bit sum of the target region (header, count prefix and footer excluded)."""
    return sum(data[TARGETS_OFFSET:FOOTER_OFFSET]) & 0xFFFF


def validate_frame(data: bytes) -> int:
    """
    Check framing, target count and payload plausibility, in that order.

    Returns:
        The declared target count

    Raises:
        FramingError, TargetCountError, IntegrityError
    """
    if len(data) != FRAME_LENGTH:
        raise FramingError(f"Expected {FRAME_LENGTH} bytes, got {len(data)}")

    if (data[0] not in HEADER_FIRST_BYTES
            or data[1] != HEADER_SECOND_BYTE
            or data[FOOTER_OFFSET:] != FOOTER):
        raise FramingError(
            f"Bad marks: header={data[:2].hex()} footer={data[FOOTER_OFFSET:].hex()}"
        )

    count = data[COUNT_OFFSET]
    if count == 0 or count > MAX_TARGETS:
        raise TargetCountError(f"Declared target count {count} outside 1-{MAX_TARGETS}")

    if payload_sum(data) == 0:
        raise IntegrityError("Payload is all zero")

    return count


class FrameDecoder:
    """
    Decodes validated frames into TargetSamples.

    Stateless: decoding the same frame twice yields equal results.
    """

    def decode(self, frame: Union[RawFrame, bytes]) -> List[TargetSample]:
        """
        Validate and decode one frame.

        Targets are decoded in order at an 8-byte stride after the 4-byte
        prefix. A target whose window would reach the footer ends decoding
        early; the targets already decoded are returned.

        Raises:
            DecodeError: Frame failed validation
        """
        if isinstance(frame, RawFrame):
            data, timestamp = frame.data, frame.timestamp
        else:
            data, timestamp = bytes(frame), 0.0

        count = validate_frame(data)

        samples = []
        for index in range(count):
            offset = TARGETS_OFFSET + index * TARGET_STRIDE
            if offset + TARGET_STRIDE > FOOTER_OFFSET:
                break
            raw_x, raw_y, raw_speed, gate = _TARGET_STRUCT.unpack_from(data, offset)
            samples.append(TargetSample(
                index=index,
                x_mm=decode_x(raw_x),
                y_mm=decode_y(raw_y),
                speed_cms=decode_speed(raw_speed),
                gate=gate,
                timestamp=timestamp,
                is_empty=not (raw_x or raw_y or raw_speed or gate),
            ))
        return samples


def decode_frame(frame: Union[RawFrame, bytes]) -> List[TargetSample]:
    """Module-level shortcut for FrameDecoder().decode()."""
    return FrameDecoder().decode(frame)
