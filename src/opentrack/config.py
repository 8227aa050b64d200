"""
Runtime configuration for the RD-03D pipeline.

Every pipeline stage holds a reference to the same RadarConfig and reads
its fields on each call, so changes made through update() take effect on
the next poll cycle without rebuilding the state machine.
"""

from dataclasses import asdict, dataclass, fields
from enum import Enum
from typing import Any, Dict


class TrackingMode(Enum):
    """How decoded targets are attributed to tracker slots."""
    SINGLE = "single"   # First active target only
    MULTI = "multi"     # Every active target, by slot index


@dataclass
class RadarConfig:
    """Configuration for the RD-03D decoding and tracking pipeline."""

    # Serial
    baud_rate: int = 256000             # UART rate between host and radar

    # Radar behaviour
    multi_target: bool = False          # Multi-target frame type / tracking
    max_targets: int = 3                # Slots tracked in multi-target mode
    enable_filtering: bool = False      # Moving-average smoothing
    enable_angle: bool = True           # Bearing computation
    smoothing_window: int = 5           # Ring capacity per slot

    # Output / performance
    output_interval_s: float = 0.100    # Minimum time between reports
    max_frames_per_cycle: int = 5       # Parse at most N frames per poll

    # Timeouts
    frame_timeout_s: float = 0.100      # Abandon a partial frame after this
    slot_timeout_s: float = 1.0         # Clear a slot idle for this long

    # Activity thresholds
    min_distance_m: float = 0.1         # Targets closer than this are noise...
    min_speed_cms: float = 5.0          # ...unless they move faster than this

    @property
    def mode(self) -> TrackingMode:
        """Tracking mode selected by the multi_target flag."""
        return TrackingMode.MULTI if self.multi_target else TrackingMode.SINGLE

    def to_dict(self) -> Dict[str, Any]:
        """Plain dict view, suitable for JSON."""
        return asdict(self)

    def update(self, **changes) -> Dict[str, Any]:
        """
        Apply runtime changes after validating them.

        Values are coerced to the field's declared type. Nothing is applied
        if any key or value is rejected.

        Args:
            **changes: Field names and new values

        Returns:
            Dict of the fields that actually changed

        Raises:
            ValueError: Unknown field or out-of-range value
        """
        known = {f.name: f for f in fields(self)}
        coerced = {}
        for name, value in changes.items():
            if name not in known:
                raise ValueError(f"Unknown config field: {name}")
            coerced[name] = _coerce(known[name].type, value, name)

        candidate = RadarConfig(**{**asdict(self), **coerced})
        candidate.validate()

        changed = {}
        for name, value in coerced.items():
            if getattr(self, name) != value:
                setattr(self, name, value)
                changed[name] = value
        return changed

    def validate(self):
        """Raise ValueError if any field is out of range."""
        if not 1 <= self.max_targets <= 3:
            raise ValueError("max_targets must be 1-3")
        if self.smoothing_window < 1:
            raise ValueError("smoothing_window must be at least 1")
        if self.max_frames_per_cycle < 1:
            raise ValueError("max_frames_per_cycle must be at least 1")
        if self.baud_rate <= 0:
            raise ValueError("baud_rate must be positive")
        for name in ("output_interval_s", "frame_timeout_s", "slot_timeout_s",
                     "min_distance_m", "min_speed_cms"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must not be negative")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RadarConfig":
        """Build a config from a (possibly partial) dict of overrides."""
        config = cls()
        config.update(**data)
        return config


def _coerce(type_name, value, name: str):
    """Coerce a raw value (e.g. from JSON or argparse) to a field type."""
    # Field types are strings under postponed annotations
    type_name = getattr(type_name, "__name__", type_name)
    try:
        if type_name == "bool":
            if isinstance(value, str):
                lowered = value.strip().lower()
                if lowered in ("1", "true", "yes", "on"):
                    return True
                if lowered in ("0", "false", "no", "off"):
                    return False
                raise ValueError(value)
            return bool(value)
        if type_name == "int":
            return int(value)
        if type_name == "float":
            return float(value)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Invalid value for {name}: {value!r}") from e
    return value
