"""
Tacho Motor Driver
===================
Driver for rotation-sensing motors attached to a hub port.

Translates motion requests (speed, duration, angle) into port output
command buffers, tracks their completion, and turns rotation telemetry
into "rotate" events.

Modules:
--------
- encoder: Command buffer encoding
- completion: Pending command completion
- telemetry: Rotation telemetry decoding
- tacho_motor: Public motor interface
- config: YAML configuration and logging setup
"""

__version__ = "1.0.0"

from .basic_motor import BasicMotor, Transport
from .completion import CompletionTracker
from .config import load_config, setup_logging
from .encoder import MotorCommandEncoder
from .errors import InvalidConfiguration, MotorError, UnsupportedOperation
from .models import (
    MODE_MAP,
    CommandKind,
    CommandRecord,
    DeviceType,
    HubType,
    Mode,
    MotorConfig,
    RotationEvent,
)
from .tacho_motor import TachoMotor
from .telemetry import TelemetryDecoder
from .utils import clamp_angle, clamp_duration, map_speed

__all__ = [
    "BasicMotor",
    "Transport",
    "CompletionTracker",
    "load_config",
    "setup_logging",
    "MotorCommandEncoder",
    "InvalidConfiguration",
    "MotorError",
    "UnsupportedOperation",
    "MODE_MAP",
    "CommandKind",
    "CommandRecord",
    "DeviceType",
    "HubType",
    "Mode",
    "MotorConfig",
    "RotationEvent",
    "TachoMotor",
    "TelemetryDecoder",
    "clamp_angle",
    "clamp_duration",
    "map_speed",
]
