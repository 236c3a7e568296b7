"""
Tacho Motor - Data Models
==========================
Enumerations and Pydantic models shared by the encoder, the completion
tracker and the telemetry decoder.

These models ensure type safety and validation for motor configuration
and for the events raised from inbound telemetry.
"""

from __future__ import annotations
from datetime import datetime
from enum import Enum, IntEnum
from typing import Dict, Sequence, Tuple, Union
from pydantic import BaseModel, Field


# A speed is a single value in [-100, 100]; virtual ports take a pair
Speed = Union[int, float]
DualSpeed = Union[Tuple[Speed, Speed], Sequence[Speed]]


class Mode(IntEnum):
    """Telemetry modes reported by a tacho motor."""
    ROTATION = 0x02


# Event name -> telemetry mode, read by the mode subscription mechanism
MODE_MAP: Dict[str, int] = {
    "rotate": Mode.ROTATION,
}


class HubType(str, Enum):
    """Hub generations a motor can be attached to."""
    UNKNOWN = "unknown"
    WEDO2_SMART_HUB = "wedo2_smart_hub"
    MOVE_HUB = "move_hub"
    HUB = "hub"
    REMOTE_CONTROL = "remote_control"
    DUPLO_TRAIN_BASE = "duplo_train_base"
    TECHNIC_MEDIUM_HUB = "technic_medium_hub"
    MARIO = "mario"

    @property
    def is_legacy(self) -> bool:
        """Legacy hubs use a shorter message header and take no motor commands."""
        return self is HubType.WEDO2_SMART_HUB


class DeviceType(IntEnum):
    """Device type identifiers of motors carrying a rotation sensor."""
    UNKNOWN = 0
    MEDIUM_LINEAR_MOTOR = 38
    MOVE_HUB_MEDIUM_LINEAR_MOTOR = 39
    TECHNIC_LARGE_LINEAR_MOTOR = 46
    TECHNIC_XLARGE_LINEAR_MOTOR = 47
    TECHNIC_MEDIUM_ANGULAR_MOTOR = 48
    TECHNIC_LARGE_ANGULAR_MOTOR = 49


class CommandKind(str, Enum):
    """Kind of command issued to the hub."""
    SPEED = "speed"
    ANGLE = "angle"


# =============================================================================
# EVENT MODELS
# =============================================================================

class RotationEvent(BaseModel):
    """
    Rotation reading decoded from a tacho motor telemetry frame.

    Emitted as the payload of the "rotate" event.
    """
    timestamp: datetime = Field(default_factory=datetime.now)
    port_id: int = Field(..., ge=0, le=255, description="Hub port the reading came from")
    rotation: int = Field(..., description="Accumulated rotation in degrees")


class CommandRecord(BaseModel):
    """A command buffer handed to the transport."""
    timestamp: datetime = Field(default_factory=datetime.now)
    kind: CommandKind
    payload: bytes

    @property
    def hex(self) -> str:
        """Payload as space separated hex bytes."""
        return self.payload.hex(" ")


# =============================================================================
# CONFIGURATION MODELS
# =============================================================================

class MotorConfig(BaseModel):
    """Configuration of a tacho motor attached to a hub port."""
    port_id: int = Field(..., ge=0, le=255, description="Port identifier assigned by the hub")
    is_virtual_port: bool = False
    hub_type: HubType = HubType.HUB
    device_type: DeviceType = DeviceType.UNKNOWN

    # Extra event -> mode entries; merged under the tacho modes
    mode_map: Dict[str, int] = Field(default_factory=dict)

    # Issued command history
    history_size: int = Field(100, gt=0)

    @property
    def is_legacy_hub(self) -> bool:
        return self.hub_type.is_legacy
