"""
Tacho Motor
============
Motor with a built-in rotation sensor.

Usage:
    motor = TachoMotor(transport, port_id=1)
    motor.on("rotate", lambda event: print(event.rotation))
    await motor.set_speed(50, 2000)
    await motor.rotate_by_angle(720, 30)
"""

from __future__ import annotations

import asyncio
from typing import Dict, Optional, Union

from loguru import logger

from .basic_motor import BasicMotor, Transport
from .encoder import MotorCommandEncoder
from .models import MODE_MAP, CommandKind, DeviceType, DualSpeed, MotorConfig, Speed
from .telemetry import TelemetryDecoder


class TachoMotor(BasicMotor):
    """
    Tacho motor attached to a hub port.

    Command methods return a future resolved when the hub acknowledges the
    command. Issuing a new command before the previous one is acknowledged
    supersedes it; the earlier future then never resolves.
    """

    def __init__(
        self,
        transport: Transport,
        port_id: int,
        mode_map: Optional[Dict[str, int]] = None,
        device_type: DeviceType = DeviceType.UNKNOWN,
        is_virtual_port: bool = False,
        is_legacy_hub: bool = False,
        history_size: int = 100,
    ):
        """
        Initialize tacho motor.

        Args:
            transport: Delivers command buffers to the hub
            port_id: Port identifier assigned by the hub
            mode_map: Extra event -> mode entries; tacho modes take precedence
            device_type: Attached motor type
            is_virtual_port: Port drives two synchronized motors
            is_legacy_hub: Hub uses short headers and takes no motor commands
            history_size: Number of issued commands kept for diagnostics
        """
        super().__init__(
            transport,
            port_id,
            mode_map={**(mode_map or {}), **MODE_MAP},
            is_virtual_port=is_virtual_port,
            is_legacy_hub=is_legacy_hub,
            history_size=history_size,
        )
        self.device_type = device_type

        self._encoder = MotorCommandEncoder(port_id, is_virtual_port, is_legacy_hub)
        self._decoder = TelemetryDecoder(port_id, lambda: self.mode, self.emit)

        logger.info(f"TachoMotor initialized on port {port_id} ({device_type.name})")

    @classmethod
    def from_config(cls, transport: Transport, config: MotorConfig) -> TachoMotor:
        """Build a motor from a validated configuration."""
        return cls(
            transport,
            config.port_id,
            mode_map=config.mode_map,
            device_type=config.device_type,
            is_virtual_port=config.is_virtual_port,
            is_legacy_hub=config.is_legacy_hub,
            history_size=config.history_size,
        )

    def receive(self, message: bytes) -> None:
        self._decoder.on_message(message, legacy_offset=self.is_legacy_hub)

    def set_speed(
        self,
        speed: Union[Speed, DualSpeed, None] = None,
        time: Optional[float] = None,
    ) -> asyncio.Future:
        """
        Set the motor speed.

        Args:
            speed: For forward, a value between 1 and 100. For reverse, a
                value between -1 and -100. Stop is 0. A pair of speeds is
                accepted on virtual ports. Defaults to 100.
            time: Optional run time in milliseconds

        Returns:
            Future resolved upon completion of the command
        """
        message = self._encoder.encode_speed(speed, time)
        return self._tracker.issue(message, CommandKind.SPEED)

    def rotate_by_angle(
        self,
        angle: float,
        speed: Union[Speed, DualSpeed, None] = None,
    ) -> asyncio.Future:
        """
        Rotate the motor by a given angle.

        Args:
            angle: How much the motor should be rotated, in degrees
            speed: Speed between -100 and 100, or a pair on virtual ports.
                Defaults to 100.

        Returns:
            Future resolved once the motor has finished rotating
        """
        message = self._encoder.encode_angle(angle, speed)
        return self._tracker.issue(message, CommandKind.ANGLE)
