"""
Motor Command Encoder
======================
Builds the port output command buffers understood by the hub firmware.

Buffer layouts (``S`` = mapped speed byte, ``S0``/``S1`` = dual speeds)::

    single speed, untimed   81 port 11 07 S 64 03 64 7f 03
    single speed, timed     81 port 11 09 t_lo t_hi S 64 7f 03
    dual speed, untimed     81 port 11 08 S0 S1 64 7f 03
    dual speed, timed       81 port 11 0a t_lo t_hi S0 S1 64 7f 03
    single angle            81 port 11 0b a0 a1 a2 a3 S 64 7f 03
    dual angle              81 port 11 0c a0 a1 a2 a3 S0 S1 64 7f 03

Durations (uint16) and angles (int32) are little-endian and patched in at
offset 4 after the buffer has been laid out.
"""

from __future__ import annotations

import struct
from typing import List, Optional, Sequence, Union

from loguru import logger

from .errors import InvalidConfiguration, UnsupportedOperation
from .models import DualSpeed, Speed
from .utils import clamp_angle, clamp_duration, map_speed


class MotorCommandEncoder:
    """
    Encodes speed and angle commands for one motor port.

    The encoder is synchronous and side-effect free: it only validates its
    inputs and returns the bytes to send.
    """

    PORT_OUTPUT_COMMAND = 0x81
    STARTUP_AND_COMPLETION = 0x11
    TRAILER = bytes([0x64, 0x7F, 0x03])
    PATCH_OFFSET = 4

    # Subcommand selectors
    SPEED = 0x07
    SPEED_DUAL = 0x08
    SPEED_FOR_TIME = 0x09
    SPEED_FOR_TIME_DUAL = 0x0A
    SPEED_FOR_DEGREES = 0x0B
    SPEED_FOR_DEGREES_DUAL = 0x0C

    def __init__(self, port_id: int, is_virtual_port: bool = False, is_legacy_hub: bool = False):
        """
        Initialize encoder.

        Args:
            port_id: Port identifier assigned by the hub
            is_virtual_port: Whether the port drives two synchronized motors
            is_legacy_hub: Whether the hub lacks motor command support
        """
        self.port_id = port_id
        self.is_virtual_port = is_virtual_port
        self.is_legacy_hub = is_legacy_hub

    def _speeds(self, speed: Union[Speed, DualSpeed, None]) -> List[int]:
        if isinstance(speed, (list, tuple)):
            return [map_speed(value) for value in speed]
        return [map_speed(speed)]

    def _check(self, speed: Union[Speed, DualSpeed, None], operation: str) -> None:
        if not self.is_virtual_port and isinstance(speed, (list, tuple)):
            raise InvalidConfiguration("Only virtual ports can accept multiple speeds")
        if self.is_legacy_hub:
            raise UnsupportedOperation(f"{operation} is not available on the WeDo 2.0 Smart Hub")
        if isinstance(speed, (list, tuple)) and len(speed) != 2:
            raise InvalidConfiguration(f"Dual speed needs exactly two values, got {len(speed)}")

    def _header(self, subcommand: int) -> bytearray:
        return bytearray([
            self.PORT_OUTPUT_COMMAND,
            self.port_id,
            self.STARTUP_AND_COMPLETION,
            subcommand,
        ])

    @staticmethod
    def _speed_bytes(speeds: Sequence[int]) -> bytes:
        return struct.pack(f'<{len(speeds)}b', *speeds)

    def encode_speed(
        self,
        speed: Union[Speed, DualSpeed, None] = None,
        duration: Optional[float] = None,
    ) -> bytes:
        """
        Encode a speed command.

        Args:
            speed: Speed in [-100, 100], or a pair of speeds on a virtual port.
                Defaults to full forward.
            duration: Optional run time in milliseconds. Selects the timed
                layout when given.

        Returns:
            Command buffer

        Raises:
            InvalidConfiguration: Dual speed on a non-virtual port
            UnsupportedOperation: Motor attached to a legacy hub
        """
        self._check(speed, "Motor speed")
        speeds = self._speeds(speed)
        dual = len(speeds) == 2

        if duration is not None:
            message = self._header(self.SPEED_FOR_TIME_DUAL if dual else self.SPEED_FOR_TIME)
            message += bytes(2)
            message += self._speed_bytes(speeds)
            message += self.TRAILER
            struct.pack_into('<H', message, self.PATCH_OFFSET, clamp_duration(duration))
        elif dual:
            message = self._header(self.SPEED_DUAL)
            message += self._speed_bytes(speeds)
            message += self.TRAILER
        else:
            message = self._header(self.SPEED)
            message += self._speed_bytes(speeds)
            message += bytes([0x64, 0x03])
            message += self.TRAILER

        logger.debug(f"Port {self.port_id} speed command: {message.hex(' ')}")
        return bytes(message)

    def encode_angle(self, angle: float, speed: Union[Speed, DualSpeed, None] = None) -> bytes:
        """
        Encode a rotate-by-angle command.

        Args:
            angle: Rotation in degrees
            speed: Speed in [-100, 100], or a pair of speeds on a virtual port.
                Defaults to full forward.

        Returns:
            Command buffer

        Raises:
            InvalidConfiguration: Dual speed on a non-virtual port
            UnsupportedOperation: Motor attached to a legacy hub
        """
        self._check(speed, "Angle rotation")
        speeds = self._speeds(speed)
        dual = len(speeds) == 2

        message = self._header(self.SPEED_FOR_DEGREES_DUAL if dual else self.SPEED_FOR_DEGREES)
        message += bytes(4)
        message += self._speed_bytes(speeds)
        message += self.TRAILER
        struct.pack_into('<i', message, self.PATCH_OFFSET, clamp_angle(angle))

        logger.debug(f"Port {self.port_id} angle command: {message.hex(' ')}")
        return bytes(message)
