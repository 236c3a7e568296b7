"""
Telemetry Decoder
==================
Translates inbound sensor frames into motor events.

Decoding is dispatched through a table keyed by the active telemetry mode;
frames for modes without a handler are left to other consumers.
"""

from __future__ import annotations

import struct
from typing import Callable, Dict, Optional

from loguru import logger
from pydantic import BaseModel

from .models import Mode, RotationEvent


class TelemetryDecoder:
    """
    Decodes rotation telemetry for one motor port.

    Args:
        port_id: Hub port the frames come from
        get_mode: Returns the currently active telemetry mode
        emit: Called with ``(event_name, payload)`` for each decoded frame
    """

    ROTATION_OFFSET = 4
    LEGACY_ROTATION_OFFSET = 2  # legacy hubs use a shorter header

    def __init__(
        self,
        port_id: int,
        get_mode: Callable[[], Optional[int]],
        emit: Callable[[str, BaseModel], None],
    ):
        self.port_id = port_id
        self._get_mode = get_mode
        self._emit = emit

        self._handlers: Dict[int, Callable[[bytes, bool], Optional[BaseModel]]] = {
            Mode.ROTATION: self._decode_rotation,
        }
        self._event_names: Dict[int, str] = {
            Mode.ROTATION: "rotate",
        }

    def on_message(self, message: bytes, legacy_offset: bool = False) -> Optional[BaseModel]:
        """
        Decode a frame according to the active mode and emit its event.

        Args:
            message: Raw inbound frame
            legacy_offset: Frame comes from a legacy hub

        Returns:
            The emitted event, or None if the frame was not decoded
        """
        mode = self._get_mode()
        logger.trace(f"Port {self.port_id} frame in mode {mode}: {bytes(message).hex(' ')}")

        handler = self._handlers.get(mode)
        if handler is None:
            return None

        try:
            event = handler(message, legacy_offset)
        except struct.error as e:
            logger.warning(f"Failed to decode port {self.port_id} telemetry frame: {e}")
            return None

        self._emit(self._event_names[mode], event)
        return event

    def _decode_rotation(self, message: bytes, legacy_offset: bool) -> RotationEvent:
        offset = self.LEGACY_ROTATION_OFFSET if legacy_offset else self.ROTATION_OFFSET
        rotation, = struct.unpack_from('<i', message, offset)
        return RotationEvent(port_id=self.port_id, rotation=rotation)
