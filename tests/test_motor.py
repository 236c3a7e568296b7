"""
Tests for command issuing, completion tracking and motor events.
"""

import asyncio
import struct

import pytest
from loguru import logger
from unittest.mock import Mock

from tacho_motor import (
    CommandKind,
    CompletionTracker,
    DeviceType,
    HubType,
    InvalidConfiguration,
    Mode,
    MotorConfig,
    TachoMotor,
    UnsupportedOperation,
)


@pytest.fixture
def transport():
    """Provide a transport recording sent buffers."""
    return Mock()


@pytest.fixture
def motor(transport):
    """Provide a motor on physical port 1."""
    return TachoMotor(transport, port_id=1)


@pytest.fixture
def virtual_motor(transport):
    """Provide a motor on a virtual port."""
    return TachoMotor(transport, port_id=0x10, is_virtual_port=True)


class TestCompletionTracker:
    """Tests for the single-slot completion tracker."""

    @pytest.mark.asyncio
    async def test_issue_sends_and_arms(self):
        send = Mock()
        tracker = CompletionTracker(send)

        future = tracker.issue(b"\x01\x02")

        send.assert_called_once_with(b"\x01\x02")
        assert tracker.busy
        assert tracker.armed
        assert not future.done()

    @pytest.mark.asyncio
    async def test_acknowledge_resolves_once(self):
        tracker = CompletionTracker(Mock())
        future = tracker.issue(b"\x00")

        tracker.acknowledge()
        await asyncio.wait_for(future, timeout=1.0)

        assert future.result() is None
        assert not tracker.armed
        # Busy is cleared by the owner, not by acknowledge
        assert tracker.busy

    @pytest.mark.asyncio
    async def test_acknowledge_without_pending_is_noop(self):
        tracker = CompletionTracker(Mock())
        tracker.acknowledge()

        assert not tracker.armed
        assert tracker.statistics["ignored_acks"] == 1

    @pytest.mark.asyncio
    async def test_second_issue_supersedes_first(self):
        """Last issued wins; the superseded future never resolves."""
        tracker = CompletionTracker(Mock())
        first = tracker.issue(b"\x01")
        second = tracker.issue(b"\x02")

        tracker.acknowledge()
        await asyncio.wait_for(second, timeout=1.0)

        assert second.done()
        assert not first.done()

        # A further acknowledgment does not reach the superseded command
        tracker.acknowledge()
        assert not first.done()
        assert tracker.statistics["superseded"] == 1
        assert tracker.statistics["acknowledged"] == 1

    @pytest.mark.asyncio
    async def test_synchronous_acknowledgment_from_transport(self):
        """A transport that acknowledges while sending still resolves the future."""
        tracker = None

        def send(data):
            tracker.acknowledge()

        tracker = CompletionTracker(send)
        future = tracker.issue(b"\x00")

        await asyncio.wait_for(future, timeout=1.0)

    @pytest.mark.asyncio
    async def test_history_is_bounded(self):
        tracker = CompletionTracker(Mock(), history_size=3)
        for i in range(5):
            tracker.issue(bytes([i]), CommandKind.ANGLE)

        history = tracker.get_history()
        assert [record.payload for record in history] == [b"\x02", b"\x03", b"\x04"]
        assert history[-1].kind == CommandKind.ANGLE
        assert history[-1].hex == "04"

    @pytest.mark.asyncio
    async def test_failed_send_leaves_tracker_unarmed(self):
        """A transport error propagates and nothing stays pending."""
        tracker = CompletionTracker(Mock(side_effect=OSError("link down")))

        with pytest.raises(OSError):
            tracker.issue(b"\x01")

        assert not tracker.armed
        assert tracker.statistics["issued"] == 0
        assert tracker.get_history() == []

        # A later acknowledgment is ignored rather than resolving an orphan
        tracker.acknowledge()
        assert tracker.statistics["ignored_acks"] == 1

    @pytest.mark.asyncio
    async def test_failed_send_keeps_previous_command_pending(self):
        send = Mock()
        tracker = CompletionTracker(send)
        first = tracker.issue(b"\x01")

        send.side_effect = OSError("link down")
        with pytest.raises(OSError):
            tracker.issue(b"\x02")

        assert tracker.armed
        assert tracker.statistics["superseded"] == 0

        tracker.acknowledge()
        await asyncio.wait_for(first, timeout=1.0)

    @pytest.mark.asyncio
    async def test_cancelled_future_does_not_break_acknowledge(self):
        tracker = CompletionTracker(Mock())
        future = tracker.issue(b"\x00")
        future.cancel()

        tracker.acknowledge()
        assert not tracker.armed


class TestTachoMotorCommands:
    """Tests for the public command methods."""

    @pytest.mark.asyncio
    async def test_set_speed_sends_buffer(self, motor, transport):
        future = motor.set_speed(50)

        transport.send.assert_called_once_with(bytes.fromhex("81 01 11 07 32 64 03 64 7f 03"))
        assert motor.busy

        motor.finished()
        await asyncio.wait_for(future, timeout=1.0)
        assert not motor.busy

    @pytest.mark.asyncio
    async def test_set_speed_timed(self, motor, transport):
        motor.set_speed(50, 200)
        transport.send.assert_called_once_with(bytes.fromhex("81 01 11 09 c8 00 32 64 7f 03"))

    @pytest.mark.asyncio
    async def test_rotate_by_angle(self, transport):
        motor = TachoMotor(transport, port_id=2)
        future = motor.rotate_by_angle(720, 30)

        transport.send.assert_called_once_with(bytes.fromhex("81 02 11 0b d0 02 00 00 1e 64 7f 03"))

        motor.finished()
        await asyncio.wait_for(future, timeout=1.0)

    @pytest.mark.asyncio
    async def test_dual_speed_on_virtual_port(self, virtual_motor, transport):
        virtual_motor.set_speed((30, -30))
        transport.send.assert_called_once_with(bytes.fromhex("81 10 11 08 1e e2 64 7f 03"))

    def test_dual_speed_on_physical_port_sends_nothing(self, motor, transport):
        """Errors are raised synchronously, before any future or send."""
        with pytest.raises(InvalidConfiguration):
            motor.set_speed((50, 50))
        with pytest.raises(InvalidConfiguration):
            motor.rotate_by_angle(90, (50, 50))

        transport.send.assert_not_called()
        assert not motor.busy
        assert not motor.tracker.armed

    def test_legacy_hub_sends_nothing(self, transport):
        motor = TachoMotor(transport, port_id=1, is_legacy_hub=True)
        with pytest.raises(UnsupportedOperation):
            motor.set_speed(50)
        with pytest.raises(UnsupportedOperation):
            motor.rotate_by_angle(90)

        transport.send.assert_not_called()
        assert not motor.busy

    @pytest.mark.asyncio
    async def test_overlapping_commands_last_wins(self, motor):
        first = motor.set_speed(50)
        second = motor.rotate_by_angle(90, 50)

        motor.finished()
        await asyncio.wait_for(second, timeout=1.0)

        assert not first.done()

    @pytest.mark.asyncio
    async def test_unacknowledged_command_never_resolves(self, motor):
        future = motor.set_speed(10)
        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(asyncio.shield(future), timeout=0.05)
        assert not future.done()

    def test_from_config(self, transport):
        config = MotorConfig(
            port_id=4,
            hub_type=HubType.WEDO2_SMART_HUB,
            device_type=DeviceType.MEDIUM_LINEAR_MOTOR,
            mode_map={"speed": 0x01, "rotate": 0x05},
        )
        motor = TachoMotor.from_config(transport, config)

        assert motor.port_id == 4
        assert motor.is_legacy_hub
        assert motor.device_type == DeviceType.MEDIUM_LINEAR_MOTOR
        # Tacho modes take precedence over caller entries
        assert motor.mode_for("rotate") == Mode.ROTATION
        assert motor.mode_for("speed") == 0x01


class TestTachoMotorTelemetry:
    """Tests for rotation events raised from inbound frames."""

    def test_rotate_event(self, motor):
        received = []
        motor.on("rotate", received.append)
        motor.mode = motor.mode_for("rotate")

        motor.receive(bytes([0x08, 0x00, 0x45, 0x01]) + struct.pack('<i', 360))

        assert len(received) == 1
        assert received[0].rotation == 360
        assert received[0].port_id == 1

    def test_legacy_hub_uses_short_header(self, transport):
        motor = TachoMotor(transport, port_id=1, is_legacy_hub=True)
        received = []
        motor.on("rotate", received.append)
        motor.mode = Mode.ROTATION

        motor.receive(bytes([0x06, 0x01]) + struct.pack('<i', -15))

        assert received[0].rotation == -15

    def test_inactive_mode_emits_nothing(self, motor):
        listener = Mock()
        motor.on("rotate", listener)

        motor.receive(bytes(8))
        listener.assert_not_called()

    def test_listener_error_is_isolated(self, motor):
        failing = Mock(side_effect=RuntimeError("boom"))
        received = []
        motor.on("rotate", failing)
        motor.on("rotate", received.append)
        motor.mode = Mode.ROTATION

        motor.receive(bytes(4) + struct.pack('<i', 7))

        failing.assert_called_once()
        assert received[0].rotation == 7

    def test_off_removes_listener(self, motor):
        listener = Mock()
        motor.on("rotate", listener)
        motor.off("rotate", listener)
        motor.mode = Mode.ROTATION

        motor.receive(bytes(8))
        listener.assert_not_called()

    @pytest.mark.asyncio
    async def test_coroutine_listener(self, motor):
        received = []

        async def listener(event):
            received.append(event.rotation)

        motor.on("rotate", listener)
        motor.mode = Mode.ROTATION
        motor.receive(bytes(4) + struct.pack('<i', 42))
        await asyncio.sleep(0)

        assert received == [42]

    @pytest.mark.asyncio
    async def test_coroutine_listener_error_is_logged(self, motor):
        messages = []
        handler_id = logger.add(messages.append, level="ERROR")

        async def failing(event):
            raise RuntimeError("boom")

        motor.on("rotate", failing)
        motor.mode = Mode.ROTATION
        try:
            motor.receive(bytes(4) + struct.pack('<i', 5))
            for _ in range(3):
                await asyncio.sleep(0)
        finally:
            logger.remove(handler_id)

        assert any("Listener error for rotate: boom" in message for message in messages)
