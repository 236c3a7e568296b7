"""
Shared motor behaviour: transport access, event listeners, active
telemetry mode and the hub acknowledgment entry point.
"""

from __future__ import annotations

import asyncio
import functools
import inspect
from typing import Any, Callable, Dict, List, Optional, Protocol, Set

from loguru import logger

from .completion import CompletionTracker


class Transport(Protocol):
    """Byte delivery to the hub. Failures are the transport's concern."""

    def send(self, data: bytes) -> None:
        ...


class BasicMotor:
    """
    Base for devices attached to a hub port.

    The hub's message router calls :meth:`receive` with telemetry frames
    and :meth:`finished` when the hub reports a command as complete.
    """

    def __init__(
        self,
        transport: Transport,
        port_id: int,
        mode_map: Optional[Dict[str, int]] = None,
        is_virtual_port: bool = False,
        is_legacy_hub: bool = False,
        history_size: int = 100,
    ):
        self.transport = transport
        self.port_id = port_id
        self.is_virtual_port = is_virtual_port
        self.is_legacy_hub = is_legacy_hub

        self._mode_map: Dict[str, int] = dict(mode_map or {})
        self._mode: Optional[int] = None

        self._listeners: Dict[str, List[Callable]] = {}
        self._listener_tasks: Set[asyncio.Task] = set()
        self._tracker = CompletionTracker(self.send, history_size=history_size)

    @property
    def mode_map(self) -> Dict[str, int]:
        """Event name -> telemetry mode."""
        return dict(self._mode_map)

    @property
    def mode(self) -> Optional[int]:
        """Currently active telemetry mode."""
        return self._mode

    @mode.setter
    def mode(self, mode: Optional[int]) -> None:
        self._mode = mode

    @property
    def busy(self) -> bool:
        return self._tracker.busy

    @property
    def tracker(self) -> CompletionTracker:
        return self._tracker

    def mode_for(self, event: str) -> Optional[int]:
        """Telemetry mode that produces ``event``, if this device reports it."""
        return self._mode_map.get(event)

    def send(self, data: bytes) -> None:
        self.transport.send(data)

    def receive(self, message: bytes) -> None:
        """Handle an inbound telemetry frame. Subclasses decode their modes."""

    def finished(self) -> None:
        """Hub reported the last command as complete."""
        self._tracker.busy = False
        self._tracker.acknowledge()

    # -------------------------------------------------------------------------
    # Events
    # -------------------------------------------------------------------------

    def on(self, event: str, callback: Callable) -> None:
        """
        Register a listener for an event.

        Args:
            event: Event name, e.g. "rotate"
            callback: Function or coroutine function taking the event payload
        """
        self._listeners.setdefault(event, []).append(callback)
        logger.debug(f"Registered listener for {event} on port {self.port_id}")

    def off(self, event: str, callback: Callable) -> None:
        """Remove a registered listener."""
        if callback in self._listeners.get(event, []):
            self._listeners[event].remove(callback)

    def emit(self, event: str, payload: Any) -> None:
        """Deliver ``payload`` to every listener of ``event``."""
        for callback in list(self._listeners.get(event, [])):
            try:
                if inspect.iscoroutinefunction(callback):
                    task = asyncio.get_running_loop().create_task(callback(payload))
                    self._listener_tasks.add(task)
                    task.add_done_callback(functools.partial(self._listener_done, event))
                else:
                    callback(payload)
            except Exception as e:
                logger.error(f"Listener error for {event}: {e}")

    def _listener_done(self, event: str, task: asyncio.Task) -> None:
        self._listener_tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Listener error for {event}: {task.exception()}")
