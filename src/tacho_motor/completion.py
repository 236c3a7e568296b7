"""
Completion Tracker
===================
Bridges an issued motor command to the hub's "command complete"
acknowledgment.

Only one completion can be pending per motor. Issuing a command while
another is pending replaces the pending completion: the earlier future is
never resolved.
"""

from __future__ import annotations

import asyncio
from collections import deque
from datetime import datetime
from typing import Any, Callable, Deque, Dict, List, Optional

from loguru import logger

from .models import CommandKind, CommandRecord


class CompletionTracker:
    """
    Single-slot pending completion for one motor.

    Usage:
        tracker = CompletionTracker(transport.send)
        future = tracker.issue(buffer)
        ...
        tracker.acknowledge()   # on "command complete" from the hub
        await future
    """

    def __init__(self, send: Callable[[bytes], None], history_size: int = 100):
        """
        Initialize completion tracker.

        Args:
            send: Transport callable that delivers a buffer to the hub
            history_size: Number of issued commands kept for diagnostics
        """
        self._send = send
        self._pending: Optional[asyncio.Future] = None
        self._armed = False
        self.busy = False

        self._history: Deque[CommandRecord] = deque(maxlen=history_size)

        # Statistics
        self._issued = 0
        self._acknowledged = 0
        self._superseded = 0
        self._ignored_acks = 0
        self._last_ack_time: Optional[datetime] = None

    @property
    def armed(self) -> bool:
        """Whether a completion is pending."""
        return self._armed

    @property
    def statistics(self) -> Dict[str, Any]:
        """Get command statistics."""
        return {
            "issued": self._issued,
            "acknowledged": self._acknowledged,
            "superseded": self._superseded,
            "ignored_acks": self._ignored_acks,
            "last_ack_time": self._last_ack_time.isoformat() if self._last_ack_time else None,
        }

    def get_history(self) -> List[CommandRecord]:
        """Commands issued so far, oldest first."""
        return list(self._history)

    def issue(self, buffer: bytes, kind: CommandKind = CommandKind.SPEED) -> asyncio.Future:
        """
        Send a command and arm its completion.

        Must be called with a running event loop.

        Args:
            buffer: Encoded command buffer
            kind: Command kind, recorded in the history

        Returns:
            Future resolved once the hub acknowledges the command

        Raises:
            Whatever the transport raises. The previous pending completion,
            if any, is then left armed.
        """
        future = asyncio.get_running_loop().create_future()

        self.busy = True
        previous, superseding = self._pending, self._armed

        # Armed before sending so a transport acknowledging inline resolves it
        self._pending = future
        self._armed = True

        try:
            self._send(buffer)
        except Exception:
            if self._pending is future:
                self._pending = previous
                self._armed = superseding
            future.cancel()
            raise

        if superseding:
            self._superseded += 1
            logger.warning("Pending command superseded before acknowledgment; its completion will not resolve")

        self._issued += 1
        self._history.append(CommandRecord(kind=kind, payload=buffer))
        logger.trace(f"Issued {kind.value} command: {buffer.hex(' ')}")

        return future

    def acknowledge(self) -> None:
        """
        Resolve the pending completion, if any.

        Busy is left untouched; the caller clears it.
        """
        if not self._armed:
            self._ignored_acks += 1
            logger.debug("Acknowledgment received with no pending command")
            return

        future = self._pending
        self._pending = None
        self._armed = False

        self._acknowledged += 1
        self._last_ack_time = datetime.now()
        if not future.done():
            future.set_result(None)
