"""
Motor command errors.

Both errors are raised synchronously, before a command buffer reaches the
transport.
"""


class MotorError(Exception):
    """Base class for motor command errors."""


class InvalidConfiguration(MotorError, ValueError):
    """A dual speed was supplied to a motor on a physical (non-virtual) port."""


class UnsupportedOperation(MotorError, RuntimeError):
    """The hub the motor is attached to does not accept motor commands."""
