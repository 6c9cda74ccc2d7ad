"""Exceptions raised by the presence detector."""

from __future__ import annotations


class PresenceError(Exception):
	"""Base class for presence detector failures."""


class InvalidConfigError(PresenceError, ValueError):
	"""Configuration rejected at create or prepare time."""

	def __init__(self, errors: list[str]) -> None:
		self.errors = list(errors)
		super().__init__("; ".join(self.errors) or "invalid configuration")


class BufferTooSmallError(PresenceError):
	"""Caller-supplied buffer is smaller than get_buffer_size()."""

	def __init__(self, required: int, actual: int) -> None:
		self.required = required
		self.actual = actual
		super().__init__(f"Buffer too small: {actual} < {required} bytes")


class HardwareError(PresenceError):
	"""Sensor or acquisition failure, propagated without retry."""


class DetectorStateError(PresenceError, RuntimeError):
	"""Operation not allowed in the detector's current lifecycle state."""
