"""Hardware abstraction for moving frame data off the sensor.

A SensorHal always offers byte transfers. Some hosts can also move 16-bit
words, which halves the number of bus transactions for IQ data. The transfer
path is picked once, when the HAL is registered with a sensor.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

import numpy as np

logger = logging.getLogger(__name__)

DEFAULT_MAX_TRANSFER_SIZE = 65535


class SensorHal(ABC):
	"""Bus access for one or more sensors.

	Subclasses may additionally define transfer16(sensor_id, words) taking a
	writable uint16 view; TransferPath.for_hal() detects it.
	"""

	max_transfer_size: int = DEFAULT_MAX_TRANSFER_SIZE

	@abstractmethod
	def transfer8(self, sensor_id: int, buffer: memoryview) -> None:
		"""Fill buffer with the next len(buffer) bytes from the sensor."""
		pass


class FifoHal(SensorHal):
	"""In-memory HAL: sensors push bytes, transfers pop them in order."""

	def __init__(self, max_transfer_size: int = DEFAULT_MAX_TRANSFER_SIZE) -> None:
		self.max_transfer_size = max_transfer_size
		self._pending: dict[int, bytearray] = {}
		self.transfer_sizes: list[int] = []

	def load(self, sensor_id: int, payload: bytes) -> None:
		self._pending.setdefault(sensor_id, bytearray()).extend(payload)

	def pending(self, sensor_id: int) -> int:
		return len(self._pending.get(sensor_id, b""))

	def _pop(self, sensor_id: int, n: int) -> bytes:
		fifo = self._pending.get(sensor_id, bytearray())
		if len(fifo) < n:
			raise OSError(f"Sensor {sensor_id}: requested {n} bytes, {len(fifo)} pending")
		chunk = bytes(fifo[:n])
		del fifo[:n]
		self.transfer_sizes.append(n)
		return chunk

	def transfer8(self, sensor_id: int, buffer: memoryview) -> None:
		buffer[:] = self._pop(sensor_id, len(buffer))


class WideFifoHal(FifoHal):
	"""FifoHal that also moves 16-bit words."""

	def transfer16(self, sensor_id: int, words: np.ndarray) -> None:
		words[:] = np.frombuffer(self._pop(sensor_id, words.nbytes), dtype="<u2")


class TransferPath(ABC):
	"""Strategy for reading a block of bytes through a HAL in bounded chunks."""

	name = "base"

	def __init__(self, hal: SensorHal) -> None:
		self.hal = hal

	@classmethod
	def for_hal(cls, hal: SensorHal) -> TransferPath:
		"""Pick the widest path the HAL supports."""
		if callable(getattr(hal, "transfer16", None)):
			path: TransferPath = WordTransferPath(hal)
		else:
			path = ByteTransferPath(hal)
		logger.debug(f"Transfer path: {path.name}, max transfer {hal.max_transfer_size} bytes")
		return path

	def read(self, sensor_id: int, buffer: memoryview) -> None:
		chunk = self.chunk_size
		for offset in range(0, len(buffer), chunk):
			self._transfer(sensor_id, buffer[offset:offset + chunk])

	@property
	def chunk_size(self) -> int:
		return self.hal.max_transfer_size

	@abstractmethod
	def _transfer(self, sensor_id: int, buffer: memoryview) -> None:
		pass


class ByteTransferPath(TransferPath):
	name = "8-bit"

	def _transfer(self, sensor_id: int, buffer: memoryview) -> None:
		self.hal.transfer8(sensor_id, buffer)


class WordTransferPath(TransferPath):
	"""16-bit transfers; an odd trailing byte falls back to transfer8."""

	name = "16-bit"

	@property
	def chunk_size(self) -> int:
		# Keep chunks word aligned
		return max(2, self.hal.max_transfer_size & ~1)

	def _transfer(self, sensor_id: int, buffer: memoryview) -> None:
		even = len(buffer) & ~1
		if even:
			words = np.frombuffer(buffer[:even], dtype="<u2")
			self.hal.transfer16(sensor_id, words)
		if even != len(buffer):
			self.hal.transfer8(sensor_id, buffer[even:])
