"""Sensor that plays back recorded raw frames."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

from iqpresence.sensor.base import Sensor, SensorError
from iqpresence.sensor.calibration import CalibrationResult
from iqpresence.sensor.config import MeasurementConfig
from iqpresence.sensor.frame import FrameHeader

logger = logging.getLogger(__name__)


class EndOfRecording(SensorError):
	pass


class ReplaySensor(Sensor):
	"""Feeds raw frames from a recording through the Sensor interface."""

	def __init__(self, frames: Iterable[bytes], sensor_id: int = 1, loop: bool = False) -> None:
		super().__init__(sensor_id)
		self._frames = list(frames)
		self._loop = loop
		self._index = 0
		self._pending: bytes | None = None
		logger.info(f"ReplaySensor loaded {len(self._frames)} frames")

	@classmethod
	def from_recording(cls, path: str | Path, loop: bool = False) -> ReplaySensor:
		from iqpresence.storage.reader import DataReader

		with DataReader(path) as reader:
			sensor_id = reader.metadata.get("sensor_id", 1)
			frames = list(reader.iter_raw())
		return cls(frames, sensor_id=sensor_id, loop=loop)

	def __len__(self) -> int:
		return len(self._frames)

	@property
	def remaining(self) -> int:
		return len(self._frames) - self._index

	def calibrate(self) -> CalibrationResult:
		temperature = 25
		if self._frames:
			temperature = FrameHeader.from_bytes(self._frames[0]).temperature
		return CalibrationResult(sensor_id=self.sensor_id, temperature=temperature)

	def prepare(
		self,
		config: MeasurementConfig,
		cal_result: CalibrationResult,
		buffer: bytearray | memoryview,
	) -> None:
		self.validate_calibration(cal_result)
		if self._frames:
			header = FrameHeader.from_bytes(self._frames[0])
			if (header.sweeps_per_frame, header.num_points) != (
				config.sweeps_per_frame,
				config.num_points,
			):
				raise SensorError(
					f"Recording has {header.sweeps_per_frame}x{header.num_points} frames, "
					f"config expects {config.sweeps_per_frame}x{config.num_points}"
				)
		self._config = config
		self._pending = None

	def measure(self) -> None:
		self._require_prepared()
		if self._index >= len(self._frames):
			if not self._loop or not self._frames:
				raise EndOfRecording(f"End of recording after {self._index} frames")
			self._index = 0
		self._pending = self._frames[self._index]
		self._index += 1

	def wait_for_interrupt(self, timeout_s: float = 1.0) -> bool:
		return self._pending is not None

	def read(self, buffer: bytearray | memoryview) -> int:
		self._require_prepared()
		if self._pending is None:
			raise SensorError("No frame measured")
		payload = self._pending
		if len(buffer) < len(payload):
			raise SensorError(f"Buffer too small: {len(buffer)} < {len(payload)} bytes")
		buffer[:len(payload)] = payload
		self._pending = None
		return len(payload)
