"""Sensor interface shared by the synthetic and replay sensors."""

from __future__ import annotations

from abc import ABC, abstractmethod

from iqpresence.sensor.calibration import CalibrationResult
from iqpresence.sensor.config import MeasurementConfig


class SensorError(Exception):
	"""Base class for sensor failures."""


class SensorNotPreparedError(SensorError):
	pass


class CalibrationError(SensorError):
	pass


class SensorTimeoutError(SensorError):
	"""No frame became ready within the interrupt timeout."""


class FrameError(SensorError):
	"""Frame data could not be decoded."""


class Sensor(ABC):
	"""A radar front end producing raw IQ frames.

	Measurement cycle:
		sensor.prepare(config, cal_result, buffer)
		sensor.measure()
		sensor.wait_for_interrupt(timeout_s)
		sensor.read(buffer)

	All methods raise SensorError subclasses on failure.
	"""

	def __init__(self, sensor_id: int = 1) -> None:
		self.sensor_id = sensor_id
		self._config: MeasurementConfig | None = None

	@property
	def config(self) -> MeasurementConfig | None:
		return self._config

	@property
	def is_prepared(self) -> bool:
		return self._config is not None

	@abstractmethod
	def calibrate(self) -> CalibrationResult:
		pass

	def validate_calibration(self, cal_result: CalibrationResult) -> None:
		"""Raise CalibrationError unless cal_result can be used with this sensor."""
		errors = cal_result.validate()
		if cal_result.sensor_id != self.sensor_id:
			errors.append(
				f"calibration belongs to sensor {cal_result.sensor_id}, not {self.sensor_id}"
			)
		if errors:
			raise CalibrationError("; ".join(errors))

	@abstractmethod
	def prepare(
		self,
		config: MeasurementConfig,
		cal_result: CalibrationResult,
		buffer: bytearray | memoryview,
	) -> None:
		pass

	@abstractmethod
	def measure(self) -> None:
		pass

	@abstractmethod
	def wait_for_interrupt(self, timeout_s: float = 1.0) -> bool:
		"""Returns True once the measured frame is ready to be read."""
		pass

	@abstractmethod
	def read(self, buffer: bytearray | memoryview) -> int:
		"""Copy the last measured frame into buffer. Returns bytes written."""
		pass

	def _require_prepared(self) -> MeasurementConfig:
		if self._config is None:
			raise SensorNotPreparedError("Sensor not prepared")
		return self._config
