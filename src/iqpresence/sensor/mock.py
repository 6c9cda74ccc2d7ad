"""Mock radar sensor for testing without hardware.

Generates synthetic IQ frames including:
- Point reflectors with breathing (amplitude) and displacement (phase) motion
- Static clutter
- Complex Gaussian noise, int16 quantization and saturation

Frames are timestamped on a synthetic clock (frame n is measured at
n / frame_rate) so output only depends on the configuration and seed.
"""

from __future__ import annotations

import logging
import math
import time
from collections.abc import Iterator
from dataclasses import dataclass, field

import numpy as np
from numpy.typing import NDArray

from iqpresence.sensor.base import CalibrationError, Sensor, SensorError
from iqpresence.sensor.calibration import CalibrationResult
from iqpresence.sensor.config import (
	ENVELOPE_FWHM_M,
	WAVELENGTH_M,
	MeasurementConfig,
)
from iqpresence.sensor.frame import FrameFlags, encode_frame
from iqpresence.sensor.hal import FifoHal, TransferPath

logger = logging.getLogger(__name__)


@dataclass
class Reflector:
	"""A point target in front of the sensor."""

	distance_m: float
	amplitude: float = 500.0  # LSB
	phase: float = 0.0

	# Breathing: relative amplitude swing
	modulation_depth: float = 0.0
	modulation_hz: float = 0.25

	# Displacement along the line of sight, seen as phase rotation
	motion_amplitude_m: float = 0.0
	motion_hz: float = 1.0

	# Visible between these times (seconds on the synthetic clock)
	appear_s: float = 0.0
	disappear_s: float | None = None

	def is_visible(self, t: float) -> bool:
		if t < self.appear_s:
			return False
		return self.disappear_s is None or t < self.disappear_s


@dataclass
class MockConfig:
	"""Configuration for mock radar data generation."""

	reflectors: list[Reflector] = field(default_factory=list)
	noise_std: float = 20.0  # LSB RMS per complex sample
	clutter_amplitude: float = 0.0  # LSB, fixed per point
	sweep_rate_hz: float = 2000.0
	temperature: int = 25
	seed: int | None = None

	# Real-time pacing of wait_for_interrupt() at the configured frame rate
	realtime: bool = False

	# Failure injection
	fail_calibration: bool = False
	fail_measure_after: int | None = None  # frames


class MockSensor(Sensor):
	"""Synthetic sensor implementing the Sensor interface.

	Usage:
		sensor = MockSensor(MockConfig(reflectors=[Reflector(1.0)], seed=1))
		cal = sensor.calibrate()
		sensor.prepare(measurement_config, cal, buffer)
		sensor.measure()
		sensor.wait_for_interrupt()
		sensor.read(buffer)
	"""

	def __init__(
		self,
		config: MockConfig | None = None,
		sensor_id: int = 1,
		hal: FifoHal | None = None,
	) -> None:
		super().__init__(sensor_id)
		self._mock = config or MockConfig()
		self._hal = hal or FifoHal()
		self._transfer = TransferPath.for_hal(self._hal)
		self._rng = np.random.default_rng(self._mock.seed)
		self._cal_result: CalibrationResult | None = None
		self._clutter: NDArray[np.complex128] | None = None
		self._frame_count = 0
		self._pending: bytes | None = None
		self._ready = False
		self._last_frame_time = 0.0

		logger.info(f"MockSensor {sensor_id} initialized (synthetic data mode)")

	@property
	def mock_config(self) -> MockConfig:
		return self._mock

	@property
	def transfer_path(self) -> TransferPath:
		return self._transfer

	@property
	def frame_count(self) -> int:
		return self._frame_count

	def calibrate(self) -> CalibrationResult:
		if self._mock.fail_calibration:
			raise CalibrationError(f"Sensor {self.sensor_id}: calibration failed")
		self._cal_result = CalibrationResult(
			sensor_id=self.sensor_id,
			temperature=self._mock.temperature,
			data=self._rng.bytes(64),
		)
		logger.info(f"MockSensor {self.sensor_id} calibrated at {self._mock.temperature} C")
		return self._cal_result

	def prepare(
		self,
		config: MeasurementConfig,
		cal_result: CalibrationResult,
		buffer: bytearray | memoryview,
	) -> None:
		errors = config.validate()
		if errors:
			raise SensorError("; ".join(errors))
		self.validate_calibration(cal_result)
		if len(buffer) < config.frame_size:
			raise SensorError(f"Buffer too small: {len(buffer)} < {config.frame_size} bytes")

		self._config = config
		self._cal_result = cal_result
		self._clutter = self._make_clutter(config.num_points)
		self._pending = None
		self._ready = False
		self._last_frame_time = time.time()
		logger.info(
			f"MockSensor {self.sensor_id} prepared: {config.num_points} points, "
			f"{config.sweeps_per_frame} sweeps/frame"
		)

	def _make_clutter(self, num_points: int) -> NDArray[np.complex128]:
		amplitude = self._mock.clutter_amplitude
		if amplitude <= 0:
			return np.zeros(num_points, dtype=np.complex128)
		phase = self._rng.uniform(0, 2 * np.pi, num_points)
		return amplitude * np.exp(1j * phase)

	def measure(self) -> None:
		config = self._require_prepared()
		limit = self._mock.fail_measure_after
		if limit is not None and self._frame_count >= limit:
			raise SensorError(f"Sensor {self.sensor_id}: measurement failed (injected)")

		samples = self.generate_frame(config, self._frame_count / config.frame_rate)
		flags = FrameFlags.NONE
		if self._cal_result is not None and self._cal_result.needs_recalibration(
			self._mock.temperature
		):
			flags |= FrameFlags.CALIBRATION_NEEDED

		self._pending = encode_frame(
			samples,
			sequence=self._frame_count,
			temperature=self._mock.temperature,
			flags=flags,
		)
		self._frame_count += 1
		self._ready = True

	def wait_for_interrupt(self, timeout_s: float = 1.0) -> bool:
		if not self._ready:
			return False
		if self._mock.realtime and self._config is not None:
			period = 1.0 / self._config.frame_rate
			remaining = period - (time.time() - self._last_frame_time)
			if remaining > timeout_s:
				return False
			if remaining > 0:
				time.sleep(remaining)
			self._last_frame_time = time.time()
		return True

	def read(self, buffer: bytearray | memoryview) -> int:
		self._require_prepared()
		if self._pending is None or not self._ready:
			raise SensorError(f"Sensor {self.sensor_id}: no frame measured")
		payload = self._pending
		if len(buffer) < len(payload):
			raise SensorError(f"Buffer too small: {len(buffer)} < {len(payload)} bytes")

		self._hal.load(self.sensor_id, payload)
		try:
			self._transfer.read(self.sensor_id, memoryview(buffer)[:len(payload)])
		except OSError as e:
			raise SensorError(f"Sensor {self.sensor_id}: transfer failed: {e}") from e

		self._pending = None
		self._ready = False
		return len(payload)

	def generate_frame(self, config: MeasurementConfig, t: float) -> NDArray[np.complex128]:
		"""Complex samples (sweeps_per_frame, num_points) for a frame starting at t."""
		distances = np.asarray(config.distances())
		sweep_times = t + np.arange(config.sweeps_per_frame) / self._mock.sweep_rate_hz
		fwhm = ENVELOPE_FWHM_M[config.profile]

		clutter = self._clutter
		if clutter is None or len(clutter) != config.num_points:
			clutter = self._make_clutter(config.num_points)
			self._clutter = clutter

		frame = np.tile(clutter, (config.sweeps_per_frame, 1))
		for reflector in self._mock.reflectors:
			visible = np.array([reflector.is_visible(ts) for ts in sweep_times])
			if not visible.any():
				continue
			frame += visible[:, None] * self._reflection(reflector, distances, sweep_times, fwhm)

		if self._mock.noise_std > 0:
			scale = self._mock.noise_std / math.sqrt(2)
			frame += self._rng.normal(0, scale, frame.shape) + 1j * self._rng.normal(
				0, scale, frame.shape
			)
		return frame

	def _reflection(
		self,
		reflector: Reflector,
		distances: NDArray[np.float64],
		sweep_times: NDArray[np.float64],
		fwhm: float,
	) -> NDArray[np.complex128]:
		breathing = 1.0 + reflector.modulation_depth * np.sin(
			2 * np.pi * reflector.modulation_hz * sweep_times
		)
		displacement = reflector.motion_amplitude_m * np.sin(
			2 * np.pi * reflector.motion_hz * sweep_times
		)
		r = reflector.distance_m + displacement

		offset = distances[None, :] - r[:, None]
		envelope = np.exp(-4 * np.log(2) * (offset / fwhm) ** 2)
		phase = reflector.phase + 4 * np.pi * r / WAVELENGTH_M
		return (reflector.amplitude * breathing * np.exp(1j * phase))[:, None] * envelope

	def frames(self, count: int) -> Iterator[bytes]:
		"""Measure and read count frames, yielding each raw frame."""
		config = self._require_prepared()
		buffer = bytearray(config.frame_size)
		for _ in range(count):
			self.measure()
			if not self.wait_for_interrupt():
				raise SensorError(f"Sensor {self.sensor_id}: interrupt timeout")
			n = self.read(buffer)
			yield bytes(buffer[:n])

	def close(self) -> None:
		self._config = None
		self._pending = None
		self._ready = False
		logger.info(f"MockSensor {self.sensor_id} closed")

	def __enter__(self) -> MockSensor:
		return self

	def __exit__(self, exc_type, exc_val, exc_tb) -> None:
		self.close()

