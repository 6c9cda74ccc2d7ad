"""Presence detector handle and lifecycle."""

from __future__ import annotations

import copy
from enum import Enum
from typing import Any

import numpy as np
import structlog

from iqpresence.detector.config import PresenceConfig
from iqpresence.detector.decision import DecisionAggregator, PresenceResult
from iqpresence.detector.errors import (
	BufferTooSmallError,
	DetectorStateError,
	HardwareError,
	InvalidConfigError,
)
from iqpresence.detector.filters import FilterBank, smooth
from iqpresence.detector.inter import InterFrameEstimator
from iqpresence.detector.intra import IntraFrameEstimator, noise_level
from iqpresence.detector.memory import BufferLayout, buffer_layout
from iqpresence.detector.metadata import PresenceMetadata, resolve_metadata
from iqpresence.sensor.base import Sensor, SensorError
from iqpresence.sensor.calibration import CalibrationResult
from iqpresence.sensor.config import MeasurementConfig
from iqpresence.sensor.processing import Processing

logger = structlog.get_logger(__name__)


class DetectorState(str, Enum):
	CREATED = "created"
	PREPARED = "prepared"
	PROCESSING = "processing"
	DESTROYED = "destroyed"


def measurement_config(config: PresenceConfig, metadata: PresenceMetadata) -> MeasurementConfig:
	"""Sensor-side configuration for a resolved detector geometry."""
	return MeasurementConfig(
		start_point=metadata.start_point,
		step_length=metadata.step_length,
		num_points=metadata.num_points,
		profile=int(metadata.profile),
		hwaas=config.hwaas,
		sweeps_per_frame=config.sweeps_per_frame,
		frame_rate=config.frame_rate,
		frame_rate_app_driven=config.frame_rate_app_driven,
		inter_frame_idle_state=config.inter_frame_idle_state.value,
	)


class PresenceDetector:
	"""Frame-by-frame presence detection for one sensor.

	Usage:
		detector = PresenceDetector.create(config)
		buffer = bytearray(detector.get_buffer_size())
		detector.prepare(config, sensor, cal_result, buffer)
		while running:
			sensor.measure()
			sensor.wait_for_interrupt()
			sensor.read(buffer)
			result = detector.process(buffer)
		detector.destroy()

	Frames must be processed in the order they were measured. A handle is not
	thread-safe; serialize calls on it. Separate handles share nothing.
	"""

	def __init__(self, config: PresenceConfig, metadata: PresenceMetadata, log: Any = None) -> None:
		self._config = copy.deepcopy(config)
		self._metadata = metadata
		self._log = (log or logger).bind(sensor_id=config.sensor_id)
		self._layout = buffer_layout(metadata, config.sweeps_per_frame)
		self._bank: FilterBank | None = FilterBank(metadata.num_points, self._config)
		self._processing: Processing | None = None
		self._frames_processed = 0
		self._state = DetectorState.CREATED
		self._build_estimators()

	@classmethod
	def create(cls, config: PresenceConfig, log: Any = None) -> PresenceDetector:
		"""Resolve the geometry and allocate filter state. Raises InvalidConfigError.

		Args:
			config: Detector configuration, copied
			log: structlog-style logger for this handle, the module logger if None
		"""
		log = log or logger
		try:
			metadata = resolve_metadata(config)
		except InvalidConfigError as e:
			log.error("presence_config_invalid", errors=e.errors)
			raise
		detector = cls(config, metadata, log)
		detector._log.info(
			"presence_detector_created",
			num_points=metadata.num_points,
			start_m=metadata.start_m,
			step_length_m=metadata.step_length_m,
			profile=int(metadata.profile),
		)
		return detector

	def _build_estimators(self) -> None:
		config = self._config
		self._intra = IntraFrameEstimator(enabled=config.intra_detection)
		self._inter = InterFrameEstimator(
			frame_rate=config.frame_rate,
			sweeps_per_frame=config.sweeps_per_frame,
			timeout_s=config.inter_frame_presence_timeout,
			phase_boost=config.inter_phase_boost,
			enabled=config.inter_detection,
		)
		self._aggregator = DecisionAggregator(
			metadata=self._metadata,
			intra_enabled=config.intra_detection,
			inter_enabled=config.inter_detection,
			intra_threshold=config.intra_detection_threshold,
			inter_threshold=config.inter_detection_threshold,
		)

	@property
	def metadata(self) -> PresenceMetadata:
		return self._metadata

	@property
	def config(self) -> PresenceConfig:
		"""Copy of the configuration in effect."""
		return copy.deepcopy(self._config)

	@property
	def state(self) -> DetectorState:
		return self._state

	@property
	def frames_processed(self) -> int:
		return self._frames_processed

	@property
	def layout(self) -> BufferLayout:
		return self._layout

	def get_buffer_size(self) -> int:
		"""Bytes needed for the buffer passed to prepare() and process()."""
		self._require_alive("get_buffer_size")
		return self._layout.size

	def _require_alive(self, operation: str) -> None:
		if self._state == DetectorState.DESTROYED:
			raise DetectorStateError(f"{operation}() called on a destroyed detector")

	def _check_buffer(self, buffer: bytearray | memoryview) -> None:
		required = self._layout.size
		if len(buffer) < required:
			self._log.error("buffer_too_small", required=required, actual=len(buffer))
			raise BufferTooSmallError(required, len(buffer))
		if memoryview(buffer).readonly:
			raise TypeError("buffer must be writable")

	def prepare(
		self,
		config: PresenceConfig,
		sensor: Sensor,
		cal_result: CalibrationResult,
		buffer: bytearray | memoryview,
	) -> None:
		"""Configure the sensor for this detector and adopt config.

		The geometry (points and sweeps per frame) must match the one the
		detector was created with. Nothing changes unless every check passes.

		Raises:
			InvalidConfigError, BufferTooSmallError, HardwareError
		"""
		self._require_alive("prepare")

		try:
			metadata = resolve_metadata(config)
		except InvalidConfigError as e:
			self._log.error("presence_config_invalid", errors=e.errors)
			raise
		if metadata != self._metadata or config.sweeps_per_frame != self._config.sweeps_per_frame:
			errors = [
				"measurement geometry differs from the one the detector was created with; "
				"create a new detector"
			]
			self._log.error("presence_config_invalid", errors=errors)
			raise InvalidConfigError(errors)

		self._check_buffer(buffer)

		sensor_config = measurement_config(config, metadata)
		try:
			sensor.validate_calibration(cal_result)
			sensor.prepare(sensor_config, cal_result, buffer)
		except SensorError as e:
			self._log.error("sensor_prepare_failed", error=str(e))
			raise HardwareError(f"Sensor prepare failed: {e}") from e

		self._config = copy.deepcopy(config)
		self._log = self._log.bind(sensor_id=config.sensor_id)
		self._build_estimators()
		self._bank.configure(self._config)
		if config.reset_filters_on_prepare:
			self._bank.reset()
		self._processing = Processing(sensor_config)
		self._state = DetectorState.PREPARED
		self._log.info("presence_detector_prepared", reset_filters=config.reset_filters_on_prepare)

	def process(self, buffer: bytearray | memoryview) -> PresenceResult:
		"""Process the frame at the start of buffer.

		The depthwise arrays of the result alias buffer and are overwritten by
		the next call with the same buffer. On failure the filter history is
		left as it was after the previous frame.

		Raises:
			HardwareError: the frame could not be decoded
			DetectorStateError: prepare() has not been called
		"""
		self._require_alive("process")
		if self._processing is None:
			raise DetectorStateError("process() called before prepare()")
		self._check_buffer(buffer)

		try:
			processing_result = self._processing.execute(buffer)
		except SensorError as e:
			self._log.error("frame_processing_failed", error=str(e))
			raise HardwareError(f"Frame processing failed: {e}") from e

		frame = processing_result.frame
		bank = self._bank
		state = bank.state

		noise = smooth(state.noise, noise_level(frame), bank.seeding_alpha(bank.alphas.noise))
		intra = self._intra.update(frame, bank, noise)
		inter = self._inter.update(frame, bank, noise)

		intra_view, inter_view = self._layout.score_views(buffer)
		intra_view[:] = self._intra.depthwise_scores(intra)
		inter_view[:] = self._inter.depthwise_scores(inter)

		result = self._aggregator.decide(intra_view, inter_view)
		result.processing_result = processing_result

		bank.commit(
			state.evolve(
				noise=noise,
				inter_fast=inter.fast,
				inter_slow=inter.slow,
				phase_fast=inter.phase_fast,
				phase_slow=inter.phase_slow,
				inter_deviation=inter.deviation,
				inter_output=inter.output,
				intra_deviation=intra.deviation,
				intra_output=intra.output,
				declining_frames=inter.declining_frames,
			)
		)
		self._frames_processed += 1
		self._state = DetectorState.PROCESSING

		if processing_result.calibration_needed:
			self._log.warning("calibration_needed", sequence=processing_result.sequence)
		self._log.debug(
			"presence_frame_processed",
			sequence=processing_result.sequence,
			presence_detected=result.presence_detected,
			intra_score=round(result.intra_presence_score, 3),
			inter_score=round(result.inter_presence_score, 3),
			distance=round(result.presence_distance, 3),
		)
		return result

	def reset_filters(self) -> None:
		self._require_alive("reset_filters")
		self._bank.reset()

	def filter_noise_level(self) -> np.ndarray:
		"""Current per-point noise estimate, in LSB."""
		self._require_alive("filter_noise_level")
		return self._bank.state.noise.copy()

	def destroy(self) -> None:
		"""Release filter state. Calling it again has no effect."""
		if self._state == DetectorState.DESTROYED:
			return
		self._bank = None
		self._processing = None
		self._state = DetectorState.DESTROYED
		self._log.info("presence_detector_destroyed", frames_processed=self._frames_processed)

	def __enter__(self) -> PresenceDetector:
		return self

	def __exit__(self, exc_type, exc_val, exc_tb) -> None:
		self.destroy()


def destroy_detector(detector: PresenceDetector | None) -> None:
	"""Destroy detector; None is accepted and ignored."""
	if detector is not None:
		detector.destroy()
