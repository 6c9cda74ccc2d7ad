"""Turns raw sensor transfers into structured frames."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray

from iqpresence.sensor.base import FrameError
from iqpresence.sensor.config import MeasurementConfig
from iqpresence.sensor.frame import (
	BYTES_PER_SAMPLE,
	HEADER_SIZE,
	FrameFlags,
	FrameHeader,
	decode_samples,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProcessingMetadata:
	frame_data_length: int
	sweep_data_length: int
	sweeps_per_frame: int
	num_points: int

	@property
	def frame_length(self) -> int:
		"""Header plus sample data."""
		return HEADER_SIZE + self.frame_data_length


@dataclass
class ProcessingResult:
	"""One decoded frame and its acquisition status."""

	frame: NDArray[np.complex128]
	sequence: int = 0
	temperature: int = 25
	data_saturated: bool = False
	frame_delayed: bool = False
	calibration_needed: bool = False

	@property
	def flags(self) -> FrameFlags:
		flags = FrameFlags.NONE
		if self.data_saturated:
			flags |= FrameFlags.SATURATED
		if self.frame_delayed:
			flags |= FrameFlags.DELAYED
		if self.calibration_needed:
			flags |= FrameFlags.CALIBRATION_NEEDED
		return flags


class Processing:
	"""Decodes raw frames for one measurement configuration."""

	def __init__(self, config: MeasurementConfig) -> None:
		sweep_data_length = config.num_points * BYTES_PER_SAMPLE
		self.metadata = ProcessingMetadata(
			frame_data_length=sweep_data_length * config.sweeps_per_frame,
			sweep_data_length=sweep_data_length,
			sweeps_per_frame=config.sweeps_per_frame,
			num_points=config.num_points,
		)

	def execute(self, buffer: bytes | bytearray | memoryview) -> ProcessingResult:
		"""Decode the frame at the start of buffer. Raises FrameError."""
		try:
			header = FrameHeader.from_bytes(buffer)
		except ValueError as e:
			raise FrameError(f"Invalid frame header: {e}") from e

		if (header.sweeps_per_frame, header.num_points) != (
			self.metadata.sweeps_per_frame,
			self.metadata.num_points,
		):
			raise FrameError(
				f"Frame geometry {header.sweeps_per_frame}x{header.num_points} does not match "
				f"{self.metadata.sweeps_per_frame}x{self.metadata.num_points}"
			)

		try:
			frame = decode_samples(buffer, header)
		except ValueError as e:
			raise FrameError(str(e)) from e

		result = ProcessingResult(
			frame=frame,
			sequence=header.sequence,
			temperature=header.temperature,
			data_saturated=bool(header.flags & FrameFlags.SATURATED),
			frame_delayed=bool(header.flags & FrameFlags.DELAYED),
			calibration_needed=bool(header.flags & FrameFlags.CALIBRATION_NEEDED),
		)
		if result.data_saturated:
			logger.warning(f"Frame {header.sequence}: data saturated")
		if result.frame_delayed:
			logger.warning(f"Frame {header.sequence}: frame delayed")
		return result
