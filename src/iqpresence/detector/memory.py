"""Caller buffer layout and memory estimates.

Buffer layout handed to PresenceDetector.process():

	[0, session_ext)                raw frame, or calibration scratch space
	[session_ext, +4*num_points)    depthwise intra scores, float32
	[..., +4*num_points)            depthwise inter scores, float32

session_ext is the larger of the raw frame and the calibration scratch space,
plus BUFFER_OVERHEAD bytes reserved for the sensor's transfer bookkeeping.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray

from iqpresence.detector.config import PresenceConfig
from iqpresence.detector.filters import FilterState
from iqpresence.detector.metadata import PresenceMetadata, resolve_metadata
from iqpresence.sensor.calibration import CALIBRATION_BUFFER_SIZE
from iqpresence.sensor.frame import frame_size

BUFFER_OVERHEAD = 68
SCORE_DTYPE = np.dtype("<f4")


@dataclass(frozen=True)
class BufferLayout:
	num_points: int
	sweeps_per_frame: int

	@property
	def frame_size(self) -> int:
		return frame_size(self.sweeps_per_frame, self.num_points)

	@property
	def session_ext(self) -> int:
		return max(self.frame_size, CALIBRATION_BUFFER_SIZE) + BUFFER_OVERHEAD

	@property
	def scores_nbytes(self) -> int:
		return self.num_points * SCORE_DTYPE.itemsize

	@property
	def intra_offset(self) -> int:
		return self.session_ext

	@property
	def inter_offset(self) -> int:
		return self.session_ext + self.scores_nbytes

	@property
	def size(self) -> int:
		return self.session_ext + 2 * self.scores_nbytes

	def score_views(
		self, buffer: bytearray | memoryview
	) -> tuple[NDArray[np.float32], NDArray[np.float32]]:
		"""Writable float32 (intra, inter) views aliasing buffer."""
		intra = np.frombuffer(buffer, dtype=SCORE_DTYPE, count=self.num_points, offset=self.intra_offset)
		inter = np.frombuffer(buffer, dtype=SCORE_DTYPE, count=self.num_points, offset=self.inter_offset)
		return intra, inter


def buffer_layout(metadata: PresenceMetadata, sweeps_per_frame: int) -> BufferLayout:
	return BufferLayout(num_points=metadata.num_points, sweeps_per_frame=sweeps_per_frame)


@dataclass(frozen=True)
class MemoryRequirements:
	buffer_size: int  # caller-owned frame buffer
	filter_state_size: int  # held by the detector

	@property
	def total(self) -> int:
		return self.buffer_size + self.filter_state_size


def estimate_memory_requirements(config: PresenceConfig) -> MemoryRequirements:
	"""Memory a detector created from config will use. Raises InvalidConfigError."""
	metadata = resolve_metadata(config)
	layout = buffer_layout(metadata, config.sweeps_per_frame)
	return MemoryRequirements(
		buffer_size=layout.size,
		filter_state_size=FilterState.initial(metadata.num_points).nbytes,
	)
