"""Depthwise exponential smoothing shared by the motion estimators."""

from __future__ import annotations

import math
from dataclasses import dataclass, field, fields, replace

import numpy as np
import structlog
from numpy.typing import NDArray

from iqpresence.detector.config import PresenceConfig

logger = structlog.get_logger(__name__)

NOISE_TIME_CONST_S = 1.0


def time_const_to_alpha(time_const: float, frame_rate: float) -> float:
	"""Smoothing weight of a single-pole filter with the given time constant."""
	if time_const <= 0:
		return 1.0
	return 1.0 - math.exp(-1.0 / (time_const * frame_rate))


def cutoff_to_alpha(cutoff_hz: float, frame_rate: float) -> float:
	"""Smoothing weight of a single-pole filter with a -3 dB point at cutoff_hz.

	At or above the Nyquist frequency the stage passes samples through.
	"""
	if cutoff_hz >= frame_rate / 2:
		return 1.0
	cos_w = math.cos(2 * math.pi * cutoff_hz / frame_rate)
	sf = 2.0 - cos_w - math.sqrt((2.0 - cos_w) ** 2 - 1.0)
	return 1.0 - sf


def warmup_alpha(alpha: float, update_count: int) -> float:
	"""Weight for seeding stages: the first sample after a reset is taken as is."""
	return max(alpha, 1.0 / max(update_count, 1))


def smooth(previous: NDArray, sample: NDArray, alpha: float) -> NDArray:
	return previous + alpha * (sample - previous)


@dataclass(frozen=True)
class StageAlphas:
	noise: float
	inter_fast: float
	inter_slow: float
	inter_deviation: float
	inter_output: float
	intra: float
	intra_output: float

	@classmethod
	def from_config(cls, config: PresenceConfig) -> StageAlphas:
		fs = config.frame_rate
		return cls(
			noise=time_const_to_alpha(NOISE_TIME_CONST_S, fs),
			inter_fast=cutoff_to_alpha(config.inter_frame_fast_cutoff, fs),
			inter_slow=cutoff_to_alpha(config.inter_frame_slow_cutoff, fs),
			inter_deviation=time_const_to_alpha(config.inter_frame_deviation_time_const, fs),
			inter_output=time_const_to_alpha(config.inter_output_time_const, fs),
			intra=time_const_to_alpha(config.intra_frame_time_const, fs),
			intra_output=time_const_to_alpha(config.intra_output_time_const, fs),
		)


def _zeros(num_points: int, dtype=np.float64) -> NDArray:
	return np.zeros(num_points, dtype=dtype)


@dataclass
class FilterState:
	"""Per-point filter history, one array element per range point.

	Input-side stages (noise, inter fast/slow and their complex twins) are
	seeded by the first frame after a reset. The remaining stages start at
	zero.
	"""

	noise: NDArray[np.float64]
	inter_fast: NDArray[np.float64]
	inter_slow: NDArray[np.float64]
	phase_fast: NDArray[np.complex128]
	phase_slow: NDArray[np.complex128]
	inter_deviation: NDArray[np.float64]
	inter_output: NDArray[np.float64]
	intra_deviation: NDArray[np.float64]
	intra_output: NDArray[np.float64]
	declining_frames: NDArray[np.int32]
	update_count: int = field(default=0)

	@classmethod
	def initial(cls, num_points: int) -> FilterState:
		return cls(
			noise=_zeros(num_points),
			inter_fast=_zeros(num_points),
			inter_slow=_zeros(num_points),
			phase_fast=_zeros(num_points, np.complex128),
			phase_slow=_zeros(num_points, np.complex128),
			inter_deviation=_zeros(num_points),
			inter_output=_zeros(num_points),
			intra_deviation=_zeros(num_points),
			intra_output=_zeros(num_points),
			declining_frames=_zeros(num_points, np.int32),
		)

	@property
	def num_points(self) -> int:
		return len(self.noise)

	@property
	def nbytes(self) -> int:
		return sum(
			getattr(self, f.name).nbytes for f in fields(self) if f.name != "update_count"
		)

	def evolve(self, **changes) -> FilterState:
		"""New state with the given arrays replaced; self is left untouched."""
		return replace(self, **changes)


class FilterBank:
	"""Owns the FilterState of one detector and the per-stage weights."""

	def __init__(self, num_points: int, config: PresenceConfig) -> None:
		self._num_points = num_points
		self.state = FilterState.initial(num_points)
		self.alphas = StageAlphas.from_config(config)

	@property
	def num_points(self) -> int:
		return self._num_points

	@property
	def update_count(self) -> int:
		return self.state.update_count

	def configure(self, config: PresenceConfig) -> None:
		self.alphas = StageAlphas.from_config(config)
		logger.debug("filter_bank_configured", **vars(self.alphas))

	def seeding_alpha(self, alpha: float) -> float:
		"""Weight of an input-side stage for the frame about to be processed."""
		return warmup_alpha(alpha, self.state.update_count + 1)

	def commit(self, state: FilterState) -> None:
		if state.num_points != self._num_points:
			raise ValueError(
				f"Filter state has {state.num_points} points, expected {self._num_points}"
			)
		self.state = replace(state, update_count=self.state.update_count + 1)

	def reset(self) -> None:
		self.state = FilterState.initial(self._num_points)
		logger.info("filter_bank_reset", num_points=self._num_points)
