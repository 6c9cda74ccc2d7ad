"""Fast motion within a frame: sweep-to-sweep variation per range point."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray
from scipy.special import comb

from iqpresence.detector.filters import FilterBank, smooth

# Third difference along sweeps cancels slow drift so only white noise is left
NOISE_DIFF_ORDER = 3
NOISE_NORM = float(np.sqrt(comb(2 * NOISE_DIFF_ORDER, NOISE_DIFF_ORDER, exact=True)))

# One quantization step of the int16 IQ samples
NOISE_FLOOR = 1.0


def sweep_deviation(frame: NDArray[np.complex128]) -> NDArray[np.float64]:
	"""RMS deviation of each point's sweeps from the frame's sweep mean.

	Args:
		frame: Complex samples shaped (sweeps_per_frame, num_points)
	"""
	deviation = frame - frame.mean(axis=0)
	return np.sqrt(np.mean(np.abs(deviation) ** 2, axis=0))


def noise_level(frame: NDArray[np.complex128]) -> NDArray[np.float64]:
	"""Per-point noise standard deviation estimated from sweep differences."""
	diff = np.diff(frame, n=NOISE_DIFF_ORDER, axis=0)
	return np.sqrt(np.mean(np.abs(diff) ** 2, axis=0)) / NOISE_NORM


def noise_floor(noise: NDArray[np.float64]) -> NDArray[np.float64]:
	return np.maximum(noise, NOISE_FLOOR)


def deviation_baseline(sweeps_per_frame: int) -> float:
	"""Noise-normalized sweep deviation of white noise alone.

	The sweep mean absorbs one degree of freedom, so N sweeps of noise with
	standard deviation sigma deviate from their mean by sigma * sqrt((N - 1) / N).
	"""
	return float(np.sqrt((sweeps_per_frame - 1) / sweeps_per_frame))


@dataclass
class IntraFrameUpdate:
	deviation: NDArray[np.float64]
	output: NDArray[np.float64]


class IntraFrameEstimator:
	"""Noise-normalized sweep deviation, smoothed twice.

	The first low-pass (intra_frame_time_const) suppresses sample noise, the
	second (intra_output_time_const) shapes the reported score. Between them
	the deviation noise alone would produce is subtracted, so a still scene
	settles near zero.
	"""

	def __init__(self, enabled: bool = True) -> None:
		self.enabled = enabled

	def update(
		self,
		frame: NDArray[np.complex128],
		bank: FilterBank,
		noise: NDArray[np.float64],
	) -> IntraFrameUpdate:
		state = bank.state
		deviation = smooth(state.intra_deviation, sweep_deviation(frame), bank.alphas.intra)
		baseline = deviation_baseline(frame.shape[0])
		score = np.maximum(deviation / noise_floor(noise) - baseline, 0.0)
		output = smooth(state.intra_output, score, bank.alphas.intra_output)
		return IntraFrameUpdate(deviation=deviation, output=output)

	def depthwise_scores(self, update: IntraFrameUpdate) -> NDArray[np.float64]:
		if not self.enabled:
			return np.zeros_like(update.output)
		return update.output
