"""Slow motion between frames: drift of the smoothed sweep mean per range point."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray

from iqpresence.detector.filters import FilterBank, smooth
from iqpresence.detector.intra import noise_floor


def divergence_gain(fast_alpha: float, slow_alpha: float) -> float:
	"""Variance of fast - slow for unit-variance white input to both low-passes."""
	fast = fast_alpha / (2.0 - fast_alpha)
	slow = slow_alpha / (2.0 - slow_alpha)
	cross = fast_alpha * slow_alpha / (fast_alpha + slow_alpha - fast_alpha * slow_alpha)
	return max(fast + slow - 2.0 * cross, 0.0)


def divergence_baseline(fast_alpha: float, slow_alpha: float, phase_boost: bool = False) -> float:
	"""Mean |fast - slow| of a still target, in units of the sweep-mean noise.

	The amplitude of a steady reflector carries half the complex noise power,
	so its divergence is Gaussian and averages sqrt(gain / pi). The complex
	divergence used by phase boost is Rayleigh with mean sqrt(pi * gain) / 2.
	"""
	gain = divergence_gain(fast_alpha, slow_alpha)
	if phase_boost:
		return float(np.sqrt(np.pi * gain) / 2.0)
	return float(np.sqrt(gain / np.pi))


@dataclass
class InterFrameUpdate:
	fast: NDArray[np.float64]
	slow: NDArray[np.float64]
	phase_fast: NDArray[np.complex128]
	phase_slow: NDArray[np.complex128]
	deviation: NDArray[np.float64]
	output: NDArray[np.float64]
	declining_frames: NDArray[np.int32]


class InterFrameEstimator:
	"""Fast/slow low-pass divergence of the absolute sweep mean.

	A person walking in shows up as the fast filter running away from the slow
	one. The divergence is expressed in units of the sweep-mean noise, low-pass
	filtered (inter_frame_deviation_time_const), reduced by the level noise
	alone produces (divergence_baseline) and shaped for output
	(inter_output_time_const).

	With phase boost the complex sweep mean is filtered as well, so motions
	that rotate the phase without changing the amplitude still register.

	Presence timeout: every point counts the consecutive frames its output has
	been falling. Past timeout_s seconds of decline the output is scaled down
	by exp(-excess / timeout_frames) on each frame, so presence does not linger
	once a person has left. A timeout of 0 leaves only the natural decay. Any
	rise restarts the count, however small, so noise riding on a slowly
	decaying output can keep postponing the timeout.
	"""

	def __init__(
		self,
		frame_rate: float,
		sweeps_per_frame: int,
		timeout_s: float = 0.0,
		phase_boost: bool = False,
		enabled: bool = True,
	) -> None:
		self.frame_rate = frame_rate
		self.sweeps_per_frame = sweeps_per_frame
		self.timeout_s = timeout_s
		self.phase_boost = phase_boost
		self.enabled = enabled

	@property
	def timeout_frames(self) -> float:
		return self.timeout_s * self.frame_rate

	def update(
		self,
		frame: NDArray[np.complex128],
		bank: FilterBank,
		noise: NDArray[np.float64],
	) -> InterFrameUpdate:
		state = bank.state
		alphas = bank.alphas
		fast_alpha = bank.seeding_alpha(alphas.inter_fast)
		slow_alpha = bank.seeding_alpha(alphas.inter_slow)

		sweep_mean = frame.mean(axis=0)
		abs_mean = np.abs(sweep_mean)

		fast = smooth(state.inter_fast, abs_mean, fast_alpha)
		slow = smooth(state.inter_slow, abs_mean, slow_alpha)
		phase_fast = smooth(state.phase_fast, sweep_mean, fast_alpha)
		phase_slow = smooth(state.phase_slow, sweep_mean, slow_alpha)

		mean_noise = noise_floor(noise) / np.sqrt(self.sweeps_per_frame)
		raw = np.abs(fast - slow) / mean_noise
		if self.phase_boost:
			raw = np.maximum(raw, np.abs(phase_fast - phase_slow) / mean_noise)

		deviation = smooth(state.inter_deviation, raw, alphas.inter_deviation)
		baseline = divergence_baseline(alphas.inter_fast, alphas.inter_slow, self.phase_boost)
		score = np.maximum(deviation - baseline, 0.0)
		output = smooth(state.inter_output, score, alphas.inter_output)

		declining = output < state.inter_output
		declining_frames = np.where(declining, state.declining_frames + 1, 0).astype(np.int32)
		output = self._apply_timeout(output, declining_frames)

		return InterFrameUpdate(
			fast=fast,
			slow=slow,
			phase_fast=phase_fast,
			phase_slow=phase_slow,
			deviation=deviation,
			output=output,
			declining_frames=declining_frames,
		)

	def _apply_timeout(
		self, output: NDArray[np.float64], declining_frames: NDArray[np.int32]
	) -> NDArray[np.float64]:
		timeout_frames = self.timeout_frames
		if timeout_frames <= 0:
			return output
		excess = np.maximum(declining_frames - timeout_frames, 0.0)
		return output * np.exp(-excess / timeout_frames)

	def depthwise_scores(self, update: InterFrameUpdate) -> NDArray[np.float64]:
		if not self.enabled:
			return np.zeros_like(update.output)
		return update.output
