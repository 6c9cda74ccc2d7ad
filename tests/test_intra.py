"""Tests for the intra-frame (fast motion) estimator."""

import numpy as np
import pytest

from iqpresence.detector import FilterBank, IntraFrameEstimator, PresenceConfig
from iqpresence.detector.intra import (
	NOISE_FLOOR,
	deviation_baseline,
	noise_floor,
	noise_level,
	sweep_deviation,
)


def ramp_frame(sweeps=16, points=4, index=1, slope=4.0):
	frame = np.full((sweeps, points), 50 + 0j)
	frame[:, index] += slope * np.arange(sweeps)
	return frame


class TestSweepDeviation:
	def test_constant_is_zero(self):
		assert not sweep_deviation(np.full((16, 3), 7 - 2j)).any()

	def test_ramp(self):
		dev = sweep_deviation(ramp_frame())
		expected = 4.0 * np.sqrt((16**2 - 1) / 12)
		assert dev[1] == pytest.approx(expected)
		assert dev[0] == 0.0


class TestNoiseLevel:
	def test_ignores_linear_drift(self):
		assert not noise_level(ramp_frame()).any()

	def test_estimates_white_noise(self):
		rng = np.random.default_rng(0)
		std = 20.0
		shape = (4000, 2)
		frame = rng.normal(0, std / np.sqrt(2), shape) + 1j * rng.normal(0, std / np.sqrt(2), shape)
		np.testing.assert_allclose(noise_level(frame), std, rtol=0.05)

	def test_floor(self):
		np.testing.assert_array_equal(noise_floor(np.array([0.0, 5.0])), [NOISE_FLOOR, 5.0])

	def test_deviation_baseline(self):
		assert deviation_baseline(16) == pytest.approx(np.sqrt(15 / 16))

	def test_baseline_matches_noise_deviation(self):
		rng = np.random.default_rng(1)
		std = 20.0
		shape = (16, 20000)
		frame = rng.normal(0, std / np.sqrt(2), shape) + 1j * rng.normal(0, std / np.sqrt(2), shape)
		rms = np.sqrt(np.mean(sweep_deviation(frame) ** 2))
		assert rms / std == pytest.approx(deviation_baseline(16), rel=0.01)


class TestIntraFrameEstimator:
	def test_update_is_pure(self):
		bank = FilterBank(4, PresenceConfig())
		est = IntraFrameEstimator()
		update = est.update(ramp_frame(), bank, np.zeros(4))
		assert update.output[1] > 0
		assert not bank.state.intra_output.any()
		assert not bank.state.intra_deviation.any()

	def test_normalized_by_noise(self):
		bank = FilterBank(4, PresenceConfig())
		est = IntraFrameEstimator()
		alpha = bank.alphas.intra_output
		baseline = deviation_baseline(16)
		quiet = est.update(ramp_frame(), bank, np.zeros(4))
		noisy = est.update(ramp_frame(), bank, np.full(4, 4.0))
		assert quiet.output[1] == pytest.approx(alpha * (quiet.deviation[1] - baseline))
		assert noisy.output[1] == pytest.approx(alpha * (noisy.deviation[1] / 4.0 - baseline))

	def test_noise_level_deviation_scores_zero(self):
		bank = FilterBank(4, PresenceConfig())
		est = IntraFrameEstimator()
		update = est.update(ramp_frame(), bank, np.full(4, 100.0))
		assert update.deviation[1] > 0
		assert not update.output.any()

	def test_settles_to_zero_on_noise(self):
		rng = np.random.default_rng(3)
		bank = FilterBank(8, PresenceConfig())
		est = IntraFrameEstimator()
		scale = 20.0 / np.sqrt(2)
		outputs = []
		for _ in range(200):
			frame = 100 + rng.normal(0, scale, (16, 8)) + 1j * rng.normal(0, scale, (16, 8))
			update = est.update(frame, bank, np.full(8, 20.0))
			bank.commit(bank.state.evolve(intra_deviation=update.deviation, intra_output=update.output))
			outputs.append(update.output.max())
		assert np.mean(outputs[50:]) < 0.2

	def test_disabled_reports_zeros(self):
		bank = FilterBank(4, PresenceConfig())
		est = IntraFrameEstimator(enabled=False)
		update = est.update(ramp_frame(), bank, np.zeros(4))
		assert update.output[1] > 0
		assert not est.depthwise_scores(update).any()
