"""Tests for the inter-frame (slow motion) estimator."""

import math

import numpy as np
import pytest

from iqpresence.detector import FilterBank, InterFrameEstimator, PresenceConfig
from iqpresence.detector.filters import smooth
from iqpresence.detector.inter import divergence_baseline, divergence_gain


def constant_frame(value=50 + 0j, sweeps=16, points=4):
	return np.full((sweeps, points), value, dtype=np.complex128)


def commit(bank, update):
	bank.commit(
		bank.state.evolve(
			inter_fast=update.fast,
			inter_slow=update.slow,
			phase_fast=update.phase_fast,
			phase_slow=update.phase_slow,
			inter_deviation=update.deviation,
			inter_output=update.output,
			declining_frames=update.declining_frames,
		)
	)


class TestDivergenceBaseline:
	def test_gain_with_pass_through_fast(self):
		slow = 0.1
		assert divergence_gain(1.0, slow) == pytest.approx(1 + slow / (2 - slow) - 2 * slow)

	def test_equal_filters_never_diverge(self):
		assert divergence_gain(0.3, 0.3) == pytest.approx(0.0, abs=1e-12)
		assert divergence_baseline(0.3, 0.3) == pytest.approx(0.0, abs=1e-6)

	def test_phase_boost_baseline_higher(self):
		assert divergence_baseline(1.0, 0.1, phase_boost=True) > divergence_baseline(1.0, 0.1)

	def test_matches_filtered_noise(self):
		rng = np.random.default_rng(11)
		fast_alpha, slow_alpha = 0.8, 0.1
		fast = np.zeros(64)
		slow = np.zeros(64)
		divergence = []
		for n in range(4000):
			x = rng.normal(0, 1 / np.sqrt(2), 64)
			fast = smooth(fast, x, fast_alpha)
			slow = smooth(slow, x, slow_alpha)
			if n >= 200:
				divergence.append(np.abs(fast - slow))
		measured = np.mean(divergence)
		assert measured == pytest.approx(divergence_baseline(fast_alpha, slow_alpha), rel=0.03)


class TestInterFrameEstimator:
	def test_seeded_by_first_frame(self):
		bank = FilterBank(4, PresenceConfig())
		est = InterFrameEstimator(frame_rate=12.0, sweeps_per_frame=16)
		update = est.update(constant_frame(), bank, np.zeros(4))
		np.testing.assert_array_equal(update.fast, np.full(4, 50.0))
		np.testing.assert_array_equal(update.slow, np.full(4, 50.0))
		assert not update.output.any()

	def test_update_is_pure(self):
		bank = FilterBank(4, PresenceConfig())
		est = InterFrameEstimator(frame_rate=12.0, sweeps_per_frame=16)
		commit(bank, est.update(constant_frame(), bank, np.zeros(4)))
		before = bank.state
		update = est.update(constant_frame(150 + 0j), bank, np.zeros(4))
		assert update.output.all()
		assert bank.state is before
		assert not bank.state.inter_output.any()

	def test_step_scaled_by_mean_noise(self):
		bank = FilterBank(4, PresenceConfig())
		est = InterFrameEstimator(frame_rate=12.0, sweeps_per_frame=16)
		commit(bank, est.update(constant_frame(), bank, np.zeros(4)))
		quiet = est.update(constant_frame(100 + 0j), bank, np.zeros(4))
		noisy = est.update(constant_frame(100 + 0j), bank, np.full(4, 8.0))
		assert noisy.deviation[0] == pytest.approx(quiet.deviation[0] / 8.0)
		baseline = divergence_baseline(bank.alphas.inter_fast, bank.alphas.inter_slow)
		expected = bank.alphas.inter_output * (noisy.deviation[0] - baseline)
		assert noisy.output[0] == pytest.approx(expected)

	def test_settles_to_zero_on_noise(self):
		rng = np.random.default_rng(5)
		bank = FilterBank(8, PresenceConfig())
		est = InterFrameEstimator(frame_rate=12.0, sweeps_per_frame=16)
		scale = 20.0 / np.sqrt(2)
		outputs = []
		for _ in range(300):
			frame = 100 + rng.normal(0, scale, (16, 8)) + 1j * rng.normal(0, scale, (16, 8))
			update = est.update(frame, bank, np.full(8, 20.0))
			commit(bank, update)
			outputs.append(update.output.max())
		assert np.mean(outputs[150:]) < 0.25
		assert (bank.state.inter_deviation > 0).all()

	def test_phase_boost(self):
		config = PresenceConfig()
		plain_bank = FilterBank(4, config)
		boost_bank = FilterBank(4, config)
		plain = InterFrameEstimator(frame_rate=12.0, sweeps_per_frame=16)
		boost = InterFrameEstimator(frame_rate=12.0, sweeps_per_frame=16, phase_boost=True)
		for n in range(10):
			frame = constant_frame(50 * 1j**n)
			commit(plain_bank, plain.update(frame, plain_bank, np.zeros(4)))
			commit(boost_bank, boost.update(frame, boost_bank, np.zeros(4)))
		assert not plain_bank.state.inter_output.any()
		assert (boost_bank.state.inter_output > 1.0).all()

	def test_declining_frames_counted(self):
		bank = FilterBank(4, PresenceConfig())
		est = InterFrameEstimator(frame_rate=12.0, sweeps_per_frame=16)
		commit(bank, est.update(constant_frame(), bank, np.zeros(4)))
		for _ in range(5):
			commit(bank, est.update(constant_frame(150 + 0j), bank, np.zeros(4)))
		assert not bank.state.declining_frames.any()
		for _ in range(40):
			commit(bank, est.update(constant_frame(), bank, np.zeros(4)))
		assert (bank.state.declining_frames > 0).all()

	def test_declining_counter_restarts_on_any_rise(self):
		bank = FilterBank(2, PresenceConfig())
		est = InterFrameEstimator(frame_rate=12.0, sweeps_per_frame=16, timeout_s=3)
		bank.commit(
			bank.state.evolve(
				inter_fast=np.full(2, 50.0),
				inter_slow=np.full(2, 50.0),
				inter_deviation=np.full(2, 10.0),
				inter_output=np.array([7.0, 9.0]),
				declining_frames=np.full(2, 40, dtype=np.int32),
			)
		)
		update = est.update(constant_frame(points=2), bank, np.zeros(2))
		# Settles towards ~7.9: a small rise at point 0, a decline at point 1
		assert 0 < update.output[0] - 7.0 < 0.1
		assert update.declining_frames[0] == 0
		assert update.declining_frames[1] == 41

	def test_timeout_frames(self):
		est = InterFrameEstimator(frame_rate=12.0, sweeps_per_frame=16, timeout_s=3)
		assert est.timeout_frames == 36

	def test_apply_timeout(self):
		est = InterFrameEstimator(frame_rate=12.0, sweeps_per_frame=16, timeout_s=3)
		output = np.full(3, 2.0)
		scaled = est._apply_timeout(output, np.array([10, 36, 40], dtype=np.int32))
		assert scaled[0] == 2.0
		assert scaled[1] == 2.0
		assert scaled[2] == pytest.approx(2.0 * math.exp(-4 / 36))

	def test_no_timeout(self):
		est = InterFrameEstimator(frame_rate=12.0, sweeps_per_frame=16, timeout_s=0)
		output = np.full(2, 2.0)
		np.testing.assert_array_equal(est._apply_timeout(output, np.array([0, 1000])), output)

	def test_disabled_reports_zeros(self):
		bank = FilterBank(4, PresenceConfig())
		est = InterFrameEstimator(frame_rate=12.0, sweeps_per_frame=16, enabled=False)
		commit(bank, est.update(constant_frame(), bank, np.zeros(4)))
		update = est.update(constant_frame(150 + 0j), bank, np.zeros(4))
		assert update.output.all()
		assert not est.depthwise_scores(update).any()
