"""Tests for the shared filter bank."""

import math

import numpy as np
import pytest

from iqpresence.detector import FilterBank, FilterState, PresenceConfig
from iqpresence.detector.filters import (
	StageAlphas,
	cutoff_to_alpha,
	smooth,
	time_const_to_alpha,
	warmup_alpha,
)


class TestAlphas:
	def test_time_const(self):
		assert time_const_to_alpha(1.0, 10.0) == pytest.approx(1 - math.exp(-0.1))

	def test_zero_time_const_passes_through(self):
		assert time_const_to_alpha(0.0, 10.0) == 1.0

	def test_longer_time_const_smooths_more(self):
		assert time_const_to_alpha(2.0, 12.0) < time_const_to_alpha(0.5, 12.0)

	def test_cutoff_at_nyquist_passes_through(self):
		assert cutoff_to_alpha(6.0, 12.0) == 1.0
		assert cutoff_to_alpha(6.0, 10.0) == 1.0

	def test_cutoff_below_nyquist(self):
		alpha = cutoff_to_alpha(0.2, 12.0)
		assert 0.0 < alpha < 1.0
		assert alpha == pytest.approx(0.0993, abs=1e-3)

	def test_cutoff_monotonic(self):
		alphas = [cutoff_to_alpha(fc, 12.0) for fc in (0.1, 0.5, 1.0, 3.0, 5.9)]
		assert alphas == sorted(alphas)

	def test_warmup(self):
		assert warmup_alpha(0.1, 1) == 1.0
		assert warmup_alpha(0.1, 4) == 0.25
		assert warmup_alpha(0.5, 4) == 0.5

	def test_smooth(self):
		prev = np.array([0.0, 10.0])
		out = smooth(prev, np.array([10.0, 10.0]), 0.5)
		np.testing.assert_allclose(out, [5.0, 10.0])
		np.testing.assert_array_equal(prev, [0.0, 10.0])

	def test_from_config(self):
		alphas = StageAlphas.from_config(PresenceConfig())
		assert alphas.inter_fast == 1.0
		assert 0 < alphas.inter_slow < alphas.inter_deviation < 1
		assert alphas.inter_output < alphas.inter_deviation
		assert alphas.intra_output < alphas.intra


class TestFilterState:
	def test_initial_zeros(self):
		state = FilterState.initial(10)
		assert state.num_points == 10
		assert state.update_count == 0
		assert not state.inter_output.any()
		assert state.phase_fast.dtype == np.complex128
		assert state.declining_frames.dtype == np.int32

	def test_nbytes(self):
		# 7 float64, 2 complex128 and 1 int32 array
		assert FilterState.initial(10).nbytes == 10 * (7 * 8 + 2 * 16 + 4)

	def test_evolve_leaves_state_untouched(self):
		state = FilterState.initial(3)
		new = state.evolve(noise=np.ones(3))
		assert not state.noise.any()
		np.testing.assert_array_equal(new.noise, np.ones(3))
		assert new.inter_fast is state.inter_fast


class TestFilterBank:
	def test_commit_counts_updates(self):
		bank = FilterBank(5, PresenceConfig())
		bank.commit(bank.state.evolve(noise=np.ones(5)))
		bank.commit(bank.state.evolve(noise=np.full(5, 2.0)))
		assert bank.update_count == 2
		np.testing.assert_array_equal(bank.state.noise, np.full(5, 2.0))

	def test_commit_rejects_wrong_size(self):
		bank = FilterBank(5, PresenceConfig())
		with pytest.raises(ValueError):
			bank.commit(FilterState.initial(4))
		assert bank.update_count == 0

	def test_seeding_alpha(self):
		bank = FilterBank(5, PresenceConfig())
		assert bank.seeding_alpha(0.1) == 1.0
		bank.commit(bank.state)
		assert bank.seeding_alpha(0.1) == 0.5

	def test_reset(self):
		bank = FilterBank(5, PresenceConfig())
		bank.commit(bank.state.evolve(inter_output=np.ones(5)))
		bank.reset()
		assert bank.update_count == 0
		assert not bank.state.inter_output.any()

	def test_configure(self):
		bank = FilterBank(5, PresenceConfig(frame_rate=12.0))
		before = bank.alphas.inter_slow
		bank.configure(PresenceConfig(frame_rate=2.0))
		assert bank.alphas.inter_slow > before
