"""Tests for measurement geometry resolution."""

import pytest

from iqpresence.detector import InvalidConfigError, PresenceConfig, Profile, resolve_metadata
from iqpresence.detector.metadata import MAX_NUM_POINTS, select_profile, select_step_length


class TestSelectProfile:
	@pytest.mark.parametrize(
		"start_m,expected",
		[
			(0.0, Profile.PROFILE_1),
			(0.1, Profile.PROFILE_1),
			(0.2, Profile.PROFILE_2),
			(0.3, Profile.PROFILE_3),
			(0.5, Profile.PROFILE_4),
			(1.0, Profile.PROFILE_5),
		],
	)
	def test_highest_profile_clear_of_leakage(self, start_m, expected):
		assert select_profile(start_m) == expected


class TestSelectStepLength:
	@pytest.mark.parametrize(
		"profile,expected",
		[
			(Profile.PROFILE_1, 12),
			(Profile.PROFILE_2, 24),
			(Profile.PROFILE_3, 48),
			(Profile.PROFILE_4, 72),
			(Profile.PROFILE_5, 120),
		],
	)
	def test_largest_step_within_fwhm(self, profile, expected):
		assert select_step_length(profile) == expected


class TestResolveMetadata:
	def test_scenario_geometry(self, scenario_config):
		md = resolve_metadata(scenario_config)
		assert md.profile == Profile.PROFILE_2
		assert md.step_length == 24
		assert md.step_length_m == pytest.approx(0.06)
		assert md.start_point == 80
		assert md.start_m == pytest.approx(0.2)
		assert md.num_points == 15
		assert md.distance(5) == pytest.approx(0.5)
		assert md.end_m >= 1.0

	def test_default_geometry(self, presence_config):
		md = resolve_metadata(presence_config)
		assert md.profile == Profile.PROFILE_3
		assert md.step_length == 48
		assert md.num_points == 20

	def test_manual_profile_and_step(self):
		config = PresenceConfig(
			start_m=0.2,
			end_m=0.5,
			auto_profile=False,
			profile=Profile.PROFILE_1,
			auto_step_length=False,
			step_length=12,
		)
		md = resolve_metadata(config)
		assert md.profile == Profile.PROFILE_1
		assert md.step_length == 12
		assert md.num_points == 11

	def test_covers_end(self):
		md = resolve_metadata(PresenceConfig(start_m=0.2, end_m=0.95))
		assert md.end_m >= 0.95
		assert md.end_m - md.step_length_m < 0.95

	def test_clamped(self):
		config = PresenceConfig(
			start_m=0.0,
			end_m=10.0,
			auto_profile=False,
			profile=Profile.PROFILE_1,
			auto_step_length=False,
			step_length=1,
		)
		assert resolve_metadata(config).num_points == MAX_NUM_POINTS

	def test_invalid_config(self):
		with pytest.raises(InvalidConfigError) as exc_info:
			resolve_metadata(PresenceConfig(start_m=1.0, end_m=0.5))
		assert exc_info.value.errors
		assert isinstance(exc_info.value, ValueError)

	def test_deterministic(self, scenario_config):
		assert resolve_metadata(scenario_config) == resolve_metadata(scenario_config)
