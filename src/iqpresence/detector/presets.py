"""Tuned configurations for common installations."""

from __future__ import annotations

from typing import Callable

from iqpresence.detector.config import IdleState, PresenceConfig, Profile


def get_short_range_config() -> PresenceConfig:
	return PresenceConfig(
		start_m=0.06,
		end_m=1.0,
		frame_rate=10.0,
		sweeps_per_frame=16,
		hwaas=16,
		inter_frame_idle_state=IdleState.DEEP_SLEEP,
		intra_detection_threshold=1.4,
		intra_frame_time_const=0.15,
		intra_output_time_const=0.3,
		inter_detection_threshold=1.0,
		inter_frame_slow_cutoff=0.2,
		inter_frame_fast_cutoff=5.0,
		inter_frame_deviation_time_const=0.5,
		inter_output_time_const=2.0,
		inter_frame_presence_timeout=3,
	)


def get_medium_range_config() -> PresenceConfig:
	# Same as the PresenceConfig defaults
	return PresenceConfig(
		start_m=0.3,
		end_m=2.5,
		frame_rate=12.0,
		sweeps_per_frame=16,
		hwaas=32,
		intra_detection_threshold=1.3,
		inter_detection_threshold=1.0,
		inter_frame_fast_cutoff=6.0,
	)


def get_long_range_config() -> PresenceConfig:
	return PresenceConfig(
		start_m=5.0,
		end_m=7.5,
		frame_rate=12.0,
		sweeps_per_frame=16,
		hwaas=128,
		intra_detection_threshold=1.2,
		inter_detection_threshold=0.8,
		inter_frame_fast_cutoff=6.0,
	)


def get_low_power_config() -> PresenceConfig:
	"""Short interval, low frame rate. Fixed profile 5 for maximum gain."""
	return PresenceConfig(
		start_m=0.38,
		end_m=0.67,
		frame_rate=0.7,
		sweeps_per_frame=8,
		hwaas=8,
		auto_profile=False,
		profile=Profile.PROFILE_5,
		inter_frame_idle_state=IdleState.DEEP_SLEEP,
		intra_detection_threshold=1.7,
		intra_frame_time_const=0.3,
		intra_output_time_const=0.3,
		inter_detection_threshold=1.2,
		inter_frame_slow_cutoff=0.2,
		inter_frame_fast_cutoff=5.0,
		inter_frame_deviation_time_const=0.5,
		inter_output_time_const=0.5,
		inter_frame_presence_timeout=2,
	)


PRESETS: dict[str, Callable[[], PresenceConfig]] = {
	"short-range": get_short_range_config,
	"medium-range": get_medium_range_config,
	"long-range": get_long_range_config,
	"low-power": get_low_power_config,
}


def get_preset(name: str) -> PresenceConfig:
	"""Fresh config for a named preset. Raises KeyError for unknown names."""
	try:
		factory = PRESETS[name]
	except KeyError:
		raise KeyError(f"Unknown preset {name!r}, choose from {', '.join(PRESETS)}") from None
	return factory()
