"""Presence detector configuration."""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from enum import Enum, IntEnum
from typing import Any

import structlog

logger = structlog.get_logger(__name__)

MIN_SWEEPS_PER_FRAME = 6
MAX_SWEEPS_PER_FRAME = 4095
MIN_HWAAS = 1
MAX_HWAAS = 511
MAX_PRESENCE_TIMEOUT_S = 30

# Step lengths the sampling grid supports: divisors of 24, or multiples of 24
STEP_LENGTH_BASE = 24


def is_valid_step_length(step_length: int) -> bool:
	if step_length < 1:
		return False
	return STEP_LENGTH_BASE % step_length == 0 or step_length % STEP_LENGTH_BASE == 0


class Profile(IntEnum):
	"""Sensor profile. Higher profiles trade depth resolution for gain."""
	PROFILE_1 = 1
	PROFILE_2 = 2
	PROFILE_3 = 3
	PROFILE_4 = 4
	PROFILE_5 = 5


class IdleState(str, Enum):
	"""State the sensor idles in between frames."""
	DEEP_SLEEP = "deep_sleep"
	SLEEP = "sleep"
	READY = "ready"


@dataclass
class PresenceConfig:
	"""Measurement and algorithm parameters of the presence detector.

	Fields can be set freely; nothing is checked until the config is handed
	to PresenceDetector.create() or prepare(), which call validate().
	"""

	# Measurement interval
	start_m: float = 0.3
	end_m: float = 2.5
	auto_step_length: bool = True
	step_length: int = 24  # points, used when auto_step_length is False
	auto_profile: bool = True
	profile: Profile = Profile.PROFILE_4  # used when auto_profile is False

	# Sensor
	sensor_id: int = 1
	inter_frame_idle_state: IdleState = IdleState.DEEP_SLEEP
	hwaas: int = 32
	sweeps_per_frame: int = 16
	frame_rate: float = 12.0  # Hz
	frame_rate_app_driven: bool = False
	reset_filters_on_prepare: bool = True

	# Inter-frame (slow motion)
	inter_frame_presence_timeout: int = 3  # seconds, 0 disables
	inter_phase_boost: bool = False
	inter_detection: bool = True
	inter_detection_threshold: float = 1.0
	inter_frame_deviation_time_const: float = 0.5
	inter_frame_fast_cutoff: float = 6.0  # Hz
	inter_frame_slow_cutoff: float = 0.2  # Hz
	inter_output_time_const: float = 2.0

	# Intra-frame (fast motion)
	intra_detection: bool = True
	intra_detection_threshold: float = 1.3
	intra_frame_time_const: float = 0.15
	intra_output_time_const: float = 0.3

	def validate(self) -> list[str]:
		"""Validate configuration values. Returns list of error messages."""
		errors = []

		if self.start_m < 0:
			errors.append(f"start_m ({self.start_m}) must be >= 0")
		if self.end_m <= self.start_m:
			errors.append(f"end_m ({self.end_m}) must be > start_m ({self.start_m})")
		if not self.auto_step_length and not is_valid_step_length(self.step_length):
			errors.append(
				f"step_length ({self.step_length}) must be a divisor or multiple of {STEP_LENGTH_BASE}"
			)
		if not self.auto_profile and self.profile not in tuple(Profile):
			errors.append(f"profile ({self.profile}) must be between 1 and 5")
		if not MIN_HWAAS <= self.hwaas <= MAX_HWAAS:
			errors.append(f"hwaas ({self.hwaas}) must be between {MIN_HWAAS} and {MAX_HWAAS}")
		if not MIN_SWEEPS_PER_FRAME <= self.sweeps_per_frame <= MAX_SWEEPS_PER_FRAME:
			errors.append(
				f"sweeps_per_frame ({self.sweeps_per_frame}) must be between "
				f"{MIN_SWEEPS_PER_FRAME} and {MAX_SWEEPS_PER_FRAME}"
			)
		if self.frame_rate <= 0:
			if self.frame_rate_app_driven:
				errors.append(
					f"frame_rate ({self.frame_rate}) must be > 0, an app-driven frame rate "
					"still sets the nominal rate of the filters"
				)
			else:
				errors.append(f"frame_rate ({self.frame_rate}) must be > 0")
		if not 0 <= self.inter_frame_presence_timeout <= MAX_PRESENCE_TIMEOUT_S:
			errors.append(
				f"inter_frame_presence_timeout ({self.inter_frame_presence_timeout}) must be "
				f"between 0 and {MAX_PRESENCE_TIMEOUT_S}"
			)
		if self.intra_detection_threshold < 0:
			errors.append(f"intra_detection_threshold ({self.intra_detection_threshold}) must be >= 0")
		if self.inter_detection_threshold < 0:
			errors.append(f"inter_detection_threshold ({self.inter_detection_threshold}) must be >= 0")

		for name in (
			"inter_frame_deviation_time_const",
			"inter_output_time_const",
			"intra_frame_time_const",
			"intra_output_time_const",
		):
			value = getattr(self, name)
			if value < 0:
				errors.append(f"{name} ({value}) must be >= 0")

		for name in ("inter_frame_fast_cutoff", "inter_frame_slow_cutoff"):
			value = getattr(self, name)
			if value <= 0:
				errors.append(f"{name} ({value}) must be > 0")

		return errors

	def to_dict(self) -> dict[str, Any]:
		data = asdict(self)
		data["profile"] = int(self.profile)
		data["inter_frame_idle_state"] = self.inter_frame_idle_state.value
		return data

	@classmethod
	def from_dict(cls, data: dict[str, Any]) -> PresenceConfig:
		"""Create config from dictionary. Unknown keys are ignored."""
		config = cls()
		names = {f.name for f in fields(cls)}
		for key, value in data.items():
			if key not in names:
				continue
			if key == "profile":
				value = Profile(int(value))
			elif key == "inter_frame_idle_state":
				value = IdleState(value)
			setattr(config, key, value)
		return config

	def log(self, log: Any = None) -> None:
		"""Write every field to the log."""
		(log or logger).info("presence_config", **self.to_dict())
