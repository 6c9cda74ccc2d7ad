"""Measurement geometry derived from a presence configuration.

Distances are sampled on a fixed grid of BASE_STEP_LENGTH_M. The resolver
turns the requested interval into integer grid points, picking the profile
and step length automatically when asked to:

- Auto profile: the highest profile whose direct-leakage skirt (twice the
  main lobe FWHM) stays in front of the start point. Highest gain wins.
- Auto step length: the largest valid step that keeps the spacing within the
  FWHM of the resolved profile, so the whole interval stays covered with as
  few points as possible.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

import structlog

from iqpresence.detector.config import (
	STEP_LENGTH_BASE,
	PresenceConfig,
	Profile,
	is_valid_step_length,
)
from iqpresence.detector.errors import InvalidConfigError
from iqpresence.sensor.config import BASE_STEP_LENGTH_M, ENVELOPE_FWHM_M

logger = structlog.get_logger(__name__)

MAX_NUM_POINTS = 2048

# Closest start point usable without direct leakage; profile 1 has no limit
MIN_START_M = {
	Profile(profile): (None if profile == Profile.PROFILE_1 else 2 * fwhm)
	for profile, fwhm in ENVELOPE_FWHM_M.items()
}


@dataclass(frozen=True)
class PresenceMetadata:
	start_m: float
	step_length_m: float
	num_points: int
	profile: Profile
	start_point: int
	step_length: int

	@property
	def end_m(self) -> float:
		"""Distance of the last sampled point."""
		return self.start_m + (self.num_points - 1) * self.step_length_m

	def distance(self, index: int) -> float:
		return self.start_m + self.step_length_m * index


def select_profile(start_m: float) -> Profile:
	"""Highest profile whose leakage skirt does not reach start_m."""
	viable = [p for p, limit in MIN_START_M.items() if limit is None or limit <= start_m]
	return max(viable)


def select_step_length(profile: Profile) -> int:
	"""Largest valid step length (in points) within the profile's FWHM."""
	fwhm_points = round(ENVELOPE_FWHM_M[profile] / BASE_STEP_LENGTH_M)
	if fwhm_points >= STEP_LENGTH_BASE:
		return fwhm_points // STEP_LENGTH_BASE * STEP_LENGTH_BASE
	return max(s for s in range(1, fwhm_points + 1) if is_valid_step_length(s))


def resolve_metadata(config: PresenceConfig) -> PresenceMetadata:
	"""Resolve the measurement geometry. Raises InvalidConfigError."""
	errors = config.validate()
	if errors:
		raise InvalidConfigError(errors)

	profile = select_profile(config.start_m) if config.auto_profile else Profile(config.profile)
	step_length = select_step_length(profile) if config.auto_step_length else config.step_length

	start_point = round(config.start_m / BASE_STEP_LENGTH_M)
	end_point = round(config.end_m / BASE_STEP_LENGTH_M)
	num_points = math.ceil((end_point - start_point) / step_length) + 1

	if num_points > MAX_NUM_POINTS:
		logger.warning(
			"num_points_clamped",
			requested=num_points,
			max_num_points=MAX_NUM_POINTS,
		)
		num_points = MAX_NUM_POINTS

	metadata = PresenceMetadata(
		start_m=start_point * BASE_STEP_LENGTH_M,
		step_length_m=step_length * BASE_STEP_LENGTH_M,
		num_points=num_points,
		profile=profile,
		start_point=start_point,
		step_length=step_length,
	)
	logger.debug(
		"presence_metadata_resolved",
		start_m=metadata.start_m,
		step_length_m=metadata.step_length_m,
		num_points=num_points,
		profile=int(profile),
	)
	return metadata
