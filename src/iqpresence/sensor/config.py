"""Measurement configuration sent to the sensor."""

from __future__ import annotations

from dataclasses import dataclass

from iqpresence.sensor.frame import frame_size

IDLE_STATES = ("deep_sleep", "sleep", "ready")

BASE_STEP_LENGTH_M = 2.5e-3
WAVELENGTH_M = 5e-3  # 60 GHz carrier

# Main lobe full width at half maximum per profile
ENVELOPE_FWHM_M = {
	1: 0.04,
	2: 0.07,
	3: 0.14,
	4: 0.19,
	5: 0.32,
}


@dataclass
class MeasurementConfig:
	"""Sampling geometry and timing of one sensor measurement.

	Points are on the 2.5 mm sampling grid; start_point 80 is 0.2 m.
	"""

	start_point: int = 80
	step_length: int = 24
	num_points: int = 15
	profile: int = 2
	hwaas: int = 32
	sweeps_per_frame: int = 16
	frame_rate: float = 10.0
	frame_rate_app_driven: bool = False
	inter_frame_idle_state: str = "deep_sleep"

	@property
	def frame_size(self) -> int:
		"""Bytes of one raw frame, header included."""
		return frame_size(self.sweeps_per_frame, self.num_points)

	@property
	def end_point(self) -> int:
		return self.start_point + (self.num_points - 1) * self.step_length

	def distances(self) -> list[float]:
		"""Distance in meters of every sampled point."""
		return [
			(self.start_point + i * self.step_length) * BASE_STEP_LENGTH_M
			for i in range(self.num_points)
		]

	def validate(self) -> list[str]:
		"""Validate configuration values. Returns list of error messages."""
		errors = []

		if self.num_points < 1:
			errors.append(f"num_points ({self.num_points}) must be >= 1")
		if self.step_length < 1:
			errors.append(f"step_length ({self.step_length}) must be >= 1")
		if not 1 <= self.profile <= 5:
			errors.append(f"profile ({self.profile}) must be between 1 and 5")
		if self.sweeps_per_frame < 1:
			errors.append(f"sweeps_per_frame ({self.sweeps_per_frame}) must be >= 1")
		if self.frame_rate <= 0 and not self.frame_rate_app_driven:
			errors.append(f"frame_rate ({self.frame_rate}) must be > 0")
		if self.inter_frame_idle_state not in IDLE_STATES:
			errors.append(
				f"inter_frame_idle_state ({self.inter_frame_idle_state}) must be one of "
				f"{', '.join(IDLE_STATES)}"
			)

		return errors
