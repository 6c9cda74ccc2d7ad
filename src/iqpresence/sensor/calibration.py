"""Sensor calibration results."""

from __future__ import annotations

from dataclasses import dataclass, field

MIN_TEMPERATURE_C = -40
MAX_TEMPERATURE_C = 105
# Calibration must be redone once the sensor drifts this far from it
MAX_TEMPERATURE_DRIFT_C = 15

# Scratch space the sensor needs while calibrating
CALIBRATION_BUFFER_SIZE = 2492


@dataclass
class CalibrationResult:
	sensor_id: int = 1
	temperature: int = 25  # degrees C at calibration time
	data: bytes = field(default=b"", repr=False)

	def validate(self) -> list[str]:
		"""Validate calibration values. Returns list of error messages."""
		errors = []
		if self.sensor_id < 1:
			errors.append(f"sensor_id ({self.sensor_id}) must be >= 1")
		if not MIN_TEMPERATURE_C <= self.temperature <= MAX_TEMPERATURE_C:
			errors.append(
				f"temperature ({self.temperature}) must be between "
				f"{MIN_TEMPERATURE_C} and {MAX_TEMPERATURE_C}"
			)
		return errors

	def needs_recalibration(self, temperature: int) -> bool:
		return abs(temperature - self.temperature) > MAX_TEMPERATURE_DRIFT_C
