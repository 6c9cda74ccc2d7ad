"""Presence detection on pulsed-radar IQ data."""
__version__ = "0.1.0"

from iqpresence.detector import (
	BufferTooSmallError,
	DetectorStateError,
	HardwareError,
	InvalidConfigError,
	PresenceConfig,
	PresenceDetector,
	PresenceError,
	PresenceMetadata,
	PresenceResult,
	destroy_detector,
	estimate_memory_requirements,
)
from iqpresence.sensor import CalibrationResult, MockConfig, MockSensor, Reflector, Sensor

__all__ = [
	"PresenceConfig",
	"PresenceDetector",
	"PresenceMetadata",
	"PresenceResult",
	"destroy_detector",
	"estimate_memory_requirements",
	"PresenceError",
	"InvalidConfigError",
	"BufferTooSmallError",
	"HardwareError",
	"DetectorStateError",
	"Sensor",
	"CalibrationResult",
	"MockSensor",
	"MockConfig",
	"Reflector",
]
