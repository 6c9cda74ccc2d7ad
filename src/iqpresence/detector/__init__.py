"""Presence detection: filter bank, motion estimators and detector lifecycle."""

from iqpresence.detector.config import IdleState, PresenceConfig, Profile
from iqpresence.detector.decision import DecisionAggregator, PresenceResult
from iqpresence.detector.detector import DetectorState, PresenceDetector, destroy_detector
from iqpresence.detector.errors import (
	BufferTooSmallError,
	DetectorStateError,
	HardwareError,
	InvalidConfigError,
	PresenceError,
)
from iqpresence.detector.filters import FilterBank, FilterState
from iqpresence.detector.inter import InterFrameEstimator
from iqpresence.detector.intra import IntraFrameEstimator
from iqpresence.detector.memory import MemoryRequirements, estimate_memory_requirements
from iqpresence.detector.metadata import PresenceMetadata, resolve_metadata
from iqpresence.detector.presets import PRESETS, get_preset

__all__ = [
	"PresenceConfig",
	"Profile",
	"IdleState",
	"PresenceMetadata",
	"resolve_metadata",
	"PresenceDetector",
	"DetectorState",
	"destroy_detector",
	"PresenceResult",
	"DecisionAggregator",
	"FilterBank",
	"FilterState",
	"IntraFrameEstimator",
	"InterFrameEstimator",
	"MemoryRequirements",
	"estimate_memory_requirements",
	"PRESETS",
	"get_preset",
	# Errors
	"PresenceError",
	"InvalidConfigError",
	"BufferTooSmallError",
	"HardwareError",
	"DetectorStateError",
]
