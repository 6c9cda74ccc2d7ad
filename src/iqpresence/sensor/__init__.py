"""Sensor interface, frame layout and synthetic/replay sensors."""
from .base import (
	CalibrationError,
	FrameError,
	Sensor,
	SensorError,
	SensorNotPreparedError,
	SensorTimeoutError,
)
from .calibration import CALIBRATION_BUFFER_SIZE, CalibrationResult
from .config import MeasurementConfig
from .frame import FrameFlags, FrameHeader, decode_frame, encode_frame, frame_size
from .hal import FifoHal, SensorHal, TransferPath, WideFifoHal
from .mock import MockConfig, MockSensor, Reflector
from .processing import Processing, ProcessingMetadata, ProcessingResult
from .replay import EndOfRecording, ReplaySensor

__all__ = [
	"Sensor",
	"SensorError",
	"SensorNotPreparedError",
	"SensorTimeoutError",
	"CalibrationError",
	"FrameError",
	"CalibrationResult",
	"CALIBRATION_BUFFER_SIZE",
	"MeasurementConfig",
	# Frame layout
	"FrameFlags",
	"FrameHeader",
	"encode_frame",
	"decode_frame",
	"frame_size",
	# Transfers
	"SensorHal",
	"FifoHal",
	"WideFifoHal",
	"TransferPath",
	"Processing",
	"ProcessingMetadata",
	"ProcessingResult",
	"MockConfig",
	"MockSensor",
	"Reflector",
	"ReplaySensor",
	"EndOfRecording",
]
