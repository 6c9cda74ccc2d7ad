"""Centralized configuration for the iqpresence tools.

All configuration can be set via environment variables or config file.
Environment variables take precedence over config file values.
"""
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import structlog

from iqpresence.detector.config import PresenceConfig
from iqpresence.detector.presets import PRESETS, get_preset


@dataclass
class SensorConfig:
	"""Synthetic sensor configuration."""

	sensor_id: int = 1
	interrupt_timeout_s: float = 1.0
	noise_std: float = 20.0  # LSB
	clutter_amplitude: float = 0.0  # LSB
	seed: int | None = None
	realtime: bool = True  # pace frames at the configured frame rate

	def validate(self) -> list[str]:
		"""Validate configuration values. Returns list of error messages."""
		errors = []

		if self.sensor_id < 1:
			errors.append(f"sensor.sensor_id ({self.sensor_id}) must be >= 1")
		if self.interrupt_timeout_s <= 0:
			errors.append(f"sensor.interrupt_timeout_s ({self.interrupt_timeout_s}) must be positive")
		if self.noise_std < 0:
			errors.append(f"sensor.noise_std ({self.noise_std}) must be >= 0")
		if self.clutter_amplitude < 0:
			errors.append(f"sensor.clutter_amplitude ({self.clutter_amplitude}) must be >= 0")

		return errors


@dataclass
class PathsConfig:
	"""File paths configuration."""

	data_dir: Path = field(default_factory=lambda: Path("data"))  # relative recordings land here


@dataclass
class StorageConfig:
	"""Recording configuration."""

	format: str = "hdf5"  # hdf5 or parquet
	compression: str = "gzip"
	compression_level: int = 4
	parquet_batch_size: int = 1000

	@property
	def suffix(self) -> str:
		return ".parquet" if self.format == "parquet" else ".h5"

	def validate(self) -> list[str]:
		"""Validate configuration values. Returns list of error messages."""
		errors = []

		if self.format not in ("hdf5", "parquet"):
			errors.append(f"storage.format ({self.format}) must be 'hdf5' or 'parquet'")
		if self.compression not in ("gzip", "lzf"):
			errors.append(f"storage.compression ({self.compression}) must be 'gzip' or 'lzf'")
		if not 0 <= self.compression_level <= 9:
			errors.append(f"storage.compression_level ({self.compression_level}) must be between 0 and 9")
		if self.parquet_batch_size < 1:
			errors.append(f"storage.parquet_batch_size ({self.parquet_batch_size}) must be >= 1")

		return errors


@dataclass
class AppConfig:
	"""Complete application configuration."""

	sensor: SensorConfig = field(default_factory=SensorConfig)
	paths: PathsConfig = field(default_factory=PathsConfig)
	storage: StorageConfig = field(default_factory=StorageConfig)
	detector: PresenceConfig = field(default_factory=PresenceConfig)
	log_level: str = "INFO"
	preset: str | None = None  # overrides the detector section when set

	@classmethod
	def from_env(cls) -> AppConfig:
		"""Load configuration from environment variables."""
		config = cls()

		config.log_level = os.environ.get("IQPRESENCE_LOG_LEVEL", config.log_level)
		config.preset = os.environ.get("IQPRESENCE_PRESET") or None

		# Sensor config
		if sensor_id := os.environ.get("IQPRESENCE_SENSOR_ID"):
			config.sensor.sensor_id = int(sensor_id)
		if noise := os.environ.get("IQPRESENCE_MOCK_NOISE"):
			config.sensor.noise_std = float(noise)
		if seed := os.environ.get("IQPRESENCE_MOCK_SEED"):
			config.sensor.seed = int(seed)
		realtime = os.environ.get("IQPRESENCE_MOCK_REALTIME", "").lower()
		if realtime:
			config.sensor.realtime = realtime == "true"

		# Paths config
		if data_dir := os.environ.get("IQPRESENCE_DATA_DIR"):
			config.paths.data_dir = Path(data_dir)

		# Storage config
		if fmt := os.environ.get("IQPRESENCE_STORAGE_FORMAT"):
			config.storage.format = fmt
		if compression := os.environ.get("IQPRESENCE_STORAGE_COMPRESSION"):
			config.storage.compression = compression

		# Detector config
		if start := os.environ.get("IQPRESENCE_START_M"):
			config.detector.start_m = float(start)
		if end := os.environ.get("IQPRESENCE_END_M"):
			config.detector.end_m = float(end)
		if frame_rate := os.environ.get("IQPRESENCE_FRAME_RATE"):
			config.detector.frame_rate = float(frame_rate)

		return config

	@classmethod
	def from_file(cls, path: str | Path) -> AppConfig:
		"""Load configuration from JSON file."""
		with open(path) as f:
			data = json.load(f)
		return cls._from_dict(data)

	@classmethod
	def _from_dict(cls, data: dict[str, Any]) -> AppConfig:
		"""Create config from dictionary."""
		config = cls()

		if "sensor" in data:
			for key, value in data["sensor"].items():
				if hasattr(config.sensor, key):
					setattr(config.sensor, key, value)

		if "paths" in data:
			for key, value in data["paths"].items():
				if hasattr(config.paths, key):
					setattr(config.paths, key, Path(value))

		if "storage" in data:
			for key, value in data["storage"].items():
				if hasattr(config.storage, key):
					setattr(config.storage, key, value)

		if "detector" in data:
			config.detector = PresenceConfig.from_dict(data["detector"])

		config.log_level = data.get("log_level", config.log_level)
		config.preset = data.get("preset", config.preset)

		return config

	def to_dict(self) -> dict[str, Any]:
		return {
			"sensor": vars(self.sensor).copy(),
			"paths": {key: str(value) for key, value in vars(self.paths).items()},
			"storage": vars(self.storage).copy(),
			"detector": self.detector.to_dict(),
			"log_level": self.log_level,
			"preset": self.preset,
		}

	def presence_config(self) -> PresenceConfig:
		"""Detector configuration in effect: the preset if one is named."""
		if self.preset:
			return get_preset(self.preset)
		return self.detector

	def recording_path(self, output: str | Path) -> Path:
		"""Where a recording named output is written.

		Without a suffix the storage format decides it; relative paths are
		placed under data_dir.
		"""
		path = Path(output)
		if not path.suffix:
			path = path.with_suffix(self.storage.suffix)
		if not path.is_absolute():
			path = self.paths.data_dir / path
		return path

	def validate(self) -> list[str]:
		"""Validate all configuration values. Returns list of error messages."""
		errors = []

		errors.extend(self.sensor.validate())
		errors.extend(self.storage.validate())

		if getattr(logging, self.log_level.upper(), None) is None:
			errors.append(f"log_level ({self.log_level}) is not a logging level")

		if self.preset and self.preset not in PRESETS:
			errors.append(f"preset ({self.preset}) must be one of {', '.join(PRESETS)}")
		else:
			errors.extend(f"detector.{e}" for e in self.presence_config().validate())

		return errors


# Global config instance
_config: AppConfig | None = None


def get_config() -> AppConfig:
	"""Get the global configuration instance."""
	global _config
	if _config is None:
		_config = AppConfig.from_env()
	return _config


def configure_logging(level: str = "INFO") -> None:
	"""Configure structured logging for the application."""
	log_level = getattr(logging, level.upper(), logging.INFO)

	# Configure structlog
	structlog.configure(
		processors=[
			structlog.stdlib.filter_by_level,
			structlog.stdlib.add_logger_name,
			structlog.stdlib.add_log_level,
			structlog.stdlib.PositionalArgumentsFormatter(),
			structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S"),
			structlog.processors.StackInfoRenderer(),
			structlog.processors.format_exc_info,
			structlog.processors.UnicodeDecoder(),
			structlog.dev.ConsoleRenderer(),
		],
		wrapper_class=structlog.stdlib.BoundLogger,
		context_class=dict,
		logger_factory=structlog.stdlib.LoggerFactory(),
		cache_logger_on_first_use=True,
	)

	# Configure standard logging
	logging.basicConfig(
		format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
		level=log_level,
	)

	# Reduce noise from third-party libraries
	logging.getLogger("h5py").setLevel(logging.WARNING)
