"""Pytest fixtures."""

import numpy as np
import pytest

from iqpresence.detector import PresenceConfig, PresenceDetector
from iqpresence.sensor import MockConfig, MockSensor, Reflector, encode_frame


class FrameFeeder:
	"""Prepared detector driven with hand-built frames instead of a live sensor."""

	def __init__(self, config: PresenceConfig):
		self.config = config
		self.detector = PresenceDetector.create(config)
		self.buffer = bytearray(self.detector.get_buffer_size())
		self.sensor = MockSensor(MockConfig(noise_std=0.0), sensor_id=config.sensor_id)
		self.detector.prepare(config, self.sensor, self.sensor.calibrate(), self.buffer)
		self.sequence = 0

	@property
	def shape(self) -> tuple[int, int]:
		return self.config.sweeps_per_frame, self.detector.metadata.num_points

	def constant(self, value: complex = 50 + 0j) -> np.ndarray:
		return np.full(self.shape, value, dtype=np.complex128)

	def load(self, samples: np.ndarray) -> None:
		raw = encode_frame(samples, sequence=self.sequence)
		self.buffer[:len(raw)] = raw
		self.sequence += 1

	def process(self, samples: np.ndarray):
		self.load(samples)
		return self.detector.process(self.buffer)


@pytest.fixture
def feeder():
	"""Factory: feeder(config) -> FrameFeeder."""
	feeders = []

	def make(config: PresenceConfig) -> FrameFeeder:
		f = FrameFeeder(config)
		feeders.append(f)
		return f

	yield make
	for f in feeders:
		f.detector.destroy()


@pytest.fixture
def presence_config() -> PresenceConfig:
	"""Default configuration: 0.3-2.5 m at 12 Hz."""
	return PresenceConfig()


@pytest.fixture
def scenario_config() -> PresenceConfig:
	"""0.2-1.0 m at 10 Hz: profile 2, 60 mm steps, 15 points."""
	return PresenceConfig(
		start_m=0.2,
		end_m=1.0,
		sweeps_per_frame=16,
		frame_rate=10.0,
		intra_detection_threshold=1.5,
		inter_detection_threshold=1.0,
	)


@pytest.fixture
def scenario_mock() -> MockConfig:
	"""Breathing person at 0.5 m walking in after 5 s."""
	return MockConfig(
		reflectors=[
			Reflector(
				distance_m=0.5,
				amplitude=400.0,
				modulation_depth=0.3,
				modulation_hz=0.3,
				appear_s=5.0,
			)
		],
		noise_std=20.0,
		seed=1234,
	)


@pytest.fixture
def rng() -> np.random.Generator:
	return np.random.default_rng(42)


def noisy_frames(rng: np.random.Generator, shape: tuple[int, int], count: int, std: float = 20.0):
	"""Frames of complex Gaussian noise (std per complex sample) around a constant background."""
	scale = std / np.sqrt(2)
	return [
		100 + rng.normal(0, scale, shape) + 1j * rng.normal(0, scale, shape) for _ in range(count)
	]


@pytest.fixture
def make_noisy_frames(rng):
	def make(shape: tuple[int, int], count: int, std: float = 20.0):
		return noisy_frames(rng, shape, count, std)

	return make
