"""Raw IQ frame layout and encoding.

A raw frame is a 16-byte little-endian header followed by
sweeps_per_frame * num_points interleaved int16 (I, Q) pairs, sweep-major.

Header:
	uint16 magic
	uint16 flags        FrameFlags
	int16  temperature  degrees C
	uint16 sweeps_per_frame
	uint16 num_points
	uint32 sequence
	2 bytes padding
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from enum import IntFlag

import numpy as np
from numpy.typing import NDArray

MAGIC = 0xA121
HEADER_FORMAT = "<HHhHHIxx"
HEADER_SIZE = struct.calcsize(HEADER_FORMAT)
BYTES_PER_SAMPLE = 4

INT16_MIN = -32768
INT16_MAX = 32767


class FrameFlags(IntFlag):
	NONE = 0
	SATURATED = 1
	DELAYED = 2
	CALIBRATION_NEEDED = 4


def frame_size(sweeps_per_frame: int, num_points: int) -> int:
	return HEADER_SIZE + sweeps_per_frame * num_points * BYTES_PER_SAMPLE


@dataclass
class FrameHeader:
	sweeps_per_frame: int
	num_points: int
	sequence: int = 0
	temperature: int = 25
	flags: FrameFlags = FrameFlags.NONE

	@property
	def data_length(self) -> int:
		return self.sweeps_per_frame * self.num_points * BYTES_PER_SAMPLE

	@property
	def frame_length(self) -> int:
		return HEADER_SIZE + self.data_length

	@classmethod
	def from_bytes(cls, data: bytes | memoryview) -> FrameHeader:
		"""Parse header from raw bytes."""
		if len(data) < HEADER_SIZE:
			raise ValueError(f"Data too short: {len(data)} < {HEADER_SIZE}")
		magic, flags, temperature, sweeps, points, sequence = struct.unpack_from(
			HEADER_FORMAT, data
		)
		if magic != MAGIC:
			raise ValueError(f"Bad magic: 0x{magic:04x}")
		return cls(
			sweeps_per_frame=sweeps,
			num_points=points,
			sequence=sequence,
			temperature=temperature,
			flags=FrameFlags(flags),
		)

	def to_bytes(self) -> bytes:
		return struct.pack(
			HEADER_FORMAT,
			MAGIC,
			int(self.flags),
			self.temperature,
			self.sweeps_per_frame,
			self.num_points,
			self.sequence & 0xFFFFFFFF,
		)


def quantize(samples: NDArray[np.complex128]) -> tuple[NDArray[np.int16], bool]:
	"""Round complex samples to interleaved int16 IQ. Returns (iq, saturated)."""
	iq = np.empty(samples.shape + (2,), dtype=np.float64)
	iq[..., 0] = np.rint(samples.real)
	iq[..., 1] = np.rint(samples.imag)
	saturated = bool(np.any(iq < INT16_MIN) or np.any(iq > INT16_MAX))
	return np.clip(iq, INT16_MIN, INT16_MAX).astype("<i2"), saturated


def encode_frame(
	samples: NDArray[np.complex128],
	sequence: int = 0,
	temperature: int = 25,
	flags: FrameFlags = FrameFlags.NONE,
) -> bytes:
	"""Encode a (sweeps_per_frame, num_points) complex array as a raw frame.

	Samples outside the int16 range are clipped and flagged SATURATED.
	"""
	samples = np.atleast_2d(samples)
	iq, saturated = quantize(samples)
	if saturated:
		flags |= FrameFlags.SATURATED
	header = FrameHeader(
		sweeps_per_frame=samples.shape[0],
		num_points=samples.shape[1],
		sequence=sequence,
		temperature=temperature,
		flags=flags,
	)
	return header.to_bytes() + iq.tobytes()


def decode_samples(data: bytes | memoryview, header: FrameHeader) -> NDArray[np.complex128]:
	"""Complex samples shaped (sweeps_per_frame, num_points) following the header."""
	available = len(data) - HEADER_SIZE
	if available < header.data_length:
		raise ValueError(f"Frame truncated: {available} < {header.data_length} bytes")
	iq = np.frombuffer(
		data, dtype="<i2", count=header.data_length // 2, offset=HEADER_SIZE
	).astype(np.float64)
	samples = iq[0::2] + 1j * iq[1::2]
	return samples.reshape(header.sweeps_per_frame, header.num_points)


def decode_frame(data: bytes | memoryview) -> tuple[FrameHeader, NDArray[np.complex128]]:
	header = FrameHeader.from_bytes(data)
	return header, decode_samples(data, header)
