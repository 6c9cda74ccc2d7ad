"""Recording writers for raw frames and presence results."""

from __future__ import annotations

import json
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

import h5py
import numpy as np
import pandas as pd
import pyarrow as pa
import pyarrow.parquet as pq

if TYPE_CHECKING:
	from iqpresence.detector.decision import PresenceResult

logger = logging.getLogger(__name__)

# Schema version for compatibility checking
SCHEMA_VERSION = "1.0.0"

RESULT_FIELDS = (
	("timestamp", np.float64),
	("sequence", np.uint32),
	("presence_detected", np.bool_),
	("intra_presence_score", np.float32),
	("inter_presence_score", np.float32),
	("presence_distance", np.float32),
	("data_saturated", np.bool_),
	("frame_delayed", np.bool_),
	("calibration_needed", np.bool_),
	("temperature", np.int16),
)


@dataclass
class SessionMetadata:
	session_id: str = ""
	start_time: datetime = field(default_factory=datetime.now)
	notes: str = ""
	sensor_id: int = 1
	config: dict[str, Any] = field(default_factory=dict)  # PresenceConfig.to_dict()
	start_m: float = 0.0
	step_length_m: float = 0.0
	num_points: int = 0
	sweeps_per_frame: int = 0
	schema_version: str = SCHEMA_VERSION

	def __post_init__(self) -> None:
		if not self.session_id:
			self.session_id = self.start_time.strftime("%Y%m%d_%H%M%S")


@dataclass
class WriteMetrics:
	"""Metrics for tracking write performance."""

	frames_written: int = 0
	results_written: int = 0
	write_errors: int = 0
	bytes_written: int = 0
	last_error: str | None = None

	def to_dict(self) -> dict[str, Any]:
		return {
			"frames_written": self.frames_written,
			"results_written": self.results_written,
			"write_errors": self.write_errors,
			"bytes_written": self.bytes_written,
			"last_error": self.last_error,
		}


def result_row(result: PresenceResult, timestamp: float | None = None) -> dict[str, Any]:
	"""Flat record of a result and its frame status."""
	pr = result.processing_result
	return {
		"timestamp": timestamp if timestamp is not None else time.time(),
		"sequence": pr.sequence if pr else 0,
		"presence_detected": result.presence_detected,
		"intra_presence_score": result.intra_presence_score,
		"inter_presence_score": result.inter_presence_score,
		"presence_distance": result.presence_distance,
		"data_saturated": pr.data_saturated if pr else False,
		"frame_delayed": pr.frame_delayed if pr else False,
		"calibration_needed": pr.calibration_needed if pr else False,
		"temperature": pr.temperature if pr else 0,
	}


class DataWriter(ABC):
	@abstractmethod
	def write_frame(self, raw: bytes, result: PresenceResult, timestamp: float | None = None) -> bool:
		"""Write one raw frame and its result. Returns True on success."""
		pass

	@abstractmethod
	def close(self) -> None:
		pass

	@property
	@abstractmethod
	def metrics(self) -> WriteMetrics:
		pass

	def __enter__(self) -> DataWriter:
		return self

	def __exit__(self, exc_type, exc_val, exc_tb) -> None:
		self.close()


class HDF5Writer(DataWriter):
	"""HDF5 writer for raw frames, depthwise scores and results.

	Layout:
		/frames/raw              (n, frame_size) uint8
		/scores/intra, /inter    (n, num_points) float32
		/results/<field>         (n,)
	"""

	def __init__(
		self,
		path: str | Path,
		metadata: SessionMetadata,
		compression: str = "gzip",
		compression_level: int = 4,
	) -> None:
		self.path = Path(path)
		self.metadata = metadata
		self.compression = compression
		self.compression_level = compression_level
		self._metrics = WriteMetrics()

		self.path.parent.mkdir(parents=True, exist_ok=True)
		self._file = h5py.File(self.path, "w")
		self._raw_ds: h5py.Dataset | None = None
		self._setup_groups()

		logger.info(f"HDF5Writer initialized: {self.path}")

	def _setup_groups(self) -> None:
		md = self.metadata
		self._file.attrs["schema_version"] = md.schema_version
		self._file.attrs["session_id"] = md.session_id
		self._file.attrs["start_time"] = md.start_time.isoformat()
		self._file.attrs["notes"] = md.notes
		self._file.attrs["sensor_id"] = md.sensor_id
		self._file.attrs["config"] = json.dumps(md.config)
		self._file.attrs["start_m"] = md.start_m
		self._file.attrs["step_length_m"] = md.step_length_m
		self._file.attrs["num_points"] = md.num_points
		self._file.attrs["sweeps_per_frame"] = md.sweeps_per_frame

		self._frames_group = self._file.create_group("frames")
		scores = self._file.create_group("scores")
		results = self._file.create_group("results")

		n = max(md.num_points, 1)
		self._score_ds = {
			"intra": self._create_ds(scores, "intra", np.float32, (n,)),
			"inter": self._create_ds(scores, "inter", np.float32, (n,)),
		}
		self._result_ds = {name: self._create_ds(results, name, dtype) for name, dtype in RESULT_FIELDS}

	def _create_ds(
		self, group: h5py.Group, name: str, dtype: Any, row: tuple[int, ...] = ()
	) -> h5py.Dataset:
		opts = {"compression_opts": self.compression_level} if self.compression == "gzip" else {}
		chunk_rows = 1000 if not row else max(1, 65536 // (row[0] * np.dtype(dtype).itemsize))
		return group.create_dataset(
			name, shape=(0,) + row, maxshape=(None,) + row, dtype=dtype,
			chunks=(chunk_rows,) + row, compression=self.compression, **opts
		)

	@property
	def metrics(self) -> WriteMetrics:
		return self._metrics

	def write_frame(self, raw: bytes, result: PresenceResult, timestamp: float | None = None) -> bool:
		try:
			idx = self._metrics.frames_written
			if self._raw_ds is None:
				self._raw_ds = self._create_ds(self._frames_group, "raw", np.uint8, (len(raw),))
			self._raw_ds.resize((idx + 1, len(raw)))
			self._raw_ds[idx] = np.frombuffer(raw, dtype=np.uint8)

			for key, scores in (
				("intra", result.depthwise_intra_presence_scores),
				("inter", result.depthwise_inter_presence_scores),
			):
				ds = self._score_ds[key]
				ds.resize((idx + 1, ds.shape[1]))
				ds[idx] = scores

			row = result_row(result, timestamp)
			for name, ds in self._result_ds.items():
				ds.resize((idx + 1,))
				ds[idx] = row[name]

			self._metrics.frames_written += 1
			self._metrics.results_written += 1
			self._metrics.bytes_written += len(raw) + 2 * result.depthwise_intra_presence_scores.nbytes
			return True

		except Exception as e:
			self._metrics.write_errors += 1
			self._metrics.last_error = str(e)
			logger.error(f"HDF5 write_frame error: {e}")
			return False

	def close(self) -> None:
		try:
			self._file.attrs["end_time"] = datetime.now().isoformat()
			self._file.attrs["total_frames"] = self._metrics.frames_written
			self._file.close()
			logger.info(
				f"HDF5Writer closed: frames={self._metrics.frames_written}, "
				f"errors={self._metrics.write_errors}"
			)
		except Exception as e:
			logger.error(f"HDF5 close error: {e}")


class ParquetWriter(DataWriter):
	"""Parquet writer for the result time series. Best for pandas analysis."""

	def __init__(
		self,
		path: str | Path,
		metadata: SessionMetadata | None = None,
		batch_size: int = 1000,
	) -> None:
		self.path = Path(path)
		self.metadata = metadata or SessionMetadata()
		self.batch_size = batch_size
		self._metrics = WriteMetrics()
		self.path.parent.mkdir(parents=True, exist_ok=True)

		self._buffer: list[dict[str, Any]] = []
		self._writer: pq.ParquetWriter | None = None

		self._schema = pa.schema([
			("timestamp", pa.float64()),
			("datetime", pa.timestamp("us")),
			("sequence", pa.uint32()),
			("presence_detected", pa.bool_()),
			("intra_presence_score", pa.float32()),
			("inter_presence_score", pa.float32()),
			("presence_distance", pa.float32()),
			("data_saturated", pa.bool_()),
			("frame_delayed", pa.bool_()),
			("calibration_needed", pa.bool_()),
			("temperature", pa.int16()),
		])

		self._file_metadata = {
			b"schema_version": self.metadata.schema_version.encode(),
			b"session_id": self.metadata.session_id.encode(),
			b"start_time": self.metadata.start_time.isoformat().encode(),
			b"config": json.dumps(self.metadata.config).encode(),
		}

		logger.info(f"ParquetWriter initialized: {self.path}")

	@property
	def metrics(self) -> WriteMetrics:
		return self._metrics

	def write_frame(self, raw: bytes, result: PresenceResult, timestamp: float | None = None) -> bool:
		# Raw frames are not kept; only the result row
		try:
			row = result_row(result, timestamp)
			ts = row["timestamp"]
			dt = None
			if ts and ts > 0:
				try:
					dt = datetime.fromtimestamp(ts)
				except (ValueError, OSError):
					pass
			row["datetime"] = dt
			self._buffer.append(row)

			self._metrics.results_written += 1

			if len(self._buffer) >= self.batch_size:
				return self._flush()

			return True

		except Exception as e:
			self._metrics.write_errors += 1
			self._metrics.last_error = str(e)
			logger.error(f"ParquetWriter write_frame error: {e}")
			return False

	def _flush(self) -> bool:
		if not self._buffer:
			return True

		try:
			df = pd.DataFrame(self._buffer)
			table = pa.Table.from_pandas(df, schema=self._schema, preserve_index=False)

			if self._writer is None:
				self._writer = pq.ParquetWriter(
					self.path,
					self._schema.with_metadata(self._file_metadata),
					compression="snappy",
					coerce_timestamps="us",
				)

			self._writer.write_table(table)
			self._metrics.bytes_written += table.nbytes
			self._buffer.clear()
			return True

		except Exception as e:
			self._metrics.write_errors += 1
			self._metrics.last_error = str(e)
			logger.error(f"ParquetWriter flush error: {e}")
			return False

	def close(self) -> None:
		try:
			self._flush()
			if self._writer:
				self._writer.close()
			logger.info(
				f"ParquetWriter closed: results={self._metrics.results_written}, "
				f"errors={self._metrics.write_errors}"
			)
		except Exception as e:
			logger.error(f"ParquetWriter close error: {e}")


def create_writer(
	path: str | Path,
	metadata: SessionMetadata,
	compression: str = "gzip",
	compression_level: int = 4,
	batch_size: int = 1000,
) -> DataWriter:
	"""Writer matching the file suffix (.parquet/.pq or .h5/.hdf5).

	compression and compression_level apply to HDF5, batch_size to Parquet.
	"""
	p = Path(path)
	if p.suffix in [".parquet", ".pq"]:
		return ParquetWriter(p, metadata, batch_size=batch_size)
	if p.suffix in [".h5", ".hdf5"]:
		return HDF5Writer(p, metadata, compression=compression, compression_level=compression_level)
	raise ValueError(f"Unsupported format: {p.suffix}")
