"""Readers for recorded sessions."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator

import h5py
import numpy as np
import pandas as pd
import pyarrow.parquet as pq
import structlog
from numpy.typing import NDArray

logger = structlog.get_logger(__name__)


@dataclass
class StoredFrame:
	index: int
	sequence: int
	timestamp: float
	raw_data: bytes | None = None
	intra_scores: NDArray[np.float32] | None = None
	inter_scores: NDArray[np.float32] | None = None
	presence_detected: bool = False


class DataReader:
	"""Read recorded sessions. Supports HDF5 and Parquet."""

	def __init__(self, path: str | Path) -> None:
		self.path = Path(path)
		if not self.path.exists():
			raise FileNotFoundError(f"Not found: {self.path}")

		self._file: h5py.File | None = None
		self._parquet = False

		if self.path.suffix in [".parquet", ".pq"]:
			self._parquet = True
		elif self.path.suffix in [".h5", ".hdf5"]:
			self._file = h5py.File(self.path, "r")
		else:
			raise ValueError(f"Unsupported format: {self.path.suffix}")

		logger.info("data_reader_init", path=str(self.path))

	@property
	def metadata(self) -> dict[str, Any]:
		if self._parquet:
			pf = pq.read_metadata(self.path)
			kv = pf.metadata or {}
			return {
				"num_rows": pf.num_rows,
				"num_columns": pf.num_columns,
				"session_id": kv.get(b"session_id", b"").decode(),
				"schema_version": kv.get(b"schema_version", b"").decode(),
				"format": "parquet",
			}
		if self._file is None:
			return {}
		attrs = self._file.attrs
		return {
			"session_id": attrs.get("session_id", ""),
			"schema_version": attrs.get("schema_version", ""),
			"start_time": attrs.get("start_time", ""),
			"end_time": attrs.get("end_time", ""),
			"notes": attrs.get("notes", ""),
			"sensor_id": int(attrs.get("sensor_id", 1)),
			"start_m": float(attrs.get("start_m", 0.0)),
			"step_length_m": float(attrs.get("step_length_m", 0.0)),
			"num_points": int(attrs.get("num_points", 0)),
			"sweeps_per_frame": int(attrs.get("sweeps_per_frame", 0)),
			"total_frames": int(attrs.get("total_frames", 0)),
			"format": "hdf5",
		}

	@property
	def config(self) -> dict[str, Any]:
		"""The detector configuration the session was recorded with."""
		if self._parquet:
			kv = pq.read_metadata(self.path).metadata or {}
			raw = kv.get(b"config", b"{}").decode()
		elif self._file is not None:
			raw = self._file.attrs.get("config", "{}")
		else:
			return {}
		return json.loads(raw)

	@property
	def num_frames(self) -> int:
		if self._parquet:
			return pq.read_metadata(self.path).num_rows
		if self._file and "raw" in self._file.get("frames", {}):
			return self._file["frames"]["raw"].shape[0]
		return 0

	def get_results_dataframe(self) -> pd.DataFrame:
		if self._parquet:
			return pd.read_parquet(self.path)

		if self._file is None or "results" not in self._file:
			return pd.DataFrame()

		rg = self._file["results"]
		df = pd.DataFrame({key: rg[key][:] for key in rg.keys()})
		if "timestamp" in df.columns:
			df["datetime"] = pd.to_datetime(df["timestamp"], unit="s")
		return df

	def get_scores(self, key: str) -> NDArray[np.float32]:
		"""Depthwise scores ("intra" or "inter") for all frames, shaped (n, num_points)."""
		if self._parquet or self._file is None or "scores" not in self._file:
			return np.zeros((0, 0), dtype=np.float32)
		return self._file["scores"][key][:]

	def iter_frames(self) -> Iterator[StoredFrame]:
		if self._parquet or self._file is None:
			return
		for i in range(self.num_frames):
			frame = self.get_frame(i)
			if frame is not None:
				yield frame

	def iter_raw(self) -> Iterator[bytes]:
		"""Raw frames in recording order."""
		for frame in self.iter_frames():
			if frame.raw_data is not None:
				yield frame.raw_data

	def get_frame(self, index: int) -> StoredFrame | None:
		if self._parquet or self._file is None:
			return None
		if not 0 <= index < self.num_frames:
			return None

		results = self._file["results"]
		frame = StoredFrame(
			index=index,
			sequence=int(results["sequence"][index]),
			timestamp=float(results["timestamp"][index]),
			raw_data=self._file["frames"]["raw"][index].tobytes(),
			presence_detected=bool(results["presence_detected"][index]),
		)
		scores = self._file.get("scores")
		if scores is not None:
			frame.intra_scores = scores["intra"][index]
			frame.inter_scores = scores["inter"][index]
		return frame

	def get_time_range(self) -> tuple[float, float]:
		if self._parquet:
			df = pd.read_parquet(self.path, columns=["timestamp"])
			if df.empty:
				return 0.0, 0.0
			return float(df["timestamp"].min()), float(df["timestamp"].max())
		if self._file is None or "results" not in self._file:
			return 0.0, 0.0
		ts = self._file["results"]["timestamp"][:]
		return (float(ts[0]), float(ts[-1])) if len(ts) else (0.0, 0.0)

	def close(self) -> None:
		if self._file:
			self._file.close()
			self._file = None

	def __enter__(self) -> DataReader:
		return self

	def __exit__(self, exc_type, exc_val, exc_tb) -> None:
		self.close()
