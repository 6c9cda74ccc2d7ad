"""Recording storage for raw frames and presence results."""

from iqpresence.storage.reader import DataReader, StoredFrame
from iqpresence.storage.writer import (
	DataWriter,
	HDF5Writer,
	ParquetWriter,
	SessionMetadata,
	create_writer,
)

__all__ = [
	"DataWriter",
	"HDF5Writer",
	"ParquetWriter",
	"SessionMetadata",
	"create_writer",
	"DataReader",
	"StoredFrame",
]
