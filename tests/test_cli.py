"""Tests for the command-line interface."""

import json

import h5py
import pytest
from click.testing import CliRunner

from iqpresence.cli import main
from iqpresence.storage import DataReader


@pytest.fixture
def runner():
	return CliRunner()


class TestPresets:
	def test_lists_presets(self, runner):
		result = runner.invoke(main, ["presets"])
		assert result.exit_code == 0
		for name in ("short-range", "medium-range", "long-range", "low-power"):
			assert name in result.output


class TestConfigCommands:
	def test_show(self, runner):
		result = runner.invoke(main, ["config", "show"])
		assert result.exit_code == 0
		assert "detector" in result.output

	def test_validate_default(self, runner):
		result = runner.invoke(main, ["config", "validate"])
		assert result.exit_code == 0
		assert "Valid configuration" in result.output

	def test_validate_file_errors(self, runner, tmp_path):
		path = tmp_path / "bad.json"
		path.write_text(json.dumps({"detector": {"start_m": 2.0, "end_m": 1.0}}))
		result = runner.invoke(main, ["config", "validate", "--file", str(path)])
		assert result.exit_code == 1
		assert "end_m" in result.output


class TestRunAndReplay:
	def test_run_records_and_replays(self, runner, tmp_path):
		output = tmp_path / "session.h5"
		result = runner.invoke(
			main,
			[
				"run",
				"--preset", "short-range",
				"--target", "0.5",
				"--seed", "1",
				"--frames", "20",
				"--no-realtime",
				"-o", str(output),
			],
		)
		assert result.exit_code == 0, result.output
		assert "20 frames" in result.output

		with DataReader(output) as reader:
			assert reader.num_frames == 20

		replayed = runner.invoke(main, ["replay", str(output)])
		assert replayed.exit_code == 0, replayed.output
		assert "Frames" in replayed.output
		assert "20" in replayed.output

	def test_run_parquet(self, runner, tmp_path):
		output = tmp_path / "session.parquet"
		result = runner.invoke(
			main, ["run", "--seed", "2", "--frames", "5", "--no-realtime", "-o", str(output)]
		)
		assert result.exit_code == 0, result.output
		with DataReader(output) as reader:
			assert reader.num_frames == 5

	def test_relative_output_under_data_dir(self, runner, tmp_path):
		config_file = tmp_path / "config.json"
		config_file.write_text(json.dumps({
			"paths": {"data_dir": str(tmp_path / "recordings")},
			"storage": {"format": "parquet", "parquet_batch_size": 2},
		}))
		result = runner.invoke(
			main,
			["run", "--config", str(config_file), "--seed", "3", "--frames", "5", "--no-realtime", "-o", "walk"],
		)
		assert result.exit_code == 0, result.output
		path = tmp_path / "recordings" / "walk.parquet"
		assert path.exists()
		with DataReader(path) as reader:
			assert reader.num_frames == 5

	def test_compression_from_config(self, runner, tmp_path):
		config_file = tmp_path / "config.json"
		config_file.write_text(json.dumps({"storage": {"compression": "lzf"}}))
		output = tmp_path / "session.h5"
		result = runner.invoke(
			main,
			["run", "--config", str(config_file), "--seed", "4", "--frames", "3", "--no-realtime", "-o", str(output)],
		)
		assert result.exit_code == 0, result.output
		with h5py.File(output, "r") as f:
			assert f["frames/raw"].compression == "lzf"

	def test_replay_needs_hdf5(self, runner, tmp_path):
		path = tmp_path / "session.parquet"
		path.write_bytes(b"")
		result = runner.invoke(main, ["replay", str(path)])
		assert result.exit_code == 1
