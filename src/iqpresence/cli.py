"""Command-line interface."""

from __future__ import annotations

import json
import sys
import time
from pathlib import Path

import click
import structlog
from rich.console import Console
from rich.live import Live
from rich.table import Table

from iqpresence.config import AppConfig, configure_logging, get_config
from iqpresence.detector import (
	PRESETS,
	PresenceConfig,
	PresenceDetector,
	PresenceError,
	PresenceResult,
	destroy_detector,
	estimate_memory_requirements,
	get_preset,
)
from iqpresence.sensor import Sensor, SensorError, SensorTimeoutError

logger = structlog.get_logger(__name__)
console = Console()


def _load_app_config(config_file: str | None) -> AppConfig:
	# Fresh instance: commands adjust it with their options
	return AppConfig.from_file(config_file) if config_file else AppConfig.from_env()


def _acquire(sensor: Sensor, buffer: bytearray, timeout_s: float) -> int:
	"""Measure one frame into buffer. Returns the raw frame length."""
	sensor.measure()
	if not sensor.wait_for_interrupt(timeout_s):
		raise SensorTimeoutError(f"No frame within {timeout_s:.1f}s")
	return sensor.read(buffer)


def _result_table(result: PresenceResult | None, count: int, detections: int) -> Table:
	t = Table(title="Presence Monitor")
	t.add_column("Metric", style="cyan")
	t.add_column("Value", style="green")

	if result is None:
		t.add_row("Presence", "---")
	else:
		presence = "[bold red]DETECTED[/]" if result.presence_detected else "[dim]none[/]"
		t.add_row("Presence", presence)
		t.add_row("Distance", f"{result.presence_distance:.2f} m" if result.presence_detected else "---")
		t.add_row("Intra score", f"{result.intra_presence_score:.2f}")
		t.add_row("Inter score", f"{result.inter_presence_score:.2f}")
	t.add_row("Frames", str(count))
	t.add_row("Detections", str(detections))
	return t


@click.group()
@click.version_option(package_name="iqpresence")
@click.option("--log-level", default=None, help="Log level (default from config)")
def main(log_level: str | None) -> None:
	"""iqpresence - Presence detection on pulsed-radar IQ data."""
	configure_logging(log_level or get_config().log_level)


@main.command()
@click.option("--preset", type=click.Choice(list(PRESETS)), help="Detector preset")
@click.option("--config", "config_file", type=click.Path(exists=True), help="JSON config file")
@click.option("--target", "targets", type=float, multiple=True, help="Reflector distance in m (repeatable)")
@click.option("--appear", type=float, default=0.0, help="Seconds before the reflectors appear")
@click.option("--seed", type=int, default=None, help="Random seed for the synthetic sensor")
@click.option("--frames", type=int, default=0, help="Number of frames (0=unlimited)")
@click.option("-d", "--duration", type=float, default=0, help="Run duration in seconds (0=unlimited)")
@click.option("--realtime/--no-realtime", default=None, help="Pace frames at the frame rate")
@click.option(
	"-o", "--output", type=click.Path(),
	help="Record to file (.h5 or .parquet, relative to the data directory)",
)
def run(
	preset: str | None,
	config_file: str | None,
	targets: tuple[float, ...],
	appear: float,
	seed: int | None,
	frames: int,
	duration: float,
	realtime: bool | None,
	output: str | None,
) -> None:
	"""Run the detector on the synthetic sensor."""
	from iqpresence.sensor import MockConfig, MockSensor, Reflector
	from iqpresence.storage import SessionMetadata, create_writer

	app = _load_app_config(config_file)
	if preset:
		app.preset = preset
	errors = app.validate()
	if errors:
		for e in errors:
			console.print(f"[red]{e}[/]")
		sys.exit(1)

	config = app.presence_config()
	mock = MockConfig(
		reflectors=[
			Reflector(distance_m=d, modulation_depth=0.3, modulation_hz=0.3, appear_s=appear)
			for d in targets
		],
		noise_std=app.sensor.noise_std,
		clutter_amplitude=app.sensor.clutter_amplitude,
		seed=seed if seed is not None else app.sensor.seed,
		realtime=app.sensor.realtime if realtime is None else realtime,
	)
	sensor = MockSensor(mock, sensor_id=config.sensor_id)
	timeout_s = max(app.sensor.interrupt_timeout_s, 2.0 / config.frame_rate)

	detector = None
	writer = None
	count = 0
	detections = 0
	start = time.time()

	try:
		detector = PresenceDetector.create(config)
		buffer = bytearray(detector.get_buffer_size())
		detector.prepare(config, sensor, sensor.calibrate(), buffer)

		md = detector.metadata
		console.print("[bold green]iqpresence[/] - Running on synthetic sensor")
		console.print(
			f"Range {md.start_m:.2f}-{md.end_m:.2f} m, {md.num_points} points, "
			f"profile {int(md.profile)}, {config.frame_rate:g} Hz"
		)

		if output:
			metadata = SessionMetadata(
				sensor_id=config.sensor_id,
				config=config.to_dict(),
				start_m=md.start_m,
				step_length_m=md.step_length_m,
				num_points=md.num_points,
				sweeps_per_frame=config.sweeps_per_frame,
			)
			path = app.recording_path(output)
			writer = create_writer(
				path,
				metadata,
				compression=app.storage.compression,
				compression_level=app.storage.compression_level,
				batch_size=app.storage.parquet_batch_size,
			)
			console.print(f"Writing to: {path}")

		frame_size = detector.layout.frame_size
		with Live(_result_table(None, 0, 0), console=console, refresh_per_second=4) as live:
			while True:
				if frames and count >= frames:
					break
				if duration > 0 and time.time() - start >= duration:
					break

				_acquire(sensor, buffer, timeout_s)
				result = detector.process(buffer)
				count += 1
				detections += result.presence_detected

				if writer:
					writer.write_frame(bytes(buffer[:frame_size]), result)

				live.update(_result_table(result, count, detections))

	except KeyboardInterrupt:
		console.print("\n[yellow]Stopped[/]")
	except (PresenceError, SensorError) as e:
		console.print(f"[red]Error: {e}[/]")
		logger.exception("run_error")
		sys.exit(1)
	finally:
		if writer:
			writer.close()
		destroy_detector(detector)

	elapsed = max(time.time() - start, 1e-9)
	console.print(f"\n[green]Done![/] {count} frames, {detections} with presence, {elapsed:.1f}s")


@main.command()
@click.argument("path", type=click.Path(exists=True))
@click.option("--preset", type=click.Choice(list(PRESETS)), help="Override the recorded config")
@click.option("--intra-threshold", type=float, default=None)
@click.option("--inter-threshold", type=float, default=None)
def replay(
	path: str,
	preset: str | None,
	intra_threshold: float | None,
	inter_threshold: float | None,
) -> None:
	"""Re-run the detector on a recorded HDF5 session."""
	from iqpresence.sensor import EndOfRecording, ReplaySensor
	from iqpresence.storage import DataReader

	if Path(path).suffix not in (".h5", ".hdf5"):
		console.print("[red]Replay needs an HDF5 recording (.h5)[/]")
		sys.exit(1)

	with DataReader(path) as reader:
		recorded = reader.config

	config = get_preset(preset) if preset else PresenceConfig.from_dict(recorded)
	if intra_threshold is not None:
		config.intra_detection_threshold = intra_threshold
	if inter_threshold is not None:
		config.inter_detection_threshold = inter_threshold

	sensor = ReplaySensor.from_recording(path)
	count = 0
	detections = 0
	first_detection = None
	max_intra = 0.0
	max_inter = 0.0

	try:
		with PresenceDetector.create(config) as detector:
			buffer = bytearray(detector.get_buffer_size())
			detector.prepare(config, sensor, sensor.calibrate(), buffer)
			while True:
				try:
					_acquire(sensor, buffer, 1.0)
				except EndOfRecording:
					break
				result = detector.process(buffer)
				if result.presence_detected:
					detections += 1
					if first_detection is None:
						first_detection = count
				max_intra = max(max_intra, result.intra_presence_score)
				max_inter = max(max_inter, result.inter_presence_score)
				count += 1
	except (PresenceError, SensorError) as e:
		console.print(f"[red]Replay failed: {e}[/]")
		sys.exit(1)

	t = Table(title=f"Replay: {Path(path).name}")
	t.add_column("Metric", style="cyan")
	t.add_column("Value", style="green")
	t.add_row("Frames", str(count))
	t.add_row("Detections", str(detections))
	t.add_row("First detection", str(first_detection) if first_detection is not None else "---")
	t.add_row("Max intra score", f"{max_intra:.2f}")
	t.add_row("Max inter score", f"{max_inter:.2f}")
	console.print(t)


@main.command()
def presets() -> None:
	"""List detector presets."""
	t = Table(title="Detector Presets")
	t.add_column("Name", style="cyan")
	t.add_column("Range", style="green")
	t.add_column("Frame rate")
	t.add_column("Sweeps")
	t.add_column("Memory", style="dim")

	for name, factory in PRESETS.items():
		config = factory()
		memory = estimate_memory_requirements(config)
		t.add_row(
			name,
			f"{config.start_m:g}-{config.end_m:g} m",
			f"{config.frame_rate:g} Hz",
			str(config.sweeps_per_frame),
			f"{memory.total} bytes",
		)

	console.print(t)


@main.group()
def config() -> None:
	"""Inspect application configuration."""
	pass


@config.command("show")
@click.option("--file", "config_file", type=click.Path(exists=True), help="JSON config file")
def config_show(config_file: str | None) -> None:
	"""Show the configuration in effect."""
	app = _load_app_config(config_file)
	console.print_json(json.dumps(app.to_dict()))


@config.command("validate")
@click.option("--file", "config_file", type=click.Path(exists=True), help="JSON config file")
def config_validate(config_file: str | None) -> None:
	"""Check a configuration and show the resolved geometry."""
	app = _load_app_config(config_file)
	errors = app.validate()
	if errors:
		for e in errors:
			console.print(f"[red]{e}[/]")
		sys.exit(1)

	config = app.presence_config()
	memory = estimate_memory_requirements(config)
	detector = PresenceDetector.create(config)
	md = detector.metadata
	console.print("[green]Valid configuration[/]")
	console.print(f"  Profile: {int(md.profile)}, step {md.step_length_m * 1000:.1f} mm")
	console.print(f"  Points: {md.num_points} ({md.start_m:.3f}-{md.end_m:.3f} m)")
	console.print(f"  Buffer: {memory.buffer_size} bytes, filter state {memory.filter_state_size} bytes")
	detector.destroy()


if __name__ == "__main__":
	main()
