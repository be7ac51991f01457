"""Entry point for the microphone metal detector."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Any, Dict

from loguru import logger

from metaldetector.audio import MicrophoneSource, check_microphone_access, list_input_devices
from metaldetector.config import AppConfig, build_app_config, load_config
from metaldetector.display import ConsoleDisplay
from metaldetector.replay import WavFileSource
from metaldetector.session import DetectionSession, SessionConfig
from metaldetector.source import AudioSourceError, MicrophoneAccessError


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Microphone metal detector")
    parser.add_argument(
        "--config",
        default="config/config.yaml",
        help="Path to configuration file (default: config/config.yaml)",
    )
    parser.add_argument(
        "--list-devices",
        action="store_true",
        help="List available audio input devices and exit",
    )
    parser.add_argument(
        "--replay",
        metavar="WAV",
        help="Read audio from a WAV file instead of the microphone",
    )
    parser.add_argument(
        "--realtime",
        action="store_true",
        help="Pace --replay at the recording's real speed",
    )
    parser.add_argument(
        "--warm-start",
        action="store_true",
        help="Start the smoothing filter at the baseline instead of zero",
    )
    return parser.parse_args()


def setup_logging(log_config: Dict[str, Any]) -> None:
    level = log_config.get("level", "INFO")
    logger.remove()
    logger.add(sys.stderr, level=level)

    file_path = Path(log_config.get("file_path", "metaldetector.log"))
    try:
        file_path.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            str(file_path),
            level=level,
            rotation="5 MB",
            retention=5,
            enqueue=True,
            backtrace=False,
            diagnose=False,
        )
    except PermissionError as exc:
        logger.warning(
            "Unable to write log file at {} ({}). Continuing with console logging only.",
            file_path,
            exc,
        )


def list_devices() -> None:
    devices = list_input_devices()
    if not devices:
        print("No audio input devices detected.")
        return
    print("Available audio input devices:")
    for idx, name, default_rate, channels in devices:
        print(
            f"[{idx}] {name} - default_samplerate={default_rate:.0f}Hz, max_input_channels={channels}"
        )


def build_session(app_config: AppConfig, args: argparse.Namespace) -> DetectionSession:
    session_config = SessionConfig(
        sample_rate=app_config.audio.sample_rate,
        buffer_samples=app_config.audio.buffer_samples,
        calibration_samples=app_config.calibration_samples,
        warm_start=args.warm_start,
    )

    if args.replay:
        return DetectionSession(WavFileSource(Path(args.replay), realtime=args.realtime), session_config)

    device = app_config.audio.mic_device_index
    return DetectionSession(
        MicrophoneSource(device),
        session_config,
        access_check=lambda: check_microphone_access(device, app_config.audio.sample_rate),
    )


def main() -> int:
    args = parse_args()

    if args.list_devices:
        list_devices()
        return 0

    app_config = build_app_config(load_config(Path(args.config)))
    setup_logging(app_config.logging)

    display = ConsoleDisplay(chart=app_config.chart)
    session = build_session(app_config, args)

    try:
        session.start()
    except MicrophoneAccessError as exc:
        logger.error("Microphone access denied: {}", exc)
        print("Grant microphone access (or pick a device with --list-devices) and run again.")
        session.close()
        return 1
    except AudioSourceError as exc:
        logger.error("Audio source unavailable: {}", exc)
        session.close()
        return 1

    try:
        for message in session.messages():
            display.handle(message)
    except KeyboardInterrupt:
        logger.info("Interrupted by user, shutting down")
    finally:
        session.close()

    logger.info("Session ended with {} detections", display.detection_count)
    if session.error is not None:
        logger.error("Session terminated by error: {}", session.error)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
