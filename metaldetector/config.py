"""YAML configuration loading."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .calibration import DEFAULT_BUFFER_SAMPLES, DEFAULT_CALIBRATION_SAMPLES


@dataclass
class AudioConfig:
    sample_rate: int = 44100
    buffer_samples: int = DEFAULT_BUFFER_SAMPLES
    mic_device_index: Optional[int] = None


@dataclass
class AppConfig:
    audio: AudioConfig = field(default_factory=AudioConfig)
    calibration_samples: int = DEFAULT_CALIBRATION_SAMPLES
    chart: bool = True
    logging: Dict[str, Any] = field(default_factory=dict)


def load_config(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")
    with path.open("r", encoding="utf-8") as handle:
        config = yaml.safe_load(handle)
    if not isinstance(config, dict):
        raise ValueError("Configuration file must define a mapping")
    return config


def build_app_config(config: Dict[str, Any]) -> AppConfig:
    audio_cfg = config.get("audio") or {}
    calibration_cfg = config.get("calibration") or {}
    display_cfg = config.get("display") or {}

    device = audio_cfg.get("mic_device_index")
    app_config = AppConfig(
        audio=AudioConfig(
            sample_rate=int(audio_cfg.get("sample_rate", 44100)),
            buffer_samples=int(audio_cfg.get("buffer_samples", DEFAULT_BUFFER_SAMPLES)),
            mic_device_index=int(device) if device is not None else None,
        ),
        calibration_samples=int(calibration_cfg.get("sample_count", DEFAULT_CALIBRATION_SAMPLES)),
        chart=bool(display_cfg.get("chart", True)),
        logging=dict(config.get("logging") or {}),
    )

    if app_config.audio.sample_rate <= 0:
        raise ValueError("audio.sample_rate must be positive")
    if app_config.audio.buffer_samples <= 0:
        raise ValueError("audio.buffer_samples must be positive")
    if app_config.calibration_samples < 1:
        raise ValueError("calibration.sample_count must be at least 1")
    return app_config
