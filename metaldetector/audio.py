"""Microphone capture through PortAudio."""

from __future__ import annotations

from dataclasses import dataclass
from math import gcd
from typing import List, Optional, Tuple

import numpy as np
import sounddevice as sd
from loguru import logger
from scipy.signal import resample_poly

from .source import AudioSourceError, MicrophoneAccessError, check_format


@dataclass
class _MicrophoneHandle:
    stream: sd.InputStream
    source_rate: int
    target_rate: int


def list_input_devices() -> List[Tuple[int, str, float, int]]:
    """Return a list of available input devices."""
    devices = sd.query_devices()
    result: List[Tuple[int, str, float, int]] = []
    for idx, info in enumerate(devices):
        if info.get("max_input_channels", 0) > 0:
            result.append(
                (
                    idx,
                    info.get("name", f"Device {idx}"),
                    float(info.get("default_samplerate", 0) or 0),
                    int(info.get("max_input_channels", 0)),
                )
            )
    return result


def check_microphone_access(device: Optional[int], sample_rate: int) -> None:
    """Raise MicrophoneAccessError unless the input device can be used."""
    try:
        sd.query_devices(device, "input")
    except (ValueError, sd.PortAudioError) as exc:
        raise MicrophoneAccessError(f"No usable microphone ({exc})") from exc

    try:
        sd.check_input_settings(device=device, samplerate=sample_rate, channels=1, dtype="int16")
    except (ValueError, sd.PortAudioError) as exc:
        # Some devices only accept their native rate; open() falls back to it.
        logger.warning("Microphone rejected {} Hz: {}", sample_rate, exc)
        try:
            sd.check_input_settings(device=device, channels=1, dtype="int16")
        except (ValueError, sd.PortAudioError) as inner:
            raise MicrophoneAccessError(f"Microphone access refused ({inner})") from inner


class MicrophoneSource:
    """Blocking 16-bit mono reads from the selected input device."""

    def __init__(self, device: Optional[int] = None) -> None:
        self.device = device

    def open(
        self, sample_rate_hz: int, channel_count: int = 1, bits_per_sample: int = 16
    ) -> _MicrophoneHandle:
        check_format(channel_count, bits_per_sample)
        candidate_rates: List[int] = [sample_rate_hz]

        try:
            device_info = sd.query_devices(self.device, "input")
            default_rate = int(device_info.get("default_samplerate", 0) or 0)
            if default_rate and default_rate not in candidate_rates:
                candidate_rates.append(default_rate)
        except (ValueError, sd.PortAudioError) as exc:
            logger.warning("Unable to query device info for {}: {}", self.device, exc)

        for rate in candidate_rates:
            try:
                stream = sd.InputStream(
                    device=self.device,
                    samplerate=rate,
                    channels=channel_count,
                    dtype="int16",
                )
            except sd.PortAudioError as exc:
                logger.warning(
                    "Failed to open audio stream at {} Hz (device {}): {}",
                    rate,
                    self.device,
                    exc,
                )
                continue

            try:
                stream.start()
            except sd.PortAudioError as exc:
                stream.close()
                logger.warning(
                    "Failed to start audio stream at {} Hz (device {}): {}",
                    rate,
                    self.device,
                    exc,
                )
                continue

            logger.info(
                "Microphone stream started at {} Hz (target {} Hz) using device {}",
                rate,
                sample_rate_hz,
                self.device if self.device is not None else "default",
            )
            return _MicrophoneHandle(stream=stream, source_rate=rate, target_rate=sample_rate_hz)

        raise AudioSourceError("Unable to open microphone stream at any supported rate")

    def read_buffer(self, handle: _MicrophoneHandle, max_samples: int) -> np.ndarray:
        if handle.source_rate == handle.target_rate:
            frames = max_samples
        else:
            frames = max(1, int(max_samples * handle.source_rate / handle.target_rate))

        try:
            data, overflowed = handle.stream.read(frames)
        except sd.PortAudioError as exc:
            raise AudioSourceError(f"Microphone read failed: {exc}") from exc
        if overflowed:
            logger.warning("Microphone input overflowed; samples were dropped")

        samples = np.asarray(data).reshape(-1)
        if handle.source_rate != handle.target_rate and samples.size:
            samples = self._resample(samples, handle.source_rate, handle.target_rate)
        return samples[:max_samples]

    def close(self, handle: _MicrophoneHandle) -> None:
        try:
            handle.stream.stop()
        finally:
            handle.stream.close()

    @staticmethod
    def _resample(samples: np.ndarray, source_rate: int, target_rate: int) -> np.ndarray:
        divisor = gcd(source_rate, target_rate)
        resampled = resample_poly(samples.astype(np.float64), target_rate // divisor, source_rate // divisor)
        return np.clip(np.round(resampled), -32768, 32767).astype(np.int16)
