"""Replay recorded WAV files through the detector."""

from __future__ import annotations

import time
from dataclasses import dataclass
from math import gcd
from pathlib import Path

import numpy as np
from loguru import logger
from scipy.io import wavfile
from scipy.signal import resample_poly

from .source import AudioSourceError, AudioSourceExhausted, check_format


@dataclass
class _ReplayHandle:
    samples: np.ndarray
    sample_rate: int
    position: int = 0


def _as_int16(data: np.ndarray) -> np.ndarray:
    if data.dtype == np.int16:
        return data
    if data.dtype == np.int32:
        return (data >> 16).astype(np.int16)
    if data.dtype == np.uint8:
        return ((data.astype(np.int16) - 128) << 8).astype(np.int16)
    if np.issubdtype(data.dtype, np.floating):
        return (np.clip(data, -1.0, 1.0) * 32767).astype(np.int16)
    raise AudioSourceError(f"Unsupported WAV sample type {data.dtype}")


def to_int16_mono(data: np.ndarray) -> np.ndarray:
    """Convert any wavfile sample layout to 16-bit mono PCM."""
    pcm = _as_int16(data)
    if pcm.ndim > 1:
        pcm = np.round(np.mean(pcm.astype(np.float64), axis=1)).astype(np.int16)
    return pcm


class WavFileSource:
    """Finite audio source backed by a WAV file."""

    def __init__(self, path: Path, realtime: bool = False) -> None:
        self.path = Path(path)
        self.realtime = realtime

    def open(
        self, sample_rate_hz: int, channel_count: int = 1, bits_per_sample: int = 16
    ) -> _ReplayHandle:
        check_format(channel_count, bits_per_sample)
        if not self.path.exists():
            raise AudioSourceError(f"Replay file not found: {self.path}")
        try:
            file_rate, data = wavfile.read(self.path)
        except ValueError as exc:
            raise AudioSourceError(f"Unable to read {self.path}: {exc}") from exc

        samples = to_int16_mono(data)
        if file_rate != sample_rate_hz and samples.size:
            divisor = gcd(file_rate, sample_rate_hz)
            resampled = resample_poly(
                samples.astype(np.float64), sample_rate_hz // divisor, file_rate // divisor
            )
            samples = np.clip(np.round(resampled), -32768, 32767).astype(np.int16)

        logger.info(
            "Replaying {} ({} samples at {} Hz, file rate {} Hz)",
            self.path,
            samples.size,
            sample_rate_hz,
            file_rate,
        )
        return _ReplayHandle(samples=samples, sample_rate=sample_rate_hz)

    def read_buffer(self, handle: _ReplayHandle, max_samples: int) -> np.ndarray:
        if handle.position >= handle.samples.size:
            raise AudioSourceExhausted(str(self.path))
        chunk = handle.samples[handle.position : handle.position + max_samples]
        handle.position += chunk.size
        if self.realtime:
            time.sleep(chunk.size / handle.sample_rate)
        return chunk

    def close(self, handle: _ReplayHandle) -> None:
        handle.position = handle.samples.size
