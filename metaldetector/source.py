"""Audio source protocol shared by the microphone and replay sources."""

from __future__ import annotations

from typing import Any, Protocol

import numpy as np


class AudioSourceError(Exception):
    """Raised when the audio source cannot be opened or read."""


class MicrophoneAccessError(AudioSourceError):
    """Raised when microphone access is denied or no input device exists."""


class AudioSourceExhausted(Exception):
    """Raised by finite sources once every sample has been delivered."""


class AudioSource(Protocol):
    """Blocking source of signed 16-bit mono sample buffers."""

    def open(
        self, sample_rate_hz: int, channel_count: int = 1, bits_per_sample: int = 16
    ) -> Any:
        ...

    def read_buffer(self, handle: Any, max_samples: int) -> np.ndarray:
        ...

    def close(self, handle: Any) -> None:
        ...


def check_format(channel_count: int, bits_per_sample: int) -> None:
    """Reject formats other than mono 16-bit PCM."""
    if channel_count != 1:
        raise AudioSourceError(f"Only mono capture is supported (got {channel_count} channels)")
    if bits_per_sample != 16:
        raise AudioSourceError(f"Only 16-bit samples are supported (got {bits_per_sample})")
