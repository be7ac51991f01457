"""Stand-in for the sounddevice module so tests never load PortAudio."""

from __future__ import annotations

import types
from typing import Iterable

import numpy as np


class FakePortAudioError(Exception):
    pass


class FakeInputStream:
    def __init__(self, module, device=None, samplerate=None, channels=None, dtype=None) -> None:
        self.module = module
        self.samplerate = samplerate
        self.channels = channels
        self.dtype = dtype
        self.started = False
        self.closed = False

    def start(self) -> None:
        if self.samplerate in self.module.reject_start:
            raise FakePortAudioError(f"Invalid sample rate {self.samplerate}")
        self.started = True

    def stop(self) -> None:
        self.started = False

    def close(self) -> None:
        self.closed = True

    def read(self, frames: int):
        return np.full((frames, self.channels), self.module.level, dtype=np.int16), False


def make_sounddevice(
    default_rate: int = 48000,
    reject_start: Iterable[int] = (),
    reject_settings: Iterable[int] = (),
    no_device: bool = False,
    level: int = 1000,
) -> types.ModuleType:
    module = types.ModuleType("sounddevice")
    module.PortAudioError = FakePortAudioError
    module.reject_start = set(reject_start)
    module.level = level
    module.streams = []
    rejected = set(reject_settings)
    info = {"name": "Fake Mic", "max_input_channels": 1, "default_samplerate": float(default_rate)}

    def query_devices(device=None, kind=None):
        if no_device:
            raise ValueError("No input device matching")
        if kind is None:
            return [info, {"name": "Fake Speaker", "max_input_channels": 0}]
        return info

    def check_input_settings(device=None, channels=None, dtype=None, extra_settings=None, samplerate=None):
        rate = samplerate if samplerate is not None else default_rate
        if rate in rejected:
            raise FakePortAudioError(f"Invalid sample rate {rate}")

    def input_stream(**kwargs) -> FakeInputStream:
        stream = FakeInputStream(module, **kwargs)
        module.streams.append(stream)
        return stream

    module.query_devices = query_devices
    module.check_input_settings = check_input_settings
    module.InputStream = input_stream
    return module
