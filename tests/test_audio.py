import importlib
import sys

import numpy as np
import pytest

from metaldetector.source import AudioSourceError, MicrophoneAccessError
from tests.fake_sounddevice import make_sounddevice


@pytest.fixture
def load_audio(monkeypatch):
    def _load(**kwargs):
        fake = make_sounddevice(**kwargs)
        monkeypatch.setitem(sys.modules, "sounddevice", fake)
        monkeypatch.delitem(sys.modules, "metaldetector.audio", raising=False)
        return fake, importlib.import_module("metaldetector.audio")

    return _load


def test_missing_device_is_access_denial(load_audio) -> None:
    _, audio = load_audio(no_device=True)
    with pytest.raises(MicrophoneAccessError):
        audio.check_microphone_access(None, 44100)


def test_rate_only_rejection_is_not_denial(load_audio) -> None:
    _, audio = load_audio(reject_settings=[44100])
    audio.check_microphone_access(None, 44100)


def test_refused_settings_are_denial(load_audio) -> None:
    _, audio = load_audio(reject_settings=[44100, 48000])
    with pytest.raises(MicrophoneAccessError):
        audio.check_microphone_access(None, 44100)


def test_lists_only_input_devices(load_audio) -> None:
    _, audio = load_audio()
    assert audio.list_input_devices() == [(0, "Fake Mic", 48000.0, 1)]


def test_opens_at_requested_rate(load_audio) -> None:
    fake, audio = load_audio()
    source = audio.MicrophoneSource()
    handle = source.open(44100)
    assert handle.source_rate == 44100
    samples = source.read_buffer(handle, 1024)
    assert samples.dtype == np.int16
    assert samples.size == 1024
    source.close(handle)
    assert fake.streams[0].closed


def test_failed_start_closes_stream_before_fallback(load_audio) -> None:
    fake, audio = load_audio(reject_start=[44100])
    source = audio.MicrophoneSource()
    handle = source.open(44100)

    assert [s.samplerate for s in fake.streams] == [44100, 48000]
    assert fake.streams[0].closed
    assert not fake.streams[1].closed
    assert handle.source_rate == 48000
    assert handle.target_rate == 44100


def test_fallback_reads_are_resampled_to_target(load_audio) -> None:
    _, audio = load_audio(reject_start=[44100])
    source = audio.MicrophoneSource()
    handle = source.open(44100)
    samples = source.read_buffer(handle, 1024)
    assert samples.dtype == np.int16
    assert 0 < samples.size <= 1024
    # Interior of a resampled constant keeps its level.
    assert abs(int(samples[samples.size // 2]) - 1000) <= 5


def test_no_usable_rate_raises(load_audio) -> None:
    fake, audio = load_audio(reject_start=[44100, 48000])
    with pytest.raises(AudioSourceError):
        audio.MicrophoneSource().open(44100)
    assert all(s.closed for s in fake.streams)


def test_only_mono_16_bit_is_supported(load_audio) -> None:
    _, audio = load_audio()
    with pytest.raises(AudioSourceError):
        audio.MicrophoneSource().open(44100, channel_count=2)
