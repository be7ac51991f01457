import pytest

from metaldetector.config import build_app_config, load_config


def test_load_config_reads_sections(tmp_path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text(
        "audio:\n  sample_rate: 22050\n  buffer_samples: 512\n  mic_device_index: 2\n"
        "calibration:\n  sample_count: 10\n"
        "display:\n  chart: false\n"
        "logging:\n  level: DEBUG\n",
        encoding="utf-8",
    )
    app_config = build_app_config(load_config(path))
    assert app_config.audio.sample_rate == 22050
    assert app_config.audio.buffer_samples == 512
    assert app_config.audio.mic_device_index == 2
    assert app_config.calibration_samples == 10
    assert app_config.chart is False
    assert app_config.logging["level"] == "DEBUG"


def test_defaults_match_reference_capture() -> None:
    app_config = build_app_config({})
    assert app_config.audio.sample_rate == 44100
    assert app_config.audio.buffer_samples == 1024
    assert app_config.audio.mic_device_index is None
    assert app_config.calibration_samples == 50


def test_missing_file_raises(tmp_path) -> None:
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "absent.yaml")


def test_non_mapping_document_is_rejected(tmp_path) -> None:
    path = tmp_path / "list.yaml"
    path.write_text("- 1\n- 2\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_config(path)


def test_invalid_values_are_rejected() -> None:
    with pytest.raises(ValueError):
        build_app_config({"calibration": {"sample_count": 0}})
    with pytest.raises(ValueError):
        build_app_config({"audio": {"buffer_samples": -1}})
