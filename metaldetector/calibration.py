"""Baseline calibration with no metal near the microphone."""

from __future__ import annotations

from typing import Any, Callable, Optional

from loguru import logger

from .processing import rms
from .source import AudioSource

DEFAULT_CALIBRATION_SAMPLES = 50
DEFAULT_BUFFER_SAMPLES = 1024


def calibrate(
    source: AudioSource,
    handle: Any,
    sample_count: int = DEFAULT_CALIBRATION_SAMPLES,
    buffer_samples: int = DEFAULT_BUFFER_SAMPLES,
    on_status: Optional[Callable[[str], None]] = None,
) -> float:
    """
    Read ``sample_count`` buffers and return their mean RMS.

    Empty reads count as zero strength, so a silent or broken source yields a
    baseline of 0.0 rather than an error.
    """
    if sample_count < 1:
        raise ValueError("sample_count must be at least 1")

    if on_status:
        on_status("Calibrating...")

    total = 0.0
    empty_reads = 0
    for _ in range(sample_count):
        buffer = source.read_buffer(handle, buffer_samples)
        if buffer.size == 0:
            empty_reads += 1
        total += rms(buffer)

    baseline = total / sample_count
    if empty_reads:
        logger.warning("{} of {} calibration reads returned no samples", empty_reads, sample_count)
    logger.info("Calibration finished: baseline={:.3f} over {} buffers", baseline, sample_count)

    if on_status:
        on_status("Metal detector ready")
    return baseline
