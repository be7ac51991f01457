"""Signal strength, smoothing and threshold detection."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np
from loguru import logger

SMOOTHING_FACTOR = 0.2
THRESHOLD_RATIO = 1.5


@dataclass(frozen=True)
class DetectionEvent:
    smoothed_signal: float
    is_metal_present: bool
    sensitivity_percent: float


def rms(samples: np.ndarray) -> float:
    """Return the root-mean-square of ``samples``; 0.0 for an empty buffer."""
    if samples.size == 0:
        return 0.0
    # int16 squares overflow, widen first.
    values = samples.astype(np.float64, copy=False)
    return float(np.sqrt(np.mean(np.square(values))))


def smooth(previous: float, instant: float) -> float:
    return (1.0 - SMOOTHING_FACTOR) * previous + SMOOTHING_FACTOR * instant


def is_metal_present(smoothed: float, baseline: float) -> bool:
    if baseline <= 0:
        return False
    return smoothed > baseline * THRESHOLD_RATIO


def sensitivity_percent(smoothed: float, baseline: float) -> float:
    """Relative deviation from the baseline in percent, regardless of sign."""
    if baseline <= 0:
        return 0.0
    return abs(smoothed - baseline) / baseline * 100.0


def process_buffer(
    buffer: np.ndarray, baseline: float, previous_smoothed: float
) -> Tuple[float, DetectionEvent]:
    """Run one buffer through the filter and return the new state and its event."""
    smoothed = smooth(previous_smoothed, rms(buffer))
    event = DetectionEvent(
        smoothed_signal=smoothed,
        is_metal_present=is_metal_present(smoothed, baseline),
        sensitivity_percent=sensitivity_percent(smoothed, baseline),
    )
    return smoothed, event


class MetalDetector:
    """Holds the calibrated baseline and the running smoothed signal."""

    def __init__(self, baseline: float, initial_smoothed: float = 0.0) -> None:
        if baseline <= 0:
            logger.warning(
                "Baseline {:.3f} is not positive; sensitivity will read 0 and detection is disabled",
                baseline,
            )
        self._baseline = float(baseline)
        self.smoothed = float(initial_smoothed)
        self.processed = 0

    @classmethod
    def warm(cls, baseline: float) -> "MetalDetector":
        """Start the filter at the baseline instead of zero."""
        return cls(baseline, initial_smoothed=baseline)

    @property
    def baseline(self) -> float:
        return self._baseline

    @property
    def threshold(self) -> float:
        return self._baseline * THRESHOLD_RATIO

    def process(self, buffer: np.ndarray) -> Optional[DetectionEvent]:
        """Process one buffer; empty reads are skipped and return None."""
        if buffer.size == 0:
            return None
        self.smoothed, event = process_buffer(buffer, self._baseline, self.smoothed)
        self.processed += 1
        logger.debug(
            "Buffer {} smoothed={:.2f} metal={} sensitivity={:.1f}%",
            self.processed,
            event.smoothed_signal,
            event.is_metal_present,
            event.sensitivity_percent,
        )
        return event
