"""Console display for status messages and detection events."""

from __future__ import annotations

import sys
from typing import Sequence, TextIO

import numpy as np
from loguru import logger

from .history import SignalHistory
from .processing import DetectionEvent
from .session import Message, StatusMessage

SPARK_LEVELS = "▁▂▃▄▅▆▇█"


def sparkline(values: Sequence[float]) -> str:
    """Render values as a row of block characters scaled to their range."""
    if not values:
        return ""
    data = np.asarray(values, dtype=np.float64)
    low, high = float(data.min()), float(data.max())
    if high - low <= 0:
        return SPARK_LEVELS[0] * data.size
    steps = np.round((data - low) / (high - low) * (len(SPARK_LEVELS) - 1)).astype(int)
    return "".join(SPARK_LEVELS[step] for step in steps)


class ConsoleDisplay:
    """Display sink that keeps the signal history and detection count."""

    def __init__(self, stream: TextIO | None = None, chart: bool = True) -> None:
        self.stream = stream if stream is not None else sys.stdout
        self.chart = chart
        self.history = SignalHistory()
        self.detection_count = 0
        self.status = ""

    def handle(self, message: Message) -> None:
        if isinstance(message, StatusMessage):
            self.show_status(message.text)
        elif isinstance(message, DetectionEvent):
            self.show_event(message)
        else:
            raise TypeError(f"Unsupported display message: {message!r}")

    def show_status(self, text: str) -> None:
        self.status = text
        logger.info("Status: {}", text)
        print(f"🔧 {text}", file=self.stream)

    def show_event(self, event: DetectionEvent) -> None:
        self.history.append(event.smoothed_signal)
        if event.is_metal_present:
            self.detection_count += 1
            self.status = f"Detections: {self.detection_count}"
            label = "🔴 Metal detected!"
        else:
            label = "🟢 No metal nearby"

        line = (
            f"{label} | Sensitivity: {event.sensitivity_percent:.1f}% | "
            f"Signal: {event.smoothed_signal:.1f} | Detections: {self.detection_count}"
        )
        if self.chart:
            line = f"{line} | {sparkline(self.history.values())}"
        print(line, file=self.stream)
