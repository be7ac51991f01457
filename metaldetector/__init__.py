"""Metal detector signal processing and session components."""

from .calibration import calibrate
from .display import ConsoleDisplay
from .history import SignalHistory
from .processing import DetectionEvent, MetalDetector, process_buffer, rms
from .session import DetectionSession, SessionConfig, SessionState, StatusMessage
