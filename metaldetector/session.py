"""Detection session: background worker, stop signal and event channel."""

from __future__ import annotations

import enum
import queue
import threading
from dataclasses import dataclass
from typing import Any, Callable, Generator, Optional, Union

from loguru import logger

from .calibration import DEFAULT_BUFFER_SAMPLES, DEFAULT_CALIBRATION_SAMPLES, calibrate
from .processing import DetectionEvent, MetalDetector
from .source import AudioSource, AudioSourceExhausted


class SessionState(enum.Enum):
    UNINITIALIZED = "uninitialized"
    CALIBRATING = "calibrating"
    DETECTING = "detecting"
    STOPPED = "stopped"


@dataclass(frozen=True)
class StatusMessage:
    text: str


@dataclass
class SessionConfig:
    sample_rate: int = 44100
    buffer_samples: int = DEFAULT_BUFFER_SAMPLES
    calibration_samples: int = DEFAULT_CALIBRATION_SAMPLES
    warm_start: bool = False


Message = Union[StatusMessage, DetectionEvent]

_END_OF_STREAM = object()


class DetectionSession:
    """
    Runs calibration and then detection on a single worker thread.

    Messages reach the consumer in production order through a FIFO queue.
    ``close`` releases the audio handle once, after the worker has exited.
    """

    def __init__(
        self,
        source: AudioSource,
        config: SessionConfig,
        access_check: Optional[Callable[[], None]] = None,
    ) -> None:
        self.source = source
        self.config = config
        self._access_check = access_check
        self._stop_event = threading.Event()
        self._messages: "queue.Queue[Any]" = queue.Queue()
        self._handle: Any = None
        self._worker: Optional[threading.Thread] = None
        self._state = SessionState.UNINITIALIZED
        self._state_lock = threading.Lock()
        self.error: Optional[BaseException] = None
        self.detector: Optional[MetalDetector] = None

    @property
    def state(self) -> SessionState:
        with self._state_lock:
            return self._state

    def _set_state(self, state: SessionState) -> None:
        with self._state_lock:
            previous, self._state = self._state, state
        logger.info("Session state {} -> {}", previous.value, state.value)

    def start(self) -> None:
        """Open the audio source and launch the worker.

        Access and open failures propagate to the caller; no worker is started.
        """
        if self.state is not SessionState.UNINITIALIZED:
            raise RuntimeError("A detection session can only be started once")

        self._publish(StatusMessage("Starting metal detector..."))
        if self._access_check is not None:
            self._access_check()
        self._handle = self.source.open(self.config.sample_rate, 1, 16)
        logger.info(
            "Audio source opened at {} Hz ({} samples per read)",
            self.config.sample_rate,
            self.config.buffer_samples,
        )

        self._set_state(SessionState.CALIBRATING)
        self._worker = threading.Thread(target=self._run, name="metal-detector", daemon=True)
        self._worker.start()

    def stop(self) -> None:
        """Ask the worker to exit after its current buffer."""
        self._stop_event.set()

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for the worker; returns True once it has exited."""
        if self._worker is None:
            return True
        self._worker.join(timeout)
        return not self._worker.is_alive()

    def close(self) -> None:
        """Stop the worker, wait for it, then release the audio handle."""
        self.stop()
        self.join()
        if self._handle is not None:
            handle, self._handle = self._handle, None
            try:
                self.source.close(handle)
            finally:
                logger.info("Audio source released")
        if self.state is not SessionState.STOPPED:
            self._set_state(SessionState.STOPPED)

    def messages(self, poll_seconds: float = 1.0) -> Generator[Message, None, None]:
        """Yield status messages and detection events until the worker ends."""
        if self._worker is None:
            return
        while True:
            try:
                item = self._messages.get(timeout=poll_seconds)
            except queue.Empty:
                if not self._worker.is_alive() and self._messages.empty():
                    return
                continue
            if item is _END_OF_STREAM:
                return
            yield item

    def __enter__(self) -> "DetectionSession":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # Worker ---------------------------------------------------------

    def _publish(self, message: Message) -> None:
        self._messages.put(message)

    def _run(self) -> None:
        try:
            baseline = calibrate(
                self.source,
                self._handle,
                sample_count=self.config.calibration_samples,
                buffer_samples=self.config.buffer_samples,
                on_status=lambda text: self._publish(StatusMessage(text)),
            )
            if self.config.warm_start:
                self.detector = MetalDetector.warm(baseline)
            else:
                self.detector = MetalDetector(baseline)

            self._set_state(SessionState.DETECTING)
            while not self._stop_event.is_set():
                buffer = self.source.read_buffer(self._handle, self.config.buffer_samples)
                event = self.detector.process(buffer)
                if event is not None:
                    self._publish(event)
        except AudioSourceExhausted:
            logger.info("Audio source exhausted; ending session")
            self._publish(StatusMessage("Audio source finished"))
        except Exception as exc:
            logger.exception("Detection worker failed: {}", exc)
            self.error = exc
            self._publish(StatusMessage(f"Detector stopped: {exc}"))
        finally:
            self._set_state(SessionState.STOPPED)
            self._messages.put(_END_OF_STREAM)
