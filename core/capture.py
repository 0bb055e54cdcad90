# core/capture.py
"""
Webcam frame source and the fixed-interval capture loop.

The loop runs on a background thread: grab frame -> analyze (with retry) ->
append observation -> wait CAPTURE_INTERVAL. The wait is a trailing delay, so
a slow cycle stretches the period but two cycles never overlap.
"""
from __future__ import annotations

import base64
import logging
import math
import threading
import time
from typing import Callable, List, Optional, Sequence

import cv2
import numpy as np

from core.config import Settings
from core.errors import CameraUnavailableError, FrameNotReadyError
from core.hume import FrameAnalysisClient
from core.models import EMOTION_NAMES, EmotionObservation, EmotionScore
from core.retry import RetryingInvoker
from core.series import BoundedSeries

logger = logging.getLogger(__name__)

ObservationConsumer = Callable[[EmotionObservation], None]


def encode_jpeg_b64(frame: np.ndarray, quality: int = 70) -> str:
    """JPEG-encode a BGR frame and return it base64 encoded."""
    ok, buf = cv2.imencode(".jpg", frame, [int(cv2.IMWRITE_JPEG_QUALITY), int(quality)])
    if not ok:
        raise FrameNotReadyError("JPEG encoding failed")
    return base64.b64encode(buf.tobytes()).decode("ascii")


def list_cameras(max_index: int = 5, capture_factory=cv2.VideoCapture) -> List[int]:
    """Indices of capture devices that open successfully."""
    found = []
    for idx in range(max_index):
        cap = capture_factory(idx)
        try:
            if cap.isOpened():
                found.append(idx)
        finally:
            cap.release()
    return found


class FrameSource:
    """Thin wrapper around cv2.VideoCapture with a readiness check; reads are serialized."""

    def __init__(self, camera_index: int = 0, capture_factory=cv2.VideoCapture):
        self.camera_index = camera_index
        self._factory = capture_factory
        self._cap = None
        self._last_frame: Optional[np.ndarray] = None
        self._lock = threading.Lock()

    @property
    def is_open(self) -> bool:
        return self._cap is not None

    def open(self) -> None:
        cap = self._factory(self.camera_index)
        if not cap.isOpened():
            cap.release()
            raise CameraUnavailableError(
                f"Camera access denied or unavailable (index {self.camera_index}). "
                "Please enable camera permissions and check the device."
            )
        self._cap = cap
        logger.debug(f"[capture] camera {self.camera_index} opened")

    def read_frame(self) -> Optional[np.ndarray]:
        """Latest frame, or None when the device has not produced a usable one yet."""
        with self._lock:
            if self._cap is None:
                return None
            ok, frame = self._cap.read()
            if not ok or frame is None or frame.size == 0 or min(frame.shape[:2]) == 0:
                return None
            self._last_frame = frame
            return frame

    def last_frame(self) -> Optional[np.ndarray]:
        with self._lock:
            return None if self._last_frame is None else self._last_frame.copy()

    def release(self) -> None:
        with self._lock:
            if self._cap is None:
                return
            self._cap.release()
            self._cap = None
            logger.debug(f"[capture] camera {self.camera_index} released")


def build_observation(emotions: Sequence[EmotionScore], timestamp: int) -> EmotionObservation:
    """Map service emotion names (Joy, Sadness, ...) onto the tracked set; missing -> 0."""
    by_name = {}
    for e in emotions:
        key = e.name.strip().lower()
        if key in EMOTION_NAMES and key not in by_name:
            by_name[key] = min(1.0, max(0.0, float(e.score)))
    return EmotionObservation(timestamp=timestamp, **by_name)


class CaptureScheduler:
    """Background capture -> analyze -> ingest loop (stopped -> running -> stopped)."""

    def __init__(self, source: FrameSource, client: FrameAnalysisClient,
                 series: BoundedSeries, settings: Settings,
                 invoker: RetryingInvoker | None = None,
                 on_observation: ObservationConsumer | None = None,
                 clock: Callable[[], float] = time.monotonic):
        self.source = source
        self.client = client
        self.series = series
        self.s = settings
        self.invoker = invoker or RetryingInvoker(settings.RETRY_BASE_DELAY, settings.RETRY_ATTEMPTS)
        self.on_observation = on_observation
        self._clock = clock
        self._session_start: float = clock()
        self._stop = threading.Event()
        self._stop.set()
        self._thread: Optional[threading.Thread] = None
        self.current: Optional[EmotionObservation] = None

    @property
    def running(self) -> bool:
        return not self._stop.is_set()

    # ---- lifecycle ----
    def start(self, session_start: float | None = None) -> None:
        if self.running:
            return
        self._session_start = self._clock() if session_start is None else session_start
        self.current = None
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="capture-loop", daemon=True)
        self._thread.start()
        logger.info("[capture] loop started")

    def stop(self) -> None:
        """Stop scheduling new cycles; an in-flight cycle finishes on its own."""
        self._stop.set()

    def join(self, timeout: float | None = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    # ---- loop ----
    def _loop(self) -> None:
        while self.running:
            try:
                frame = self.source.read_frame()
            except Exception:
                logger.exception("[capture] frame read failed")
                frame = None

            if frame is None:
                logger.debug("[capture] video not ready, re-checking")
                self._stop.wait(self.s.READY_RETRY_DELAY)
                continue

            try:
                self.process_frame(frame)
            except Exception:
                # A single bad cycle never ends the loop
                logger.exception("[capture] cycle failed")

            self._stop.wait(self.s.CAPTURE_INTERVAL)
        logger.info("[capture] loop stopped")

    def elapsed_seconds(self) -> int:
        return max(0, int(math.floor(self._clock() - self._session_start)))

    def process_frame(self, frame: np.ndarray) -> Optional[EmotionObservation]:
        """One analysis cycle for a ready frame. Returns the observation, or None when skipped."""
        frame_b64 = encode_jpeg_b64(frame, self.s.JPEG_QUALITY)
        emotions = self.invoker.invoke(lambda: self.client.fetch(frame_b64))
        if emotions is None:
            logger.debug("[capture] no result after retries; skipping cycle")
            return None

        obs = build_observation(emotions, self.elapsed_seconds())
        self.series.append(obs)
        self.current = obs
        if self.on_observation is not None:
            self.on_observation(obs)
        return obs
