"""
Session lifecycle: idle -> preparing -> recording -> processing -> results.

Owns the two credential pools (one per service, built once), the bounded
series, the capture loop and an elapsed-seconds ticker that runs on its own
1s clock, independent of the capture interval.
"""
from __future__ import annotations

import logging
import threading
import time
from typing import Callable, List, Optional

from core.capture import CaptureScheduler, FrameSource
from core.config import Settings
from core.credentials import CredentialPool
from core.errors import CameraUnavailableError, ConfigurationError, SessionStateError
from core.hume import FrameAnalysisClient
from core.models import EmotionObservation, SessionReport, SessionStatus, SessionStatusName
from core.perf import PerfMonitor
from core.report import build_report
from core.retry import RetryingInvoker
from core.series import BoundedSeries
from core.summary import SummaryRequester

logger = logging.getLogger(__name__)


class SessionController:
    """One active session at a time; start() and stop() are the only transitions callers drive."""

    def __init__(self, settings: Settings,
                 hume_pool: CredentialPool | None = None,
                 gemini_pool: CredentialPool | None = None,
                 source_factory: Callable[[int], FrameSource] = FrameSource,
                 client: FrameAnalysisClient | None = None,
                 summarizer: SummaryRequester | None = None,
                 invoker: RetryingInvoker | None = None):
        self.s = settings
        self.perf = PerfMonitor(settings.PERF_WINDOW)
        self.hume_pool = hume_pool or CredentialPool("hume", settings.HUME_API_KEYS, settings.ROTATION_COOLDOWN_MS)
        self.gemini_pool = gemini_pool or CredentialPool("gemini", settings.GEMINI_API_KEYS, settings.ROTATION_COOLDOWN_MS)
        self.client = client or FrameAnalysisClient(self.hume_pool, settings, perf=self.perf)
        self.summarizer = summarizer or SummaryRequester(self.gemini_pool, settings, perf=self.perf)
        self.invoker = invoker
        self.series = BoundedSeries(settings.MAX_SESSION_POINTS)
        self._source_factory = source_factory

        self._lock = threading.RLock()
        self._status: SessionStatusName = "idle"
        self._error: Optional[str] = None
        self._started_at: Optional[float] = None
        self._elapsed = 0
        self._ticker: Optional[threading.Thread] = None
        self._ticker_stop = threading.Event()
        self._source: Optional[FrameSource] = None
        self._scheduler: Optional[CaptureScheduler] = None
        self._participant = ""
        self._notes = ""
        self._subscribers: List[Callable[[EmotionObservation], None]] = []
        self.report: Optional[SessionReport] = None

    # ---- observers ----
    def subscribe(self, consumer: Callable[[EmotionObservation], None]) -> None:
        self._subscribers.append(consumer)

    def _publish(self, obs: EmotionObservation) -> None:
        for consumer in list(self._subscribers):
            try:
                consumer(obs)
            except Exception:
                logger.exception("[session] observation consumer failed")

    # ---- lifecycle ----
    def start(self, participant_name: str = "", notes: str = "") -> SessionStatus:
        with self._lock:
            if self._status not in ("idle", "results"):
                raise SessionStateError(f"Cannot start a session while {self._status}")
            self._error = None
            try:
                self.s.validate_credentials()
                self.hume_pool.require()
                self.gemini_pool.require()
            except ConfigurationError as e:
                self._error = str(e)
                self._status = "idle"
                raise

            self._status = "preparing"
            self.report = None
            self.series.clear()
            self._elapsed = 0
            self._participant = participant_name
            self._notes = notes

            source = self._source_factory(self.s.CAMERA_INDEX)
            try:
                source.open()
            except CameraUnavailableError as e:
                self._error = str(e)
                self._status = "idle"
                raise
            self._source = source

            self._status = "recording"
            self._started_at = time.time()
            self._ticker_stop.clear()
            self._ticker = threading.Thread(target=self._tick, name="session-timer", daemon=True)
            self._ticker.start()

            self._scheduler = CaptureScheduler(
                source, self.client, self.series, self.s,
                invoker=self.invoker, on_observation=self._publish,
            )
            self._scheduler.start()
            logger.info(f"[session] recording started participant={participant_name or 'Anonymous'}")
            return self.status()

    def _tick(self) -> None:
        while not self._ticker_stop.wait(1.0):
            with self._lock:
                self._elapsed += 1

    def stop(self) -> SessionReport:
        with self._lock:
            if self._status != "recording":
                raise SessionStateError(f"No recording session to stop (status={self._status})")
            self._status = "processing"
            self._ticker_stop.set()
            duration = self._elapsed
            scheduler = self._scheduler
            if scheduler is not None:
                scheduler.stop()

        # The in-flight cycle lands before the snapshot; its exchange timeout bounds the wait
        if scheduler is not None:
            scheduler.join()
        if self._source is not None:
            self._source.release()

        observations = self.series.items()
        logger.info(f"[session] finalizing duration={duration}s points={len(observations)}")
        summary = self.summarizer.summarize_session(observations, duration)
        report = build_report(observations, duration, summary, self._participant, self._notes)

        with self._lock:
            self.report = report
            self._status = "results"
        return report

    def reset(self) -> None:
        with self._lock:
            if self._status in ("recording", "processing", "preparing"):
                raise SessionStateError(f"Cannot reset while {self._status}")
            self.series.clear()
            self.report = None
            self._error = None
            self._elapsed = 0
            self._started_at = None
            self._status = "idle"

    # ---- views ----
    @property
    def current(self) -> Optional[EmotionObservation]:
        return self._scheduler.current if self._scheduler is not None else None

    @property
    def source(self) -> Optional[FrameSource]:
        return self._source

    def status(self) -> SessionStatus:
        with self._lock:
            return SessionStatus(
                status=self._status,
                started_at=self._started_at,
                elapsed_seconds=self._elapsed,
                data_points=len(self.series),
                current=self.current,
                avg_exchange_ms=self.perf.average_ms(FrameAnalysisClient.SERVICE),
                error=self._error,
            )
