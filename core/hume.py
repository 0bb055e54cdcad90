"""
Frame analysis against the Hume streaming models API.

One exchange per frame: open a websocket addressed by the active key, send the
face-model config plus the base64 JPEG, wait for a single message, close.
Connect and reply share one 5s budget; closing waits at most WS_CLOSE_TIMEOUT.
Outcomes are tagged (see AnalysisResult.status):

- success          emotions found in one of the known response shapes
- rate_limited     quota / credit exhaustion reported -> key rotated
- empty            response without emotions (logged, not a key problem)
- timeout          connect + reply did not fit in EXCHANGE_TIMEOUT
- transport_error  connect/send/recv failed -> key rotated
"""
from __future__ import annotations
import json
import logging
import time
from typing import Any, Callable, List, Optional, Sequence, Tuple, Union
from urllib.parse import quote

from websockets.exceptions import WebSocketException
from websockets.sync.client import connect as ws_connect

from core.config import Settings
from core.credentials import CredentialPool
from core.models import AnalysisResult, EmotionScore
from core.perf import PerfMonitor

logger = logging.getLogger(__name__)

PathStep = Union[str, int]

# Known envelope shapes, tried in order. New shapes are appended, never reordered.
EMOTION_PATHS: Tuple[Tuple[PathStep, ...], ...] = (
    ("face", "predictions", 0, "emotions"),
    ("predictions", 0, "emotions"),
    ("models", "face", "predictions", 0, "emotions"),
)

RATE_LIMIT_PHRASES = ("rate limit", "quota", "out of credits", "credit limit")
RATE_LIMIT_CODES = {
    "rate_limit_exceeded",
    "quota_exceeded",
    "E0300",  # out of credits
    "E0301",  # monthly limit reached
}


def _dig(data: Any, path: Sequence[PathStep]) -> Any:
    cur = data
    for step in path:
        if isinstance(step, int):
            if not isinstance(cur, list) or len(cur) <= step:
                return None
            cur = cur[step]
        else:
            if not isinstance(cur, dict):
                return None
            cur = cur.get(step)
        if cur is None:
            return None
    return cur


def is_rate_limited(data: Any) -> bool:
    """Quota/rate-limit/credit exhaustion, by message substring or structured code."""
    if not isinstance(data, dict):
        return False
    messages = []
    codes = [data.get("code")]
    err = data.get("error")
    if isinstance(err, str):
        messages.append(err)
    elif isinstance(err, dict):
        messages.append(str(err.get("message") or ""))
        codes.append(err.get("code"))
    for msg in messages:
        low = msg.lower()
        if any(p in low for p in RATE_LIMIT_PHRASES):
            return True
    return any(isinstance(c, str) and c in RATE_LIMIT_CODES for c in codes)


def extract_emotions(data: Any) -> Optional[List[EmotionScore]]:
    """First non-null emotions array among EMOTION_PATHS, parsed into EmotionScore."""
    for path in EMOTION_PATHS:
        found = _dig(data, path)
        if found is None:
            continue
        out: List[EmotionScore] = []
        for item in found if isinstance(found, list) else []:
            if not isinstance(item, dict) or "name" not in item:
                continue
            try:
                out.append(EmotionScore(name=str(item["name"]), score=float(item.get("score") or 0.0)))
            except (TypeError, ValueError):
                continue
        return out
    return None


class FrameAnalysisClient:
    """Sends single frames to the inference service, rotating keys on quota/transport failures."""

    SERVICE = "hume"

    def __init__(self, pool: CredentialPool, settings: Settings,
                 perf: PerfMonitor | None = None,
                 connect: Callable[..., Any] = ws_connect,
                 clock: Callable[[], float] = time.monotonic):
        self.pool = pool
        self.s = settings
        self.perf = perf or PerfMonitor(settings.PERF_WINDOW)
        self._connect = connect
        self._clock = clock

    def _url(self, key: str) -> str:
        return f"{self.s.HUME_STREAM_URL}?apikey={quote(key, safe='')}"

    def _elapsed_ms(self, started: float) -> float:
        return (self._clock() - started) * 1000.0

    def _transport_failure(self, started: float, err: Exception) -> AnalysisResult:
        duration = self._elapsed_ms(started)
        self.perf.track(self.SERVICE, duration)
        logger.warning(f"[hume] transport error on {self.pool.describe()}: {err}")
        self.pool.rotate()
        return AnalysisResult(status="transport_error", duration_ms=duration)

    def analyze(self, frame_b64: str) -> AnalysisResult:
        key = self.pool.current()
        payload = json.dumps({"models": {"face": {}}, "raw_text": False, "data": frame_b64})
        budget = self.s.EXCHANGE_TIMEOUT
        started = self._clock()
        raw = None
        timed_out = False

        # Connect and reply share one budget
        try:
            with self._connect(self._url(key), open_timeout=budget,
                               close_timeout=self.s.WS_CLOSE_TIMEOUT) as ws:
                ws.send(payload)
                try:
                    raw = ws.recv(timeout=max(0.0, budget - (self._clock() - started)))
                except TimeoutError:
                    timed_out = True
        except (WebSocketException, OSError) as e:
            if raw is not None or timed_out:
                logger.debug(f"[hume] close after exchange failed: {e}")
            elif isinstance(e, TimeoutError):
                timed_out = True
            else:
                return self._transport_failure(started, e)

        if timed_out:
            logger.warning(f"[hume] no response after {budget}s")
            return AnalysisResult(status="timeout", duration_ms=self._elapsed_ms(started))

        duration = self._elapsed_ms(started)
        self.perf.track(self.SERVICE, duration)
        return self._classify(raw, duration)

    def _classify(self, raw: Any, duration: float) -> AnalysisResult:
        try:
            data = json.loads(raw)
        except (TypeError, ValueError):
            logger.warning("[hume] unparseable response")
            return AnalysisResult(status="empty", duration_ms=duration)

        if is_rate_limited(data):
            logger.warning(f"[hume] rate limit on {self.pool.describe()}, rotating")
            self.pool.rotate()
            return AnalysisResult(status="rate_limited", duration_ms=duration)

        emotions = extract_emotions(data)
        if emotions is not None:
            top = sorted(emotions, key=lambda e: e.score, reverse=True)[:3]
            logger.debug("[hume] emotions: " + ", ".join(f"{e.name}: {e.score * 100:.0f}%" for e in top))
            return AnalysisResult(status="success", emotions=emotions, duration_ms=duration)

        logger.warning(f"[hume] no emotions in response: {str(data)[:200]}")
        return AnalysisResult(status="empty", duration_ms=duration)

    def fetch(self, frame_b64: str) -> Optional[List[EmotionScore]]:
        """Emotions on success, None for every other outcome (the retry sentinel)."""
        result = self.analyze(frame_b64)
        return result.emotions if result.ok else None
