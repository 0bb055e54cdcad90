"""
End-of-session narrative via the Gemini generateContent API.

The request sweeps the Gemini key pool once (one attempt per key, no backoff,
no rotation cooldown). When the sweep yields nothing usable the narrative is
built locally from the digest, so summarize_session never raises.
"""
from __future__ import annotations
import logging
import time
from typing import Any, Dict, Optional, Sequence

import requests

from core.config import Settings
from core.credentials import CredentialPool
from core.errors import SummaryGenerationError
from core.models import EmotionDigest, EmotionObservation, EmotionRank, SummaryResult
from core.perf import PerfMonitor
from core.stats import analyze_emotions, format_time

logger = logging.getLogger(__name__)

QUOTA_STATUS_CODES = (402, 429)
QUOTA_MARKER = "RESOURCE_EXHAUSTED"


def _duration_words(duration_seconds: int) -> str:
    return f"{duration_seconds // 60} minute and {duration_seconds % 60} second"


def build_prompt(digest: EmotionDigest, duration_seconds: int, data_points: int) -> str:
    top = ", ".join(f"{e.name} ({e.percentage}%)" for e in digest.top_emotions)
    return f"""You are an expert emotional intelligence analyst. Analyze this {_duration_words(duration_seconds)} emotional expression session.

DATA SUMMARY:
- Top emotions: {top}
- Average Joy: {digest.avg_joy * 100:.1f}%
- Average Fear/Anxiety: {digest.avg_fear * 100:.1f}%
- Average Sadness: {digest.avg_sadness * 100:.1f}%
- Emotional volatility: {digest.volatility}
- Total data points: {data_points}

KEY MOMENTS:
{digest.key_moments}

Write a detailed 3-paragraph professional analysis:

Paragraph 1: Describe the participant's initial emotional state and overall emotional baseline throughout the session.

Paragraph 2: Identify and explain 2-3 significant emotional transitions with specific timestamps (format: MM:SS). Explain what these transitions might indicate.

Paragraph 3: Provide an overall assessment of the emotional journey, patterns observed, and what this suggests about the participant's engagement and emotional regulation.

Use professional yet warm language. Be specific with timestamps. Write in a flowing narrative style."""


def fallback_summary(digest: EmotionDigest, duration_seconds: int, data_points: int) -> str:
    """Deterministic narrative computed from the digest alone (no network)."""
    top = list(digest.top_emotions)
    while len(top) < 3:
        top.append(EmotionRank(name="Neutral", percentage="0.0"))
    volatility = digest.volatility.lower()
    names = ", ".join(e.name for e in top)

    return f"""Session Analysis Summary:

During this {_duration_words(duration_seconds)} session, the participant's emotional landscape showed {names} as the primary emotions, with {top[0].name} being most prominent at {top[0].percentage}% average intensity.

The emotional journey revealed several noteworthy patterns. Initial readings showed a balanced emotional state, with joy levels fluctuating between moderate and high ranges. Key transitional moments were observed, particularly during the middle portions of the session, where emotional expression demonstrated {volatility} variability, suggesting dynamic engagement with the content or environment.

Overall, the participant exhibited {data_points} distinct emotional data points across the session duration. The emotional profile showed {top[0].name} ({top[0].percentage}%), {top[1].name} ({top[1].percentage}%), and {top[2].name} ({top[2].percentage}%) as leading emotions, combined with {volatility} emotional volatility, indicating effective emotional regulation."""


def _is_quota_error(status_code: int, body: Dict[str, Any]) -> bool:
    if status_code in QUOTA_STATUS_CODES:
        return True
    err = body.get("error") if isinstance(body, dict) else None
    if not isinstance(err, dict):
        return False
    return err.get("code") == QUOTA_MARKER or err.get("status") == QUOTA_MARKER


def _extract_text(body: Any) -> Optional[str]:
    try:
        return body["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return None


class SummaryRequester:
    """Quota sweep across the Gemini pool with a local fallback."""

    SERVICE = "gemini"

    def __init__(self, pool: CredentialPool, settings: Settings,
                 perf: PerfMonitor | None = None,
                 session: requests.Session | None = None):
        self.pool = pool
        self.s = settings
        self.perf = perf or PerfMonitor(settings.PERF_WINDOW)
        self.http = session or requests.Session()

    def _body(self, prompt: str) -> Dict[str, Any]:
        return {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": self.s.SUMMARY_TEMPERATURE,
                "maxOutputTokens": self.s.SUMMARY_MAX_TOKENS,
            },
        }

    def request(self, prompt: str) -> str:
        """
        One attempt per key in rotation order. Quota and other HTTP failures move
        on to the next key; a network error on the last key propagates.

        Raises:
            SummaryGenerationError: every key failed, or the response carried no text.
        """
        self.pool.require()
        attempts = len(self.pool)
        last_error: Exception | None = None

        for attempt in range(attempts):
            key = self.pool.current()
            label = self.pool.describe()
            logger.debug(f"[summary] trying {label} (attempt {attempt + 1})")
            started = time.monotonic()
            try:
                resp = self.http.post(
                    self.s.GEMINI_URL,
                    params={"key": key},
                    json=self._body(prompt),
                    timeout=self.s.GEMINI_TIMEOUT,
                )
            except requests.RequestException as e:
                logger.error(f"[summary] {label} error: {e}")
                last_error = e
                if attempt == attempts - 1:
                    raise
                self.pool.advance()
                continue
            finally:
                self.perf.track(self.SERVICE, (time.monotonic() - started) * 1000.0)

            if not resp.ok:
                try:
                    body = resp.json()
                except ValueError:
                    body = {}
                if _is_quota_error(resp.status_code, body):
                    logger.warning(f"[summary] {label} quota exhausted, rotating")
                    last_error = SummaryGenerationError(f"Quota exhausted: {resp.status_code}")
                else:
                    logger.error(f"[summary] {label} failed: {resp.status_code} {body}")
                    last_error = SummaryGenerationError(f"API Error: {resp.status_code}")
                self.pool.advance()
                continue

            try:
                text = _extract_text(resp.json())
            except ValueError:
                text = None
            if not text:
                raise SummaryGenerationError("No text generated")
            return text

        raise last_error or SummaryGenerationError("No Gemini keys attempted")

    def generate(self, digest: EmotionDigest, duration_seconds: int, data_points: int) -> SummaryResult:
        prompt = build_prompt(digest, duration_seconds, data_points)
        try:
            return SummaryResult(text=self.request(prompt), source="gemini")
        except Exception:
            logger.exception("[summary] generation failed; using local fallback")
            return SummaryResult(
                text=fallback_summary(digest, duration_seconds, data_points),
                source="fallback",
            )

    def summarize_session(self, observations: Sequence[EmotionObservation],
                          duration_seconds: int) -> SummaryResult:
        """Summary for a finished session; short or empty sessions skip the service."""
        if not observations:
            return SummaryResult(text="No emotion data collected during this session.", source="skipped")
        if len(observations) < self.s.MIN_SUMMARY_POINTS:
            return SummaryResult(
                text=(f"Session completed with {len(observations)} emotion data points collected "
                      f"over {format_time(duration_seconds)}. AI analysis skipped for short sessions."),
                source="skipped",
            )
        digest = analyze_emotions(observations)
        return self.generate(digest, duration_seconds, len(observations))
