"""
Pydantic data models for the tracker and API IO.
"""
from __future__ import annotations
from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional, Literal

EMOTION_NAMES = ("joy", "sadness", "anger", "fear", "disgust")

SessionStatusName = Literal["idle", "preparing", "recording", "processing", "results"]


class EmotionScore(BaseModel):
    name: str
    score: float


class EmotionObservation(BaseModel):
    timestamp: int
    joy: float = 0.0
    sadness: float = 0.0
    anger: float = 0.0
    fear: float = 0.0
    disgust: float = 0.0

    def scores(self) -> Dict[str, float]:
        return {name: getattr(self, name) for name in EMOTION_NAMES}


class AnalysisResult(BaseModel):
    """Outcome of one exchange with the emotion-inference service."""
    status: Literal["success", "rate_limited", "empty", "timeout", "transport_error"]
    emotions: Optional[List[EmotionScore]] = None
    duration_ms: float = 0.0

    @property
    def ok(self) -> bool:
        return self.status == "success" and self.emotions is not None


class EmotionRank(BaseModel):
    name: str
    percentage: str


class EmotionDigest(BaseModel):
    avg_joy: float = 0.0
    avg_fear: float = 0.0
    avg_sadness: float = 0.0
    avg_anger: float = 0.0
    avg_disgust: float = 0.0
    top_emotions: List[EmotionRank] = Field(default_factory=list)
    key_moments: str = "No emotional data collected"
    volatility: Literal["High", "Moderate", "Low", "N/A"] = "N/A"


class EmotionStatRow(BaseModel):
    emotion: str
    average: float
    peak: float
    lowest: float


class SummaryResult(BaseModel):
    text: str
    source: Literal["gemini", "fallback", "skipped"]


class SessionReport(BaseModel):
    participant: str = "Anonymous"
    notes: str = ""
    duration_seconds: int
    duration: str
    generated_at: str
    data_points: int
    summary: str
    summary_source: Literal["gemini", "fallback", "skipped"]
    digest: EmotionDigest
    intensity: List[EmotionScore] = Field(default_factory=list)
    statistics: List[EmotionStatRow] = Field(default_factory=list)
    key_insights: List[str] = Field(default_factory=list)
    timeline: List[EmotionObservation] = Field(default_factory=list)


class SessionStatus(BaseModel):
    status: SessionStatusName
    started_at: float | None = None
    elapsed_seconds: int = 0
    data_points: int = 0
    current: EmotionObservation | None = None
    avg_exchange_ms: float = 0.0
    error: str | None = None


# api models


class SessionStartRequest(BaseModel):
    participant_name: str = ""
    notes: str = ""


class AnalyzeEmotionRequest(BaseModel):
    imageData: Optional[str] = None


class AnalyzeEmotionResponse(BaseModel):
    success: bool
    data: Any = None
