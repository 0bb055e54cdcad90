"""
Session report assembly and export (JSON report, CSV timeline).
"""
from __future__ import annotations
import csv
import json
import os
from datetime import datetime
from typing import List, Sequence

from core.models import (
    EMOTION_NAMES, EmotionObservation, EmotionScore, SessionReport, SummaryResult,
)
from core.stats import analyze_emotions, emotion_table, format_time, session_quality


def sample_timeline(observations: Sequence[EmotionObservation], max_rows: int = 40) -> List[EmotionObservation]:
    """Every k-th observation (k = n // max_rows, at least 1), capped at max_rows."""
    if max_rows <= 0:
        return []
    step = max(1, len(observations) // max_rows)
    return list(observations[::step])[:max_rows]


def build_report(
    observations: Sequence[EmotionObservation],
    duration_seconds: int,
    summary: SummaryResult,
    participant: str = "",
    notes: str = "",
    max_timeline_rows: int = 40,
) -> SessionReport:
    digest = analyze_emotions(observations)
    intensity = sorted(
        [
            EmotionScore(name="Joy", score=digest.avg_joy),
            EmotionScore(name="Fear", score=digest.avg_fear),
            EmotionScore(name="Sadness", score=digest.avg_sadness),
            EmotionScore(name="Anger", score=digest.avg_anger),
            EmotionScore(name="Disgust", score=digest.avg_disgust),
        ],
        key=lambda e: e.score,
        reverse=True,
    )
    n = len(observations)
    top = ", ".join(f"{e.name} ({e.percentage}%)" for e in digest.top_emotions)
    insights = [
        f"Top Emotions: {top}",
        f"Emotional Volatility: {digest.volatility}",
        f"Session Quality: {session_quality(n)} ({n} data points)",
    ]
    return SessionReport(
        participant=participant.strip() or "Anonymous",
        notes=notes,
        duration_seconds=int(duration_seconds),
        duration=format_time(duration_seconds),
        generated_at=datetime.now().isoformat(timespec="seconds"),
        data_points=n,
        summary=summary.text,
        summary_source=summary.source,
        digest=digest,
        intensity=intensity,
        statistics=emotion_table(observations),
        key_insights=insights,
        timeline=sample_timeline(observations, max_timeline_rows),
    )


def export_json(report: SessionReport, path: str) -> str:
    os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(report.model_dump(), f, indent=2, ensure_ascii=False)
    return path


def export_csv(observations: Sequence[EmotionObservation], path: str) -> str:
    os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)
    with open(path, "w", encoding="utf-8", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(["time", "timestamp", *EMOTION_NAMES])
        for o in observations:
            writer.writerow([format_time(o.timestamp), o.timestamp,
                             *(f"{getattr(o, n):.4f}" for n in EMOTION_NAMES)])
    return path
