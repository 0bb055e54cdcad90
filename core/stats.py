"""
Statistical digest of a session's emotion series.
"""
from __future__ import annotations
from typing import List, Sequence
import numpy as np

from core.models import EmotionDigest, EmotionObservation, EmotionRank, EmotionStatRow

# Order used for ranking ties (matches the digest field order)
DIGEST_ORDER = ("joy", "fear", "sadness", "anger", "disgust")

HIGH_VOLATILITY = 0.015
MODERATE_VOLATILITY = 0.008


def format_time(seconds: int) -> str:
    seconds = max(0, int(seconds))
    return f"{seconds // 60:02d}:{seconds % 60:02d}"


def classify_volatility(joy_values: Sequence[float]) -> str:
    """High / Moderate / Low from the population variance of joy."""
    if len(joy_values) == 0:
        return "N/A"
    variance = float(np.var(np.asarray(joy_values, dtype=float)))
    if variance > HIGH_VOLATILITY:
        return "High"
    if variance > MODERATE_VOLATILITY:
        return "Moderate"
    return "Low"


def _peaks(observations: Sequence[EmotionObservation], name: str, n: int) -> list[EmotionObservation]:
    return sorted(observations, key=lambda o: getattr(o, name), reverse=True)[:n]


def analyze_emotions(observations: Sequence[EmotionObservation]) -> EmotionDigest:
    """
    Means per emotion, top three emotions, key moments (joy/fear peaks) and volatility.
    """
    if not observations:
        return EmotionDigest()

    matrix = np.array([[getattr(o, n) for n in DIGEST_ORDER] for o in observations], dtype=float)
    means = dict(zip(DIGEST_ORDER, matrix.mean(axis=0).tolist()))

    ranked = sorted(DIGEST_ORDER, key=lambda n: means[n], reverse=True)[:3]
    top = [EmotionRank(name=n.capitalize(), percentage=f"{means[n] * 100:.1f}") for n in ranked]

    moments = [
        f"High joy ({o.joy * 100:.0f}%) at {format_time(o.timestamp)}"
        for o in _peaks(observations, "joy", 3)
    ] + [
        f"Elevated anxiety ({o.fear * 100:.0f}%) at {format_time(o.timestamp)}"
        for o in _peaks(observations, "fear", 2)
    ]

    return EmotionDigest(
        avg_joy=means["joy"],
        avg_fear=means["fear"],
        avg_sadness=means["sadness"],
        avg_anger=means["anger"],
        avg_disgust=means["disgust"],
        top_emotions=top,
        key_moments="\n".join(moments),
        volatility=classify_volatility(matrix[:, 0]),
    )


def emotion_table(observations: Sequence[EmotionObservation]) -> List[EmotionStatRow]:
    """Average / peak / lowest per emotion."""
    rows: List[EmotionStatRow] = []
    if not observations:
        return rows
    for name in DIGEST_ORDER:
        vals = np.array([getattr(o, name) for o in observations], dtype=float)
        rows.append(EmotionStatRow(
            emotion=name.capitalize(),
            average=float(vals.mean()),
            peak=float(vals.max()),
            lowest=float(vals.min()),
        ))
    return rows


def session_quality(data_points: int) -> str:
    if data_points > 100:
        return "Excellent"
    if data_points > 50:
        return "Good"
    return "Moderate"
