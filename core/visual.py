"""Visualization helpers for the live camera window.

- draw_scores: draw the current emotion scores as labelled bars on a frame
- draw_status: draw a one-line status banner (e.g. elapsed time, NOT_READY)
"""
from __future__ import annotations
import cv2
import numpy as np
from typing import Dict, Optional, Tuple

from core.models import EMOTION_NAMES, EmotionObservation
from core.stats import format_time

# BGR, one per tracked emotion
EMOTION_COLORS: Dict[str, Tuple[int, int, int]] = {
    "joy": (250, 139, 167),
    "sadness": (250, 165, 96),
    "anger": (60, 146, 251),
    "fear": (113, 113, 248),
    "disgust": (153, 211, 52),
}


def draw_scores(frame: np.ndarray,
                obs: Optional[EmotionObservation] = None,
                bar_width: int = 120,
                bar_height: int = 12) -> np.ndarray:
    """Draw one bar per emotion in the top-left corner.

    Args:
        frame: BGR image
        obs: latest observation; None draws empty bars
        bar_width: full-scale bar width in px
        bar_height: bar height in px

    Returns:
        Annotated copy of the frame
    """
    out = frame.copy()
    h, w = out.shape[:2]
    scores = obs.scores() if obs is not None else {n: 0.0 for n in EMOTION_NAMES}

    x0 = 10
    for i, name in enumerate(EMOTION_NAMES):
        y = 10 + i * (bar_height + 8)
        if y + bar_height >= h:
            break
        full = min(bar_width, max(0, w - x0 - 80))
        fill = int(full * max(0.0, min(1.0, scores[name])))
        cv2.rectangle(out, (x0 + 70, y), (x0 + 70 + full, y + bar_height), (60, 60, 60), -1)
        if fill > 0:
            cv2.rectangle(out, (x0 + 70, y), (x0 + 70 + fill, y + bar_height), EMOTION_COLORS[name], -1)
        cv2.putText(out, name.capitalize(), (x0, y + bar_height - 2), cv2.FONT_HERSHEY_SIMPLEX,
                    0.4, (255, 255, 255), 1, cv2.LINE_AA)
    return out


def draw_status(frame: np.ndarray, elapsed_seconds: int, flag: Optional[str] = None) -> np.ndarray:
    out = frame.copy()
    h = out.shape[0]
    text = f"REC {format_time(elapsed_seconds)}"
    if flag:
        text += f"  {flag}"
    cv2.putText(out, text, (10, max(12, h - 12)), cv2.FONT_HERSHEY_SIMPLEX, 0.6, (0, 0, 255), 2, cv2.LINE_AA)
    return out
