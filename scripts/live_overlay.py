"""Run a session with a live camera window showing the current emotion scores.

Usage:
    uvicorn api.main:app --reload  # (separate, for API)
    python scripts/live_overlay.py  # (to see camera overlay window)

Press 'q' to quit the window; the session summary is printed afterwards.
"""
import numpy as np
import cv2

from core.config import Settings
from core.session import SessionController
from core.visual import draw_scores, draw_status

WINDOW = "Emotion Live (q to quit)"


def next_display_frame(controller: SessionController, placeholder: np.ndarray) -> np.ndarray:
    """Fresh camera frame annotated with the latest scores; the placeholder until the camera delivers."""
    source = controller.source
    frame = source.read_frame() if source is not None else None
    if frame is None and source is not None:
        frame = source.last_frame()
    st = controller.status()
    return draw_status(draw_scores(placeholder if frame is None else frame, st.current), st.elapsed_seconds)


def run_live_overlay(controller: SessionController) -> None:
    controller.start()
    # Window exists from the start so waitKey paces the loop even before the first frame
    cv2.namedWindow(WINDOW)
    placeholder = np.zeros((480, 640, 3), dtype=np.uint8)
    try:
        while True:
            cv2.imshow(WINDOW, next_display_frame(controller, placeholder))
            if (cv2.waitKey(30) & 0xFF) == ord("q"):
                break
    finally:
        cv2.destroyAllWindows()
        report = controller.stop()
    print(report.summary)


if __name__ == '__main__':
    run_live_overlay(SessionController(Settings()))
