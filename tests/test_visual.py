import numpy as np
from conftest import FakeSource
from core.models import EmotionObservation, SessionStatus
from core.visual import draw_scores, draw_status
from scripts.live_overlay import next_display_frame

def test_draw_scores_cases():
    frame = np.zeros((120, 240, 3), dtype=np.uint8)
    out1 = draw_scores(frame, None)
    assert out1.shape == frame.shape
    obs = EmotionObservation(timestamp=1, joy=1.0, fear=0.5)
    out2 = draw_scores(frame, obs)
    assert out2.shape == frame.shape
    # bars are drawn on a copy; the joy bar is fuller than the empty one
    assert frame.sum() == 0
    assert out2.sum() > out1.sum()

def test_draw_scores_tiny_frame():
    frame = np.zeros((20, 20, 3), dtype=np.uint8)
    out = draw_scores(frame, EmotionObservation(timestamp=0, joy=0.5))
    assert out.shape == frame.shape

def test_draw_status():
    frame = np.zeros((60, 200, 3), dtype=np.uint8)
    out = draw_status(frame, 75, flag="NOT_READY")
    assert out.shape == frame.shape and out.sum() > 0

class _Ctl:
    def __init__(self, source):
        self.source = source
    def status(self):
        return SessionStatus(status="recording", elapsed_seconds=3)

def test_overlay_uses_placeholder_until_camera_delivers():
    placeholder = np.zeros((48, 64, 3), dtype=np.uint8)
    assert next_display_frame(_Ctl(None), placeholder).shape == (48, 64, 3)
    src = FakeSource()
    src.open()
    assert next_display_frame(_Ctl(src), placeholder).shape == (16, 16, 3)
