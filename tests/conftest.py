import pytest
import numpy as np

from core.config import Settings
from core.models import EmotionObservation, EmotionScore


class FakeClock:
    """Manually advanced clock; call it to read the time."""
    def __init__(self, start=0.0):
        self.now = float(start)
    def __call__(self):
        return self.now
    def advance(self, delta):
        self.now += delta


class DummyCap:
    """Stands in for cv2.VideoCapture."""
    def __init__(self, idx=0, opened=True, frames=None):
        self.idx = idx
        self.opened = opened
        self.frames = list(frames) if frames is not None else None
        self.released = False
    def isOpened(self): return self.opened
    def read(self):
        if self.frames is None:
            return True, np.zeros((24, 32, 3), dtype=np.uint8)
        if not self.frames:
            return False, None
        f = self.frames.pop(0)
        return (f is not None), f
    def release(self): self.released = True


class FakeSource:
    """Stands in for core.capture.FrameSource."""
    def __init__(self, idx=0, fail=False):
        self.camera_index = idx
        self.fail = fail
        self.opened = False
        self.released = False
    @property
    def is_open(self): return self.opened
    def open(self):
        from core.errors import CameraUnavailableError
        if self.fail:
            raise CameraUnavailableError("Camera access denied.")
        self.opened = True
    def read_frame(self):
        return np.full((16, 16, 3), 127, dtype=np.uint8) if self.opened else None
    def last_frame(self):
        return self.read_frame()
    def release(self):
        self.released = True
        self.opened = False


class StubClient:
    """Stands in for FrameAnalysisClient; returns a fixed emotions list."""
    SERVICE = "hume"
    def __init__(self, emotions=None):
        self.emotions = emotions if emotions is not None else [
            EmotionScore(name="Joy", score=0.8),
            EmotionScore(name="Fear", score=0.1),
        ]
        self.calls = 0
    def fetch(self, frame_b64):
        self.calls += 1
        return self.emotions


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def settings():
    return Settings(
        HUME_API_KEYS=["h1", "h2", "h3"],
        GEMINI_API_KEYS=["g1", "g2"],
        CAPTURE_INTERVAL=0.01,
        READY_RETRY_DELAY=0.01,
        RETRY_BASE_DELAY=0.0,
        EXCHANGE_TIMEOUT=0.5,
    )


@pytest.fixture
def observations():
    joy = [0.1, 0.9, 0.2, 0.8, 0.3, 0.7]
    return [
        EmotionObservation(timestamp=i * 2, joy=j, fear=0.1 * i, sadness=0.05, anger=0.02, disgust=0.01)
        for i, j in enumerate(joy)
    ]
