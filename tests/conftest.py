import numpy as np
import pytest

from signlive.config import DetectorConfig, SessionConfig
from signlive.ml.detector import SignLanguageDetector
from signlive.session import RecognitionSession


LABELS = ["hello", "thankyou"]


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class FakeExtractor:
    """Returns the same pose for every frame while a hand is visible."""
    def __init__(self, landmarks=None, hand_visible=True, fail_load=False):
        self.landmarks = np.full(42, 0.5, dtype=np.float32) if landmarks is None else landmarks
        self.hand_visible = hand_visible
        self.fail_load = fail_load
        self.fail_next = False
        self.calls = 0
        self.loaded = False
        self.closed = 0

    def load(self):
        if self.fail_load:
            raise FileNotFoundError("hand_landmarker.task not found")
        self.loaded = True

    def extract(self, frame_bgr, timestamp_ms):
        self.calls += 1
        if self.fail_next:
            self.fail_next = False
            raise RuntimeError("landmarker exploded")
        if not self.hand_visible:
            return None
        return self.landmarks

    def close(self):
        self.closed += 1


class FakeClassifier:
    def __init__(self, probs=(0.9, 0.1), labels=LABELS, fail_load=False):
        self.probs = np.asarray(probs, dtype=np.float32)
        self.labels = list(labels)
        self.fail_load = fail_load
        self.inputs = []
        self.closed = 0

    def load(self):
        if self.fail_load:
            raise RuntimeError("model.onnx is corrupt")

    def predict(self, window):
        self.inputs.append(np.array(window, copy=True))
        return self.probs

    def close(self):
        self.closed += 1


@pytest.fixture
def frame():
    return np.zeros((48, 64, 3), dtype=np.uint8)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def extractor():
    return FakeExtractor()


@pytest.fixture
def classifier():
    return FakeClassifier()


@pytest.fixture
def detector_config():
    return DetectorConfig(sequence_length=30, min_fill=10, throttle_s=0.2, accept_threshold=0.6)


@pytest.fixture
def make_detector(extractor, classifier, detector_config, clock):
    def _make(**kwargs):
        return SignLanguageDetector(
            extractor=kwargs.get("extractor", extractor),
            classifier=kwargs.get("classifier", classifier),
            config=kwargs.get("config", detector_config),
            clock=kwargs.get("clock", clock),
        )
    return _make


@pytest.fixture
def make_session(make_detector, clock):
    async def _make(config=None, ready=True, **detector_kwargs):
        session = RecognitionSession(
            make_detector(**detector_kwargs),
            config=config or SessionConfig(),
            clock=clock,
        )
        if ready:
            await session.initialize()
        return session
    return _make
