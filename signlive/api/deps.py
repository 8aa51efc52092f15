from typing import Callable

from signlive.config import DetectorConfig, SessionConfig
from signlive.ml.detector import SignLanguageDetector
from signlive.session import RecognitionSession


SessionFactory = Callable[[], RecognitionSession]


def get_detector_config() -> DetectorConfig:
    return DetectorConfig.from_env()


def get_session_config() -> SessionConfig:
    return SessionConfig.from_env()


def new_session() -> RecognitionSession:
    detector = SignLanguageDetector(config=get_detector_config())
    return RecognitionSession(detector, config=get_session_config())


def get_session_factory() -> SessionFactory:
    return new_session
