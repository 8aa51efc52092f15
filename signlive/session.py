from __future__ import annotations

import logging
import time
from typing import Awaitable, Callable, List, Optional

import numpy as np

from signlive.config import SessionConfig
from signlive.errors import InitializationError
from signlive.ml.detector import SignLanguageDetector
from signlive.schemas import ClassificationResult, Prediction, SessionState

logger = logging.getLogger("signlive.session")

ProgressCallback = Callable[[int], Awaitable[None]]


class RecognitionSession:
    """
    Owns one detector and turns its per-frame output into display state:
    - two-tier thresholds (display / history)
    - confidence decay while nothing is recognized
    - bounded history with same-label de-duplication
    """
    def __init__(
        self,
        detector: Optional[SignLanguageDetector] = None,
        config: Optional[SessionConfig] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.detector = detector if detector is not None else SignLanguageDetector()
        self.config = config or SessionConfig()
        self._clock = clock

        self.active = False
        self.current_prediction: Optional[str] = None
        self.confidence = 0.0
        self.history: List[Prediction] = []
        self.model_loaded = False
        self.model_loading_progress = 0
        self.model_error: Optional[str] = None

        self._processing = False
        self._init_started = False
        self._closed = False

    async def _set_progress(self, value: int, progress: Optional[ProgressCallback]):
        self.model_loading_progress = value
        if progress is not None:
            await progress(value)

    async def initialize(self, progress: Optional[ProgressCallback] = None) -> None:
        if self._init_started:
            return
        self._init_started = True

        await self._set_progress(10, progress)
        try:
            await self._set_progress(50, progress)
            await self.detector.initialize()
            await self._set_progress(90, progress)
        except InitializationError as e:
            self.model_loading_progress = 0
            self.model_error = str(e) or "model failed to load"
            self._init_started = False
            logger.error("failed to initialize detector: %s", self.model_error)
            raise

        self.model_loaded = True
        self.model_error = None
        await self._set_progress(100, progress)
        logger.info("model ready for real-time detection")

    def start(self) -> bool:
        if not self.model_loaded:
            logger.info("start ignored, model not loaded")
            return False
        self.active = True
        logger.info("detection started")
        return True

    def stop(self) -> None:
        self.active = False
        self.current_prediction = None
        self.confidence = 0.0
        logger.info("detection stopped")

    def clear_history(self) -> None:
        self.history = []

    async def process_frame(self, frame: np.ndarray) -> bool:
        """
        Returns False when the frame was skipped (inactive, not loaded, busy, throttled).
        """
        if not self.active or not self.model_loaded or self._processing:
            return False
        # throttled or busy detector: the frame is dropped, display state is not decayed
        if not self.detector.accepts_frame():
            return False

        self._processing = True
        try:
            result = await self.detector.detect_gesture(frame)
        except Exception:
            logger.exception("error processing frame")
            return True
        finally:
            self._processing = False

        # stopped while the frame was in flight
        if not self.active:
            return True

        self._apply(result)
        return True

    def _apply(self, result: Optional[ClassificationResult]) -> None:
        cfg = self.config

        if result is not None and result.confidence > cfg.display_threshold:
            self.current_prediction = result.gesture
            self.confidence = result.confidence

            if result.confidence > cfg.history_threshold:
                self._admit(Prediction(
                    gesture=result.gesture,
                    confidence=result.confidence,
                    timestamp=self._clock(),
                ))
            return

        self.confidence = max(0.0, self.confidence - cfg.decay_step)
        if self.confidence < cfg.clear_threshold:
            self.current_prediction = None

    def _admit(self, prediction: Prediction) -> bool:
        last = self.history[-1] if self.history else None
        if (
            last is not None
            and last.gesture == prediction.gesture
            and prediction.timestamp - last.timestamp < self.config.dedup_window_s
        ):
            return False

        self.history = (self.history + [prediction])[-self.config.history_size:]
        logger.info("recognized %s (%.2f)", prediction.gesture, prediction.confidence)
        return True

    def snapshot(self) -> SessionState:
        return SessionState(
            active=self.active,
            current_prediction=self.current_prediction,
            confidence=self.confidence,
            history=list(self.history),
            model_loaded=self.model_loaded,
            model_loading_progress=self.model_loading_progress,
            model_error=self.model_error,
        )

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self.active = False
        await self.detector.dispose()
