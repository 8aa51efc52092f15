from __future__ import annotations

import asyncio
import concurrent.futures
import logging
import time
from typing import Callable, Optional

import numpy as np

from signlive.config import DetectorConfig
from signlive.errors import InitializationError
from signlive.ml.buffer import LandmarkWindow
from signlive.ml.interfaces import LandmarkExtractor, SequenceClassifier
from signlive.schemas import ClassificationResult

logger = logging.getLogger("signlive.detector")


class SignLanguageDetector:
    """
    Stateful per-session detector:
    - landmark extractor (MediaPipe) and sequence classifier (ONNX LSTM)
    - sliding window of the most recent hand poses
    - throttling and busy-flag gating, excess frames are dropped

    Blocking calls run on a single worker thread, so the landmarker is always
    created, used and closed from the same thread.
    """
    def __init__(
        self,
        extractor: Optional[LandmarkExtractor] = None,
        classifier: Optional[SequenceClassifier] = None,
        config: Optional[DetectorConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        if extractor is None:
            from signlive.ml.landmarks import HandLandmarkExtractor
            extractor = HandLandmarkExtractor()
        if classifier is None:
            from signlive.ml.runtime import LSTMClassifier
            classifier = LSTMClassifier()

        self.config = config or DetectorConfig()
        self.extractor = extractor
        self.classifier = classifier
        self.window = LandmarkWindow(self.config.sequence_length, self.config.landmark_count)

        self._clock = clock
        self._executor: Optional[concurrent.futures.ThreadPoolExecutor] = None
        self._ready = False
        self._busy = False
        self._disposed = False
        self._last_run: Optional[float] = None

    @property
    def is_ready(self) -> bool:
        return self._ready

    @property
    def is_busy(self) -> bool:
        return self._busy

    @property
    def labels(self):
        return list(self.classifier.labels)

    async def _run(self, fn, *args):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, fn, *args)

    async def initialize(self) -> None:
        if self._ready:
            logger.warning("detector already initialized, ignoring")
            return
        if self._disposed:
            raise InitializationError("detector has been disposed")

        self._executor = concurrent.futures.ThreadPoolExecutor(max_workers=1)
        try:
            logger.info("loading sequence classifier")
            await self._run(self.classifier.load)
            logger.info("loading hand landmarker")
            await self._run(self.extractor.load)
        except Exception as e:
            logger.error("failed to initialize detector: %s", e)
            await self._release()
            raise InitializationError(str(e)) from e

        self._ready = True
        logger.info("detector ready, labels=%s", self.labels)

    def accepts_frame(self) -> bool:
        """False when the next detect_gesture call would be skipped (busy, not ready, throttled)."""
        return not self._should_skip(self._clock())

    def _should_skip(self, now: float) -> bool:
        if self._busy or not self._ready:
            return True
        if self._last_run is not None and (now - self._last_run) < self.config.throttle_s:
            return True
        return False

    def _classify(self) -> Optional[ClassificationResult]:
        window = self.window.get_window()
        probs = np.asarray(self.classifier.predict(window), dtype=np.float32).reshape(-1)

        idx = int(np.argmax(probs))
        confidence = float(probs[idx])

        if confidence <= self.config.accept_threshold:
            return None

        labels = self.classifier.labels
        if idx >= len(labels):
            raise ValueError(f"classifier output index {idx} has no label ({len(labels)} labels)")
        return ClassificationResult(gesture=labels[idx], confidence=min(1.0, max(0.0, confidence)))

    async def detect_gesture(self, frame: np.ndarray) -> Optional[ClassificationResult]:
        """
        frame: np.ndarray (H, W, 3) BGR
        Returns the top label if its score passes accept_threshold, else None.
        Never raises: per-frame failures are logged and reported as None.
        """
        now = self._clock()
        if self._should_skip(now):
            return None

        self._busy = True
        self._last_run = now
        try:
            landmarks = await self._run(self.extractor.extract, frame, int(now * 1000))
            if landmarks is not None:
                self.window.add(landmarks)

            if not self.window.has_at_least(self.config.min_fill):
                return None

            return await self._run(self._classify)
        except Exception as e:
            logger.warning("error detecting gesture: %s", e)
            logger.debug("detection failure", exc_info=True)
            return None
        finally:
            self._busy = False

    async def _release(self) -> None:
        if self._executor is None:
            return
        for name, close in (("classifier", self.classifier.close), ("extractor", self.extractor.close)):
            try:
                await self._run(close)
            except Exception:
                logger.exception("failed to close %s", name)
        self._executor.shutdown(wait=False)
        self._executor = None

    async def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        self._ready = False

        await self._release()
        self.window.reset()
        logger.info("detector disposed")
