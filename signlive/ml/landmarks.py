from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

import numpy as np
import mediapipe as mp

from signlive.config import assets_dir
from signlive.errors import TransientDetectionError


def lms_to_xy(hand_landmarks) -> np.ndarray:
    """hand_landmarks: 21 landmarks -> [x0, y0, x1, y1, ...]"""
    return np.array(
        [c for lm in hand_landmarks for c in (lm.x, lm.y)],
        dtype=np.float32,
    )


class HandLandmarkExtractor:
    """
    MediaPipe Hand Landmarker (Tasks API, VIDEO mode).
    Only the first detected hand is used.
    """
    def __init__(
        self,
        model_path: Optional[str] = None,
        num_hands: int = 1,
        min_hand_detection_confidence: float = 0.7,
        min_hand_presence_confidence: float = 0.5,
        min_tracking_confidence: float = 0.5,
    ):
        self.model_path = model_path
        self.num_hands = num_hands
        self.min_hand_detection_confidence = min_hand_detection_confidence
        self.min_hand_presence_confidence = min_hand_presence_confidence
        self.min_tracking_confidence = min_tracking_confidence

        self._landmarker = None
        self._last_ts_ms = 0

    def load(self) -> None:
        model_path = self._resolve_model_path(self.model_path)

        BaseOptions = mp.tasks.BaseOptions
        HandLandmarker = mp.tasks.vision.HandLandmarker
        HandLandmarkerOptions = mp.tasks.vision.HandLandmarkerOptions
        RunningMode = mp.tasks.vision.RunningMode

        options = HandLandmarkerOptions(
            base_options=BaseOptions(model_asset_path=str(model_path)),
            running_mode=RunningMode.VIDEO,
            num_hands=self.num_hands,
            min_hand_detection_confidence=self.min_hand_detection_confidence,
            min_hand_presence_confidence=self.min_hand_presence_confidence,
            min_tracking_confidence=self.min_tracking_confidence,
        )

        self._landmarker = HandLandmarker.create_from_options(options)

    def close(self) -> None:
        if self._landmarker is not None:
            self._landmarker.close()
            self._landmarker = None

    @staticmethod
    def _resolve_model_path(model_path: Optional[str]) -> Path:
        """
        Looks for hand_landmarker.task.
        Priority:
          1) explicit model_path argument
          2) env SIGNLIVE_HAND_TASK_PATH
          3) repo root / hand_landmarker.task
          4) assets directory
          5) current directory
        """
        if model_path:
            p = Path(model_path).expanduser().resolve()
            if not p.exists():
                raise FileNotFoundError(f"hand_landmarker.task not found: {p}")
            return p

        envp = os.getenv("SIGNLIVE_HAND_TASK_PATH", "").strip()
        if envp:
            p = Path(envp).expanduser().resolve()
            if not p.exists():
                raise FileNotFoundError(f"SIGNLIVE_HAND_TASK_PATH points to a missing file: {p}")
            return p

        here = Path(__file__).resolve()
        # .../signlive/ml/landmarks.py -> repo root = parents[2]
        candidates = [
            here.parents[2] / "hand_landmarker.task",
            assets_dir() / "hand_landmarker.task",
            Path.cwd() / "hand_landmarker.task",
        ]
        for c in candidates:
            if c.exists():
                return c.resolve()

        raise FileNotFoundError(
            "hand_landmarker.task not found. "
            "Put it in the repository root or set SIGNLIVE_HAND_TASK_PATH."
        )

    def _ensure_ts(self, ts_ms: int) -> int:
        # MediaPipe VIDEO mode needs strictly increasing timestamps.
        if ts_ms <= self._last_ts_ms:
            ts_ms = self._last_ts_ms + 1
        self._last_ts_ms = ts_ms
        return ts_ms

    def extract(self, frame_bgr: np.ndarray, timestamp_ms: int) -> Optional[np.ndarray]:
        """
        frame_bgr: np.ndarray (H, W, 3), uint8
        Returns np.ndarray (42,) or None when no hand is visible.
        """
        if self._landmarker is None:
            raise TransientDetectionError("landmarker is not loaded")
        if frame_bgr is None or frame_bgr.ndim != 3 or frame_bgr.shape[2] != 3:
            raise TransientDetectionError("expected a BGR image of shape (H, W, 3)")

        ts_ms = self._ensure_ts(int(timestamp_ms))

        # BGR -> RGB
        frame_rgb = np.ascontiguousarray(frame_bgr[:, :, ::-1])
        mp_image = mp.Image(image_format=mp.ImageFormat.SRGB, data=frame_rgb)
        result = self._landmarker.detect_for_video(mp_image, ts_ms)

        if not result.hand_landmarks:
            return None
        return lms_to_xy(result.hand_landmarks[0])
