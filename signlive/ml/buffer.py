from collections import deque
import numpy as np


class LandmarkWindow:
    def __init__(self, window: int, landmark_count: int):
        self.window = window
        self.landmark_count = landmark_count

        self._frames = deque(maxlen=window)

    def __len__(self) -> int:
        return len(self._frames)

    def reset(self):
        self._frames.clear()

    def add(self, frame: np.ndarray):
        """
        frame: np.ndarray of shape (landmark_count,)
        """
        frame = np.asarray(frame, dtype=np.float32).reshape(-1)
        if frame.shape[0] != self.landmark_count:
            raise ValueError(
                f"expected {self.landmark_count} values per frame, got {frame.shape[0]}"
            )
        self._frames.append(frame)

    def has_at_least(self, count: int) -> bool:
        return len(self._frames) >= count

    @property
    def is_full(self) -> bool:
        return len(self._frames) == self.window

    def get_window(self) -> np.ndarray:
        """
        Returns array of shape (window, landmark_count).
        Missing frames are zero rows placed before the real ones.
        """
        data = np.zeros((self.window, self.landmark_count), dtype=np.float32)
        if self._frames:
            data[self.window - len(self._frames):] = np.stack(self._frames, axis=0)
        return data
