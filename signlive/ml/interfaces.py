from typing import Optional, Protocol, Sequence

import numpy as np


class LandmarkExtractor(Protocol):
    def load(self) -> None: ...

    def extract(self, frame_bgr: np.ndarray, timestamp_ms: int) -> Optional[np.ndarray]:
        """Returns the (x, y) landmarks of the first hand, or None if no hand is found."""
        ...

    def close(self) -> None: ...


class SequenceClassifier(Protocol):
    labels: Sequence[str]

    def load(self) -> None: ...

    def predict(self, window: np.ndarray) -> np.ndarray:
        """window: (sequence_length, landmark_count). Returns probabilities per label."""
        ...

    def close(self) -> None: ...
