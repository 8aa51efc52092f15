import yaml
import onnxruntime as ort
from pathlib import Path
from typing import List, Optional
import numpy as np
from einops import rearrange

from signlive.config import assets_dir


def load_labels(labels_path: Path) -> List[str]:
    """labels.txt: one `<index>\\t<label>` per line, indices 0..n-1."""
    if not labels_path.exists():
        raise FileNotFoundError(f"labels file not found: {labels_path}")

    with open(labels_path, "r", encoding="utf-8") as f:
        lines = [line.strip() for line in f if line.strip()]

    pairs = [line.split("\t", 1) for line in lines]
    by_idx = {int(idx): lbl.strip() for idx, lbl in pairs}
    return [by_idx[i] for i in range(len(by_idx))]


class LSTMClassifier:
    """
    Sequence classifier exported to ONNX.
    Input (1, T, F) float32, output (1, n_labels).
    """
    def __init__(self, asset_dir: Optional[Path] = None):
        self.asset_dir = Path(asset_dir) if asset_dir is not None else assets_dir()

        self.config = {}
        self.labels: List[str] = []
        self.session = None
        self.input_name = None

    def load(self) -> None:
        self.config = self._load_config()
        self.labels = self._load_labels()
        self.session = self._load_model()
        self.input_name = self.session.get_inputs()[0].name

        self._warmup()

    def close(self) -> None:
        self.session = None

    def _load_config(self) -> dict:
        config_path = self.asset_dir / "config.yml"
        with open(config_path, "r", encoding="utf-8") as f:
            return yaml.safe_load(f)

    def _load_labels(self) -> List[str]:
        return load_labels(self.asset_dir / self.config["model"].get("labels", "labels.txt"))

    def _load_model(self):
        model_path = self.asset_dir / self.config["model"]["weights"]

        providers = ["CPUExecutionProvider"]
        if self.config.get("device") == "cuda":
            providers = ["CUDAExecutionProvider", "CPUExecutionProvider"]

        return ort.InferenceSession(
            str(model_path),
            providers=providers
        )

    def _warmup(self):
        stream = self.config["stream"]
        dummy = np.zeros((stream["sequence_length"], stream["landmark_count"]), dtype=np.float32)
        self.predict(dummy)

    @staticmethod
    def _softmax(x: np.ndarray) -> np.ndarray:
        x = x - np.max(x, axis=1, keepdims=True)
        exp = np.exp(x)
        return exp / np.sum(exp, axis=1, keepdims=True)

    def predict(self, window: np.ndarray) -> np.ndarray:
        if self.session is None:
            raise RuntimeError("classifier is not loaded")

        clip = rearrange(np.asarray(window, dtype=np.float32), "t f -> 1 t f")
        out = self.session.run(None, {self.input_name: clip})[0]

        # the exported LSTM ends in softmax; raw logits need it applied here
        if self.config["model"].get("output", "probs") == "logits":
            out = self._softmax(out)

        return np.squeeze(out, axis=0)
