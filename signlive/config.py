import os
from dataclasses import dataclass
from pathlib import Path


ASSETS_DIR = Path(__file__).resolve().parent / "ml" / "assets"


def _env_float(name: str, default: float) -> float:
    return float(os.getenv(name, str(default)))


def _env_int(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


@dataclass(frozen=True)
class DetectorConfig:
    sequence_length: int = 30
    landmark_count: int = 42  # 21 landmarks * (x, y)
    min_fill: int = 10
    throttle_s: float = 0.3
    accept_threshold: float = 0.6

    def __post_init__(self):
        if self.sequence_length <= 0 or self.landmark_count <= 0:
            raise ValueError("sequence_length and landmark_count must be positive")
        if not 0 < self.min_fill <= self.sequence_length:
            raise ValueError(
                f"min_fill must be in 1..{self.sequence_length}, got {self.min_fill}"
            )
        if self.throttle_s < 0:
            raise ValueError("throttle_s must be >= 0")
        if not 0.0 <= self.accept_threshold <= 1.0:
            raise ValueError("accept_threshold must be in [0, 1]")

    @classmethod
    def from_env(cls) -> "DetectorConfig":
        return cls(
            sequence_length=_env_int("SIGNLIVE_SEQUENCE_LENGTH", cls.sequence_length),
            min_fill=_env_int("SIGNLIVE_MIN_FILL", cls.min_fill),
            throttle_s=_env_int("SIGNLIVE_THROTTLE_MS", int(cls.throttle_s * 1000)) / 1000.0,
            accept_threshold=_env_float("SIGNLIVE_ACCEPT_THRESHOLD", cls.accept_threshold),
        )


@dataclass(frozen=True)
class SessionConfig:
    display_threshold: float = 0.6
    history_threshold: float = 0.75
    dedup_window_s: float = 1.5
    decay_step: float = 0.08
    clear_threshold: float = 0.4
    history_size: int = 20

    def __post_init__(self):
        for name in ("display_threshold", "history_threshold", "clear_threshold"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be in [0, 1], got {value}")
        if self.display_threshold >= self.history_threshold:
            raise ValueError("display_threshold must be below history_threshold")
        if self.decay_step <= 0:
            raise ValueError("decay_step must be positive")
        if self.history_size <= 0:
            raise ValueError("history_size must be positive")
        if self.dedup_window_s < 0:
            raise ValueError("dedup_window_s must be >= 0")

    @classmethod
    def from_env(cls) -> "SessionConfig":
        return cls(
            display_threshold=_env_float("SIGNLIVE_DISPLAY_THRESHOLD", cls.display_threshold),
            history_threshold=_env_float("SIGNLIVE_HISTORY_THRESHOLD", cls.history_threshold),
            dedup_window_s=_env_int("SIGNLIVE_DEDUP_WINDOW_MS", int(cls.dedup_window_s * 1000)) / 1000.0,
            decay_step=_env_float("SIGNLIVE_DECAY_STEP", cls.decay_step),
            clear_threshold=_env_float("SIGNLIVE_CLEAR_THRESHOLD", cls.clear_threshold),
            history_size=_env_int("SIGNLIVE_HISTORY_SIZE", cls.history_size),
        )


def assets_dir() -> Path:
    envp = os.getenv("SIGNLIVE_ASSETS_DIR", "").strip()
    if envp:
        return Path(envp).expanduser().resolve()
    return ASSETS_DIR
