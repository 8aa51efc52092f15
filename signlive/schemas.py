from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional


class ClassificationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    gesture: str
    confidence: float = Field(ge=0.0, le=1.0)


class Prediction(BaseModel):
    model_config = ConfigDict(frozen=True)

    gesture: str
    confidence: float = Field(ge=0.0, le=1.0)
    timestamp: float


class SessionState(BaseModel):
    model_config = ConfigDict(frozen=True)

    active: bool = False
    current_prediction: Optional[str] = None
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    history: List[Prediction] = []
    model_loaded: bool = False
    model_loading_progress: int = Field(default=0, ge=0, le=100)
    model_error: Optional[str] = None


class InfoOut(BaseModel):
    labels: List[str]
    sequence_length: int
    min_fill: int
    throttle_ms: int
    display_threshold: float
    history_threshold: float
    dedup_window_ms: int
    history_size: int
