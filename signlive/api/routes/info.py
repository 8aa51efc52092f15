from fastapi import APIRouter, Depends

from signlive.config import DetectorConfig, SessionConfig, assets_dir
from signlive.ml.runtime import load_labels
from signlive.schemas import InfoOut
from ..deps import get_detector_config, get_session_config


router = APIRouter(prefix="/api/v1", tags=["info"])


def get_labels():
    return load_labels(assets_dir() / "labels.txt")


@router.get("/health")
def health():
    return {"ok": True}


@router.get("/info", response_model=InfoOut)
def info(
    labels=Depends(get_labels),
    det: DetectorConfig = Depends(get_detector_config),
    sess: SessionConfig = Depends(get_session_config),
):
    return InfoOut(
        labels=labels,
        sequence_length=det.sequence_length,
        min_fill=det.min_fill,
        throttle_ms=int(round(det.throttle_s * 1000)),
        display_threshold=sess.display_threshold,
        history_threshold=sess.history_threshold,
        dedup_window_ms=int(round(sess.dedup_window_s * 1000)),
        history_size=sess.history_size,
    )
