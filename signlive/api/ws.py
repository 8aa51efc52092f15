from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
import asyncio
import base64
import binascii
import time
import numpy as np
import cv2
import os
import logging

from signlive.errors import InitializationError, TransientDetectionError
from signlive.session import RecognitionSession
from .deps import SessionFactory, get_session_factory

router = APIRouter()

DEBUG_WS = os.getenv("SIGNLIVE_WS_DEBUG", "0") == "1"
PING_INTERVAL_S = 10.0

logger = logging.getLogger("signlive.ws")


def decode_frame_bgr(data_url: str) -> np.ndarray:
    """data:image/jpeg;base64,... -> np.ndarray (H, W, 3) BGR"""
    _, _, encoded = data_url.rpartition(",")
    try:
        img_bytes = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as e:
        raise TransientDetectionError(f"bad base64 payload: {e}") from e
    img = cv2.imdecode(np.frombuffer(img_bytes, np.uint8), cv2.IMREAD_COLOR)
    if img is None:
        raise TransientDetectionError("cv2.imdecode returned None")
    return img


def state_message(session: RecognitionSession) -> dict:
    return {"type": "state", **session.snapshot().model_dump()}


@router.websocket("/ws/recognize")
async def recognize_ws(ws: WebSocket, session_factory: SessionFactory = Depends(get_session_factory)):
    await ws.accept()

    alive = True
    last_ping = time.monotonic()

    # single slot => always the latest frame, no lag builds up
    q: asyncio.Queue[str] = asyncio.Queue(maxsize=1)

    frames_in = 0
    frames_dropped = 0
    decode_err = 0
    processed = 0
    last_debug = 0.0

    session = session_factory()

    async def send(payload: dict):
        nonlocal alive
        try:
            await ws.send_json(payload)
        except (WebSocketDisconnect, RuntimeError):
            alive = False

    async def send_progress(value: int):
        await send({"type": "loading", "progress": value})

    async def receiver():
        nonlocal alive, frames_in, frames_dropped
        try:
            while alive:
                try:
                    msg = await ws.receive_json()
                except (ValueError, KeyError):
                    # invalid JSON or a binary frame
                    logger.debug("ignoring non-JSON message")
                    continue
                kind = msg.get("type") if isinstance(msg, dict) else None

                if kind == "frame":
                    data = msg.get("data")
                    if not isinstance(data, str):
                        continue
                    frames_in += 1
                    if q.full():
                        frames_dropped += 1
                        q.get_nowait()
                    q.put_nowait(data)
                elif kind == "start":
                    session.start()
                    await send(state_message(session))
                elif kind == "stop":
                    session.stop()
                    await send(state_message(session))
                elif kind == "clear":
                    session.clear_history()
                    await send(state_message(session))
        except WebSocketDisconnect:
            alive = False

    async def pinger():
        nonlocal last_ping
        while alive:
            now = time.monotonic()
            if (now - last_ping) > PING_INTERVAL_S:
                last_ping = now
                await send({"type": "ping"})
            await asyncio.sleep(0.25)

    recv_task = None
    ping_task = None

    try:
        try:
            await session.initialize(progress=send_progress)
        except InitializationError as e:
            await send({"type": "error", "detail": str(e)})
            await send(state_message(session))
            return

        await send(state_message(session))

        recv_task = asyncio.create_task(receiver())
        ping_task = asyncio.create_task(pinger())

        while alive:
            try:
                data_url = await asyncio.wait_for(q.get(), timeout=1.0)
            except asyncio.TimeoutError:
                if recv_task.done():
                    break
                continue

            try:
                frame = decode_frame_bgr(data_url)
            except TransientDetectionError as e:
                decode_err += 1
                logger.debug("dropping frame: %s", e)
                continue

            if await session.process_frame(frame):
                processed += 1
                await send(state_message(session))

            now = time.monotonic()
            if DEBUG_WS and (now - last_debug) > 1.0:
                last_debug = now
                logger.info(
                    f"frames_in={frames_in} dropped={frames_dropped} "
                    f"decode_err={decode_err} processed={processed} "
                    f"last={session.current_prediction}:{session.confidence:.2f}"
                )

    except WebSocketDisconnect:
        pass
    finally:
        alive = False

        tasks = [t for t in (recv_task, ping_task) if t is not None]
        for t in tasks:
            t.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        await session.close()
