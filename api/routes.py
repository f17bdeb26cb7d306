"""
REST endpoints for image analysis and the live camera session.
"""
import asyncio
from fastapi import APIRouter, UploadFile, File, HTTPException
from fastapi.responses import JSONResponse
import logging

from facemood.config import Settings
from facemood.errors import BootstrapFailure, CaptureFailure
from facemood.live import LiveSession
from facemood.models import LiveStatus
from facemood.pipeline import analyze_image

import tempfile
import shutil
import os


live_session = {"session": None, "task": None}

router = APIRouter()
settings = Settings()
logger = logging.getLogger(__name__)

STOP_TIMEOUT = 5.0


def _make_session() -> LiveSession:
    return LiveSession(settings)


def _task_running() -> bool:
    task = live_session["task"]
    return task is not None and not task.done()


@router.post("/analyze/image")
async def analyze_image_route(file: UploadFile = File(...)):
    """
    Classify the largest face in an uploaded image.

    Args:
        file: Uploaded image file (any format OpenCV can decode).

    Returns:
        JSONResponse: FrameReport payload (status, detections, selected, emotion).
    """
    logger.debug(f"[api] /analyze/image filename={file.filename}")
    try:
        suffix = os.path.splitext(file.filename or "")[1] or ".jpg"
        with tempfile.NamedTemporaryFile(delete=False, suffix=suffix) as tmp:
            shutil.copyfileobj(file.file, tmp)
            tmp_path = tmp.name
    except Exception as e:
        logger.exception("[api] upload save failed")
        raise HTTPException(status_code=400, detail=f"Upload failed: {e}")

    try:
        report = await analyze_image(tmp_path, settings)
        return JSONResponse(report.model_dump())
    except CaptureFailure as e:
        raise HTTPException(status_code=400, detail=str(e))
    except BootstrapFailure as e:
        logger.exception("[api] analyze_image bootstrap failed")
        raise HTTPException(status_code=503, detail=str(e))
    except Exception as e:
        logger.exception("[api] analyze_image failed")
        raise HTTPException(status_code=500, detail=str(e))
    finally:
        try:
            os.unlink(tmp_path)
        except OSError:
            logger.warning(f"[api] failed to cleanup tmp file: {tmp_path}")


def _on_session_done(session: LiveSession, task: asyncio.Task) -> None:
    """Collect the run task's outcome and free the session's engine resources."""
    if task.cancelled():
        logger.info("[api] live session task cancelled")
    elif task.exception() is not None:
        logger.error("[api] live session crashed", exc_info=task.exception())
    else:
        logger.info(f"[api] live session ended: {session.status}")
    session.close()


def _retire_previous() -> None:
    session = live_session["session"]
    if session is not None:
        session.close()
    live_session["session"] = None
    live_session["task"] = None


@router.post("/live/start")
async def live_start():
    if _task_running():
        return {"status": "already_running"}
    _retire_previous()
    session = _make_session()
    task = asyncio.create_task(session.run())
    task.add_done_callback(lambda t: _on_session_done(session, t))
    live_session["session"] = session
    live_session["task"] = task
    logger.info("[api] live session started")
    return {"status": "started"}


@router.get("/live/status", response_model=LiveStatus)
async def live_status():
    session = live_session["session"]
    if session is None:
        return LiveStatus(running=False, state="uninitialized", status="not started")
    status = session.snapshot()
    status.running = _task_running()
    return status


@router.post("/live/stop")
async def live_stop():
    if not _task_running():
        if live_session["session"] is not None:
            live_session["session"].close()
        return {"status": "not_running"}
    session = live_session["session"]
    task = live_session["task"]
    session.stop()
    try:
        await asyncio.wait_for(task, timeout=STOP_TIMEOUT)
    except asyncio.TimeoutError:
        logger.warning("[api] live session did not stop in time; cancelling")
        task.cancel()
    finally:
        session.close()
    return {"status": "stopped"}
