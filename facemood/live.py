# facemood/live.py
"""
Live (real-time) emotion session.

Wires the pieces together in the order they must come up:
  1. bootstrap engine, cascade, ONNX session and labels (terminal on failure)
  2. open the camera (terminal on failure)
  3. run the frame scheduler until stopped

The scheduler is never constructed unless both earlier steps succeed.
This module also provides run_live_overlay, which shows the annotated camera
feed in an OpenCV window.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import List, Optional

from facemood.bootstrap import Bootstrapper, BootResult, BootState
from facemood.capture import CaptureSource, FrameBuffer
from facemood.config import Settings
from facemood.engines import InferenceEngine, VisionEngine
from facemood.errors import CaptureFailure
from facemood.models import FrameReport, LiveStatus
from facemood.scheduler import FrameScheduler, Sink, STATUS_RUNNING
from facemood.visual import OverlayWindow, ReportBoard

logger = logging.getLogger(__name__)


class LiveSession:
    """One camera, one pipeline context, one scheduler."""
    def __init__(
        self,
        settings: Settings,
        source=None,
        vision: VisionEngine | None = None,
        inference: InferenceEngine | None = None,
        sinks: Optional[List[Sink]] = None,
    ):
        self.s = settings
        self.source = source if source is not None else CaptureSource(settings.CAMERA_INDEX)
        self.bootstrapper = Bootstrapper(settings, vision=vision, inference=inference,
                                         on_status=self._set_status)
        self.board = ReportBoard()
        self.sinks: List[Sink] = [self.board] + list(sinks or [])
        self.scheduler: Optional[FrameScheduler] = None
        self.boot: Optional[BootResult] = None
        self.status = "not started"
        self.started_at: Optional[float] = None
        self._stop_requested = False
        self._closed = False

    def _set_status(self, message: str) -> None:
        self.status = message
        logger.info(f"[live] {message}")

    def _dispatch(self, report: FrameReport, frame: FrameBuffer) -> None:
        self.status = report.status
        for sink in self.sinks:
            try:
                sink(report, frame)
            except Exception:
                logger.exception(f"[live] sink {sink!r} failed")

    @property
    def state(self) -> str:
        if self.scheduler is not None and self.scheduler.failed:
            return "failed"
        if self.scheduler is not None and self.scheduler.running:
            return "running"
        return self.bootstrapper.state.value

    @property
    def running(self) -> bool:
        return self.scheduler is not None and self.scheduler.running

    async def run(self, max_ticks: int | None = None) -> BootResult:
        self.started_at = time.time()
        self.boot = await self.bootstrapper.initialize()
        if not self.boot.ready:
            return self.boot
        if self._stop_requested:
            self._set_status("stopped")
            return self.boot

        self._set_status("requesting camera...")
        try:
            await self.source.start()
        except CaptureFailure as e:
            logger.error(f"[live] camera unavailable: {e}")
            self._set_status(f"camera failed: {e}")
            return self.boot

        self.scheduler = FrameScheduler(self.boot.context, self.source, self.s, sink=self._dispatch)
        if self._stop_requested:
            self.scheduler.stop()
        self._set_status(STATUS_RUNNING)
        try:
            await self.scheduler.run(max_ticks=max_ticks)
        finally:
            self.source.release()
            if not self.scheduler.failed:
                self.status = "stopped" if self._stop_requested else self.scheduler.status
            else:
                self.status = self.scheduler.status
        return self.boot

    def stop(self) -> None:
        self._stop_requested = True
        if self.scheduler is not None:
            self.scheduler.stop()

    def close(self) -> None:
        """Release engine scratch resources; safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        self.bootstrapper.vision.close()

    @property
    def closed(self) -> bool:
        return self._closed

    def snapshot(self) -> LiveStatus:
        return LiveStatus(
            running=self.running,
            state=self.state,
            status=self.status,
            started_at=self.started_at,
            last_report=self.board.latest,
        )


# -----------------------------------------------------------------------------
# Live camera overlay window
# -----------------------------------------------------------------------------
def run_live_overlay(settings: Settings, camera_index: Optional[int] = None,
                     vision: VisionEngine | None = None,
                     inference: InferenceEngine | None = None) -> LiveSession:
    """
    Open webcam, classify the largest face each tick and draw boxes + label.

    Press 'q' to quit.
    """
    cam_idx = settings.CAMERA_INDEX if camera_index is None else camera_index
    window = OverlayWindow()
    session = LiveSession(settings, source=CaptureSource(cam_idx), vision=vision,
                          inference=inference, sinks=[window])
    window.on_quit = session.stop
    try:
        result = asyncio.run(session.run())
        if result.state is BootState.FAILED:
            raise RuntimeError(result.reason or "startup failed")
        if session.scheduler is None:
            raise RuntimeError(session.status)
    finally:
        window.close()
        session.close()
    return session
