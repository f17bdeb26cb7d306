"""
Frame scheduler: one detection + classification pass per tick.

Passes never overlap. The next tick is awaited only after the current pass
(including the awaited inference) has finished, so at most one inference is in
flight and frames that arrive meanwhile are simply never looked at.
"""
from __future__ import annotations
from typing import Awaitable, Callable, List, Optional, Protocol
import asyncio
import logging

from facemood.bootstrap import PipelineContext
from facemood.capture import FrameBuffer
from facemood.classifier import EmotionClassifier
from facemood.config import Settings
from facemood.decision import decide
from facemood.detector import FaceDetector, to_grayscale
from facemood.models import EmotionState, FrameReport, Region
from facemood.preprocess import preprocess
from facemood.selector import clamp_region, select_region

logger = logging.getLogger(__name__)

STATUS_RUNNING = "running..."
STATUS_NO_FACE = "no face"


class FrameSource(Protocol):
    def current_frame(self) -> Optional[FrameBuffer]: ...


Sink = Callable[[FrameReport, FrameBuffer], None]


class FrameScheduler:
    def __init__(
        self,
        context: PipelineContext | None,
        source: FrameSource,
        settings: Settings,
        sink: Sink | None = None,
        tick: Callable[[], Awaitable[None]] | None = None,
    ):
        self.context = context
        self.source = source
        self.s = settings
        self.sink = sink
        self._tick_source = tick
        self._stop_event = asyncio.Event()
        self._running = False

        self.detector: Optional[FaceDetector] = None
        self.classifier: Optional[EmotionClassifier] = None
        if context is not None:
            self.detector = FaceDetector(
                context.detector,
                scale_factor=settings.SCALE_FACTOR,
                min_neighbors=settings.MIN_NEIGHBORS,
            )
            self.classifier = EmotionClassifier(context.session, timeout=settings.INFERENCE_TIMEOUT)

        self.emotion = EmotionState()
        self.status = "idle"
        self.last_report: Optional[FrameReport] = None
        self.ticks = 0
        self.passes = 0
        self.failures = 0
        self.consecutive_failures = 0
        self.failed = False

    @property
    def running(self) -> bool:
        return self._running

    def stop(self) -> None:
        """Ask the loop to exit after the pass in progress."""
        self._stop_event.set()

    # ---- one pass ----
    def _scan(self, frame: FrameBuffer) -> List[Region]:
        return self.detector.detect(to_grayscale(frame))

    async def run_pass(self) -> Optional[FrameReport]:
        """
        Detector -> selector -> preprocessor -> classifier -> decision.

        Returns None when the pass was skipped (no context or no frame yet).
        Errors are converted into the report's status and never raised.
        """
        ctx = self.context
        if ctx is None or self.detector is None or self.classifier is None:
            return None
        # camera reads and cascade scans block; keep them off the event loop
        frame = await asyncio.to_thread(self.source.current_frame)
        if frame is None:
            return None

        detections: List[Region] = []
        selected: Optional[Region] = None
        try:
            detections = await asyncio.to_thread(self._scan, frame)
            best = select_region(detections)
            if best is None:
                status = STATUS_NO_FACE
            else:
                selected = clamp_region(best, frame.width, frame.height)
                tensor = preprocess(frame, selected, self.s.INPUT_SIZE)
                logits = await self.classifier.classify(tensor)
                self.emotion = decide(logits, ctx.labels)
                status = STATUS_RUNNING
            self.consecutive_failures = 0
        except Exception as e:
            logger.exception("[scheduler] pass failed; continuing with next tick")
            self.failures += 1
            self.consecutive_failures += 1
            status = f"error: {e}"

        self.passes += 1
        self.status = status
        report = FrameReport(
            tick=self.ticks,
            status=status,
            detections=detections,
            selected=selected,
            emotion=self.emotion,
        )
        self.last_report = report
        self._emit(report, frame)
        return report

    def _emit(self, report: FrameReport, frame: FrameBuffer) -> None:
        if self.sink is None:
            return
        try:
            self.sink(report, frame)
        except Exception:
            logger.exception("[scheduler] presentation sink raised; ignoring")

    # ---- loop ----
    async def _tick(self) -> None:
        if self._tick_source is not None:
            await self._tick_source()
            return
        interval = max(0.0, float(self.s.TICK_INTERVAL))
        if interval == 0.0:
            await asyncio.sleep(0)
            return
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=interval)
        except asyncio.TimeoutError:
            pass

    def _should_escalate(self) -> bool:
        limit = self.s.MAX_CONSECUTIVE_FAILURES
        return limit > 0 and self.consecutive_failures >= limit

    async def run(self, max_ticks: int | None = None) -> None:
        """Tick until stop() is called, max_ticks is reached or failures escalate."""
        if self._running:
            raise RuntimeError("scheduler already running")
        self._running = True
        logger.debug(f"[scheduler] loop start max_ticks={max_ticks}")
        try:
            while not self._stop_event.is_set():
                await self.run_pass()
                self.ticks += 1
                if self._should_escalate():
                    self.failed = True
                    self.status = f"failed: {self.consecutive_failures} consecutive pass failures"
                    logger.error(f"[scheduler] {self.status}; stopping")
                    break
                if max_ticks is not None and self.ticks >= max_ticks:
                    break
                await self._tick()
        finally:
            self._running = False
            logger.debug(f"[scheduler] loop exit ticks={self.ticks} passes={self.passes} failures={self.failures}")
