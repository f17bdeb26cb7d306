"""
Resource bootstrap: vision engine -> face detector -> classifier session + labels.

The bootstrapper walks a fixed state machine and produces a single immutable
PipelineContext. Any failing step is terminal: the result is FAILED with a
reason, nothing is retried, and resources loaded by earlier steps are kept.
"""
from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable, List, Optional, Tuple
import asyncio
import json
import logging
import os

import cv2

from facemood.config import Settings
from facemood.engines import (
    CascadeDetector,
    InferenceEngine,
    InferenceSession,
    OnnxInferenceEngine,
    OpenCVVisionEngine,
    VisionEngine,
)
from facemood.errors import BootstrapFailure

logger = logging.getLogger(__name__)

DEFAULT_CASCADE = "haarcascade_frontalface_default.xml"


class BootState(str, Enum):
    UNINITIALIZED = "uninitialized"
    LOADING_ENGINE = "loading_engine"
    ENGINE_READY = "engine_ready"
    LOADING_DETECTOR = "loading_detector"
    DETECTOR_READY = "detector_ready"
    LOADING_CLASSIFIER = "loading_classifier"
    READY = "ready"
    FAILED = "failed"


@dataclass(frozen=True)
class PipelineContext:
    engine: Any
    vision: VisionEngine
    detector: CascadeDetector
    session: InferenceSession
    labels: Tuple[str, ...]


@dataclass(frozen=True)
class BootResult:
    state: BootState
    context: Optional[PipelineContext] = None
    reason: Optional[str] = None

    @property
    def ready(self) -> bool:
        return self.state is BootState.READY and self.context is not None


def default_cascade_path() -> str:
    return os.path.join(cv2.data.haarcascades, DEFAULT_CASCADE)


async def fetch_bytes(location: str) -> bytes:
    return await asyncio.to_thread(Path(location).read_bytes)


async def fetch_labels(location: str) -> List[str]:
    """Read the ordered label list (a JSON array of strings)."""
    try:
        raw = await fetch_bytes(location)
        labels = json.loads(raw.decode("utf-8"))
    except (OSError, ValueError) as e:
        raise BootstrapFailure(f"could not load labels from {location}: {e}") from e
    if not isinstance(labels, list) or not all(isinstance(x, str) for x in labels):
        raise BootstrapFailure(f"labels file {location} is not a JSON list of strings")
    return labels


class Bootstrapper:
    def __init__(
        self,
        settings: Settings,
        vision: VisionEngine | None = None,
        inference: InferenceEngine | None = None,
        on_status: Callable[[str], None] | None = None,
    ):
        self.s = settings
        self.vision = vision if vision is not None else OpenCVVisionEngine()
        self.inference = inference if inference is not None else OnnxInferenceEngine()
        self._on_status = on_status
        self._state = BootState.UNINITIALIZED
        self._result: Optional[BootResult] = None

        # partial resources survive a failed step
        self.engine: Any = None
        self.detector: Optional[CascadeDetector] = None
        self.session: Optional[InferenceSession] = None
        self.labels: Optional[List[str]] = None

    @property
    def state(self) -> BootState:
        return self._state

    def _enter(self, state: BootState, message: str | None = None) -> None:
        self._state = state
        logger.debug(f"[bootstrap] -> {state.value}")
        if message and self._on_status is not None:
            self._on_status(message)

    async def ensure_engine(self):
        """Initialize the vision engine once; later calls return the same handle."""
        if self.engine is None:
            self.engine = self.vision.load_engine()
        return self.engine

    async def _load_detector(self) -> CascadeDetector:
        location = self.s.CASCADE_PATH or default_cascade_path()
        try:
            data = await fetch_bytes(location)
        except OSError as e:
            raise BootstrapFailure(f"could not fetch cascade {location}: {e}") from e
        try:
            path = self.vision.register_file(DEFAULT_CASCADE, data)
            detector = self.vision.create_cascade()
            loaded = detector.load(path)
        except Exception as e:
            raise BootstrapFailure(f"could not register cascade {location}: {e}") from e
        if not loaded:
            raise BootstrapFailure(f"cascade load() failed for {location}")
        return detector

    async def _load_classifier(self) -> Tuple[InferenceSession, List[str]]:
        try:
            session = await asyncio.to_thread(
                self.inference.create_session, self.s.MODEL_PATH, self.s.EXECUTION_PROVIDERS
            )
        except Exception as e:
            raise BootstrapFailure(f"could not create session for {self.s.MODEL_PATH}: {e}") from e
        if not session.input_names or not session.output_names:
            raise BootstrapFailure(f"model {self.s.MODEL_PATH} declares no inputs or outputs")
        self.session = session
        labels = await fetch_labels(self.s.LABELS_PATH)
        return session, labels

    async def initialize(self) -> BootResult:
        if self._result is not None:
            return self._result

        try:
            self._enter(BootState.LOADING_ENGINE, "loading OpenCV...")
            try:
                await self.ensure_engine()
            except Exception as e:
                raise BootstrapFailure(f"vision engine failed to initialize: {e}") from e
            self._enter(BootState.ENGINE_READY)

            self._enter(BootState.LOADING_DETECTOR, "loading Haar cascade...")
            self.detector = await self._load_detector()
            self._enter(BootState.DETECTOR_READY)

            self._enter(BootState.LOADING_CLASSIFIER, "loading ONNX model...")
            session, labels = await self._load_classifier()
            self.labels = labels
        except BootstrapFailure as e:
            logger.error(f"[bootstrap] failed in {self._state.value}: {e}")
            self._enter(BootState.FAILED, f"startup failed: {e}")
            self._result = BootResult(state=BootState.FAILED, reason=str(e))
            return self._result

        context = PipelineContext(
            engine=self.engine,
            vision=self.vision,
            detector=self.detector,
            session=session,
            labels=tuple(labels),
        )
        self._enter(BootState.READY, "ready")
        logger.info(f"[bootstrap] ready labels={len(labels)} input={session.input_names[0]}")
        self._result = BootResult(state=BootState.READY, context=context)
        return self._result
