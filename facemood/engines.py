"""
Engine adapters for the vision engine (OpenCV) and the inference engine (ONNX Runtime).

Both are reached through the small Protocols below so that the bootstrapper and
the pipeline stages never touch cv2 / onnxruntime objects directly. Tests swap
in fakes that satisfy the same Protocols.
"""
from __future__ import annotations
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple
import asyncio
import logging
import os
import shutil
import tempfile

import cv2
import numpy as np
import onnxruntime as ort

logger = logging.getLogger(__name__)

Rect = Tuple[int, int, int, int]


class CascadeDetector(Protocol):
    def load(self, path: str) -> bool: ...

    def detect_multi_scale(
        self,
        gray: np.ndarray,
        scale_factor: float,
        min_neighbors: int,
        min_size: Tuple[int, int],
    ) -> List[Rect]: ...


class VisionEngine(Protocol):
    def load_engine(self) -> Any: ...

    def register_file(self, name: str, data: bytes) -> str: ...

    def create_cascade(self) -> CascadeDetector: ...

    def close(self) -> None: ...


class InferenceSession(Protocol):
    input_names: List[str]
    output_names: List[str]

    async def run(self, feeds: Dict[str, np.ndarray]) -> Dict[str, np.ndarray]: ...


class InferenceEngine(Protocol):
    def create_session(self, model_path: str, providers: Sequence[str]) -> InferenceSession: ...


# -----------------------------------------------------------------------------
# OpenCV
# -----------------------------------------------------------------------------
class OpenCVCascade:
    """Haar cascade face detector backed by cv2.CascadeClassifier."""
    def __init__(self):
        self._cc = cv2.CascadeClassifier()

    def load(self, path: str) -> bool:
        try:
            ok = bool(self._cc.load(path))
        except cv2.error:
            logger.exception(f"[engine] cascade load raised for {path}")
            return False
        return ok and not self._cc.empty()

    def detect_multi_scale(self, gray, scale_factor=1.1, min_neighbors=3, min_size=(0, 0)) -> List[Rect]:
        rects = self._cc.detectMultiScale(
            gray,
            scaleFactor=scale_factor,
            minNeighbors=min_neighbors,
            minSize=min_size,
        )
        # detectMultiScale returns an empty tuple when nothing is found
        return [(int(x), int(y), int(w), int(h)) for (x, y, w, h) in rects]


class OpenCVVisionEngine:
    """
    Owns the cv2 handle and a scratch directory where fetched artifacts are
    registered so cv2 can load them by path.
    """
    def __init__(self):
        self._handle = None
        self._scratch: Optional[str] = None

    @property
    def scratch_dir(self) -> Optional[str]:
        return self._scratch

    def load_engine(self):
        if self._handle is not None:
            logger.debug("[engine] OpenCV already initialized; reusing handle")
            return self._handle
        if not hasattr(cv2, "CascadeClassifier"):
            raise RuntimeError("cv2 build has no CascadeClassifier (objdetect module missing)")
        self._scratch = tempfile.mkdtemp(prefix="facemood-")
        self._handle = cv2
        logger.debug(f"[engine] OpenCV {cv2.__version__} ready scratch={self._scratch}")
        return self._handle

    def register_file(self, name: str, data: bytes) -> str:
        if self._handle is None or self._scratch is None:
            raise RuntimeError("vision engine not initialized")
        path = os.path.join(self._scratch, os.path.basename(name))
        if os.path.exists(path):
            os.remove(path)
        with open(path, "wb") as f:
            f.write(data)
        return path

    def create_cascade(self) -> OpenCVCascade:
        if self._handle is None:
            raise RuntimeError("vision engine not initialized")
        return OpenCVCascade()

    def close(self) -> None:
        if self._scratch:
            shutil.rmtree(self._scratch, ignore_errors=True)
        self._scratch = None
        self._handle = None


# -----------------------------------------------------------------------------
# ONNX Runtime
# -----------------------------------------------------------------------------
class OnnxSession:
    """Wraps ort.InferenceSession; run() executes off the event loop."""
    def __init__(self, session: "ort.InferenceSession"):
        self._session = session
        self.input_names = [i.name for i in session.get_inputs()]
        self.output_names = [o.name for o in session.get_outputs()]

    async def run(self, feeds: Dict[str, np.ndarray]) -> Dict[str, np.ndarray]:
        outputs = await asyncio.to_thread(self._session.run, None, feeds)
        return dict(zip(self.output_names, outputs))


class OnnxInferenceEngine:
    def create_session(self, model_path: str, providers: Sequence[str]) -> OnnxSession:
        available = set(ort.get_available_providers())
        chosen = [p for p in providers if p in available] or ["CPUExecutionProvider"]
        if len(chosen) != len(providers):
            logger.warning(f"[engine] providers {list(providers)} not all available; using {chosen}")
        session = ort.InferenceSession(model_path, providers=chosen)
        logger.debug(f"[engine] ONNX session model={model_path} providers={session.get_providers()}")
        return OnnxSession(session)
