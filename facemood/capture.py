"""
Camera capture source.

Opens the camera once; no retry. The scheduler asks for the *current* frame on
every tick, so stale frames are never queued.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Optional
import asyncio
import logging

import cv2
import numpy as np

from facemood.errors import CaptureFailure

logger = logging.getLogger(__name__)

LAYOUTS = ("GRAY", "BGR", "RGB", "BGRA", "RGBA")


@dataclass
class FrameBuffer:
    pixels: np.ndarray
    layout: str = "BGR"

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def channels(self) -> int:
        return 1 if self.pixels.ndim == 2 else int(self.pixels.shape[2])

    @classmethod
    def from_image(cls, pixels: np.ndarray, layout: str = "BGR") -> "FrameBuffer":
        if layout not in LAYOUTS:
            raise ValueError(f"unsupported channel layout: {layout}")
        if pixels is None or pixels.size == 0:
            raise ValueError("empty frame")
        return cls(pixels=pixels, layout="GRAY" if pixels.ndim == 2 else layout)


class CaptureSource:
    """Wraps cv2.VideoCapture; frames come out as BGR FrameBuffers."""
    def __init__(self, camera_index: int = 0):
        self.camera_index = camera_index
        self._cap: Optional[cv2.VideoCapture] = None

    @property
    def started(self) -> bool:
        return self._cap is not None

    def _open(self) -> cv2.VideoCapture:
        cap = cv2.VideoCapture(self.camera_index)
        if not cap.isOpened():
            cap.release()
            raise CaptureFailure(f"Could not open camera index {self.camera_index}")
        ok, _ = cap.read()
        if not ok:
            cap.release()
            raise CaptureFailure(f"Camera index {self.camera_index} opened but delivered no frame")
        return cap

    async def start(self) -> cv2.VideoCapture:
        if self._cap is not None:
            return self._cap
        logger.debug(f"[capture] requesting camera index={self.camera_index}")
        self._cap = await asyncio.to_thread(self._open)
        logger.info(f"[capture] camera {self.camera_index} streaming")
        return self._cap

    def current_frame(self) -> Optional[FrameBuffer]:
        if self._cap is None:
            return None
        ok, frame = self._cap.read()
        if not ok or frame is None or frame.size == 0:
            return None
        return FrameBuffer.from_image(frame, "BGR")

    def release(self) -> None:
        if self._cap is not None:
            self._cap.release()
            self._cap = None
            logger.debug("[capture] camera released")


class StillImageSource:
    """Capture source over a single image; used by the CLI."""
    def __init__(self, frame: FrameBuffer):
        self._frame = frame

    @classmethod
    def from_path(cls, path: str) -> "StillImageSource":
        img = cv2.imread(path, cv2.IMREAD_COLOR)
        if img is None:
            raise CaptureFailure(f"Could not read image: {path}")
        return cls(FrameBuffer.from_image(img, "BGR"))

    async def start(self) -> FrameBuffer:
        return self._frame

    def current_frame(self) -> Optional[FrameBuffer]:
        return self._frame

    def release(self) -> None:
        pass
