"""
Face detection over a single frame (Haar cascade, multi-scale).
"""
from __future__ import annotations
from typing import List, Tuple
import logging

import cv2
import numpy as np

from facemood.capture import FrameBuffer
from facemood.engines import CascadeDetector
from facemood.models import Region

logger = logging.getLogger(__name__)

_TO_GRAY = {
    "BGR": cv2.COLOR_BGR2GRAY,
    "RGB": cv2.COLOR_RGB2GRAY,
    "BGRA": cv2.COLOR_BGRA2GRAY,
    "RGBA": cv2.COLOR_RGBA2GRAY,
}


def to_grayscale(frame: FrameBuffer) -> np.ndarray:
    if frame.layout == "GRAY":
        return frame.pixels
    return cv2.cvtColor(frame.pixels, _TO_GRAY[frame.layout])


class FaceDetector:
    def __init__(
        self,
        cascade: CascadeDetector,
        scale_factor: float = 1.1,
        min_neighbors: int = 3,
        min_size: Tuple[int, int] = (0, 0),
    ):
        self.cascade = cascade
        self.scale_factor = scale_factor
        self.min_neighbors = min_neighbors
        self.min_size = min_size

    def detect(self, gray: np.ndarray) -> List[Region]:
        """Return candidate face boxes in the cascade's native output order."""
        if gray.ndim != 2:
            raise ValueError(f"detector expects a single-channel image, got shape {gray.shape}")
        rects = self.cascade.detect_multi_scale(
            gray, self.scale_factor, self.min_neighbors, self.min_size
        )
        return [Region(x=x, y=y, w=w, h=h) for (x, y, w, h) in rects]

    def detect_frame(self, frame: FrameBuffer) -> List[Region]:
        return self.detect(to_grayscale(frame))
