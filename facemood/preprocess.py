"""
Face crop -> classifier input tensor.

The classifier expects float32 [1, 3, S, S], plane-major R, G, B, values in [0, 1].
Pixels are read as 4 components (R, G, B, A); alpha is dropped.
"""
from __future__ import annotations
import cv2
import numpy as np

from facemood.capture import FrameBuffer
from facemood.models import Region
from facemood.selector import clamp_region

INPUT_SIZE = 128

_TO_RGBA = {
    "GRAY": cv2.COLOR_GRAY2RGBA,
    "BGR": cv2.COLOR_BGR2RGBA,
    "RGB": cv2.COLOR_RGB2RGBA,
    "BGRA": cv2.COLOR_BGRA2RGBA,
}


def crop(frame: FrameBuffer, region: Region) -> np.ndarray:
    r = clamp_region(region, frame.width, frame.height)
    return frame.pixels[r.y:r.y + r.h, r.x:r.x + r.w]


def to_rgba(pixels: np.ndarray, layout: str) -> np.ndarray:
    if layout == "RGBA":
        return np.ascontiguousarray(pixels)
    return cv2.cvtColor(np.ascontiguousarray(pixels), _TO_RGBA[layout])


def preprocess(frame: FrameBuffer, region: Region, size: int = INPUT_SIZE) -> np.ndarray:
    chip = to_rgba(crop(frame, region), frame.layout)
    chip = cv2.resize(chip, (size, size), interpolation=cv2.INTER_LINEAR)
    rgb = chip[:, :, :3]
    # HWC -> CHW, then add the batch axis
    chw = np.transpose(rgb, (2, 0, 1)).astype(np.float32) / 255.0
    return np.ascontiguousarray(chw[np.newaxis, ...], dtype=np.float32)
