"""
Pick the face to classify and keep boxes inside the frame.
"""
from __future__ import annotations
from typing import Optional, Sequence

from facemood.models import Region


def select_region(detections: Sequence[Region]) -> Optional[Region]:
    """Largest box by w*h; on equal area the first one the detector reported wins."""
    best: Optional[Region] = None
    for r in detections:
        if best is None or r.area > best.area:
            best = r
    return best


def clamp_region(region: Region, width: int, height: int) -> Region:
    """Clamp to frame bounds; the result is always at least 1x1 and inside the frame."""
    if width <= 0 or height <= 0:
        raise ValueError(f"invalid frame size {width}x{height}")
    x0 = max(0, min(region.x, width - 1))
    y0 = max(0, min(region.y, height - 1))
    x1 = max(x0 + 1, min(region.x + region.w, width))
    y1 = max(y0 + 1, min(region.y + region.h, height))
    return Region(x=x0, y=y0, w=x1 - x0, h=y1 - y0)
