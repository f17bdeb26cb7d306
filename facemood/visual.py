"""Visualization helpers and presentation sinks.

- draw_overlays: draw every detected box plus a label strip on the selected face
- OverlayWindow: sink that shows annotated frames in an OpenCV window
- ReportBoard: sink that keeps the latest FrameReport for polling (API status)
"""
from __future__ import annotations
import threading
import cv2
import numpy as np
from typing import Callable, Optional, Tuple

from facemood.capture import FrameBuffer
from facemood.models import FrameReport

_TO_BGR = {
    "GRAY": cv2.COLOR_GRAY2BGR,
    "RGB": cv2.COLOR_RGB2BGR,
    "BGRA": cv2.COLOR_BGRA2BGR,
    "RGBA": cv2.COLOR_RGBA2BGR,
}

def to_bgr(frame: FrameBuffer) -> np.ndarray:
    if frame.layout == "BGR":
        return frame.pixels.copy()
    return cv2.cvtColor(frame.pixels, _TO_BGR[frame.layout])

def draw_overlays(frame: np.ndarray,
                  report: FrameReport,
                  color: Tuple[int, int, int] = (0, 255, 0)) -> np.ndarray:
    """Draw detection boxes and the emotion label on a BGR frame.

    Args:
        frame: BGR image
        report: pass result; every detection gets a rectangle, the selected
            region also gets "<label> <conf>%" on a dark strip above it
        color: BGR color for rectangles

    Returns:
        Annotated copy of the frame
    """
    out = frame.copy()
    h, w = out.shape[:2]

    for reg in report.detections:
        cv2.rectangle(out, (reg.x, reg.y), (reg.x + reg.w, reg.y + reg.h), color, 2)

    sel = report.selected
    if sel is not None:
        text = f"{report.emotion.label} {report.emotion.confidence * 100:.1f}%"
        top = max(0, sel.y - 28)
        cv2.rectangle(out, (sel.x, top), (min(w - 1, sel.x + 220), top + 28), (0, 0, 0), -1)
        cv2.putText(out, text, (sel.x + 6, top + 20), cv2.FONT_HERSHEY_SIMPLEX, 0.6,
                    (255, 255, 255), 2, cv2.LINE_AA)

    if report.status:
        cv2.putText(out, report.status, (10, h - 10), cv2.FONT_HERSHEY_SIMPLEX, 0.5,
                    (0, 0, 255), 1, cv2.LINE_AA)
    return out


class OverlayWindow:
    """Sink: show each annotated frame; pressing 'q' calls on_quit."""
    def __init__(self, title: str = "Face Emotion (q to quit)",
                 on_quit: Optional[Callable[[], None]] = None):
        self.title = title
        self.on_quit = on_quit

    def __call__(self, report: FrameReport, frame: FrameBuffer) -> None:
        cv2.imshow(self.title, draw_overlays(to_bgr(frame), report))
        if (cv2.waitKey(1) & 0xFF) == ord("q") and self.on_quit is not None:
            self.on_quit()

    def close(self) -> None:
        cv2.destroyAllWindows()


class ReportBoard:
    """Sink: remember the latest report."""
    def __init__(self):
        self._lock = threading.Lock()
        self._latest: Optional[FrameReport] = None

    def __call__(self, report: FrameReport, frame: FrameBuffer) -> None:
        with self._lock:
            self._latest = report

    @property
    def latest(self) -> Optional[FrameReport]:
        with self._lock:
            return self._latest
