"""
Pydantic data models for pipeline output and API IO.
"""
from __future__ import annotations
from pydantic import BaseModel, Field
from typing import List, Optional
import time

class Region(BaseModel):
    x: int
    y: int
    w: int
    h: int

    @property
    def area(self) -> int:
        return self.w * self.h

    def as_tuple(self) -> tuple[int, int, int, int]:
        return (self.x, self.y, self.w, self.h)

class EmotionState(BaseModel):
    label: str = "-"
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)

class FrameReport(BaseModel):
    """What the presentation sink receives once per completed pass."""
    tick: int
    status: str
    detections: List[Region] = Field(default_factory=list)
    selected: Optional[Region] = None
    emotion: EmotionState = Field(default_factory=EmotionState)
    ts: float = Field(default_factory=time.time)



# live model


class LiveStatus(BaseModel):
    running: bool
    state: str
    status: str
    started_at: float | None = None
    last_report: FrameReport | None = None
