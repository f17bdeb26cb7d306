"""
Logits -> probabilities -> (label, confidence).
"""
from __future__ import annotations
from typing import Sequence

import numpy as np

from facemood.models import EmotionState


def softmax(logits) -> np.ndarray:
    """Max-shifted softmax; stable for large logit spreads."""
    x = np.asarray(logits, dtype=np.float64).reshape(-1)
    if x.size == 0:
        raise ValueError("softmax of empty logits")
    e = np.exp(x - np.max(x))
    return e / e.sum()


def label_for(index: int, labels: Sequence[str]) -> str:
    if 0 <= index < len(labels):
        return labels[index]
    return f"class_{index}"


def decide(logits, labels: Sequence[str]) -> EmotionState:
    probs = softmax(logits)
    # np.argmax returns the first index on ties
    idx = int(np.argmax(probs))
    confidence = min(1.0, max(0.0, float(probs[idx])))
    return EmotionState(label=label_for(idx, labels), confidence=confidence)
