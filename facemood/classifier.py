"""
Run the classifier session on one tensor and return flat logits.
"""
from __future__ import annotations
import asyncio
import logging

import numpy as np

from facemood.engines import InferenceSession
from facemood.errors import PerPassFailure

logger = logging.getLogger(__name__)


class EmotionClassifier:
    """
    Feeds the model's first declared input and reads its first declared output.
    Input/output names are discovered from the session, never hard-coded.
    """
    def __init__(self, session: InferenceSession, timeout: float | None = None):
        self.session = session
        self.timeout = timeout

    @property
    def input_name(self) -> str:
        return self.session.input_names[0]

    @property
    def output_name(self) -> str:
        return self.session.output_names[0]

    async def classify(self, tensor: np.ndarray) -> np.ndarray:
        feeds = {self.input_name: tensor}
        try:
            if self.timeout is None:
                outputs = await self.session.run(feeds)
            else:
                outputs = await asyncio.wait_for(self.session.run(feeds), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise PerPassFailure(f"inference exceeded {self.timeout}s") from e
        if self.output_name not in outputs:
            raise PerPassFailure(f"model output '{self.output_name}' missing from run() result")
        return np.asarray(outputs[self.output_name], dtype=np.float32).reshape(-1)
