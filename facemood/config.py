"""
Configuration for the live emotion pipeline.
"""
from pydantic import BaseModel
from typing import Tuple
import os

class Settings(BaseModel):
    """
    Runtime settings with environment-variable overrides.
    """
    CAMERA_INDEX: int = int(os.getenv("CAMERA_INDEX", "0"))

    # Empty CASCADE_PATH -> OpenCV's bundled frontal-face cascade
    CASCADE_PATH: str = os.getenv("CASCADE_PATH", "")
    MODEL_PATH: str = os.getenv("MODEL_PATH", "models/emotion_yolo11n_cls.onnx")
    LABELS_PATH: str = os.getenv("LABELS_PATH", "models/classes.json")
    EXECUTION_PROVIDERS: Tuple[str, ...] = tuple(
        os.getenv("EXECUTION_PROVIDERS", "CPUExecutionProvider").split(",")
    )

    INPUT_SIZE: int = int(os.getenv("INPUT_SIZE", "128"))
    SCALE_FACTOR: float = float(os.getenv("SCALE_FACTOR", "1.1"))
    MIN_NEIGHBORS: int = int(os.getenv("MIN_NEIGHBORS", "3"))

    TICK_INTERVAL: float = float(os.getenv("TICK_INTERVAL", "0"))
    INFERENCE_TIMEOUT: float | None = (
        float(os.getenv("INFERENCE_TIMEOUT")) if os.getenv("INFERENCE_TIMEOUT") else None
    )
    MAX_CONSECUTIVE_FAILURES: int = int(os.getenv("MAX_CONSECUTIVE_FAILURES", "0"))

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "DEBUG")

    def __init__(self, **data):
        super().__init__(**data)
        # Normalize providers: strip blanks, keep order, fall back to CPU
        providers = tuple(p.strip() for p in self.EXECUTION_PROVIDERS if p and p.strip())
        object.__setattr__(self, "EXECUTION_PROVIDERS", providers or ("CPUExecutionProvider",))
        object.__setattr__(self, "LOG_LEVEL", (self.LOG_LEVEL or "DEBUG").strip().upper())
