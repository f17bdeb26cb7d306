# facemood/pipeline.py
from __future__ import annotations
import logging
import os

from facemood.bootstrap import Bootstrapper
from facemood.capture import StillImageSource
from facemood.config import Settings
from facemood.engines import InferenceEngine, VisionEngine
from facemood.errors import BootstrapFailure
from facemood.models import FrameReport
from facemood.scheduler import FrameScheduler

logger = logging.getLogger(__name__)

async def analyze_image(
    image_path: str,
    settings: Settings,
    vision: VisionEngine | None = None,
    inference: InferenceEngine | None = None,
) -> FrameReport:
    """
    Run exactly one pipeline pass over a still image: detect, pick the largest
    face, classify it. Raises BootstrapFailure if resources cannot be loaded.
    """
    if not os.path.exists(image_path):
        raise FileNotFoundError(f"Image not found: {image_path}")

    logger.debug(f"[pipeline] analyze_image start image_path={image_path}")
    source = StillImageSource.from_path(image_path)
    boot = Bootstrapper(settings, vision=vision, inference=inference)
    try:
        result = await boot.initialize()
        if not result.ready:
            raise BootstrapFailure(result.reason or "startup failed")
        scheduler = FrameScheduler(result.context, source, settings)
        report = await scheduler.run_pass()
    finally:
        boot.vision.close()
    logger.debug(f"[pipeline] analyze_image finished status={report.status}")
    return report
