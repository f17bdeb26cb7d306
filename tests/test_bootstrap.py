import pytest

from facemood.bootstrap import Bootstrapper, BootState, fetch_labels
from facemood.errors import BootstrapFailure


@pytest.mark.asyncio
async def test_initialize_ready(settings, fakes, cascade_path):
    vision, inference = fakes.Vision(), fakes.Inference()
    messages = []
    boot = Bootstrapper(settings, vision=vision, inference=inference, on_status=messages.append)

    result = await boot.initialize()

    assert result.ready and boot.state is BootState.READY
    ctx = result.context
    assert ctx.detector is vision.cascade
    assert ctx.session is inference.session
    assert ctx.labels == ("angry", "happy", "neutral", "sad")
    assert vision.files["haarcascade_frontalface_default.xml"] == cascade_path.read_bytes()
    assert vision.cascade.loaded_path == "/scratch/haarcascade_frontalface_default.xml"
    assert inference.created == [(settings.MODEL_PATH, ("CPUExecutionProvider",))]
    assert messages == ["loading OpenCV...", "loading Haar cascade...", "loading ONNX model...", "ready"]


@pytest.mark.asyncio
async def test_initialize_twice_returns_same_result(settings, fakes):
    vision = fakes.Vision()
    boot = Bootstrapper(settings, vision=vision, inference=fakes.Inference())
    r1 = await boot.initialize()
    r2 = await boot.initialize()
    assert r1 is r2
    assert vision.init_calls == 1


@pytest.mark.asyncio
async def test_ensure_engine_idempotent(settings, fakes):
    vision = fakes.Vision()
    boot = Bootstrapper(settings, vision=vision, inference=fakes.Inference())
    h1 = await boot.ensure_engine()
    h2 = await boot.ensure_engine()
    assert h1 is h2
    assert vision.init_calls == 1


@pytest.mark.asyncio
async def test_weight_fetch_failure(settings, fakes, tmp_path):
    settings.CASCADE_PATH = str(tmp_path / "missing.xml")
    inference = fakes.Inference()
    boot = Bootstrapper(settings, vision=fakes.Vision(), inference=inference)

    result = await boot.initialize()

    assert result.state is BootState.FAILED
    assert boot.state is BootState.FAILED
    assert "missing.xml" in result.reason
    assert result.context is None
    # later steps never ran
    assert inference.created == []
    # engine from the earlier step is kept
    assert boot.engine is not None


@pytest.mark.asyncio
async def test_cascade_not_loaded(settings, fakes):
    vision = fakes.Vision(cascade=fakes.Cascade(loadable=False))
    boot = Bootstrapper(settings, vision=vision, inference=fakes.Inference())
    result = await boot.initialize()
    assert result.state is BootState.FAILED
    assert "load()" in result.reason


@pytest.mark.asyncio
async def test_cascade_register_error_is_terminal(settings, fakes):
    class FullDiskVision(fakes.Vision):
        def register_file(self, name, data):
            raise OSError(28, "No space left on device")

    inference = fakes.Inference()
    messages = []
    boot = Bootstrapper(settings, vision=FullDiskVision(), inference=inference,
                        on_status=messages.append)

    result = await boot.initialize()

    assert result.state is BootState.FAILED
    assert boot.state is BootState.FAILED
    assert "No space left" in result.reason
    assert inference.created == []
    assert messages[-1].startswith("startup failed:")
    assert await boot.initialize() is result


@pytest.mark.asyncio
async def test_create_cascade_error_is_terminal(settings, fakes):
    class NoCascadeVision(fakes.Vision):
        def create_cascade(self):
            raise RuntimeError("vision engine not initialized")

    boot = Bootstrapper(settings, vision=NoCascadeVision(), inference=fakes.Inference())
    result = await boot.initialize()
    assert result.state is BootState.FAILED
    assert "not initialized" in result.reason


@pytest.mark.asyncio
async def test_session_creation_failure(settings, fakes):
    boot = Bootstrapper(settings, vision=fakes.Vision(),
                        inference=fakes.Inference(error=RuntimeError("bad model")))
    result = await boot.initialize()
    assert result.state is BootState.FAILED
    assert "bad model" in result.reason
    assert boot.detector is not None


@pytest.mark.asyncio
async def test_engine_failure(settings, fakes):
    class BrokenVision(fakes.Vision):
        def load_engine(self):
            raise RuntimeError("no objdetect")

    boot = Bootstrapper(settings, vision=BrokenVision(), inference=fakes.Inference())
    result = await boot.initialize()
    assert result.state is BootState.FAILED
    assert "no objdetect" in result.reason


@pytest.mark.asyncio
async def test_labels_failure_keeps_session(settings, fakes, labels_path):
    labels_path.write_text('{"not": "a list"}', encoding="utf-8")
    inference = fakes.Inference()
    boot = Bootstrapper(settings, vision=fakes.Vision(), inference=inference)
    result = await boot.initialize()
    assert result.state is BootState.FAILED
    assert boot.session is inference.session


@pytest.mark.asyncio
async def test_fetch_labels_missing(tmp_path):
    with pytest.raises(BootstrapFailure):
        await fetch_labels(str(tmp_path / "nope.json"))
