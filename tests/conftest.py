import json
import numpy as np
import pytest

from facemood.bootstrap import PipelineContext
from facemood.capture import FrameBuffer
from facemood.config import Settings

LABELS = ["angry", "happy", "neutral", "sad"]


class FakeCascade:
    """Stands in for cv2.CascadeClassifier behind the CascadeDetector protocol."""
    def __init__(self, rects=None, loadable=True, error=None):
        self.rects = list(rects or [])
        self.loadable = loadable
        self.error = error
        self.loaded_path = None
        self.calls = []

    def load(self, path):
        self.loaded_path = path
        return self.loadable

    def detect_multi_scale(self, gray, scale_factor, min_neighbors, min_size):
        self.calls.append((gray.shape, scale_factor, min_neighbors, min_size))
        if self.error is not None:
            raise self.error
        return list(self.rects)


class FakeVision:
    def __init__(self, cascade=None):
        self.cascade = cascade if cascade is not None else FakeCascade()
        self.handle = None
        self.init_calls = 0
        self.files = {}
        self.closed = False

    def load_engine(self):
        if self.handle is None:
            self.init_calls += 1
            self.handle = object()
        return self.handle

    def register_file(self, name, data):
        self.files[name] = data
        return f"/scratch/{name}"

    def create_cascade(self):
        return self.cascade

    def close(self):
        self.closed = True


class FakeSession:
    def __init__(self, logits=(0.1, 3.0, 0.2, -1.0), input_name="images", output_name="output0",
                 error=None):
        self.input_names = [input_name, "unused_input"]
        self.output_names = [output_name, "unused_output"]
        self.logits = logits
        self.error = error
        self.calls = []

    async def run(self, feeds):
        self.calls.append(feeds)
        if self.error is not None:
            raise self.error
        return {
            self.output_names[0]: np.asarray([self.logits], dtype=np.float32),
            self.output_names[1]: np.zeros((1, 1), dtype=np.float32),
        }


class FakeInference:
    def __init__(self, session=None, error=None):
        self.session = session if session is not None else FakeSession()
        self.error = error
        self.created = []

    def create_session(self, model_path, providers):
        self.created.append((model_path, tuple(providers)))
        if self.error is not None:
            raise self.error
        return self.session


class FakeSource:
    def __init__(self, frame=None, error=None):
        self.frame = frame
        self.error = error
        self.started = False
        self.released = False

    async def start(self):
        if self.error is not None:
            raise self.error
        self.started = True
        return self

    def current_frame(self):
        return self.frame

    def release(self):
        self.released = True


@pytest.fixture
def fakes():
    """Access to fake classes without importing conftest directly."""
    class _F:
        Cascade = FakeCascade
        Vision = FakeVision
        Session = FakeSession
        Inference = FakeInference
        Source = FakeSource
    return _F


@pytest.fixture
def labels_path(tmp_path):
    p = tmp_path / "classes.json"
    p.write_text(json.dumps(LABELS), encoding="utf-8")
    return p


@pytest.fixture
def cascade_path(tmp_path):
    p = tmp_path / "cascade.xml"
    p.write_bytes(b"<opencv_storage></opencv_storage>")
    return p


@pytest.fixture
def settings(tmp_path, labels_path, cascade_path):
    return Settings(
        CASCADE_PATH=str(cascade_path),
        MODEL_PATH=str(tmp_path / "model.onnx"),
        LABELS_PATH=str(labels_path),
    )


@pytest.fixture
def frame():
    pixels = np.full((120, 160, 3), 90, dtype=np.uint8)
    return FrameBuffer.from_image(pixels, "BGR")


@pytest.fixture
def make_context():
    def _make(rects=None, logits=(0.1, 3.0, 0.2, -1.0), labels=LABELS, cascade=None, session=None):
        cascade = cascade if cascade is not None else FakeCascade(rects=rects)
        vision = FakeVision(cascade)
        return PipelineContext(
            engine=vision.load_engine(),
            vision=vision,
            detector=cascade,
            session=session if session is not None else FakeSession(logits=logits),
            labels=tuple(labels),
        )
    return _make
