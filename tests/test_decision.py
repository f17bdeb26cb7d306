import numpy as np
import pytest

from facemood.decision import softmax, decide, label_for


def test_softmax_reference_values():
    p = softmax([2.0, 1.0, 0.1])
    assert np.allclose(p, [0.659, 0.242, 0.099], atol=1e-3)
    assert int(np.argmax(p)) == 0


@pytest.mark.parametrize("logits", [
    [1000.0, -1000.0, 0.0],
    [-80.0, -20.0, -75.5, 10.0],
    [60.0, 0.0],
    [1e-9, 2e-9, 3e-9],
    [-1e4] * 7,
])
def test_softmax_sums_to_one_and_is_finite(logits):
    p = softmax(logits)
    assert np.all(np.isfinite(p))
    assert abs(float(p.sum()) - 1.0) < 1e-5


def test_softmax_empty_rejected():
    with pytest.raises(ValueError):
        softmax([])


def test_decide_picks_max():
    state = decide(np.array([0.1, 4.0, 0.3], dtype=np.float32), ["a", "b", "c"])
    assert state.label == "b"
    assert state.confidence == pytest.approx(float(softmax([0.1, 4.0, 0.3])[1]))


def test_decide_ties_resolve_to_lowest_index():
    state = decide([1.0, 3.0, 3.0, 0.0], ["w", "x", "y", "z"])
    assert state.label == "x"


def test_decide_index_past_labels_synthesizes_name():
    state = decide([0.0, 0.0, 9.0], ["only", "two"])
    assert state.label == "class_2"
    assert 0.0 <= state.confidence <= 1.0


def test_label_for():
    assert label_for(0, ["happy"]) == "happy"
    assert label_for(5, ["happy"]) == "class_5"
