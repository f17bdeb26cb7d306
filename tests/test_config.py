from facemood.config import Settings

def test_Settings():
    s = Settings()
    assert s.INPUT_SIZE == 128
    assert s.SCALE_FACTOR == 1.1
    assert s.MIN_NEIGHBORS == 3
    # override via env-like behavior (construct new instance)
    s2 = Settings(INPUT_SIZE=64, INFERENCE_TIMEOUT=2.5)
    assert s2.INPUT_SIZE == 64
    assert s2.INFERENCE_TIMEOUT == 2.5

def test_providers_normalized():
    s = Settings(EXECUTION_PROVIDERS=[" CUDAExecutionProvider ", "", "CPUExecutionProvider"])
    assert s.EXECUTION_PROVIDERS == ("CUDAExecutionProvider", "CPUExecutionProvider")
    assert Settings(EXECUTION_PROVIDERS=[]).EXECUTION_PROVIDERS == ("CPUExecutionProvider",)

def test_log_level_upper():
    assert Settings(LOG_LEVEL="info").LOG_LEVEL == "INFO"
