import numpy as np
import pytest

from riso_proxy.processing.buffer import PixelBuffer


@pytest.fixture
def random_buffer():
    rng = np.random.default_rng(1234)
    width, height = 24, 16
    data = rng.integers(0, 256, size=(width * height, 4), dtype=np.uint8)
    return PixelBuffer(data, width, height)
