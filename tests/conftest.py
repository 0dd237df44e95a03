import io
import os
import sys

import numpy as np
import pytest
from PIL import Image

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))


def encode(array, fmt="PNG"):
    """Encode an (h, w, 3|4) uint8 array as image bytes."""
    buf = io.BytesIO()
    Image.fromarray(np.asarray(array, dtype=np.uint8)).save(buf, format=fmt)
    return buf.getvalue()


def solid(color, width=100, height=100):
    return np.tile(np.array(color, dtype=np.uint8), (height, width, 1))


def noise(width=64, height=48, seed=0):
    rng = np.random.default_rng(seed)
    return rng.integers(0, 256, size=(height, width, 3), dtype=np.uint8)


@pytest.fixture
def noise_png():
    return encode(noise())


@pytest.fixture
def red_png():
    return encode(solid((255, 0, 0)))


@pytest.fixture
def blue_png():
    return encode(solid((0, 0, 255)))
