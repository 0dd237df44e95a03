import io

import numpy as np
import pytest
from PIL import Image

from analysis import DecodeError, decode_image, normalized_size
from conftest import encode, noise, solid


def test_decode_returns_rgba_buffer():
    pixels = decode_image(encode(solid((10, 20, 30), width=10, height=20)))
    assert pixels.shape == (20, 10, 4)
    assert pixels.dtype == np.uint8
    assert tuple(pixels[0, 0]) == (10, 20, 30, 255)


def test_decoded_buffer_is_read_only():
    pixels = decode_image(encode(solid((1, 2, 3), width=4, height=4)))
    with pytest.raises(ValueError):
        pixels[0, 0, 0] = 9


def test_small_image_is_not_upscaled():
    pixels = decode_image(encode(solid((0, 0, 0), width=2, height=2)))
    assert pixels.shape[:2] == (2, 2)


def test_wide_image_is_downscaled_preserving_aspect():
    pixels = decode_image(encode(solid((0, 0, 0), width=800, height=200)))
    assert pixels.shape[:2] == (100, 400)


def test_tall_image_longer_side_capped():
    pixels = decode_image(encode(solid((0, 0, 0), width=200, height=800)))
    assert pixels.shape[:2] == (400, 100)


def test_normalized_size():
    assert normalized_size(400, 400) == (400, 400)
    assert normalized_size(1000, 3) == (400, 1)
    assert normalized_size(1, 2) == (1, 2)
    assert normalized_size(401, 10) == (400, 9)


def test_accepts_decoded_pil_image():
    im = Image.new("RGB", (5, 3), (200, 100, 50))
    pixels = decode_image(im)
    assert pixels.shape == (3, 5, 4)
    assert tuple(pixels[1, 1, :3]) == (200, 100, 50)


def test_accepts_bytearray_and_jpeg():
    data = bytearray(encode(noise(), fmt="JPEG"))
    assert decode_image(data).shape == (48, 64, 4)


@pytest.mark.parametrize("data", [b"", b"not an image at all", b"\x89PNG\r\n\x1a\n"])
def test_undecodable_bytes_raise(data):
    with pytest.raises(DecodeError):
        decode_image(data)


def test_truncated_png_raises():
    data = encode(noise(width=128, height=128))
    with pytest.raises(DecodeError):
        decode_image(data[: len(data) // 2])


def test_unsupported_source_type_raises():
    with pytest.raises(DecodeError):
        decode_image("photo.png")


def test_decode_error_is_value_error():
    assert issubclass(DecodeError, ValueError)


def test_sixteen_bit_png_is_scaled_not_clipped():
    ramp = np.tile(np.linspace(0, 65520, 64).astype(np.uint16), (64, 1))
    buf = io.BytesIO()
    Image.fromarray(ramp).save(buf, format="PNG")
    pixels = decode_image(buf.getvalue())
    assert pixels.shape == (64, 64, 4)
    channel = pixels[0, :, 0]
    assert channel[0] == 0
    assert channel[-1] == 255
    assert len(np.unique(channel)) == 64
    assert (np.diff(channel.astype(int)) > 0).all()
    assert (pixels[..., 3] == 255).all()


def test_exif_orientation_is_applied():
    exif = Image.Exif()
    exif[0x0112] = 6
    buf = io.BytesIO()
    Image.new("RGB", (40, 20), (120, 60, 30)).save(buf, format="JPEG", exif=exif)
    pixels = decode_image(buf.getvalue())
    assert pixels.shape == (40, 20, 4)
