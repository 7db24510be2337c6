import io

import pytest
from PIL import Image

from conftest import make_jpeg
from src.api.errors import TransformError
from src.api.images import normalize_jpeg


TRUNCATED = make_jpeg()[: len(make_jpeg()) // 2]


def open_result(data: bytes) -> Image.Image:
    img = Image.open(io.BytesIO(data))
    img.load()
    return img


@pytest.mark.parametrize(
    "size, expected",
    [
        ((1600, 1200), (800, 600)),
        ((2000, 500), (800, 200)),
        ((600, 1200), (300, 600)),
        ((320, 240), (320, 240)),
    ],
)
def test_fits_within_bounds_without_upscaling(size, expected):
    out = open_result(normalize_jpeg(make_jpeg(size=size)))
    assert out.format == "JPEG"
    assert out.size == expected


def test_output_is_progressive():
    out = open_result(normalize_jpeg(make_jpeg()))
    assert out.info.get("progressive") or out.info.get("progression")


def test_is_deterministic():
    raw = make_jpeg(color="green")
    assert normalize_jpeg(raw) == normalize_jpeg(raw)


def test_cmyk_is_converted_to_rgb():
    out = open_result(normalize_jpeg(make_jpeg(size=(100, 100), color=(0, 0, 0, 0), mode="CMYK")))
    assert out.mode == "RGB"


def test_grayscale_is_kept():
    out = open_result(normalize_jpeg(make_jpeg(size=(100, 100), color=128, mode="L")))
    assert out.mode == "L"


@pytest.mark.parametrize("raw", [b"", b"not an image", TRUNCATED])
def test_malformed_input_raises(raw):
    with pytest.raises(TransformError):
        normalize_jpeg(raw)


def test_non_jpeg_input_raises():
    buf = io.BytesIO()
    Image.new("RGB", (10, 10), color="white").save(buf, format="PNG")
    with pytest.raises(TransformError):
        normalize_jpeg(buf.getvalue())


def test_multi_picture_jpeg_uses_first_frame():
    buf = io.BytesIO()
    first = Image.new("RGB", (1600, 1200), color="red")
    second = Image.new("RGB", (1600, 1200), color="blue")
    first.save(buf, format="MPO", save_all=True, append_images=[second])
    assert Image.open(io.BytesIO(buf.getvalue())).format == "MPO"

    out = open_result(normalize_jpeg(buf.getvalue()))
    assert out.format == "JPEG"
    assert out.size == (800, 600)
    red, green, blue = out.getpixel((400, 300))
    assert red > 200 and blue < 50
