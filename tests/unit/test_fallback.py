import pytest
from webpbatch.infrastructure.image_decoder import PixelBuffer
from webpbatch.infrastructure.webp_encoder import EncodedBuffer
from webpbatch.pipeline.fallback import FallbackPolicy

ORIGINAL = b"PNG-original-bytes"  # 18 bytes
PIXELS = PixelBuffer(width=2, height=1, mode="RGB", data=b"\x01\x02\x03\x04\x05\x06")


@pytest.fixture
def encoded(fake_backend):
    def _make(size: int) -> EncodedBuffer:
        return EncodedBuffer(fake_backend, bytearray(b"w" * size))
    return _make


def test_flag_off_always_writes_encoded_even_if_larger(encoded):
    buffer = encoded(100)
    resolution = FallbackPolicy().resolve(buffer, ORIGINAL, PIXELS, input_size=len(ORIGINAL), use_initial_if_smaller=False)

    assert bytes(resolution.payload) == b"w" * 100
    assert resolution.reported_output_size == 100
    assert not resolution.used_fallback


def test_flag_on_and_encoded_larger_keeps_original(encoded):
    buffer = encoded(100)
    resolution = FallbackPolicy("original").resolve(buffer, ORIGINAL, PIXELS, input_size=len(ORIGINAL), use_initial_if_smaller=True)

    assert resolution.payload == ORIGINAL
    assert resolution.reported_output_size == len(ORIGINAL)
    assert resolution.used_fallback


def test_flag_on_pixels_source_writes_decoded_pixels(encoded):
    buffer = encoded(100)
    resolution = FallbackPolicy("pixels").resolve(buffer, ORIGINAL, PIXELS, input_size=len(ORIGINAL), use_initial_if_smaller=True)

    assert resolution.payload == PIXELS.data
    assert resolution.reported_output_size == len(ORIGINAL)
    assert resolution.used_fallback


@pytest.mark.parametrize("encoded_size", [5, len(ORIGINAL)])
def test_flag_on_and_encoded_not_larger_writes_encoded(encoded, encoded_size):
    buffer = encoded(encoded_size)
    resolution = FallbackPolicy().resolve(buffer, ORIGINAL, PIXELS, input_size=len(ORIGINAL), use_initial_if_smaller=True)

    assert bytes(resolution.payload) == b"w" * encoded_size
    assert resolution.reported_output_size == encoded_size
    assert not resolution.used_fallback


def test_unknown_source_rejected():
    with pytest.raises(ValueError):
        FallbackPolicy("thumbnail")


def test_keeps_input_format():
    assert FallbackPolicy("original").keeps_input_format
    assert not FallbackPolicy("pixels").keeps_input_format
