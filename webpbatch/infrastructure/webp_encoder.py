"""WebP encoding behind an ownership-safe adapter.

The native side (``PillowWebPBackend``) allocates the output buffer and
hands back an opaque handle plus a status code. ``WebPEncoder`` validates
the settings before anything is allocated, checks the status, and wraps the
handle in an ``EncodedBuffer`` that frees it exactly once: on ``close()``,
on leaving a ``with`` block, or when the buffer is garbage collected.
"""

import io
import logging
import weakref
from dataclasses import dataclass
from typing import Any, Callable, Protocol, Tuple, Union
from PIL import features
from webpbatch.config.models import ConversionConfig
from webpbatch.domain.errors import EncodeError, EncodeStatus
from webpbatch.infrastructure.image_decoder import PixelBuffer

MAX_QUALITY = 100
MAX_METHOD = 6
MAX_DIMENSION = 16383


@dataclass(frozen=True)
class EncoderSettings:
    """Knobs passed to the native encoder."""

    quality: float
    lossless: bool
    method: int

    @classmethod
    def from_config(cls, config: ConversionConfig) -> "EncoderSettings":
        # lossless only applies at maximum quality, otherwise it is forced off
        lossless = config.lossless if config.quality == MAX_QUALITY else False
        return cls(quality=float(config.quality), lossless=bool(lossless), method=config.method)


class NativeEncoder(Protocol):
    def validate(self, settings: EncoderSettings) -> bool: ...

    def encode(self, pixels: PixelBuffer, settings: EncoderSettings) -> Tuple[EncodeStatus, Any]: ...

    def buffer(self, handle: Any) -> memoryview: ...

    def free(self, handle: Any) -> None: ...


class PillowWebPBackend:
    """Native encoder backed by Pillow's libwebp plugin.

    Handles are ``io.BytesIO`` objects; freeing closes them.
    """

    def validate(self, settings: EncoderSettings) -> bool:
        if not features.check("webp"):
            return False
        if not 0 <= settings.quality <= MAX_QUALITY:
            return False
        return 0 <= settings.method <= MAX_METHOD

    def encode(self, pixels: PixelBuffer, settings: EncoderSettings) -> Tuple[EncodeStatus, io.BytesIO]:
        handle = io.BytesIO()
        if not (0 < pixels.width <= MAX_DIMENSION and 0 < pixels.height <= MAX_DIMENSION):
            return EncodeStatus.BAD_DIMENSION, handle
        try:
            pixels.to_image().save(
                handle,
                format="WEBP",
                quality=settings.quality,
                lossless=settings.lossless,
                method=settings.method,
            )
        except MemoryError:
            return EncodeStatus.OUT_OF_MEMORY, handle
        except (OSError, ValueError):
            return EncodeStatus.ENCODER_FAILURE, handle
        return EncodeStatus.OK, handle

    def buffer(self, handle: io.BytesIO) -> memoryview:
        # getvalue() shares the written bytes, so no export pins the handle open
        return memoryview(handle.getvalue())

    def free(self, handle: io.BytesIO) -> None:
        handle.close()


def _release(view: memoryview, free: Callable[[Any], None], handle: Any) -> None:
    view.release()
    free(handle)


class EncodedBuffer:
    """Read-only view of a native output buffer, released exactly once."""

    def __init__(self, backend: NativeEncoder, handle: Any):
        raw = backend.buffer(handle)
        self._view = raw.toreadonly()
        raw.release()
        self._size = self._view.nbytes
        self._finalizer = weakref.finalize(self, _release, self._view, backend.free, handle)

    @property
    def released(self) -> bool:
        return not self._finalizer.alive

    @property
    def view(self) -> memoryview:
        if self.released:
            raise ValueError("EncodedBuffer already released")
        return self._view

    def __len__(self) -> int:
        return self._size

    def __bytes__(self) -> bytes:
        return self.view.tobytes()

    def release(self) -> None:
        self._finalizer()

    close = release

    def __enter__(self) -> "EncodedBuffer":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.release()
        return False

    def __repr__(self) -> str:
        state = "released" if self.released else "live"
        return f"EncodedBuffer(size={self._size}, {state})"


class WebPEncoder:
    """Validates settings, runs the native encoder and takes ownership of its output."""

    def __init__(self, backend: Union[NativeEncoder, None] = None):
        self.backend = backend if backend is not None else PillowWebPBackend()
        self.logger = logging.getLogger(__name__)

    def validate(self, config: ConversionConfig) -> bool:
        return self.backend.validate(EncoderSettings.from_config(config))

    def encode(self, pixels: PixelBuffer, config: ConversionConfig) -> EncodedBuffer:
        settings = EncoderSettings.from_config(config)
        if not self.backend.validate(settings):
            raise EncodeError(EncodeStatus.INVALID_CONFIGURATION, f"quality={config.quality}, method={config.method}")

        status, handle = self.backend.encode(pixels, settings)
        buffer = EncodedBuffer(self.backend, handle)
        if status != EncodeStatus.OK:
            buffer.release()
            raise EncodeError(status)

        self.logger.debug(
            f"Encoded {pixels.width}x{pixels.height} {pixels.mode} -> {len(buffer)} bytes "
            f"(q={settings.quality}, lossless={settings.lossless}, method={settings.method})"
        )
        return buffer
