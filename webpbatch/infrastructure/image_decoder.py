import io
import logging
from dataclasses import dataclass
from PIL import Image, UnidentifiedImageError
from webpbatch.domain.errors import DecodeError


@dataclass(frozen=True)
class PixelBuffer:
    """Decoded pixels owned by a single conversion task."""

    width: int
    height: int
    mode: str  # "RGB" or "RGBA"
    data: bytes

    def __len__(self) -> int:
        return len(self.data)

    def to_image(self) -> Image.Image:
        return Image.frombytes(self.mode, (self.width, self.height), self.data)


class ImageDecoder:
    """Decodes any raster format Pillow understands into RGB(A) pixels."""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    @staticmethod
    def _target_mode(img: Image.Image) -> str:
        if img.mode in ("RGBA", "LA", "PA") or "transparency" in img.info:
            return "RGBA"
        return "RGB"

    def decode(self, data: bytes, name: str = "<bytes>") -> PixelBuffer:
        try:
            with Image.open(io.BytesIO(data)) as img:
                img.load()
                mode = self._target_mode(img)
                converted = img.convert(mode)
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
            self.logger.debug(f"Decode failed for {name}: {e}")
            raise DecodeError(f"{name} is not an image") from e

        return PixelBuffer(
            width=converted.width,
            height=converted.height,
            mode=mode,
            data=converted.tobytes(),
        )
