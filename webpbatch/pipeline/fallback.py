from dataclasses import dataclass
from typing import Union
from webpbatch.config.models import FallbackSource
from webpbatch.infrastructure.image_decoder import PixelBuffer
from webpbatch.infrastructure.webp_encoder import EncodedBuffer

Payload = Union[bytes, memoryview]


@dataclass(frozen=True)
class Resolution:
    payload: Payload
    reported_output_size: int
    used_fallback: bool = False


class FallbackPolicy:
    """Chooses between the encoded output and a fallback payload for one file.

    The fallback only kicks in when ``use_initial_if_smaller`` is set and the
    input file is strictly smaller than the encoded output. With
    ``source="original"`` the input file's own bytes are kept; with
    ``source="pixels"`` the decoded pixel bytes are written instead.
    """

    def __init__(self, source: FallbackSource = "original"):
        if source not in ("original", "pixels"):
            raise ValueError(f"Unknown fallback source: {source}")
        self.source = source

    def resolve(
        self,
        encoded: EncodedBuffer,
        original: bytes,
        pixels: PixelBuffer,
        input_size: int,
        use_initial_if_smaller: bool,
    ) -> Resolution:
        encoded_size = len(encoded)
        if use_initial_if_smaller and input_size < encoded_size:
            payload = original if self.source == "original" else pixels.data
            return Resolution(payload=payload, reported_output_size=input_size, used_fallback=True)
        return Resolution(payload=encoded.view, reported_output_size=encoded_size)

    @property
    def keeps_input_format(self) -> bool:
        """True when a fallback payload is written in the input file's own format."""
        return self.source == "original"
