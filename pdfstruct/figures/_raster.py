"""Conversion of decoded image samples into RGBA rasters."""

from __future__ import annotations

from PIL import Image

from pdfstruct._exceptions import ImageConversionFailure
from pdfstruct._types import ImageKind, ImageObject

_RGB_KINDS = (ImageKind.RGB, ImageKind.RGBA)


def _fit(channel: bytes, size: int) -> bytes:
    """Truncate or zero-pad ``channel`` to exactly ``size`` bytes."""
    return channel[:size].ljust(size, b"\x00")


def _gray_to_rgba(samples: bytes, size: tuple[int, int]) -> bytes:
    pixels = size[0] * size[1]
    return Image.frombytes("L", size, _fit(samples, pixels)).convert("RGBA").tobytes()


def _strided_to_rgba(data: bytes, size: tuple[int, int]) -> bytes:
    # Unknown layouts: guess bytes per pixel from the buffer length.
    pixels = size[0] * size[1]
    stride = max(1, len(data) // pixels)
    if stride < 3:
        return _gray_to_rgba(data[::stride], size)

    bands = [
        Image.frombytes("L", size, _fit(data[offset::stride], pixels))
        for offset in range(3)
    ]
    return Image.merge("RGB", bands).convert("RGBA").tobytes()


def to_rgba(image: ImageObject, name: str) -> bytes:
    """Return ``width * height * 4`` RGBA bytes for ``image``.

    Grayscale samples are replicated into RGB. RGB-family buffers are copied
    when they already hold four bytes per pixel and get an opaque alpha when
    they hold three. Anything else goes through the byte-stride heuristic.
    Alpha is always opaque; soft masks are reported but not applied.

    Raises
    ------
    ImageConversionFailure
        If the image has a zero dimension or no sample data.
    """
    if image.width <= 0 or image.height <= 0:
        raise ImageConversionFailure(
            name, f"invalid dimensions {image.width}x{image.height}"
        )
    data = bytes(image.data or b"")
    if not data:
        raise ImageConversionFailure(name, "Image has no data")

    size = (image.width, image.height)
    pixels = image.width * image.height

    if image.kind == ImageKind.GRAYSCALE:
        return _gray_to_rgba(data, size)
    if image.kind in _RGB_KINDS and len(data) == pixels * 4:
        return data
    if image.kind in _RGB_KINDS and len(data) == pixels * 3:
        return Image.frombytes("RGB", size, data).convert("RGBA").tobytes()

    return _strided_to_rgba(data, size)
