"""Decoding of PDF image streams into 8-bit samples."""

from __future__ import annotations

import io
import logging
import zlib
from dataclasses import dataclass
from typing import Any

from pdfminer.pdftypes import PDFStream, resolve1
from pdfminer.psparser import PSException, PSLiteral, literal_name
from PIL import Image

from pdfstruct._exceptions import ImageConversionFailure
from pdfstruct._types import ImageKind, ImageObject

logger = logging.getLogger(__name__)

# Inline images may use abbreviated keys and color space names.
_KEY_ALIASES = {
    "Width": "W",
    "Height": "H",
    "BitsPerComponent": "BPC",
    "ColorSpace": "CS",
    "ImageMask": "IM",
    "Decode": "D",
}
_COLOR_SPACE_ALIASES = {
    "G": "DeviceGray",
    "RGB": "DeviceRGB",
    "CMYK": "DeviceCMYK",
    "I": "Indexed",
}
_COMPONENTS = {
    "DeviceGray": 1,
    "CalGray": 1,
    "Separation": 1,
    "DeviceRGB": 3,
    "CalRGB": 3,
    "Lab": 3,
    "DeviceCMYK": 4,
}
_PASSTHROUGH_FAMILIES = frozenset({"DeviceCMYK", "DeviceN", "Separation", "Lab"})
_JPEG_FILTERS = frozenset({"DCTDecode", "DCT", "JPXDecode"})
_UNSUPPORTED_FILTERS = frozenset({"JBIG2Decode"})
# Raised by int()/float() coercions, lookups and slicing when an image
# dictionary holds values of the wrong type or shape.
_MALFORMED_DICTIONARY_ERRORS = (TypeError, ValueError, IndexError, KeyError)


@dataclass(slots=True, frozen=True)
class ColorSpace:
    family: str
    components: int
    palette: tuple[bytes, ...] | None = None
    base_family: str = ""


def _name(value: Any) -> str:
    value = resolve1(value)
    if isinstance(value, PSLiteral):
        return literal_name(value)
    if isinstance(value, bytes):
        return value.decode("latin-1")
    return str(value) if value is not None else ""


def _as_dict(value: Any) -> dict[str, Any]:
    resolved = resolve1(value)
    return resolved if isinstance(resolved, dict) else {}


def image_attr(stream: PDFStream, key: str) -> Any:
    """Read an image dictionary entry, accepting the inline abbreviation."""
    attrs = stream.attrs
    if key in attrs:
        return resolve1(attrs[key])
    alias = _KEY_ALIASES.get(key)
    if alias is not None and alias in attrs:
        return resolve1(attrs[alias])
    return None


def is_image_mask(stream: PDFStream) -> bool:
    return bool(image_attr(stream, "ImageMask"))


def _stream_bytes(value: Any) -> bytes:
    value = resolve1(value)
    if isinstance(value, PDFStream):
        return value.get_data()
    if isinstance(value, bytes):
        return value
    if isinstance(value, str):
        return value.encode("latin-1")
    return b""


def resolve_color_space(
    value: Any,
    resources: dict[str, Any] | None = None,
) -> ColorSpace:
    """Describe a color space object (name, array, or named resource)."""
    value = resolve1(value)

    if isinstance(value, (PSLiteral, str, bytes)):
        name = _COLOR_SPACE_ALIASES.get(_name(value), _name(value))
        if name in _COMPONENTS:
            return ColorSpace(family=name, components=_COMPONENTS[name])
        named = _as_dict(resources.get("ColorSpace")).get(name) if resources else None
        if named is not None:
            return resolve_color_space(named, None)
        return ColorSpace(family=name, components=0)

    if isinstance(value, list) and value:
        family = _COLOR_SPACE_ALIASES.get(_name(value[0]), _name(value[0]))
        if family == "ICCBased" and len(value) > 1:
            profile = resolve1(value[1])
            count = int(profile.get("N", 0)) if isinstance(profile, PDFStream) else 0
            return ColorSpace(family=family, components=count)
        if family == "Indexed" and len(value) > 3:
            base = resolve_color_space(value[1], resources)
            width = max(1, base.components)
            hival = int(resolve1(value[2]))
            lookup = _stream_bytes(value[3])
            palette = tuple(
                lookup[i * width : (i + 1) * width].ljust(width, b"\x00")
                for i in range(hival + 1)
            )
            return ColorSpace(
                family=family,
                components=1,
                palette=palette,
                base_family=base.family,
            )
        if family == "DeviceN" and len(value) > 1:
            names = resolve1(value[1])
            return ColorSpace(
                family=family,
                components=len(names) if isinstance(names, list) else 0,
            )
        return ColorSpace(family=family, components=_COMPONENTS.get(family, 0))

    return ColorSpace(family="", components=0)


def _kind_for(family: str, components: int) -> ImageKind:
    if family in _PASSTHROUGH_FAMILIES:
        return ImageKind.UNKNOWN
    if components == 1:
        return ImageKind.GRAYSCALE
    if components == 3:
        return ImageKind.RGB
    return ImageKind.UNKNOWN


def unpack_samples(
    data: bytes,
    width: int,
    height: int,
    components: int,
    bits: int,
    *,
    scale: bool = True,
) -> bytes:
    """Expand packed samples to one byte per component.

    Rows of sub-byte samples are padded to a byte boundary. With ``scale`` the
    values are stretched to the 0-255 range, otherwise they are kept as raw
    indices (palette lookups).
    """
    per_row = width * components
    if bits == 8:
        return data[: per_row * height]
    if bits == 16:
        # Big-endian samples: keep the high byte.
        return data[0::2][: per_row * height]
    if bits not in (1, 2, 4):
        raise ValueError(f"unsupported bits per component: {bits}")

    max_value = (1 << bits) - 1
    shifts = range(8 - bits, -1, -bits)
    table = [
        bytes(
            ((byte >> shift) & max_value) * 255 // max_value
            if scale
            else (byte >> shift) & max_value
            for shift in shifts
        )
        for byte in range(256)
    ]

    row_bytes = (per_row * bits + 7) // 8
    out = bytearray()
    for row in range(height):
        packed = data[row * row_bytes : (row + 1) * row_bytes]
        unpacked = b"".join(table[byte] for byte in packed)
        out += unpacked[:per_row]
    return bytes(out)


def _decode_jpeg(data: bytes, smask: Any) -> ImageObject:
    with Image.open(io.BytesIO(data)) as image:
        image.load()
        if image.mode in ("1", "L", "I;16"):
            converted = image.convert("L")
            kind = ImageKind.GRAYSCALE
        else:
            converted = image.convert("RGB")
            kind = ImageKind.RGB
        return ImageObject(
            width=converted.width,
            height=converted.height,
            kind=kind,
            data=converted.tobytes(),
            smask=smask,
        )


def decode_image(
    stream: PDFStream,
    name: str,
    resources: dict[str, Any] | None = None,
) -> ImageObject:
    """Decode an image XObject or inline image into an :class:`ImageObject`.

    Raises
    ------
    ImageConversionFailure
        If the stream data cannot be decoded or the image dictionary is
        malformed.
    """
    try:
        return _decode_image(stream, name, resources)
    except _MALFORMED_DICTIONARY_ERRORS as exc:
        raise ImageConversionFailure(
            name, f"malformed image dictionary: {exc!r}"
        ) from exc


def _decode_image(
    stream: PDFStream,
    name: str,
    resources: dict[str, Any] | None,
) -> ImageObject:
    width = int(image_attr(stream, "Width") or 0)
    height = int(image_attr(stream, "Height") or 0)
    smask = resolve1(stream.get("SMask"))
    if not isinstance(smask, PDFStream):
        smask = None

    try:
        data = stream.get_data()
    except (PSException, zlib.error, ValueError) as exc:
        raise ImageConversionFailure(name, f"stream decode failed: {exc}") from exc

    filters = {_name(f) for f, _params in stream.get_filters()}
    if filters & _UNSUPPORTED_FILTERS:
        raise ImageConversionFailure(name, f"unsupported filter {sorted(filters)}")
    if filters & _JPEG_FILTERS:
        try:
            return _decode_jpeg(data, smask)
        except (OSError, ValueError) as exc:
            raise ImageConversionFailure(name, f"JPEG decode failed: {exc}") from exc

    if width <= 0 or height <= 0:
        return ImageObject(width=width, height=height, kind=ImageKind.UNKNOWN, data=b"")

    mask = is_image_mask(stream)
    bits = 1 if mask else int(image_attr(stream, "BitsPerComponent") or 8)
    if mask:
        space = ColorSpace(family="DeviceGray", components=1)
    else:
        space = resolve_color_space(image_attr(stream, "ColorSpace"), resources)
    if space.palette is not None and not space.palette:
        raise ImageConversionFailure(name, "indexed color space has an empty palette")

    components = space.components
    if components <= 0:
        # Unknown color space: infer components from the buffer.
        components = max(1, len(data) * 8 // max(1, width * height * bits))

    try:
        samples = unpack_samples(
            data,
            width,
            height,
            components,
            bits,
            scale=space.palette is None,
        )
    except ValueError as exc:
        raise ImageConversionFailure(name, str(exc)) from exc

    decode = image_attr(stream, "Decode")
    if space.palette is None and isinstance(decode, list) and len(decode) >= 2:
        if float(resolve1(decode[0])) > float(resolve1(decode[1])):
            samples = bytes(255 - value for value in samples)

    if space.palette is not None:
        palette = space.palette
        last = len(palette) - 1
        samples = b"".join(palette[min(index, last)] for index in samples)
        kind = _kind_for(space.base_family, len(palette[0]))
    else:
        kind = _kind_for(space.family, components)

    logger.debug(
        "Decoded image %s: %dx%d %s bpc=%d kind=%s",
        name,
        width,
        height,
        space.family or "?",
        bits,
        kind.name,
    )
    return ImageObject(width=width, height=height, kind=kind, data=samples, smask=smask)
