"""Tests for decoding PDF image streams into samples."""

from __future__ import annotations

import io
import zlib

import pytest
from pdfminer.pdftypes import PDFStream
from pdfminer.psparser import LIT
from PIL import Image

from pdfstruct._exceptions import ImageConversionFailure
from pdfstruct._types import ImageKind
from pdfstruct.backend import decode_image, unpack_samples
from pdfstruct.backend._images import resolve_color_space


def _stream(data: bytes, **attrs) -> PDFStream:
    return PDFStream(attrs, data)


def test_one_bit_rows_are_padded_to_bytes() -> None:
    samples = unpack_samples(bytes([0b10100000, 0b01000000]), 3, 2, 1, 1)

    assert samples == bytes([255, 0, 255, 0, 255, 0])


def test_four_bit_samples_scaled_or_raw() -> None:
    assert unpack_samples(bytes([0x1F]), 2, 1, 1, 4) == bytes([17, 255])
    assert unpack_samples(bytes([0x1F]), 2, 1, 1, 4, scale=False) == bytes([1, 15])


def test_sixteen_bit_samples_keep_high_byte() -> None:
    assert unpack_samples(bytes([0x12, 0x34, 0xAB, 0xCD]), 2, 1, 1, 16) == bytes(
        [0x12, 0xAB]
    )


def test_unsupported_bit_depth() -> None:
    with pytest.raises(ValueError, match="bits per component"):
        unpack_samples(b"\x00", 1, 1, 1, 3)


@pytest.mark.parametrize(
    ("value", "family", "components"),
    [
        (LIT("DeviceRGB"), "DeviceRGB", 3),
        (LIT("G"), "DeviceGray", 1),
        (LIT("DeviceCMYK"), "DeviceCMYK", 4),
        (
            [LIT("DeviceN"), [LIT("Cyan"), LIT("Magenta")], LIT("DeviceCMYK")],
            "DeviceN",
            2,
        ),
        (LIT("Pattern"), "Pattern", 0),
    ],
)
def test_resolve_color_space(value, family, components) -> None:
    space = resolve_color_space(value)

    assert (space.family, space.components) == (family, components)


def test_named_color_space_resource() -> None:
    resources = {"ColorSpace": {"CS0": LIT("DeviceGray")}}

    space = resolve_color_space(LIT("CS0"), resources)

    assert space.family == "DeviceGray"


def test_indexed_image_expands_palette() -> None:
    stream = _stream(
        bytes([1, 0]),
        Width=2,
        Height=1,
        BitsPerComponent=8,
        ColorSpace=[LIT("Indexed"), LIT("DeviceRGB"), 1, b"\xff\x00\x00\x00\xff\x00"],
    )

    image = decode_image(stream, "Im1")

    assert image.kind == ImageKind.RGB
    assert image.data == bytes([0, 255, 0, 255, 0, 0])


def test_inverted_decode_array() -> None:
    stream = _stream(
        bytes([0, 255]),
        Width=2,
        Height=1,
        BitsPerComponent=8,
        ColorSpace=LIT("DeviceGray"),
        Decode=[1, 0],
    )

    assert decode_image(stream, "Im1").data == bytes([255, 0])


def test_image_mask_is_one_bit_gray() -> None:
    stream = _stream(bytes([0b11110000]), Width=8, Height=1, ImageMask=True)

    image = decode_image(stream, "Mask")

    assert image.kind == ImageKind.GRAYSCALE
    assert image.data == bytes([255] * 4 + [0] * 4)


def test_cmyk_samples_pass_through() -> None:
    stream = _stream(
        bytes([1, 2, 3, 4]),
        Width=1,
        Height=1,
        BitsPerComponent=8,
        ColorSpace=LIT("DeviceCMYK"),
    )

    image = decode_image(stream, "Im1")

    assert image.kind == ImageKind.UNKNOWN
    assert image.data == bytes([1, 2, 3, 4])


def test_flate_stream_and_soft_mask() -> None:
    smask = _stream(b"\xff", Width=1, Height=1)
    stream = _stream(
        zlib.compress(bytes([9, 8, 7])),
        Width=1,
        Height=1,
        BitsPerComponent=8,
        ColorSpace=LIT("DeviceRGB"),
        Filter=LIT("FlateDecode"),
        SMask=smask,
    )

    image = decode_image(stream, "Im1")

    assert image.data == bytes([9, 8, 7])
    assert image.has_alpha is True


def test_inline_abbreviations() -> None:
    stream = _stream(bytes([7, 7]), W=2, H=1, BPC=8, CS=LIT("G"))

    image = decode_image(stream, "inline_0")

    assert (image.width, image.height, image.kind) == (2, 1, ImageKind.GRAYSCALE)


def test_jpeg_is_decoded_with_pillow() -> None:
    buffer = io.BytesIO()
    Image.new("RGB", (60, 40), (255, 0, 0)).save(buffer, format="JPEG")
    stream = _stream(
        buffer.getvalue(),
        Width=60,
        Height=40,
        BitsPerComponent=8,
        ColorSpace=LIT("DeviceRGB"),
        Filter=LIT("DCTDecode"),
    )

    image = decode_image(stream, "Im1")

    assert (image.width, image.height, image.kind) == (60, 40, ImageKind.RGB)
    assert len(image.data) == 60 * 40 * 3


def test_unsupported_bit_depth_is_a_conversion_failure() -> None:
    stream = _stream(
        b"\x00", Width=1, Height=1, BitsPerComponent=3, ColorSpace=LIT("DeviceGray")
    )

    with pytest.raises(ImageConversionFailure, match="Im1"):
        decode_image(stream, "Im1")


def test_names_in_decode_array_are_a_conversion_failure() -> None:
    stream = _stream(
        bytes([0, 255]),
        Width=2,
        Height=1,
        BitsPerComponent=8,
        ColorSpace=LIT("DeviceGray"),
        Decode=[LIT("One"), LIT("Zero")],
    )

    with pytest.raises(ImageConversionFailure, match="malformed image dictionary"):
        decode_image(stream, "Im1")


def test_empty_indexed_palette_is_a_conversion_failure() -> None:
    stream = _stream(
        bytes([0, 1]),
        Width=2,
        Height=1,
        BitsPerComponent=8,
        ColorSpace=[LIT("Indexed"), LIT("DeviceRGB"), -1, b""],
    )

    with pytest.raises(ImageConversionFailure, match="empty palette"):
        decode_image(stream, "Im1")


def test_non_numeric_dimensions_are_a_conversion_failure() -> None:
    stream = _stream(
        b"\x00", Width=LIT("Wide"), Height=1, ColorSpace=LIT("DeviceGray")
    )

    with pytest.raises(ImageConversionFailure, match="Im7"):
        decode_image(stream, "Im7")
