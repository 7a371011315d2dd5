"""
Image container sniffing from raw upload bytes.

Only the first few header bytes are inspected: no pixel data is decoded and
no imaging library is involved, so this runs safely on untrusted uploads
before anything touches the disk. Malformed input degrades to
`ImageFormat.UNKNOWN` / absent dimensions; `sniff` never raises.
"""

import struct
from typing import Optional

from app.schemas.detection import ImageFormat, ImageProbe

MIN_SNIFF_BYTES = 12

PNG_SIGNATURE = b"\x89PNG"
JPEG_SIGNATURE = b"\xff\xd8"
RIFF_SIGNATURE = b"RIFF"
WEBP_SIGNATURE = b"WEBP"

# Start-of-frame markers that carry the frame size (baseline, progressive)
JPEG_SOF_MARKERS = (0xC0, 0xC2)
# Markers with no length field
JPEG_STANDALONE_MARKERS = frozenset([0x01, *range(0xD0, 0xD8)])
JPEG_EOI = 0xD9

_EXTENSIONS = {
    ImageFormat.PNG: ".png",
    ImageFormat.JPEG: ".jpg",
    ImageFormat.WEBP: ".webp",
}

_CONTENT_TYPES = {
    ImageFormat.PNG: "image/png",
    ImageFormat.JPEG: "image/jpeg",
    ImageFormat.WEBP: "image/webp",
}


def sniff_format(buffer: bytes) -> ImageFormat:
    """Detect the container format from its signature. First match wins."""
    if not buffer or len(buffer) < MIN_SNIFF_BYTES:
        return ImageFormat.UNKNOWN
    if buffer[:4] == PNG_SIGNATURE:
        return ImageFormat.PNG
    if buffer[:2] == JPEG_SIGNATURE:
        return ImageFormat.JPEG
    if len(buffer) > MIN_SNIFF_BYTES and buffer[:4] == RIFF_SIGNATURE and buffer[8:12] == WEBP_SIGNATURE:
        return ImageFormat.WEBP
    return ImageFormat.UNKNOWN


def _png_size(buffer: bytes) -> Optional[tuple[int, int]]:
    # IHDR is always the first chunk: width/height sit right after its type tag
    if len(buffer) <= 24:
        return None
    width, height = struct.unpack_from(">II", buffer, 16)
    return width, height


def _jpeg_size(buffer: bytes) -> Optional[tuple[int, int]]:
    """
    Walk the marker segments until the first SOF0/SOF2 frame header.

    Segment layout: FF <marker> <u16 length incl. itself> <payload>.
    SOF payload: <u8 precision> <u16 height> <u16 width> ...
    """
    size = len(buffer)
    i = 2
    while i < size:
        if buffer[i] != 0xFF:
            i += 1
            continue
        if i + 1 >= size:
            return None
        marker = buffer[i + 1]
        if marker == 0xFF:
            # fill byte
            i += 1
            continue
        if marker == JPEG_EOI:
            return None
        if marker in JPEG_STANDALONE_MARKERS:
            i += 2
            continue
        if marker in JPEG_SOF_MARKERS:
            if i + 9 > size:
                return None
            height, width = struct.unpack_from(">HH", buffer, i + 5)
            return width, height
        if i + 4 > size:
            return None
        (segment_length,) = struct.unpack_from(">H", buffer, i + 2)
        if segment_length < 2:
            return None
        i += 2 + segment_length
    return None


def sniff(buffer: bytes) -> ImageProbe:
    """Return the format and, for PNG/JPEG, the pixel size of an image buffer."""
    image_format = sniff_format(buffer)

    dimensions = None
    if image_format is ImageFormat.PNG:
        dimensions = _png_size(buffer)
    elif image_format is ImageFormat.JPEG:
        dimensions = _jpeg_size(buffer)

    if dimensions is None:
        return ImageProbe(format=image_format)
    width, height = dimensions
    return ImageProbe(format=image_format, width=width, height=height)


def extension_for(image_format: ImageFormat) -> str:
    return _EXTENSIONS.get(image_format, ".bin")


def content_type_for(image_format: ImageFormat) -> str:
    return _CONTENT_TYPES.get(image_format, "application/octet-stream")
