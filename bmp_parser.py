import logging
import os
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import NamedTuple, Optional

from bmp_errors import (
    ImageTooLarge, NotABitmap, RowReadFailure, RowWriteFailure, TruncatedColorTable,
    TruncatedHeader, UnsupportedBitDepth, UnsupportedCompression,
)
from config import DEFAULT_OPTIONS
from decompressor import RLEDecompressor
from utils import (
    PALETTE_DEPTHS, SUPPORTED_DEPTHS, output_bytes_per_pixel,
    rearrange_pixels, row_stride, scale_8_to_16, unpack_indices,
)

logger = logging.getLogger(__name__)

# File header size in bytes, the info header always starts here
BFH_SIZE = 14
# Info header size from which the colour masks, colour space and gamma
# fields are present (BITMAPV4HEADER)
BIH_EXTENDED_SIZE = 108


class BMPVariant(Enum):
    # (description, header field width, colour table entry width)
    WIN4 = ("Windows 3.0/NT 3.51/95", 4, 4)
    WIN5 = ("Windows NT 4.0/98/Me/2000/XP", 4, 4)
    OS21 = ("OS/2 PM 1.x", 2, 3)
    OS22 = ("OS/2 PM 2.x", 4, 3)

    def __init__(self, description, field_width, entry_width):
        self.description = description
        self.field_width = field_width
        self.entry_width = entry_width


def select_variant(header_size):
    if header_size == 40:
        return BMPVariant.WIN4
    if header_size == 12:
        return BMPVariant.OS21
    # 16 is a short OS/2 2.x header seen in the wild
    if header_size in (64, 16):
        return BMPVariant.OS22
    return BMPVariant.WIN5


class Compression(IntEnum):
    RGB = 0
    RLE8 = 1
    RLE4 = 2
    BITFIELDS = 3
    JPEG = 4
    PNG = 5


SUPPORTED_COMPRESSION = (Compression.RGB, Compression.RLE8, Compression.RLE4)


@dataclass(frozen=True)
class FileHeader:
    signature: bytes
    file_size: int      # from the filesystem, the header's copy is unreliable
    offset: int         # offset of the pixel data from file start


@dataclass(frozen=True)
class InfoHeader:
    size: int
    width: int
    height: int         # positive: bottom-up rows, negative: top-down
    planes: int
    bit_count: int
    compression: Compression
    size_image: int = 0
    x_pels_per_meter: int = 0
    y_pels_per_meter: int = 0
    clr_used: int = 0
    clr_important: int = 0
    # BITMAPV4HEADER and later, parsed but never used for decoding
    red_mask: Optional[int] = None
    green_mask: Optional[int] = None
    blue_mask: Optional[int] = None
    alpha_mask: Optional[int] = None
    cs_type: Optional[int] = None
    endpoints: Optional[tuple] = None
    gamma_red: Optional[int] = None
    gamma_green: Optional[int] = None
    gamma_blue: Optional[int] = None

    @property
    def abs_width(self):
        return abs(self.width)

    @property
    def abs_height(self):
        return abs(self.height)

    @property
    def top_down(self):
        return self.height < 0

    @property
    def is_rle(self):
        return self.compression in (Compression.RLE8, Compression.RLE4)


class ColorTable:
    def __init__(self, bit_count, entries):
        # entries are 8-bit (r, g, b) triples, stored widened to 16 bits
        capacity = 1 << bit_count
        self.bit_count = bit_count
        self.size = len(entries)
        self.red = [0] * capacity
        self.green = [0] * capacity
        self.blue = [0] * capacity
        for clr, (r, g, b) in enumerate(entries):
            self.red[clr] = scale_8_to_16(r)
            self.green[clr] = scale_8_to_16(g)
            self.blue[clr] = scale_8_to_16(b)

    def __len__(self):
        return len(self.red)

    def lookup(self, index):
        return self.red[index], self.green[index], self.blue[index]

    def rgb8(self, index):
        return self.red[index] >> 8, self.green[index] >> 8, self.blue[index] >> 8


@dataclass(frozen=True)
class ImageLayout:
    width: int
    height: int
    samples_per_pixel: int
    bits_per_sample: int
    bytes_per_pixel: int
    photometric: str
    colormap: Optional[ColorTable] = None

    @property
    def scanline_size(self):
        return self.width * self.bytes_per_pixel


class RowResult(NamedTuple):
    row: int
    data: bytearray
    error: Optional[RowReadFailure] = None

    @property
    def ok(self):
        return self.error is None


@dataclass
class DecodeReport:
    file_header: FileHeader
    info_header: InfoHeader
    variant: BMPVariant
    layout: ImageLayout
    rows_written: int = 0
    warnings: list = field(default_factory=list)


def _read_exact(stream, n):
    data = stream.read(n)
    if len(data) != n:
        raise TruncatedHeader(f"Header truncated: expected {n} bytes, got {len(data)}")
    return data


def _read_int(stream, width, signed=False):
    # BMP stores every number least significant byte first
    return int.from_bytes(_read_exact(stream, width), 'little', signed=signed)


def _stream_size(stream):
    pos = stream.tell()
    stream.seek(0, os.SEEK_END)
    size = stream.tell()
    stream.seek(pos)
    return size


def read_headers(stream, file_size=None):
    """Read the file header and info header of a BMP stream.

    Returns ``(FileHeader, InfoHeader, BMPVariant)``. The variant is chosen
    from the info header size alone and fixes the width of every field read
    after it. Raises ``NotABitmap`` on a bad signature and
    ``UnsupportedBitDepth`` / ``UnsupportedCompression`` for files this
    decoder cannot handle.
    """
    if file_size is None:
        file_size = _stream_size(stream)

    stream.seek(0)
    signature = stream.read(2)
    if signature != b'BM':
        raise NotABitmap(signature)

    # We need the pixel data offset only
    stream.seek(10)
    offset = _read_int(stream, 4)
    file_header = FileHeader(signature, file_size, offset)

    stream.seek(BFH_SIZE)
    size = _read_int(stream, 4)
    variant = select_variant(size)
    logger.debug("info header size %d -> %s", size, variant.name)

    if variant is BMPVariant.OS21:
        fields = dict(
            width=_read_int(stream, variant.field_width, signed=True),
            height=_read_int(stream, variant.field_width, signed=True),
            planes=_read_int(stream, 2, signed=True),
            bit_count=_read_int(stream, 2, signed=True),
            compression=Compression.RGB,
        )
    else:
        fields = _read_long_fields(stream, size, variant.field_width)

    bit_count = fields['bit_count']
    if bit_count not in SUPPORTED_DEPTHS:
        raise UnsupportedBitDepth(bit_count)

    compression = fields['compression']
    try:
        compression = Compression(compression)
    except ValueError:
        raise UnsupportedCompression(compression) from None
    if compression not in SUPPORTED_COMPRESSION:
        raise UnsupportedCompression(compression.name)
    if (compression is Compression.RLE8 and bit_count != 8) or \
            (compression is Compression.RLE4 and bit_count != 4):
        raise UnsupportedCompression(compression.name, bit_count)
    fields['compression'] = compression

    info_header = InfoHeader(size=size, **fields)
    if info_header.planes != 1:
        logger.warning("planes is %d, should be 1", info_header.planes)

    return file_header, info_header, variant


def _read_long_fields(stream, size, field_width):
    # Fields past the declared header size (short OS/2 2.x headers) are
    # taken as 0 instead of being read from the colour table
    fields = dict(
        width=_read_int(stream, field_width, signed=True),
        height=_read_int(stream, field_width, signed=True),
        planes=_read_int(stream, 2, signed=True),
        bit_count=_read_int(stream, 2, signed=True),
    )
    tail = [
        ('compression', False),
        ('size_image', False),
        ('x_pels_per_meter', True),
        ('y_pels_per_meter', True),
        ('clr_used', False),
        ('clr_important', False),
    ]
    pos = 8 + field_width * 2
    for name, signed in tail:
        if pos + 4 <= size:
            fields[name] = _read_int(stream, 4, signed=signed)
        else:
            fields[name] = 0
        pos += 4

    if size >= BIH_EXTENDED_SIZE:
        fields.update(_read_extended_fields(stream))
    return fields


def _read_extended_fields(stream):
    raw = stream.read(BIH_EXTENDED_SIZE - 40)
    if len(raw) != BIH_EXTENDED_SIZE - 40:
        # optional, only of informational value
        logger.debug("extended header fields truncated, skipped")
        return {}

    def word(i, signed=False):
        return int.from_bytes(raw[i * 4:i * 4 + 4], 'little', signed=signed)

    return dict(
        red_mask=word(0),
        green_mask=word(1),
        blue_mask=word(2),
        alpha_mask=word(3),
        cs_type=word(4),
        endpoints=tuple(
            tuple(word(5 + c * 3 + k, signed=True) for k in range(3))
            for c in range(3)
        ),
        gamma_red=word(14, signed=True),
        gamma_green=word(15, signed=True),
        gamma_blue=word(16, signed=True),
    )


def color_table_size(info_header):
    capacity = 1 << info_header.bit_count
    if info_header.clr_used:
        return min(capacity, info_header.clr_used)
    return capacity


def build_color_table(stream, info_header, variant):
    # Colour table follows the info header, entries are (b, g, r[, reserved])
    clr_tbl_size = color_table_size(info_header)
    n_clr_elems = variant.entry_width
    expected = clr_tbl_size * n_clr_elems

    stream.seek(BFH_SIZE + info_header.size)
    clr_tbl = stream.read(expected)
    if len(clr_tbl) != expected:
        raise TruncatedColorTable(expected, len(clr_tbl))

    entries = []
    for clr in range(clr_tbl_size):
        b, g, r = clr_tbl[clr * n_clr_elems:clr * n_clr_elems + 3]
        entries.append((r, g, b))
    return ColorTable(info_header.bit_count, entries)


def image_layout(info_header, color_table=None):
    bit_count = info_header.bit_count
    width = info_header.abs_width
    height = info_header.abs_height
    bytes_per_pixel = output_bytes_per_pixel(bit_count)

    if bit_count in PALETTE_DEPTHS:
        # indices are unpacked to one byte per pixel
        return ImageLayout(width, height, 1, 8, bytes_per_pixel, 'palette', color_table)
    if bit_count == 16:
        return ImageLayout(width, height, 3, bit_count // 3, bytes_per_pixel, 'rgb')
    return ImageLayout(width, height, 3, 8, bytes_per_pixel, 'rgb')


class BMPParser:
    def __init__(self, source, options=None):
        # source is a path or a seekable binary file object
        self.source = source
        self.options = options or DEFAULT_OPTIONS
        self.metadata = {}      # Header information for display
        self.file_header = None
        self.info_header = None
        self.variant = None
        self.color_table = None     # Only for indexed BMPs
        self.layout = None
        self.warnings = []
        self._stream = None
        self._owns_stream = False

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, *exc):
        self.close()

    def open(self):
        if self._stream is not None:
            return
        if hasattr(self.source, 'read'):
            self._stream = self.source
        else:
            self._stream = open(self.source, 'rb')
            self._owns_stream = True

    def close(self):
        if self._owns_stream and self._stream is not None:
            self._stream.close()
        self._stream = None
        self._owns_stream = False

    @property
    def name(self):
        return getattr(self.source, 'name', str(self.source))

    def _file_size(self):
        if isinstance(self.source, (str, bytes, os.PathLike)):
            return os.path.getsize(self.source)
        return _stream_size(self._stream)

    def load(self):
        self.open()
        self.file_header, self.info_header, self.variant = read_headers(
            self._stream, self._file_size())
        self._check_size()
        if self.info_header.planes != 1:
            self.warnings.append(f"planes is {self.info_header.planes}, should be 1")
        if self.info_header.bit_count == 16:
            logger.warning("%s: 16 bpp pixels are passed through unconverted", self.name)
            self.warnings.append("16 bpp pixels are passed through unconverted")

        if self.info_header.bit_count in PALETTE_DEPTHS:
            self.color_table = build_color_table(self._stream, self.info_header, self.variant)

        self.layout = image_layout(self.info_header, self.color_table)
        self._fill_metadata()
        return self

    def _check_size(self):
        # Reject dimensions that would need buffers far beyond the file
        ih = self.info_header
        width, height = ih.abs_width, ih.abs_height
        pixels = width * max(height, 1)
        if pixels > self.options.max_pixels:
            raise ImageTooLarge(
                f"{width}x{height} exceeds {self.options.max_pixels} pixels")
        if ih.is_rle:
            return
        declared = row_stride(width, ih.bit_count) * height
        available = max(self.file_header.file_size - self.file_header.offset, 0)
        if declared - available > self.options.max_missing_bytes:
            raise ImageTooLarge(
                f"{declared} bytes of pixel data declared, file holds {available}")

    def _fill_metadata(self):
        fh, ih = self.file_header, self.info_header
        self.metadata = {
            'file_size': fh.file_size,
            'data_offset': fh.offset,
            'header_size': ih.size,
            'variant': self.variant.description,
            'width': ih.abs_width,
            'height': ih.abs_height,
            'top_down': ih.top_down,
            'planes': ih.planes,
            'bpp': ih.bit_count,
            'compression': ih.compression.name,
            'size_image': ih.size_image,
            'x_pels_per_meter': ih.x_pels_per_meter,
            'y_pels_per_meter': ih.y_pels_per_meter,
            'clr_used': ih.clr_used,
            'clr_important': ih.clr_important,
        }
        if self.color_table is not None:
            self.metadata['color_table_size'] = self.color_table.size

    @property
    def row_stride(self):
        return row_stride(self.info_header.abs_width, self.info_header.bit_count)

    def read_row(self, row):
        """Read and convert output row ``row`` (0 is the top of the image).

        Uncompressed images only. A seek or read problem does not raise: the
        returned ``RowResult`` carries a ``RowReadFailure`` together with
        whatever bytes could be read, zero padded to the full row.
        """
        ih = self.info_header
        height = ih.abs_height
        size = self.row_stride
        # Choose correct row start depending on bottom-up or top-down
        if ih.top_down:
            src_row = row
        else:
            src_row = height - row - 1
        offset = self.file_header.offset + src_row * size

        error = None
        scanbuf = b''
        try:
            self._stream.seek(offset)
        except (OSError, ValueError) as exc:
            error = RowReadFailure(row, f"Seek error ({exc})")
        else:
            try:
                scanbuf = self._stream.read(size)
            except OSError as exc:
                error = RowReadFailure(row, f"Read error ({exc})")
            else:
                if len(scanbuf) != size:
                    error = RowReadFailure(
                        row, f"Read error (got {len(scanbuf)} of {size} bytes)")

        if error is not None:
            logger.warning("%s: %s", self.name, error)

        scanbuf = bytearray(scanbuf)
        scanbuf.extend(bytes(size - len(scanbuf)))
        return RowResult(row, self._convert_row(scanbuf), error)

    def _convert_row(self, scanbuf):
        width = self.info_header.abs_width
        bit_count = self.info_header.bit_count
        if bit_count in PALETTE_DEPTHS:
            return unpack_indices(scanbuf, width, bit_count)
        rearrange_pixels(scanbuf, width, bit_count)
        return scanbuf[:width * output_bytes_per_pixel(bit_count)]

    def read_rle(self):
        # The whole compressed payload is decoded in one pass
        ih = self.info_header
        compr_size = max(self.file_header.file_size - self.file_header.offset, 0)
        self._stream.seek(self.file_header.offset)
        comprbuf = self._stream.read(compr_size)
        if len(comprbuf) != compr_size:
            logger.warning("%s: compressed data truncated, got %d of %d bytes",
                           self.name, len(comprbuf), compr_size)
            self.warnings.append(
                f"compressed data truncated, got {len(comprbuf)} of {compr_size} bytes")

        decoder = RLEDecompressor(ih.abs_width, ih.abs_height, ih.bit_count,
                                  pad_lines=self.options.rle_pad_lines)
        return decoder.decompress(comprbuf)

    def rows(self):
        # Yield a RowResult per output row, top to bottom
        if self.info_header is None:
            self.load()
        height = self.info_header.abs_height

        if not self.info_header.is_rle:
            for row in range(height):
                yield self.read_row(row)
            return

        width = self.info_header.abs_width
        uncomprbuf = self.read_rle()
        for row in range(height):
            start = (height - row - 1) * width
            yield RowResult(row, uncomprbuf[start:start + width])

    def decode(self, sink):
        """Decode the image and feed every scanline to ``sink``.

        Structural errors propagate before the sink sees anything. Row read
        and row write problems are logged, collected in the report's
        ``warnings`` and the decode carries on with the next row.
        """
        if self.info_header is None:
            self.load()

        report = DecodeReport(self.file_header, self.info_header, self.variant,
                              self.layout, warnings=list(self.warnings))
        sink.configure(self.layout)

        for result in self.rows():
            if result.error is not None:
                report.warnings.append(str(result.error))
            try:
                sink.write_scanline(result.row, bytes(result.data))
            except RowWriteFailure as exc:
                logger.warning("%s: %s", self.name, exc)
                report.warnings.append(str(exc))
            except OSError as exc:
                failure = RowWriteFailure(result.row, exc)
                logger.warning("%s: %s", self.name, failure)
                report.warnings.append(str(failure))
            else:
                report.rows_written += 1

        # RLE truncation is only known once the rows have been produced
        for warning in self.warnings:
            if warning not in report.warnings:
                report.warnings.append(warning)
        return report


def decode(source, sink, options=None):
    with BMPParser(source, options) as parser:
        return parser.decode(sink)
