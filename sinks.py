import logging

from bmp_errors import RowWriteFailure

logger = logging.getLogger(__name__)


class ScanlineSink:
    """Receives decoded scanlines, top row first.

    ``configure`` is called once with the ``ImageLayout`` before the first
    row. ``write_scanline`` may raise ``RowWriteFailure`` (or ``OSError``)
    for a single row; the decoder logs it and goes on with the next one.
    """

    def configure(self, layout):
        self.layout = layout

    def write_scanline(self, row, data):
        raise NotImplementedError

    def close(self):
        pass


class ListSink(ScanlineSink):
    # Keeps every row in memory, handy for tests and small images

    def __init__(self):
        self.layout = None
        self.rows = []

    def configure(self, layout):
        self.layout = layout
        self.rows = [None] * layout.height

    def write_scanline(self, row, data):
        if len(data) != self.layout.scanline_size:
            raise RowWriteFailure(
                row, f"expected {self.layout.scanline_size} bytes, got {len(data)}")
        self.rows[row] = bytes(data)

    def pixels(self):
        # rows as lists of (R, G, B) tuples, palette indices resolved
        layout = self.layout
        result = []
        for data in self.rows:
            row_pixels = []
            if data is None:
                result.append(row_pixels)
                continue
            if layout.photometric == 'palette':
                for index in data:
                    row_pixels.append(layout.colormap.rgb8(index))
            elif layout.bytes_per_pixel == 3:
                for col in range(layout.width):
                    row_pixels.append(tuple(data[col * 3:col * 3 + 3]))
            result.append(row_pixels)
        return result


class RawFileSink(ScanlineSink):
    # Bare decoded samples, one scanline after another, no header

    def __init__(self, path):
        self.path = path
        self.layout = None
        self._file = None

    def configure(self, layout):
        self.layout = layout
        self._file = open(self.path, 'wb')
        self._file.truncate(layout.scanline_size * layout.height)
        logger.debug("raw output %s: %dx%d, %d bytes per pixel", self.path,
                     layout.width, layout.height, layout.bytes_per_pixel)

    def write_scanline(self, row, data):
        self._file.seek(row * self.layout.scanline_size)
        written = self._file.write(data)
        if written != len(data):
            raise RowWriteFailure(row, f"wrote {written} of {len(data)} bytes")

    def close(self):
        if self._file is not None:
            self._file.close()
            self._file = None
