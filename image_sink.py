from PyQt5.QtGui import QImage, qRgb

from sinks import ScanlineSink


class QImageSink(ScanlineSink):
    # Paints decoded rows straight into a QImage

    def __init__(self):
        self.layout = None
        self._image = None

    def configure(self, layout):
        self.layout = layout
        self._image = QImage(layout.width, layout.height, QImage.Format_RGB32)
        self._image.fill(qRgb(0, 0, 0))

    def write_scanline(self, row, data):
        layout = self.layout

        # palette images: one index byte per pixel
        if layout.photometric == 'palette':
            for x, index in enumerate(data[:layout.width]):
                self._image.setPixel(x, row, qRgb(*layout.colormap.rgb8(index)))

        # 24 and 32 bpp arrive as packed RGB
        elif layout.bytes_per_pixel == 3:
            for x in range(layout.width):
                R, G, B = data[x * 3:x * 3 + 3]
                self._image.setPixel(x, row, qRgb(R, G, B))

        # 16 bpp stays black, the channel layout is unknown

    def image(self):
        return self._image
