# NOTE: For displaying the decoded image in a GUI,
#       please download PyQt5.
#
# Installation (in terminal):
#   pip install PyQt5
import logging
import sys
from PyQt5.QtWidgets import (
    QApplication, QWidget, QVBoxLayout, QPushButton, QLabel,
    QFileDialog, QTextEdit, QSlider, QHBoxLayout, QCheckBox
)
from PyQt5.QtGui import QPixmap, qBlue, qGreen, qRed, qRgb
from PyQt5.QtCore import Qt

import config
from bmp_errors import FormatError
from bmp_parser import BMPParser
from image_sink import QImageSink
from utils import format_metadata

logger = logging.getLogger(__name__)

CHANNELS = ('R', 'G', 'B')


def channel_levels(enabled, brightness):
    """Lookup tables mapping an 8-bit sample to its displayed value.

    ``enabled`` holds one flag per channel; a disabled channel maps to 0.
    """
    return [
        [int(v * brightness) if on else 0 for v in range(256)]
        for on in enabled
    ]


def adjust_image(image, enabled=(True, True, True), brightness=1.0, scale=1.0):
    # Apply channel toggles and brightness, then resize the result
    if not all(enabled) or brightness != 1.0:
        red, green, blue = channel_levels(enabled, brightness)
        image = image.copy()
        for y in range(image.height()):
            for x in range(image.width()):
                rgb = image.pixel(x, y)
                image.setPixel(x, y, qRgb(red[qRed(rgb)], green[qGreen(rgb)],
                                          blue[qBlue(rgb)]))
    if scale != 1.0:
        size = image.size() * scale
        image = image.scaled(max(size.width(), 1), max(size.height(), 1),
                             Qt.IgnoreAspectRatio, Qt.FastTransformation)
    return image


class BMPViewer(QWidget):
    def __init__(self, options=None):
        super().__init__()
        self.setWindowTitle("BMP Viewer")
        self.resize(700, 500)

        self.options = options or config.DecodeOptions.from_env()
        self.decoded_image = None
        self.report = None

        layout = QVBoxLayout()
        top_layout = QHBoxLayout()

        self.open_button = QPushButton("Open BMP File")
        self.open_button.setFixedSize(150, 50)
        self.open_button.clicked.connect(self.open_file)
        top_layout.addWidget(self.open_button)
        top_layout.addStretch()

        # one checkbox per colour channel
        self.channel_boxes = []
        for name in CHANNELS:
            box = QCheckBox(name)
            box.setChecked(True)
            box.setFixedSize(30, 30)
            box.toggled.connect(self.update_image)
            top_layout.addWidget(box)
            self.channel_boxes.append(box)
        layout.addLayout(top_layout)

        self.image_label = QLabel("No Image Loaded")
        self.image_label.setStyleSheet("border: 1px solid black; background: white;")
        self.image_label.setAlignment(Qt.AlignCenter)
        self.image_label.setFixedSize(700, 400)
        layout.addWidget(self.image_label)

        # header fields, then decode warnings
        self.metadata_box = QTextEdit("No Metadata Loaded")
        self.metadata_box.setMinimumHeight(150)
        self.metadata_box.setReadOnly(True)
        layout.addWidget(self.metadata_box)

        self.brightness_slider = self._add_slider(layout, "Brightness", 0)
        self.scale_slider = self._add_slider(layout, "Scale", 1)

        self.setLayout(layout)

    def _add_slider(self, layout, title, minimum):
        slider = QSlider(Qt.Horizontal)
        slider.setRange(minimum, 100)
        slider.setValue(100)
        slider.valueChanged.connect(self.update_image)
        layout.addWidget(QLabel(title))
        layout.addWidget(slider)
        return slider

    @property
    def channels(self):
        return tuple(box.isChecked() for box in self.channel_boxes)

    def open_file(self):
        filepath, _ = QFileDialog.getOpenFileName(self, "Open BMP File", "", "BMP Files (*.bmp)")
        if filepath:
            self.load_file(filepath)

    def load_file(self, filepath):
        sink = QImageSink()
        try:
            with BMPParser(filepath, self.options) as parser:
                self.report = parser.decode(sink)
        except (FormatError, OSError) as exc:
            logger.warning("%s: %s", filepath, exc)
            self.metadata_box.setText(f"{filepath}: {exc}")
            return False

        text = format_metadata(parser.metadata)
        text += ''.join(f"warning: {w}\n" for w in self.report.warnings)
        self.metadata_box.setText(text)

        self.decoded_image = sink.image()
        self.update_image()
        return True

    def displayed_image(self):
        if self.decoded_image is None:
            return None
        return adjust_image(
            self.decoded_image,
            self.channels,
            self.brightness_slider.value() / 100.0,
            self.scale_slider.value() / 100.0,
        )

    def update_image(self):
        image = self.displayed_image()
        if image is not None:
            self.image_label.setPixmap(QPixmap.fromImage(image))


def main():
    logging.basicConfig(level=getattr(logging, config.LOG_LEVEL, logging.WARNING))
    app = QApplication(sys.argv)
    viewer = BMPViewer()
    if len(sys.argv) > 1:
        viewer.load_file(sys.argv[1])
    viewer.show()
    return app.exec_()


if __name__ == "__main__":
    sys.exit(main())
