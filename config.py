import os
from dataclasses import dataclass

# logging level used by the command line tool
LOG_LEVEL = os.getenv(
    'BMP_LOG_LEVEL',
    'WARNING',
).upper()
# pad the RLE output cursor to the next row on an end-of-line escape
RLE_PAD_LINES = os.getenv(
    'BMP_RLE_PAD_LINES',
    '',
).lower() in ('1', 'true', 'yes', 'on')
# largest width * height accepted before any pixel buffer is allocated
MAX_PIXELS = int(os.getenv(
    'BMP_MAX_PIXELS',
    str(1 << 26),
))
# uncompressed files may declare at most this many bytes more pixel data
# than they hold; the missing rows are zero filled
MAX_MISSING_BYTES = int(os.getenv(
    'BMP_MAX_MISSING_BYTES',
    str(1 << 24),
))


@dataclass(frozen=True)
class DecodeOptions:
    rle_pad_lines: bool = False
    max_pixels: int = 1 << 26
    max_missing_bytes: int = 1 << 24

    @classmethod
    def from_env(cls, **overrides):
        values = {
            'rle_pad_lines': RLE_PAD_LINES,
            'max_pixels': MAX_PIXELS,
            'max_missing_bytes': MAX_MISSING_BYTES,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


DEFAULT_OPTIONS = DecodeOptions()
