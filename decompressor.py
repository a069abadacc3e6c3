import logging

logger = logging.getLogger(__name__)

# Escape codes following a zero byte
RLE_END_OF_LINE = 0
RLE_END_OF_BITMAP = 1
RLE_DELTA = 2


class RLEDecompressor:
    """Run-length decoder for RLE8 and RLE4 compressed bitmaps.

    The output is always one 8-bit palette index per pixel, ``width * height``
    bytes in file row order. Pixels not touched by the stream stay 0.

    Token grammar (pairs of bytes):

    * ``n v`` with n > 0: encoded run of n pixels. RLE8 repeats index v,
      RLE4 alternates the high and low nibble of v.
    * ``0 0``: end of scanline.
    * ``0 1``: end of bitmap.
    * ``0 2 dx dy``: move the output cursor by dx + dy * width.
    * ``0 k`` with k > 2: absolute run of k literal indices (bytes for
      RLE8, nibbles for RLE4), padded to an even number of bytes.

    ``in_pos`` and ``out_pos`` are left at the final cursor positions, and
    never exceed the input length or the output size.
    """

    def __init__(self, width, height, bit_count, pad_lines=False):
        if bit_count not in (4, 8):
            raise ValueError(f"RLE needs 4 or 8 bpp, got {bit_count}")
        self.width = width
        self.height = height
        self.bit_count = bit_count
        self.pad_lines = pad_lines
        self.in_pos = 0
        self.out_pos = 0
        self.end_of_bitmap = False

    @property
    def nibbles(self):
        return self.bit_count == 4

    def decompress(self, comp):
        size = self.width * self.height
        out = bytearray(size)
        n = len(comp)
        i = 0
        j = 0
        self.end_of_bitmap = False

        while j < size and i < n:
            count = comp[i]; i += 1

            if count:
                # encoded run, needs the value byte
                if i >= n:
                    break
                j = self._write_run(out, j, size, count, comp[i])
                i += 1
                continue

            # escape
            if i >= n:
                break
            code = comp[i]; i += 1

            if code == RLE_END_OF_LINE:
                if self.pad_lines and self.width and j % self.width:
                    j = min(j + self.width - j % self.width, size)

            elif code == RLE_END_OF_BITMAP:
                self.end_of_bitmap = True
                break

            elif code == RLE_DELTA:
                if i + 1 >= n:
                    break
                dx, dy = comp[i], comp[i + 1]
                i += 2
                j = min(j + dx + dy * self.width, size)

            else:
                i, j = self._copy_absolute(comp, i, out, j, size, code)

        self.in_pos = min(i, n)
        self.out_pos = j
        logger.debug("RLE%d stopped at input %d/%d, output %d/%d, end marker %s",
                     self.bit_count, self.in_pos, n, j, size, self.end_of_bitmap)
        return out

    def _write_run(self, out, j, size, count, value):
        stop = min(j + count, size)
        if self.nibbles:
            hi, lo = value >> 4, value & 0x0F
            for k in range(stop - j):
                out[j + k] = lo if k & 1 else hi
        else:
            out[j:stop] = bytes((value,)) * (stop - j)
        return stop

    def _copy_absolute(self, comp, start, out, j, size, count):
        n = len(comp)
        copied = 0
        while copied < count and j < size:
            if self.nibbles:
                pos = start + copied // 2
                if pos >= n:
                    break
                byte = comp[pos]
                out[j] = byte & 0x0F if copied & 1 else byte >> 4
            else:
                pos = start + copied
                if pos >= n:
                    break
                out[j] = comp[pos]
            j += 1
            copied += 1

        used = (copied + 1) // 2 if self.nibbles else copied
        # absolute runs are padded to a 16-bit boundary
        if used & 1:
            used += 1
        return start + used, j


def decompress_rle8(comp, width, height, pad_lines=False):
    return RLEDecompressor(width, height, 8, pad_lines).decompress(comp)


def decompress_rle4(comp, width, height, pad_lines=False):
    return RLEDecompressor(width, height, 4, pad_lines).decompress(comp)
