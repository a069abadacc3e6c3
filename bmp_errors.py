# Errors raised (or carried) while decoding a BMP file.
#
# Structural problems abort the decode and subclass FormatError.
# Per-row problems subclass DecodeWarning; they are logged and collected
# but the decode keeps going so that damaged files still produce output.


class FormatError(ValueError):
    pass


class NotABitmap(FormatError):
    def __init__(self, signature):
        self.signature = signature
        super().__init__(f"File is not BMP (signature {signature!r})")


class TruncatedHeader(FormatError):
    pass


class UnsupportedBitDepth(FormatError):
    def __init__(self, bit_count):
        self.bit_count = bit_count
        super().__init__(f"Cannot process BMP file with bit count {bit_count}")


class UnsupportedCompression(FormatError):
    def __init__(self, compression, bit_count=None):
        self.compression = compression
        self.bit_count = bit_count
        if bit_count is None:
            msg = f"Unsupported compression method {compression}"
        else:
            msg = f"Compression method {compression} is not valid for {bit_count} bpp"
        super().__init__(msg)


class TruncatedColorTable(FormatError):
    def __init__(self, expected, got):
        self.expected = expected
        self.got = got
        super().__init__(f"Colour table truncated: expected {expected} bytes, got {got}")


class ImageTooLarge(FormatError):
    def __init__(self, reason):
        self.reason = reason
        super().__init__(f"Image too large: {reason}")


class DecodeWarning(Exception):
    pass


class RowReadFailure(DecodeWarning):
    def __init__(self, row, reason):
        self.row = row
        self.reason = reason
        super().__init__(f"scanline {row}: {reason}")


class RowWriteFailure(DecodeWarning):
    def __init__(self, row, reason):
        self.row = row
        self.reason = reason
        super().__init__(f"scanline {row}: Write error ({reason})")
