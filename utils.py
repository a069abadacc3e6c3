PALETTE_DEPTHS = (1, 4, 8)
SUPPORTED_DEPTHS = (1, 4, 8, 16, 24, 32)


def row_stride(width, bit_count):
    # Each row is padded to a multiple of 4 bytes
    return ((width * bit_count + 31) // 32) * 4


def scale_8_to_16(value):
    # 0xAB -> 0xABAB, so 0 stays 0 and 255 becomes 65535
    return value * 257


def output_bytes_per_pixel(bit_count):
    if bit_count in PALETTE_DEPTHS:
        return 1
    if bit_count == 16:
        return 2
    return 3


def unpack_indices(buf, width, bit_count):
    # 1 and 4 bpp rows pack several pixels per byte, most significant bits first
    if bit_count == 8:
        return bytearray(buf[:width])

    pixels_per_byte = 8 // bit_count
    mask = (1 << bit_count) - 1
    out = bytearray(width)
    for col in range(width):
        byte = buf[col // pixels_per_byte]
        shift = 8 - bit_count * (col % pixels_per_byte + 1)
        out[col] = (byte >> shift) & mask
    return out


def rearrange_pixels(buf, width, bit_count):
    """Reorder BMP's BGR(A) pixel bytes to RGB, in place.

    32 bpp pixels lose their fourth byte and are compacted to 3 bytes each,
    so only the first ``width * 3`` bytes are meaningful afterwards. 16 bpp
    and palette rows are left untouched.
    """
    if bit_count == 24:
        for i in range(0, width * 3, 3):
            buf[i], buf[i + 2] = buf[i + 2], buf[i]

    elif bit_count == 32:
        # output never overtakes input since 3 < 4
        for px in range(width):
            src = px * 4
            dst = px * 3
            b, g, r = buf[src], buf[src + 1], buf[src + 2]
            buf[dst] = r
            buf[dst + 1] = g
            buf[dst + 2] = b

    # 16 bpp is passed through, its channel layout is unverified
    return buf


def format_metadata(metadata):
    # "key: value" lines, as shown in the viewer's metadata box
    meta_text = ""
    for k, v in metadata.items():
        meta_text += f"{k}: {v}\n"
    return meta_text
