import random

import pytest

from decompressor import RLEDecompressor, decompress_rle4, decompress_rle8


def test_empty_image():
    decoder = RLEDecompressor(4, 4, 8)
    out = decoder.decompress(b'\x00\x01')
    assert out == bytearray(16)
    assert decoder.end_of_bitmap
    assert decoder.in_pos == 2
    assert decoder.out_pos == 0


def test_rle8_encoded_run():
    out = decompress_rle8(b'\x03\x05\x02\x07\x00\x01', 3, 2)
    assert out == bytearray([5, 5, 5, 7, 7, 0])


def test_rle8_absolute_odd_run_skips_pad_byte():
    # 3 literals, one pad byte, then a run of two 7s
    comp = b'\x00\x03\x01\x02\x03\xee\x02\x07\x00\x01'
    decoder = RLEDecompressor(8, 1, 8)
    out = decoder.decompress(comp)
    assert out == bytearray([1, 2, 3, 7, 7, 0, 0, 0])
    assert decoder.end_of_bitmap


def test_rle8_absolute_even_run_has_no_pad():
    comp = b'\x00\x04\x01\x02\x03\x04\x02\x09\x00\x01'
    out = decompress_rle8(comp, 6, 1)
    assert out == bytearray([1, 2, 3, 4, 9, 9])


def test_delta_moves_output_cursor():
    # one pixel, then skip 2 right and 1 down
    comp = b'\x01\x05\x00\x02\x02\x01\x01\x06\x00\x01'
    out = decompress_rle8(comp, 4, 3)
    expected = bytearray(12)
    expected[0] = 5
    expected[1 + 2 + 4] = 6
    assert out == expected


def test_delta_past_the_end_is_clamped():
    decoder = RLEDecompressor(2, 2, 8)
    decoder.decompress(b'\x00\x02\xff\xff\x01\x05')
    assert decoder.out_pos == 4


def test_end_of_line_does_not_pad_by_default():
    comp = b'\x02\x01\x00\x00\x02\x02\x00\x01'
    assert decompress_rle8(comp, 4, 2) == bytearray([1, 1, 2, 2, 0, 0, 0, 0])


def test_end_of_line_padding_option():
    comp = b'\x02\x01\x00\x00\x02\x02\x00\x01'
    out = decompress_rle8(comp, 4, 2, pad_lines=True)
    assert out == bytearray([1, 1, 0, 0, 2, 2, 0, 0])


def test_end_of_line_on_row_boundary_is_a_no_op_when_padding():
    comp = b'\x04\x01\x00\x00\x04\x02\x00\x01'
    out = decompress_rle8(comp, 4, 2, pad_lines=True)
    assert out == bytearray([1, 1, 1, 1, 2, 2, 2, 2])


def test_rle4_encoded_run_alternates_nibbles():
    out = decompress_rle4(b'\x05\x12\x02\x34\x00\x01', 8, 1)
    assert out == bytearray([1, 2, 1, 2, 1, 3, 4, 0])


def test_rle4_absolute_runs():
    # 4 nibbles in 2 bytes (even, no pad), then 5 nibbles in 3 bytes + pad
    comp = b'\x00\x04\x12\x34' + b'\x00\x05\x56\x78\x90\x00' + b'\x02\xab\x00\x01'
    out = decompress_rle4(comp, 12, 1)
    assert out == bytearray([1, 2, 3, 4, 5, 6, 7, 8, 9, 10, 11, 0])


def test_run_longer_than_buffer_stops_at_end():
    decoder = RLEDecompressor(2, 2, 8)
    out = decoder.decompress(b'\xff\x07\x00\x01')
    assert out == bytearray([7, 7, 7, 7])
    assert decoder.out_pos == 4


@pytest.mark.parametrize('comp', [
    b'',
    b'\x00',
    b'\x05',
    b'\x00\x02',
    b'\x00\x02\x01',
    b'\x00\x05\x01',
    b'\x00\x03\x01\x02\x03',
    b'\x00\x00\x00',
])
@pytest.mark.parametrize('bit_count', [4, 8])
def test_truncated_streams_stay_in_bounds(comp, bit_count):
    decoder = RLEDecompressor(3, 3, bit_count)
    out = decoder.decompress(comp)
    assert len(out) == 9
    assert decoder.in_pos <= len(comp)
    assert decoder.out_pos <= 9
    assert not decoder.end_of_bitmap


@pytest.mark.parametrize('seed', range(20))
@pytest.mark.parametrize('bit_count', [4, 8])
def test_random_input_stays_in_bounds(seed, bit_count):
    rng = random.Random(seed)
    comp = bytes(rng.randrange(256) for _ in range(rng.randrange(1, 300)))
    decoder = RLEDecompressor(7, 5, bit_count)
    out = decoder.decompress(comp)
    assert len(out) == 35
    assert decoder.in_pos <= len(comp)
    assert decoder.out_pos <= 35
    assert all(index < (1 << bit_count) for index in out)


def test_only_palette_depths():
    with pytest.raises(ValueError):
        RLEDecompressor(2, 2, 24)
