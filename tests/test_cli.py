import cli
from tests.bmp_factory import build_bmp, pad_rows


def test_decode_prints_header(sample_8bit_file, capsys):
    assert cli.main([str(sample_8bit_file)]) == 0
    out = capsys.readouterr().out
    assert "width: 2\n" in out
    assert "compression: RGB\n" in out
    assert "rows_written: 2\n" in out


def test_raw_output(sample_8bit_file, tmp_path):
    output = tmp_path / 'out.raw'
    assert cli.main([str(sample_8bit_file), '-o', str(output)]) == 0
    assert output.read_bytes() == b'\x00\x01\x01\x00'


def test_raw_output_24bit(tmp_path):
    source = tmp_path / 'rgb.bmp'
    source.write_bytes(build_bmp(1, 2, 24, pad_rows([b'\x01\x02\x03', b'\x04\x05\x06'], 4)))
    output = tmp_path / 'out.raw'
    assert cli.main([str(source), '-o', str(output)]) == 0
    assert output.read_bytes() == b'\x06\x05\x04\x03\x02\x01'


def test_not_a_bitmap_is_not_an_error(tmp_path, capsys):
    source = tmp_path / 'text.bmp'
    source.write_bytes(b'XY' + bytes(60))
    output = tmp_path / 'out.raw'
    assert cli.main([str(source), '-o', str(output)]) == 0
    assert "File is not BMP" in capsys.readouterr().err
    assert not output.exists()


def test_unsupported_file(tmp_path, capsys):
    source = tmp_path / 'jpeg.bmp'
    source.write_bytes(build_bmp(2, 2, 24, bytes(16), compression=4))
    assert cli.main([str(source)]) == 1
    assert "Unsupported compression" in capsys.readouterr().err


def test_missing_input(tmp_path, capsys):
    assert cli.main([str(tmp_path / 'nope.bmp')]) == -1
    assert "Cannot open input file" in capsys.readouterr().err


def test_warnings_are_reported(tmp_path, capsys):
    source = tmp_path / 'short.bmp'
    source.write_bytes(build_bmp(1, 2, 24, pad_rows([b'\x01\x02\x03'] * 2, 4))[:-4])
    assert cli.main([str(source)]) == 0
    captured = capsys.readouterr()
    assert "scanline 0: Read error" in captured.err
    assert "rows_written: 2" in captured.out


def test_pad_rle_lines_flag(tmp_path):
    comp = b'\x01\x07\x00\x00\x01\x08\x00\x01'
    source = tmp_path / 'rle.bmp'
    source.write_bytes(build_bmp(2, 2, 8, comp, palette=[(0, 0, 0)] * 9,
                                 compression=1, clr_used=9))
    output = tmp_path / 'out.raw'
    assert cli.main([str(source), '--pad-rle-lines', '-o', str(output)]) == 0
    assert output.read_bytes() == b'\x08\x00\x07\x00'


def test_unopenable_output(sample_8bit_file, tmp_path, capsys):
    output = tmp_path / 'missing-dir' / 'out.raw'
    assert cli.main([str(sample_8bit_file), '-o', str(output)]) == -1
    assert "Cannot open file for output" in capsys.readouterr().err
    assert not output.exists()


def test_oversized_file_is_rejected(tmp_path, capsys):
    source = tmp_path / 'huge.bmp'
    source.write_bytes(build_bmp(50_000_000, 1, 24, b''))
    output = tmp_path / 'out.raw'
    assert cli.main([str(source), '-o', str(output)]) == 1
    assert "Image too large" in capsys.readouterr().err
    assert not output.exists()
