import pytest

from tests.bmp_factory import build_bmp, pad_rows


@pytest.fixture
def sample_8bit():
    # 2x2 bottom-up, bottom row [1, 0] stored first, top row [0, 1]
    return build_bmp(2, 2, 8, pad_rows([b'\x01\x00', b'\x00\x01'], 4),
                     palette=[(0, 0, 0), (255, 255, 255)], clr_used=2)


@pytest.fixture
def sample_8bit_file(tmp_path, sample_8bit):
    path = tmp_path / 'sample.bmp'
    path.write_bytes(sample_8bit)
    return path
