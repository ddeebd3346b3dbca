import pytest

from binlayout.exceptions import AssertFailException, BadMagicException
from binlayout.images.png import PNGColorType, PNGFile, PNGChunk, IHDRData


def test_png_file(png_path):
    """Check unpacking a pre-established PNG file is fine"""
    png = PNGFile.read(str(png_path))

    assert [_.type for _ in png.chunks] == [b'IHDR', b'PLTE', b'IDAT', b'IEND']
    assert isinstance(png.header, IHDRData)
    assert png.header.color == PNGColorType.RGB_PALETTE
    assert str(png.header) == '1x1x8'

    palette = png.chunks[1].data
    assert [_.pixel for _ in palette] == [(0xff, 0x00, 0x00)]

    for chunk in png.chunks:
        assert chunk.isCritical()
        assert chunk.crc == PNGChunk.crc.calculate(chunk)


def test_png_constructor(png_path):
    png = PNGFile(png_path)

    assert png.chunks[-1].type == b'IEND'


def test_png_signature(png_data):
    with pytest.raises(BadMagicException) as e:
        PNGFile.read(b'\x89PNG\r\n\x1a\x00' + png_data[8:])

    assert e.value.pos == 0
    assert e.value.chain == ['PNGFile']


def test_png_wrong_crc(png_data):
    corrupted = png_data[:-1] + bytes([png_data[-1] ^ 0xff])

    with pytest.raises(AssertFailException) as e:
        PNGFile.read(corrupted)

    assert e.value.message == 'CRC mismatch for type, data'
    assert e.value.chain == ['PNGChunk.crc', 'PNGFile.chunks']


def test_png_pack(png_data):
    png = PNGFile.read(png_data)

    assert png.pack() == png_data
