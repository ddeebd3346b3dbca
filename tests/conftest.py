import logging
import os
import struct
from pathlib import Path
from zlib import crc32

import pytest


logging.basicConfig(level=logging.DEBUG if 'DEBUG' in os.environ else logging.INFO)


@pytest.fixture
def test_root_dir():
    return Path(__file__).parent


def png_chunk(type_, data):
    '''Build a PNG chunk with the right length and CRC.'''
    return struct.pack('>I', len(data)) + type_ + data + struct.pack('>I', crc32(type_ + data))


@pytest.fixture
def png_data():
    '''A 1x1 palette image with a single red entry.'''
    ihdr = struct.pack('>IIBBBBB', 1, 1, 8, 3, 0, 0, 0)

    return (
        b'\x89PNG\r\n\x1a\n' +
        png_chunk(b'IHDR', ihdr) +
        png_chunk(b'PLTE', b'\xff\x00\x00') +
        png_chunk(b'IDAT', b'\x78\x9c\x63\x60\x00\x00\x00\x02\x00\x01') +
        png_chunk(b'IEND', b'')
    )


@pytest.fixture
def png_path(tmp_path, png_data):
    path = tmp_path / 'red.png'
    path.write_bytes(png_data)

    return path
