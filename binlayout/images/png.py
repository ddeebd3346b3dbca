'''
# Portable Network Graphics

Format created to replace patent-emcumbered GIF files.

The specification is at <http://www.libpng.org/pub/png/spec/1.2/PNG-Contents.html> and
is available a full test-suite with a lot of PNG images covering all
the possible cases at <http://www.schaik.com/pngsuite/>.

'''
from enum import Enum

from ..core import Chunk
from .. import fields
from ..meta import Endianess
from ..properties import Dependency, RatioDependency
from ..common import crc


PNG_SIGNATURE = b'\x89\x50\x4e\x47\x0d\x0a\x1a\x0a'


class PNGColorType(Enum):
    '''The color type definition of the PNG is a little tricky and doesn't seem
    to follow a bit-mask. We are going to list all the valid cases.'''
    GRAYSCALE = 0x00
    RGB       = 0x02
    RGB_PALETTE = 0x03
    GS_ALPHA    = 0x04
    RGBA        = 0x06


class PNGCompressionType(Enum):
    '''There is only one method of compression'''
    DEFLATE = 0x00


class PNGFilterType(Enum):
    '''This indicates the preprocessing method applied to the image data before compression. At present, only filter method 0 is defined'''
    ADAPTIVE = 0x00


class IHDRData(Chunk):
    '''
    Width and height give the image dimensions in pixels.
    Bit depth is a single-byte integer giving the number of bits per sample or per palette index (not per pixel).
    Color type is a single-byte integer that describes the interpretation of the image data.
    '''
    class Meta:
        endianess = Endianess.BIG_ENDIAN

    width       = fields.U32(asserts=[lambda this: this.width > 0])
    height      = fields.U32(asserts=[lambda this: this.height > 0])
    depth       = fields.U8(asserts=[(lambda this: this.depth in (1, 2, 4, 8, 16), 'invalid bit depth')])
    color       = fields.U8(enum=PNGColorType, default=PNGColorType.GRAYSCALE)
    compression = fields.U8(enum=PNGCompressionType, default=PNGCompressionType.DEFLATE)
    filter      = fields.U8(enum=PNGFilterType, default=PNGFilterType.ADAPTIVE)
    interlace   = fields.U8()

    def __str__(self):
        return '%dx%dx%d' % (
            self.width,
            self.height,
            self.depth,
        )


class PLTEEntry(Chunk):
    red   = fields.U8()
    green = fields.U8()
    blue  = fields.U8()

    @property
    def pixel(self):
        return (self.red, self.green, self.blue)


type2field = {
    b'IHDR': fields.ChunkField(IHDRData),
    b'PLTE': fields.ArrayField(PLTEEntry, n=RatioDependency(3, '.length')),
    fields.SelectField.Type.DEFAULT: fields.StringField(Dependency('.length')),
}


class PNGChunk(Chunk):
    '''This is the main data structure of the format: the 4 fields represent
    a chunk into the file. Each field is intended big-endian.

    A chunk is defined as critical or ancillary depending on the case of the
    starting letter of the type field.

    The crc field is network-byte-order CRC-32 computed over the chunk type and chunk data, but not the length.

    # Critical chunks

     1. IHDR: contains image's width, height, bit depth, color type, compression method, filter method and interlace method
     2. PLTE: contains the palette data
     3. IDAT: contains the actual image data (compressed)
     4. IEND: is the terminator chunk
    '''
    class Meta:
        endianess = Endianess.BIG_ENDIAN

    length = fields.U32()
    type   = fields.StringField(4)
    data   = fields.SelectField('type', type2field, pad_size_to=Dependency('.length'))
    crc    = crc.CRCField(['type', 'data'])  # network byte order

    def isCritical(self):
        return chr(self.type[0]).isupper()


class PNGFile(Chunk):
    class Meta:
        magic = PNG_SIGNATURE
        endianess = Endianess.BIG_ENDIAN

    chunks = fields.ArrayField(PNGChunk, canary=lambda chunk: chunk.type == b'IEND')

    @property
    def header(self):
        return self.chunks[0].data
