'''
We are implementing fields to handle CRC calculation.
'''
from zlib import crc32

from .. import fields
from ..meta import Endianess


def raw_of(value):
    '''Binary representation of an already decoded value.'''
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)

    if isinstance(value, (list, tuple)):
        return b''.join(raw_of(_) for _ in value)

    if hasattr(value, 'pack'):
        return value.pack()

    raise ValueError('\'%s\' has not a raw representation' % value.__class__.__name__)


def crc32_of(*names):
    '''Expression calculating the CRC32 of the fields indicated by name (in that order).'''
    def calculate(scope):
        return crc32(b''.join(raw_of(getattr(scope, _)) for _ in names))

    return calculate


class CRCField(fields.U32):
    """standard CRC methods with pre and post conditioning, as defined by ISO 3309 [ISO-3309]
    or ITU-T V.42 [ITU-V42]. The CRC polynomial employed is

      x^32+x^26+x^23+x^22+x^16+x^12+x^11+x^10+x^8+x^7+x^5+x^4+x^2+x+1

    The 32-bit CRC register is initialized to all 1's, and then the data from each byte is processed
    from the least significant bit (1) to the most significant bit (128). After all the data bytes are processed,
    the CRC register is inverted (its ones complement is taken). This value is transmitted (stored in the file)
    MSB first.

    For the purpose of separating into bytes and ordering, the least significant bit of the 32-bit CRC is defined to
    be the coefficient of the x^31 term.

    See <https://www.w3.org/TR/PNG-Structure.html#CRC-algorithm>.

    The value read is checked against the one calculated from the fields
    indicated; when packing the value is always calculated.
    """

    def __init__(self, names, **kwargs):
        kwargs.setdefault('endianess', Endianess.BIG_ENDIAN)
        super().__init__(**kwargs)
        self.names = tuple(names)
        self.calculate = crc32_of(*self.names)
        self.asserts += ((self.is_valid, 'CRC mismatch for %s' % ', '.join(self.names)),)

    def is_valid(self, scope):
        return getattr(scope, self.name) == self.calculate(scope)

    def write(self, value, stream, options, scope):
        super().write(self.calculate(scope), stream, options, scope)
