"""
# Binlayout: binary formats for humans.

We can define a file format as a way of describing a binary representation of something
digital, where each subcomponent of the file format aims to represent a specific aspect
of the digital artefact, but it's not constrained to.

A format is described declaratively, as a class with its fields

    class Header(Chunk):
        class Meta:
            endianess = Endianess.BIG_ENDIAN
            magic = b'HDR1'

        count   = fields.U32()
        payload = fields.ArrayField(fields.U8(), n=Dependency('count'))

    header = Header.read(b'HDR1\\x00\\x00\\x00\\x02\\xaa\\xbb')

and the library turns it into the operations on the stream. Two basic main
operations are defined for the file format and its sub components:

 1. unpack(): the more straightforward, i.e., reading the binary data
    and build a high-level representation of that.
    Usually when unpacking you use as offset the actual offset of the
    stream and the chunk itself knows how many bytes needs to read
    to finalize the representation. When something fails the stream is
    left where it was before the read.

 2. pack(): encode the high-level representation into binary data.

The reading happens in two passes: first the fields are read in order, then
the pointers (see binlayout.pointers) are followed.

An instance representing a file format can be in one of the following states

 1. INIT
 2. UNPACKING
 3. RESOLVING
 4. PACKING
 5. DONE
 6. ERROR

"""
from .args import Args, Imports, Param
from .choice import Choice
from .core import Chunk
from .enum import VariantErrorMode
from .exceptions import (
    AssertFailException,
    BadMagicException,
    BinlayoutException,
    CustomException,
    EnumErrorsException,
    IoException,
    NoVariantMatchException,
    PackException,
    UnresolvedPointerException,
)
from .meta import Endianess
from .options import ReadOptions
from .pointers import FilePtr, PointerField
from .properties import ChunkPhase, Dependency, RatioDependency
from .streams import NoSeekStream, SeekFrom, Stream
