import io
import logging
import os
from contextlib import contextmanager

from .exceptions import IoException


logger = logging.getLogger(__name__)


class SeekFrom(object):
    '''Describe a seek in the same way of the whence argument of io:
    use the three constructors start(), current() and end().'''

    def __init__(self, offset, whence=os.SEEK_SET):
        self.offset = offset
        self.whence = whence

    @classmethod
    def start(cls, offset):
        return cls(offset, os.SEEK_SET)

    @classmethod
    def current(cls, offset):
        return cls(offset, os.SEEK_CUR)

    @classmethod
    def end(cls, offset):
        return cls(offset, os.SEEK_END)

    def __repr__(self):
        names = {
            os.SEEK_SET: 'start',
            os.SEEK_CUR: 'current',
            os.SEEK_END: 'end',
        }
        return '<%s.%s(%d)>' % (self.__class__.__name__, names[self.whence], self.offset)

    def __eq__(self, other):
        if not isinstance(other, SeekFrom):
            return NotImplemented
        return (self.offset, self.whence) == (other.offset, other.whence)


class Stream(object):
    '''This is a simple wrapper around bytes/file objects to
    uniform their properties: mainly we need to know at any time the
    absolute position and to be able to go back to it when something fails.

    All the positions are absolute offsets from the start of the underlying
    object.'''
    def __init__(self, obj, flags='r'):
        '''Here we normalize the object in order to be accessed as a normal file object'''
        self._type = type(obj)
        self.flags = flags  # this probably need to be a more elaborate value (like mmap)
        self.obj = obj
        self.history = []
        self._owned = False

        init_method_name = 'init_%s' % self.obj.__class__.__name__

        init_method = getattr(self, init_method_name, self.init_file)

        init_method()

    def __repr__(self):
        return '<%s(%s)>' % (self.__class__.__name__, self._type.__name__)

    def __getattr__(self, name):
        return getattr(self.obj, name)

    def __del__(self):
        # we close only what we opened
        if self.__dict__.get('_owned'):
            self.obj.close()

    def init_str(self):
        '''We think this is a path'''
        logger.debug('opening path \'%s\'' % self.obj)
        self.obj = open(self.obj, 'rb')
        self._owned = True

    def init_PosixPath(self):
        self.obj = str(self.obj)
        self.init_str()

    init_WindowsPath = init_PosixPath

    def init_bytes(self):
        '''We think these are raw bytes'''
        self.obj = io.BytesIO(self.obj)

    def init_bytearray(self):
        self.obj = io.BytesIO(bytes(self.obj))

    def init_memoryview(self):
        self.obj = io.BytesIO(self.obj.tobytes())

    def init_file(self):
        '''A file-like object owned by the caller: it must have read(), seek() and tell().'''
        for method in ('read', 'seek', 'tell'):
            if not hasattr(self.obj, method):
                raise ValueError('\'%s\' is not usable as a stream' % self._type.__name__)

    def tell(self):
        try:
            return self.obj.tell()
        except OSError as e:
            raise IoException(message='unable to tell: %s' % e) from e

    def seek(self, offset, whence=os.SEEK_SET):
        '''Move the cursor, returning the new absolute position.

        The offset can be an integer (absolute if whence is not indicated)
        or a SeekFrom instance.'''
        if isinstance(offset, SeekFrom):
            offset, whence = offset.offset, offset.whence
        elif not isinstance(offset, int):
            raise ValueError('\'%s\' is the wrong kind of offset to use' % offset.__class__.__name__)

        position = self.obj.tell() if whence == os.SEEK_CUR else None

        if whence == os.SEEK_CUR:
            offset, whence = position + offset, os.SEEK_SET

        if whence == os.SEEK_SET and offset < 0:
            raise IoException(pos=position, message='invalid seek to negative offset %d' % offset)

        try:
            return self.obj.seek(offset, whence)
        except (OSError, ValueError) as e:
            raise IoException(pos=position, message='unable to seek: %s' % e) from e

    def seek_relative(self, delta):
        return self.seek(delta, os.SEEK_CUR)

    def seek_end(self, delta=0):
        return self.seek(delta, os.SEEK_END)

    def read(self, size=-1):
        try:
            return self.obj.read(size)
        except OSError as e:
            raise IoException(pos=self.tell(), message='unable to read: %s' % e) from e

    def read_exact(self, size):
        '''Read exactly "size" bytes or fail with IoException at the position
        where the read started.'''
        position = self.tell()
        data = self.read(size)

        if len(data) != size:
            raise IoException(
                pos=position,
                message='unexpected end of data: wanted %d bytes, got %d' % (size, len(data)))

        return data

    def read_all(self):
        '''Returns all the remaining data.'''
        return self.read()

    def write(self, data):
        return self.obj.write(data)

    def save(self):
        self.history.append(self.tell())

    def restore(self):
        old_seek = self.history.pop()
        self.seek(old_seek)

    @contextmanager
    def rollback(self):
        '''Remember the actual position and go back to it if anything fails inside
        the block; the exception is re-raised untouched, even when the stream
        can't go back (see NoSeekStream).'''
        self.save()
        try:
            yield self.history[-1]
        except Exception:
            logger.debug('rollback to offset 0x%x', self.history[-1])
            try:
                self.restore()
            except IoException as e:
                logger.debug('unable to rollback: %s', e)
            raise
        else:
            self.history.pop()


class NoSeekStream(Stream):
    '''Adapter for readers that cannot seek (pipes for example): the position
    is tracked by counting the bytes read and only forward relative seeks are
    allowed, implemented by reading and discarding.

    Schemas that need to rewind (like the Choice in probe mode) or
    to resolve pointers cannot be used with it; a failed read leaves the
    stream where the failure happened.'''

    def __init__(self, obj, flags='r'):
        self._position = 0
        super().__init__(obj, flags=flags)

    def init_file(self):
        if not hasattr(self.obj, 'read'):
            raise ValueError('\'%s\' is not usable as a stream' % self._type.__name__)

    def tell(self):
        return self._position

    def seek(self, offset, whence=os.SEEK_SET):
        if isinstance(offset, SeekFrom):
            offset, whence = offset.offset, offset.whence

        if whence == os.SEEK_END:
            raise IoException(pos=self._position, message='cannot seek from the end on an unseekable stream')

        delta = offset - self._position if whence == os.SEEK_SET else offset

        if delta < 0:
            raise IoException(
                pos=self._position,
                message='cannot seek backwards by %d bytes on an unseekable stream' % -delta)

        while delta:
            chunk = self.read(min(delta, io.DEFAULT_BUFFER_SIZE))
            if not chunk:
                raise IoException(pos=self._position, message='unexpected end of data while seeking')
            delta -= len(chunk)

        return self._position

    def read(self, size=-1):
        try:
            data = self.obj.read(size)
        except OSError as e:
            raise IoException(pos=self._position, message='unable to read: %s' % e) from e

        self._position += len(data)

        return data
