"""
Core module for the abstraction of a file format

"""
import logging
from typing import Dict, List, Tuple

from .args import Args
from .exceptions import BinlayoutException, PackException
from .fields import check_assertion, check_magic, get_endianess, write_magic
from .meta import Endianess, MetaChunk
from .options import ReadOptions
from .pointers import resolve_deferred
from .properties import ChunkPhase, Scope
from .streams import Stream


logger = logging.getLogger(__name__)


class Readable(object):
    '''Entry points for the top-level reads, the subclasses implement unpack_value().'''

    @classmethod
    def read(cls, source, args=None, endianess=None):
        '''Read an instance from "source" (a Stream, bytes, a path or a file object);
        the pointers are relative to the position the read starts from.'''
        stream = source if isinstance(source, Stream) else Stream(source)
        options = ReadOptions(endianess=endianess or Endianess.NATIVE, anchor=stream.tell())

        logger.debug('reading %s from %r at offset 0x%x', cls.__name__, stream, options.anchor)

        return cls.unpack_value(stream, options, args)

    @classmethod
    def read_be(cls, source, args=None):
        return cls.read(source, args=args, endianess=Endianess.BIG_ENDIAN)

    @classmethod
    def read_le(cls, source, args=None):
        return cls.read(source, args=args, endianess=Endianess.LITTLE_ENDIAN)

    @classmethod
    def unpack_value(cls, stream, options, args=None):
        raise NotImplementedError()

    @classmethod
    def pack_value(cls, value, stream, options):
        raise NotImplementedError()


class Chunk(Readable, metaclass=MetaChunk):
    """
    Together with Field is the main class that defines a format: the fields declared
    as class attributes are read in order, the options are in the inner Meta class

        class Header(Chunk):
            class Meta:
                endianess = Endianess.BIG_ENDIAN
                magic = b'HDR'

            count   = fields.U32()
            payload = fields.ArrayField(fields.U8(), n=Dependency('count'))

    An instance is the decoded record: the value of each field (the temporary ones
    excluded) is available as attribute. A failed read leaves the stream at the
    position it was before the read.
    """

    def __init__(self, filepath=None, args=None, endianess=Endianess.NATIVE, **values):
        self._phase = ChunkPhase.INIT
        self._layout: Dict[str, Tuple[int, int]] = {}
        self._offset = None
        # used by pack() on instances built by hand
        self._args = Args() if args is None else self._meta.imports.bind(args)

        names = self.get_ordered_fields_name()
        for name, value in values.items():
            if name not in names:
                raise TypeError(f"'{name}' is not a field of {self.__class__.__name__}")
            setattr(self, name, value)

        # now we can unpack if some data is passed with the constructor
        if filepath is not None:
            stream = filepath if isinstance(filepath, Stream) else Stream(filepath)
            logger.debug('unpacking \'%s\' from %s' % (self.__class__.__name__, stream))
            self.unpack(stream, ReadOptions(endianess=endianess, anchor=stream.tell()), args)

    @classmethod
    def get_ordered_fields_name(cls) -> List[str]:
        return [_.name for _ in cls._meta.fields if not _.temp]

    def get_fields(self) -> List[Tuple[str, object]]:
        '''It returns a list of couples (name, value) for each field.'''
        return [(_, getattr(self, _)) for _ in self.get_ordered_fields_name() if _ in self.__dict__]

    def __repr__(self):
        msg = []
        for field_name, value in self.get_fields():
            msg.append('%s=%r' % (field_name, value))
        return '<%s(%s)>' % (self.__class__.__name__, ','.join(msg))

    def __str__(self):
        msg = ''
        for field_name, value in self.get_fields():
            msg += '%s: %r\n' % (field_name, value)
        return msg

    def __eq__(self, other):
        if not isinstance(other, Chunk) or other.__class__ is not self.__class__:
            return NotImplemented

        return self.get_fields() == other.get_fields()

    __hash__ = None

    @property
    def phase(self):
        return self._phase

    @property
    def offset(self):
        '''Where the last read of this instance started.'''
        return self._offset

    @property
    def layout(self) -> Dict[str, Tuple[int, int]]:
        '''Offset and size of each field as found during the read.'''
        return dict(self._layout)

    @property
    def raw(self):
        return self.pack()

    @classmethod
    def unpack_value(cls, stream, options, args=None):
        instance = cls()
        instance.unpack(stream, options, args)
        return instance

    @classmethod
    def unpack_variant(cls, stream, options, args, extra_asserts=()):
        '''Read this class as variant of a Choice: the arguments are the ones of the Choice.'''
        instance = cls()
        if cls._meta.imports.params:
            args = cls._meta.imports.bind(args)
        instance._unpack_bound(stream, options, args, extra_asserts)
        return instance

    def unpack(self, stream, options=None, args=None):
        '''This is one of the main APIs to take care of: its aim is to take a binary
        data and transform in the representation given by the class this method
        is implemented.

        Passing a stream is mandatory since is possible that the different
        fields have offsets not contiguous so we need to jump back and forth.
        The arguments are checked against the imports before reading anything.
        '''
        if options is None:
            options = ReadOptions(anchor=stream.tell())

        self._unpack_bound(stream, options, self._meta.imports.bind(args))

    def _unpack_bound(self, stream, options, args, extra_asserts=()):
        self._phase = ChunkPhase.UNPACKING
        try:
            with stream.rollback():
                self._assemble(stream, options, args, extra_asserts)
        except Exception:
            self._phase = ChunkPhase.ERROR
            raise

    def _assemble(self, stream, options, args, extra_asserts):
        meta = self._meta
        name = self.__class__.__name__

        self._offset = stream.tell()
        self._args = args
        scope = Scope(args=args, offset=self._offset, name=name)

        endianess = get_endianess(options, scope, meta.endianess, meta.is_big, meta.is_little)
        if endianess != options.endianess:
            options = options.evolve(endianess=endianess)

        try:
            if meta.magic is not None:
                check_magic(stream, options, meta.magic, scope)

            for assertion in meta.pre_asserts:
                check_assertion(assertion, scope, stream.tell())
        except BinlayoutException as e:
            raise e.add_context(name)

        for field in meta.fields:
            logger.debug('unpacking %s.%s' % (name, field.name))

            try:
                value = field.unpack(stream, options, scope)
            except BinlayoutException as e:
                raise e.add_context(f'{name}.{field.name}')

            if not field.temp:
                setattr(self, field.name, value)

        self._phase = ChunkPhase.RESOLVING
        end = stream.tell()

        for field in meta.fields:
            try:
                resolve_deferred([scope._values[field.name]], stream)
            except BinlayoutException as e:
                raise e.add_context(f'{name}.{field.name}')

        stream.seek(end)

        try:
            for assertion in tuple(extra_asserts) + meta.asserts:
                check_assertion(assertion, scope, stream.tell())
        except BinlayoutException as e:
            raise e.add_context(name)

        self._layout = dict(scope._layout)
        self._phase = ChunkPhase.DONE

    @classmethod
    def pack_value(cls, value, stream, options):
        value._pack(stream, options)

    def pack(self, stream=None, endianess=Endianess.NATIVE, args=None):
        '''Encode the instance; if no stream is passed the bytes are returned.

        The arguments, if passed, replace the ones the instance was read or built with.'''
        output = Stream(b'') if stream is None else stream
        bound = None if args is None else self._meta.imports.bind(args)

        self._pack(output, ReadOptions(endianess=endianess or Endianess.NATIVE, anchor=output.tell()), bound)

        return output.obj.getvalue() if stream is None else None

    def _pack(self, stream, options, args=None):
        meta = self._meta
        name = self.__class__.__name__

        if args is None:
            args = self._args

        if meta.imports.params and not args:
            try:
                args = meta.imports.default()
            except TypeError as e:
                raise PackException(
                    f'{name} needs the arguments {meta.imports.names} to be packed', pos=stream.tell()) from e

        phase_old = self._phase
        self._phase = ChunkPhase.PACKING

        scope = Scope(args=args, offset=stream.tell(), name=name)

        endianess = get_endianess(options, scope, meta.endianess, meta.is_big, meta.is_little)
        if endianess != options.endianess:
            options = options.evolve(endianess=endianess)

        if meta.magic is not None:
            write_magic(stream, options, meta.magic, scope)

        for field in meta.fields:
            logger.debug('packing %s.%s' % (name, field.name))

            try:
                if field.name in self.__dict__:
                    value = self.__dict__[field.name]
                elif not field.consumes_bytes:
                    value = field.produce(stream, options, scope, None)
                elif field.temp:
                    value = None
                else:
                    raise PackException(f"field '{field.name}' has no value", pos=stream.tell())

                field.pack(value, stream, options, scope)
            except BinlayoutException as e:
                raise e.add_context(f'{name}.{field.name}')

            scope._set(field.name, value)

        self._phase = phase_old
