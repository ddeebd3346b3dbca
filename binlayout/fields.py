"""
A Field is "fundamental" datatype from the format point of view: it knows how to
turn bytes from the stream into a value (and back).

Each field carries a set of directives that are applied always in the same order
when unpacking, see Field.unpack() for the details.
"""
import copy
import logging
import struct
import sys
from collections.abc import Mapping
from enum import Flag, auto

from .meta import FieldBase, Endianess
from .properties import Dependency, Scope, resolve, is_expression, describe
from .exceptions import (
    AssertFailException,
    BadMagicException,
    BinlayoutException,
    CustomException,
    IoException,
    NoVariantMatchException,
    PackException,
)


def align(stream, alignment):
    '''Advance the stream to the next multiple of "alignment".'''
    position = stream.tell()
    stream.seek_relative((alignment - (position % alignment)) % alignment)


def write_padding(stream, size):
    if size > 0:
        stream.write(b'\x00' * size)


def write_alignment(stream, alignment):
    position = stream.tell()
    write_padding(stream, (alignment - (position % alignment)) % alignment)


def check_magic(stream, options, magic, scope=None):
    '''Read the magic and compare it with the expected value.

    The magic can be a bytes instance or a field with the expected value as default
    (like U16(equals_to=0xcafe)): in the latter case it's decoded with the endianess
    in effect.'''
    position = stream.tell()

    if isinstance(magic, (bytes, bytearray)):
        expected = bytes(magic)
        found = stream.read_exact(len(expected))
    elif isinstance(magic, Field):
        expected = magic.default
        found = magic.read(stream, options, scope if scope is not None else Scope(), None)
    else:
        raise ValueError('\'%s\' is not a valid magic' % magic.__class__.__name__)

    if found != expected:
        raise BadMagicException(pos=position, found=found, expected=expected)

    return found


def write_magic(stream, options, magic, scope=None):
    if isinstance(magic, (bytes, bytearray)):
        stream.write(bytes(magic))
    else:
        magic.write(magic.default, stream, options, scope if scope is not None else Scope())


def check_assertion(assertion, scope, position):
    '''An assertion is an expression or a couple (expression, error).

    The error can be a message, giving an AssertFailException, or any other value
    (an expression is evaluated first) that will be wrapped into a CustomException.'''
    condition, error = assertion if isinstance(assertion, tuple) else (assertion, None)

    if resolve(condition, scope):
        return

    if error is None:
        raise AssertFailException(pos=position, message=describe(condition))

    if isinstance(error, str):
        raise AssertFailException(pos=position, message=error)

    raise CustomException(pos=position, err=resolve(error, scope))


def get_endianess(options, scope, endianess=None, is_big=None, is_little=None):
    '''Return the endianess to use given the directives, otherwise the inherited one.'''
    if endianess is not None:
        value = resolve(endianess, scope)
        if not isinstance(value, Endianess):
            raise ValueError(f'the endianess expression returned {value!r}')
        return value

    if is_big is not None:
        return Endianess.BIG_ENDIAN if resolve(is_big, scope) else Endianess.LITTLE_ENDIAN

    if is_little is not None:
        return Endianess.LITTLE_ENDIAN if resolve(is_little, scope) else Endianess.BIG_ENDIAN

    return options.endianess


def as_field(obj):
    '''Fields are used as they are, Chunk and Choice classes are wrapped.'''
    if isinstance(obj, Field):
        return obj

    if isinstance(obj, type) and hasattr(obj, 'unpack_value'):
        return ChunkField(obj)

    raise ValueError('\'%r\' cannot be used as a field' % (obj,))


class Field(FieldBase):
    """Base class to subclass from: the subclasses implement read() and write(),
    here we take care of the directives."""

    def __init__(self, *, name=None, default=None, endianess=None, is_big=None, is_little=None,
                 magic=None, is_magic=False, only_if=None, calc=None, try_calc=None, ignore=False,
                 parse_with=None, map=None, try_map=None, asserts=(), args=None, temp=False,
                 seek_before=None, pad_before=None, align_before=None, pad_after=None,
                 align_after=None, pad_size_to=None, restore_position=False, try_read=False):
        self.logger = logging.getLogger(__name__)
        self.name = name
        self.default = default
        self.endianess = endianess
        self.is_big = is_big
        self.is_little = is_little
        self.magic = magic
        self.is_magic = is_magic
        self.only_if = only_if
        self.calc = calc
        self.try_calc = try_calc
        self.ignore = ignore
        self.parse_with = parse_with
        self.map = map
        self.try_map = try_map
        self.asserts = tuple(asserts)
        self.args = args
        self.temp = temp
        self.seek_before = seek_before
        self.pad_before = pad_before
        self.align_before = align_before
        self.pad_after = pad_after
        self.align_after = align_after
        self.pad_size_to = pad_size_to
        self.restore_position = restore_position
        self.try_read = try_read

        producers = [_ for _ in ('calc', 'try_calc', 'ignore', 'parse_with') if getattr(self, _) not in (None, False)]
        if len(producers) > 1:
            raise ValueError(f'a field can be produced only in one way, you indicated {producers}')

        if map is not None and try_map is not None:
            raise ValueError('you can\'t use map and try_map together')

        if len([_ for _ in (endianess, is_big, is_little) if _ is not None]) > 1:
            raise ValueError('you can indicate only one between endianess, is_big and is_little')

    def __repr__(self):
        return '<%s(%s)>' % (self.__class__.__name__, self.name or '')

    @property
    def consumes_bytes(self):
        return self.calc is None and self.try_calc is None and not self.ignore

    def value_from_default(self, scope):
        value = resolve(self.default, scope)
        # we don't want to share mutable defaults between records
        return copy.copy(value) if isinstance(value, (list, dict)) else value

    def get_args(self, scope):
        '''Build the arguments for the nested read starting from the scope of the record.'''
        if self.args is None:
            return None

        if isinstance(self.args, Mapping):
            return {key: resolve(value, scope) for key, value in self.args.items()}

        if isinstance(self.args, (tuple, list)):
            return tuple(resolve(_, scope) for _ in self.args)

        return resolve(self.args, scope)

    def get_endianess(self, options, scope):
        return get_endianess(options, scope, self.endianess, self.is_big, self.is_little)

    def _seek_before(self, stream, scope):
        if self.seek_before is not None:
            stream.seek(resolve(self.seek_before, scope))

        if self.pad_before is not None:
            stream.seek_relative(resolve(self.pad_before, scope))

        if self.align_before is not None:
            align(stream, resolve(self.align_before, scope))

    def _seek_after(self, stream, scope, value_start):
        if self.pad_size_to is not None:
            size = resolve(self.pad_size_to, scope)
            used = stream.tell() - value_start
            if used < size:
                stream.seek_relative(size - used)

        if self.pad_after is not None:
            stream.seek_relative(resolve(self.pad_after, scope))

        if self.align_after is not None:
            align(stream, resolve(self.align_after, scope))

    def produce(self, stream, options, scope, args):
        if self.calc is not None:
            return resolve(self.calc, scope)

        if self.try_calc is not None:
            try:
                return resolve(self.try_calc, scope)
            except Exception as e:
                raise CustomException(pos=stream.tell(), err=e) from e

        if self.ignore:
            return self.value_from_default(scope)

        if self.parse_with is not None:
            return self.parse_with(stream, options, args)

        return self.read(stream, options, scope, args)

    def transform(self, stream, value):
        if self.map is not None:
            return self.map(value)

        if self.try_map is not None:
            try:
                return self.try_map(value)
            except Exception as e:
                raise CustomException(pos=stream.tell(), err=e) from e

        return value

    def unpack(self, stream, options, scope, args=None):
        '''This is the life-cycle of a field, the steps are always executed in this order

         1. seek_before
         2. pad_before and align_before
         3. resolution of the endianess
         4. only_if: if false the default is used and we jump to the end
         5. magic
         6. the value is produced: read(), calc, try_calc, ignore or parse_with
         7. map or try_map
         8. asserts (the value is already visible in the scope); with try_read a
            failure in 5-8 rewinds to where the value started and gives None
         9. pad_size_to, pad_after and align_after
         10. restore_position

        The value is returned and, if the field has a name, made available in the scope.
        '''
        start = stream.tell()
        self.logger.debug('unpacking %r at offset 0x%x', self, start)

        self._seek_before(stream, scope)

        value_start = stream.tell()

        endianess = self.get_endianess(options, scope)
        if endianess != options.endianess:
            options = options.evolve(endianess=endianess)

        if self.only_if is not None and not resolve(self.only_if, scope):
            self.logger.debug('condition for %r is false, using default', self)
            value = self.value_from_default(scope)
            self._set(scope, value)
        else:
            args = self.get_args(scope) if args is None else args

            try:
                value = self._produce_checked(stream, options, scope, args, value_start)
            except BinlayoutException as e:
                if not self.try_read:
                    raise

                self.logger.debug('reading %r failed, using None: %s', self, e)
                stream.seek(value_start)
                value = None
                self._set(scope, value)

            self._seek_after(stream, scope, value_start)

        if self.name is not None:
            scope._layout[self.name] = (value_start, stream.tell() - value_start)

        if self.restore_position:
            stream.seek(start)

        return value

    def _produce_checked(self, stream, options, scope, args, value_start):
        if self.magic is not None:
            check_magic(stream, options, self.magic, scope)

        value = self.produce(stream, options, scope, args)
        value = self.transform(stream, value)

        if self.is_magic and value != self.default:
            raise BadMagicException(pos=value_start, found=value, expected=self.default)

        self._set(scope, value)

        for assertion in self.asserts:
            check_assertion(assertion, scope, stream.tell())

        return value

    def _set(self, scope, value):
        if self.name is not None:
            scope._set(self.name, value)

    def read(self, stream, options, scope, args):
        raise NotImplementedError(f'method {self.__class__.__name__}.read() not implemented')

    def pack(self, value, stream, options, scope):
        '''Write the value with the directives that have a binary representation.'''
        if not self.consumes_bytes:
            return

        if self.temp:
            raise PackException(f"the temporary field '{self.name}' has no value to pack")

        for directive in ('map', 'try_map', 'parse_with', 'seek_before'):
            if getattr(self, directive) is not None:
                raise PackException(f"field '{self.name}' uses {directive} that can't be reversed")

        if self.restore_position:
            raise PackException(f"field '{self.name}' uses restore_position that can't be reversed")

        if self.pad_before is not None:
            write_padding(stream, resolve(self.pad_before, scope))

        if self.align_before is not None:
            write_alignment(stream, resolve(self.align_before, scope))

        value_start = stream.tell()

        endianess = self.get_endianess(options, scope)
        if endianess != options.endianess:
            options = options.evolve(endianess=endianess)

        if self.only_if is not None and not resolve(self.only_if, scope):
            return

        if self.try_read and value is None:
            self.logger.debug('nothing to write for %r', self)
        else:
            if self.magic is not None:
                write_magic(stream, options, self.magic, scope)

            self.write(value, stream, options, scope)

        if self.pad_size_to is not None:
            write_padding(stream, resolve(self.pad_size_to, scope) - (stream.tell() - value_start))

        if self.pad_after is not None:
            write_padding(stream, resolve(self.pad_after, scope))

        if self.align_after is not None:
            write_alignment(stream, resolve(self.align_after, scope))

    def write(self, value, stream, options, scope):
        raise PackException(f'{self.__class__.__name__} cannot be packed')


class StructField(Field):
    """
    Simplest of the fields: mimic the behaviour of the struct module packing/unpacking
    integers to/from bytes.

    The main advantage is the possibility to indicate via the "enum" argument some subclass
    of enum.Enum so to have directly a representation of the integer value of the field itself:
    a value without corresponding member is a NoVariantMatchException.
    """

    def __init__(self, format, default=0, equals_to=None, enum=None, **kw):  # decide between default and equals_to
        self.format = format
        self.enum = enum
        struct.calcsize(self.format)  # fail early with invalid formats
        super().__init__(default=default if equals_to is None else equals_to, **kw)

    def __repr__(self):
        return '<%s(%s%s)>' % (self.__class__.__name__, self.format, ', %s' % self.name if self.name else '')

    def get_format(self, endianess):
        return '%s%s' % (endianess.get_prefix(), self.format)

    def get_size(self):
        return struct.calcsize(self.get_format(Endianess.LITTLE_ENDIAN))

    def _unpack_struct(self, raw, fmt):
        values = struct.unpack(fmt, raw)

        return values[0] if len(values) == 1 else values

    def _unpack_enum(self, value, position):
        try:
            return self.enum(value)
        except ValueError:
            self.logger.debug(f'enum {self.enum!r} doesn\'t have element with value {value!r} in it')
            raise NoVariantMatchException(pos=position)

    def read(self, stream, options, scope, args):
        fmt = self.get_format(options.endianess)
        position = stream.tell()
        value = self._unpack_struct(stream.read_exact(struct.calcsize(fmt)), fmt)

        if self.enum:
            value = self._unpack_enum(value, position)

        return value

    def write(self, value, stream, options, scope):
        if self.enum is not None and isinstance(value, self.enum):
            value = value.value

        values = value if isinstance(value, tuple) else (value,)
        try:
            stream.write(struct.pack(self.get_format(options.endianess), *values))
        except struct.error as e:
            raise PackException(f'unable to pack {value!r} with format \'{self.format}\': {e}', pos=stream.tell()) from e


class NumericField(StructField):
    '''Wrapper for all the fundamental numeric datatypes'''
    FORMAT = None

    def __init__(self, **kwargs):
        super().__init__(self.FORMAT, **kwargs)


class U8(NumericField):
    FORMAT = 'B'


class U16(NumericField):
    FORMAT = 'H'


class U32(NumericField):
    FORMAT = 'I'


class U64(NumericField):
    FORMAT = 'Q'


class I8(NumericField):
    FORMAT = 'b'


class I16(NumericField):
    FORMAT = 'h'


class I32(NumericField):
    FORMAT = 'i'


class I64(NumericField):
    FORMAT = 'q'


class F32(NumericField):
    FORMAT = 'f'

    def __init__(self, **kwargs):
        kwargs.setdefault('default', 0.0)
        super().__init__(**kwargs)


class F64(F32):
    FORMAT = 'd'


class Bool(NumericField):
    FORMAT = '?'

    def __init__(self, **kwargs):
        kwargs.setdefault('default', False)
        super().__init__(**kwargs)


class Char(NumericField):
    '''A single byte, as bytes.'''
    FORMAT = 'c'

    def __init__(self, **kwargs):
        kwargs.setdefault('default', b'\x00')
        super().__init__(**kwargs)


class StringField(Field):
    """Represent a contiguous chunk of bytes, "n" is its length."""

    def __init__(self, n=None, **kw):
        if n is None and 'default' not in kw:
            raise ValueError(f"StringField must have 'n' or 'default' indicated!")

        self.length = n if n is not None else len(kw['default'])

        super().__init__(**kw)

    def get_length(self, scope):
        return resolve(self.length, scope)

    def read(self, stream, options, scope, args):
        return stream.read_exact(self.get_length(scope))

    def write(self, value, stream, options, scope):
        length = self.get_length(scope)
        if len(value) != length:
            raise PackException(f'you are trying to pack a value with the wrong size (that is {length} bytes)')

        stream.write(value)


class NullStringField(Field):
    '''Bytes terminated by a NUL byte; the terminator is consumed but it's not part of the value.
    If an encoding is indicated the value is decoded into a str.'''

    def __init__(self, encoding=None, **kw):
        self.encoding = encoding
        kw.setdefault('default', b'' if encoding is None else '')
        super().__init__(**kw)

    def read(self, stream, options, scope, args):
        position = stream.tell()
        data = []
        while True:
            b = stream.read(1)
            if not b:
                raise IoException(pos=position, message='string without terminator')
            if b == b'\x00':
                break
            data.append(b)

        value = b''.join(data)

        return value if self.encoding is None else value.decode(self.encoding, errors='replace')

    def write(self, value, stream, options, scope):
        if self.encoding is not None:
            value = value.encode(self.encoding)
        stream.write(value + b'\x00')


class NullWideStringField(Field):
    '''16 bits characters terminated by a NUL character, decoded as UTF-16
    with the endianess in effect.'''

    def __init__(self, **kw):
        kw.setdefault('default', '')
        super().__init__(**kw)

    @staticmethod
    def get_codec(endianess):
        if endianess == Endianess.NATIVE:
            return 'utf-16-le' if sys.byteorder == 'little' else 'utf-16-be'

        return 'utf-16-le' if endianess == Endianess.LITTLE_ENDIAN else 'utf-16-be'

    def read(self, stream, options, scope, args):
        position = stream.tell()
        data = []
        while True:
            c = stream.read(2)
            if len(c) != 2:
                raise IoException(pos=position, message='wide string without terminator')
            if c == b'\x00\x00':
                break
            data.append(c)

        return b''.join(data).decode(self.get_codec(options.endianess), errors='replace')

    def write(self, value, stream, options, scope):
        stream.write(value.encode(self.get_codec(options.endianess)) + b'\x00\x00')


class ArrayField(Field):
    '''Un/Pack an array of elements.

    You can indicate an explicit number of elements via the parameter named "n"
    or you can indicate with a callable returning True which element is the terminator
    for the list via the parameter named "canary" (the terminator is part of the array).

    Each element goes through the whole life-cycle of the element field, so
    directives like align_before are applied to each of them; the "args"
    of the array are passed to each element.
    '''

    def __init__(self, field_cls, n=None, canary=None, **kw):
        self.field = as_field(field_cls)
        if n is not None and not (isinstance(n, int) or is_expression(n)):
            raise ValueError('n is \'%s\' must be of the right type' % n.__class__.__name__)

        if n is None and canary is None:
            raise ValueError('an ArrayField needs "n" or a "canary"')

        kw.setdefault('default', [])

        super().__init__(**kw)
        self.n = n
        self._canary = canary

    def __repr__(self):
        return f'<{self.__class__.__name__}({self.field!r}{", " + self.name if self.name else ""})>'

    def read(self, stream, options, scope, args):
        count = resolve(self.n, scope) if self.n is not None else None

        self.logger.debug('reading %s elements for %r', count if count is not None else 'some', self)

        elements = []
        while count is None or len(elements) < count:
            element = self.field.unpack(stream, options, scope, args=args)
            elements.append(element)

            if self._canary and self._canary(element):
                break

        return elements

    def write(self, value, stream, options, scope):
        for element in value:
            self.field.pack(element, stream, options, scope)


class ChunkField(Field):
    '''A nested Chunk or Choice: the read has its own rollback and receives
    only the arguments built via "args".'''

    def __init__(self, chunk_cls, **kw):
        self.chunk_cls = chunk_cls
        super().__init__(**kw)

    def __repr__(self):
        return f'<{self.__class__.__name__}({self.chunk_cls.__name__}{", " + self.name if self.name else ""})>'

    def read(self, stream, options, scope, args):
        return self.chunk_cls.unpack_value(stream, options, args)

    def write(self, value, stream, options, scope):
        self.chunk_cls.pack_value(value, stream, options)


class SelectField(Field):
    """Allow to select the kind of final field based on a key in the parent chunk.
    You need to pass the expression to use as key and a dictionary with the mapping
    between key and field. You can use Type.DEFAULT as a default.

    Like in the following example we have a format the use the first 4 bytes to indicate what
    follows: for value zero you have another 4 bytes, otherwise you have a 16 bytes string

        class DummyType(Enum):
            FIRST = 0
            SECOND = 1

        type2field = {
            DummyType.FIRST: fields.U32(),
            SelectField.Type.DEFAULT: fields.StringField(0x10),
        }

        class DummyChunk(Chunk):
            type = fields.U32(enum=DummyType)
            data = fields.SelectField('type', type2field)

    Without a match and without a default a NoVariantMatchException is raised.
    """
    class Type(Flag):
        DEFAULT = auto()

    def __init__(self, key, mapping, **kwargs):
        self._key = Dependency(key) if isinstance(key, str) else key
        self._mapping = {_k: as_field(_v) for _k, _v in mapping.items()}

        super().__init__(**kwargs)

    def __repr__(self):
        return f'<{self.__class__.__name__}({self._key!r}{", " + self.name if self.name else ""})>'

    def get_field(self, key):
        return self._mapping.get(key, self._mapping.get(SelectField.Type.DEFAULT))

    def value_from_default(self, scope):
        if self.default is not None:
            return super().value_from_default(scope)

        field = self.get_field(SelectField.Type.DEFAULT)

        return field.value_from_default(scope) if field else None

    def read(self, stream, options, scope, args):
        self.logger.debug('resolving key \'%s\'' % self._key)
        key = resolve(self._key, scope)

        field = self.get_field(key)

        if field is None:
            self.logger.debug('no field for key %r', key)
            raise NoVariantMatchException(pos=stream.tell())

        self.logger.debug('using %r for key %r', field, key)

        return field.unpack(stream, options, scope, args=args)

    def write(self, value, stream, options, scope):
        field = self.get_field(resolve(self._key, scope))

        if field is None:
            raise PackException(f'no field to pack {value!r}')

        field.pack(value, stream, options, scope)


class CalcField(Field):
    '''The value is computed from the scope, no bytes are consumed.'''

    def __init__(self, expression, **kw):
        super().__init__(calc=expression, **kw)


class PosValue(object):
    '''A value together with the absolute position it was read from.'''
    __slots__ = ('_value', '_pos')

    def __init__(self, value, pos):
        object.__setattr__(self, '_value', value)
        object.__setattr__(self, '_pos', pos)

    def __setattr__(self, name, value):
        raise AttributeError(f'{self.__class__.__name__} is immutable')

    @property
    def value(self):
        return self._value

    @property
    def pos(self):
        return self._pos

    def __repr__(self):
        return '<%s(%r @ 0x%x)>' % (self.__class__.__name__, self._value, self._pos)

    def __eq__(self, other):
        if isinstance(other, PosValue):
            return (self._value, self._pos) == (other._value, other._pos)
        return self._value == other

    def __hash__(self):
        return hash((self._value, self._pos))


class PosValueField(Field):
    '''Wrap the value of the inner field into a PosValue.'''

    def __init__(self, field, **kw):
        self.field = as_field(field)
        super().__init__(**kw)

    def read(self, stream, options, scope, args):
        position = stream.tell()
        return PosValue(self.field.unpack(stream, options, scope, args=args), position)

    def write(self, value, stream, options, scope):
        self.field.pack(value.value, stream, options, scope)


class RemainingField(Field):
    '''Takes as much stream as possible'''

    def __init__(self, **kw):
        kw.setdefault('default', b'')
        super().__init__(**kw)

    def read(self, stream, options, scope, args):
        return stream.read_all()

    def write(self, value, stream, options, scope):
        stream.write(value)
