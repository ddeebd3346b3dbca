"""
Pointers: values that indicate where, in the stream, another value lives.

A PointerField reads the pointer (an integer) and gives back a FilePtr; the pointed
value is read only after the whole record is read, by the deferred resolution pass,
so that the anchor of the pointer can depend also on fields that follow it

    class Entry(Chunk):
        name = PointerField(U32(), NullStringField(), offset_after=Dependency('base'))
        base = U32()

By default the pointers are relative to where the outermost read started.
"""
import logging

from .exceptions import UnresolvedPointerException
from .fields import Field, PosValue, as_field
from .properties import Scope, resolve


logger = logging.getLogger(__name__)


class FilePtr(object):
    '''A deferred value: the pointer is known, the pointed value is populated
    exactly once by resolve().'''

    def __init__(self, ptr, pointee, anchor=0, args=None, options=None, scope=None):
        self.ptr = ptr
        self._pointee = pointee
        self._anchor = anchor
        self._args = args
        self._options = options
        self._scope = scope
        self._value = None
        self._resolved = False

    def __repr__(self):
        if not self._resolved:
            return '<%s(0x%x, unresolved)>' % (self.__class__.__name__, self.ptr)
        return '<%s(0x%x, %r)>' % (self.__class__.__name__, self.ptr, self._value)

    def __eq__(self, other):
        if isinstance(other, FilePtr):
            return self.value == other.value
        return self.value == other

    __hash__ = None

    @property
    def is_resolved(self):
        return self._resolved

    @property
    def value(self):
        if not self._resolved:
            raise UnresolvedPointerException(
                f'pointer 0x{self.ptr:x} accessed before resolution (the record containing it is not finished)')

        return self._value

    def get_anchor(self):
        # it's a callable when the anchor must be evaluated lazily
        return self._anchor() if callable(self._anchor) else self._anchor

    def resolve(self, stream):
        '''Seek to anchor + ptr, read the pointed value and go back where we were.'''
        if self._resolved:
            return self._value

        before = stream.tell()
        target = self.get_anchor() + self.ptr

        logger.debug('resolving pointer 0x%x to offset 0x%x', self.ptr, target)

        stream.seek(target)
        value = self._pointee.unpack(stream, self._options, self._scope, args=self._args)
        # the pointed value can contain pointers on its own
        resolve_deferred([value], stream)

        self._value = value
        self._resolved = True
        # we don't need them anymore
        self._scope = self._options = self._anchor = None

        stream.seek(before)

        return value

    @classmethod
    def parser(cls, pointer, pointee, args=None):
        '''Returns a function to use with parse_with that reads the pointer and
        immediately gives back the pointed value (relative to the anchor in effect).'''
        pointer, pointee = as_field(pointer), as_field(pointee)

        def parse(stream, options, _args):
            ptr = pointer.read(stream, options, Scope(), None)
            file_ptr = cls(ptr, pointee, anchor=options.anchor, args=_args if args is None else args,
                           options=options, scope=Scope())
            return file_ptr.resolve(stream)

        return parse


def iter_deferred(value):
    '''Find the FilePtr instances inside a value: nested records are not explored
    since they resolve their own pointers at the end of their read.'''
    if isinstance(value, FilePtr):
        yield value
    elif isinstance(value, PosValue):
        yield from iter_deferred(value.value)
    elif isinstance(value, (list, tuple)):
        for element in value:
            yield from iter_deferred(element)


def resolve_deferred(values, stream):
    '''The deferred resolution pass: the pointers are resolved in the order the
    values are passed, the stream is left where it was.'''
    for value in values:
        for pointer in iter_deferred(value):
            if not pointer.is_resolved:
                pointer.resolve(stream)


class PointerField(Field):
    '''Read a pointer and wrap it in a FilePtr.

     - pointer: the field for the pointer itself (usually a U32())
     - pointee: the field (or Chunk/Choice) pointed to
     - offset: anchor expression evaluated right after the pointer is read
     - offset_after: anchor expression evaluated lazily, during the resolution
     - deref_now: resolve immediately, without waiting the end of the record
    '''

    def __init__(self, pointer, pointee, offset=None, offset_after=None, deref_now=False, **kw):
        if offset is not None and offset_after is not None:
            raise ValueError('you can\'t use offset and offset_after together')

        if deref_now and offset_after is not None:
            raise ValueError('a pointer resolved immediately can\'t use offset_after')

        self.pointer = as_field(pointer)
        self.pointee = as_field(pointee)
        self.offset = offset
        self.offset_after = offset_after
        self.deref_now = deref_now

        super().__init__(**kw)

    def __repr__(self):
        return f'<{self.__class__.__name__}({self.pointer!r} -> {self.pointee!r}{", " + self.name if self.name else ""})>'

    def get_anchor(self, options, scope):
        if self.offset is not None:
            return resolve(self.offset, scope)

        if self.offset_after is not None:
            return lambda: resolve(self.offset_after, scope)

        return options.anchor

    def read(self, stream, options, scope, args):
        ptr = self.pointer.read(stream, options, scope, None)

        file_ptr = FilePtr(
            ptr,
            self.pointee,
            anchor=self.get_anchor(options, scope),
            args=args,
            options=options,
            scope=scope,
        )

        if self.deref_now:
            file_ptr.resolve(stream)

        return file_ptr
