"""
A Choice is a value that can be one among a set of records (the variants).

The variants are the Chunk subclasses defined inside the Choice, the first that
can be read wins and it's what the read returns

    class Shape(Choice):
        class Circle(Chunk):
            class Meta:
                magic = b'C'
            radius = fields.U32()

        class Square(Chunk):
            class Meta:
                magic = b'S'
            side = fields.U32()

If the Meta of the Choice indicates a "repr" field, instead of trying each variant
in turn, the tag is read and the variant with the same Meta.tag is used.
"""
import logging
from enum import Enum

from .core import Chunk, Readable
from .enum import VariantErrorMode
from .exceptions import BinlayoutException, EnumErrorsException, NoVariantMatchException, PackException
from .fields import StructField, as_field, check_assertion, check_magic, get_endianess, write_magic
from .meta import Endianess, MetaChunk
from .options import ReadOptions
from .properties import Scope
from .streams import Stream


logger = logging.getLogger(__name__)


class MetaChoice(MetaChunk):

    def add_to_class(cls, name, value):
        if isinstance(value, type) and issubclass(value, Chunk):
            cls.logger.debug('variant \'%s\' found for \'%s\'' % (name, cls.__name__))
            cls._meta.variants.append(value)
            setattr(cls, name, value)
            return

        if hasattr(value, 'contribute_to_chunk'):
            raise AttributeError(f'a Choice can\'t have fields (found \'{name}\' in {cls.__name__})')

        super().add_to_class(name, value)


def _same_tag(variant_tag, tag):
    if variant_tag == tag:
        return True

    # a tag read as integer can be compared with a variant indicated via an Enum and vice versa
    if isinstance(variant_tag, Enum) and not isinstance(tag, Enum):
        return variant_tag.value == tag
    if isinstance(tag, Enum) and not isinstance(variant_tag, Enum):
        return tag.value == variant_tag

    return False


class Choice(Readable, metaclass=MetaChoice):
    '''Base class for the tagged unions: it's never instantiated, reading it
    returns an instance of the matching variant.'''

    def __init__(self, *args, **kwargs):
        raise TypeError(f'{self.__class__.__name__} is a Choice: read it or instantiate one of its variants')

    @classmethod
    def get_variants(cls):
        return cls._meta.variants

    @classmethod
    def get_repr_field(cls):
        repr_ = cls._meta.repr
        if repr_ is None:
            return None

        return StructField(repr_) if isinstance(repr_, str) else as_field(repr_)

    @classmethod
    def get_error_mode(cls):
        return cls._meta.error_mode if cls._meta.error_mode is not None else VariantErrorMode.ALL_ERRORS

    @classmethod
    def variant_for_tag(cls, tag):
        for variant in cls._meta.variants:
            if variant._meta.tag is not None and _same_tag(variant._meta.tag, tag):
                return variant

        return None

    @classmethod
    def unpack_value(cls, stream, options, args=None):
        meta = cls._meta
        name = cls.__name__
        bound = meta.imports.bind(args)

        with stream.rollback() as start:
            scope = Scope(args=bound, offset=start, name=name)

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

            if meta.repr is not None:
                return cls._unpack_tagged(stream, options, scope)

            return cls._unpack_probing(stream, options, scope)

    @classmethod
    def _unpack_tagged(cls, stream, options, scope):
        name = cls.__name__
        position = stream.tell()

        try:
            tag = cls.get_repr_field().unpack(stream, options, scope)
        except BinlayoutException as e:
            raise e.add_context(name)

        variant = cls.variant_for_tag(tag)

        if variant is None:
            logger.debug('no variant of %s with tag %r', name, tag)
            raise NoVariantMatchException(pos=position).add_context(name)

        logger.debug('tag %r selects %s.%s', tag, name, variant.__name__)

        try:
            return variant.unpack_variant(stream, options, scope._args, cls._meta.asserts)
        except BinlayoutException as e:
            raise e.add_context(f'{name}.{variant.__name__}')

    @classmethod
    def _unpack_probing(cls, stream, options, scope):
        name = cls.__name__
        position = stream.tell()
        errors = []

        for variant in cls._meta.variants:
            logger.debug('trying %s.%s at offset 0x%x', name, variant.__name__, position)

            try:
                return variant.unpack_variant(stream, options, scope._args, cls._meta.asserts)
            except BinlayoutException as e:
                logger.debug('variant %s.%s failed: %s', name, variant.__name__, e)
                errors.append((variant.__name__, e))
                stream.seek(position)

        if cls.get_error_mode() == VariantErrorMode.FIRST_ERROR:
            raise NoVariantMatchException(pos=position).add_context(name)

        raise EnumErrorsException(pos=position, variant_errors=errors).add_context(name)

    @classmethod
    def pack_value(cls, value, stream, options):
        meta = cls._meta
        variant = value.__class__

        if variant not in meta.variants:
            raise PackException(f'{variant.__name__} is not a variant of {cls.__name__}', pos=stream.tell())

        scope = Scope(args=value._args, offset=stream.tell(), name=cls.__name__)

        endianess = get_endianess(options, scope, meta.endianess, meta.is_big, meta.is_little)
        if endianess != options.endianess:
            options = options.evolve(endianess=endianess)

        if meta.magic is not None:
            write_magic(stream, options, meta.magic, scope)

        repr_field = cls.get_repr_field()
        if repr_field is not None:
            tag = variant._meta.tag
            if isinstance(tag, Enum) and getattr(repr_field, 'enum', None) is None:
                tag = tag.value
            repr_field.pack(tag, stream, options, scope)

        variant.pack_value(value, stream, options)

    @classmethod
    def pack(cls, value, stream=None, endianess=None):
        '''Encode a variant instance together with the tag, if any.'''
        output = Stream(b'') if stream is None else stream
        options = ReadOptions(endianess=endianess or Endianess.NATIVE, anchor=output.tell())

        cls.pack_value(value, output, options)

        return output.obj.getvalue() if stream is None else None
