import logging
from enum import Enum, auto

from .args import Imports


class Endianess(Enum):
    LITTLE_ENDIAN = auto()
    BIG_ENDIAN    = auto()
    NETWORK       = auto()
    NATIVE        = auto()

    def get_prefix(self):
        '''The byte order character to use with the struct module.'''
        return {
            Endianess.LITTLE_ENDIAN: '<',
            Endianess.BIG_ENDIAN: '>',
            Endianess.NETWORK: '!',
            Endianess.NATIVE: '=',
        }[self]


class FieldDescriptor(object):
    """Wrapper around field access of a Chunk related class.

    Accessed from the class it returns the Field (i.e. the schema), from an
    instance the decoded value."""

    def __init__(self, field_instance: "Field", field_name: str):
        self.logger = logging.getLogger(f"{self.__module__}.{self.__class__.__name__}")
        self.field = field_instance
        self.field.name = field_name

    def __get__(self, instance, type=None):
        if instance is None:
            return self.field

        data = instance.__dict__

        if self.field.name in data:
            return data[self.field.name]

        raise AttributeError(f"field '{self.field.name}' of {instance.__class__.__name__} has no value")

    def __set__(self, instance, value):
        self.logger.debug("__set__ from %s for field named '%s'", instance.__class__.__name__, self.field.name)
        instance.__dict__[self.field.name] = value


class FieldBase(object):

    def contribute_to_chunk(self, cls, name):
        if getattr(cls, name, None) is None:
            setattr(cls, name, FieldDescriptor(self, name))
        else:
            raise AttributeError(f'field {name} is already present in class {cls.__name__}')


class Meta(object):
    """Class containing metadata about the abstraction: the ordered fields and
    the record-level directives coming from the inner "class Meta"."""

    OPTIONS = {
        'endianess': None,
        'is_big': None,
        'is_little': None,
        'magic': None,
        'imports': Imports(),
        'pre_asserts': (),
        'asserts': (),
        # these are meaningful only for Choice and its variants
        'repr': None,
        'tag': None,
        'error_mode': None,
    }
    NOT_INHERITED = ('tag',)

    def __init__(self, options=None, parent=None):
        self.fields = []
        self.variants = []

        for name, default in self.OPTIONS.items():
            inherit = parent is not None and name not in self.NOT_INHERITED
            setattr(self, name, getattr(parent, name) if inherit else default)

        if options is None:
            return

        for name, value in vars(options).items():
            if name.startswith('_'):
                continue
            if name not in self.OPTIONS:
                raise AttributeError(f"'{name}' is not a valid Meta option")
            setattr(self, name, value)

        if self.endianess is not None and (self.is_big is not None or self.is_little is not None):
            raise ValueError('you can indicate only one between endianess, is_big and is_little')

    def freeze(self):
        '''Once the class is built the schema doesn't change anymore.'''
        self.fields = tuple(self.fields)
        self.variants = tuple(self.variants)
        self.pre_asserts = tuple(self.pre_asserts)
        self.asserts = tuple(self.asserts)

    def get_field(self, name):
        for field in self.fields:
            if field.name == name:
                return field

        raise KeyError(name)


class MetaChunk(type):
    logger = logging.getLogger(__name__)

    def __new__(cls, names, bases, attrs):
        '''All of this is a big hack, maybe too inspired by how Django does a similar thing!'''
        module = attrs.pop('__module__')
        classcell = attrs.pop('__classcell__', None)
        options = attrs.pop('Meta', None)

        new_attrs = {
            '__module__': module,
        }
        if classcell is not None:
            new_attrs['__classcell__'] = classcell
        new_cls = super(MetaChunk, cls).__new__(cls, names, bases, new_attrs)

        # handle inheritance
        parents = [_ for _ in bases if isinstance(_, MetaChunk)]
        new_cls._meta = Meta(options, parent=parents[0]._meta if parents else None)

        for parent in parents:
            for field in parent._meta.fields:
                setattr(new_cls, field.name, parent.__dict__.get(field.name, FieldDescriptor(field, field.name)))
                new_cls._meta.fields.append(field)
            new_cls._meta.variants.extend(parent._meta.variants)

        for obj_name, obj in attrs.items():
            new_cls.add_to_class(obj_name, obj)

        new_cls._meta.freeze()

        return new_cls

    def add_to_class(cls, name, value):
        if hasattr(value, 'contribute_to_chunk'):
            cls.logger.debug('contribute_to_chunk() found for field \'%s\'' % name)
            value.contribute_to_chunk(cls, name)
            cls._meta.fields.append(value)
        else:
            setattr(cls, name, value)
