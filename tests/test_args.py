import pytest

from binlayout import fields
from binlayout.args import Args, Imports, Param
from binlayout.core import Chunk
from binlayout.properties import Dependency
from binlayout.streams import Stream


def test_imports_none():
    imports = Imports()

    assert imports.kind == Imports.NONE
    assert imports.bind(None) == Args()
    assert imports.bind(()) == Args()

    with pytest.raises(TypeError):
        imports.bind((1,))


def test_imports_positional():
    imports = Imports.positional(Param('count', int), Param('scale', int, default=1))

    args = imports.bind((3,))

    assert args.count == 3
    assert args.scale == 1
    assert args[0] == 3
    assert args['scale'] == 1
    assert 'count' in args
    assert list(args) == [3, 1]

    with pytest.raises(TypeError):
        imports.bind(())

    with pytest.raises(TypeError):
        imports.bind((1, 2, 3))

    with pytest.raises(TypeError):
        imports.bind(('three',))

    with pytest.raises(TypeError):
        imports.bind({'count': 3})


def test_imports_positional_defaults_at_the_end():
    with pytest.raises(ValueError):
        Imports.positional(Param('a', default=1), Param('b'))


def test_imports_named():
    imports = Imports.named(Param('count', int), 'label')

    args = imports.bind({'label': 'miao', 'count': 2})

    assert args.as_dict() == {'count': 2, 'label': 'miao'}
    assert imports.names == ('count', 'label')

    with pytest.raises(TypeError):
        imports.bind({'count': 2})

    with pytest.raises(TypeError):
        imports.bind({'count': 2, 'label': 'miao', 'kebab': True})

    with pytest.raises(TypeError):
        imports.bind((2, 'miao'))

    # an already bound value is accepted as it is
    assert imports.bind(args) == args


def test_imports_duplicated():
    with pytest.raises(ValueError):
        Imports.named('a', 'a')


def test_args_missing_attribute():
    args = Args(('a',), (1,))

    with pytest.raises(AttributeError):
        args.b


def test_args_by_reference():
    """The values are not copied while they flow down."""
    class Context(object):
        '''something that can't be copied'''
        def __copy__(self):
            raise TypeError('no copies')

        __deepcopy__ = __copy__

    class Element(Chunk):
        class Meta:
            imports = Imports.named(Param('context', Context))

        value = fields.U8(calc=lambda this: id(this.context))

    class Container(Chunk):
        class Meta:
            imports = Imports.named(Param('context', Context))

        element = fields.ChunkField(Element, args={'context': Dependency('context')})

    context = Context()
    container = Container.read(b'', args={'context': context})

    assert container.element.value == id(context)


def test_args_are_checked_before_reading():
    class Element(Chunk):
        class Meta:
            imports = Imports.positional(Param('size', int))

        data = fields.StringField(Dependency('size'))

    class Container(Chunk):
        head = fields.U8()
        element = fields.ChunkField(Element, args=('two',))

    stream = Stream(b'\x01ab')

    with pytest.raises(TypeError):
        Container.read(stream)

    assert stream.tell() == 0


def test_args_visible_in_scope():
    class Element(Chunk):
        class Meta:
            imports = Imports.named(Param('count', int), Param('big', bool, default=False))

        items = fields.ArrayField(fields.U16(is_big=Dependency('big')), n=Dependency('count'))
        total = fields.CalcField(lambda this: this._args.count)

    element = Element.read(b'\x00\x01\x00\x02', args={'count': 2, 'big': True})

    assert element.items == [1, 2]
    assert element.total == 2

    with pytest.raises(TypeError):
        Element.read(b'\x00\x01')
