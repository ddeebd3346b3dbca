import pytest

from binlayout import fields
from binlayout.args import Imports, Param
from binlayout.core import Chunk
from binlayout.exceptions import (
    AssertFailException,
    BadMagicException,
    CustomException,
    IoException,
)
from binlayout.meta import Endianess, Meta
from binlayout.options import ReadOptions
from binlayout.properties import ChunkPhase, Dependency
from binlayout.streams import Stream


class Message(Chunk):
    count = fields.U32()
    payload = fields.ArrayField(fields.U8(), n=Dependency('count'))


def test_count_and_payload():
    message = Message.read_be(b'\x00\x00\x00\x05\x41\x42\x43\x44\x45')

    assert message.count == 5
    assert message.payload == [0x41, 0x42, 0x43, 0x44, 0x45]
    assert message.phase == ChunkPhase.DONE
    assert message.layout == {
        'count': (0, 4),
        'payload': (4, 5),
    }


def test_short_read_rollback():
    """Check that a read failing in the middle leaves the stream untouched."""
    stream = Stream(b'\x00\x00\x00\x05')

    with pytest.raises(IoException) as e:
        Message.read_be(stream)

    assert stream.tell() == 0
    assert e.value.pos == 4
    assert e.value.chain == ['Message.payload']
    assert 'Message.payload' in str(e.value)


def test_unpack_error_phase():
    message = Message()

    with pytest.raises(IoException):
        message.unpack(Stream(b'\x00'))

    assert message.phase == ChunkPhase.ERROR


def test_meta():
    class Dummy(Chunk):
        field = fields.StructField('i')

    class Dummy2(Chunk):
        field2 = fields.StructField('i')

    assert isinstance(Dummy._meta, Meta)
    assert len(Dummy._meta.fields) == 1
    assert isinstance(Dummy._meta.fields, tuple)
    # from the class we obtain the schema, from the instance the value
    assert isinstance(Dummy.field, fields.StructField)
    assert Dummy(b'\x01\x00\x00\x00', endianess=Endianess.LITTLE_ENDIAN).field == 1
    assert len(Dummy2._meta.fields) == 1


def test_meta_invalid_option():
    with pytest.raises(AttributeError):
        class Dummy(Chunk):
            class Meta:
                kebab = True

            field = fields.U8()


def test_constructor():
    message = Message(count=2, payload=[1, 2])

    assert message.count == 2
    assert message.phase == ChunkPhase.INIT
    assert repr(message) == '<Message(count=2,payload=[1, 2])>'

    with pytest.raises(TypeError):
        Message(kebab=1)

    message = Message(b'\x00\x00\x00\x01\xff', endianess=Endianess.BIG_ENDIAN)

    assert message.payload == [0xff]


def test_inheritance():
    '''subclasses inherit fields'''
    class Father(Chunk):
        class Meta:
            endianess = Endianess.LITTLE_ENDIAN

        field_a = fields.StringField(0x10)
        field_b = fields.StructField("I")

    class Son(Father):
        field_c = fields.StringField(0x08)

    field_b_value = b'\x01\x02\x03\x04'
    field_c_value = b'ABCDEFGH'
    son = Son.read(b'A' * 16 + field_b_value + field_c_value)

    assert [_ for _, __ in son.get_fields()] == [
        'field_a', 'field_b', 'field_c',
    ]

    # check values make sense
    assert son.field_b == 0x04030201, f'field_b is {son.field_b:x}'
    assert son.field_c == field_c_value


def test_temp_field():
    """Check that a temporary field is usable by the following expressions
    but it's not stored into the instance."""
    class Record(Chunk):
        class Meta:
            asserts = [lambda this: len(this.data) == this.size]

        size = fields.U8(temp=True)
        data = fields.StringField(Dependency('size'))

    record = Record.read(b'\x03abc')

    assert record.data == b'abc'
    assert not hasattr(record, 'size')
    assert record.get_fields() == [('data', b'abc')]


def test_scope_is_not_inherited():
    """The nested records don't see the fields of the enclosing ones."""
    class Inner(Chunk):
        value = fields.U8(calc=lambda this: this.size)

    class Outer(Chunk):
        size = fields.U8(temp=True)
        inner = fields.ChunkField(Inner)

    stream = Stream(b'\x01')

    with pytest.raises(AttributeError):
        Outer.read(stream)

    assert stream.tell() == 0


def test_magic():
    class Magic(Chunk):
        class Meta:
            magic = b'MZ'

        value = fields.U8()

    assert Magic.read(b'MZ\x01').value == 1

    stream = Stream(b'\x00\x00MX\x01')
    stream.seek(2)

    with pytest.raises(BadMagicException) as e:
        Magic.read(stream)

    assert e.value.pos == 2
    assert e.value.found == b'MX'
    assert e.value.expected == b'MZ'
    assert e.value.chain == ['Magic']
    assert stream.tell() == 2


def test_numeric_magic():
    class Numeric(Chunk):
        class Meta:
            magic = fields.U16(equals_to=0xcafe)

        value = fields.U8()

    assert Numeric.read_le(b'\xfe\xca\x01').value == 1

    with pytest.raises(BadMagicException) as e:
        Numeric.read_be(b'\xfe\xca\x01')

    assert e.value.found == 0xfeca


def test_pre_asserts():
    class Guarded(Chunk):
        class Meta:
            imports = Imports.positional(Param('enabled', bool))
            pre_asserts = [lambda this: this.enabled]

        value = fields.U8()

    assert Guarded.read(b'\x01', args=(True,)).value == 1

    stream = Stream(b'\x01')

    with pytest.raises(AssertFailException) as e:
        Guarded.read(stream, args=(False,))

    assert e.value.pos == 0
    assert stream.tell() == 0


def test_asserts():
    class Checked(Chunk):
        class Meta:
            asserts = [(lambda this: this.a < this.b, 'a must be lower than b')]

        a = fields.U8()
        b = fields.U8()

    assert Checked.read(b'\x01\x02').b == 2

    stream = Stream(b'\x02\x01')
    with pytest.raises(AssertFailException) as e:
        Checked.read(stream)

    assert e.value.message == 'a must be lower than b'
    assert e.value.pos == 2
    assert stream.tell() == 0


def test_asserts_custom_error():
    class Checked(Chunk):
        class Meta:
            asserts = [(lambda this: this.a == 0, lambda this: ValueError(this.a))]

        a = fields.U8()

    with pytest.raises(CustomException) as e:
        Checked.read(b'\x07')

    error = e.value.custom_err(ValueError)

    assert isinstance(error, ValueError)
    assert error.args == (7,)
    assert e.value.custom_err(KeyError) is None


def test_endianess_isolation():
    """The override of a field doesn't leak to its siblings."""
    class Mixed(Chunk):
        class Meta:
            endianess = Endianess.LITTLE_ENDIAN

        a = fields.U16(endianess=Endianess.BIG_ENDIAN)
        b = fields.U16()

    mixed = Mixed.read(b'\x01\x02\x01\x02')

    assert mixed.a == 0x0102
    assert mixed.b == 0x0201


def test_endianess_inherited_by_nested():
    class Inner(Chunk):
        value = fields.U16()

    class Outer(Chunk):
        inner = fields.ChunkField(Inner, endianess=Endianess.BIG_ENDIAN)
        tail = fields.U16()

    outer = Outer.read_le(b'\x00\x01\x01\x00')

    assert outer.inner.value == 1
    assert outer.tail == 1


def test_endianess_at_runtime():
    class Runtime(Chunk):
        flag = fields.U8()
        value = fields.U16(is_big=lambda this: this.flag == 1)

    assert Runtime.read(b'\x01\x00\x02').value == 2
    assert Runtime.read(b'\x00\x02\x00').value == 2

    class FromArgs(Chunk):
        class Meta:
            imports = Imports.named(Param('big', bool))
            is_big = Dependency('big')

        value = fields.U16()

    assert FromArgs.read(b'\x00\x01', args={'big': True}).value == 1
    assert FromArgs.read(b'\x00\x01', args={'big': False}).value == 0x100


def test_nested_error_context():
    class Inner(Chunk):
        value = fields.U32()

    class Outer(Chunk):
        head = fields.U8()
        inner = fields.ChunkField(Inner)

    stream = Stream(b'\x01\x02')

    with pytest.raises(IoException) as e:
        Outer.read(stream)

    # the position is where the problem has been found
    assert e.value.pos == 1
    assert e.value.chain == ['Inner.value', 'Outer.inner']
    assert 'Inner.value <- Outer.inner' in str(e.value)
    assert stream.tell() == 0


def test_read_without_endianess():
    message = Message.read(b'\x00\x00\x00\x00', endianess=None)

    assert message.count == 0
    assert message.payload == []


def test_consecutive_reads():
    stream = Stream(b'\x00\x00\x00\x01\xaa\x00\x00\x00\x02\xbb\xcc')

    first = Message.read_be(stream)
    second = Message.read_be(stream)

    assert first.payload == [0xaa]
    assert second.payload == [0xbb, 0xcc]
    assert second.offset == 5
    assert stream.tell() == 11


def test_equality():
    data = b'\x00\x00\x00\x01\xaa'

    assert Message.read_be(data) == Message.read_be(data)
    assert Message.read_be(data) != Message.read_le(b'\x01\x00\x00\x00\xbb')
    assert Message.read_be(data) == Message(count=1, payload=[0xaa])


def test_read_options_evolve():
    options = ReadOptions(anchor=0x10)
    big = options.evolve(endianess=Endianess.BIG_ENDIAN)

    assert big.endianess == Endianess.BIG_ENDIAN
    assert big.anchor == 0x10
    # the original is untouched
    assert options.endianess == Endianess.NATIVE

    with pytest.raises(AttributeError):
        options.evolve(kebab=True)
