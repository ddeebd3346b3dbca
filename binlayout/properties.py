import logging
from enum import Enum, auto
import inspect

from .args import Args


class ChunkPhase(Enum):
    '''Enum to state the actual phase of a chunk'''
    INIT      = 0
    UNPACKING = auto()
    RESOLVING = auto()
    PACKING   = auto()
    DONE      = auto()
    ERROR     = auto()


class Scope(object):
    '''The namespace where the expressions of a record are evaluated.

    It contains the values of the fields already read (temporary ones included)
    and, as fallback, the arguments the record has received. Nothing from the
    enclosing records is visible: a nested record gets only what is passed
    explicitly via "args".

    The attributes starting with an underscore are reserved

     - _args: the Args instance
     - _offset: the absolute offset where the record starts
     - _layout: offset and size of the fields already read
    '''

    def __init__(self, args=None, offset=0, name=None):
        self._values = {}
        self._args = args if args is not None else Args()
        self._offset = offset
        self._name = name
        self._layout = {}

    def __repr__(self):
        return '<%s(%s, %r)>' % (self.__class__.__name__, self._name, self._values)

    def __getattr__(self, name):
        if name.startswith('_'):
            raise AttributeError(name)

        if name in self._values:
            return self._values[name]

        if name in self._args:
            return getattr(self._args, name)

        raise AttributeError(f"'{name}' is not available in the scope of {self._name}")

    def __getitem__(self, name):
        try:
            return getattr(self, name)
        except AttributeError:
            raise KeyError(name) from None

    def __contains__(self, name):
        return name in self._values or name in self._args

    def _set(self, name, value):
        self._values[name] = value


class Dependency:
    '''This makes the relation between fields possible.

    In practice this class allows to write something like

        class Simple(Chunk):
            length = fields.U32()
            data = fields.StringField(n=Dependency('.length'))

    and have the length of the string contained in the field named 'data'
    strictly connected to the value of the field named 'length'.

    The syntax for defining the expression is inspired from module resolution:
    each component is an attribute resolved starting from the scope of the
    record, so '.header.size' means "the field size of the already read field
    header". The leading '.' is optional. Arguments are resolved in the same
    way, by name.
    '''
    def __init__(self, expression):
        self.expression = expression
        self.logger = logging.getLogger(__name__)

    def __repr__(self):
        return f'<{self.__class__.__name__}({self.expression})>'

    def get_path(self):
        fields_path = self.expression.split('.')  # FIXME: create class FieldPath to encapsulate
        # '.miao'.split(".") -> ['', 'miao']
        # 'miao'.split(".") -> ['miao']
        if fields_path[0] == '':
            fields_path = fields_path[1:]

        return fields_path

    def _do_resolve(self, value):
        if inspect.ismethod(value):
            value = value()

        return value

    def resolve(self, scope):
        '''With this method we resolve the attribute with respect to the scope
        passed as argument.'''
        self.logger.debug('trying to resolve \'%s\'' % self.expression)

        value = scope
        # now we can resolve each component
        for component_name in self.get_path():
            value = getattr(value, component_name)

        value = self._do_resolve(value)

        self.logger.debug(' resolved with value %r' % (value,))

        return value


class RatioDependency(Dependency):

    def __init__(self, ratio, expression):
        super().__init__(expression)
        self._ratio = ratio

    def resolve(self, scope):
        value = super().resolve(scope)

        return int(value / self._ratio)


def is_expression(value):
    return isinstance(value, Dependency) or (callable(value) and not isinstance(value, type))


def resolve(expression, scope):
    '''An expression is a Dependency, a callable taking as argument the Scope
    or a constant value.'''
    if isinstance(expression, Dependency):
        return expression.resolve(scope)

    if is_expression(expression):
        return expression(scope)

    return expression


def describe(expression):
    '''Human readable representation of an expression, used in error messages.'''
    if isinstance(expression, Dependency):
        return expression.expression

    if is_expression(expression):
        try:
            return inspect.getsource(expression).strip()
        except (OSError, TypeError):
            return getattr(expression, '__qualname__', repr(expression))

    return repr(expression)
