'''
Arguments a schema can receive from who is reading it.

A schema declares what it needs via the "imports" option of its Meta

    class Element(Chunk):
        class Meta:
            imports = Imports.positional(Param('size', int))

        data = fields.StringField(Dependency('size'))

and a field using it builds the values from its own scope

    class Container(Chunk):
        size = fields.U8()
        element = fields.ChunkField(Element, args=(Dependency('size'),))

The values are passed by reference: nothing is copied, so also objects
that cannot be copied can flow down the tree.
'''
from collections.abc import Mapping


class _Required(object):

    def __repr__(self):
        return 'REQUIRED'


REQUIRED = _Required()


class Param(object):
    '''A single typed parameter, with an optional default value.'''

    def __init__(self, name, type=None, default=REQUIRED):
        self.name = name
        self.type = type
        self.default = default

    def __repr__(self):
        type_name = self.type.__name__ if self.type is not None else 'Any'
        if self.has_default:
            return f'<{self.__class__.__name__}({self.name}: {type_name} = {self.default!r})>'
        return f'<{self.__class__.__name__}({self.name}: {type_name})>'

    @property
    def has_default(self):
        return self.default is not REQUIRED

    def check(self, value):
        if self.type is not None and not isinstance(value, self.type):
            raise TypeError(
                f"argument '{self.name}' must be of type {self.type.__name__}, not {type(value).__name__}")

        return value


class Args(object):
    '''The values bound to the parameters of a schema: it's accessible both
    by position and by name.'''

    def __init__(self, names=(), values=()):
        self._names = tuple(names)
        self._values = tuple(values)

    def __repr__(self):
        return '<%s(%s)>' % (
            self.__class__.__name__,
            ', '.join('%s=%r' % _ for _ in zip(self._names, self._values)),
        )

    def __getattr__(self, name):
        if name.startswith('_'):
            raise AttributeError(name)

        try:
            return self._values[self._names.index(name)]
        except ValueError:
            raise AttributeError(f"no argument named '{name}'") from None

    def __getitem__(self, item):
        if isinstance(item, str):
            return getattr(self, item)

        return self._values[item]

    def __contains__(self, name):
        return name in self._names

    def __len__(self):
        return len(self._values)

    def __iter__(self):
        return iter(self._values)

    def __eq__(self, other):
        if not isinstance(other, Args):
            return NotImplemented
        return self.as_dict() == other.as_dict()

    def as_dict(self):
        return dict(zip(self._names, self._values))


class Imports(object):
    '''Describe the shape of the arguments a schema accepts: nothing, an
    ordered list of parameters or a named record of parameters.'''
    NONE = 'none'
    POSITIONAL = 'positional'
    NAMED = 'named'

    def __init__(self, *params, kind=None):
        params = tuple(_ if isinstance(_, Param) else Param(_) for _ in params)

        if kind is None:
            kind = Imports.POSITIONAL if params else Imports.NONE

        if kind == Imports.NONE and params:
            raise ValueError('an Imports without parameters can\'t have parameters')

        names = [_.name for _ in params]
        if len(set(names)) != len(names):
            raise ValueError(f'duplicated parameter names in {names}')

        if kind == Imports.POSITIONAL:
            # defaults are allowed only at the end
            seen_default = False
            for param in params:
                if param.has_default:
                    seen_default = True
                elif seen_default:
                    raise ValueError(f"parameter '{param.name}' without default follows a parameter with default")

        self.kind = kind
        self.params = params

    @classmethod
    def positional(cls, *params):
        return cls(*params, kind=Imports.POSITIONAL)

    @classmethod
    def named(cls, *params):
        return cls(*params, kind=Imports.NAMED)

    def __repr__(self):
        return f'<{self.__class__.__name__}.{self.kind}{self.params!r}>'

    @property
    def names(self):
        return tuple(_.name for _ in self.params)

    def default(self):
        '''Returns the Args obtained when nothing is passed, if possible.'''
        return self.bind(None)

    def bind(self, value):
        '''Check that "value" has exactly the shape declared and return the
        corresponding Args instance.'''
        if self.kind == Imports.NONE:
            if value is None or (isinstance(value, (tuple, list, Mapping, Args)) and len(value) == 0):
                return Args()
            raise TypeError(f'no arguments expected, got {value!r}')

        if isinstance(value, Args):
            value = value.as_dict() if self.kind == Imports.NAMED else tuple(value)

        if self.kind == Imports.POSITIONAL:
            return self._bind_positional(() if value is None else value)

        return self._bind_named({} if value is None else value)

    def _bind_positional(self, value):
        if not isinstance(value, (tuple, list)):
            raise TypeError(f'positional arguments must be passed as a tuple, got {type(value).__name__}')

        if len(value) > len(self.params):
            raise TypeError(f'expected at most {len(self.params)} arguments, got {len(value)}')

        values = []
        for index, param in enumerate(self.params):
            if index < len(value):
                values.append(param.check(value[index]))
            elif param.has_default:
                values.append(param.default)
            else:
                raise TypeError(f"missing argument '{param.name}'")

        return Args(self.names, values)

    def _bind_named(self, value):
        if not isinstance(value, Mapping):
            raise TypeError(f'named arguments must be passed as a mapping, got {type(value).__name__}')

        unknown = set(value) - set(self.names)
        if unknown:
            raise TypeError(f'unexpected arguments {sorted(unknown)}')

        values = []
        for param in self.params:
            if param.name in value:
                values.append(param.check(value[param.name]))
            elif param.has_default:
                values.append(param.default)
            else:
                raise TypeError(f"missing argument '{param.name}'")

        return Args(self.names, values)
