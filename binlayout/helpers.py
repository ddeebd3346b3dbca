'''
Ready to use building blocks for the formats that don't fit the plain fields.
'''
import logging

from .fields import Field, as_field
from .properties import resolve


logger = logging.getLogger(__name__)


class Punctuated(list):
    '''A list of elements read interleaved with separators: the list contains
    only the elements, the separators are kept aside.'''

    def __init__(self, elements=(), separators=()):
        super().__init__(elements)
        self.separators = list(separators)

    def __repr__(self):
        return '<%s(%s)>' % (self.__class__.__name__, list.__repr__(self))


class PunctuatedField(Field):
    '''"n" elements separated by "separator", like a list of values separated by commas.

    With trailing=True a separator follows also the last element. The "args"
    are passed to the elements, never to the separators.'''

    def __init__(self, element, separator, n, trailing=False, **kw):
        self.element = as_field(element)
        self.separator = as_field(separator)
        self.n = n
        self.trailing = trailing

        kw.setdefault('default', [])
        super().__init__(**kw)

    def read(self, stream, options, scope, args):
        count = resolve(self.n, scope)
        elements, separators = [], []

        for index in range(count):
            elements.append(self.element.unpack(stream, options, scope, args=args))

            if self.trailing or index + 1 != count:
                separators.append(self.separator.unpack(stream, options, scope))

        logger.debug('read %d elements and %d separators', len(elements), len(separators))

        return Punctuated(elements, separators)

    def write(self, value, stream, options, scope):
        separators = getattr(value, 'separators', [self.separator.default] * len(value))

        for index, element in enumerate(value):
            self.element.pack(element, stream, options, scope)

            if self.trailing or index + 1 != len(value):
                self.separator.pack(separators[index], stream, options, scope)


def punctuated(element, separator, n, **kw):
    '''Shortcut for PunctuatedField without trailing separator.'''
    return PunctuatedField(element, separator, n, trailing=False, **kw)


def punctuated_trailing(element, separator, n, **kw):
    return PunctuatedField(element, separator, n, trailing=True, **kw)


def read_bytes(count):
    '''Returns a function to use with parse_with that reads exactly "count" bytes.'''
    def parse(stream, options, args):
        return stream.read_exact(count)

    return parse
