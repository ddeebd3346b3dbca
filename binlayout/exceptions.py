class BinlayoutException(Exception):
    '''Base class to extend in order to throw exception in binlayout.

    Every exception carries the absolute position of the stream where the
    failure has been detected and the chain of the layers it crossed while
    unwinding: the position is never re-stamped, each record boundary only
    appends its own "Record.field" to the chain.
    '''
    kind = 'Error'

    def __init__(self, pos=None, chain=None):
        self.pos = pos
        self.chain = chain if chain is not None else []
        super().__init__()

    def add_context(self, context):
        self.chain.append(context)
        return self

    def describe(self):
        return ''

    def __str__(self):
        msg = self.kind
        if self.pos is not None:
            msg += ' at 0x%x' % self.pos

        detail = self.describe()
        if detail:
            msg += ': %s' % detail

        if self.chain:
            # the chain is built from the inside out
            msg += ' (while reading %s)' % ' <- '.join(self.chain)

        return msg


class IoException(BinlayoutException):
    '''The underlying stream failed, most of the times because there is
    not enough data.'''
    kind = 'Io'

    def __init__(self, pos=None, message='', chain=None):
        self.message = message
        super().__init__(pos=pos, chain=chain)

    def describe(self):
        return self.message


class BadMagicException(BinlayoutException):
    kind = 'BadMagic'

    def __init__(self, pos=None, found=None, expected=None, chain=None):
        self.found = found
        self.expected = expected
        super().__init__(pos=pos, chain=chain)

    def describe(self):
        return 'found %r, expected %r' % (self.found, self.expected)


class AssertFailException(BinlayoutException):
    kind = 'AssertFail'

    def __init__(self, pos=None, message='', chain=None):
        self.message = message
        super().__init__(pos=pos, chain=chain)

    def describe(self):
        return '"%s"' % self.message


class CustomException(BinlayoutException):
    '''Wraps a value (usually an exception) supplied by the user via an
    assertion, a try_map or a try_calc.'''
    kind = 'Custom'

    def __init__(self, pos=None, err=None, chain=None):
        self.err = err
        super().__init__(pos=pos, chain=chain)

    def custom_err(self, kind):
        '''Returns the wrapped error if it's an instance of "kind", None otherwise.'''
        return self.err if isinstance(self.err, kind) else None

    def describe(self):
        return repr(self.err)


class NoVariantMatchException(BinlayoutException):
    kind = 'NoVariantMatch'


class EnumErrorsException(BinlayoutException):
    '''All the variants of a Choice failed: we keep all the errors, in the
    order the variants have been tried.'''
    kind = 'EnumErrors'

    def __init__(self, pos=None, variant_errors=None, chain=None):
        self.variant_errors = variant_errors if variant_errors is not None else []
        super().__init__(pos=pos, chain=chain)

    def describe(self):
        return ', '.join('%s: %s' % (name, error) for name, error in self.variant_errors)


class UnresolvedPointerException(RuntimeError):
    '''Someone tried to access the value of a FilePtr before the deferred
    resolution took place.'''
    pass


class PackException(BinlayoutException):
    '''The value cannot be encoded back into binary data.'''
    kind = 'Pack'

    def __init__(self, message='', pos=None, chain=None):
        self.message = message
        super().__init__(pos=pos, chain=chain)

    def describe(self):
        return self.message
