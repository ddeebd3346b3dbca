import copy

from .meta import Endianess


class ReadOptions(object):
    '''Runtime options flowing down the tree of reads.

     - endianess: the byte order in effect
     - anchor: the absolute offset the pointers are relative to, by default
       where the outermost read started

    It's never modified in place: use evolve() to obtain a modified copy.'''

    def __init__(self, endianess=Endianess.NATIVE, anchor=0):
        self.endianess = endianess
        self.anchor = anchor

    def __repr__(self):
        return f'<{self.__class__.__name__}(endianess={self.endianess.name}, anchor=0x{self.anchor:x})>'

    def evolve(self, **kwargs):
        options = copy.copy(self)
        for name, value in kwargs.items():
            if not hasattr(options, name):
                raise AttributeError(f"'{name}' is not a valid read option")
            setattr(options, name, value)

        return options
