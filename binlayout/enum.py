from enum import Enum


class VariantErrorMode(Enum):
    '''It indicates what a Choice reports when none of its variants can be read'''
    ALL_ERRORS  = 0  # EnumErrorsException with the error of each variant
    FIRST_ERROR = 1  # a bare NoVariantMatchException
